import logging
import trio
from ._server import serve, DEFAULT_PORT


def main():
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s %(name)s %(levelname)s %(message)s')
    try:
        trio.run(serve, DEFAULT_PORT)
    except KeyboardInterrupt:
        pass


if __name__ == '__main__':
    main()
