import logging
import trio
from functools import partial, wraps
from contextlib import asynccontextmanager
from ._session import Session, DEFAULT_READ_TIMEOUT

DEFAULT_PORT = 25432

logger = logging.getLogger(__name__)


class Server:
    def __init__(self, port=DEFAULT_PORT, *,
                 host=None,
                 max_connections=1,
                 close_timeout=5,
                 read_timeout=DEFAULT_READ_TIMEOUT):
        if max_connections < 1:
            raise ValueError('max_connections cannot be less than 1')

        self.host = host
        self.max_connections = max_connections
        self.close_timeout = close_timeout
        self.read_timeout = read_timeout

        # filled in once the listeners are up
        self.listeners = []

        self._port = port
        self._sessions = set()
        self._session_limit = trio.CapacityLimiter(self.max_connections)
        self._started = trio.Event()
        self._closed = trio.Event()

    @property
    def port(self):
        if self.listeners:
            return self.listeners[0].socket.getsockname()[1]
        return self._port

    @property
    def sessions(self):
        return frozenset(self._sessions)

    def close(self):
        self._closed.set()

    async def _run(self):
        async with trio.open_nursery() as nursery:
            self.listeners = await nursery.start(partial(
                trio.serve_tcp, self._handle_connection, self._port,
                host=self.host))
            logger.info(f'Listening on port {self.port}.')

            self._started.set()
            await self._closed.wait()

            with trio.move_on_after(self.close_timeout):
                for session in list(self._sessions):
                    await session.closed.wait()

            nursery.cancel_scope.cancel()

    async def _handle_connection(self, stream):
        # sessions beyond max_connections wait here for a free slot
        try:
            async with self._session_limit:
                session = Session(stream, read_timeout=self.read_timeout)
                self._sessions.add(session)
                try:
                    await session.run()
                finally:
                    self._sessions.discard(session)
        finally:
            # the session closes the stream itself; this covers being
            # cancelled while still waiting for a slot
            await trio.aclose_forcefully(stream)


@asynccontextmanager
@wraps(Server)
async def create_server(*args, **kwargs):
    server = Server(*args, **kwargs)
    async with trio.open_nursery() as nursery:
        nursery.start_soon(server._run)
        await server._started.wait()

        try:
            yield server
        finally:
            server.close()


async def serve(*args, **kwargs):
    async with create_server(*args, **kwargs):
        await trio.sleep_forever()
