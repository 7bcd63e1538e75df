import pgish
from pytest import fixture
from trio.testing import memory_stream_pair
from utils import MockClient

# short enough for tests that wait on it with a real clock
TEST_READ_TIMEOUT = 10


@fixture
async def client(nursery):
    client_stream, server_stream = memory_stream_pair()
    session = pgish.Session(server_stream, read_timeout=TEST_READ_TIMEOUT)
    nursery.start_soon(session.run)
    return MockClient(client_stream, session)


@fixture
async def server():
    async with pgish.create_server(0, host='127.0.0.1',
                                   close_timeout=1) as server:
        yield server
