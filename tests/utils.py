from pgish import _pgmsg

BUFFER_SIZE = 4096

# what a session answers to an SSLRequest followed by a StartupMessage
STARTUP_REPLY = (
    b'N' +
    b'R\x00\x00\x00\x08\x00\x00\x00\x00' +
    b'Z\x00\x00\x00\x05I'
)


def query_bytes(sql):
    return bytes(_pgmsg.Query(sql))


async def receive_exactly(stream, nbytes):
    data = b''
    while len(data) < nbytes:
        chunk = await stream.receive_some(nbytes - len(data))
        if chunk == b'':
            raise EOFError(
                f'Stream closed after {len(data)} of {nbytes} byte(s)')
        data += chunk
    return data


async def receive_until_closed(stream):
    data = b''
    while True:
        chunk = await stream.receive_some(BUFFER_SIZE)
        if chunk == b'':
            return data
        data += chunk


def parse_backend_messages(data):
    msgs = []
    start = 0
    while start < len(data):
        msg, length = _pgmsg.PgMessage.deserialize(data, start)
        assert msg is not None, f'Incomplete message at offset {start}'
        msgs.append(msg)
        start += length
    return msgs


class MockClient:
    """Plays the frontend side of a session over a raw stream."""

    def __init__(self, stream, session=None):
        self.stream = stream
        self.session = session

    async def send(self, data):
        await self.stream.send_all(data)

    async def startup(self):
        await self.send(bytes(_pgmsg.SSLRequest()))
        assert await receive_exactly(self.stream, 1) == b'N'

        await self.send(bytes(_pgmsg.StartupMessage('postgres', 'postgres')))
        reply = await receive_exactly(self.stream, len(STARTUP_REPLY) - 1)
        assert reply == STARTUP_REPLY[1:]

    async def receive_msg(self):
        header = await receive_exactly(self.stream, 5)
        length = _pgmsg.decode_i32(header[1:])
        rest = await receive_exactly(self.stream, length - 4)
        msg, _ = _pgmsg.PgMessage.deserialize(header + rest)
        return msg

    async def query(self, sql):
        await self.send(query_bytes(sql))

        msgs = []
        while True:
            msg = await self.receive_msg()
            msgs.append(msg)
            if isinstance(msg, _pgmsg.ReadyForQuery):
                return msgs
