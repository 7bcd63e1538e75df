import logging
import trio
from enum import Enum
from . import _pgmsg
from ._query import parse_query_text, dispatch
from ._utils import set_event_when_done
from ._exceptions import (
    Error, ConnectionClosedError, ProtocolError, TruncatedMessageError,
    UnexpectedMessageError,
)

BUFFER_SIZE = 204800
DEFAULT_READ_TIMEOUT = 30

# same limit postgres applies to startup packets
MAX_STARTUP_PACKET_LENGTH = 10000

# largest message postgres accepts (PQ_LARGE_MESSAGE_LIMIT)
MAX_MESSAGE_LENGTH = 0x3fffffff

logger = logging.getLogger(__name__)


class SessionState(Enum):
    SSL_NEGOTIATION = 1  # waiting for the SSLRequest
    STARTUP = 2          # waiting for the StartupMessage
    READY = 3            # ReadyForQuery sent
    QUERY_WAIT = 4       # reading the next message
    CLOSED = 5


class Session:
    def __init__(self, stream, *, read_timeout=DEFAULT_READ_TIMEOUT):
        self.read_timeout = read_timeout
        self.state = SessionState.SSL_NEGOTIATION

        # this will be set when the run method returns (the
        # set_event_when_done decorator takes care of that)
        self.closed = trio.Event()

        self._stream = stream
        self._buf = bytearray()

    @set_event_when_done('closed')
    async def run(self):
        logger.info('Session started.')
        try:
            async with self._stream:
                await self._startup_phase()
                while await self._simple_query_phase():
                    pass
        except ConnectionClosedError:
            logger.info('Client closed the connection.')
        except ProtocolError as e:
            logger.warning(f'Protocol error: {e}')
        except Error as e:
            logger.warning(str(e))
        except trio.BrokenResourceError:
            logger.warning('Connection broken while sending data.')
        finally:
            self.state = SessionState.CLOSED
            logger.info('Session ended.')

    async def _startup_phase(self):
        # the SSLRequest is not checked; whatever comes first is
        # answered with a refusal and plain text continues.
        await self._receive_untagged_frame()
        logger.debug('Received SSL request; refusing.')
        await self._stream.send_all(_pgmsg.SSL_NOT_SUPPORTED)

        self.state = SessionState.STARTUP
        await self._receive_untagged_frame()

        # no authentication is performed
        await self._send_msg(_pgmsg.AuthenticationOk())
        logger.info('Authentication okay.')
        await self._send_msg(_pgmsg.ReadyForQuery())
        self.state = SessionState.READY

    async def _simple_query_phase(self):
        self.state = SessionState.QUERY_WAIT
        tag = await self._receive_exactly(1)

        if tag == _pgmsg.Terminate._type:
            logger.info('Client sent Terminate.')
            return False

        if tag != _pgmsg.Query._type:
            raise UnexpectedMessageError(
                f'Expected a simple query; got message type {tag!r}',
                tag=tag)

        content = await self._receive_frame_body(MAX_MESSAGE_LENGTH)
        sql = parse_query_text(content)
        logger.debug(f'Received query: {sql}')

        msgs = dispatch(sql)
        await self._send_msg(*msgs, _pgmsg.ReadyForQuery())
        self.state = SessionState.READY
        return True

    async def _send_msg(self, *msgs):
        for msg in msgs:
            logger.debug(f'Sending PG message: {msg!r}')
        data = b''.join(bytes(msg) for msg in msgs)
        await self._stream.send_all(data)

    async def _receive_untagged_frame(self):
        content = await self._receive_frame_body(MAX_STARTUP_PACKET_LENGTH)
        logger.debug(
            f'Discarded {self.state.name.lower()} message '
            f'({len(content)} byte(s) of content)')
        return content

    async def _receive_frame_body(self, max_length):
        # reads the length field and the content following it. once a
        # frame has started it must complete before the read deadline.
        deadline = self.read_timeout
        if deadline is None:
            deadline = float('inf')

        try:
            with trio.fail_after(deadline):
                length = _pgmsg.decode_i32(await self._receive_exactly(4))
                if length < 4 or length > max_length:
                    raise ProtocolError(
                        f'Invalid message length: {length}')
                return await self._receive_exactly(length - 4)
        except trio.TooSlowError:
            raise TruncatedMessageError(
                f'Message not received in full after '
                f'{self.read_timeout} second(s)')
        except ConnectionClosedError:
            raise TruncatedMessageError(
                'Connection closed in the middle of a message')

    async def _receive_exactly(self, nbytes):
        while len(self._buf) < nbytes:
            data = await self._stream.receive_some(BUFFER_SIZE)
            if data == b'':
                raise ConnectionClosedError('Client closed the connection')
            self._buf += data

        data = bytes(self._buf[:nbytes])
        del self._buf[:nbytes]
        return data
