from ._version import __version__
from ._server import Server, create_server, serve, DEFAULT_PORT
from ._session import Session, SessionState, DEFAULT_READ_TIMEOUT
from ._catalog import Table, Column, APPLES
from ._codecs import Codec
from ._exceptions import (
    Error, ConnectionClosedError, ProtocolError, TruncatedMessageError,
    UnexpectedMessageError, UnrecognizedQueryError,
)
