class Error(Exception):
    def __init__(self, error_msg):
        super().__init__(error_msg)
        self.error_msg = error_msg


class ConnectionClosedError(Error):
    pass


class ProtocolError(Error):
    pass


class TruncatedMessageError(ProtocolError):
    pass


class UnexpectedMessageError(ProtocolError):
    def __init__(self, error_msg, tag=None):
        super().__init__(error_msg)
        self.tag = tag


class UnrecognizedQueryError(Error):
    def __init__(self, error_msg, sql=None):
        super().__init__(error_msg)
        self.sql = sql

    def __str__(self):
        return f'Unrecognized query: {self.error_msg}'
