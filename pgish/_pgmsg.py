from collections import namedtuple


# the server refuses SSL by replying to an SSLRequest with this single
# byte (it is not a framed message)
SSL_NOT_SUPPORTED = b'N'

# table oid and format code reported for every row field
DEFAULT_TABLE_OID = 16385
TEXT_FORMAT = 0


#
# postgres message data types as defined here:
# https://www.postgresql.org/docs/current/protocol-message-types.html
#


class PgBaseDataType:
    pass


class _Int(int, PgBaseDataType):
    def __bytes__(self):
        return self.to_bytes(length=self._int_size,
                             byteorder='big',
                             signed=True)

    @classmethod
    def deserialize(cls, msg, start):
        value = msg[start:start+cls._int_size]
        value = int.from_bytes(value, byteorder='big', signed=True)
        return cls(value), cls._int_size


class Int16(_Int):
    _int_size = 2


class Int32(_Int):
    _int_size = 4


class Byte1(bytes, PgBaseDataType):
    def __new__(cls, value):
        if isinstance(value, str):
            value = value.encode('ascii')
        assert isinstance(value, bytes)
        assert len(value) == 1
        return super().__new__(cls, value)

    def __repr__(self):
        return f'<Byte1 {super().__repr__()} ({self[0]})>'

    @classmethod
    def deserialize(cls, msg, start):
        return cls(bytes(msg[start:start+1])), 1


class String(bytes, PgBaseDataType):
    def __new__(cls, value):
        if isinstance(value, str):
            value = value.encode('utf-8')
        assert isinstance(value, bytes)
        return super().__new__(cls, value)

    def __bytes__(self):
        return self + b'\0'

    def __repr__(self):
        return f'<String "{self}">'

    def __str__(self):
        try:
            value = self.decode('utf-8')
        except UnicodeDecodeError:
            value = super().__repr__()[1:]  # remove the b prefix
        return f'{value}'

    @classmethod
    def deserialize(cls, msg, start):
        try:
            null_idx = msg.index(b'\0', start)
        except ValueError:
            raise ValueError('String is not null terminated.')
        value = bytes(msg[start:null_idx])
        return cls(value), null_idx - start + 1


#
# plain encode/decode helpers on top of the data types
#


def encode_tag(tag):
    return bytes(Byte1(tag))


def encode_i16(value):
    return bytes(Int16(value))


def encode_i32(value):
    return bytes(Int32(value))


def decode_i32(data):
    value, _ = Int32.deserialize(data, 0)
    return int(value)


def encode_cstring(text):
    return bytes(String(text))


def encode_raw_string(text):
    # no terminator; used where the length is known from context
    return text.encode('utf-8')


#
# postgres messages
#


# one entry of a RowDescription message
FieldDescription = namedtuple('FieldDescription', [
    'name',
    'table_oid',
    'column_index',
    'type_oid',
    'type_len',
    'type_modifier',
    'format_code',
])


# metaclass for all postgres message classes, applied through the base
# class PgMessage
class PgMessageMetaClass(type):
    def __new__(cls, name, bases, attrs, **kwargs):
        if name != 'PgMessage':
            klass = PgMessageMetaClass._create_class(
                cls, name, bases, attrs, **kwargs)
        else:
            klass = super().__new__(cls, name, bases, attrs)

        return klass

    @staticmethod
    def _create_class(cls, name, bases, attrs, **kwargs):
        if '_type' not in attrs:
            raise TypeError(
                f'Class {name} missing class variable "_type"')
        _type = attrs['_type']

        if 'side' not in kwargs:
            raise TypeError(
                f'Class {name} missing class keyword argument "side".')
        side = kwargs['side']

        if _type is not None:
            if not isinstance(_type, bytes) or len(_type) != 1:
                raise ValueError(
                    '_type field should contain a bytes object of '
                    'size 1 or None.')

        if side not in ['backend', 'frontend', 'both']:
            raise ValueError(
                'Class argument "side" can only have one of these '
                'values: backend, frontend, both')

        # store the side argument as a class variable
        attrs['_side'] = side

        for attr, value in attrs.items():
            if attr.startswith('_'):
                continue
            if not isinstance(value, PgBaseDataType) and \
               not (isinstance(value, type) and
                    issubclass(value, PgBaseDataType)) and \
               not callable(value):
                raise TypeError(
                    'PgMessage sub-class fields should either by a '
                    'sub-class of PgBaseDataType, or an instance of '
                    'such a sub-class, or a callable returning '
                    'bytes.')

        klass = super().__new__(cls, name, bases, attrs)
        if _type is not None:
            sides = ['backend', 'frontend'] if side == 'both' else [side]
            for s in sides:
                PgMessage._msg_classes[s][_type] = klass

        return klass


# this is the base class for all postgres messages. it adds a
# __bytes__ function that serializes an instance of a sub-class to
# bytes.
#
# see list of messages here:
# https://www.postgresql.org/docs/current/protocol-message-formats.html
class PgMessage(metaclass=PgMessageMetaClass):
    # maps message types to their relevant sub-class of PgMessage,
    # separately for each side since some type bytes are used in both
    # directions with different meanings. this will be populated by
    # PgMessageMetaClass.
    _msg_classes = {'backend': {}, 'frontend': {}}

    def __bytes__(self):
        klass = type(self)
        payload = bytearray()
        for attr, field in vars(klass).items():
            if attr.startswith('_'):
                continue
            if isinstance(field, PgBaseDataType):
                # the field contains a concrete value (like Int32(0),
                # which should always contain the value 0)
                value = bytes(field)
            elif isinstance(field, type) and \
                 issubclass(field, PgBaseDataType):
                # the field contains just a type (like String); the
                # field value should have been set in the object
                # itself before serialization attempt.
                value = getattr(self, attr)
                if not isinstance(value, PgBaseDataType):
                    value = field(value)
            elif callable(field):
                value = field(self)
            payload += bytes(value)

        return self._frame(payload)

    def _frame(self, payload):
        # add four to length due to the length of the "length" field
        # itself
        msg = encode_tag(self._type) if self._type is not None else b''
        return msg + encode_i32(4 + len(payload)) + bytes(payload)

    @classmethod
    def deserialize(cls, msg, start=0, side='backend'):
        if len(msg) - start < 5:
            # not enough data
            return None, 0

        msg_type = bytes(msg[start + 0:start + 1])
        subclass = PgMessage._msg_classes[side].get(msg_type)
        if subclass is None:
            raise ValueError(f'Unknown {side} message type: {msg_type}')

        msg_len = decode_i32(msg[start + 1:start + 5])

        if msg_len > len(msg) - start - 1:
            # not enough data
            return None, 0

        msg = subclass._deserialize(
            msg,
            start + 1 + 4,  # one byte for type, 4 for length
            msg_len - 4     # length consists of the length field
                            # itself but not type
        )

        # return the deserialized message, as well as the number of
        # bytes consumed.
        return msg, msg_len + 1

    @classmethod
    def _deserialize(cls, msg, start, length):
        # default implementation for messages made only of declared
        # fields; messages with a variable structure override this.
        msg_obj = cls.__new__(cls)
        idx = start
        for attr, value in vars(cls).items():
            if attr.startswith('_'):
                continue

            if isinstance(value, PgBaseDataType):
                field_type = type(value)
            elif isinstance(value, type) and \
                 issubclass(value, PgBaseDataType):
                field_type = value
            elif callable(value):
                raise ValueError(
                    'Cannot deserialize messages with dynamic fields.')
            else:
                # the metaclass validation should prevent this to ever
                # happen
                assert False

            field_value, field_len = field_type.deserialize(msg, idx)
            idx += field_len

            setattr(msg_obj, attr, field_value)

        return msg_obj


#
# backend messages
#


class AuthenticationOk(PgMessage, side='backend'):
    _type = b'R'
    auth = Int32(0)

    def __repr__(self):
        return '<AuthenticationOk>'


class CommandComplete(PgMessage, side='backend'):
    _type = b'C'
    cmd_tag = String

    def __init__(self, cmd_tag):
        self.cmd_tag = cmd_tag

    def __repr__(self):
        return f'<CommandComplete tag="{self.cmd_tag}">'


class DataRow(PgMessage, side='backend'):
    _type = b'D'
    column_count = Int16

    # for each column there will be an Int32, telling us the length of
    # the column value, and a ByteN containing the value.

    def __init__(self, columns=None):
        self.columns = columns
        if self.columns is None:
            self.columns = []

    def __bytes__(self):
        payload = encode_i16(len(self.columns))
        for value in self.columns:
            # NULL values are indicated by setting the length field to
            # -1
            if value is None:
                payload += encode_i32(-1)
            else:
                payload += encode_i32(len(value)) + value
        return self._frame(payload)

    def __repr__(self):
        columns = ' '.join(repr(c) for c in self.columns)
        return f'<DataRow {columns}>'

    @classmethod
    def _deserialize(cls, msg, start, length):
        obj = cls()

        idx = start
        column_count, n = Int16.deserialize(msg, idx)
        idx += n

        for i in range(column_count):
            column_size, n = Int32.deserialize(msg, idx)
            idx += n

            if column_size < 0:
                column_value = None
            else:
                column_value = bytes(msg[idx:idx+column_size])
                idx += column_size

            obj.columns.append(column_value)

        return obj


class ReadyForQuery(PgMessage, side='backend'):
    _type = b'Z'
    status = Byte1

    def __init__(self, status=b'I'):
        self.status = status

    def __repr__(self):
        try:
            status = self.status.decode('utf-8')
        except UnicodeDecodeError:
            status = str(self.status)

        if status == 'I':
            status_desc = 'idle'
        elif status == 'T':
            status_desc = 'inside-transaction-block'
        elif status == 'E':
            status_desc = 'error'
        else:
            status_desc = 'unknown'
        status = f'{status} ({status_desc})'
        return f'<ReadyForQuery status="{status}">'


class RowDescription(PgMessage, side='backend'):
    _type = b'T'
    nfields = Int16
    # after this, for each row field a number of fields follow, see
    # FieldDescription

    def __init__(self, fields=None):
        self.fields = list(fields or [])

    def __bytes__(self):
        payload = encode_i16(len(self.fields))
        for field in self.fields:
            payload += (
                encode_cstring(field.name) +
                encode_i32(field.table_oid) +
                encode_i16(field.column_index) +
                encode_i32(field.type_oid) +
                encode_i16(field.type_len) +
                encode_i32(field.type_modifier) +
                encode_i16(field.format_code)
            )
        return self._frame(payload)

    def __repr__(self):
        names = ', '.join(field.name for field in self.fields)
        return f'<RowDescription {names}>'

    @classmethod
    def _deserialize(cls, msg, start, length):
        obj = cls()
        idx = start
        nfields, n = Int16.deserialize(msg, idx)
        idx += n
        while len(obj.fields) < nfields:
            name, n = String.deserialize(msg, idx)
            idx += n
            table_oid, n = Int32.deserialize(msg, idx)
            idx += n
            column_index, n = Int16.deserialize(msg, idx)
            idx += n
            type_oid, n = Int32.deserialize(msg, idx)
            idx += n
            type_len, n = Int16.deserialize(msg, idx)
            idx += n
            type_modifier, n = Int32.deserialize(msg, idx)
            idx += n
            format_code, n = Int16.deserialize(msg, idx)
            idx += n
            obj.fields.append(FieldDescription(
                str(name), table_oid, column_index, type_oid,
                type_len, type_modifier, format_code))
        return obj


#
# frontend messages
#


class Query(PgMessage, side='frontend'):
    _type = b'Q'
    query = String

    def __init__(self, query):
        if isinstance(query, str):
            query = query.encode('utf-8')
        if not isinstance(query, bytes):
            raise ValueError(
                'query should either by a str or bytes; got '
                f'{type(query)}')

        self.query = query

    def __repr__(self):
        query = self.query.decode('utf-8', errors='replace')
        return f'<Query {query}>'

    @classmethod
    def _deserialize(cls, msg, start, length):
        # the query string is supposed to be null terminated, but a
        # missing terminator is tolerated; anything from the first
        # null byte onward is dropped.
        content = bytes(msg[start:start+length])
        query, _, _ = content.partition(b'\0')
        return cls(query)


class Terminate(PgMessage, side='frontend'):
    _type = b'X'

    def __repr__(self):
        return '<Terminate>'


class SSLRequest(PgMessage, side='frontend'):
    _type = None  # SSLRequest message has no type field
    ssl_request_code = Int32(80877103)


class StartupMessage(PgMessage, side='frontend'):
    _type = None  # startup message has no type field
    version = Int32(0x0003_0000)  # protocol version 3.0
    # params = dynamic field

    def __init__(self, user, database):
        self.user = user.encode('utf-8')
        self.database = database.encode('utf-8')

    def __repr__(self):
        user = self.user.decode('utf-8')
        database = self.database.decode('utf-8')
        return f'<StartupMessage user={user} db={database}>'

    def params(self):
        return (
            b'user\0' +
            self.user + b'\0' +
            b'database\0' +
            self.database + b'\0' +
            b'\0'
        )
