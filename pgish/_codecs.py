from functools import wraps
from inspect import getattr_static

# added to the declared maximum length of variable-length types to
# form their type modifier (see VARHDRSZ in postgres/src/include/c.h)
VARHDRSZ = 4

builtin_codecs = {}


def register_builtin_codec(codec):
    builtin_codecs[codec.oid] = codec
    return codec


def get_codec(type_oid):
    codec = builtin_codecs.get(type_oid)
    if codec is None:
        raise KeyError(f'No codec registered for type OID: {type_oid}')
    return codec


class CodecMetaclass(type):
    def __new__(cls, name, bases, attrs, **kwargs):
        klass = super().__new__(cls, name, bases, attrs)
        if name == 'Codec' or name.startswith('_'):
            return klass

        for field in ('pg_type', 'oid', 'typlen'):
            if not hasattr(klass, field):
                raise TypeError(
                    f'Codec class does not have a {field} field')

        if not isinstance(klass.pg_type, str):
            raise TypeError(
                f'pg_type field must be a string; Got: '
                f'{klass.pg_type!r}')

        if hasattr(klass, 'python_types'):
            if isinstance(klass.python_types, type):
                # convert single values to tuples
                klass.python_types = (klass.python_types,)
            if isinstance(klass.python_types, list):
                klass.python_types = tuple(klass.python_types)
            if not isinstance(klass.python_types, tuple):
                raise TypeError(
                    f'Codec class python_types field should either be '
                    f'a tuple or a type; Got "{klass.python_types}"')
            if not all(isinstance(t, type) for t in klass.python_types):
                raise TypeError(
                    f'Codec class python_types field should contain '
                    f'only types; Got: {klass.python_types}')

        # only the text format is ever used on the wire
        expected_methods = [
            'decode_text',
            'encode_text',
        ]
        for method_name in expected_methods:
            if not hasattr(klass, method_name):
                raise TypeError(
                    f'Method {method_name} not found in codec class '
                    f'{name}')
            method = getattr_static(klass, method_name)
            if not isinstance(method, classmethod) and \
               not isinstance(method, staticmethod):
                raise TypeError(
                    'Codec encode/decode methods should either be '
                    'class methods or static methods.')

            # add type checkers to encode/decode methods
            if getattr(klass, 'python_types', None):
                setattr(klass, method_name,
                        cls.get_typechecked_method(
                            klass,
                            getattr(klass, method_name),
                            klass.python_types,
                            klass.pg_type))

        return klass

    @classmethod
    def get_typechecked_method(cls, codec_class, method, types,
                               pg_type_name):
        @wraps(method)
        def encode_wrapper(value, *args, **kwargs):
            if not isinstance(value, types):
                types_str = ', '.join(t.__name__ for t in types)
                raise TypeError(
                    f'Codec {codec_class.__name__} expects a value '
                    f'of python type in [{types_str}] for postgres '
                    f'type "{pg_type_name}"; Got: {value!r}')

            result = method(value, *args, **kwargs)
            if not isinstance(result, str):
                raise TypeError(
                    f'Codec {codec_class.__name__} '
                    f'{method.__name__} method did not return a '
                    f'string value; Got: {result!r}')
            return result

        @wraps(method)
        def decode_wrapper(value, *args, **kwargs):
            if not isinstance(value, str):
                raise TypeError(
                    f'decode_text expects a string value; '
                    f'Got: {value!r}')
            result = method(value, *args, **kwargs)
            if not isinstance(result, types):
                expected_types = \
                    f'[{", ".join(t.__name__ for t in types)}]'
                raise TypeError(
                    f'Codec {codec_class.__name__} returned an '
                    f'invalid decoded value; Expected types: '
                    f'{expected_types}, Got: {result!r}')
            return result

        if method.__name__.startswith('decode_'):
            return decode_wrapper
        else:
            return encode_wrapper


class Codec(metaclass=CodecMetaclass):
    @classmethod
    def type_modifier(cls, *args):
        # types without a modifier report -1
        return -1


class _Int(Codec):
    @classmethod
    def decode_text(cls, value):
        return int(value)

    @classmethod
    def encode_text(cls, value):
        bits = cls.typlen * 8
        min_value = -(2 ** (bits - 1))
        max_value = 2 ** (bits - 1) - 1
        if value < min_value or value > max_value:
            raise OverflowError(
                f'Value {value} out of range for {cls.__name__}')
        return str(value)


@register_builtin_codec
class Int4(_Int):
    pg_type = 'int4'
    oid = 23
    typlen = 4
    python_types = [int]


@register_builtin_codec
class Varchar(Codec):
    pg_type = 'varchar'
    oid = 1043
    typlen = -1  # variable length
    python_types = [str]

    @classmethod
    def type_modifier(cls, max_length=None):
        if max_length is None:
            return -1
        return max_length + VARHDRSZ

    @classmethod
    def decode_text(cls, value):
        return value

    @classmethod
    def encode_text(cls, value):
        return value
