from pytest import raises
from pgish import _codecs, Codec


def _test_codec(codec, test_values):
    for value in test_values:
        enc = codec.encode_text(value)
        v = codec.decode_text(enc)
        assert v == value, f'Text codec failure: {codec.__name__}'


def test_int4():
    _test_codec(_codecs.Int4, [-2**31, 2**31-1, 0, -998])


def test_int4_text():
    assert _codecs.Int4.encode_text(1) == '1'
    assert _codecs.Int4.decode_text('-42') == -42


def test_int4_out_of_range():
    with raises(OverflowError):
        _codecs.Int4.encode_text(2**31)


def test_int4_wrong_type():
    with raises(TypeError):
        _codecs.Int4.encode_text('1')
    with raises(TypeError):
        _codecs.Int4.decode_text(b'1')


def test_varchar():
    _test_codec(_codecs.Varchar, ['', 'fuji', 'shinano_gold', 'ふじ'])


def test_type_info():
    assert (_codecs.Int4.oid, _codecs.Int4.typlen) == (23, 4)
    assert (_codecs.Varchar.oid, _codecs.Varchar.typlen) == (1043, -1)


def test_type_modifier():
    assert _codecs.Int4.type_modifier() == -1
    assert _codecs.Varchar.type_modifier() == -1
    assert _codecs.Varchar.type_modifier(255) == 259


def test_get_codec():
    assert _codecs.get_codec(23) is _codecs.Int4
    assert _codecs.get_codec(1043) is _codecs.Varchar
    with raises(KeyError):
        _codecs.get_codec(25)


def test_codec_missing_oid():
    with raises(TypeError):
        class Text(Codec):
            pg_type = 'text'
            typlen = -1

            @classmethod
            def decode_text(cls, value):
                return value

            @classmethod
            def encode_text(cls, value):
                return value


def test_codec_missing_method():
    with raises(TypeError):
        class Text(Codec):
            pg_type = 'text'
            oid = 25
            typlen = -1

            @classmethod
            def encode_text(cls, value):
                return value


def test_codec_instance_method():
    with raises(TypeError):
        class Text(Codec):
            pg_type = 'text'
            oid = 25
            typlen = -1

            def decode_text(self, value):
                return value

            def encode_text(self, value):
                return value
