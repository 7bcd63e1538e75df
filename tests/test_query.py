from pytest import raises
import pgish
from pgish import _pgmsg
from pgish._query import parse_query_text, dispatch


def test_parse_query_text():
    assert parse_query_text(b'SELECT * FROM apples\x00') == \
        'select * from apples'


def test_parse_query_text_after_null():
    assert parse_query_text(b'Select 1\x00garbage') == 'select 1'


def test_parse_query_text_no_terminator():
    assert parse_query_text(b'INSERT') == 'insert'


def test_parse_query_text_keeps_whitespace():
    assert parse_query_text(b' select 1 \x00') == ' select 1 '


def test_parse_query_text_invalid_utf8():
    with raises(pgish.ProtocolError):
        parse_query_text(b'select \xff\x00')


def test_create_table():
    [msg] = dispatch('create table apples (id integer, name varchar(255))')
    assert isinstance(msg, _pgmsg.CommandComplete)
    assert msg.cmd_tag == 'CREATE TABLE'


def test_insert_counts_parens():
    [msg] = dispatch(
        "insert into apples values (1, 'shinano_gold'), (2, 'fuji')")
    assert msg.cmd_tag == 'INSERT 0 2'

    [msg] = dispatch("insert into apples (id, name) values (1, 'a')")
    assert msg.cmd_tag == 'INSERT 0 2'

    [msg] = dispatch('insert into apples select 1')
    assert msg.cmd_tag == 'INSERT 0 0'


def test_select():
    msgs = dispatch('select 1')
    assert [type(m) for m in msgs] == [
        _pgmsg.RowDescription,
        _pgmsg.DataRow,
        _pgmsg.DataRow,
        _pgmsg.CommandComplete,
    ]
    assert msgs[-1].cmd_tag == 'SELECT 2'


def test_prefix_only():
    [msg] = dispatch('create tablespace foo')
    assert msg.cmd_tag == 'CREATE TABLE'

    [msg] = dispatch('selectivity')[-1:]
    assert msg.cmd_tag == 'SELECT 2'


def test_unrecognized():
    for sql in ['update apples set id = 1', 'create index i on apples',
                ' select 1', '']:
        with raises(pgish.UnrecognizedQueryError) as excinfo:
            dispatch(sql)
        assert excinfo.value.sql == sql
