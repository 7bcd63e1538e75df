import logging
from . import _pgmsg
from ._catalog import APPLES
from ._exceptions import ProtocolError, UnrecognizedQueryError

# oid reported in INSERT command tags; tables never have oids here
INSERT_OID = 0

logger = logging.getLogger(__name__)


def parse_query_text(content):
    query = _pgmsg.Query._deserialize(content, 0, len(content))
    try:
        sql = query.query.decode('utf-8')
    except UnicodeDecodeError as e:
        raise ProtocolError(f'Query is not valid UTF-8: {e}')
    return sql.lower()


def _create_table(sql):
    return [_pgmsg.CommandComplete('CREATE TABLE')]


def _insert(sql):
    # every parenthesized group counts as one inserted row, which is
    # enough for "insert into t values (...), (...)" style statements
    count = sql.count('(')
    return [_pgmsg.CommandComplete(f'INSERT {INSERT_OID} {count}')]


def _select(sql):
    msgs = [_pgmsg.RowDescription(APPLES.describe())]
    msgs += [_pgmsg.DataRow(row) for row in APPLES.encode_rows()]
    msgs.append(_pgmsg.CommandComplete('SELECT 2'))
    return msgs


# ordered list of (prefix, handler) pairs; first match wins
QUERY_HANDLERS = [
    ('create table', _create_table),
    ('insert', _insert),
    ('select', _select),
]


def dispatch(sql):
    for prefix, handler in QUERY_HANDLERS:
        if sql.startswith(prefix):
            logger.debug(f'Query matched "{prefix}": {sql}')
            return handler(sql)

    raise UnrecognizedQueryError(sql, sql=sql)
