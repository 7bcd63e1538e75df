from collections import namedtuple
from ._codecs import Int4, Varchar
from ._pgmsg import (
    FieldDescription, DEFAULT_TABLE_OID, TEXT_FORMAT, encode_raw_string,
)


Column = namedtuple('Column', ['name', 'codec', 'type_modifier'])


class Table:
    """An immutable, hardcoded table.

    There is no storage behind it: the rows given at construction time
    are all that is ever returned, whatever the query asks for.
    """

    def __init__(self, name, columns, rows, *, oid=DEFAULT_TABLE_OID):
        self.name = name
        self.oid = oid
        self.columns = tuple(columns)
        self.rows = tuple(tuple(row) for row in rows)

        for row in self.rows:
            if len(row) != len(self.columns):
                raise ValueError(
                    f'Row {row!r} does not match the {len(self.columns)} '
                    f'column(s) of table {name}')

    def __repr__(self):
        return f'<Table {self.name} oid={self.oid}>'

    def describe(self):
        return [
            FieldDescription(
                name=column.name,
                table_oid=self.oid,
                column_index=i,
                type_oid=column.codec.oid,
                type_len=column.codec.typlen,
                type_modifier=column.type_modifier,
                format_code=TEXT_FORMAT,
            )
            for i, column in enumerate(self.columns, start=1)
        ]

    def encode_rows(self):
        return [
            [
                encode_raw_string(column.codec.encode_text(value))
                for column, value in zip(self.columns, row)
            ]
            for row in self.rows
        ]


APPLES = Table(
    'apples',
    columns=[
        Column('id', Int4, Int4.type_modifier()),
        Column('name', Varchar, Varchar.type_modifier(255)),
    ],
    rows=[
        (1, 'shinano_gold'),
        (2, 'fuji'),
    ],
)
