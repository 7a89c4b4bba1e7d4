"""
SQL functions the schema relies on that not every backend ships.

`gen_random_uuid()` is built into PostgreSQL 13+. SQLite (local runs, tests) gets an
expression producing 32 random hex digits, which is how `Uuid` columns are stored there.
"""

from sqlalchemy import Uuid
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.functions import GenericFunction


class gen_random_uuid(GenericFunction):
    type = Uuid(as_uuid=True)
    inherit_cache = True


@compiles(gen_random_uuid, "sqlite")
def _gen_random_uuid_sqlite(element, compiler, **kw):
    return "lower(hex(randomblob(16)))"
