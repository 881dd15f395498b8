"""Declarative base shared by the lifecycle tables.

Constraint names follow NAMING_CONVENTION so that ``unique=True`` columns and
foreign keys declared on the models get the same names the migrations use.
"""

from sqlalchemy import JSON, MetaData, TypeDecorator
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base

NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
}


class PortableJSONB(TypeDecorator):
    """Recipient lists and audit metadata.

    Stored as JSONB on PostgreSQL and as plain JSON on SQLite, which the test
    suite runs against.
    """

    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(JSON())


Base = declarative_base(metadata=MetaData(naming_convention=NAMING_CONVENTION))
