# File: /docview/db/base_class.py | Version: 2.0 | Title: Declarative base (named constraints)
from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

# Alembic batch mode on SQLite can only drop constraints that have names
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)
