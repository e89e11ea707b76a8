# auth_core/app/db/base.py
from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

# Nomes estáveis para constraints, usados pelo autogenerate do alembic
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Base declarativa de todos os modelos (users, roles, permissions, devices, tokens, códigos)."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)
