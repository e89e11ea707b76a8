# auth_core/app/models/role.py
from sqlalchemy import (
    String, DateTime, func, Boolean, Column, ForeignKey, Table, Index, Text, Enum as SAEnum
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime
from typing import Optional

from app.db.base import Base
from app.core.constants import HTTPMethod

# Tabela de associação N:N entre roles e permissions
role_permissions = Table(
    "role_permissions",
    Base.metadata,
    Column("role_id", ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
)


class Permission(Base):
    __tablename__ = "permissions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # Path sem o prefixo global (ex: "/users/me", não "/api/v1/users/me")
    path: Mapped[str] = mapped_column(String(1000), nullable=False)
    method: Mapped[HTTPMethod] = mapped_column(SAEnum(HTTPMethod, name="http_method"), nullable=False)
    module: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=func.now(), onupdate=func.now())

    # (path, method) é único entre as permissões não deletadas
    __table_args__ = (
        Index(
            "uq_permissions_path_method_active",
            "path", "method",
            unique=True,
            postgresql_where=deleted_at.is_(None),
            sqlite_where=deleted_at.is_(None),
        ),
    )


class Role(Base):
    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(500), unique=True, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=func.now(), onupdate=func.now())

    permissions: Mapped[list[Permission]] = relationship(secondary=role_permissions, lazy="selectin")
