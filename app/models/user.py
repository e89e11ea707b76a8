# auth_core/app/models/user.py
from sqlalchemy import String, DateTime, func, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime
from typing import Optional

from app.db.base import Base
from app.core.constants import UserStatus

from .role import Role

class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    email: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    phone_number: Mapped[str] = mapped_column(String(15), nullable=False, default="")
    avatar: Mapped[Optional[str]] = mapped_column(String(1000))
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    # Segredo TOTP (base32). Só é alterado pelos fluxos de setup/disable do 2FA
    totp_secret: Mapped[Optional[str]] = mapped_column(String(64))
    status: Mapped[UserStatus] = mapped_column(
        SAEnum(UserStatus, name="user_status"), default=UserStatus.ACTIVE, nullable=False
    )
    role_id: Mapped[int] = mapped_column(ForeignKey("roles.id"), nullable=False)

    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=func.now(), onupdate=func.now())

    role: Mapped["Role"] = relationship(lazy="joined")
