# auth_core/app/models/refresh_token.py
from sqlalchemy import String, DateTime, func, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime

from app.db.base import Base
from .user import User
from .device import Device

class RefreshToken(Base):
    __tablename__ = "refresh_tokens"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    device_id: Mapped[int] = mapped_column(ForeignKey("devices.id", ondelete="CASCADE"), nullable=False)
    # Armazena um HASH do token, não o token em si, por segurança
    token_hash: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    # Sem soft delete: o registro é apagado ao ser consumido (refresh ou logout)

    user: Mapped["User"] = relationship(lazy="joined")
    device: Mapped["Device"] = relationship(lazy="joined")

    __table_args__ = (Index("ix_refresh_tokens_user_hash", "user_id", "token_hash"),)
