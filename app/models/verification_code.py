# auth_core/app/models/verification_code.py
from sqlalchemy import String, DateTime, func, UniqueConstraint, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime

from app.db.base import Base
from app.core.constants import VerificationCodeType

class VerificationCode(Base):
    __tablename__ = "verification_codes"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    email: Mapped[str] = mapped_column(String(100), index=True, nullable=False)
    code: Mapped[str] = mapped_column(String(6), nullable=False)
    type: Mapped[VerificationCodeType] = mapped_column(
        SAEnum(VerificationCodeType, name="verification_code_type"), nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    # No máximo um código vivo por (email, finalidade): um novo pedido sobrescreve
    __table_args__ = (UniqueConstraint("email", "type", name="uq_verification_codes_email_type"),)
