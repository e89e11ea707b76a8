# auth_core/app/crud/crud_user.py
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from typing import Optional
from app.crud.base import CRUDBase
from app.models.user import User
from app.core.constants import UserStatus
from app.core.security import get_password_hash
from loguru import logger


class CRUDUser(CRUDBase[User]):

    async def get_by_email(self, db: AsyncSession, *, email: str) -> Optional[User]:
        # A role vem junto (lazy="joined"), necessária para emitir o access token
        stmt = select(User).where(User.email == email, User.deleted_at.is_(None))
        result = await db.execute(stmt)
        return result.scalars().first()

    async def get_active(self, db: AsyncSession, *, id: int) -> Optional[User]:
        stmt = select(User).where(User.id == id, User.deleted_at.is_(None))
        result = await db.execute(stmt)
        return result.scalars().first()

    async def create(
        self,
        db: AsyncSession,
        *,
        email: str,
        password: str,
        role_id: int,
        name: str = "",
        phone_number: str = "",
        avatar: str | None = None,
    ) -> User:
        """
        Cria o usuário com a senha já hasheada. Um email duplicado estoura
        IntegrityError no flush; quem chama trata.
        """
        db_obj = User(
            email=email,
            hashed_password=get_password_hash(password),
            name=name,
            phone_number=phone_number,
            avatar=avatar,
            role_id=role_id,
            status=UserStatus.ACTIVE,
        )
        return await self.save(db, db_obj)

    async def update_password(self, db: AsyncSession, *, user: User, new_password: str) -> User:
        user.hashed_password = get_password_hash(new_password)
        return await self.save(db, user)

    async def set_totp_secret(self, db: AsyncSession, *, user: User, secret: str | None) -> User:
        """Grava (ou remove, com secret=None) o segredo TOTP do usuário."""
        user.totp_secret = secret
        user = await self.save(db, user)
        logger.info(f"Segredo TOTP {'gravado' if secret else 'removido'} para usuário ID: {user.id}")
        return user

user = CRUDUser(User)
