# auth_core/app/crud/crud_role.py
from typing import Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import delete, func

from app.crud.base import CRUDBase
from app.core.constants import HTTPMethod
from app.models.role import Role, Permission, role_permissions


class CRUDRole(CRUDBase[Role]):

    async def get_by_name(self, db: AsyncSession, *, name: str) -> Optional[Role]:
        stmt = select(Role).where(Role.name == name, Role.deleted_at.is_(None)).limit(1)
        result = await db.execute(stmt)
        return result.scalars().first()

    async def get_active(self, db: AsyncSession, *, id: int) -> Optional[Role]:
        stmt = select(Role).where(Role.id == id, Role.deleted_at.is_(None))
        result = await db.execute(stmt)
        return result.scalars().first()

    async def count(self, db: AsyncSession) -> int:
        result = await db.execute(select(func.count()).select_from(Role))
        return result.scalar_one()

    async def has_permission(self, db: AsyncSession, *, role_id: int, path: str, method: HTTPMethod) -> bool:
        """
        Interseção entre a role (não deletada) e as permissões (não deletadas)
        com exatamente esse path e método.
        """
        stmt = (
            select(Permission.id)
            .join(role_permissions, role_permissions.c.permission_id == Permission.id)
            .join(Role, Role.id == role_permissions.c.role_id)
            .where(
                Role.id == role_id,
                Role.deleted_at.is_(None),
                Permission.deleted_at.is_(None),
                Permission.path == path,
                Permission.method == method,
            )
            .limit(1)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def set_permissions(self, db: AsyncSession, *, role: Role, permissions: Sequence[Permission]) -> Role:
        role.permissions = list(permissions)
        return await self.save(db, role)


class CRUDPermission(CRUDBase[Permission]):

    async def get_all_active(self, db: AsyncSession) -> Sequence[Permission]:
        stmt = select(Permission).where(Permission.deleted_at.is_(None))
        result = await db.execute(stmt)
        return result.scalars().all()

    async def create_many(self, db: AsyncSession, *, items: Sequence[dict]) -> list[Permission]:
        objs = [Permission(**item) for item in items]
        db.add_all(objs)
        await db.flush()
        return objs

    async def delete_many(self, db: AsyncSession, *, ids: Sequence[int]) -> int:
        if not ids:
            return 0
        # SQLite sem PRAGMA foreign_keys não aplica o CASCADE
        await db.execute(delete(role_permissions).where(role_permissions.c.permission_id.in_(ids)))
        stmt = delete(Permission).where(Permission.id.in_(ids))
        result = await db.execute(stmt)
        return result.rowcount


role = CRUDRole(Role)
permission = CRUDPermission(Permission)
