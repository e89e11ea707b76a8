# auth_core/app/services/role_service.py
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from app.core.constants import RoleName
from app.crud.crud_role import role as crud_role


class RoleService:
    """
    Guarda em memória o id da role padrão (CLIENT). Carregado na primeira
    chamada e nunca invalidado durante a vida do processo: o mapeamento
    nome -> id das roles de sistema não muda sem um deploy.
    """

    def __init__(self, default_role_name: str = RoleName.CLIENT.value):
        self.default_role_name = default_role_name
        self._client_role_id: Optional[int] = None

    async def get_client_role_id(self, db: AsyncSession) -> int:
        if self._client_role_id is not None:
            return self._client_role_id
        db_role = await crud_role.get_by_name(db, name=self.default_role_name)
        if db_role is None:
            raise RuntimeError(f"Role padrão '{self.default_role_name}' não encontrada. Rode o seed inicial.")
        self._client_role_id = db_role.id
        logger.info(f"Role padrão '{self.default_role_name}' carregada (ID {db_role.id}).")
        return db_role.id


role_service = RoleService()
