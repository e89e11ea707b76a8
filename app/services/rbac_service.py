# auth_core/app/services/rbac_service.py
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from app.core.config import settings
from app.core.constants import HTTPMethod
from app.core.security import strip_prefix
from app.crud.crud_role import role as crud_role


class RBACService:
    """
    Decide se uma role pode executar (método, path). O path é comparado
    exatamente, sem curingas, depois de remover o prefixo global.
    """

    def __init__(self, *, prefix_url: str):
        self.prefix_url = prefix_url

    async def authorize(self, db: AsyncSession, *, role_id: int, path: str, method: str) -> bool:
        normalized_path = strip_prefix(path, self.prefix_url)
        try:
            http_method = HTTPMethod(method.upper())
        except ValueError:
            logger.warning(f"RBAC: método HTTP desconhecido '{method}' para {normalized_path}")
            return False

        # Role inexistente ou deletada conta como "sem permissão", nunca como "não encontrada"
        allowed = await crud_role.has_permission(
            db, role_id=role_id, path=normalized_path, method=http_method
        )
        if not allowed:
            logger.warning(f"RBAC: role ID {role_id} sem permissão para {http_method.value} {normalized_path}")
        return allowed


rbac_service = RBACService(prefix_url=settings.PREFIX_URL)
