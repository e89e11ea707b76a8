# auth_core/app/api/route_registry.py
from dataclasses import dataclass
from typing import Optional

from fastapi import APIRouter
from fastapi.routing import APIRoute


@dataclass(frozen=True)
class RegisteredRoute:
    name: str
    path: str  # template completo, ex: /api/v1/users/{user_id}
    methods: frozenset[str]


class RouteRegistry:
    """
    Rotas da API com o path completo (prefixo do include + path da rota).

    Preenchido com os APIRouter de cada módulo no momento do include.
    Não lê `app.routes`, onde routers incluídos podem aparecer aninhados.
    """

    def __init__(self) -> None:
        self._by_name: dict[str, RegisteredRoute] = {}

    def register(self, router: APIRouter, prefix: str = "") -> None:
        for route in router.routes:
            if not isinstance(route, APIRoute):
                continue
            self._by_name[route.name] = RegisteredRoute(
                name=route.name,
                path=f"{prefix}{route.path}",
                methods=frozenset(route.methods or ()),
            )

    def get(self, name: Optional[str]) -> Optional[RegisteredRoute]:
        if name is None:
            return None
        return self._by_name.get(name)

    def routes(self) -> list[RegisteredRoute]:
        return list(self._by_name.values())


api_routes = RouteRegistry()
