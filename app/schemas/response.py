# auth_core/app/schemas/response.py
from typing import Generic, TypeVar
from fastapi import Request, status
from pydantic import BaseModel

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """Todas as respostas de sucesso saem como {data, code, path}."""
    data: T
    code: int
    path: str


class MessageResponse(BaseModel):
    message: str


def wrap(request: Request, data, status_code: int = status.HTTP_200_OK) -> dict:
    return {"data": data, "code": status_code, "path": request.url.path}
