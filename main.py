# auth_core/main.py
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

# --- Imports do slowapi ---
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
# --- Fim imports slowapi ---

from app.api.dependencies import authenticate
from app.api.endpoints import auth, users, mgmt
from app.api.guards import validate_route_policies
from app.api.route_registry import api_routes
from app.core.config import settings
from app.core.exceptions import error_detail
from app.db.session import dispose_engine


@asynccontextmanager
async def lifespan(app: FastAPI):
    validate_route_policies(api_routes.routes())
    yield
    logger.info("Encerrando: liberando o engine do banco...")
    await dispose_engine()


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    enabled=settings.RATE_LIMIT_ENABLED,
)

app = FastAPI(
    title=settings.APP_NAME,
    description="Autenticação centralizada: tokens, sessões, RBAC e 2FA",
    version="1.0.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Tratamento de erros ---
# Toda resposta de erro sai como {detail: [{message, path}], code, path}

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail if isinstance(exc.detail, list) else error_detail(str(exc.detail), "")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": detail, "code": exc.status_code, "path": request.url.path},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    detail = []
    for error in exc.errors():
        # loc = ("body", "email") -> path "email"
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path", "header")]
        message = error.get("msg", "Invalid value")
        # Mensagens dos validators vêm como "Value error, Error.X"
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        detail.append({"message": message, "path": ".".join(loc)})
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": detail, "code": status.HTTP_422_UNPROCESSABLE_ENTITY, "path": request.url.path},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Erro não tratado em {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": error_detail("Error.InternalServerError", ""),
            "code": status.HTTP_500_INTERNAL_SERVER_ERROR,
            "path": request.url.path,
        },
    )

# --- Fim tratamento de erros ---


# Incluir routers da API. O guard roda como dependência de cada router e
# aplica a política da rota (Bearer + RBAC por padrão, ver app/api/guards.py).
# Cada router também entra no registro de rotas (permissões, políticas, guard).
def include_api_router(router: APIRouter, prefix: str, tags: list[str]) -> None:
    app.include_router(router, prefix=prefix, tags=tags, dependencies=[Depends(authenticate)])
    api_routes.register(router, prefix=prefix)


include_api_router(auth.router, f"{settings.PREFIX_URL}/auth", ["Authentication"])
include_api_router(users.router, f"{settings.PREFIX_URL}/users", ["Users"])
include_api_router(mgmt.router, f"{settings.PREFIX_URL}/mgmt", ["Management"])


@app.get("/")
def read_root():
    return {"message": f"{settings.APP_NAME} is running!"}
