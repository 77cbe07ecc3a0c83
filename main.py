from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config import Config
from db import create_db_and_tables
from errors import FoodLinkError
from identity import AuthEventHub
from logger import get_logger
from payments import build_bridges
from routers import auth, dashboard, donations, ngos, requests, users
from routers.auth import SessionContextDep

# Missing identity configuration is fatal
Config.validate()

log = get_logger()

app = FastAPI(title="FoodLink")

app.state.auth_events = AuthEventHub()
app.state.bridges = build_bridges()


@app.on_event("startup")
def on_startup() -> None:
    create_db_and_tables()
    log.info(
        "FoodLink started; payment providers: %s",
        ", ".join(p.value for p, b in app.state.bridges.items() if b.available) or "none",
    )


@app.exception_handler(FoodLinkError)
async def foodlink_error_handler(request: Request, exc: FoodLinkError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        log.warning("%s %s rejected (%s): %s", request.method, request.url.path, type(exc).__name__, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.message,
            "error": type(exc).__name__,
            "notice": {"kind": "error", "text": exc.message},
        },
    )


@app.get("/")
def read_root(context: SessionContextDep):
    role = context.role
    return {
        "name": "FoodLink",
        "authenticated": context.is_authenticated,
        "role": role.value if role else None,
    }


app.include_router(auth.router)
app.include_router(users.router, prefix="/users")
app.include_router(requests.router, prefix="/requests")
app.include_router(donations.router, prefix="/donations")
app.include_router(ngos.router, prefix="/ngos")
app.include_router(dashboard.router)
