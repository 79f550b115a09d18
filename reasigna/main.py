from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from reasigna import workflow
from reasigna.config import configure_logging, get_settings, load_environment
from reasigna.db import init_db
from reasigna.errors import Forbidden, Unauthorized, WorkflowError
from reasigna.schemas import DecisionPayload, LoginOut, LoginPayload, PublicUser, RequestPayload, TurnPayload
from reasigna.security import SessionClaims, SessionCodec, build_codec
from reasigna.store import StateStore, build_store

load_environment()
settings = get_settings()
configure_logging(settings)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    current = get_settings()
    if current.store_backend == "sql":
        init_db()
    logger.info("ReAsigna Turnos listening on http://%s:%s", current.host, current.port)
    yield


app = FastAPI(title="ReAsigna Turnos", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.mount("/static", StaticFiles(directory=settings.static_dir), name="static")
templates = Jinja2Templates(directory=settings.templates_dir)


@app.middleware("http")
async def disable_cache_for_api(request: Request, call_next):
    response = await call_next(request)
    if request.url.path.startswith("/api/"):
        response.headers["Cache-Control"] = "no-store, no-cache, max-age=0, must-revalidate"
        response.headers["Pragma"] = "no-cache"
    return response


@app.exception_handler(WorkflowError)
async def render_workflow_error(_: Request, exc: WorkflowError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def render_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "details": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [{"loc": list(error.get("loc", ())), "msg": error.get("msg", "")} for error in exc.errors()]


def get_store() -> StateStore:
    return build_store()


def get_codec() -> SessionCodec:
    return build_codec()


def get_current_claims(
    authorization: str | None = Header(default=None),
    codec: SessionCodec = Depends(get_codec),
) -> SessionClaims:
    if not authorization:
        raise Unauthorized("Missing token")
    parts = authorization.split(" ")
    if len(parts) != 2:
        raise Unauthorized("Malformed token")
    claims = codec.validate(parts[1])
    if claims is None:
        raise Unauthorized("Invalid or expired token")
    return claims


def get_admin_claims(claims: SessionClaims = Depends(get_current_claims)) -> SessionClaims:
    if not claims.is_admin:
        raise Forbidden("Administrators only")
    return claims


@app.post("/api/login", response_model=LoginOut)
def api_login(
    payload: LoginPayload | None = None,
    store: StateStore = Depends(get_store),
    codec: SessionCodec = Depends(get_codec),
) -> LoginOut:
    payload = payload or LoginPayload()
    return workflow.login(store, codec, payload.username, payload.password)


@app.get("/api/me", response_model=PublicUser)
def api_me(
    claims: SessionClaims = Depends(get_current_claims),
    store: StateStore = Depends(get_store),
) -> PublicUser:
    return workflow.get_profile(store, claims)


@app.get("/api/turns")
def api_list_turns(
    assigned_to: str | None = Query(default=None, alias="assignedTo"),
    _: SessionClaims = Depends(get_current_claims),
    store: StateStore = Depends(get_store),
) -> list[dict]:
    return workflow.list_turns(store, assigned_to)


@app.post("/api/turns")
def api_create_turn(
    payload: TurnPayload,
    _: SessionClaims = Depends(get_admin_claims),
    store: StateStore = Depends(get_store),
) -> dict:
    return workflow.create_turn(store, payload)


@app.put("/api/turns/{turn_id}")
def api_update_turn(
    turn_id: int,
    payload: TurnPayload,
    _: SessionClaims = Depends(get_admin_claims),
    store: StateStore = Depends(get_store),
) -> dict:
    return workflow.update_turn(store, turn_id, payload)


@app.delete("/api/turns/{turn_id}")
def api_delete_turn(
    turn_id: int,
    _: SessionClaims = Depends(get_admin_claims),
    store: StateStore = Depends(get_store),
) -> dict[str, bool]:
    return workflow.delete_turn(store, turn_id)


@app.post("/api/turns/{turn_id}/confirm")
def api_confirm_turn(
    turn_id: int,
    claims: SessionClaims = Depends(get_current_claims),
    store: StateStore = Depends(get_store),
) -> dict:
    return workflow.confirm_attendance(store, claims, turn_id)


@app.post("/api/requests")
def api_submit_request(
    payload: RequestPayload,
    claims: SessionClaims = Depends(get_current_claims),
    store: StateStore = Depends(get_store),
) -> dict:
    return workflow.submit_request(store, claims, payload)


@app.get("/api/requests")
def api_list_requests(
    claims: SessionClaims = Depends(get_current_claims),
    store: StateStore = Depends(get_store),
) -> list[dict]:
    return workflow.list_requests(store, claims)


@app.post("/api/requests/{request_id}/decision")
def api_decide_request(
    request_id: int,
    payload: DecisionPayload | None = None,
    _: SessionClaims = Depends(get_admin_claims),
    store: StateStore = Depends(get_store),
) -> dict:
    return workflow.decide_request(store, request_id, payload or DecisionPayload())


@app.get("/api/users", response_model=list[PublicUser])
def api_list_users(
    _: SessionClaims = Depends(get_admin_claims),
    store: StateStore = Depends(get_store),
) -> list[PublicUser]:
    return workflow.list_users(store)


@app.get("/health")
def health() -> dict[str, bool | str]:
    return {"ok": True, "env": get_settings().environment}


@app.get("/{full_path:path}", include_in_schema=False)
def spa_fallback(request: Request, full_path: str):
    return templates.TemplateResponse(request, "index.html", {"request": request, "app_name": app.title})
