from collections.abc import Generator
from typing import Annotated, Optional

from fastapi import APIRouter, Cookie, Depends, Request, Response
from pydantic import ValidationError as SchemaError

from config import Config
from db import SessionDep
from errors import ValidationError
from identity import IdentityGateway
from models import User
from schemas import AuthResponse, IdentityRead, LoginData, RegisterData, UserRead
from session_context import SessionContext
from store import DataStore

router = APIRouter(tags=["auth"])

SESSION_COOKIE = "session"


def get_session_context(
    request: Request,
    session: SessionDep,
    session_token: Optional[str] = Cookie(default=None, alias=SESSION_COOKIE),
) -> Generator[SessionContext, None, None]:
    """
    Builds the session context for this client from the 'session' cookie.
    The context stays subscribed to auth changes until the request ends.
    """
    gateway = IdentityGateway(session, request.app.state.auth_events)
    context = SessionContext(gateway, DataStore(session))
    context.resolve(session_token)
    try:
        yield context
    finally:
        context.close()


SessionContextDep = Annotated[SessionContext, Depends(get_session_context)]


def require_account(context: SessionContextDep) -> User:
    return context.require_account()


AccountDep = Annotated[User, Depends(require_account)]


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE,
        value=token,
        httponly=True,
        secure=False,
        samesite="lax",
        max_age=Config.SESSION_MAX_AGE,
    )


async def read_payload(request: Request) -> dict:
    """
    Accepts either JSON (API/Swagger) or form-data (from an HTML form).
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        data = await request.json()
        return data if isinstance(data, dict) else {}
    form = await request.form()
    return {key: value for key, value in form.items() if isinstance(value, str)}


def _parse(schema, data: dict):
    try:
        return schema(**data)
    except SchemaError as exc:
        fields = ", ".join(str(err["loc"][-1]) for err in exc.errors() if err.get("loc"))
        raise ValidationError(f"Invalid or missing fields: {fields}") from exc


def _auth_response(context: SessionContext) -> AuthResponse:
    return AuthResponse(
        identity=IdentityRead(**context.identity.model_dump()),
        profile=UserRead.model_validate(context.account) if context.account else None,
        notices=context.notices,
    )


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(request: Request, response: Response, context: SessionContextDep):
    """
    Register a new account and sign it in.
    """
    user_in = _parse(RegisterData, await read_payload(request))
    context.register(
        user_in.email,
        user_in.password,
        user_in.model_dump(exclude={"email", "password"}),
    )
    set_session_cookie(response, context.token)
    return _auth_response(context)


@router.post("/login", response_model=AuthResponse)
async def login(request: Request, response: Response, context: SessionContextDep):
    """
    Log in with email + password and set a signed session cookie.
    """
    payload = _parse(LoginData, await read_payload(request))
    context.login(payload.email, payload.password)
    set_session_cookie(response, context.token)
    return _auth_response(context)


@router.post("/logout")
def logout(response: Response, context: SessionContextDep):
    """
    Clear the session cookie. Never fails, even with no live session.
    """
    context.logout()
    response.delete_cookie(SESSION_COOKIE)
    return {"notices": context.notices}


@router.post("/refresh", response_model=AuthResponse)
def refresh(response: Response, context: SessionContextDep):
    token = context.refresh()
    set_session_cookie(response, token)
    return _auth_response(context)


@router.get("/me")
def read_me(context: SessionContextDep, account: AccountDep):
    """
    Get info about the currently logged-in account and its role flags.
    """
    return {
        "identity": IdentityRead(**context.identity.model_dump()),
        "profile": UserRead.model_validate(account),
        "role": context.role,
        "is_donor": context.is_donor,
        "is_ngo": context.is_ngo,
        "is_beneficiary": context.is_beneficiary,
    }
