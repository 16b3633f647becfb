from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette import status

from sessiongate.db.session import get_db
from sessiongate.services.account_service import AccountService, get_current_identity, require_identity
from sessiongate.services.request_authenticator import Identity, Principal
from sessiongate.services.results import Failure, FailureKind, Ok
from sessiongate.services.session_service import SessionService, SessionTokens, get_session_service

router = APIRouter(prefix="/auth", tags=["auth"])

NO_STORE = {"Cache-Control": "no-store"}


class RegisterIn(BaseModel):
    username: str = Field(min_length=3, max_length=30)
    email: EmailStr
    password: str = Field(min_length=8)


class LoginIn(BaseModel):
    username: str
    password: str


class RefreshIn(BaseModel):
    refresh_token: Optional[str] = None


class TokenOut(BaseModel):
    token_type: str = "bearer"
    access_token: str
    expires_in: int
    refresh_token: str


class MessageOut(BaseModel):
    success: bool = True
    message: str


def _token_out(tokens: SessionTokens) -> TokenOut:
    return TokenOut(
        access_token=tokens.access_token,
        refresh_token=tokens.raw_refresh_secret,
        expires_in=tokens.expires_in,
    )


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status.HTTP_401_UNAUTHORIZED, detail, headers=NO_STORE)


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=MessageOut)
async def register(credentials: RegisterIn, db: AsyncSession = Depends(get_db)):
    await AccountService.register(db, credentials.username, str(credentials.email), credentials.password)
    return MessageOut(message="Account created.")


@router.post("/login", response_model=TokenOut, status_code=status.HTTP_200_OK)
async def login(
    credentials: LoginIn,
    response: Response,
    db: AsyncSession = Depends(get_db),
    sessions: SessionService = Depends(get_session_service),
):
    tokens = await AccountService.login(db, sessions, credentials.username, credentials.password)
    response.headers.update(NO_STORE)
    return _token_out(tokens)


@router.post("/refresh", response_model=TokenOut, status_code=status.HTTP_200_OK)
async def refresh(
    body: RefreshIn,
    request: Request,
    response: Response,
    sessions: SessionService = Depends(get_session_service),
):
    result = await sessions.refresh_session(
        body.refresh_token,
        client_ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )

    match result:
        case Ok(value=tokens):
            response.headers.update(NO_STORE)
            return _token_out(tokens)
        case Failure(kind=FailureKind.REUSE_DETECTED):
            raise _unauthorized("Security threat detected. Please log in again.")
        case Failure():
            raise _unauthorized("Refresh token invalid or expired.")


@router.post("/logout", response_model=MessageOut, status_code=status.HTTP_200_OK)
async def logout(
    body: RefreshIn,
    response: Response,
    principal: Principal = Depends(get_current_identity),
    sessions: SessionService = Depends(get_session_service),
):
    await sessions.end_session(body.refresh_token)

    # The caller's access token dies with the version bump.
    if principal.is_authenticated:
        await sessions.gate.bump(principal.account_id)

    response.headers.update(NO_STORE)
    return MessageOut(message="Logged out.")


@router.post("/logout-all", response_model=MessageOut, status_code=status.HTTP_200_OK)
async def logout_all(
    response: Response,
    identity: Identity = Depends(require_identity),
    sessions: SessionService = Depends(get_session_service),
):
    await sessions.invalidate_all_sessions(identity.account_id)
    response.headers.update(NO_STORE)
    return MessageOut(message="All sessions ended.")
