import uuid

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sessiongate.db.models.account import Account
from sessiongate.logging import get_logger
from sessiongate.services.request_authenticator import Identity, Principal
from sessiongate.services.results import Failure, Ok
from sessiongate.services.session_service import SessionService, SessionTokens, get_session_service
from sessiongate.utils.clock import utc_now
from sessiongate.utils.security import generate_refresh_secret, hash_password, verify_password

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)

ADMIN_ROLE = "ROLE_ADMIN"

logger = get_logger(__name__)


def _normalize(value: str) -> str:
    return value.strip().lower()


class AccountService:
    @classmethod
    async def register(cls, db: AsyncSession, username: str, email: str, password: str) -> Account:
        username, email = _normalize(username), _normalize(email)
        existing = await db.scalar(
            select(Account).where((Account.username == username) | (Account.email == email))
        )
        if existing:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Username or email is already in use."
            )

        account = Account(
            username=username,
            email=email,
            hashed_password=hash_password(password),
        )

        db.add(account)
        await db.commit()
        return account

    @classmethod
    async def login(cls, db: AsyncSession, sessions: SessionService, username: str, password: str) -> SessionTokens:
        account = await db.scalar(select(Account).where(Account.username == _normalize(username)))
        if not account or not account.is_active or not verify_password(password, account.hashed_password):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid credentials."
            )

        match await sessions.issue_session(account.id):
            case Ok(value=tokens):
                return tokens
            case Failure():
                raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid credentials.")

    @classmethod
    async def change_password(
        cls,
        db: AsyncSession,
        sessions: SessionService,
        account_id: uuid.UUID,
        current_password: str,
        new_password: str,
    ) -> None:
        account = await db.scalar(select(Account).where(Account.id == account_id))
        if account is None or not account.is_active:
            raise HTTPException(status.HTTP_404_NOT_FOUND, "Account not found.")
        if not verify_password(current_password, account.hashed_password):
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "Current password does not match.")
        if verify_password(new_password, account.hashed_password):
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "New password must differ from the current one.")

        account.hashed_password = hash_password(new_password)
        await db.commit()
        logger.info("account.password_changed", account_id=str(account_id))

        await sessions.invalidate_all_sessions(account_id)

    @classmethod
    async def withdraw(cls, db: AsyncSession, sessions: SessionService, account_id: uuid.UUID, password: str) -> None:
        account = await db.scalar(
            select(Account).where(Account.id == account_id).with_for_update()
        )
        if account is None:
            raise HTTPException(status.HTTP_404_NOT_FOUND, "Account not found.")
        if not account.is_active:
            raise HTTPException(status.HTTP_409_CONFLICT, "Account is already withdrawn.")
        if account.has_role(ADMIN_ROLE):
            raise HTTPException(status.HTTP_403_FORBIDDEN, "Administrator accounts cannot be withdrawn.")
        if not verify_password(password, account.hashed_password):
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "Password does not match.")

        account.is_active = False
        account.withdrawn_at = utc_now()
        account.username = f"withdrawn_{account.id.hex}"
        account.email = f"withdrawn_{account.id.hex}@example.invalid"
        account.hashed_password = hash_password(generate_refresh_secret())
        await db.commit()
        logger.info("account.withdrawn", account_id=str(account_id))

        await sessions.invalidate_all_sessions(account_id)


async def get_current_identity(
    request: Request,
    token: str | None = Depends(oauth2_scheme),
    sessions: SessionService = Depends(get_session_service),
) -> Principal:
    principal = await sessions.authenticate(token)
    request.state.identity = principal
    return principal


async def require_identity(principal: Principal = Depends(get_current_identity)) -> Identity:
    if not principal.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal
