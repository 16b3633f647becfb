import uuid
from typing import List

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from sessiongate.db.session import get_db
from sessiongate.services.account_service import AccountService, require_identity
from sessiongate.services.request_authenticator import Identity
from sessiongate.services.session_service import SessionService, get_session_service

router = APIRouter(prefix="/accounts", tags=["accounts"])


class IdentityOut(BaseModel):
    id: uuid.UUID
    username: str
    roles: List[str]


class PasswordChangeIn(BaseModel):
    current_password: str
    new_password: str = Field(min_length=8)


class WithdrawalIn(BaseModel):
    password: str


@router.get("/me", response_model=IdentityOut)
async def me(identity: Identity = Depends(require_identity)):
    return IdentityOut(id=identity.account_id, username=identity.username, roles=sorted(identity.roles))


@router.patch("/me/password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(
    body: PasswordChangeIn,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(require_identity),
    sessions: SessionService = Depends(get_session_service),
):
    await AccountService.change_password(
        db, sessions, identity.account_id, body.current_password, body.new_password
    )


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
async def withdraw(
    body: WithdrawalIn,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(require_identity),
    sessions: SessionService = Depends(get_session_service),
):
    await AccountService.withdraw(db, sessions, identity.account_id, body.password)
