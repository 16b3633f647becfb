import enum
import uuid

import sqlalchemy as sa

from sessiongate.db.base import Base
from sessiongate.db.types import UTCDateTime


class RevokedReason(str, enum.Enum):
    ROTATED = "rotated"
    LOGOUT = "logout"


class RefreshToken(Base):
    __tablename__ = "refresh_tokens"
    __table_args__ = (
        sa.UniqueConstraint("token_hash", name="uk_refresh_token_hash"),
        sa.Index("idx_refresh_token_owner_revoked", "owner_id", "revoked"),
    )

    id = sa.Column(sa.Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = sa.Column(sa.Uuid(as_uuid=True), sa.ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False)
    # The record this one was rotated from; null for tokens minted at login.
    parent_id = sa.Column(sa.Uuid(as_uuid=True), nullable=True, index=True)
    # Owner's token_version when the session began; successors inherit it.
    account_version = sa.Column(sa.Integer, nullable=False)

    token_hash = sa.Column(sa.String(44), nullable=False)
    revoked = sa.Column(sa.Boolean, nullable=False, default=False, server_default=sa.false())
    revoked_reason = sa.Column(sa.String(16), nullable=True)

    expires_at = sa.Column(UTCDateTime, nullable=False, index=True)
    created_at = sa.Column(UTCDateTime, nullable=False)

    def __repr__(self) -> str:
        return f"<RefreshToken id={self.id} owner_id={self.owner_id} revoked={self.revoked}>"
