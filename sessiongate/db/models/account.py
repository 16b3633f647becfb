import uuid

import sqlalchemy as sa

from sessiongate.db.base import Base
from sessiongate.db.types import UTCDateTime
from sessiongate.utils.clock import utc_now

DEFAULT_ROLES = ["ROLE_USER"]


class Account(Base):
    __tablename__ = "accounts"

    id = sa.Column(sa.Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    username = sa.Column(sa.String(50), nullable=False, unique=True, index=True)
    email = sa.Column(sa.String(255), nullable=False, unique=True, index=True)
    hashed_password = sa.Column(sa.String(128), nullable=False)

    roles = sa.Column(sa.JSON, nullable=False, default=lambda: list(DEFAULT_ROLES))
    is_active = sa.Column(sa.Boolean, nullable=False, default=True, server_default=sa.true())
    # Bumped on logout, password change and withdrawal; access tokens must match it exactly.
    token_version = sa.Column(sa.Integer, nullable=False, default=0, server_default=sa.text("0"))
    withdrawn_at = sa.Column(UTCDateTime, nullable=True)

    created_at = sa.Column(UTCDateTime, default=utc_now, nullable=False)
    updated_at = sa.Column(UTCDateTime, default=utc_now, onupdate=utc_now, nullable=False)

    def has_role(self, role: str) -> bool:
        return role in (self.roles or [])
