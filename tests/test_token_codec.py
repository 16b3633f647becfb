import datetime as dt
import uuid

import pytest
from jose import jwt

from sessiongate.services.results import Failure, FailureKind, Ok
from sessiongate.services.token_codec import AccessTokenClaims, TokenCodec


def _forge(app_config, **overrides):
    now = int(dt.datetime.now(dt.timezone.utc).timestamp())
    payload = {
        "iss": app_config.JWT_ISSUER,
        "sub": str(uuid.uuid4()),
        "scope": "access",
        "ver": 0,
        "iat": now,
        "exp": now + 600,
    }
    payload.update(overrides)
    payload = {k: v for k, v in payload.items() if v is not None}
    return jwt.encode(payload, app_config.JWT_SECRET, algorithm=app_config.JWT_ALG)


class TestIssueAndVerify:
    def test_round_trip_returns_fixed_claims(self, codec, clock, app_config):
        account_id = uuid.uuid4()
        token = codec.issue(account_id, 3)

        result = codec.verify(token)

        assert isinstance(result, Ok)
        claims = result.value
        assert isinstance(claims, AccessTokenClaims)
        assert claims.subject == account_id
        assert claims.version == 3
        assert claims.issuer == app_config.JWT_ISSUER
        assert claims.issued_at == clock.now
        assert claims.expires_at == clock.now + app_config.access_ttl

    def test_issue_rejects_negative_version(self, codec):
        with pytest.raises(ValueError):
            codec.issue(uuid.uuid4(), -1)

    def test_issue_rejects_bool_version(self, codec):
        with pytest.raises(ValueError):
            codec.issue(uuid.uuid4(), True)


class TestExpiry:
    def test_valid_inside_clock_skew(self, codec, clock, app_config):
        token = codec.issue(uuid.uuid4(), 0)
        clock.advance(minutes=app_config.ACCESS_TTL_MIN, seconds=app_config.CLOCK_SKEW_SEC - 1)

        assert isinstance(codec.verify(token), Ok)

    def test_expired_past_clock_skew(self, codec, clock, app_config):
        token = codec.issue(uuid.uuid4(), 0)
        clock.advance(minutes=app_config.ACCESS_TTL_MIN, seconds=app_config.CLOCK_SKEW_SEC + 1)

        result = codec.verify(token)

        assert result == Failure(FailureKind.INVALID_TOKEN, "expired")

    def test_issued_in_the_future_is_rejected(self, codec, clock):
        token = codec.issue(uuid.uuid4(), 0)
        clock.advance(minutes=-10)

        result = codec.verify(token)

        assert isinstance(result, Failure)
        assert result.kind is FailureKind.INVALID_TOKEN


class TestRejections:
    @pytest.mark.parametrize("token", ["", "not-a-jwt", "a.b.c"])
    def test_structural_garbage(self, codec, token):
        result = codec.verify(token)
        assert isinstance(result, Failure)
        assert result.kind is FailureKind.INVALID_TOKEN

    def test_wrong_signature(self, codec, app_config):
        token = codec.issue(uuid.uuid4(), 0)
        other = TokenCodec(
            secret="another-secret-that-is-long-enough-0123456789",
            algorithm=app_config.JWT_ALG,
            issuer=app_config.JWT_ISSUER,
            ttl=app_config.access_ttl,
        )

        assert isinstance(other.verify(token), Failure)

    def test_wrong_issuer(self, codec, app_config):
        token = _forge(app_config, iss="someone-else")
        assert codec.verify(token).kind is FailureKind.INVALID_TOKEN

    def test_missing_version_is_not_version_zero(self, codec, app_config):
        token = _forge(app_config, ver=None)
        assert codec.verify(token).kind is FailureKind.INVALID_TOKEN

    def test_negative_version(self, codec, app_config):
        token = _forge(app_config, ver=-1)
        assert codec.verify(token).kind is FailureKind.INVALID_TOKEN

    def test_non_integer_version(self, codec, app_config):
        token = _forge(app_config, ver="2")
        assert codec.verify(token).kind is FailureKind.INVALID_TOKEN

    def test_non_uuid_subject(self, codec, app_config):
        token = _forge(app_config, sub="42")
        assert codec.verify(token).kind is FailureKind.INVALID_TOKEN

    def test_wrong_scope(self, codec, app_config):
        token = _forge(app_config, scope="refresh")
        assert codec.verify(token).kind is FailureKind.INVALID_TOKEN

    def test_missing_expiry(self, codec, app_config):
        token = _forge(app_config, exp=None)
        assert codec.verify(token).kind is FailureKind.INVALID_TOKEN

    def test_unsigned_token(self, codec, app_config):
        header_and_payload = _forge(app_config).rsplit(".", 1)[0]
        assert codec.verify(header_and_payload + ".").kind is FailureKind.INVALID_TOKEN
