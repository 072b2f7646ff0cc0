"""
Token and fingerprint tests.

Verifies:
- Fingerprints are deterministic and sensitive to every context field
- Access and refresh tokens cannot be swapped
- Expired and tampered tokens are rejected with distinct errors
"""

from datetime import timedelta

import jwt
import pytest

from backoffice.services.fingerprint import RequestContext, build_fingerprint
from backoffice.services.token_service import (
    ACCESS,
    REFRESH,
    TokenExpired,
    TokenInvalid,
    TokenService,
)


@pytest.fixture
def tokens():
    return TokenService("access-secret", "refresh-secret")


class TestFingerprint:

    def test_same_context_same_hash(self):
        a = build_fingerprint("Mozilla/5.0", "10.0.0.1", "Pixel 7")
        b = build_fingerprint("Mozilla/5.0", "10.0.0.1", "Pixel 7")
        assert a == b
        assert len(a) == 64

    @pytest.mark.parametrize(
        "other",
        [
            ("Mozilla/6.0", "10.0.0.1", "Pixel 7"),
            ("Mozilla/5.0", "10.0.0.2", "Pixel 7"),
            ("Mozilla/5.0", "10.0.0.1", "iPhone"),
        ],
    )
    def test_any_field_changes_hash(self, other):
        assert build_fingerprint("Mozilla/5.0", "10.0.0.1", "Pixel 7") != build_fingerprint(*other)

    def test_missing_fields_are_empty_strings(self):
        assert build_fingerprint() == build_fingerprint("", "", "")
        assert build_fingerprint(None, None, None) == build_fingerprint()

    def test_context_fingerprint_matches_builder(self):
        ctx = RequestContext(user_agent="ua", ip_address="1.2.3.4", device_name="dev")
        assert ctx.fingerprint() == build_fingerprint("ua", "1.2.3.4", "dev")

    def test_from_request(self, app):
        with app.test_request_context(
            "/",
            headers={"User-Agent": "ua/1", "Sec-CH-UA": '"Chromium";v="120"'},
            environ_base={"REMOTE_ADDR": "192.168.1.9"},
        ):
            from flask import request
            ctx = RequestContext.from_request(request)

        assert ctx.user_agent == "ua/1"
        assert ctx.ip_address == "192.168.1.9"
        assert ctx.device_name == '"Chromium";v="120"'


class TestTokenService:

    def test_secrets_must_differ(self):
        with pytest.raises(ValueError):
            TokenService("same", "same")

    def test_secrets_required(self):
        with pytest.raises(ValueError):
            TokenService("", "refresh")

    def test_access_token_claims(self, tokens):
        token = tokens.issue_access_token(42, "global:owner")
        claims = tokens.verify(token, ACCESS)
        assert claims["sub"] == "42"
        assert claims["role"] == "global:owner"
        assert claims["type"] == ACCESS
        assert claims["exp"] > claims["iat"]

    def test_refresh_token_has_no_role(self, tokens):
        claims = tokens.verify(tokens.issue_refresh_token(7), REFRESH)
        assert claims["sub"] == "7"
        assert "role" not in claims

    def test_tokens_are_unique(self, tokens):
        assert tokens.issue_refresh_token(1) != tokens.issue_refresh_token(1)

    def test_access_token_rejected_as_refresh(self, tokens):
        with pytest.raises(TokenInvalid):
            tokens.verify(tokens.issue_access_token(1, "global:member"), REFRESH)

    def test_refresh_token_rejected_as_access(self, tokens):
        with pytest.raises(TokenInvalid):
            tokens.verify(tokens.issue_refresh_token(1), ACCESS)

    def test_forged_type_claim_rejected(self, tokens):
        # Signed with the access key but claiming to be a refresh token
        forged = jwt.encode(
            {"sub": "1", "type": REFRESH, "exp": 9999999999},
            "access-secret",
            algorithm="HS256",
        )
        with pytest.raises(TokenInvalid):
            tokens.verify(forged, REFRESH)

    def test_expired_token(self):
        short = TokenService("a", "b", access_ttl=timedelta(seconds=-5))
        with pytest.raises(TokenExpired):
            short.verify(short.issue_access_token(1, "global:member"), ACCESS)

    def test_tampered_token(self, tokens):
        token = tokens.issue_access_token(1, "global:member")
        header, payload, signature = token.split(".")
        tampered = ".".join([header, payload, signature[::-1]])
        with pytest.raises(TokenInvalid):
            tokens.verify(tampered, ACCESS)

    @pytest.mark.parametrize("bad", ["", None, "not-a-jwt"])
    def test_garbage(self, tokens, bad):
        with pytest.raises(TokenInvalid):
            tokens.verify(bad, ACCESS)

    def test_from_config(self, app):
        service = TokenService.from_config(app.config)
        assert service.access_ttl == timedelta(minutes=15)
        assert service.refresh_ttl == timedelta(days=7)
