"""
Tests for bearer token signature verification
"""

import time
from types import SimpleNamespace

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from marketplace.config import IdentityPool
from marketplace.utils.exceptions import UnauthorizedError
from marketplace.utils.security import TokenVerifier

GENERAL_ISSUER = "https://cognito-idp.us-east-1.amazonaws.com/us-east-1_general"
ADMIN_ISSUER = "https://cognito-idp.us-east-1.amazonaws.com/us-east-1_admin"


def make_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


class FakeJWKClient:
    """Publishes a single key id, like a pool's JWKS endpoint"""

    def __init__(self, kid, private_key):
        self.kid = kid
        self.public_key = private_key.public_key()

    def get_signing_key_from_jwt(self, token):
        header = jwt.get_unverified_header(token)
        if header.get("kid") != self.kid:
            raise jwt.PyJWKClientError(f'Unable to find a signing key that matches: "{header.get("kid")}"')
        return SimpleNamespace(key=self.public_key)


@pytest.fixture(scope="module")
def general_key():
    return make_key()


@pytest.fixture(scope="module")
def admin_key():
    return make_key()


@pytest.fixture
def verifier(settings, general_key, admin_key):
    return TokenVerifier(settings, jwk_clients={
        IdentityPool.ADMIN: FakeJWKClient("admin-kid", admin_key),
        IdentityPool.GENERAL: FakeJWKClient("general-kid", general_key),
    })


def make_token(private_key, kid, **claims):
    payload = {
        "sub": "sub-123",
        "iss": GENERAL_ISSUER,
        "token_use": "access",
        "client_id": "general-client",
        "exp": int(time.time()) + 3600,
        "iat": int(time.time()),
    }
    payload.update(claims)
    return jwt.encode(payload, private_key, algorithm="RS256", headers={"kid": kid})


class TestTokenVerifier:
    """Test TokenVerifier.verify"""

    @pytest.mark.asyncio
    async def test_general_pool_token(self, verifier, general_key):
        pool, claims = await verifier.verify(make_token(general_key, "general-kid"))

        assert pool == IdentityPool.GENERAL
        assert claims["sub"] == "sub-123"

    @pytest.mark.asyncio
    async def test_admin_pool_token(self, verifier, admin_key):
        token = make_token(admin_key, "admin-kid", iss=ADMIN_ISSUER, client_id="admin-client")

        pool, _ = await verifier.verify(token)

        assert pool == IdentityPool.ADMIN

    @pytest.mark.asyncio
    async def test_forged_user_type_claim_does_not_pick_pool(self, verifier, general_key):
        """A general-pool token claiming admin type still resolves to the general pool"""
        token = make_token(general_key, "general-kid", **{"custom:user_type": "admin"})

        pool, _ = await verifier.verify(token)

        assert pool == IdentityPool.GENERAL

    @pytest.mark.asyncio
    async def test_token_signed_with_unknown_key(self, verifier):
        attacker_key = make_key()

        with pytest.raises(UnauthorizedError):
            await verifier.verify(make_token(attacker_key, "general-kid"))

    @pytest.mark.asyncio
    async def test_unknown_key_id(self, verifier, general_key):
        with pytest.raises(UnauthorizedError):
            await verifier.verify(make_token(general_key, "other-kid"))

    @pytest.mark.asyncio
    async def test_expired_token(self, verifier, general_key):
        token = make_token(general_key, "general-kid", exp=int(time.time()) - 60)

        with pytest.raises(UnauthorizedError):
            await verifier.verify(token)

    @pytest.mark.asyncio
    async def test_wrong_issuer(self, verifier, general_key):
        with pytest.raises(UnauthorizedError):
            await verifier.verify(make_token(general_key, "general-kid", iss=ADMIN_ISSUER))

    @pytest.mark.asyncio
    async def test_id_token_rejected(self, verifier, general_key):
        with pytest.raises(UnauthorizedError) as exc_info:
            await verifier.verify(make_token(general_key, "general-kid", token_use="id"))

        assert exc_info.value.message == "Access token required"

    @pytest.mark.asyncio
    async def test_other_client_rejected(self, verifier, general_key):
        with pytest.raises(UnauthorizedError):
            await verifier.verify(make_token(general_key, "general-kid", client_id="someone-else"))

    @pytest.mark.asyncio
    async def test_malformed_token(self, verifier):
        with pytest.raises(UnauthorizedError):
            await verifier.verify("not-a-jwt")

    def test_jwks_clients_built_for_configured_pools(self, settings):
        verifier = TokenVerifier(settings)

        assert set(verifier.jwk_clients) == {IdentityPool.ADMIN, IdentityPool.GENERAL}
        assert verifier.issuers[IdentityPool.GENERAL] == GENERAL_ISSUER
