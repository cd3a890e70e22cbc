"""
Bearer token verification

Access tokens are checked against the JWKS of every configured user pool.
The pool that owns the signing key decides the tenant, so nothing from the
token payload is trusted before its signature is verified.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Tuple

import jwt
from jwt import PyJWKClient

from marketplace.config import IdentityPool, PoolConfig, Settings
from marketplace.utils.exceptions import UnauthorizedError

logger = logging.getLogger(__name__)

COGNITO_ISSUER = "https://cognito-idp.{region}.amazonaws.com/{pool_id}"


class TokenVerifier:
    """Verify Cognito access tokens for the admin and general pools"""

    def __init__(self, settings: Settings, jwk_clients: Optional[Dict[IdentityPool, Any]] = None):
        self.pools: Dict[IdentityPool, PoolConfig] = {
            pool: config
            for pool, config in settings.identity_pools().items()
            if config.pool_id
        }
        self.issuers: Dict[IdentityPool, str] = {
            pool: COGNITO_ISSUER.format(region=settings.aws_region, pool_id=config.pool_id)
            for pool, config in self.pools.items()
        }
        if jwk_clients is None:
            jwk_clients = {
                pool: PyJWKClient(f"{issuer}/.well-known/jwks.json")
                for pool, issuer in self.issuers.items()
            }
        self.jwk_clients = jwk_clients

    def _verify_sync(self, token: str) -> Tuple[IdentityPool, Dict[str, Any]]:
        for pool, jwk_client in self.jwk_clients.items():
            try:
                signing_key = jwk_client.get_signing_key_from_jwt(token)
            except jwt.PyJWKClientConnectionError as e:
                logger.warning(f"Could not fetch JWKS for {pool.value} pool: {e}")
                continue
            except jwt.PyJWKClientError:
                # Key id not published by this pool
                continue
            except jwt.DecodeError:
                raise UnauthorizedError("Invalid or expired token")

            try:
                claims = jwt.decode(
                    token,
                    signing_key.key,
                    algorithms=["RS256"],
                    issuer=self.issuers[pool],
                    options={"require": ["exp", "iss", "sub"]},
                )
            except jwt.InvalidTokenError as e:
                logger.info(f"Rejected token for {pool.value} pool: {e}")
                raise UnauthorizedError("Invalid or expired token")

            if claims.get("token_use") != "access":
                raise UnauthorizedError("Access token required")
            if claims.get("client_id") != self.pools[pool].client_id:
                raise UnauthorizedError("Token was issued for a different client")
            return pool, claims

        raise UnauthorizedError("Invalid or expired token")

    async def verify(self, token: str) -> Tuple[IdentityPool, Dict[str, Any]]:
        """
        Verify signature, issuer, expiry and client of an access token

        Args:
            token: Raw bearer token

        Returns:
            tuple: Owning pool and the verified claims

        Raises:
            UnauthorizedError: If no configured pool accepts the token
        """
        # JWKS fetches are blocking HTTP calls
        return await asyncio.to_thread(self._verify_sync, token)
