"""
Authentication for the generated API group.

Callers authenticate with a JWT sent either as ``Authorization: Bearer
<token>`` or in a cookie (browser sessions). Token issuance is handled
elsewhere; this module only verifies tokens and turns claims into a
Principal.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

import jwt
from fastapi import HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

# Security: allowed algorithms whitelist ("none" is never accepted)
ALLOWED_ALGORITHMS = frozenset({"HS256", "HS384", "HS512", "RS256", "RS384", "RS512"})
BLOCKED_ALGORITHMS = frozenset({"none", "None", "NONE", "nOnE"})

# Maximum token length accepted before decoding
MAX_TOKEN_LENGTH = 16 * 1024


# =============================================================================
# Principal
# =============================================================================


class Principal(BaseModel):
    """The caller of the current request."""

    model_config = ConfigDict(frozen=True)

    subject: str | None = None
    is_authenticated: bool = False
    roles: tuple[str, ...] = ()
    permissions: tuple[str, ...] = ()
    claims: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def anonymous(cls) -> Principal:
        return cls()

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> Principal:
        roles = claims.get("roles") or claims.get("role") or []
        permissions = claims.get("permissions") or claims.get("permission") or []
        if isinstance(roles, str):
            roles = [roles]
        if isinstance(permissions, str):
            permissions = [permissions]
        return cls(
            subject=str(claims["sub"]) if claims.get("sub") is not None else None,
            is_authenticated=True,
            roles=tuple(roles),
            permissions=tuple(permissions),
            claims=claims,
        )


# =============================================================================
# Token verification
# =============================================================================


class TokenError(Exception):
    """A bearer or cookie token failed verification."""

    def __init__(self, message: str, code: str = "invalid_token"):
        self.code = code
        super().__init__(message)


@dataclass
class TokenVerifierConfig:
    """
    Token verification settings.

    Attributes:
        secret_key: HMAC secret, or PEM public key for RS* algorithms
        algorithm: Expected signing algorithm
        issuer: Required issuer claim (optional)
        audience: Required audience claim (optional)
        leeway_seconds: Clock skew tolerance
    """

    secret_key: str
    algorithm: str = "HS256"
    issuer: str | None = None
    audience: str | None = None
    leeway_seconds: int = 120
    required_claims: list[str] = field(default_factory=lambda: ["sub", "exp"])


class TokenVerifier:
    """Verifies JWTs with PyJWT and returns their claims."""

    def __init__(self, config: TokenVerifierConfig):
        if config.algorithm in BLOCKED_ALGORITHMS:
            raise ValueError(f"Algorithm '{config.algorithm}' is blocked for security reasons")
        if config.algorithm not in ALLOWED_ALGORITHMS:
            raise ValueError(
                f"Algorithm '{config.algorithm}' is not allowed. "
                f"Allowed: {', '.join(sorted(ALLOWED_ALGORITHMS))}"
            )
        if not config.secret_key:
            raise ValueError("A verification key is required")
        self.config = config

    def verify(self, token: str) -> dict[str, Any]:
        """Decode and verify *token*.

        Raises:
            TokenError: the token is malformed, expired or has a bad signature.
        """
        if len(token) > MAX_TOKEN_LENGTH:
            raise TokenError("Token exceeds maximum length", code="token_too_large")

        try:
            header_alg = jwt.get_unverified_header(token).get("alg", "")
        except jwt.exceptions.DecodeError:
            raise TokenError("Malformed token header")
        if header_alg != self.config.algorithm:
            raise TokenError(f"Algorithm '{header_alg}' is not allowed", code="invalid_algorithm")

        try:
            return jwt.decode(
                token,
                self.config.secret_key,
                algorithms=[self.config.algorithm],
                issuer=self.config.issuer,
                audience=self.config.audience,
                leeway=timedelta(seconds=self.config.leeway_seconds),
                options={"require": list(self.config.required_claims)},
            )
        except jwt.ExpiredSignatureError:
            raise TokenError("Token has expired", code="token_expired")
        except jwt.InvalidTokenError as e:
            raise TokenError(f"Invalid token: {e}")


# =============================================================================
# FastAPI dependencies
# =============================================================================


def extract_token(request: Request, cookie_name: str) -> str | None:
    """Bearer token from the Authorization header, else the session cookie."""
    header = request.headers.get("Authorization")
    if header:
        scheme, _, credentials = header.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
    return request.cookies.get(cookie_name) or None


def create_auth_dependency(
    verifier: TokenVerifier | None,
    cookie_name: str = "access_token",
    required: bool = True,
) -> Callable[[Request], Awaitable[Principal]]:
    """
    Create the FastAPI dependency applied to the whole API group.

    Args:
        verifier: Token verifier; None means no token can be verified
        cookie_name: Cookie carrying the token for browser callers
        required: Reject unauthenticated callers with 401

    Returns:
        Dependency function storing the Principal on ``request.state.principal``
    """

    async def authenticate(request: Request) -> Principal:
        principal = Principal.anonymous()
        token = extract_token(request, cookie_name) if verifier is not None else None

        if token is not None:
            assert verifier is not None
            try:
                principal = Principal.from_claims(verifier.verify(token))
            except TokenError as e:
                logger.info("Rejected token (%s): %s", e.code, e)
                if required:
                    raise HTTPException(
                        status_code=401,
                        detail="Invalid authentication credentials",
                        headers={"WWW-Authenticate": f'Bearer error="{e.code}"'},
                    )

        if required and not principal.is_authenticated:
            raise HTTPException(
                status_code=401,
                detail="Not authenticated",
                headers={"WWW-Authenticate": "Bearer"},
            )

        request.state.principal = principal
        return principal

    return authenticate
