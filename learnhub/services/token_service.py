"""JWT access token validation (ES256).

Tokens are issued by the identity directory.  An ephemeral key pair is
generated on import so dev and test can mint tokens with
`create_access_token`.  When JWT_PUBLIC_KEY_FILE is set, verification
uses that PEM public key instead and locally minted tokens are rejected.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from learnhub.core.config import SETTINGS


def _load_public_key(path: str) -> ec.EllipticCurvePublicKey:
    with open(path, "rb") as f:
        key = serialization.load_pem_public_key(f.read())
    if not isinstance(key, ec.EllipticCurvePublicKey):
        raise ValueError(
            f"JWT_PUBLIC_KEY_FILE must hold an EC public key (got {type(key).__name__})"
        )
    return key


_private_key = ec.generate_private_key(ec.SECP256R1())
_public_key = (
    _load_public_key(SETTINGS.jwt_public_key_file)
    if SETTINGS.jwt_public_key_file
    else _private_key.public_key()
)

ALGORITHM = "ES256"
ISSUER = "learnhub-identity"
AUDIENCE = "learnhub-core"
ACCESS_TOKEN_TTL_MIN = 15


def create_access_token(
    *,
    sub: str,
    roles: list[str] | None = None,
    ttl_minutes: int = ACCESS_TOKEN_TTL_MIN,
) -> str:
    """Build and sign an access token with sub, iss, aud, exp, iat, jti, roles."""
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ttl_minutes),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "roles": roles or ["student"],
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    The algorithm is pinned to ES256; exp, iss and aud are checked by PyJWT.
    Raises jwt.ExpiredSignatureError, jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat", "jti"]},
    )
