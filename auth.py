"""Optional bearer-token check for the HTTP surface.

When ``auth.enabled`` is off every request is treated as anonymous. When it
is on, the bearer token must be an HS256 JWT signed with ``auth.jwt_secret``
and carry the configured audience and issuer.
"""
from typing import Optional

import jwt
from fastapi import HTTPException, Request, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config.settings import Settings, get_settings

ANONYMOUS = {"sub": "anonymous"}

# Optional bearer token (won't raise error if missing)
security_optional = HTTPBearer(auto_error=False)


def verify_token(token: str, settings: Settings) -> dict:
    cfg = settings.auth
    options = {"verify_aud": cfg.audience is not None}
    return jwt.decode(
        token,
        cfg.jwt_secret,
        algorithms=["HS256"],
        audience=cfg.audience,
        issuer=cfg.issuer,
        options=options,
    )


async def get_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security_optional),
) -> dict:
    settings: Settings = getattr(request.app.state, "settings", None) or get_settings()
    if not settings.auth.enabled:
        request.state.identity = ANONYMOUS
        return ANONYMOUS

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        identity = verify_token(credentials.credentials, settings)
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Bearer token expired",
            headers={"WWW-Authenticate": 'Bearer error="invalid_token", error_description="The access token expired"'},
        )
    except jwt.PyJWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid bearer token",
            headers={"WWW-Authenticate": 'Bearer error="invalid_token"'},
        )
    request.state.identity = identity
    return identity
