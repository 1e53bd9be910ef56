from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
import jwt
import uuid
import logging

from src.echoes.config import settings

# Tokens come from the external identity provider
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token", auto_error=False)

logger = logging.getLogger(__name__)


def decode_user_id(token: str) -> uuid.UUID:
    """
    Verify a bearer token and return the user id held in its "sub" claim.
    Raises jwt.PyJWTError or ValueError on anything unusable.
    """
    options = {"require": ["sub", "exp"]}
    if settings.JWT_AUDIENCE:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            options=options,
        )
    else:
        options["verify_aud"] = False
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM], options=options)

    return uuid.UUID(str(payload["sub"]))


async def get_current_user_id(token: str | None = Depends(oauth2_scheme)) -> uuid.UUID:
    """
    Validates the JWT and returns the caller's user id. Raises 401.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if not token:
        raise credentials_exception

    try:
        return decode_user_id(token)
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except (jwt.PyJWTError, ValueError):
        # Malformed tokens, bad signatures, non-UUID subjects, etc.
        raise credentials_exception
