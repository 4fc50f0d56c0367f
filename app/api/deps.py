"""Shared API dependencies."""

from fastapi import Cookie, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from app.config import get_settings
from app.services.ebay import EbayServices

settings = get_settings()

# Tokens are issued by the hosting application's own login
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


def _decode_token(token: str) -> str:
    """Decode and validate JWT token, return the account id."""
    payload = jwt.decode(
        token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
    )
    account_id: str | None = payload.get("sub")
    if account_id is None:
        raise JWTError("No subject in token")
    return account_id


async def get_current_user(token: str = Depends(oauth2_scheme)) -> str:
    """Get current authenticated account from JWT token (API routes)."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not token:
        raise credentials_exception

    try:
        return _decode_token(token)
    except JWTError:
        raise credentials_exception


async def get_current_user_optional(
    token: str | None = Depends(oauth2_scheme),
    access_token: str | None = Cookie(default=None),
) -> str | None:
    """Get current account from JWT token or cookie, or None."""
    # Try Bearer token first (for API requests)
    if token:
        try:
            return _decode_token(token)
        except JWTError:
            pass

    # Fall back to cookie (for browser page requests)
    if access_token:
        try:
            return _decode_token(access_token)
        except JWTError:
            pass

    return None


def get_ebay_services(request: Request) -> EbayServices:
    """eBay services built at startup."""
    return request.app.state.ebay
