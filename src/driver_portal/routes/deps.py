from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from driver_portal.db.postgres import get_db
from driver_portal.errors import InvalidToken
from driver_portal.services.auth_service import AuthService
from driver_portal.services.context import AuthorizationContext
from driver_portal.utils.rate_limit import build_login_throttle

bearer = HTTPBearer(auto_error=False)

_login_throttle = None


def get_login_throttle():
    global _login_throttle
    if _login_throttle is None:
        _login_throttle = build_login_throttle()
    return _login_throttle


def get_auth_service(db: Session = Depends(get_db), throttle=Depends(get_login_throttle)) -> AuthService:
    return AuthService(db, throttle=throttle)


def get_bearer_token(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer)) -> str:
    if creds is None or not creds.credentials:
        raise InvalidToken("Missing access token")
    return creds.credentials


def get_driver_context(
    token: str = Depends(get_bearer_token),
    auth: AuthService = Depends(get_auth_service),
):
    """
    Re-validates the bearer token for this request and binds the driver
    into a fresh context, cleared when the request ends.
    """
    context = AuthorizationContext().bind(auth.resolve_bearer(token))
    try:
        yield context
    finally:
        context.clear()
