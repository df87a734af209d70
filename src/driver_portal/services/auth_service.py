"""
Auth Service - Driver authentication for the driver portal.
Used by: Driver portal login screen and direct access links.

Authentication Flow:
- Credential login: Driver ID (license) + PIN, opens a server-side session token
- Direct access: opaque token embedded in a link sent by the dispatcher
- Every request re-validates its bearer token here (resolve_bearer)
"""

import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from driver_portal.config import settings
from driver_portal.errors import InvalidCredentials, InvalidToken, LoginThrottled, ValidationError
from driver_portal.models.sql_models import Driver, DriverSession
from driver_portal.repositories.driver import DriverRepository
from driver_portal.repositories.session import SessionRepository
from driver_portal.services.context import ResolvedDriver
from driver_portal.utils.normalize import normalize_login, normalize_pin
from driver_portal.utils.rate_limit import LoginThrottle

logger = logging.getLogger(__name__)


class AuthService:
    """Service for driver authentication operations."""

    def __init__(
        self,
        db: Session,
        allow_offline: Optional[bool] = None,
        throttle: Optional[LoginThrottle] = None
    ):
        self.db = db
        self.driver_repo = DriverRepository(db)
        self.session_repo = SessionRepository(db)
        self.allow_offline = settings.allow_offline_drivers if allow_offline is None else allow_offline
        self.throttle = throttle

    # ==================== CREDENTIALS ====================

    def authenticate(self, login_id: str, pin: str) -> ResolvedDriver:
        """
        Authenticates a driver by Driver ID and PIN.
        Unknown id and wrong PIN fail the same way.
        """
        login_key = normalize_login(login_id)
        pin_value = normalize_pin(pin)

        if not login_key or not pin_value:
            raise ValidationError("Please enter both Driver ID and PIN")

        if self.throttle is not None and not self.throttle.allow(login_key):
            logger.warning("Driver login throttled: login=%s", login_key)
            raise LoginThrottled()

        driver = self.driver_repo.find_by_normalized_login(login_key)
        if not driver or driver.pin.strip() != pin_value or not self._status_allowed(driver):
            logger.info("Driver login failed: login=%s", login_key)
            raise InvalidCredentials()

        if self.throttle is not None:
            self.throttle.reset(login_key)

        resolved = ResolvedDriver(driver_id=driver.id, driver_name=driver.name, login=driver.license)
        self.record_activity(driver.id)
        logger.info("Driver login successful: driver_id=%s", driver.id)
        return resolved

    def open_session(self, driver: ResolvedDriver) -> DriverSession:
        """Issues a session token for a credential login."""
        session = self.session_repo.open(driver.driver_id, timedelta(hours=settings.token_expiry_hours))
        logger.info("Driver session opened: driver_id=%s", driver.driver_id)
        return session

    # ==================== TOKENS ====================

    def authenticate_token(self, token: str) -> ResolvedDriver:
        """Direct access: exact match on the driver's access token."""
        if not token or not token.strip():
            raise ValidationError("Access token is required")

        driver = self.driver_repo.find_by_token(token)
        if not driver or not self._status_allowed(driver):
            logger.info("Direct access failed: unknown or disallowed token")
            raise InvalidToken()

        resolved = ResolvedDriver(
            driver_id=driver.id,
            driver_name=driver.name,
            login=driver.license,
            token=token,
        )
        self.record_activity(driver.id)
        logger.info("Direct access successful: driver_id=%s", driver.id)
        return resolved

    def resolve_bearer(self, token: Optional[str]) -> ResolvedDriver:
        """
        Re-validates a bearer value for one request.
        Accepts an active session token or a driver's direct access token.
        """
        if not token:
            raise InvalidToken("Missing access token")

        session = self.session_repo.get_active(token)
        if session is not None:
            driver = session.driver
            if driver is None or not self._status_allowed(driver):
                raise InvalidToken()
            return ResolvedDriver(driver_id=driver.id, driver_name=driver.name, login=driver.license, token=token)

        driver = self.driver_repo.find_by_token(token)
        if driver is None or not self._status_allowed(driver):
            raise InvalidToken()
        return ResolvedDriver(driver_id=driver.id, driver_name=driver.name, login=driver.license, token=token)

    def logout(self, token: str) -> bool:
        """Revokes a session token. Direct access tokens stay valid until rotated."""
        revoked = self.session_repo.revoke(token)
        logger.info("Driver logout: session_revoked=%s", bool(revoked))
        return bool(revoked)

    # ==================== SIDE EFFECTS ====================

    def record_activity(self, driver_id: str) -> None:
        """Best-effort last activity stamp. Never fails the caller."""
        try:
            self.driver_repo.touch_last_activity(driver_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning("Could not record last activity for driver_id=%s: %s", driver_id, e)

    def _status_allowed(self, driver: Driver) -> bool:
        return self.allow_offline or driver.status != "offline"
