from datetime import datetime, timezone, timedelta
from typing import Optional
from uuid import uuid4
from sqlalchemy.orm import Session

from driver_portal.repositories.base import BaseRepository
from driver_portal.models.sql_models import DriverSession


class SessionRepository(BaseRepository[DriverSession]):
    """Server-side sessions opened by credential logins."""

    def __init__(self, db: Session):
        super().__init__(DriverSession, db)

    def open(self, driver_id: str, ttl: timedelta) -> DriverSession:
        now = datetime.now(timezone.utc)
        return self.create({
            "token": str(uuid4()),
            "driver_id": driver_id,
            "created_at": now,
            "expires_at": now + ttl,
        })

    def get_active(self, token: str) -> Optional[DriverSession]:
        """Unrevoked, unexpired session for this exact token."""
        return self.db.query(DriverSession).filter(
            DriverSession.token == token,
            DriverSession.revoked_at.is_(None),
            DriverSession.expires_at > datetime.now(timezone.utc),
        ).first()

    def revoke(self, token: str) -> int:
        revoked = self.db.query(DriverSession).filter(
            DriverSession.token == token,
            DriverSession.revoked_at.is_(None),
        ).update({"revoked_at": datetime.now(timezone.utc)}, synchronize_session=False)
        self.db.commit()
        return revoked

    def revoke_all_for_driver(self, driver_id: str) -> int:
        revoked = self.db.query(DriverSession).filter(
            DriverSession.driver_id == driver_id,
            DriverSession.revoked_at.is_(None),
        ).update({"revoked_at": datetime.now(timezone.utc)}, synchronize_session=False)
        self.db.commit()
        return revoked
