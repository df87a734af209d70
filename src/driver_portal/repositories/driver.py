from datetime import datetime, timezone
from typing import Optional
from sqlalchemy.orm import Session

from driver_portal.repositories.base import BaseRepository
from driver_portal.models.sql_models import Driver


class DriverRepository(BaseRepository[Driver]):
    """Credential store: driver lookups by login, PIN and access token."""

    def __init__(self, db: Session):
        super().__init__(Driver, db)

    def find_by_normalized_login(self, login_key: str) -> Optional[Driver]:
        """
        First driver whose normalized login matches.
        Ordered so that duplicates (a broken uniqueness invariant) still resolve the same way.
        """
        return self.db.query(Driver).filter(
            Driver.license_normalized == login_key
        ).order_by(Driver.created_at.asc(), Driver.id.asc()).first()

    def find_by_token(self, token: str) -> Optional[Driver]:
        """Exact, case-sensitive match on the direct access token."""
        return self.db.query(Driver).filter(
            Driver.auth_token == token
        ).order_by(Driver.created_at.asc(), Driver.id.asc()).first()

    def find_by_pin(self, pin: str) -> Optional[Driver]:
        return self.db.query(Driver).filter(Driver.pin == pin).first()

    def touch_last_activity(self, driver_id: str) -> None:
        self.db.query(Driver).filter(Driver.id == driver_id).update(
            {"last_activity_at": datetime.now(timezone.utc)},
            synchronize_session=False
        )
        self.db.commit()

    def set_token(self, driver_id: str, token: Optional[str]) -> int:
        updated = self.db.query(Driver).filter(Driver.id == driver_id).update(
            {"auth_token": token},
            synchronize_session=False
        )
        self.db.commit()
        return updated
