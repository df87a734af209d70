from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session

from driver_portal.repositories.base import BaseRepository
from driver_portal.models.sql_models import Project


class ProjectRepository(BaseRepository[Project]):
    """
    Project store. Every driver-facing method takes the driver id and
    filters on it; there is no unscoped read for drivers.
    """

    def __init__(self, db: Session):
        super().__init__(Project, db)

    def list_by_driver(self, driver_id: str) -> List[Project]:
        """Driver's projects ordered by scheduled date then time."""
        return self.db.query(Project).filter(
            Project.driver_id == driver_id
        ).order_by(Project.date.asc(), Project.time.asc()).all()

    def get_owned(self, project_id: str, driver_id: str) -> Optional[Project]:
        return self.db.query(Project).filter(
            Project.id == project_id,
            Project.driver_id == driver_id,
        ).first()

    def atomic_update(
        self,
        project_id: str,
        driver_id: str,
        fields: Dict[str, Any],
        guards: Optional[List[Any]] = None
    ) -> int:
        """
        Conditional UPDATE with the ownership predicate in the same statement.
        Returns the number of rows affected.
        """
        criteria = [Project.id == project_id, Project.driver_id == driver_id]
        if guards:
            criteria.extend(guards)

        updated = self.db.query(Project).filter(*criteria).update(
            fields, synchronize_session=False
        )
        self.db.commit()
        return updated

    def assign(self, project_id: str, driver_id: Optional[str]) -> int:
        """
        Dispatcher-side (re)assignment. Acceptance goes back to pending and
        the acceptance audit stamps are cleared.
        """
        updated = self.db.query(Project).filter(Project.id == project_id).update({
            "driver_id": driver_id,
            "acceptance_status": "pending",
            "accepted_at": None,
            "accepted_by": None,
            "started_at": None,
            "started_by": None,
            "declined_at": None,
            "declined_by": None,
            "updated_at": datetime.now(timezone.utc),
        }, synchronize_session=False)
        self.db.commit()
        return updated
