"""
Project Service - Driver-side trip listing and the project status machine.
Used by: Driver portal (accept / start / decline / complete).

Status axes:
- acceptance_status: pending -> accepted -> started, or declined from pending/accepted
- status (lifecycle): active -> completed, terminal

Each target status is a closed transition type that knows which states it may
leave and which columns it may write. The write is a single conditional
UPDATE carrying the ownership predicate, so a reassignment that lands between
the ownership read and the write makes the write affect zero rows.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, List, Tuple, Type

from sqlalchemy.orm import Session

from driver_portal.errors import TransitionRejected, ValidationError
from driver_portal.models.pydantic_models import TargetStatusEnum
from driver_portal.models.sql_models import Project
from driver_portal.services.context import AuthorizationContext, DriverProjects

logger = logging.getLogger(__name__)


# ==================== TRANSITIONS ====================

@dataclass(frozen=True)
class Transition:
    driver_id: str
    at: datetime

    target: ClassVar[TargetStatusEnum]
    allowed_from: ClassVar[Tuple[str, ...]]

    def values(self) -> Dict[str, Any]:
        raise NotImplementedError

    def guards(self) -> List[Any]:
        """Preconditions repeated inside the UPDATE statement."""
        return [
            Project.status == "active",
            Project.acceptance_status.in_(self.allowed_from),
        ]

    def permits(self, project: Project) -> bool:
        return project.status == "active" and project.acceptance_status in self.allowed_from


@dataclass(frozen=True)
class AcceptTransition(Transition):
    target: ClassVar[TargetStatusEnum] = TargetStatusEnum.accepted
    allowed_from: ClassVar[Tuple[str, ...]] = ("pending",)

    def values(self) -> Dict[str, Any]:
        return {
            "acceptance_status": "accepted",
            "accepted_at": self.at,
            "accepted_by": self.driver_id,
            "updated_at": self.at,
        }


@dataclass(frozen=True)
class StartTransition(Transition):
    target: ClassVar[TargetStatusEnum] = TargetStatusEnum.started
    allowed_from: ClassVar[Tuple[str, ...]] = ("accepted",)

    def values(self) -> Dict[str, Any]:
        return {
            "acceptance_status": "started",
            "started_at": self.at,
            "started_by": self.driver_id,
            "updated_at": self.at,
        }


@dataclass(frozen=True)
class DeclineTransition(Transition):
    target: ClassVar[TargetStatusEnum] = TargetStatusEnum.declined
    allowed_from: ClassVar[Tuple[str, ...]] = ("pending", "accepted")

    def values(self) -> Dict[str, Any]:
        return {
            "acceptance_status": "declined",
            "declined_at": self.at,
            "declined_by": self.driver_id,
            "updated_at": self.at,
        }


@dataclass(frozen=True)
class CompleteTransition(Transition):
    # Completion touches the lifecycle axis only; acceptance_status is kept
    target: ClassVar[TargetStatusEnum] = TargetStatusEnum.completed
    allowed_from: ClassVar[Tuple[str, ...]] = ("accepted", "started")

    def values(self) -> Dict[str, Any]:
        return {
            "status": "completed",
            "completed_at": self.at,
            "completed_by": self.driver_id,
            "updated_at": self.at,
        }


TRANSITIONS: Dict[TargetStatusEnum, Type[Transition]] = {
    cls.target: cls
    for cls in (AcceptTransition, StartTransition, DeclineTransition, CompleteTransition)
}


def transition_for(target, driver_id: str, at: datetime) -> Transition:
    """Builds the transition for a requested target status."""
    try:
        key = TargetStatusEnum(target)
    except ValueError:
        raise ValidationError(f"Unknown target status: {target}")
    return TRANSITIONS[key](driver_id=driver_id, at=at)


# ==================== STATUS MACHINE ====================

class ProjectStatusMachine:
    """Applies driver-requested status transitions to owned projects."""

    def __init__(self, db: Session, context: AuthorizationContext):
        self.db = db
        self.context = context
        self.projects = DriverProjects(db, context)

    def transition(self, project_id: str, target) -> Project:
        """
        Moves one owned project to the target status.
        Raises NotOwned, TransitionRejected or ValidationError.
        """
        driver_id = self.context.driver_id
        change = transition_for(target, driver_id, datetime.now(timezone.utc))

        project = self.projects.get(project_id)
        if not change.permits(project):
            logger.info(
                "Transition rejected: project=%s %s/%s -> %s",
                project_id, project.status, project.acceptance_status, change.target.value
            )
            raise TransitionRejected(
                f"Cannot move project from {self._describe(project)} to {change.target.value}",
                current_status=project.acceptance_status,
            )

        updated = self.projects.update(project_id, change.values(), change.guards())
        if updated == 0:
            logger.warning(
                "Transition lost a race: project=%s driver=%s target=%s",
                project_id, driver_id, change.target.value
            )
            raise TransitionRejected("Project was changed or reassigned, reload and try again")

        self.db.expire_all()
        logger.info("Project %s moved to %s by driver %s", project_id, change.target.value, driver_id)
        # ownership was enforced by the UPDATE itself
        return self.projects.reload(project_id)

    @staticmethod
    def _describe(project: Project) -> str:
        if project.status == "completed":
            return "completed"
        return project.acceptance_status


# ==================== QUERY FUNCTIONS ====================

def list_driver_projects(db: Session, context: AuthorizationContext) -> List[Project]:
    """Returns the context driver's projects, earliest first."""
    return DriverProjects(db, context).list()


def get_driver_project(db: Session, context: AuthorizationContext, project_id: str) -> Project:
    return DriverProjects(db, context).get(project_id)
