"""
Authorization Context - binds one resolved driver to one request or session.

Every project read or write of the driver-facing core goes through
DriverProjects, which takes the driver id from the bound context and puts
it into the query. There is no process-wide "current driver".
"""

import itertools
import logging
import threading
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.orm import Session

from driver_portal.errors import ContextError, NotOwned
from driver_portal.models.sql_models import Project
from driver_portal.repositories.project import ProjectRepository

logger = logging.getLogger(__name__)

# Generations are unique across all contexts of the process
_generations = itertools.count(1)
_generations_lock = threading.Lock()


def _next_generation() -> int:
    with _generations_lock:
        return next(_generations)


@dataclass(frozen=True)
class ResolvedDriver:
    """Identity produced by the authenticator."""
    driver_id: str
    driver_name: str
    login: Optional[str] = None
    token: Optional[str] = None


class AuthorizationContext:
    """
    Holds the authenticated driver for the lifetime of one request/session.
    Bound exactly once, then cleared.
    """

    def __init__(self):
        self._driver: Optional[ResolvedDriver] = None
        self._cleared = False
        self._generation = 0

    def bind(self, driver: ResolvedDriver) -> "AuthorizationContext":
        if self._driver is not None or self._cleared:
            raise ContextError("Authorization context is already bound")
        self._driver = driver
        self._generation = _next_generation()
        logger.debug("Context bound: driver_id=%s generation=%s", driver.driver_id, self._generation)
        return self

    def clear(self) -> None:
        if self._driver is not None:
            logger.debug("Context cleared: driver_id=%s", self._driver.driver_id)
        self._driver = None
        self._cleared = True
        self._generation = _next_generation()

    @property
    def is_active(self) -> bool:
        return self._driver is not None

    @property
    def generation(self) -> int:
        """Changes on every bind/clear; background work compares it to detect a dead session."""
        return self._generation

    @property
    def driver(self) -> ResolvedDriver:
        if self._driver is None:
            raise ContextError()
        return self._driver

    @property
    def driver_id(self) -> str:
        return self.driver.driver_id

    def owns(self, project: Project) -> bool:
        return project is not None and project.driver_id == self.driver_id

    def ownership_clause(self):
        """SQL predicate restricting Project rows to the bound driver."""
        return Project.driver_id == self.driver_id

    def __enter__(self) -> "AuthorizationContext":
        # touch the identity so an unbound context fails fast
        self.driver
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.clear()


def bind_context(driver: ResolvedDriver) -> AuthorizationContext:
    return AuthorizationContext().bind(driver)


class DriverProjects:
    """Project access scoped to the driver of an authorization context."""

    def __init__(self, db: Session, context: AuthorizationContext):
        self.context = context
        self.repo = ProjectRepository(db)

    def list(self) -> List[Project]:
        return self.repo.list_by_driver(self.context.driver_id)

    def get(self, project_id: str) -> Project:
        """Owned project or NotOwned (also when it simply does not exist)."""
        project = self.repo.get_owned(project_id, self.context.driver_id)
        if project is None:
            raise NotOwned()
        return project

    def update(self, project_id: str, fields: dict, guards: Optional[list] = None) -> int:
        return self.repo.atomic_update(project_id, self.context.driver_id, fields, guards)

    def reload(self, project_id: str) -> Project:
        """Row just written by update(); read by id since ownership was checked in the write."""
        project = self.repo.get_by_id(project_id)
        if project is None:
            raise NotOwned()
        return project
