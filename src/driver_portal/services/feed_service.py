"""
Feed Service - Keeps a driver's working view of their projects.
Used by: Driver portal (project list), background refresh.

Loads projects plus company / car type names from a ProjectSource. Transient
failures are retried on a timer (base delay x attempt) up to a bounded count.
A successful load replaces the whole project list. Results that arrive after
the session ended, or after the feed was refreshed/closed, are discarded.
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional

import pydantic
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError

from driver_portal.config import settings
from driver_portal.errors import PersistentFetchError, PortalError, TransientFetchError
from driver_portal.models.pydantic_models import CarType, Company, DriverProject, Project
from driver_portal.repositories.reference import ReferenceRepository
from driver_portal.services.context import AuthorizationContext, DriverProjects

logger = logging.getLogger(__name__)


# ==================== SOURCES ====================

class ProjectSource:
    """Where a feed reads from. Implementations raise TransientFetchError for retryable failures."""

    async def fetch_projects(self, context: AuthorizationContext) -> List[Project]:
        raise NotImplementedError

    async def fetch_companies(self) -> List[Company]:
        raise NotImplementedError

    async def fetch_car_types(self) -> List[CarType]:
        raise NotImplementedError


class StoreProjectSource(ProjectSource):
    """Reads straight from the SQLAlchemy stores, one session per call."""

    def __init__(self, session_factory: Callable):
        self.session_factory = session_factory

    def _run(self, fn):
        db = self.session_factory()
        try:
            return fn(db)
        except SQLAlchemyError as e:
            raise TransientFetchError(f"Database error: {e}") from e
        finally:
            db.close()

    async def fetch_projects(self, context: AuthorizationContext) -> List[Project]:
        return await run_in_threadpool(
            self._run,
            lambda db: [Project.model_validate(p) for p in DriverProjects(db, context).list()]
        )

    async def fetch_companies(self) -> List[Company]:
        return await run_in_threadpool(
            self._run,
            lambda db: [Company.model_validate(c) for c in ReferenceRepository(db).list_companies()]
        )

    async def fetch_car_types(self) -> List[CarType]:
        return await run_in_threadpool(
            self._run,
            lambda db: [CarType.model_validate(c) for c in ReferenceRepository(db).list_car_types()]
        )


class _Superseded(Exception):
    pass


# ==================== FEED ====================

class ProjectFeed:
    """Driver's project list with bounded, timer-driven retry."""

    def __init__(
        self,
        context: AuthorizationContext,
        source: ProjectSource,
        max_retries: Optional[int] = None,
        base_delay: Optional[float] = None,
        sleep: Optional[Callable] = None
    ):
        self.context = context
        self.source = source
        self.max_retries = settings.fetch_max_retries if max_retries is None else max_retries
        self.base_delay = settings.fetch_base_delay_seconds if base_delay is None else base_delay
        self.sleep = sleep or asyncio.sleep

        self.projects: List[DriverProject] = []
        self.companies: Dict[str, Company] = {}
        self.car_types: Dict[str, CarType] = {}
        self.error: Optional[PortalError] = None
        self.loading = False
        self.retry_count = 0

        self._epoch = 0
        self._task: Optional[asyncio.Task] = None

    # ---------- loading ----------

    async def load(self) -> Optional[List[DriverProject]]:
        """
        Fetches and applies a fresh snapshot.
        Returns None when the result was discarded because the session moved on.
        Raises PersistentFetchError once retries are exhausted.
        """
        token = self._token()
        self.loading = True
        self.retry_count = 0
        try:
            projects = await self._fetch_projects_with_retry(token)
            companies, car_types = await self._fetch_reference(token)
            self._check(token)
            self._apply(projects, companies, car_types)
            return self.projects
        except _Superseded:
            logger.info("Discarding stale project feed result")
            return None
        finally:
            if self._is_current(token):
                self.loading = False

    async def _fetch_projects_with_retry(self, token) -> List[Project]:
        while True:
            try:
                projects = await self.source.fetch_projects(self.context)
                self._check(token)
                return projects
            except TransientFetchError as e:
                self._check(token)
                if self.retry_count >= self.max_retries:
                    self.error = PersistentFetchError(
                        f"Failed to load projects after {self.retry_count} retries: {e.message}",
                        attempts=self.retry_count + 1,
                    )
                    logger.error("Project feed giving up: %s", e.message)
                    raise self.error from e

                self.error = e
                self.retry_count += 1
                delay = self.base_delay * self.retry_count
                logger.warning(
                    "Project fetch failed (%s), retry %s/%s in %.1fs",
                    e.message, self.retry_count, self.max_retries, delay
                )
                await self.sleep(delay)
                self._check(token)
            except PortalError as e:
                self._check(token)
                self.error = e
                raise

    async def _fetch_reference(self, token):
        """Reference data is optional: failures keep the last known values."""
        companies = None
        car_types = None
        try:
            companies = await self.source.fetch_companies()
        except (PortalError, pydantic.ValidationError) as e:
            logger.warning("Could not load companies, keeping previous: %s", e)
        self._check(token)
        try:
            car_types = await self.source.fetch_car_types()
        except (PortalError, pydantic.ValidationError) as e:
            logger.warning("Could not load car types, keeping previous: %s", e)
        return companies, car_types

    def _apply(self, projects: List[Project], companies, car_types) -> None:
        if companies is not None:
            self.companies = {c.id: c for c in companies}
        if car_types is not None:
            self.car_types = {c.id: c for c in car_types}

        self.projects = [self._view(p) for p in projects]
        self.error = None
        self.retry_count = 0
        logger.info("Project feed loaded %s projects for driver %s", len(self.projects), self.context.driver_id)

    def _view(self, project: Project) -> DriverProject:
        company = self.companies.get(project.company_id) if project.company_id else None
        car_type = self.car_types.get(project.car_type_id) if project.car_type_id else None
        # a DriverProject already carries resolved names; resolve them again here
        return DriverProject(
            **project.model_dump(exclude={"company_name", "car_type_name"}),
            company_name=company.name if company else None,
            car_type_name=car_type.name if car_type else None,
        )

    # ---------- background / lifecycle ----------

    def start(self) -> asyncio.Task:
        """Runs load() in the background; the outcome lands in projects / error."""
        self._cancel_task()
        self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    async def _run(self) -> None:
        try:
            await self.load()
        except PortalError as e:
            logger.error("Background project load failed: %s", e.message)

    async def refresh(self) -> Optional[List[DriverProject]]:
        """Manual refresh: drops any pending retry and loads again."""
        self._cancel_task()
        self._epoch += 1
        return await self.load()

    def close(self) -> None:
        """Ends the feed. Pending timers are cancelled and late results ignored."""
        self._cancel_task()
        self._epoch += 1
        self.projects = []
        self.companies = {}
        self.car_types = {}
        self.error = None
        self.loading = False
        self.retry_count = 0

    def rebind(self, context: AuthorizationContext) -> None:
        """Switches the feed to a new session (e.g. a direct access login replaced the old one)."""
        self.close()
        self.context = context

    def _cancel_task(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    # ---------- pushed updates ----------

    def apply_update(self, project: Project) -> None:
        """
        Folds one changed project into the view.
        Projects no longer assigned to this driver drop out.
        """
        if not self.context.is_active:
            return
        remaining = [p for p in self.projects if p.id != project.id]
        if project.driver_id == self.context.driver_id:
            remaining.append(self._view(project))
            remaining.sort(key=lambda p: (p.date, p.time))
        self.projects = remaining

    # ---------- staleness ----------

    def _token(self):
        # touching driver_id makes an unbound context fail before any fetch
        return (self.context.driver_id, self.context.generation, self._epoch)

    def _is_current(self, token) -> bool:
        return (
            self.context.is_active
            and token == (self.context.driver_id, self.context.generation, self._epoch)
        )

    def _check(self, token) -> None:
        if not self._is_current(token):
            raise _Superseded()
