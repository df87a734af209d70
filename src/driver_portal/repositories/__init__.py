from driver_portal.repositories.base import BaseRepository
from driver_portal.repositories.driver import DriverRepository
from driver_portal.repositories.session import SessionRepository
from driver_portal.repositories.project import ProjectRepository
from driver_portal.repositories.reference import ReferenceRepository

__all__ = [
    "BaseRepository",
    "DriverRepository",
    "SessionRepository",
    "ProjectRepository",
    "ReferenceRepository",
]
