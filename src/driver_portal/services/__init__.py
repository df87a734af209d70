from driver_portal.services.auth_service import AuthService
from driver_portal.services.context import AuthorizationContext, DriverProjects, ResolvedDriver
from driver_portal.services.project_service import ProjectStatusMachine
from driver_portal.services.feed_service import ProjectFeed, ProjectSource, StoreProjectSource

__all__ = [
    "AuthService",
    "AuthorizationContext",
    "DriverProjects",
    "ResolvedDriver",
    "ProjectStatusMachine",
    "ProjectFeed",
    "ProjectSource",
    "StoreProjectSource",
]
