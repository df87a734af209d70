"""
Driver Routes - Endpoints for the driver portal.
Consumed by: Driver portal (web/mobile), direct access links.

Authentication Flow:
- POST /drivers/login: Driver ID + PIN, returns a session token
- POST /drivers/direct-access: token from a direct access link
- All /me/* endpoints require "Authorization: Bearer <token>", re-validated per request
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from driver_portal.db.postgres import get_db
from driver_portal.models.pydantic_models import (
    CurrentDriver,
    DirectAccessRequest,
    DriverLoginRequest,
    DriverLoginResponse,
    DriverProject,
    MessageResponse,
    StatusTransitionRequest,
)
from driver_portal.models.sql_models import Project
from driver_portal.routes.deps import get_auth_service, get_bearer_token, get_driver_context
from driver_portal.services.auth_service import AuthService
from driver_portal.services.context import AuthorizationContext
from driver_portal.services.project_service import (
    ProjectStatusMachine,
    get_driver_project,
    list_driver_projects,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/drivers", tags=["Drivers"])


def _to_view(project: Project) -> DriverProject:
    view = DriverProject.model_validate(project)
    view.company_name = project.company.name if project.company else None
    view.car_type_name = project.car_type.name if project.car_type else None
    return view


# ==================== AUTH ENDPOINTS ====================

@router.post("/login", response_model=DriverLoginResponse)
def login(credentials: DriverLoginRequest, auth: AuthService = Depends(get_auth_service)):
    """
    Driver login with Driver ID (license number) and PIN.
    Returns a session token for subsequent requests.
    """
    driver = auth.authenticate(credentials.login_id, credentials.pin)
    session = auth.open_session(driver)

    return DriverLoginResponse(
        token=session.token,
        driver_id=driver.driver_id,
        driver_name=driver.driver_name,
        login=driver.login,
        expires_at=session.expires_at,
    )


@router.post("/direct-access", response_model=DriverLoginResponse)
def direct_access(body: DirectAccessRequest, auth: AuthService = Depends(get_auth_service)):
    """
    Passwordless login from a direct access link.
    The link token itself is the bearer token for later calls.
    """
    driver = auth.authenticate_token(body.token)

    return DriverLoginResponse(
        token=driver.token,
        driver_id=driver.driver_id,
        driver_name=driver.driver_name,
        login=driver.login,
    )


@router.post("/logout", response_model=MessageResponse)
def logout(
    token: str = Depends(get_bearer_token),
    context: AuthorizationContext = Depends(get_driver_context),
    auth: AuthService = Depends(get_auth_service),
):
    """Ends a credential session. Direct access links keep working until rotated."""
    revoked = auth.logout(token)
    return MessageResponse(
        message="Logged out",
        detail=None if revoked else "Direct access token left active",
    )


@router.get("/me", response_model=CurrentDriver)
def me(context: AuthorizationContext = Depends(get_driver_context)):
    driver = context.driver
    return CurrentDriver(driver_id=driver.driver_id, driver_name=driver.driver_name, login=driver.login)


# ==================== PROJECT ENDPOINTS ====================

@router.get("/me/projects", response_model=List[DriverProject])
def my_projects(
    context: AuthorizationContext = Depends(get_driver_context),
    db: Session = Depends(get_db),
):
    """Projects assigned to the authenticated driver, earliest first."""
    return [_to_view(p) for p in list_driver_projects(db, context)]


@router.get("/me/projects/{project_id}", response_model=DriverProject)
def my_project(
    project_id: str = Path(..., description="Project ID"),
    context: AuthorizationContext = Depends(get_driver_context),
    db: Session = Depends(get_db),
):
    return _to_view(get_driver_project(db, context, project_id))


@router.post("/me/projects/{project_id}/status", response_model=DriverProject)
def change_project_status(
    body: StatusTransitionRequest,
    project_id: str = Path(..., description="Project ID"),
    context: AuthorizationContext = Depends(get_driver_context),
    db: Session = Depends(get_db),
):
    """
    Accept, start, decline or complete one of the driver's projects.
    404 when the project is not the driver's, 409 when the move is not allowed.
    """
    project = ProjectStatusMachine(db, context).transition(project_id, body.status)
    return _to_view(project)
