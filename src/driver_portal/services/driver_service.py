"""
Driver Service - Dispatcher-side driver records and direct access links.
Used by: Backoffice, seed scripts.

Writes here keep the credential invariants the authenticator relies on:
unique normalized Driver ID, unique 4-6 digit PIN.
"""

import logging
from typing import Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from driver_portal.config import settings
from driver_portal.errors import ValidationError
from driver_portal.models.pydantic_models import DriverCreate
from driver_portal.models.sql_models import Driver
from driver_portal.repositories.driver import DriverRepository
from driver_portal.repositories.project import ProjectRepository
from driver_portal.repositories.session import SessionRepository
from driver_portal.utils.normalize import normalize_login, normalize_pin, is_valid_pin

logger = logging.getLogger(__name__)


# ==================== ADMIN FUNCTIONS ====================

def create_driver(db: Session, data: DriverCreate) -> Driver:
    """Creates a new driver after checking Driver ID and PIN uniqueness."""
    repo = DriverRepository(db)
    login_key, pin = _validate_credentials(repo, data.license, data.pin)

    driver = repo.create({
        "name": data.name.strip(),
        "phone": data.phone,
        "license": data.license.strip(),
        "license_normalized": login_key,
        "pin": pin,
        "status": data.status.value,
    })
    logger.info("Driver created: driver_id=%s", driver.id)
    return driver


def update_driver_credentials(
    db: Session,
    driver_id: str,
    license: Optional[str] = None,
    pin: Optional[str] = None
) -> Optional[Driver]:
    """Changes Driver ID and/or PIN. Open sessions of the driver are revoked."""
    repo = DriverRepository(db)
    driver = repo.get_by_id(driver_id)
    if not driver:
        return None

    login_key, new_pin = _validate_credentials(
        repo,
        license if license is not None else driver.license,
        pin if pin is not None else driver.pin,
        exclude_id=driver.id,
    )
    if license is not None:
        driver.license = license.strip()
    driver.license_normalized = login_key
    driver.pin = new_pin
    db.commit()
    db.refresh(driver)

    SessionRepository(db).revoke_all_for_driver(driver.id)
    logger.info("Driver credentials updated: driver_id=%s", driver.id)
    return driver


def issue_access_token(db: Session, driver_id: str) -> Optional[str]:
    """Rotates the driver's direct access token. Old links stop working."""
    token = str(uuid4())
    if not DriverRepository(db).set_token(driver_id, token):
        return None
    logger.info("Direct access token issued: driver_id=%s", driver_id)
    return token


def revoke_access_token(db: Session, driver_id: str) -> bool:
    return bool(DriverRepository(db).set_token(driver_id, None))


def build_direct_link(token: str) -> str:
    """Direct access URL the dispatcher shares with the driver."""
    return f"{settings.portal_base_url.rstrip('/')}/driver/auth/{token}"


def assign_project(db: Session, project_id: str, driver_id: Optional[str]) -> bool:
    """Assigns (or unassigns) a project; acceptance restarts at pending."""
    if driver_id is not None and DriverRepository(db).get_by_id(driver_id) is None:
        raise ValidationError("Driver not found")
    updated = ProjectRepository(db).assign(project_id, driver_id)
    if updated:
        logger.info("Project %s assigned to driver %s", project_id, driver_id)
    return bool(updated)


# ==================== VALIDATION ====================

def _validate_credentials(repo: DriverRepository, license: str, pin: str, exclude_id: Optional[str] = None):
    login_key = normalize_login(license)
    pin_value = normalize_pin(pin)

    if not login_key:
        raise ValidationError("Driver ID is required")
    if not is_valid_pin(pin_value):
        raise ValidationError("PIN must be 4-6 digits")

    same_login = repo.find_by_normalized_login(login_key)
    if same_login and same_login.id != exclude_id:
        raise ValidationError("A driver with this ID already exists. Please use a unique Driver ID.")

    same_pin = repo.find_by_pin(pin_value)
    if same_pin and same_pin.id != exclude_id:
        raise ValidationError("A driver with this PIN already exists. Please use a unique PIN.")

    return login_key, pin_value
