"""
Reference Routes - Companies and car types shown next to a driver's trips.
Read-only and not filtered by driver, but a valid driver token is required.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from driver_portal.db.postgres import get_db
from driver_portal.models.pydantic_models import CarType, Company
from driver_portal.repositories.reference import ReferenceRepository
from driver_portal.routes.deps import get_driver_context
from driver_portal.services.context import AuthorizationContext

router = APIRouter(tags=["Reference"])


@router.get("/companies", response_model=List[Company])
def list_companies(
    context: AuthorizationContext = Depends(get_driver_context),
    db: Session = Depends(get_db),
):
    return [Company.model_validate(c) for c in ReferenceRepository(db).list_companies()]


@router.get("/car-types", response_model=List[CarType])
def list_car_types(
    context: AuthorizationContext = Depends(get_driver_context),
    db: Session = Depends(get_db),
):
    return [CarType.model_validate(c) for c in ReferenceRepository(db).list_car_types()]
