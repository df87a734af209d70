from typing import List
from sqlalchemy.orm import Session

from driver_portal.models.sql_models import Company, CarType


class ReferenceRepository:
    """Read-only companies and car types. Not filtered by driver."""

    def __init__(self, db: Session):
        self.db = db

    def list_companies(self) -> List[Company]:
        return self.db.query(Company).order_by(Company.name.asc()).all()

    def list_car_types(self) -> List[CarType]:
        return self.db.query(CarType).order_by(CarType.name.asc()).all()
