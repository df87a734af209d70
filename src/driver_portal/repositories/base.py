from typing import TypeVar, Generic, Type, Optional, Any
from sqlalchemy.orm import Session

from driver_portal.models.sql_models import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Base repository with the generic lookups every store needs."""

    def __init__(self, model: Type[ModelType], db: Session):
        self.model = model
        self.db = db

    def get_by_id(self, id: Any) -> Optional[ModelType]:
        """Get a single record by its primary key."""
        return self.db.get(self.model, id)

    def create(self, obj_in: dict) -> ModelType:
        """Create a new record and commit it."""
        db_obj = self.model(**obj_in)
        self.db.add(db_obj)
        self.db.commit()
        self.db.refresh(db_obj)
        return db_obj
