from pydantic import BaseModel, Field
from typing import Optional
from datetime import date, time, datetime
from decimal import Decimal
from enum import Enum


# ==========================
# ENUMS
# ==========================

class DriverStatusEnum(str, Enum):
    available = "available"
    busy = "busy"
    offline = "offline"


class ProjectStatusEnum(str, Enum):
    active = "active"
    completed = "completed"


class PaymentStatusEnum(str, Enum):
    paid = "paid"
    charge = "charge"


class AcceptanceStatusEnum(str, Enum):
    pending = "pending"
    accepted = "accepted"
    started = "started"
    declined = "declined"


class TargetStatusEnum(str, Enum):
    """Statuses a driver may request for one of their projects."""
    accepted = "accepted"
    started = "started"
    declined = "declined"
    completed = "completed"


# ==========================
# REFERENCE DATA
# ==========================

class Company(BaseModel):
    id: str
    name: str
    phone: Optional[str] = None

    model_config = {"from_attributes": True}


class CarType(BaseModel):
    id: str
    name: str
    capacity: int
    description: Optional[str] = None

    model_config = {"from_attributes": True}


# ==========================
# DRIVER
# ==========================

class DriverCreate(BaseModel):
    name: str
    license: str
    pin: str
    phone: Optional[str] = None
    status: DriverStatusEnum = DriverStatusEnum.available


# ==========================
# PROJECT
# ==========================

class Project(BaseModel):
    id: str
    driver_id: Optional[str] = None
    company_id: Optional[str] = None
    car_type_id: Optional[str] = None
    client_name: str
    client_phone: Optional[str] = None
    pickup_location: str
    dropoff_location: str
    date: date
    time: time
    passengers: int
    price: Decimal
    driver_fee: Optional[Decimal] = None
    status: ProjectStatusEnum
    payment_status: PaymentStatusEnum
    description: Optional[str] = None
    booking_id: Optional[str] = None
    acceptance_status: AcceptanceStatusEnum
    accepted_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    declined_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class DriverProject(Project):
    """Project as shown in the driver portal, with reference names resolved."""
    company_name: Optional[str] = None
    car_type_name: Optional[str] = None


class StatusTransitionRequest(BaseModel):
    status: TargetStatusEnum


# ==========================
# AUTH
# ==========================

class DriverLoginRequest(BaseModel):
    login_id: str = Field(..., description="Driver ID (license number)")
    pin: str


class DirectAccessRequest(BaseModel):
    token: str


class DriverLoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    driver_id: str
    driver_name: str
    login: Optional[str] = None
    expires_at: Optional[datetime] = None


class CurrentDriver(BaseModel):
    driver_id: str
    driver_name: str
    login: Optional[str] = None


class MessageResponse(BaseModel):
    message: str
    detail: Optional[str] = None
