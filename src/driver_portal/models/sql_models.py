from uuid import uuid4

from sqlalchemy import func
from sqlalchemy import Column, Integer, String, Date, Time, TIMESTAMP, DECIMAL, ForeignKey, Text, Enum as SEnum
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _uuid() -> str:
    return str(uuid4())


# ==========================
# ENUMS
# ==========================

driver_status_enum = SEnum('available', 'busy', 'offline', name='driver_status')
project_status_enum = SEnum('active', 'completed', name='project_status')
payment_status_enum = SEnum('paid', 'charge', name='payment_status')
acceptance_status_enum = SEnum('pending', 'accepted', 'started', 'declined', name='acceptance_status')


# ==========================
# REFERENCE: Company, CarType
# ==========================

class Company(Base):
    __tablename__ = "companies"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(200), nullable=False)
    phone = Column(String(50))

    # Relationships
    projects = relationship("Project", back_populates="company")


class CarType(Base):
    __tablename__ = "car_types"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(100), nullable=False)
    capacity = Column(Integer, nullable=False, default=4)
    description = Column(Text)

    # Relationships
    projects = relationship("Project", back_populates="car_type")


# ==========================
# DRIVERS
# ==========================

class Driver(Base):
    __tablename__ = "drivers"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(100), nullable=False)
    phone = Column(String(50))
    # Login identifier as typed by the dispatcher, plus its trimmed/case-folded form
    license = Column(String(50), nullable=False)
    license_normalized = Column(String(50), nullable=False, unique=True, index=True)
    pin = Column(String(6), nullable=False, unique=True)
    status = Column(driver_status_enum, nullable=False, default='available')
    auth_token = Column(String(36), unique=True, index=True)
    last_activity_at = Column(TIMESTAMP(timezone=True))
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    # Relationships
    projects = relationship("Project", back_populates="driver")
    sessions = relationship("DriverSession", back_populates="driver", cascade="all, delete-orphan")


class DriverSession(Base):
    __tablename__ = "driver_sessions"

    token = Column(String(36), primary_key=True, default=_uuid)
    driver_id = Column(String(36), ForeignKey('drivers.id', ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False)
    expires_at = Column(TIMESTAMP(timezone=True), nullable=False)
    revoked_at = Column(TIMESTAMP(timezone=True))

    # Relationships
    driver = relationship("Driver", back_populates="sessions")


# ==========================
# PROJECTS (trips)
# ==========================

class Project(Base):
    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=_uuid)
    company_id = Column(String(36), ForeignKey('companies.id'))
    car_type_id = Column(String(36), ForeignKey('car_types.id'))
    driver_id = Column(String(36), ForeignKey('drivers.id', ondelete="SET NULL"), index=True)

    client_name = Column(String(200), nullable=False)
    client_phone = Column(String(50))
    pickup_location = Column(Text, nullable=False)
    dropoff_location = Column(Text, nullable=False)
    date = Column(Date, nullable=False)
    time = Column(Time, nullable=False)
    passengers = Column(Integer, nullable=False, default=1)
    price = Column(DECIMAL(10, 2), nullable=False, default=0)
    driver_fee = Column(DECIMAL(10, 2))
    description = Column(Text)
    booking_id = Column(String(50))

    status = Column(project_status_enum, nullable=False, default='active')
    payment_status = Column(payment_status_enum, nullable=False, default='charge')
    acceptance_status = Column(acceptance_status_enum, nullable=False, default='pending')

    # Audit stamps, one pair per transition
    accepted_at = Column(TIMESTAMP(timezone=True))
    accepted_by = Column(String(36))
    started_at = Column(TIMESTAMP(timezone=True))
    started_by = Column(String(36))
    declined_at = Column(TIMESTAMP(timezone=True))
    declined_by = Column(String(36))
    completed_at = Column(TIMESTAMP(timezone=True))
    completed_by = Column(String(36))

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True))

    # Relationships
    company = relationship("Company", back_populates="projects")
    car_type = relationship("CarType", back_populates="projects")
    driver = relationship("Driver", back_populates="projects")
