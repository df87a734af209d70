#!/usr/bin/env python3
"""
Sample data initializer for local development.
Creates companies, car types, three drivers and a week of trips.
Run with: python -m driver_portal.scripts.data_init
"""

from datetime import date, time, timedelta
from decimal import Decimal
import logging

from driver_portal.db.postgres import SessionLocal, engine
from driver_portal.models.pydantic_models import DriverCreate, DriverStatusEnum
from driver_portal.models.sql_models import Base, Company, CarType, Project
from driver_portal.services.driver_service import (
    assign_project,
    build_direct_link,
    create_driver,
    issue_access_token,
)

logger = logging.getLogger("data_init")

DRIVERS = [
    DriverCreate(name="Ana Costa", license="DRV001", pin="1234", phone="+351 910 000 001"),
    DriverCreate(name="Bruno Reis", license="DRV002", pin="5678", phone="+351 910 000 002"),
    DriverCreate(name="Carla Dias", license="DRV003", pin="2468", status=DriverStatusEnum.offline),
]

ROUTES = [
    ("Airport T1", "Hotel Avenida"),
    ("Central Station", "Congress Center"),
    ("Hotel Avenida", "Airport T2"),
    ("Old Town", "Cruise Terminal"),
]


def seed(db) -> None:
    companies = [
        Company(name="Lisbon Transfers", phone="+351 210 000 100"),
        Company(name="Atlantic Tours", phone="+351 210 000 200"),
    ]
    car_types = [
        CarType(name="Sedan", capacity=3, description="Standard sedan"),
        CarType(name="Minivan", capacity=7, description="Up to 7 passengers"),
    ]
    db.add_all(companies + car_types)
    db.commit()

    drivers = [create_driver(db, d) for d in DRIVERS]
    for driver in drivers:
        token = issue_access_token(db, driver.id)
        logger.info("%s (%s): %s", driver.name, driver.license, build_direct_link(token))

    today = date.today()
    for i in range(8):
        pickup, dropoff = ROUTES[i % len(ROUTES)]
        project = Project(
            company_id=companies[i % 2].id,
            car_type_id=car_types[i % 2].id,
            client_name=f"Client {i + 1:02d}",
            client_phone=f"+351 930 000 {i + 1:03d}",
            pickup_location=pickup,
            dropoff_location=dropoff,
            date=today + timedelta(days=i // 2),
            time=time(8 + i, 30),
            passengers=1 + i % 4,
            price=Decimal("45.00") + i * 5,
            driver_fee=Decimal("30.00"),
            payment_status="paid" if i % 3 == 0 else "charge",
            booking_id=f"BK-{1000 + i}",
        )
        db.add(project)
        db.commit()
        assign_project(db, project.id, drivers[i % 2].id)

    logger.info("Seeded %s drivers and 8 projects", len(drivers))


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed(db)
    finally:
        db.close()


if __name__ == "__main__":
    main()
