"""
Test configuration and shared fixtures for the clinic scheduler test suite.

Each test gets its own in-memory SQLite database built from the models, with
foreign keys enforced, so commits made by the services stay isolated.
"""

import os

# Must be set before core.config is imported anywhere
os.environ["DATABASE_URL"] = "sqlite://"

from datetime import date, time
from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from core.database import Base, enable_sqlite_foreign_keys, get_db
# Import all models to ensure they're registered with SQLAlchemy before any relationships are resolved
from models import Appointment, Invoice, Patient, Therapist, TherapistPayment  # noqa: F401
from shared_types.scheduling import AppointmentCreate
from shared_types.statuses import AppointmentStatus

# Fixed clock for invoice issue dates
TODAY = date(2026, 1, 2)

# Monday 5 January 2026, 09:00
BASE_DATE = date(2026, 1, 5)
BASE_TIME = time(9, 0)


@pytest.fixture(scope="function")
def db_engine():
    """
    Create a fresh in-memory database for one test.

    StaticPool keeps a single connection so every session sees the same
    in-memory database.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    enable_sqlite_foreign_keys(engine)

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Provide a database session configured like the application's SessionLocal."""
    TestSession = sessionmaker(
        bind=db_engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = TestSession()
    yield session
    session.close()


@pytest.fixture
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """FastAPI test client whose requests use the test session."""
    from main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def therapist(db_session: Session) -> Therapist:
    therapist = Therapist(name="Claire Martin", specialty="Orthophonie")
    db_session.add(therapist)
    db_session.commit()
    return therapist


@pytest.fixture
def other_therapist(db_session: Session) -> Therapist:
    therapist = Therapist(name="Julien Petit", specialty="Psychomotricité")
    db_session.add(therapist)
    db_session.commit()
    return therapist


@pytest.fixture
def patient(db_session: Session) -> Patient:
    patient = Patient(first_name="Léa", last_name="Dubois", email="lea.dubois@example.com")
    db_session.add(patient)
    db_session.commit()
    return patient


@pytest.fixture
def other_patient(db_session: Session) -> Patient:
    patient = Patient(first_name="Hugo", last_name="Bernard")
    db_session.add(patient)
    db_session.commit()
    return patient


@pytest.fixture
def appointment_data(patient: Patient, therapist: Therapist) -> Callable[..., AppointmentCreate]:
    """
    Factory for AppointmentCreate.

    Defaults to the test patient and therapist on BASE_DATE at BASE_TIME,
    confirmed; any field can be overridden.
    """
    def build(**overrides) -> AppointmentCreate:
        values = {
            "patient_id": patient.id,
            "therapist_id": therapist.id,
            "date": BASE_DATE,
            "time": BASE_TIME,
            "status": AppointmentStatus.CONFIRMED,
            "duration": 45,
            "type": "Suivi régulier",
        }
        values.update(overrides)
        return AppointmentCreate(**values)

    return build
