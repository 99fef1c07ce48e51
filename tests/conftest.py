import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("SECURITY_SCAN_ENABLED", "false")

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from access_control.core.database import get_db, init_db
from access_control.core.security import get_password_hash
from access_control.main import app
from access_control.models import (
    AccessEvent, Direction, Environment, EnvironmentAssignment, Person, PersonStatus,
    Role, Rol, TrainingGroup, User, VisitorPass, PassState,
)
from access_control.utils.dependencies import get_current_active_user

# Wednesday mid-morning: inside every default schedule window
NOW = datetime(2024, 5, 15, 10, 0, 0)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def make_person(db):
    def _make_person(
        document_number="1010",
        role=Role.APPRENTICE,
        status=PersonStatus.ACTIVE,
        display_name="Carlos Andres Rojas",
        document_type="CC",
        training_group=None,
    ):
        person = Person(
            document_number=document_number,
            document_type=document_type,
            display_name=display_name,
            role=role,
            status=status,
            training_group=training_group,
        )
        db.add(person)
        db.commit()
        db.refresh(person)
        return person

    return _make_person


@pytest.fixture
def add_event(db):
    def _add_event(person, direction, timestamp):
        event = AccessEvent(person_id=person.id_person, direction=direction, timestamp=timestamp)
        db.add(event)
        db.commit()
        return event

    return _add_event


@pytest.fixture
def open_pass(db):
    def _open_pass(person, issued_at, reason="Reunion"):
        visitor_pass = VisitorPass(
            person_id=person.id_person,
            reason=reason,
            issued_at=issued_at,
            started_at=issued_at,
            state=PassState.ACTIVE,
        )
        db.add(visitor_pass)
        db.commit()
        db.refresh(visitor_pass)
        return visitor_pass

    return _open_pass


@pytest.fixture
def make_environment(db):
    def _make_environment(code="AMB-101", name="Sistemas 1", block="Bloque A", capacity=30):
        environment = Environment(code=code, name=name, block=block, floor=1, capacity=capacity)
        db.add(environment)
        db.commit()
        db.refresh(environment)
        return environment

    return _make_environment


@pytest.fixture
def make_group(db):
    def _make_group(code="2670001", shift=None, program_name="Analisis y Desarrollo de Software"):
        group = TrainingGroup(code=code, program_code="228118", program_name=program_name, shift=shift)
        db.add(group)
        db.commit()
        db.refresh(group)
        return group

    return _make_group


@pytest.fixture
def assign(db):
    def _assign(person, environment, role=None, schedule=None, active=True):
        assignment = EnvironmentAssignment(
            person_id=person.id_person,
            environment_id=environment.id_environment,
            assignment_type=role or person.role,
            schedule=schedule,
            active=active,
        )
        db.add(assignment)
        db.commit()
        return assignment

    return _assign


@pytest.fixture
def operator(db):
    role = Rol(name_rol="guarda")
    db.add(role)
    db.commit()
    user = User(
        name_user="Guarda Porteria",
        email="guarda@sena.edu.co",
        password_hash=get_password_hash("s3cret-pass"),
        role_id=role.id_rol,
        active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def client(db, operator):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_active_user] = lambda: operator
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
