"""
Test fixtures for the SIS Portal API.

Points the app at a file-based SQLite database in a temp directory and
recreates the schema for every test. Provides client, admin_client,
encoder_client and db fixtures plus small factories for test data.
"""

import os
import tempfile
from datetime import date

import pytest

_TEST_DIR = tempfile.mkdtemp(prefix="sis-portal-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DIR}/test.db"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["EMAIL_BACKEND"] = "log"
os.environ["GRADE_MISSING_COMPONENT_POLICY"] = "zero"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"

from fastapi.testclient import TestClient  # noqa: E402

from sis_portal.app import app  # noqa: E402
from sis_portal.core.database import SessionLocal, engine  # noqa: E402
from sis_portal.models.base import Base  # noqa: E402
from sis_portal.schemas.user import Role  # noqa: E402
from sis_portal.utils.course_manager import CourseManager  # noqa: E402
from sis_portal.utils.student_manager import StudentManager  # noqa: E402
from sis_portal.utils.subject_manager import SubjectManager  # noqa: E402
from sis_portal.utils.user_manager import UserManager  # noqa: E402

ADMIN_EMAIL = "admin@test.com"
ADMIN_PASSWORD = "adminpass123"
ENCODER_EMAIL = "encoder@test.com"
ENCODER_PASSWORD = "encoderpass123"


@pytest.fixture(autouse=True)
def _reset_schema():
    """Start every test from empty tables."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def users(db):
    """Create one admin and one encoder account."""
    manager = UserManager(db)
    admin = manager.create_user(ADMIN_EMAIL, ADMIN_PASSWORD, Role.ADMIN)
    encoder = manager.create_user(ENCODER_EMAIL, ENCODER_PASSWORD, Role.ENCODER)
    return {"admin": admin, "encoder": encoder}


@pytest.fixture
def client():
    """Unauthenticated test client."""
    return TestClient(app)


def _login(email, password):
    test_client = TestClient(app)
    resp = test_client.post("/api/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return test_client


@pytest.fixture
def admin_client(users):
    """Test client logged in as the admin."""
    return _login(ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture
def encoder_client(users):
    """Test client logged in as the encoder."""
    return _login(ENCODER_EMAIL, ENCODER_PASSWORD)


@pytest.fixture
def make_course(db):
    def _make(code="BSCS", name=None):
        return CourseManager(db).create_course(code, name or f"Course {code}")

    return _make


@pytest.fixture
def make_subject(db):
    def _make(course, code="PROG1", title=None, units=3):
        return SubjectManager(db).create_subject(
            course.id, code, title or f"Subject {code}", units
        )

    return _make


@pytest.fixture
def make_student(db):
    def _make(course, first_name="Jane", last_name="Doe", student_no=None):
        return StudentManager(db).create_student(
            first_name=first_name,
            last_name=last_name,
            birth_date=date(2004, 5, 17),
            course_id=course.id,
            student_no=student_no,
        )

    return _make
