"""Test configuration and fixtures."""

import io
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from homework_api.database import Base, get_db
from homework_api.auth import AuthService, hash_password
from homework_api.models import (
    Assignment,
    AssignmentStatus,
    Branch,
    SchoolClass,
    StudentClassAccess,
    User,
    UserRole,
)
from homework_api.storage import DataUriBlobStore
from homework_processor import FeedbackGenerator, HomeworkProcessor, ImageAdapter, OcrResult

# Use in-memory SQLite for testing
TEST_DATABASE_URL = "sqlite:///:memory:"
PASSWORD = "correct-horse"


@pytest.fixture
def engine():
    """Create a fresh in-memory database per test."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _fk_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    """Create test database session."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def png_bytes():
    image = Image.new("RGB", (64, 48), color=(250, 250, 250))
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def blob_store():
    return DataUriBlobStore()


@pytest.fixture
def processor():
    """Homework processor with real upload validation and mocked AI calls."""
    processor = HomeworkProcessor(
        image_adapter=ImageAdapter(client=MagicMock()),
        feedback_generator=FeedbackGenerator(client=MagicMock()),
    )
    processor.extract_text = AsyncMock(return_value=OcrResult(text="I has a cat.", confidence=0.93))
    processor.generate_feedback = AsyncMock(return_value="Use 'have' after 'I': I have a cat.")
    return processor


@pytest.fixture
def client(session_factory, blob_store, processor):
    """Test client bound to the test database and mocked processor."""
    from homework_api.main import app
    from homework_api.submissions import get_blob_store, get_processor

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_processor] = lambda: processor
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    yield TestClient(app)
    app.dependency_overrides.clear()


def _user(db, email, name, role, password=PASSWORD):
    user = User(email=email, name=name, role=role, password_hash=hash_password(password))
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin(db_session):
    return _user(db_session, "admin@example.com", "Ada Admin", UserRole.admin)


@pytest.fixture
def teacher(db_session):
    return _user(db_session, "teacher@example.com", "Tom Teacher", UserRole.teacher)


@pytest.fixture
def student(db_session):
    return _user(db_session, "student@example.com", "Sam Student", UserRole.student)


@pytest.fixture
def other_student(db_session):
    return _user(db_session, "other@example.com", "Olive Other", UserRole.student)


@pytest.fixture
def branch(db_session):
    branch = Branch(name="Central", address="1 Main Street")
    db_session.add(branch)
    db_session.commit()
    db_session.refresh(branch)
    return branch


@pytest.fixture
def school_class(db_session, branch):
    school_class = SchoolClass(
        name="Beginners A",
        branch_id=branch.id,
        english_level="Beginner",
        age_group="Children",
    )
    db_session.add(school_class)
    db_session.commit()
    db_session.refresh(school_class)
    return school_class


@pytest.fixture
def enrolled_student(db_session, student, school_class):
    db_session.add(StudentClassAccess(student_id=student.id, class_id=school_class.id))
    db_session.commit()
    return student


@pytest.fixture
def assignment(db_session, school_class, admin):
    assignment = Assignment(
        title="My pet",
        description="Write five sentences about your pet",
        class_id=school_class.id,
        creator_user_id=admin.id,
        status=AssignmentStatus.published,
    )
    db_session.add(assignment)
    db_session.commit()
    db_session.refresh(assignment)
    return assignment


@pytest.fixture
def auth_headers(db_session):
    """Build a bearer header for a user."""
    def build(user):
        token = AuthService(db_session).create_session_token(user)
        return {"Authorization": f"Bearer {token}"}
    return build
