"""Shared enums for models, access control and the submission pipeline."""
import enum

from sqlalchemy import Enum as SQLEnum


class UserRole(str, enum.Enum):
    admin = "ADMIN"
    teacher = "TEACHER"
    student = "STUDENT"


class Lifecycle(str, enum.Enum):
    """Soft-delete state shared by every hideable entity."""
    active = "active"
    hidden = "hidden"


class AssignmentStatus(str, enum.Enum):
    draft = "draft"
    published = "published"
    completed = "completed"


class SubmissionStatus(str, enum.Enum):
    pending = "pending"
    uploaded = "uploaded"
    processing = "processing"
    ai_reviewed = "ai-reviewed"
    failed = "failed"
    completed = "completed"


def value_enum(enum_cls, name: str) -> SQLEnum:
    """SQL enum that persists member values and rejects anything else."""
    return SQLEnum(
        enum_cls,
        name=name,
        values_callable=lambda members: [member.value for member in members],
        create_constraint=True,
        validate_strings=True,
    )
