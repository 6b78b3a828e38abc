"""SQLAlchemy models for the homework platform."""

from .enums import UserRole, Lifecycle, AssignmentStatus, SubmissionStatus
from .user import User, Branch
from .classroom import (
    SchoolClass,
    EnglishLevel,
    AgeGroup,
    TeacherBranchAccess,
    TeacherClassAccess,
    ClassLeadTeacher,
    StudentClassAccess,
)
from .assignment import Assignment
from .submission import Submission, Comment

__all__ = [
    "User",
    "Branch",
    "UserRole",
    "Lifecycle",
    "AssignmentStatus",
    "SubmissionStatus",
    "SchoolClass",
    "EnglishLevel",
    "AgeGroup",
    "TeacherBranchAccess",
    "TeacherClassAccess",
    "ClassLeadTeacher",
    "StudentClassAccess",
    "Assignment",
    "Submission",
    "Comment",
]
