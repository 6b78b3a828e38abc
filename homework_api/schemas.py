"""Request and response bodies for the HTTP API.

JSON uses camelCase keys; request bodies also accept the snake_case names.
"""
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from .models.enums import AssignmentStatus, SubmissionStatus, UserRole


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# -------- Users --------
class UserCreate(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1, max_length=256)
    role: UserRole = UserRole.student
    branch_id: Optional[int] = None
    phone: Optional[str] = None
    birth_date: Optional[date] = None


class UserUpdate(CamelModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=6)
    name: Optional[str] = Field(default=None, min_length=1, max_length=256)
    branch_id: Optional[int] = None
    phone: Optional[str] = None
    birth_date: Optional[date] = None


class UserResponse(CamelModel):
    id: int
    email: str
    name: str
    role: UserRole
    branch_id: Optional[int] = None
    phone: Optional[str] = None
    birth_date: Optional[date] = None
    created_at: Optional[datetime] = None


class TeacherAuthority(CamelModel):
    branch_ids: List[int] = Field(default_factory=list)
    class_ids: List[int] = Field(default_factory=list)
    lead_class_ids: List[int] = Field(default_factory=list)


class TeacherDetail(UserResponse):
    branch_ids: List[int] = Field(default_factory=list)
    class_ids: List[int] = Field(default_factory=list)
    lead_class_ids: List[int] = Field(default_factory=list)


class TeacherAuthorityUpdate(CamelModel):
    branch_ids: List[int] = Field(default_factory=list)
    class_ids: List[int] = Field(default_factory=list)


# -------- Directory --------
class BranchCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=256)
    address: Optional[str] = None


class BranchUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=256)
    address: Optional[str] = None


class BranchResponse(CamelModel):
    id: int
    name: str
    address: Optional[str] = None
    created_at: Optional[datetime] = None


class ClassCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=256)
    branch_id: Optional[int] = None
    english_level: Optional[str] = None
    age_group: Optional[str] = None


class ClassUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=256)
    branch_id: Optional[int] = None
    english_level: Optional[str] = None
    age_group: Optional[str] = None


class ClassResponse(CamelModel):
    id: int
    name: str
    branch_id: Optional[int] = None
    english_level: Optional[str] = None
    age_group: Optional[str] = None
    created_at: Optional[datetime] = None


class ClassTeacherUpdate(CamelModel):
    has_access: bool = True
    is_lead: bool = False


class ClassTeacherResponse(CamelModel):
    teacher: UserResponse
    has_access: bool
    is_lead: bool


class ClassTeacherState(CamelModel):
    class_id: int
    teacher_id: int
    has_access: bool
    is_lead: bool


class ClassStudentState(CamelModel):
    class_id: int
    student_id: int
    enrolled: bool


class OptionCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=50)


class OptionResponse(CamelModel):
    id: int
    name: str


# -------- Assignments --------
class AssignmentCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=256)
    description: Optional[str] = None
    class_id: int
    due_date: Optional[datetime] = None
    status: AssignmentStatus = AssignmentStatus.draft


class AssignmentUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=256)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    status: Optional[AssignmentStatus] = None


class AssignmentResponse(CamelModel):
    id: int
    title: str
    description: Optional[str] = None
    class_id: Optional[int] = None
    creator_user_id: Optional[int] = None
    due_date: Optional[datetime] = None
    status: AssignmentStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SubmissionSummary(CamelModel):
    id: int
    student_id: Optional[int] = None
    student_name: Optional[str] = None
    status: SubmissionStatus
    created_at: Optional[datetime] = None


class AssignmentDetail(AssignmentResponse):
    submissions: List[SubmissionSummary] = Field(default_factory=list)


# -------- Submissions --------
class SubmissionResponse(CamelModel):
    id: int
    assignment_id: Optional[int] = None
    student_id: Optional[int] = None
    image_url: str
    ocr_text: Optional[str] = None
    ocr_confidence: Optional[float] = None
    ai_feedback: Optional[str] = None
    teacher_feedback: Optional[str] = None
    status: SubmissionStatus
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SubmissionUpdate(CamelModel):
    teacher_feedback: Optional[str] = None
    # Parsed by the submission state machine
    status: Optional[str] = None


class ReviewResponse(CamelModel):
    assignment_id: int
    processed: int
    succeeded: List[int] = Field(default_factory=list)
    failed: List[int] = Field(default_factory=list)


class CommentCreate(CamelModel):
    content: str = Field(..., min_length=1)
    image_urls: List[str] = Field(default_factory=list)
    parent_id: Optional[int] = None


class CommentResponse(CamelModel):
    id: int
    submission_id: int
    user_id: int
    parent_id: Optional[int] = None
    content: str
    image_urls: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
