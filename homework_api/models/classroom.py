"""Class, option list and access-grant models."""

from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base
from .enums import Lifecycle, value_enum


class SchoolClass(Base):
    """A cohort of students scoped to a branch, level and age group."""
    __tablename__ = "classes"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(256), nullable=False)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=True)
    english_level = Column(String(50))
    age_group = Column(String(50))
    lifecycle = Column(value_enum(Lifecycle, "lifecycle"), nullable=False, default=Lifecycle.active)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    branch = relationship("Branch", back_populates="classes")
    assignments = relationship("Assignment", back_populates="school_class")

    def __repr__(self):
        return f"<SchoolClass(id={self.id}, name='{self.name}')>"

    @property
    def hidden(self) -> bool:
        return self.lifecycle == Lifecycle.hidden


class EnglishLevel(Base):
    __tablename__ = "english_levels"

    id = Column(Integer, primary_key=True)
    name = Column(String(50), unique=True, nullable=False)
    lifecycle = Column(value_enum(Lifecycle, "lifecycle"), nullable=False, default=Lifecycle.active)

    @property
    def hidden(self) -> bool:
        return self.lifecycle == Lifecycle.hidden


class AgeGroup(Base):
    __tablename__ = "age_groups"

    id = Column(Integer, primary_key=True)
    name = Column(String(50), unique=True, nullable=False)
    lifecycle = Column(value_enum(Lifecycle, "lifecycle"), nullable=False, default=Lifecycle.active)

    @property
    def hidden(self) -> bool:
        return self.lifecycle == Lifecycle.hidden


class TeacherBranchAccess(Base):
    __tablename__ = "teacher_branch_access"
    __table_args__ = (UniqueConstraint("teacher_id", "branch_id", name="uq_teacher_branch"),)

    id = Column(Integer, primary_key=True)
    teacher_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=False)


class TeacherClassAccess(Base):
    __tablename__ = "teacher_class_access"
    __table_args__ = (UniqueConstraint("teacher_id", "class_id", name="uq_teacher_class"),)

    id = Column(Integer, primary_key=True)
    teacher_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)


class ClassLeadTeacher(Base):
    """Marks a teacher as lead of a class; only valid alongside TeacherClassAccess."""
    __tablename__ = "class_lead_teachers"
    __table_args__ = (UniqueConstraint("teacher_id", "class_id", name="uq_class_lead"),)

    id = Column(Integer, primary_key=True)
    teacher_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)


class StudentClassAccess(Base):
    __tablename__ = "student_class_access"
    __table_args__ = (UniqueConstraint("student_id", "class_id", name="uq_student_class"),)

    id = Column(Integer, primary_key=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)
