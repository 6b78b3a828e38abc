"""Assignment model."""

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Integer
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base
from .enums import AssignmentStatus, Lifecycle, value_enum


class Assignment(Base):
    """Assignment model."""
    __tablename__ = "assignments"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(256), nullable=False)
    description = Column(Text)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=True)
    creator_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    due_date = Column(DateTime(timezone=True))
    status = Column(
        value_enum(AssignmentStatus, "assignment_status"),
        nullable=False,
        default=AssignmentStatus.draft,
    )
    lifecycle = Column(value_enum(Lifecycle, "lifecycle"), nullable=False, default=Lifecycle.active)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    school_class = relationship("SchoolClass", back_populates="assignments")
    creator = relationship("User")
    submissions = relationship("Submission", back_populates="assignment")

    def __repr__(self):
        return f"<Assignment(id={self.id}, title='{self.title}')>"

    @property
    def hidden(self) -> bool:
        return self.lifecycle == Lifecycle.hidden
