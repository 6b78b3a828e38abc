"""Submission and Comment models."""

from sqlalchemy import Column, Text, DateTime, ForeignKey, Integer, JSON, Float
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base
from .enums import SubmissionStatus, value_enum


class Submission(Base):
    """One student's uploaded homework image for one assignment."""
    __tablename__ = "submissions"

    id = Column(Integer, primary_key=True, index=True)
    assignment_id = Column(Integer, ForeignKey("assignments.id"), index=True)
    student_id = Column(Integer, ForeignKey("users.id"), index=True)
    # Opaque blob-store reference (data URI or storage URL)
    image_url = Column(Text, nullable=False)
    ocr_text = Column(Text)
    ocr_confidence = Column(Float)
    ai_feedback = Column(Text)
    teacher_feedback = Column(Text)
    status = Column(
        value_enum(SubmissionStatus, "submission_status"),
        nullable=False,
        default=SubmissionStatus.pending,
    )
    error_message = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    assignment = relationship("Assignment", back_populates="submissions")
    student = relationship("User", back_populates="submissions")
    comments = relationship("Comment", back_populates="submission", order_by="Comment.created_at")

    def __repr__(self):
        return f"<Submission(id={self.id}, status={self.status})>"


class Comment(Base):
    """Threaded discussion entry on a submission."""
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True)
    submission_id = Column(Integer, ForeignKey("submissions.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    parent_id = Column(Integer, ForeignKey("comments.id"), nullable=True)
    content = Column(Text, nullable=False)
    image_urls = Column(JSON, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    submission = relationship("Submission", back_populates="comments")
    author = relationship("User")

    def __repr__(self):
        return f"<Comment(id={self.id}, submission_id={self.submission_id})>"
