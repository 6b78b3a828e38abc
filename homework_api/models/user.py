"""User and Branch models."""

from sqlalchemy import Column, String, Text, DateTime, Date, ForeignKey, Integer
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base
from .enums import UserRole, Lifecycle, value_enum


class Branch(Base):
    """A physical school location."""
    __tablename__ = "branches"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(256), nullable=False)
    address = Column(Text)
    lifecycle = Column(value_enum(Lifecycle, "lifecycle"), nullable=False, default=Lifecycle.active)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    classes = relationship("SchoolClass", back_populates="branch")
    users = relationship("User", back_populates="branch")

    def __repr__(self):
        return f"<Branch(id={self.id}, name='{self.name}')>"

    @property
    def hidden(self) -> bool:
        return self.lifecycle == Lifecycle.hidden


class User(Base):
    """Administrator, teacher or student account."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(256), unique=True, index=True, nullable=False)
    name = Column(String(256), nullable=False)
    password_hash = Column(String(256), nullable=False)
    role = Column(value_enum(UserRole, "user_role"), nullable=False)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=True)
    phone = Column(String(50))
    birth_date = Column(Date)
    lifecycle = Column(value_enum(Lifecycle, "lifecycle"), nullable=False, default=Lifecycle.active)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    branch = relationship("Branch", back_populates="users")
    submissions = relationship("Submission", back_populates="student")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role={self.role})>"

    @property
    def hidden(self) -> bool:
        return self.lifecycle == Lifecycle.hidden
