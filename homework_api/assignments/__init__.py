"""Assignments scoped to classes."""
from .service import AssignmentService
from .router import router as assignments_router

__all__ = ["AssignmentService", "assignments_router"]
