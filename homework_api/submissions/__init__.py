"""Homework submissions: lifecycle, AI review pipeline and routes."""
from .state import Writer, TRANSITIONS, can_transition, ensure_transition, teacher_target
from .pipeline import ReviewResult, SubmissionPipeline
from .service import SubmissionService
from .router import router as submissions_router, get_blob_store, get_processor

__all__ = [
    "Writer",
    "TRANSITIONS",
    "can_transition",
    "ensure_transition",
    "teacher_target",
    "ReviewResult",
    "SubmissionPipeline",
    "SubmissionService",
    "submissions_router",
    "get_blob_store",
    "get_processor",
]
