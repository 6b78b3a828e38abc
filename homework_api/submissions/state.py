"""Submission lifecycle rules.

    pending -> uploaded -> processing -> ai-reviewed -> completed
                   ^            |   \\
                   +- timeout --+    -> failed -> processing (reprocess)

Reprocessing may re-enter ``processing`` from any state. Only the pipeline
and teachers move a submission; students never set a status.
"""
import enum
from typing import Dict, FrozenSet

from ..errors import InvalidStateError, ValidationError
from ..models import SubmissionStatus

S = SubmissionStatus


class Writer(str, enum.Enum):
    """Who is asking for the transition."""
    upload = "upload"
    pipeline = "pipeline"
    reprocess = "reprocess"
    teacher = "teacher"


TRANSITIONS: Dict[Writer, Dict[SubmissionStatus, FrozenSet[SubmissionStatus]]] = {
    Writer.upload: {
        S.pending: frozenset({S.uploaded}),
    },
    Writer.pipeline: {
        S.uploaded: frozenset({S.processing}),
        S.processing: frozenset({S.ai_reviewed, S.failed, S.uploaded}),
    },
    Writer.reprocess: {
        status: frozenset({S.processing}) for status in SubmissionStatus
    },
    Writer.teacher: {
        S.ai_reviewed: frozenset({S.completed}),
    },
}

TEACHER_WRITABLE = frozenset({S.completed})


def can_transition(writer: Writer, current: SubmissionStatus, target: SubmissionStatus) -> bool:
    return target in TRANSITIONS[writer].get(current, frozenset())


def ensure_transition(writer: Writer, current: SubmissionStatus, target: SubmissionStatus) -> None:
    if not can_transition(writer, current, target):
        raise InvalidStateError(
            f"Cannot move submission from {current.value} to {target.value}"
        )


def parse_status(value: str) -> SubmissionStatus:
    try:
        return SubmissionStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in SubmissionStatus)
        raise ValidationError(
            f"Unknown submission status '{value}'",
            errors=[{"field": "status", "message": f"must be one of: {allowed}"}],
        ) from None


def teacher_target(value: str, current: SubmissionStatus) -> SubmissionStatus:
    """Validate a status requested through a teacher edit."""
    target = parse_status(value)
    if target == current:
        return target
    if target not in TEACHER_WRITABLE:
        raise InvalidStateError(f"Status '{target.value}' is set by the review pipeline only")
    ensure_transition(Writer.teacher, current, target)
    return target
