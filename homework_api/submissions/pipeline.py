"""AI review pipeline: OCR, feedback and the resulting status transitions."""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Tuple, Union

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from homework_processor.adapters import OcrResult
from homework_processor.errors import (
    ContentProcessingError,
    ProviderTimeoutError,
    QuotaExceededError,
)

from ..models import Assignment, SchoolClass, Submission, SubmissionStatus
from ..repository import Repository
from ..storage import BlobNotFoundError, BlobStore
from .state import Writer, ensure_transition

logger = logging.getLogger(__name__)

UNSPECIFIED = "Unspecified"
UNEXPECTED_ERROR = "Unexpected error during processing"


class Processor(Protocol):
    def validate_upload(self, data: bytes, content_type: Optional[str], filename: str = ...) -> None: ...

    async def extract_text(self, image: Union[str, bytes]) -> OcrResult: ...

    async def generate_feedback(self, text: str, english_level: str, age_group: str) -> str: ...


class ReviewContextError(Exception):
    """The assignment or class needed to tailor feedback could not be resolved."""


@dataclass
class ReviewResult:
    assignment_id: int
    succeeded: List[int] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)
    skipped: List[int] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.succeeded)


class SubmissionPipeline:
    """Runs claimed submissions through OCR and feedback generation.

    Every outcome is written back to the submission: ``ai-reviewed`` on
    success, ``uploaded`` after a provider timeout so a later sweep retries
    it, and ``failed`` with a diagnostic message for anything else.
    """

    def __init__(self, db: Session, processor: Processor, blob_store: BlobStore):
        self.db = db
        self.repo = Repository(db)
        self.processor = processor
        self.blob_store = blob_store

    def _feedback_context(self, submission: Submission) -> Tuple[str, str]:
        assignment = self.db.get(Assignment, submission.assignment_id) if submission.assignment_id else None
        if assignment is None:
            raise ReviewContextError(f"Assignment for submission {submission.id} not found")
        school_class = self.db.get(SchoolClass, assignment.class_id) if assignment.class_id else None
        if school_class is None:
            raise ReviewContextError(f"Class for assignment {assignment.id} not found")
        return school_class.english_level or UNSPECIFIED, school_class.age_group or UNSPECIFIED

    async def process(self, submission_id: int) -> Submission:
        """Process a submission already claimed into ``processing``.

        Session and blob store calls run in worker threads, one at a time,
        so the event loop keeps serving other requests meanwhile.
        """
        submission = await asyncio.to_thread(self.repo.get_or_404, Submission, submission_id, "Submission")
        ensure_transition(Writer.pipeline, submission.status, SubmissionStatus.ai_reviewed)

        try:
            english_level, age_group = await asyncio.to_thread(self._feedback_context, submission)
            image = await asyncio.to_thread(self.blob_store.get, submission.image_url)

            logger.info(f"Extracting text for submission {submission.id}")
            ocr = await self.processor.extract_text(image)

            logger.info(
                f"Generating feedback for submission {submission.id} ({english_level}, {age_group})"
            )
            feedback = await self.processor.generate_feedback(ocr.text, english_level, age_group)
        except ProviderTimeoutError as e:
            logger.warning(f"Submission {submission.id} timed out, returning it to the queue: {e}")
            return await asyncio.to_thread(
                self._finish, submission, SubmissionStatus.uploaded, error=str(e), clear=False
            )
        except QuotaExceededError as e:
            logger.warning(f"Submission {submission.id} hit the AI quota: {e}")
            return await asyncio.to_thread(self._finish, submission, SubmissionStatus.failed, error=e.message)
        except (ContentProcessingError, ReviewContextError, BlobNotFoundError) as e:
            logger.error(f"Submission {submission.id} failed: {e}")
            return await asyncio.to_thread(self._finish, submission, SubmissionStatus.failed, error=str(e))
        except Exception as e:
            logger.error(f"Unexpected error processing submission {submission.id}: {e}", exc_info=True)
            return await asyncio.to_thread(
                self._finish, submission, SubmissionStatus.failed, error=UNEXPECTED_ERROR
            )

        return await asyncio.to_thread(
            self._finish,
            submission,
            SubmissionStatus.ai_reviewed,
            ocr_text=ocr.text,
            ocr_confidence=ocr.confidence,
            ai_feedback=feedback,
        )

    def _finish(
        self,
        submission: Submission,
        status: SubmissionStatus,
        error: Optional[str] = None,
        clear: bool = True,
        ocr_text: Optional[str] = None,
        ocr_confidence: Optional[float] = None,
        ai_feedback: Optional[str] = None,
    ) -> Submission:
        ensure_transition(Writer.pipeline, SubmissionStatus.processing, status)
        try:
            # Discard anything a failed step left pending in the session
            self.db.rollback()
            submission.status = status
            submission.error_message = error
            if status == SubmissionStatus.ai_reviewed or clear:
                submission.ocr_text = ocr_text
                submission.ocr_confidence = ocr_confidence
                submission.ai_feedback = ai_feedback
            self.db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Could not record status {status.value} for submission {submission.id}: {e}")
            self.db.rollback()
            raise
        self.db.refresh(submission)
        logger.info(f"Submission {submission.id} -> {status.value}")
        return submission

    def _abandon(self, submission_id: int) -> None:
        """Release a claimed submission whose processing crashed."""
        try:
            self.db.rollback()
            self.db.execute(
                update(Submission)
                .where(Submission.id == submission_id, Submission.status == SubmissionStatus.processing)
                .values(status=SubmissionStatus.failed, error_message=UNEXPECTED_ERROR)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            # Left in processing; a manual reprocess recovers it
            logger.error(f"Could not release submission {submission_id}: {e}")
            self.db.rollback()

    async def reprocess(self, submission_id: int) -> Submission:
        """Force a submission back through the pipeline whatever its state."""
        await asyncio.to_thread(self.repo.get_or_404, Submission, submission_id, "Submission")
        await asyncio.to_thread(self.repo.claim_submission, submission_id)
        try:
            return await self.process(submission_id)
        except Exception as e:
            logger.error(f"Reprocess of submission {submission_id} aborted: {e}", exc_info=True)
            await asyncio.to_thread(self._abandon, submission_id)
            raise

    async def review_assignment(self, assignment_id: int) -> ReviewResult:
        """Process every ``uploaded`` submission of an assignment, one at a time.

        A failure in one submission never stops the rest of the batch.
        """
        result = ReviewResult(assignment_id=assignment_id)
        candidates = await asyncio.to_thread(
            self.repo.submission_ids_with_status, assignment_id, SubmissionStatus.uploaded
        )
        logger.info(f"Reviewing {len(candidates)} submissions for assignment {assignment_id}")

        for submission_id in candidates:
            try:
                claimed = await asyncio.to_thread(
                    self.repo.claim_submission, submission_id, [SubmissionStatus.uploaded]
                )
            except SQLAlchemyError:
                result.failed.append(submission_id)
                continue
            if not claimed:
                # Another sweep got there first
                result.skipped.append(submission_id)
                continue

            try:
                submission = await self.process(submission_id)
            except Exception as e:
                logger.error(f"Review of submission {submission_id} aborted: {e}", exc_info=True)
                await asyncio.to_thread(self._abandon, submission_id)
                result.failed.append(submission_id)
                continue

            if submission.status == SubmissionStatus.ai_reviewed:
                result.succeeded.append(submission_id)
            else:
                result.failed.append(submission_id)

        logger.info(
            f"Assignment {assignment_id} review done: {result.processed} succeeded, "
            f"{len(result.failed)} failed, {len(result.skipped)} skipped"
        )
        return result
