"""Submission upload, review, teacher edits and comments."""
import asyncio
import logging
from typing import List, Optional

from homework_processor.errors import ContentProcessingError

from ..access import AccessPolicy, Actor, Capability, require
from ..errors import Forbidden, NotFound, ValidationError
from ..models import Assignment, AssignmentStatus, Comment, Submission, SubmissionStatus, User, UserRole
from ..repository import Repository
from ..schemas import CommentCreate, SubmissionUpdate
from ..storage import BlobStore
from .pipeline import Processor, ReviewResult, SubmissionPipeline
from .state import Writer, ensure_transition, teacher_target

logger = logging.getLogger(__name__)


class SubmissionService:
    """Submission operations for one acting user."""

    def __init__(self, db, actor: Actor, blob_store: BlobStore, processor: Processor):
        self.db = db
        self.actor = actor
        self.repo = Repository(db)
        self.policy = AccessPolicy(db, actor)
        self.blob_store = blob_store
        self.processor = processor

    @property
    def pipeline(self) -> SubmissionPipeline:
        return SubmissionPipeline(self.db, self.processor, self.blob_store)

    def _get(self, submission_id: int) -> Submission:
        submission = self.repo.get_or_404(Submission, submission_id, "Submission")
        self.policy.ensure_submission_view(submission)
        return submission

    def _reviewable(self, submission_id: int) -> Submission:
        require(self.actor, Capability.review_submissions)
        submission = self.repo.get_or_404(Submission, submission_id, "Submission")
        self.policy.ensure_submission_review(submission)
        return submission

    # -------- Reads --------
    def list_submissions(self, assignment_id: Optional[int] = None) -> List[Submission]:
        require(self.actor, Capability.view_submissions)
        query = self.db.query(Submission)
        if assignment_id is not None:
            assignment = self.repo.get_active_or_404(Assignment, assignment_id, "Assignment")
            self.policy.ensure_assignment_view(assignment)
            query = query.filter(Submission.assignment_id == assignment_id)
        if self.actor.is_student:
            query = query.filter(Submission.student_id == self.actor.user_id)
        else:
            scope = self.policy.class_scope()
            if scope is not None:
                query = query.join(Assignment, Assignment.id == Submission.assignment_id).filter(
                    Assignment.class_id.in_(scope)
                )
        return query.order_by(Submission.created_at.desc(), Submission.id.desc()).all()

    def get_submission(self, submission_id: int) -> Submission:
        require(self.actor, Capability.view_submissions)
        return self._get(submission_id)

    # -------- Upload --------
    def _resolve_student(self, assignment: Assignment, student_id: Optional[int]) -> int:
        if self.actor.is_student:
            if student_id is not None and student_id != self.actor.user_id:
                raise Forbidden("Students can only upload their own homework")
            if assignment.status == AssignmentStatus.draft:
                raise NotFound(f"Assignment {assignment.id} not found")
            if not self.policy.has_class(assignment.class_id):
                raise Forbidden("Not enrolled in this class")
            return self.actor.user_id

        self.policy.ensure_class_manager(assignment.class_id)
        if student_id is None:
            raise ValidationError(
                "Student is required",
                errors=[{"field": "studentId", "message": "Field required"}],
            )
        student = self.repo.get_active_or_404(User, student_id, "Student")
        if student.role != UserRole.student:
            raise ValidationError(
                f"User {student_id} is not a student",
                errors=[{"field": "studentId", "message": "must reference a student"}],
            )
        return student.id

    def upload(
        self,
        assignment_id: int,
        student_id: Optional[int],
        data: bytes,
        content_type: Optional[str],
        filename: str = "upload",
    ) -> Submission:
        """Store a homework image and create its submission in ``uploaded``."""
        require(self.actor, Capability.upload_submission)
        assignment = self.repo.get_active_or_404(Assignment, assignment_id, "Assignment")
        student_id = self._resolve_student(assignment, student_id)

        try:
            self.processor.validate_upload(data, content_type, filename)
        except ContentProcessingError as e:
            raise ValidationError(e.message, errors=[{"field": "file", "message": e.message}])

        image_url = self.blob_store.put(data, content_type or "application/octet-stream")
        submission = Submission(
            assignment_id=assignment.id,
            student_id=student_id,
            image_url=image_url,
            status=SubmissionStatus.pending,
        )
        ensure_transition(Writer.upload, submission.status, SubmissionStatus.uploaded)
        submission.status = SubmissionStatus.uploaded
        submission = self.repo.add(submission)
        logger.info(
            f"Submission {submission.id} uploaded for assignment {assignment.id} "
            f"by user {self.actor.user_id} ({len(data)} bytes)"
        )
        return submission

    # -------- Review --------
    def _reviewable_assignment(self, assignment_id: int) -> Assignment:
        require(self.actor, Capability.review_submissions)
        assignment = self.repo.get_active_or_404(Assignment, assignment_id, "Assignment")
        self.policy.ensure_assignment_manage(assignment)
        return assignment

    async def review_assignment(self, assignment_id: int) -> ReviewResult:
        assignment = await asyncio.to_thread(self._reviewable_assignment, assignment_id)
        return await self.pipeline.review_assignment(assignment.id)

    async def reprocess(self, submission_id: int) -> Submission:
        submission = await asyncio.to_thread(self._reviewable, submission_id)
        logger.info(f"User {self.actor.user_id} reprocessing submission {submission.id} from {submission.status.value}")
        return await self.pipeline.reprocess(submission.id)

    def update(self, submission_id: int, data: SubmissionUpdate) -> Submission:
        """Teacher edit: feedback text and the ``completed`` sign-off."""
        submission = self._reviewable(submission_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("status") is not None:
            submission.status = teacher_target(changes["status"], submission.status)
        if "teacher_feedback" in changes:
            submission.teacher_feedback = changes["teacher_feedback"]
        return self.repo.save(submission)

    def delete(self, submission_id: int) -> int:
        submission = self._reviewable(submission_id)
        return self.repo.delete_submission(submission)

    # -------- Comments --------
    def list_comments(self, submission_id: int) -> List[Comment]:
        require(self.actor, Capability.comment)
        self._get(submission_id)
        return (
            self.db.query(Comment)
            .filter(Comment.submission_id == submission_id)
            .order_by(Comment.created_at, Comment.id)
            .all()
        )

    def create_comment(self, submission_id: int, data: CommentCreate) -> Comment:
        require(self.actor, Capability.comment)
        submission = self._get(submission_id)
        if data.parent_id is not None:
            parent = self.db.get(Comment, data.parent_id)
            if parent is None or parent.submission_id != submission.id:
                raise ValidationError(
                    "Parent comment does not belong to this submission",
                    errors=[{"field": "parentId", "message": "must reference a comment on the same submission"}],
                )
        comment = Comment(
            submission_id=submission.id,
            user_id=self.actor.user_id,
            parent_id=data.parent_id,
            content=data.content,
            image_urls=list(data.image_urls),
        )
        return self.repo.add(comment)
