"""Narrow persistence interface used by the services."""
import logging
from typing import Iterable, List, Optional, Type, TypeVar

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import NotFound
from .models import Comment, Lifecycle, Submission, SubmissionStatus

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


class Repository:
    """Entity access for a single request-scoped session.

    Every list query goes through :meth:`list_active` so hidden rows never leak
    into listings, while :meth:`get` still resolves hidden rows by id for the
    history that references them.
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, model: Type[ModelT], entity_id: int) -> Optional[ModelT]:
        return self.db.get(model, entity_id)

    def get_or_404(self, model: Type[ModelT], entity_id: int, label: Optional[str] = None) -> ModelT:
        entity = self.get(model, entity_id)
        if entity is None:
            raise NotFound(f"{label or model.__name__} {entity_id} not found")
        return entity

    def get_active_or_404(self, model: Type[ModelT], entity_id: int, label: Optional[str] = None) -> ModelT:
        entity = self.get_or_404(model, entity_id, label)
        if getattr(entity, "lifecycle", Lifecycle.active) != Lifecycle.active:
            raise NotFound(f"{label or model.__name__} {entity_id} not found")
        return entity

    def active_query(self, model: Type[ModelT]):
        query = self.db.query(model)
        if hasattr(model, "lifecycle"):
            query = query.filter(model.lifecycle == Lifecycle.active)
        return query

    def list_active(self, model: Type[ModelT], *criteria, order_by=None) -> List[ModelT]:
        query = self.active_query(model)
        if criteria:
            query = query.filter(*criteria)
        return query.order_by(order_by if order_by is not None else model.id).all()

    def add(self, entity: ModelT) -> ModelT:
        self.db.add(entity)
        self.commit()
        self.db.refresh(entity)
        return entity

    def save(self, entity: ModelT) -> ModelT:
        self.commit()
        self.db.refresh(entity)
        return entity

    def hide(self, entity) -> None:
        entity.lifecycle = Lifecycle.hidden
        self.commit()

    def commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Database error: {e}")
            self.db.rollback()
            raise

    # -------- Submissions --------
    def claim_submission(
        self,
        submission_id: int,
        from_statuses: Optional[Iterable[SubmissionStatus]] = None,
    ) -> bool:
        """Atomically move a submission into ``processing``.

        Returns True only for the caller whose conditional update matched the
        row, so two sweeps can never both own the same submission.
        """
        stmt = (
            update(Submission)
            .where(Submission.id == submission_id)
            .values(status=SubmissionStatus.processing, error_message=None)
            .execution_options(synchronize_session=False)
        )
        if from_statuses is not None:
            stmt = stmt.where(Submission.status.in_(list(from_statuses)))
        try:
            result = self.db.execute(stmt)
            self.db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to claim submission {submission_id}: {e}")
            self.db.rollback()
            raise
        claimed = result.rowcount == 1
        if claimed:
            submission = self.db.get(Submission, submission_id)
            if submission is not None:
                self.db.refresh(submission)
        return claimed

    def submission_ids_with_status(self, assignment_id: int, status: SubmissionStatus) -> List[int]:
        rows = (
            self.db.query(Submission.id)
            .filter(Submission.assignment_id == assignment_id, Submission.status == status)
            .order_by(Submission.id)
            .all()
        )
        return [row.id for row in rows]

    def delete_submission(self, submission: Submission) -> int:
        """Delete a submission and all of its comments in one transaction."""
        try:
            removed = (
                self.db.query(Comment)
                .filter(Comment.submission_id == submission.id)
                .delete(synchronize_session=False)
            )
            self.db.expire(submission, ["comments"])
            self.db.delete(submission)
            self.db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to delete submission {submission.id}: {e}")
            self.db.rollback()
            raise
        logger.info(f"Deleted submission {submission.id} with {removed} comments")
        return removed
