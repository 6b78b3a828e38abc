"""Scoped access checks for teachers and students.

Grants are read from the database on every check; a policy instance lives for
one request only, so a grant revoked between requests takes effect at once.
"""
from typing import Optional, Set

from sqlalchemy.orm import Session

from ..errors import Forbidden
from ..models import (
    Assignment,
    AssignmentStatus,
    ClassLeadTeacher,
    StudentClassAccess,
    Submission,
    TeacherBranchAccess,
    TeacherClassAccess,
)
from .capabilities import Actor


class AccessPolicy:
    def __init__(self, db: Session, actor: Actor):
        self.db = db
        self.actor = actor

    # -------- Scope derivation --------
    def class_scope(self) -> Optional[Set[int]]:
        """Class ids the actor may see, or None when unrestricted."""
        if self.actor.is_admin:
            return None
        if self.actor.is_teacher:
            rows = self.db.query(TeacherClassAccess.class_id).filter(
                TeacherClassAccess.teacher_id == self.actor.user_id
            )
        else:
            rows = self.db.query(StudentClassAccess.class_id).filter(
                StudentClassAccess.student_id == self.actor.user_id
            )
        return {row.class_id for row in rows}

    def branch_scope(self) -> Optional[Set[int]]:
        if self.actor.is_admin:
            return None
        if not self.actor.is_teacher:
            return set()
        rows = self.db.query(TeacherBranchAccess.branch_id).filter(
            TeacherBranchAccess.teacher_id == self.actor.user_id
        )
        return {row.branch_id for row in rows}

    def has_class(self, class_id: Optional[int]) -> bool:
        if self.actor.is_admin:
            return True
        if class_id is None:
            return False
        if self.actor.is_teacher:
            query = self.db.query(TeacherClassAccess).filter(
                TeacherClassAccess.teacher_id == self.actor.user_id,
                TeacherClassAccess.class_id == class_id,
            )
        else:
            query = self.db.query(StudentClassAccess).filter(
                StudentClassAccess.student_id == self.actor.user_id,
                StudentClassAccess.class_id == class_id,
            )
        return self.db.query(query.exists()).scalar()

    def is_lead(self, class_id: Optional[int]) -> bool:
        if class_id is None or not self.actor.is_teacher:
            return False
        query = self.db.query(ClassLeadTeacher).filter(
            ClassLeadTeacher.teacher_id == self.actor.user_id,
            ClassLeadTeacher.class_id == class_id,
        )
        return self.db.query(query.exists()).scalar()

    # -------- Guards --------
    def ensure_class(self, class_id: Optional[int]) -> None:
        if not self.has_class(class_id):
            raise Forbidden("No access to this class")

    def ensure_class_manager(self, class_id: Optional[int]) -> None:
        """Class-level management: admins, or teachers holding access."""
        if self.actor.is_student or not self.has_class(class_id):
            raise Forbidden("No access to this class")

    def ensure_class_lead(self, class_id: Optional[int]) -> None:
        if self.actor.is_admin:
            return
        if not self.is_lead(class_id):
            raise Forbidden("Only the lead teacher of this class may do that")

    def can_view_assignment(self, assignment: Assignment) -> bool:
        if self.actor.is_admin:
            return True
        if self.actor.is_student and assignment.status == AssignmentStatus.draft:
            return False
        return self.has_class(assignment.class_id)

    def ensure_assignment_view(self, assignment: Assignment) -> None:
        if not self.can_view_assignment(assignment):
            raise Forbidden("No access to this assignment")

    def ensure_assignment_manage(self, assignment: Assignment) -> None:
        self.ensure_class_manager(assignment.class_id)

    def can_view_submission(self, submission: Submission) -> bool:
        if self.actor.is_admin:
            return True
        if self.actor.is_student:
            return submission.student_id == self.actor.user_id
        assignment = submission.assignment
        return assignment is not None and self.has_class(assignment.class_id)

    def ensure_submission_view(self, submission: Submission) -> None:
        if not self.can_view_submission(submission):
            raise Forbidden("No access to this submission")

    def ensure_submission_review(self, submission: Submission) -> None:
        assignment = submission.assignment
        self.ensure_class_manager(assignment.class_id if assignment is not None else None)
