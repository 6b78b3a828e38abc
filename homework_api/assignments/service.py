"""Assignment management scoped to the acting user's classes."""
import logging
from typing import List, Optional

from ..access import AccessPolicy, Actor, Capability, require
from ..errors import NotFound
from ..models import Assignment, AssignmentStatus, SchoolClass, Submission
from ..repository import Repository
from ..schemas import AssignmentCreate, AssignmentUpdate

logger = logging.getLogger(__name__)


class AssignmentService:
    def __init__(self, db, actor: Actor):
        self.db = db
        self.actor = actor
        self.repo = Repository(db)
        self.policy = AccessPolicy(db, actor)

    def _get(self, assignment_id: int) -> Assignment:
        assignment = self.repo.get_active_or_404(Assignment, assignment_id, "Assignment")
        if self.actor.is_student and assignment.status == AssignmentStatus.draft:
            # Drafts do not exist as far as students can tell
            raise NotFound(f"Assignment {assignment_id} not found")
        self.policy.ensure_assignment_view(assignment)
        return assignment

    def list_assignments(self, class_id: Optional[int] = None) -> List[Assignment]:
        require(self.actor, Capability.view_assignments)
        criteria = []
        if class_id is not None:
            criteria.append(Assignment.class_id == class_id)
        scope = self.policy.class_scope()
        if scope is not None:
            criteria.append(Assignment.class_id.in_(scope))
        if self.actor.is_student:
            criteria.append(Assignment.status != AssignmentStatus.draft)
        return self.repo.list_active(Assignment, *criteria, order_by=Assignment.created_at.desc())

    def get_assignment(self, assignment_id: int) -> Assignment:
        require(self.actor, Capability.view_assignments)
        return self._get(assignment_id)

    def assignment_detail(self, assignment_id: int) -> dict:
        """Assignment with its submissions; students only see their own."""
        assignment = self.get_assignment(assignment_id)
        query = self.db.query(Submission).filter(Submission.assignment_id == assignment.id)
        if self.actor.is_student:
            query = query.filter(Submission.student_id == self.actor.user_id)
        submissions = []
        for submission in query.order_by(Submission.created_at, Submission.id):
            student = submission.student
            submissions.append({
                "id": submission.id,
                "student_id": submission.student_id,
                "student_name": student.name if student is not None else None,
                "status": submission.status,
                "created_at": submission.created_at,
            })
        detail = {c.name: getattr(assignment, c.name) for c in Assignment.__table__.columns}
        detail["submissions"] = submissions
        return detail

    def create_assignment(self, data: AssignmentCreate) -> Assignment:
        require(self.actor, Capability.manage_assignments)
        self.repo.get_active_or_404(SchoolClass, data.class_id, "Class")
        self.policy.ensure_class_manager(data.class_id)
        if data.status == AssignmentStatus.completed:
            self.policy.ensure_class_lead(data.class_id)
        assignment = self.repo.add(Assignment(**data.model_dump(), creator_user_id=self.actor.user_id))
        logger.info(f"Created assignment {assignment.id} for class {assignment.class_id}")
        return assignment

    def update_assignment(self, assignment_id: int, data: AssignmentUpdate) -> Assignment:
        require(self.actor, Capability.manage_assignments)
        assignment = self.repo.get_active_or_404(Assignment, assignment_id, "Assignment")
        self.policy.ensure_assignment_manage(assignment)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("status") is None:
            changes.pop("status", None)
        elif changes["status"] == AssignmentStatus.completed and assignment.status != AssignmentStatus.completed:
            # Grading sign-off
            self.policy.ensure_class_lead(assignment.class_id)
        if changes.get("title") is None:
            changes.pop("title", None)
        for key, value in changes.items():
            setattr(assignment, key, value)
        assignment = self.repo.save(assignment)
        logger.info(f"Updated assignment {assignment.id}: {sorted(changes)}")
        return assignment

    def hide_assignment(self, assignment_id: int) -> None:
        require(self.actor, Capability.manage_assignments)
        assignment = self.repo.get_active_or_404(Assignment, assignment_id, "Assignment")
        self.policy.ensure_assignment_manage(assignment)
        self.repo.hide(assignment)
