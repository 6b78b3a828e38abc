"""Granting and revoking teacher authority over branches and classes."""
import enum
import logging
from typing import Dict, Iterable, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import InvalidStateError, NotFound
from ..models import (
    Branch,
    ClassLeadTeacher,
    SchoolClass,
    TeacherBranchAccess,
    TeacherClassAccess,
    User,
    UserRole,
)

logger = logging.getLogger(__name__)


class TeacherClassState(str, enum.Enum):
    """Relationship of one teacher to one class."""
    no_access = "no_access"
    access = "access"
    access_and_lead = "access_and_lead"

    @classmethod
    def from_flags(cls, has_access: bool, is_lead: bool) -> "TeacherClassState":
        if is_lead and not has_access:
            raise InvalidStateError("A lead teacher must also have access to the class")
        if is_lead:
            return cls.access_and_lead
        return cls.access if has_access else cls.no_access

    @property
    def has_access(self) -> bool:
        return self != TeacherClassState.no_access

    @property
    def is_lead(self) -> bool:
        return self == TeacherClassState.access_and_lead


# Allowed (current, target) pairs; staying in place is always allowed.
TRANSITIONS = {
    (TeacherClassState.no_access, TeacherClassState.access),
    (TeacherClassState.access, TeacherClassState.access_and_lead),
    (TeacherClassState.access_and_lead, TeacherClassState.access),
    (TeacherClassState.access, TeacherClassState.no_access),
    (TeacherClassState.access_and_lead, TeacherClassState.no_access),
}


class AuthorityService:
    def __init__(self, db: Session):
        self.db = db

    def _teacher(self, teacher_id: int) -> User:
        teacher = self.db.get(User, teacher_id)
        if teacher is None or teacher.role != UserRole.teacher:
            raise NotFound(f"Teacher {teacher_id} not found")
        return teacher

    def _ensure_exist(self, model, ids: Iterable[int], label: str) -> List[int]:
        wanted = sorted(set(ids))
        if not wanted:
            return []
        found = {row.id for row in self.db.query(model.id).filter(model.id.in_(wanted))}
        missing = [i for i in wanted if i not in found]
        if missing:
            raise NotFound(f"{label} not found: {', '.join(str(i) for i in missing)}")
        return wanted

    def class_state(self, teacher_id: int, class_id: int) -> TeacherClassState:
        has_access = self.db.query(
            self.db.query(TeacherClassAccess)
            .filter_by(teacher_id=teacher_id, class_id=class_id)
            .exists()
        ).scalar()
        is_lead = self.db.query(
            self.db.query(ClassLeadTeacher)
            .filter_by(teacher_id=teacher_id, class_id=class_id)
            .exists()
        ).scalar()
        if is_lead and not has_access:
            # Only reachable through rows written outside this service
            logger.warning(f"Teacher {teacher_id} is lead of class {class_id} without access")
        return TeacherClassState.from_flags(has_access, is_lead and has_access)

    def authority(self, teacher_id: int) -> Dict[str, List[int]]:
        self._teacher(teacher_id)
        branch_ids = [r.branch_id for r in self.db.query(TeacherBranchAccess.branch_id)
                      .filter_by(teacher_id=teacher_id).order_by(TeacherBranchAccess.branch_id)]
        class_ids = [r.class_id for r in self.db.query(TeacherClassAccess.class_id)
                     .filter_by(teacher_id=teacher_id).order_by(TeacherClassAccess.class_id)]
        lead_ids = [r.class_id for r in self.db.query(ClassLeadTeacher.class_id)
                    .filter_by(teacher_id=teacher_id).order_by(ClassLeadTeacher.class_id)]
        return {"branch_ids": branch_ids, "class_ids": class_ids, "lead_class_ids": lead_ids}

    def update_teacher_authority(
        self, teacher_id: int, branch_ids: Iterable[int], class_ids: Iterable[int]
    ) -> Dict[str, List[int]]:
        """Replace every branch and class grant of a teacher in one transaction.

        Lead flags on classes that lose access are dropped with the access.
        """
        self._teacher(teacher_id)
        branch_ids = self._ensure_exist(Branch, branch_ids, "Branches")
        class_ids = self._ensure_exist(SchoolClass, class_ids, "Classes")

        try:
            self.db.query(TeacherBranchAccess).filter(
                TeacherBranchAccess.teacher_id == teacher_id,
                TeacherBranchAccess.branch_id.notin_(branch_ids),
            ).delete(synchronize_session=False)
            self.db.query(TeacherClassAccess).filter(
                TeacherClassAccess.teacher_id == teacher_id,
                TeacherClassAccess.class_id.notin_(class_ids),
            ).delete(synchronize_session=False)
            self.db.query(ClassLeadTeacher).filter(
                ClassLeadTeacher.teacher_id == teacher_id,
                ClassLeadTeacher.class_id.notin_(class_ids),
            ).delete(synchronize_session=False)

            kept_branches = {r.branch_id for r in self.db.query(TeacherBranchAccess.branch_id)
                             .filter_by(teacher_id=teacher_id)}
            kept_classes = {r.class_id for r in self.db.query(TeacherClassAccess.class_id)
                            .filter_by(teacher_id=teacher_id)}
            self.db.add_all(
                TeacherBranchAccess(teacher_id=teacher_id, branch_id=b)
                for b in branch_ids if b not in kept_branches
            )
            self.db.add_all(
                TeacherClassAccess(teacher_id=teacher_id, class_id=c)
                for c in class_ids if c not in kept_classes
            )
            self.db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to update authority for teacher {teacher_id}: {e}")
            self.db.rollback()
            raise

        logger.info(f"Teacher {teacher_id} authority set to branches={branch_ids} classes={class_ids}")
        return self.authority(teacher_id)

    def set_class_teacher(
        self, class_id: int, teacher_id: int, has_access: bool, is_lead: bool
    ) -> TeacherClassState:
        """Drive the per-class teacher state machine to the requested state."""
        self._teacher(teacher_id)
        if self.db.get(SchoolClass, class_id) is None:
            raise NotFound(f"Class {class_id} not found")

        current = self.class_state(teacher_id, class_id)
        target = TeacherClassState.from_flags(has_access, is_lead)
        if current == target:
            return current
        if (current, target) not in TRANSITIONS:
            raise InvalidStateError(
                "Teacher must hold access to the class before being made lead"
                if target.is_lead else
                f"Cannot move teacher from {current.value} to {target.value}"
            )

        try:
            if target.has_access and not current.has_access:
                self.db.add(TeacherClassAccess(teacher_id=teacher_id, class_id=class_id))
            if not target.is_lead and current.is_lead:
                self.db.query(ClassLeadTeacher).filter_by(
                    teacher_id=teacher_id, class_id=class_id
                ).delete(synchronize_session=False)
            if not target.has_access and current.has_access:
                self.db.query(TeacherClassAccess).filter_by(
                    teacher_id=teacher_id, class_id=class_id
                ).delete(synchronize_session=False)
            if target.is_lead and not current.is_lead:
                self.db.add(ClassLeadTeacher(teacher_id=teacher_id, class_id=class_id))
            self.db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to update teacher {teacher_id} on class {class_id}: {e}")
            self.db.rollback()
            raise

        logger.info(f"Teacher {teacher_id} on class {class_id}: {current.value} -> {target.value}")
        return target

    def class_teachers(self, class_id: int) -> List[Dict]:
        """Teachers holding access to a class, with their lead flag."""
        leads = {r.teacher_id for r in self.db.query(ClassLeadTeacher.teacher_id).filter_by(class_id=class_id)}
        teachers = (
            self.db.query(User)
            .join(TeacherClassAccess, TeacherClassAccess.teacher_id == User.id)
            .filter(TeacherClassAccess.class_id == class_id)
            .order_by(User.id)
            .all()
        )
        return [{"teacher": t, "is_lead": t.id in leads, "has_access": True} for t in teachers]
