"""Directory of branches, classes, teachers, students and option lists."""
import logging
from typing import List, Optional, Type, Union

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ..access import AccessPolicy, Actor, AuthorityService, Capability, TeacherClassState, require
from ..auth import AuthService, hash_password
from ..errors import ConflictError, Forbidden, NotFound
from ..models import (
    AgeGroup,
    Branch,
    EnglishLevel,
    Lifecycle,
    SchoolClass,
    StudentClassAccess,
    TeacherClassAccess,
    User,
    UserRole,
)
from ..repository import Repository
from ..schemas import (
    BranchCreate,
    BranchUpdate,
    ClassCreate,
    ClassUpdate,
    OptionCreate,
    UserCreate,
    UserUpdate,
)

logger = logging.getLogger(__name__)

OptionModel = Union[Type[EnglishLevel], Type[AgeGroup]]


class DirectoryService:
    """Role-gated directory operations for one acting user."""

    def __init__(self, db, actor: Actor):
        self.db = db
        self.actor = actor
        self.repo = Repository(db)
        self.policy = AccessPolicy(db, actor)

    # -------- Branches --------
    def list_branches(self) -> List[Branch]:
        require(self.actor, Capability.view_directory)
        scope = self.policy.branch_scope()
        if scope is None:
            return self.repo.list_active(Branch)
        return self.repo.list_active(Branch, Branch.id.in_(scope))

    def get_branch(self, branch_id: int) -> Branch:
        require(self.actor, Capability.view_directory)
        branch = self.repo.get_active_or_404(Branch, branch_id, "Branch")
        scope = self.policy.branch_scope()
        if scope is not None and branch.id not in scope:
            raise Forbidden("No access to this branch")
        return branch

    def create_branch(self, data: BranchCreate) -> Branch:
        require(self.actor, Capability.manage_directory)
        branch = self.repo.add(Branch(name=data.name, address=data.address))
        logger.info(f"Created branch {branch.id}")
        return branch

    def update_branch(self, branch_id: int, data: BranchUpdate) -> Branch:
        require(self.actor, Capability.manage_directory)
        branch = self.repo.get_active_or_404(Branch, branch_id, "Branch")
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(branch, key, value)
        return self.repo.save(branch)

    def hide_branch(self, branch_id: int) -> None:
        require(self.actor, Capability.manage_directory)
        self.repo.hide(self.repo.get_active_or_404(Branch, branch_id, "Branch"))

    # -------- Classes --------
    def list_classes(self, branch_id: Optional[int] = None) -> List[SchoolClass]:
        criteria = []
        if branch_id is not None:
            criteria.append(SchoolClass.branch_id == branch_id)
        scope = self.policy.class_scope()
        if scope is not None:
            criteria.append(SchoolClass.id.in_(scope))
        return self.repo.list_active(SchoolClass, *criteria)

    def get_class(self, class_id: int) -> SchoolClass:
        school_class = self.repo.get_active_or_404(SchoolClass, class_id, "Class")
        self.policy.ensure_class(class_id)
        return school_class

    def _check_branch(self, branch_id: Optional[int]) -> None:
        if branch_id is not None:
            self.repo.get_active_or_404(Branch, branch_id, "Branch")

    def create_class(self, data: ClassCreate) -> SchoolClass:
        require(self.actor, Capability.manage_directory)
        self._check_branch(data.branch_id)
        school_class = self.repo.add(SchoolClass(**data.model_dump()))
        logger.info(f"Created class {school_class.id}")
        return school_class

    def update_class(self, class_id: int, data: ClassUpdate) -> SchoolClass:
        require(self.actor, Capability.manage_directory)
        school_class = self.repo.get_active_or_404(SchoolClass, class_id, "Class")
        changes = data.model_dump(exclude_unset=True)
        self._check_branch(changes.get("branch_id"))
        for key, value in changes.items():
            setattr(school_class, key, value)
        return self.repo.save(school_class)

    def hide_class(self, class_id: int) -> None:
        require(self.actor, Capability.manage_directory)
        self.repo.hide(self.repo.get_active_or_404(SchoolClass, class_id, "Class"))

    def class_teachers(self, class_id: int) -> List[dict]:
        require(self.actor, Capability.view_directory)
        self.get_class(class_id)
        return AuthorityService(self.db).class_teachers(class_id)

    def set_class_teacher(
        self, class_id: int, teacher_id: int, has_access: bool, is_lead: bool
    ) -> TeacherClassState:
        require(self.actor, Capability.manage_authority)
        self.repo.get_active_or_404(SchoolClass, class_id, "Class")
        return AuthorityService(self.db).set_class_teacher(class_id, teacher_id, has_access, is_lead)

    def class_students(self, class_id: int) -> List[User]:
        require(self.actor, Capability.view_directory)
        self.repo.get_active_or_404(SchoolClass, class_id, "Class")
        self.policy.ensure_class_manager(class_id)
        enrolled = select(StudentClassAccess.student_id).where(StudentClassAccess.class_id == class_id)
        return self.repo.list_active(User, User.id.in_(enrolled))

    def _student(self, student_id: int) -> User:
        student = self.repo.get_active_or_404(User, student_id, "Student")
        if student.role != UserRole.student:
            raise NotFound(f"Student {student_id} not found")
        return student

    def enroll_student(self, class_id: int, student_id: int) -> None:
        require(self.actor, Capability.enroll_students)
        self.repo.get_active_or_404(SchoolClass, class_id, "Class")
        self.policy.ensure_class_manager(class_id)
        self._student(student_id)
        exists = self.db.query(StudentClassAccess).filter_by(student_id=student_id, class_id=class_id).first()
        if exists is None:
            self.repo.add(StudentClassAccess(student_id=student_id, class_id=class_id))
            logger.info(f"Enrolled student {student_id} in class {class_id}")

    def unenroll_student(self, class_id: int, student_id: int) -> None:
        require(self.actor, Capability.enroll_students)
        self.repo.get_active_or_404(SchoolClass, class_id, "Class")
        self.policy.ensure_class_manager(class_id)
        removed = (
            self.db.query(StudentClassAccess)
            .filter_by(student_id=student_id, class_id=class_id)
            .delete(synchronize_session=False)
        )
        self.repo.commit()
        if removed:
            logger.info(f"Removed student {student_id} from class {class_id}")

    # -------- Users --------
    def _create_user(self, data: UserCreate, role: UserRole) -> User:
        require(self.actor, Capability.manage_directory)
        self._check_branch(data.branch_id)
        return AuthService(self.db).register_user(data.model_copy(update={"role": role}))

    def _update_user(self, user: User, data: UserUpdate) -> User:
        changes = data.model_dump(exclude_unset=True)
        if "password" in changes:
            password = changes.pop("password")
            if password:
                user.password_hash = hash_password(password)
        for required in ("email", "name"):
            if changes.get(required) is None:
                changes.pop(required, None)
        if "email" in changes:
            changes["email"] = changes["email"].lower()
        self._check_branch(changes.get("branch_id"))
        for key, value in changes.items():
            setattr(user, key, value)
        try:
            return self.repo.save(user)
        except IntegrityError:
            raise ConflictError("Email already in use")

    def _teacher(self, teacher_id: int) -> User:
        teacher = self.repo.get_active_or_404(User, teacher_id, "Teacher")
        if teacher.role != UserRole.teacher:
            raise NotFound(f"Teacher {teacher_id} not found")
        return teacher

    def list_teachers(self) -> List[User]:
        require(self.actor, Capability.manage_directory)
        return self.repo.list_active(User, User.role == UserRole.teacher)

    def create_teacher(self, data: UserCreate) -> User:
        return self._create_user(data, UserRole.teacher)

    def get_teacher(self, teacher_id: int) -> dict:
        """Teacher profile with branch, class and lead-class grants."""
        if self.actor.user_id != teacher_id:
            require(self.actor, Capability.manage_directory)
        teacher = self._teacher(teacher_id)
        authority = AuthorityService(self.db).authority(teacher_id)
        return {**{c.name: getattr(teacher, c.name) for c in User.__table__.columns}, **authority}

    def update_teacher(self, teacher_id: int, data: UserUpdate) -> User:
        require(self.actor, Capability.manage_directory)
        return self._update_user(self._teacher(teacher_id), data)

    def hide_teacher(self, teacher_id: int) -> None:
        require(self.actor, Capability.manage_directory)
        self.repo.hide(self._teacher(teacher_id))

    def update_teacher_authority(self, teacher_id: int, branch_ids: List[int], class_ids: List[int]) -> dict:
        require(self.actor, Capability.manage_authority)
        self._teacher(teacher_id)
        return AuthorityService(self.db).update_teacher_authority(teacher_id, branch_ids, class_ids)

    def list_students(self) -> List[User]:
        require(self.actor, Capability.view_directory)
        criteria = [User.role == UserRole.student]
        scope = self.policy.class_scope()
        if scope is not None:
            enrolled = select(StudentClassAccess.student_id).where(StudentClassAccess.class_id.in_(scope))
            criteria.append(User.id.in_(enrolled))
        return self.repo.list_active(User, *criteria)

    def create_student(self, data: UserCreate) -> User:
        return self._create_user(data, UserRole.student)

    def _ensure_student_view(self, student_id: int) -> None:
        if self.actor.is_admin or self.actor.user_id == student_id:
            return
        if self.actor.is_teacher:
            shared = (
                self.db.query(StudentClassAccess)
                .join(TeacherClassAccess, TeacherClassAccess.class_id == StudentClassAccess.class_id)
                .filter(
                    StudentClassAccess.student_id == student_id,
                    TeacherClassAccess.teacher_id == self.actor.user_id,
                )
            )
            if self.db.query(shared.exists()).scalar():
                return
        raise Forbidden("No access to this student")

    def get_student(self, student_id: int) -> User:
        student = self._student(student_id)
        self._ensure_student_view(student_id)
        return student

    def update_student(self, student_id: int, data: UserUpdate) -> User:
        student = self._student(student_id)
        if self.actor.user_id != student_id:
            require(self.actor, Capability.manage_directory)
        return self._update_user(student, data)

    def hide_student(self, student_id: int) -> None:
        require(self.actor, Capability.manage_directory)
        self.repo.hide(self._student(student_id))

    # -------- Option lists --------
    def list_options(self, model: OptionModel) -> list:
        require(self.actor, Capability.view_options)
        return self.repo.list_active(model, order_by=model.name)

    def create_option(self, model: OptionModel, data: OptionCreate):
        require(self.actor, Capability.manage_directory)
        existing = self.db.query(model).filter(model.name == data.name).first()
        if existing is not None:
            if existing.hidden:
                existing.lifecycle = Lifecycle.active
                return self.repo.save(existing)
            raise ConflictError(f"'{data.name}' already exists")
        return self.repo.add(model(name=data.name))

    def hide_option(self, model: OptionModel, option_id: int) -> None:
        require(self.actor, Capability.manage_directory)
        self.repo.hide(self.repo.get_active_or_404(model, option_id))
