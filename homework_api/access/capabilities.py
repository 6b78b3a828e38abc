"""Role capabilities and the acting-user context passed into core operations."""
import enum
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional

from ..errors import AuthenticationRequired, Forbidden
from ..models.enums import UserRole


class Capability(str, enum.Enum):
    view_directory = "view_directory"
    manage_directory = "manage_directory"
    manage_authority = "manage_authority"
    enroll_students = "enroll_students"
    view_options = "view_options"
    view_assignments = "view_assignments"
    manage_assignments = "manage_assignments"
    view_submissions = "view_submissions"
    upload_submission = "upload_submission"
    review_submissions = "review_submissions"
    comment = "comment"


ROLE_CAPABILITIES: Dict[UserRole, FrozenSet[Capability]] = {
    UserRole.admin: frozenset(Capability),
    UserRole.teacher: frozenset({
        Capability.view_directory,
        Capability.enroll_students,
        Capability.view_options,
        Capability.view_assignments,
        Capability.manage_assignments,
        Capability.view_submissions,
        Capability.upload_submission,
        Capability.review_submissions,
        Capability.comment,
    }),
    UserRole.student: frozenset({
        Capability.view_options,
        Capability.view_assignments,
        Capability.view_submissions,
        Capability.upload_submission,
        Capability.comment,
    }),
}


@dataclass(frozen=True)
class Actor:
    """The authenticated user performing an operation."""
    user_id: int
    role: UserRole
    email: str = ""
    name: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin

    @property
    def is_teacher(self) -> bool:
        return self.role == UserRole.teacher

    @property
    def is_student(self) -> bool:
        return self.role == UserRole.student

    def can(self, capability: Capability) -> bool:
        return capability in ROLE_CAPABILITIES.get(self.role, frozenset())


def require(actor: Optional[Actor], capability: Capability) -> Actor:
    """Reject anonymous actors with 401 and actors lacking ``capability`` with 403."""
    if actor is None:
        raise AuthenticationRequired()
    if not actor.can(capability):
        raise Forbidden(f"Role {actor.role.value} may not {capability.value.replace('_', ' ')}")
    return actor
