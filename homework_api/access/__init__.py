"""Access control: role capabilities, scoped checks and authority grants."""
from .capabilities import Actor, Capability, ROLE_CAPABILITIES, require
from .policy import AccessPolicy
from .service import AuthorityService, TeacherClassState

__all__ = [
    "Actor",
    "Capability",
    "ROLE_CAPABILITIES",
    "require",
    "AccessPolicy",
    "AuthorityService",
    "TeacherClassState",
]
