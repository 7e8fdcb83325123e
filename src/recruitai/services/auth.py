"""Caller identity and role checks.

Sessions are verified by the platform gateway, which forwards the caller's
identity in headers. This module only interprets that identity.
"""

from dataclasses import dataclass
import enum
from typing import Iterable, Optional

from recruitai.utils.errors import AccessDenied


class Role(str, enum.Enum):
    CANDIDATE = "candidate"
    RECRUITER = "recruiter"
    INTERVIEWER = "interviewer"
    COMPANY_ADMIN = "company_admin"
    SUPER_ADMIN = "super_admin"


ADMIN_ROLES = (Role.COMPANY_ADMIN, Role.SUPER_ADMIN)


@dataclass(frozen=True)
class CurrentUser:
    id: str
    role: Role
    company_id: Optional[str] = None


def has_any_role(user: Optional[CurrentUser], roles: Iterable[Role]) -> bool:
    """True when the user holds one of ``roles``. An anonymous caller holds none."""
    if user is None:
        return False
    return user.role in set(roles)


def can_access_job(user: CurrentUser, owner_id: str, owner_company_id: Optional[str]) -> bool:
    """Owner, super admin, or a company admin of the owner's company."""
    if user.id == owner_id or has_any_role(user, [Role.SUPER_ADMIN]):
        return True
    return (
        has_any_role(user, [Role.COMPANY_ADMIN])
        and owner_company_id is not None
        and user.company_id == owner_company_id
    )


def notification_scope(user: CurrentUser, target_type: str, target: Optional[str]) -> Optional[str]:
    """Company a notification sent by ``user`` is confined to.

    Super admins send unscoped. Company admins reach only their own company,
    so they cannot broadcast or target another company; anyone else may not
    send at all.

    Raises:
        AccessDenied: the sender may not reach that target.
    """
    if has_any_role(user, [Role.SUPER_ADMIN]):
        return None
    if not has_any_role(user, [Role.COMPANY_ADMIN]) or user.company_id is None:
        raise AccessDenied()
    if target_type == "broadcast":
        raise AccessDenied("Only super admins can broadcast")
    if target_type == "company" and target != user.company_id:
        raise AccessDenied("Company admins can only notify their own company")
    return user.company_id


__all__ = [
    "Role",
    "ADMIN_ROLES",
    "CurrentUser",
    "has_any_role",
    "can_access_job",
    "notification_scope",
]
