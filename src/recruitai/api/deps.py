"""Request-scoped dependencies: service graph and caller identity."""

from typing import Optional

from fastapi import Depends, Header, Request

from recruitai.container import Services
from recruitai.services.auth import CurrentUser, Role, has_any_role
from recruitai.utils.errors import AccessDenied, AuthenticationRequired


def get_services(request: Request) -> Services:
    return request.app.state.services


async def get_current_user(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
    x_company_id: Optional[str] = Header(None),
) -> CurrentUser:
    """Identity forwarded by the gateway after it verified the session."""
    if not x_user_id or not x_user_role:
        raise AuthenticationRequired()
    try:
        role = Role(x_user_role.strip().lower())
    except ValueError:
        raise AuthenticationRequired() from None
    return CurrentUser(id=x_user_id, role=role, company_id=x_company_id or None)


def require_roles(*roles: Role):
    """Dependency that admits only callers holding one of ``roles``."""

    async def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not has_any_role(user, roles):
            raise AccessDenied()
        return user

    return dependency
