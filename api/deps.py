from typing import Optional

from fastapi import Header, Request

from app.container import Services
from domain.caller import Caller
from domain.errors import Unauthorized

ADMIN_ROLE = "admin"


def get_caller(x_user_id: Optional[str] = Header(default=None),
               x_user_role: Optional[str] = Header(default=None)) -> Caller:
    """Identity as forwarded by the upstream auth provider."""
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise Unauthorized("missing caller identity")
    return Caller(user_id=user_id, is_admin=(x_user_role or "").strip().lower() == ADMIN_ROLE)


def get_services(request: Request) -> Services:
    return request.app.state.services
