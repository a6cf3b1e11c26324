from typing import Optional, Sequence

from fastapi import Depends, Header, HTTPException, status

from .config import get_settings


ADMIN = "admin"
PLANNER = "planner"
SUPPLIER = "supplier"
CUSTOMER = "customer"

ALL_ROLES = (ADMIN, PLANNER, SUPPLIER, CUSTOMER)
PLANNING_ROLES = (ADMIN, PLANNER)
ORDERING_ROLES = (ADMIN, PLANNER, CUSTOMER)
SUPPLIER_ROLES = (ADMIN, SUPPLIER)
FULFILMENT_ROLES = (ADMIN, PLANNER, SUPPLIER)


class UserContext:
    def __init__(self, api_key: str, role: str, user_id: Optional[str] = None):
        self.api_key = api_key
        self.role = role
        self.user_id = user_id


async def get_current_user(
    x_api_key: Optional[str] = Header(default=None, alias="X-API-Key"),
    x_role: Optional[str] = Header(default=None, alias="X-Role"),
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> UserContext:
    settings = get_settings()

    if x_api_key is None or x_api_key != settings.api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )

    role = (x_role or settings.default_role).lower()
    if role not in settings.allowed_roles:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Role not allowed",
        )

    return UserContext(api_key=x_api_key, role=role, user_id=x_user_id)


def require_role(required_roles: Sequence[str]):
    async def _dependency(user: UserContext = Depends(get_current_user)) -> UserContext:
        if user.role not in required_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{user.role}' is not permitted for this operation",
            )
        return user

    return _dependency
