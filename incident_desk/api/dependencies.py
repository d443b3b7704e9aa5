import uuid
from dataclasses import dataclass

import jwt
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from incident_desk.database import get_db
from incident_desk.models.base import UserRole
from incident_desk.models.user import User
from incident_desk.services import auth_service


@dataclass
class CurrentUser:
    user: User


def access_scope(current_user: CurrentUser) -> uuid.UUID | None:
    """Identity to restrict searches to, or None for privileged callers."""
    if current_user.user.is_privileged:
        return None
    return current_user.user.id


async def get_current_user(
    authorization: str | None = Header(None),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """Resolve the caller from a ``Bearer`` access token."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

    try:
        user_id = auth_service.user_id_from_access_token(authorization[7:])
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")

    user = await auth_service.get_active_user(db, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found or inactive")
    return CurrentUser(user=user)


def require_role(*roles: UserRole):
    """Dependency factory that checks if the current user has one of the required roles."""
    async def role_checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role {current_user.user.role.value} not authorized. Required: {[r.value for r in roles]}"
            )
        return current_user
    return role_checker
