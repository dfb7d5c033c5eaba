from fastapi import Depends, HTTPException, status

from app.auth.dependencies import get_current_user
from app.auth.schemas import CurrentUser


ATTENDANCE_WRITE_ROLES = ("SUPER_ADMIN", "ADMIN", "TEACHER")
ATTENDANCE_READ_ROLES = ATTENDANCE_WRITE_ROLES + ("STAFF",)


def require_roles(*roles: str):
    """
    Dependency factory to restrict an endpoint to the given roles.

    Example:
        Depends(require_roles(*ATTENDANCE_WRITE_ROLES))
    """

    async def _checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return _checker
