"""Header-based caller identity for the Refunds API.

An upstream gateway authenticates callers and forwards ``X-User-Id`` and
``X-User-Role``. Routes depend on ``current_user`` or ``require_admin``.
"""

from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class AuthContext:
    user_id: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


def current_user(
    x_user_id: str = Header(default=""),
    x_user_role: str = Header(default="user"),
) -> AuthContext:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    return AuthContext(user_id=x_user_id, role=x_user_role.lower())


def require_admin(auth: AuthContext = Depends(current_user)) -> AuthContext:
    if not auth.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return auth
