import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse
from fastapi import HTTPException, Request

from scrapyard.db import SessionLocal
from scrapyard.models.user import User
from scrapyard.utils.enums import UserRole

logger = logging.getLogger("scrapyard.rbac")

PROTECTED_PREFIXES = ("/api", "/admin")
PUBLIC_PREFIXES = ("/api/auth",)

ACCESS_MATRIX = {
    UserRole.ADMIN.value: ["*"],  # full access
    UserRole.YARD_STAFF.value: [
        "/api/inventory",
        "/api/lifecycle",
        "/api/lifecycle-updates",
        "/admin/lifecycle",
    ],
    UserRole.EXPORT_MANAGER.value: ["/api/lifecycle/stats", "/admin/lifecycle"],
}


def _matches(path: str, prefix: str) -> bool:
    # "/api/lifecycle" must not let "/api/lifecycle-updates" through
    return path == prefix or path.startswith(prefix + "/")


def _active_role(user_id: int):
    """Current role of an active user, or None if the user is gone or deactivated."""
    db = SessionLocal()
    try:
        user = db.get(User, user_id)
        if user is None or not user.is_active:
            return None
        return (user.role or "").strip().lower()
    finally:
        db.close()


def is_allowed(role: str, path: str) -> bool:
    allowed_paths = ACCESS_MATRIX.get(role, [])
    return "*" in allowed_paths or any(_matches(path, p) for p in allowed_paths)


class RBACMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if not any(_matches(path, p) for p in PROTECTED_PREFIXES):
            return await call_next(request)
        if any(_matches(path, p) for p in PUBLIC_PREFIXES):
            return await call_next(request)

        user_id = request.session.get("user_id")
        if user_id is None:
            return JSONResponse({"detail": "Not authenticated"}, status_code=401)

        # role and active flag are read fresh: deactivation or a role change applies at once
        role = _active_role(int(user_id))
        if role is None:
            request.session.clear()
            return JSONResponse({"detail": "Not authenticated"}, status_code=401)
        request.session["role"] = role

        if is_allowed(role, path):
            return await call_next(request)

        logger.warning("role %s denied %s %s", role, request.method, path)
        return JSONResponse({"detail": "Insufficient permissions"}, status_code=403)


# Dependency: acting user for audit entries
def current_user_id(request: Request) -> int:
    user_id = request.session.get("user_id")
    if user_id is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return int(user_id)
