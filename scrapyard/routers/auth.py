import logging
import time

from fastapi import APIRouter, Request, Depends, HTTPException
from sqlalchemy.orm import Session

from scrapyard.db import get_db
from scrapyard.models.user import User
from scrapyard.schemas import LoginIn, UserOut
from scrapyard.utils.security import verify_password

logger = logging.getLogger("scrapyard.auth")
router = APIRouter(prefix="/api/auth", tags=["auth"])

# failed-login throttling, per client IP
MAX_ATTEMPTS = 5          # failed attempts allowed inside the window
BLOCK_TIME = 60           # seconds


class LoginThrottle:
    """Counts failed logins per IP; an IP with MAX_ATTEMPTS recent failures is blocked."""

    def __init__(self, max_attempts: int = MAX_ATTEMPTS, window: float = BLOCK_TIME):
        self.max_attempts = max_attempts
        self.window = window
        self.attempts = {}  # { "ip": {"count": int, "last": timestamp} }

    def _prune(self, now: float):
        expired = [ip for ip, a in self.attempts.items() if now - a["last"] > self.window]
        for ip in expired:
            del self.attempts[ip]

    def allowed(self, ip: str) -> bool:
        now = time.time()
        self._prune(now)
        data = self.attempts.get(ip)
        return not data or data["count"] < self.max_attempts

    def failed(self, ip: str):
        now = time.time()
        self._prune(now)
        data = self.attempts.setdefault(ip, {"count": 0, "last": now})
        data["count"] += 1
        data["last"] = now

    def succeeded(self, ip: str):
        self.attempts.pop(ip, None)

    def clear(self):
        self.attempts.clear()


throttle = LoginThrottle()


@router.post("/login", response_model=UserOut)
def login(request: Request, body: LoginIn, db: Session = Depends(get_db)):
    client_ip = request.client.host if request.client else "unknown"

    if not throttle.allowed(client_ip):
        raise HTTPException(status_code=429, detail="Too many attempts. Wait a minute.")

    user = db.query(User).filter(User.username == body.username).first()
    if not user or not verify_password(body.password, user.password_hash):
        throttle.failed(client_ip)
        logger.warning("failed login for %r from %s", body.username, client_ip)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account is inactive")

    throttle.succeeded(client_ip)

    request.session["user_id"] = user.id
    request.session["role"] = (user.role or "").strip().lower()
    logger.info("login: %s role=%s", user.username, user.role)
    return user


@router.post("/logout", status_code=204)
def logout(request: Request):
    request.session.clear()


@router.get("/whoami")
def whoami(request: Request):
    return {"userId": request.session.get("user_id"), "role": request.session.get("role")}
