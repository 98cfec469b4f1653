import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from scrapyard.db import get_db
from scrapyard.models.user import User
from scrapyard.schemas import UserCreate, UserOut, UserUpdate
from scrapyard.utils.enums import UserRole
from scrapyard.utils.security import hash_password

logger = logging.getLogger("scrapyard.users")
router = APIRouter(prefix="/api/users", tags=["admin-users"])

ROLES = [r.value for r in UserRole]


def _check_role(role: str):
    if role not in ROLES:
        raise HTTPException(status_code=400, detail=f"Unknown role {role!r}")


def _check_unique(db: Session, username: str = None, email: str = None, exclude_id: int = None):
    q = db.query(User)
    if exclude_id is not None:
        q = q.filter(User.id != exclude_id)
    if username is not None and q.filter(User.username == username).first():
        raise HTTPException(status_code=409, detail="User with this username already exists")
    if email is not None and q.filter(User.email == email).first():
        raise HTTPException(status_code=409, detail="User with this email already exists")


@router.get("", response_model=List[UserOut])
def list_users(db: Session = Depends(get_db)):
    return db.query(User).order_by(User.id).all()


@router.post("", response_model=UserOut, status_code=201)
def create_user(body: UserCreate, db: Session = Depends(get_db)):
    _check_role(body.role)
    _check_unique(db, username=body.username, email=body.email)

    user = User(
        username=body.username,
        email=body.email,
        name=body.name,
        role=body.role,
        password_hash=hash_password(body.password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("user %s created with role %s", user.username, user.role)
    return user


@router.patch("/{user_id}", response_model=UserOut)
def update_user(user_id: int, body: UserUpdate, db: Session = Depends(get_db)):
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    data = body.model_dump(exclude_unset=True)
    if data.get("role") is not None:
        _check_role(data["role"])
    _check_unique(db, username=data.get("username"), email=data.get("email"), exclude_id=user_id)

    password = data.pop("password", None)
    for name, value in data.items():
        if value is not None:
            setattr(user, name, value)
    if password:
        user.password_hash = hash_password(password)

    db.commit()
    db.refresh(user)
    logger.info("user %s updated", user.username)
    return user
