from sqlalchemy import select
from sqlalchemy.orm import Session

from learnhub.core.config import get_settings
from learnhub.core.error_codes import ErrorCode
from learnhub.core.errors import ApiError
from learnhub.core.security import create_access_token, hash_password, now_utc, verify_password
from learnhub.models import User
from learnhub.schemas.auth import LoginResponse, UserOut
from learnhub.services.access_policy import role_id_for, role_name

settings = get_settings()


def normalize_email(email: str) -> str:
    return email.lower().strip()


def user_out(db: Session, user: User) -> UserOut:
    return UserOut(
        id=user.id,
        email=user.email,
        name=user.name,
        role_id=user.role_id,
        role=role_name(db, user.role_id),
        created_at=user.created_at,
        last_login_at=user.last_login_at,
    )


def resolve_role_id(db: Session, role: str) -> int:
    role_id = role_id_for(db, role.strip().lower())
    if role_id is None:
        raise ApiError(status_code=400, code=ErrorCode.INVALID_ROLE, message="Invalid role name")
    return role_id


def create_user(db: Session, email: str, password: str, name: str | None, role: str) -> User:
    """Insert a user with a hashed password; the caller commits."""
    email = normalize_email(email)
    exists = db.execute(select(User.id).where(User.email == email)).first()
    if exists:
        raise ApiError(status_code=409, code=ErrorCode.EMAIL_ALREADY_REGISTERED, message="Email already in use")

    user = User(
        email=email,
        name=name,
        password_hash=hash_password(password),
        role_id=resolve_role_id(db, role),
    )
    db.add(user)
    db.flush()
    return user


def issue_token(user: User) -> str:
    return create_access_token(
        str(user.id),
        extra={"id": user.id, "email": user.email, "name": user.name, "role_id": user.role_id},
    )


def login(db: Session, email: str, password: str) -> LoginResponse:
    user = db.execute(select(User).where(User.email == normalize_email(email))).scalars().first()
    if not user or not verify_password(password, user.password_hash):
        raise ApiError(status_code=401, code=ErrorCode.INVALID_CREDENTIALS, message="Invalid email or password")

    user.last_login_at = now_utc()
    db.commit()
    db.refresh(user)

    return LoginResponse(
        token=issue_token(user),
        expires_in=settings.access_token_expire_seconds,
        user=user_out(db, user),
    )
