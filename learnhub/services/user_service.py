from sqlalchemy import select
from sqlalchemy.orm import Session

from learnhub.core.error_codes import ErrorCode
from learnhub.core.errors import ApiError
from learnhub.core.security import hash_password
from learnhub.models import Role, User
from learnhub.schemas.users import UserCreateRequest, UserUpdateRequest
from learnhub.services.auth_service import create_user, resolve_role_id


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise ApiError(status_code=404, code=ErrorCode.USER_NOT_FOUND, message="User not found")
    return user


def list_users(db: Session) -> list[User]:
    return list(db.execute(select(User).order_by(User.id.asc())).scalars().all())


def list_roles(db: Session) -> list[Role]:
    return list(db.execute(select(Role).order_by(Role.id.asc())).scalars().all())


def admin_create_user(db: Session, payload: UserCreateRequest) -> User:
    user = create_user(db, payload.email, payload.password, payload.name, payload.role)
    db.commit()
    db.refresh(user)
    return user


def update_user(db: Session, user_id: int, payload: UserUpdateRequest) -> User:
    if not payload.model_fields_set:
        raise ApiError(status_code=400, code=ErrorCode.NOTHING_TO_UPDATE, message="Nothing to update")

    user = get_user_or_404(db, user_id)
    if "name" in payload.model_fields_set:
        user.name = payload.name
    if payload.role is not None:
        user.role_id = resolve_role_id(db, payload.role)
    if payload.password:
        user.password_hash = hash_password(payload.password)
    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, user_id: int) -> None:
    user = get_user_or_404(db, user_id)
    db.delete(user)
    db.commit()
