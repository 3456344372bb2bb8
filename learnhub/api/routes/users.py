from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from learnhub.api.deps import CurrentUser
from learnhub.db.session import get_db
from learnhub.schemas.auth import UserResponse
from learnhub.schemas.users import (
    RoleListResponse,
    RoleOut,
    UserCreateRequest,
    UserDeletedResponse,
    UserListResponse,
    UserUpdateRequest,
)
from learnhub.services import user_service
from learnhub.services.access_policy import CourseAccessPolicy
from learnhub.services.auth_service import user_out

router = APIRouter(prefix="/api/users", tags=["users"])
roles_router = APIRouter(prefix="/api/roles", tags=["users"])


@router.get("", response_model=UserListResponse)
def list_users(current_user: CurrentUser, db: Session = Depends(get_db)) -> UserListResponse:
    CourseAccessPolicy(db).require_admin(current_user)
    return UserListResponse(users=[user_out(db, u) for u in user_service.list_users(db)])


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreateRequest, current_user: CurrentUser, db: Session = Depends(get_db)) -> UserResponse:
    CourseAccessPolicy(db).require_admin(current_user)
    user = user_service.admin_create_user(db, payload)
    return UserResponse(user=user_out(db, user))


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    payload: UserUpdateRequest,
    current_user: CurrentUser,
    db: Session = Depends(get_db),
) -> UserResponse:
    CourseAccessPolicy(db).require_admin(current_user)
    user = user_service.update_user(db, user_id, payload)
    return UserResponse(user=user_out(db, user))


@router.delete("/{user_id}", response_model=UserDeletedResponse)
def delete_user(user_id: int, current_user: CurrentUser, db: Session = Depends(get_db)) -> UserDeletedResponse:
    CourseAccessPolicy(db).require_admin(current_user)
    user_service.delete_user(db, user_id)
    return UserDeletedResponse(message="User deleted", id=user_id)


@roles_router.get("", response_model=RoleListResponse)
def list_roles(current_user: CurrentUser, db: Session = Depends(get_db)) -> RoleListResponse:
    CourseAccessPolicy(db).require_admin(current_user)
    return RoleListResponse(roles=[RoleOut(id=r.id, name=r.name) for r in user_service.list_roles(db)])
