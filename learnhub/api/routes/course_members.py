from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from learnhub.api.deps import CurrentUser
from learnhub.db.session import get_db
from learnhub.schemas.members import (
    AddMemberRequest,
    AvailableUserListResponse,
    CourseMemberListResponse,
    MemberMessageResponse,
)
from learnhub.services import course_service

router = APIRouter(prefix="/api/course-members", tags=["course-members"])


@router.get("/users/for-course", response_model=AvailableUserListResponse)
def users_for_course(
    current_user: CurrentUser,
    exclude_course_id: int = Query(alias="excludeCourseId"),
    role: list[str] | None = Query(default=None),
    search: str | None = None,
    db: Session = Depends(get_db),
) -> AvailableUserListResponse:
    users = course_service.available_users(db, current_user, exclude_course_id, roles=role, search=search)
    return AvailableUserListResponse(users=users)


@router.get("/{course_id}/members", response_model=CourseMemberListResponse)
def list_members(
    course_id: int,
    current_user: CurrentUser,
    role: list[str] | None = Query(default=None),
    search: str | None = None,
    db: Session = Depends(get_db),
) -> CourseMemberListResponse:
    members = course_service.list_members(db, current_user, course_id, roles=role, search=search)
    return CourseMemberListResponse(members=members)


@router.post("/{course_id}/members", response_model=MemberMessageResponse, status_code=status.HTTP_201_CREATED)
def add_member(
    course_id: int,
    payload: AddMemberRequest,
    current_user: CurrentUser,
    db: Session = Depends(get_db),
) -> MemberMessageResponse:
    course_service.add_member(db, current_user, course_id, payload)
    return MemberMessageResponse(message="User added to course successfully")


@router.delete("/{course_id}/members/{user_id}", response_model=MemberMessageResponse)
def remove_member(
    course_id: int,
    user_id: int,
    current_user: CurrentUser,
    db: Session = Depends(get_db),
) -> MemberMessageResponse:
    course_service.remove_member(db, current_user, course_id, user_id)
    return MemberMessageResponse(message="User removed from course successfully")
