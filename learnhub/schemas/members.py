from datetime import datetime
from typing import Literal

from pydantic import BaseModel

from learnhub.schemas.common import CamelModel


class CourseMember(BaseModel):
    id: int
    name: str | None = None
    email: str
    global_role: str | None = None
    role_in_course: Literal["teacher", "student"]
    is_owner: bool = False
    joined_at: datetime | None = None
    last_login_at: datetime | None = None
    total_tasks: int = 0
    completed_tasks: int = 0


class CourseMemberListResponse(BaseModel):
    members: list[CourseMember]


class AddMemberRequest(CamelModel):
    user_id: int
    role_in_course: Literal["teacher", "student"]
    is_owner: bool = False


class MemberMessageResponse(BaseModel):
    message: str


class AvailableUser(BaseModel):
    id: int
    name: str | None = None
    email: str
    global_role: str | None = None


class AvailableUserListResponse(BaseModel):
    users: list[AvailableUser]
