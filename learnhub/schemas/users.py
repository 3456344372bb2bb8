from pydantic import BaseModel, EmailStr, Field

from learnhub.schemas.auth import UserOut


class UserCreateRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    name: str | None = Field(default=None, max_length=100)
    role: str = Field(min_length=1, max_length=50)


class UserUpdateRequest(BaseModel):
    name: str | None = Field(default=None, max_length=100)
    role: str | None = None
    password: str | None = Field(default=None, min_length=6, max_length=128)


class UserListResponse(BaseModel):
    users: list[UserOut]


class UserDeletedResponse(BaseModel):
    message: str
    id: int


class RoleOut(BaseModel):
    id: int
    name: str


class RoleListResponse(BaseModel):
    roles: list[RoleOut]
