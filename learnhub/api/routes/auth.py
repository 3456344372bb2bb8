from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from learnhub.api.deps import CurrentUser
from learnhub.db.session import get_db
from learnhub.schemas.auth import LoginRequest, LoginResponse, RegisterRequest, UserResponse
from learnhub.services import auth_service

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db)) -> UserResponse:
    user = auth_service.create_user(db, payload.email, payload.password, payload.name, payload.role)
    db.commit()
    db.refresh(user)
    return UserResponse(user=auth_service.user_out(db, user))


@router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)) -> LoginResponse:
    return auth_service.login(db, payload.email, payload.password)


@router.get("/me", response_model=UserResponse)
def me(current_user: CurrentUser, db: Session = Depends(get_db)) -> UserResponse:
    return UserResponse(user=auth_service.user_out(db, current_user))
