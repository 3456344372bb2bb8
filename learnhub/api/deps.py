from typing import Annotated

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from learnhub.core.error_codes import ErrorCode
from learnhub.core.errors import ApiError
from learnhub.core.security import decode_access_token
from learnhub.db.session import get_db
from learnhub.models import User

bearer_scheme = HTTPBearer(auto_error=False)


def user_from_token(db: Session, token: str) -> User:
    try:
        payload = decode_access_token(token)
        user_id = payload.get("sub")
        if payload.get("type") != "access" or not user_id:
            raise ApiError(status_code=401, code=ErrorCode.INVALID_TOKEN, message="Invalid token")
    except jwt.PyJWTError as exc:
        raise ApiError(status_code=401, code=ErrorCode.INVALID_TOKEN, message="Invalid or expired token") from exc

    try:
        user = db.get(User, int(user_id))
    except (TypeError, ValueError) as exc:
        raise ApiError(status_code=401, code=ErrorCode.INVALID_TOKEN, message="Invalid token") from exc
    if not user:
        raise ApiError(status_code=401, code=ErrorCode.INVALID_USER, message="User not found")
    return user


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None:
        raise ApiError(status_code=401, code=ErrorCode.UNAUTHORIZED, message="Missing authorization token")
    return user_from_token(db, credentials.credentials)


CurrentUser = Annotated[User, Depends(get_current_user)]
