from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from learnhub.api.deps import CurrentUser
from learnhub.db.session import get_db
from learnhub.schemas.certificates import CertificateOut, UserCertificatesResponse
from learnhub.services import certificate_service
from learnhub.services.access_policy import CourseAccessPolicy
from learnhub.services.user_service import get_user_or_404

router = APIRouter(prefix="/api/certificates", tags=["certificates"])


@router.get("/my", response_model=list[CertificateOut])
def my_certificates(current_user: CurrentUser, db: Session = Depends(get_db)) -> list[CertificateOut]:
    return certificate_service.list_for_user(db, current_user.id)


@router.get("/users/{user_id}", response_model=UserCertificatesResponse)
def user_certificates(user_id: int, current_user: CurrentUser, db: Session = Depends(get_db)) -> UserCertificatesResponse:
    CourseAccessPolicy(db).require_staff(current_user)
    user = get_user_or_404(db, user_id)
    return UserCertificatesResponse(
        user_id=user.id,
        user_name=user.name,
        certificates=certificate_service.list_for_user(db, user.id),
    )
