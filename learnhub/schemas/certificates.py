from datetime import datetime

from learnhub.schemas.common import CamelModel


class CertificateOut(CamelModel):
    id: int
    course_id: int
    course_title: str | None = None
    course_icon: str | None = None
    issued_at: datetime


class UserCertificatesResponse(CamelModel):
    user_id: int
    user_name: str | None = None
    certificates: list[CertificateOut]


class ProgressResult(CamelModel):
    success: bool = True
    new_certificate: CertificateOut | None = None

