import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from learnhub.api.routes import (
    activity,
    auth,
    certificates,
    course_members,
    courses,
    edges,
    hubs,
    questions,
    quizzes,
    student_quiz,
    tasks,
    users,
)
from learnhub.core.config import DEFAULT_JWT_SECRET, get_settings
from learnhub.core.error_codes import ErrorCode
from learnhub.core.errors import ApiError
from learnhub.core.logging import configure_logging
from learnhub.db.seed import seed_if_needed
from learnhub.db.session import SessionLocal

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger("learnhub.app")

app = FastAPI(title=settings.app_name, version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ApiError)
async def handle_api_error(_, exc: ApiError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(RequestValidationError)
async def handle_validation_error(_, exc: RequestValidationError):
    error = ApiError(
        status_code=400,
        code=ErrorCode.VALIDATION_ERROR,
        message="Invalid request",
        details={"errors": jsonable_encoder(exc.errors())},
    )
    return JSONResponse(status_code=400, content=error.to_body())


@app.exception_handler(IntegrityError)
async def handle_integrity_error(request: Request, exc: IntegrityError):
    logger.info("Integrity conflict on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=409,
        content=ApiError(409, ErrorCode.CONFLICT, "Resource conflicts with existing data").to_body(),
    )


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ApiError(500, ErrorCode.INTERNAL_ERROR, "Internal server error").to_body(),
    )


@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


@app.on_event("startup")
def on_startup() -> None:
    if settings.app_env == "production" and settings.jwt_secret == DEFAULT_JWT_SECRET:
        raise RuntimeError("JWT_SECRET must be set in production")

    if settings.seed_data:
        try:
            with SessionLocal() as db:
                seed_if_needed(db, demo_content=settings.seed_demo_content)
        except SQLAlchemyError as exc:
            raise RuntimeError("Database schema is not ready. Run: alembic upgrade head") from exc


app.include_router(auth.router)
app.include_router(users.router)
app.include_router(users.roles_router)
app.include_router(courses.router)
app.include_router(course_members.router)
app.include_router(hubs.router)
app.include_router(tasks.router)
app.include_router(edges.router)
app.include_router(quizzes.router)
app.include_router(questions.router)
app.include_router(student_quiz.router)
app.include_router(certificates.router)
app.include_router(activity.router)
