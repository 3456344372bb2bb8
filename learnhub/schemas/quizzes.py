from datetime import datetime

from pydantic import BaseModel, Field

from learnhub.schemas.certificates import CertificateOut
from learnhub.schemas.common import CamelModel


class QuizOut(BaseModel):
    id: int
    course_id: int
    hub_id: int | None = None
    title: str
    description: str | None = None
    questions_per_attempt: int
    created_at: datetime | None = None
    updated_at: datetime | None = None
    course_title: str | None = None
    hub_title: str | None = None
    question_count: int | None = None


class AnswerOut(BaseModel):
    id: int
    question_id: int
    answer_text: str
    is_correct: bool
    order_index: int


class QuestionOut(BaseModel):
    id: int
    quiz_id: int
    question_text: str
    order_index: int
    answers: list[AnswerOut] = Field(default_factory=list)


class QuizWithQuestions(QuizOut):
    questions: list[QuestionOut]


class QuizResponse(BaseModel):
    quiz: QuizOut


class QuizDetailResponse(BaseModel):
    quiz: QuizWithQuestions


class QuizCreateRequest(CamelModel):
    course_id: int
    hub_id: int | None = None
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    questions_per_attempt: int


class QuizUpdateRequest(CamelModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    questions_per_attempt: int | None = None
    hub_id: int | None = None


class QuestionCreateRequest(CamelModel):
    question_text: str = Field(min_length=1)
    order_index: int = 0


class QuestionUpdateRequest(CamelModel):
    question_text: str | None = Field(default=None, min_length=1)
    order_index: int | None = None


class QuestionResponse(BaseModel):
    question: QuestionOut


class AnswerCreateRequest(CamelModel):
    answer_text: str = Field(min_length=1)
    is_correct: bool = False
    order_index: int = 0


class AnswerUpdateRequest(CamelModel):
    answer_text: str | None = Field(default=None, min_length=1)
    is_correct: bool | None = None
    order_index: int | None = None


class AnswerResponse(BaseModel):
    answer: AnswerOut


class AttemptAnswerOption(BaseModel):
    id: int
    answer_text: str


class AttemptQuestion(BaseModel):
    id: int
    question_text: str
    answers: list[AttemptAnswerOption]


class QuizStartResponse(CamelModel):
    attempt_id: int
    quiz_id: int
    hub_id: int
    questions: list[AttemptQuestion]


class SubmittedAnswer(CamelModel):
    question_id: int
    selected_answer_ids: list[int] = Field(default_factory=list)


class QuizSubmitRequest(CamelModel):
    hub_id: int
    attempt_id: int
    answers: list[SubmittedAnswer]


class QuizSubmitResponse(CamelModel):
    passed: bool
    score: int
    total: int
    new_certificate: CertificateOut | None = None
