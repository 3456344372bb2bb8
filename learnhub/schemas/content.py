from pydantic import BaseModel, ConfigDict, Field


class InlineQuizQuestion(BaseModel):
    model_config = ConfigDict(extra="allow")

    question: str
    options: list[str] = Field(default_factory=list)
    correct: list[int] = Field(default_factory=list)


class InlineQuiz(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: str | None = None
    questions: list[InlineQuizQuestion] = Field(default_factory=list)


class NodeContent(BaseModel):
    """Hub/task content payload.

    Known keys are typed; anything else a client stored is kept as-is so the
    JSON round-trips unchanged.
    """

    model_config = ConfigDict(extra="allow")

    html: str | None = None
    youtube: list[str] | None = None
    images: list[str] | None = None
    quiz: InlineQuiz | None = None

    def to_payload(self) -> dict:
        return self.model_dump(exclude_none=True)


class ContentResponse(BaseModel):
    id: int
    payload: NodeContent
