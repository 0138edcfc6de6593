"""Request DTOs for API endpoints."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PreviousQA(BaseModel):
    """One earlier turn of the interview."""

    question: str = Field(..., description="Earlier question")
    answer: str = Field("", description="Answer given to it")


class AnswerRequest(BaseModel):
    """Request DTO for answering a question.

    Accepts camelCase (``sessionId``, ``previousQAs``) as well as snake_case.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    question: str = Field(..., description="The transcribed question", min_length=1)
    session_id: str | int | None = Field(None, description="Interview session for the history")
    job_profile_id: str | int | None = Field(
        None,
        description="Job profile the answer is tailored to (used for cache scoping)",
    )
    job_profile: str | None = Field(
        None,
        description="Free-text job profile appended to the system prompt",
    )
    previous_qas: list[PreviousQA] = Field(
        default_factory=list,
        alias="previousQAs",
        description="Earlier turns, oldest first; the last three are sent as context",
    )
    stream: bool = Field(False, description="Deliver the answer as server-sent events")
