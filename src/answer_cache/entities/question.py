"""Question domain entity."""

from dataclasses import dataclass


@dataclass(frozen=True)
class QuestionEntity:
    """A question to answer plus the context it is asked in.

    Attributes:
        question: Raw question text (usually a transcription)
        session_id: Interview session the answer belongs to
        job_profile_id: Job profile the answer is tailored to
        job_profile: Free-text profile description added to the system prompt
        previous_qas: Earlier (question, answer) turns, oldest first
    """

    question: str
    session_id: str | None = None
    job_profile_id: str | None = None
    job_profile: str | None = None
    previous_qas: tuple[tuple[str, str], ...] = ()

    @property
    def previous_questions(self) -> list[str]:
        return [question for question, _ in self.previous_qas]
