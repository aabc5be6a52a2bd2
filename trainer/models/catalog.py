"""
Catalog domain models: catalog identifiers, questions and their answers.
"""
import enum
from typing import Tuple

from pydantic import BaseModel, ConfigDict, field_validator


class CatalogType(str, enum.Enum):
    UBI = "UBI"
    SRC = "SRC"

    @property
    def filename(self) -> str:
        return f"{self.value}-Fragenkatalog.json"


class CompletionStatus(str, enum.Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Answer(BaseModel):
    """A single answer option of a question."""
    model_config = ConfigDict(frozen=True)

    text: str
    is_correct: bool


class Question(BaseModel):
    """Canonical question record as stored in a catalog file."""
    model_config = ConfigDict(frozen=True)

    id: str
    question: str
    answers: Tuple[Answer, ...]

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    def correct_answers(self) -> Tuple[Answer, ...]:
        return tuple(a for a in self.answers if a.is_correct)


class PresentationQuestion(Question):
    """A question whose answers have been reordered for display.

    Never validated against: correctness is always looked up on the
    canonical :class:`Question` by answer text.
    """
