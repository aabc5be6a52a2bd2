"""
Catalog store: loads the question catalogs once and serves them read-only.
"""
import logging
from pathlib import Path
from typing import Dict, List, Mapping, Sequence, Tuple

from pydantic import TypeAdapter, ValidationError

from trainer.models.catalog import CatalogType, Question

logger = logging.getLogger(__name__)

_questions_adapter = TypeAdapter(List[Question])


class CatalogLoadError(RuntimeError):
    """A catalog file is missing, unreadable or malformed."""


class QuestionNotFoundError(LookupError):
    """The requested question id does not exist in the catalog."""

    def __init__(self, catalog: CatalogType, question_id: str):
        super().__init__(f"Question not found: {question_id} (catalog {catalog.value})")
        self.catalog = catalog
        self.question_id = question_id


def parse_catalog(raw: bytes, source: str = "<memory>") -> Tuple[Question, ...]:
    """Parse and validate one catalog document.

    Rejects documents that are not a JSON list of question records, that
    repeat a question id, or that contain a question without answers or
    without any answer flagged correct.
    """
    try:
        questions = _questions_adapter.validate_json(raw)
    except ValidationError as e:
        raise CatalogLoadError(f"Malformed catalog {source}: {e}") from e

    if not questions:
        raise CatalogLoadError(f"Catalog {source} contains no questions")

    seen = set()
    for q in questions:
        if q.id in seen:
            raise CatalogLoadError(f"Duplicate question id {q.id!r} in {source}")
        seen.add(q.id)
        if not q.answers:
            raise CatalogLoadError(f"Question {q.id!r} in {source} has no answers")
        if not q.correct_answers():
            raise CatalogLoadError(f"Question {q.id!r} in {source} has no correct answer")
    return tuple(questions)


class CatalogStore:
    """Immutable mapping from catalog identifier to its ordered questions."""

    def __init__(self, catalogs: Mapping[CatalogType, Sequence[Question]]):
        self._questions: Dict[CatalogType, Tuple[Question, ...]] = {
            t: tuple(qs) for t, qs in catalogs.items()
        }
        self._index: Dict[CatalogType, Dict[str, Question]] = {
            t: {q.id: q for q in qs} for t, qs in self._questions.items()
        }

    @classmethod
    def load(cls, directory: Path) -> "CatalogStore":
        """Read every catalog file from ``directory``.

        Raises :class:`CatalogLoadError` on the first catalog that cannot be
        loaded; the service must not start without all catalogs.
        """
        logger.info("Loading question catalogs from %s", directory)
        catalogs = {}
        for catalog in CatalogType:
            path = Path(directory) / catalog.filename
            try:
                raw = path.read_bytes()
            except OSError as e:
                logger.error("Failed to load question catalog: %s", path)
                raise CatalogLoadError(f"Failed to load question catalog: {path}") from e
            catalogs[catalog] = parse_catalog(raw, source=path.name)
            logger.info("Loaded %d questions for catalog: %s", len(catalogs[catalog]), catalog.value)
        logger.info("All question catalogs loaded successfully")
        return cls(catalogs)

    def catalogs(self) -> List[CatalogType]:
        return [t for t in CatalogType if t in self._questions]

    def questions(self, catalog: CatalogType) -> Tuple[Question, ...]:
        return self._questions[catalog]

    def total_count(self, catalog: CatalogType) -> int:
        return len(self._questions[catalog])

    def get_question(self, catalog: CatalogType, question_id: str) -> Question:
        try:
            return self._index[catalog][question_id]
        except KeyError:
            raise QuestionNotFoundError(catalog, question_id) from None
