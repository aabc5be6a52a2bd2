"""
Quiz engine: question selection, answer shuffling, validation and
completion detection on top of the catalog store and session progress.
"""
import logging
import random
from dataclasses import dataclass
from typing import AbstractSet, Optional

from trainer.models.catalog import CatalogType, CompletionStatus, PresentationQuestion, Question
from trainer.services.catalog_store import CatalogStore
from trainer.services.progress import SessionProgress

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuizTurn:
    """Outcome of asking for the next question of a catalog."""
    catalog: CatalogType
    question: Optional[PresentationQuestion]
    answered_count: int
    total_count: int

    @property
    def completed(self) -> bool:
        return self.question is None


@dataclass(frozen=True)
class AnswerOutcome:
    correct: bool
    status: Optional[CompletionStatus] = None

    @property
    def completed(self) -> bool:
        return self.status is CompletionStatus.COMPLETED


class QuizEngine:
    def __init__(self, catalogs: CatalogStore, rng: Optional[random.Random] = None):
        self.catalogs = catalogs
        self.rng = rng or random.Random()

    def total_questions(self, catalog: CatalogType) -> int:
        return self.catalogs.total_count(catalog)

    def is_complete(self, catalog: CatalogType, answered_count: int) -> bool:
        # stale ids can push the count past the total
        return answered_count >= self.total_questions(catalog)

    def shuffle_answers(self, question: Question) -> PresentationQuestion:
        """Copy ``question`` with its answers in a uniformly random order."""
        answers = list(question.answers)
        self.rng.shuffle(answers)
        return PresentationQuestion(id=question.id, question=question.question, answers=tuple(answers))

    def select_question(self, catalog: CatalogType, answered_ids: AbstractSet[str]) -> Optional[PresentationQuestion]:
        """Pick a random unanswered question and shuffle its answers.

        Returns ``None`` when every question of the catalog has been
        answered; callers treat that as "catalog complete", not as an error.
        """
        unanswered = [q for q in self.catalogs.questions(catalog) if q.id not in answered_ids]
        if not unanswered:
            return None
        return self.shuffle_answers(self.rng.choice(unanswered))

    def validate_answer(self, catalog: CatalogType, question_id: str, answer_text: str) -> bool:
        """Check ``answer_text`` against the canonical question.

        Matching is by exact answer text so the presentation order never
        matters. Unknown text is simply wrong; an unknown question id raises
        :class:`~trainer.services.catalog_store.QuestionNotFoundError`.
        """
        question = self.catalogs.get_question(catalog, question_id)
        return any(a.is_correct and a.text == answer_text for a in question.answers)

    def record_correct_answer(self, progress: SessionProgress, catalog: CatalogType, question_id: str) -> CompletionStatus:
        with progress.locked(catalog):
            answered = progress.mark_answered(catalog, question_id)
            if self.is_complete(catalog, answered):
                logger.info("Catalog %s completed by session %s", catalog.value, progress.session_id)
                progress.reset(catalog)
                return CompletionStatus.COMPLETED
        logger.info("Correct answer! Progress: %d/%d", answered, self.total_questions(catalog))
        return CompletionStatus.IN_PROGRESS

    def next_question(self, progress: SessionProgress, catalog: CatalogType) -> QuizTurn:
        total = self.total_questions(catalog)
        with progress.locked(catalog):
            answered = progress.answered_ids(catalog)
            question = self.select_question(catalog, answered)
            if question is None:
                logger.info("All questions answered for catalog %s, clearing session", catalog.value)
                progress.reset(catalog)
                return QuizTurn(catalog, None, len(answered), total)
        logger.debug("Selected question %s for catalog %s", question.id, catalog.value)
        return QuizTurn(catalog, question, len(answered), total)

    def submit_answer(self, progress: SessionProgress, catalog: CatalogType, question_id: str, answer_text: str) -> AnswerOutcome:
        if not self.validate_answer(catalog, question_id, answer_text):
            logger.info("Incorrect answer for question %s", question_id)
            return AnswerOutcome(correct=False)
        return AnswerOutcome(correct=True, status=self.record_correct_answer(progress, catalog, question_id))
