"""
Response state manager for one respondent's progress through a form.

Manages the current state of a response:
- Which questions are visible based on current answers
- Which required questions are still unanswered
- What the next question to ask is
- Validation of answers per answer type
- Cascading invalidation when an answer hides other questions
"""

import logging
import re
from typing import Any

from formflow.core.answers import Answer, InMemoryAnswerSet, extract_actual_value
from formflow.core.dependency_graph import build_dependency_graph, dependents_of
from formflow.core.normalizer import FALSE_TOKENS, TRUE_TOKENS, parse_number
from formflow.core.schema import (
    BOOLEAN_TYPES,
    NUMERIC_TYPES,
    AnswerType,
    FormDefinition,
    Question,
)
from formflow.core.tracing import TraceSink
from formflow.core.utils import is_blank, parse_date, stringify
from formflow.core.visibility import VisibilityEvaluator

logger = logging.getLogger(__name__)

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_URL = re.compile(r"^https?://[^\s/$.?#].[^\s]*$", re.IGNORECASE)


class AnswerValidationError(Exception):
    """Raised when an answer fails validation for its answer type."""

    def __init__(self, question_id: str, message: str):
        self.question_id = question_id
        self.message = message
        super().__init__(f"Question '{question_id}': {message}")


class ResponseState:
    """Manages the answers of a single respondent for one form.

    Also serves as the evaluator's answer set, so visibility is always
    evaluated against the answers recorded so far.

    Args:
        form: A validated FormDefinition instance.
        trace_sink: Optional sink for visibility trace events.
    """

    def __init__(self, form: FormDefinition, trace_sink: TraceSink | None = None):
        self.form = form
        self.answers: dict[str, Answer] = {}
        self._evaluator = VisibilityEvaluator(trace_sink)
        self._graph = build_dependency_graph(form.questions)
        self._types = {q.id: q.answer_type for q in form.questions}

    @classmethod
    def from_snapshot(
        cls,
        form: FormDefinition,
        answers: InMemoryAnswerSet,
        trace_sink: TraceSink | None = None,
    ) -> "ResponseState":
        """Rebuild state from stored answers without re-validating them.

        Answers for questions outside the form are ignored.
        """
        state = cls(form, trace_sink)
        for question_id in answers.answered_ids():
            if question_id in state._types:
                state.answers[question_id] = answers.get_answer(question_id)
        return state

    # -----------------------------------------------------------------
    # Answer set lookups
    # -----------------------------------------------------------------

    def get_answer(self, question_id: str) -> Answer | None:
        return self.answers.get(question_id)

    def get_question_type(self, question_id: str) -> AnswerType | None:
        return self._types.get(question_id)

    def snapshot(self) -> InMemoryAnswerSet:
        """Return an immutable copy of the current answers."""
        return InMemoryAnswerSet(self.answers, self._types)

    # -----------------------------------------------------------------
    # Question resolution
    # -----------------------------------------------------------------

    def is_visible(self, question: Question) -> bool:
        return self._evaluator.should_show(question, self.snapshot())

    def get_visible_questions(self) -> list[Question]:
        """Return all questions that are currently visible, in position order."""
        snapshot = self.snapshot()
        return [
            question for question in self.form.ordered_questions()
            if self._evaluator.should_show(question, snapshot)
        ]

    def get_missing_required_questions(self) -> list[Question]:
        """Return visible, required questions without a usable answer.

        Skipped answers and blank answers do not count as answered.
        """
        return [
            question for question in self.get_visible_questions()
            if question.required and not self.is_answered(question.id)
        ]

    def get_next_question(self) -> Question | None:
        """Return the first visible question not yet answered or skipped."""
        for question in self.get_visible_questions():
            if question.id not in self.answers:
                return question
        return None

    def can_be_completed(self) -> bool:
        """Check if all visible required questions have been answered."""
        return len(self.get_missing_required_questions()) == 0

    def is_answered(self, question_id: str) -> bool:
        answer = self.answers.get(question_id)
        if answer is None or answer.skipped:
            return False
        return not is_blank(extract_actual_value(answer))

    # -----------------------------------------------------------------
    # Answer management
    # -----------------------------------------------------------------

    def set_answer(self, question_id: str, value: Any, text: str | None = None) -> None:
        """Store a validated answer for the given question.

        Args:
            question_id: The question to answer.
            value: The answer value.
            text: Optional rendered text of the answer.

        Raises:
            AnswerValidationError: If the value is invalid for the answer type.
            ValueError: If the question does not exist in the form.
        """
        question = self._require_question(question_id)
        self._validate_answer(question, value)
        self.answers[question_id] = Answer(value=value, text=text)
        self._handle_cascading_visibility(question_id)

    def skip_question(self, question_id: str) -> None:
        """Record that the respondent explicitly skipped a question."""
        self._require_question(question_id)
        self.answers[question_id] = Answer(value=None, skipped=True)
        self._handle_cascading_visibility(question_id)

    def clear_answer(self, question_id: str) -> None:
        """Remove an answer (for corrections) and handle cascading visibility."""
        if question_id in self.answers:
            del self.answers[question_id]
            self._handle_cascading_visibility(question_id)

    def get_all_answers(self) -> dict[str, Answer]:
        """Return a copy of all current answers."""
        return dict(self.answers)

    def get_visible_answers(self) -> dict[str, Answer]:
        """Return only answers for currently visible questions."""
        visible_ids = {q.id for q in self.get_visible_questions()}
        return {k: v for k, v in self.answers.items() if k in visible_ids}

    # -----------------------------------------------------------------
    # Answer validation per answer type
    # -----------------------------------------------------------------

    def _validate_answer(self, question: Question, value: Any) -> None:
        """Validate an answer against its question's answer type.

        Types without a specific check accept any value.

        Raises:
            AnswerValidationError: If the value is invalid.
        """
        if is_blank(value):
            return

        match question.answer_type:
            case answer_type if answer_type in NUMERIC_TYPES:
                if parse_number(value) is None:
                    raise AnswerValidationError(question.id, f"'{value}' is not a number")
            case answer_type if answer_type in BOOLEAN_TYPES:
                token = stringify(value).strip().lower()
                if token not in TRUE_TOKENS and token not in FALSE_TOKENS:
                    raise AnswerValidationError(
                        question.id, f"'{value}' is not a yes/no answer"
                    )
            case AnswerType.EMAIL:
                if not _EMAIL.match(stringify(value).strip()):
                    raise AnswerValidationError(question.id, f"'{value}' is not a valid email")
            case AnswerType.URL:
                if not _URL.match(stringify(value).strip()):
                    raise AnswerValidationError(question.id, f"'{value}' is not a valid URL")
            case AnswerType.DATE | AnswerType.DATETIME:
                if parse_date(stringify(value).strip()) is None:
                    raise AnswerValidationError(question.id, f"'{value}' is not a valid date")
            case AnswerType.SINGLE_CHOICE:
                self._validate_single_choice(question, value)
            case AnswerType.MULTIPLE_CHOICE | AnswerType.CHECKBOX:
                self._validate_multiple_choice(question, value)

    def _validate_single_choice(self, question: Question, value: Any) -> None:
        """Single choice value must be one of the defined options."""
        if not isinstance(value, str):
            raise AnswerValidationError(question.id, "Single choice answer must be a string")
        if question.options and value not in question.options:
            raise AnswerValidationError(
                question.id,
                f"'{value}' is not a valid option. Choose from: {question.options}",
            )

    def _validate_multiple_choice(self, question: Question, value: Any) -> None:
        """Multiple choice values must be a list and a subset of defined options."""
        if not isinstance(value, list):
            raise AnswerValidationError(question.id, "Multiple choice answer must be a list")
        if question.options:
            invalid = [v for v in value if v not in question.options]
            if invalid:
                raise AnswerValidationError(
                    question.id,
                    f"Invalid choices: {invalid}. Choose from: {question.options}",
                )

    # -----------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------

    def _require_question(self, question_id: str) -> Question:
        question = self.form.get_question(question_id)
        if question is None:
            raise ValueError(f"Question '{question_id}' does not exist in the form")
        return question

    def _handle_cascading_visibility(self, changed_id: str) -> None:
        """Drop answers of questions that an answer change has hidden.

        Only questions that depend on `changed_id` (directly or through
        other questions) can change visibility. Clearing one answer may
        hide further questions, so this repeats until stable.
        """
        affected = dependents_of(self._graph, changed_id)
        while True:
            hidden_answered = [
                question_id for question_id in affected
                if question_id in self.answers
                and not self.is_visible(self.form.get_question(question_id))
            ]
            if not hidden_answered:
                return
            for question_id in hidden_answered:
                logger.info(
                    "Removing answer for question '%s' hidden by change to '%s'",
                    question_id,
                    changed_id,
                )
                del self.answers[question_id]
