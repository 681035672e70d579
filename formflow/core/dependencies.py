"""
Dependency resolution and classification for conditional rules.

The resolver looks up the answer a rule refers to and decides which
of four states it is in. The classifier runs over a question's whole
rule set before any comparison, so that absence policies rather than
the comparison engine decide rules whose dependency is not "normal".
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from formflow.core.answers import Answer, extract_actual_value
from formflow.core.schema import AnswerType, ConditionalRule
from formflow.core.tracing import NullTraceSink, TraceEvent, TraceEventKind, TraceSink
from formflow.core.utils import is_blank


# --- Lookups provided by the embedding application ---


class AnswerLookup(Protocol):
    def get_answer(self, question_id: str) -> Answer | None: ...


class QuestionTypeLookup(Protocol):
    def get_question_type(self, question_id: str) -> AnswerType | None: ...


class AnswerSet(AnswerLookup, QuestionTypeLookup, Protocol):
    """Everything the evaluator reads about one respondent."""


# --- Resolution ---


class DependencyState(str, Enum):
    NORMAL = "normal"
    MISSING = "missing"
    SKIPPED = "skipped"
    EMPTY = "empty"


@dataclass(frozen=True)
class ResolvedDependency:
    """A referenced question's answer, classified."""

    question_id: str
    state: DependencyState
    answer_type: AnswerType | None = None
    actual_value: Any = None


class DependencyResolver:
    """Resolves rule dependencies for a single evaluation pass.

    Results are memoized per question id for the lifetime of the
    resolver only; create a new resolver for each evaluation.

    Args:
        answers: The respondent's answer set.
        sink: Receives a LOOKUP_FAILED event if a lookup raises.
        owner_id: The question being evaluated, for trace events.
    """

    def __init__(self, answers: AnswerSet, sink: TraceSink | None = None, owner_id: str = ""):
        self._answers = answers
        self._sink = sink or NullTraceSink()
        self._owner_id = owner_id
        self._cache: dict[str, ResolvedDependency] = {}

    def resolve(self, question_id: str) -> ResolvedDependency:
        if question_id not in self._cache:
            self._cache[question_id] = self._resolve(question_id)
        return self._cache[question_id]

    def _resolve(self, question_id: str) -> ResolvedDependency:
        try:
            answer = self._answers.get_answer(question_id)
            answer_type = self._answers.get_question_type(question_id)
        except Exception as e:
            # The backing store failed; degrade to "never answered"
            self._sink.emit(TraceEvent(
                kind=TraceEventKind.LOOKUP_FAILED,
                question_id=self._owner_id,
                inputs={"dependency": question_id, "error": repr(e)},
            ))
            return ResolvedDependency(question_id, DependencyState.MISSING)

        if answer is None:
            return ResolvedDependency(question_id, DependencyState.MISSING, answer_type)

        if answer.skipped:
            return ResolvedDependency(question_id, DependencyState.SKIPPED, answer_type)

        # A rule pointing at a question that does not exist counts as missing
        if answer_type is None:
            return ResolvedDependency(question_id, DependencyState.MISSING)

        actual = extract_actual_value(answer)
        if is_blank(actual):
            return ResolvedDependency(question_id, DependencyState.EMPTY, answer_type)

        return ResolvedDependency(question_id, DependencyState.NORMAL, answer_type, actual)


# --- Classification ---


@dataclass
class DependencyCheck:
    """Skipped and missing dependencies of a rule set, in rule order."""

    skipped_dependencies: list[str] = field(default_factory=list)
    missing_dependencies: list[str] = field(default_factory=list)

    @property
    def has_skipped_dependencies(self) -> bool:
        return bool(self.skipped_dependencies)

    @property
    def has_missing_dependencies(self) -> bool:
        return bool(self.missing_dependencies)

    @property
    def is_normal(self) -> bool:
        return not (self.has_skipped_dependencies or self.has_missing_dependencies)


def classify_dependencies(
    rules: list[ConditionalRule],
    resolver: DependencyResolver,
) -> DependencyCheck:
    """Classify the dependencies of a rule set before evaluation.

    Args:
        rules: The question's rules.
        resolver: The resolver for this evaluation pass.

    Returns:
        Which referenced questions are skipped and which are missing.
    """
    check = DependencyCheck()
    for rule in rules:
        resolved = resolver.resolve(rule.question_id)
        if resolved.state == DependencyState.MISSING:
            if rule.question_id not in check.missing_dependencies:
                check.missing_dependencies.append(rule.question_id)
        elif resolved.state == DependencyState.SKIPPED:
            if rule.question_id not in check.skipped_dependencies:
                check.skipped_dependencies.append(rule.question_id)
    return check
