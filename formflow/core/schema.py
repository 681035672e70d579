"""
Form and conditional-logic definition models.

These Pydantic models define the contract between the form builder
and the visibility engine. A question's conditional configuration is
validated here, at save time, so that malformed rules never reach
runtime evaluation.
"""

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from formflow.core.dependency_graph import build_dependency_graph, find_cycle


# --- Enums ---


class AnswerType(str, Enum):
    """Semantic answer types a question can produce."""

    TEXT_SHORT = "text_short"
    TEXT_LONG = "text_long"
    EMAIL = "email"
    PHONE = "phone"
    URL = "url"
    NUMBER = "number"
    SINGLE_CHOICE = "single_choice"
    MULTIPLE_CHOICE = "multiple_choice"
    CHECKBOX = "checkbox"
    RATING = "rating"
    SCALE = "scale"
    SLIDER = "slider"
    YES_NO = "yes_no"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    TIME = "time"
    FILE_UPLOAD = "file_upload"
    IMAGE_UPLOAD = "image_upload"
    ADDRESS = "address"
    LOCATION = "location"
    PAYMENT = "payment"
    SIGNATURE = "signature"
    NPS_SCORE = "nps_score"
    MATRIX = "matrix"
    RANKING = "ranking"
    DRAG_DROP = "drag_drop"


BOOLEAN_TYPES = frozenset({AnswerType.YES_NO, AnswerType.BOOLEAN})
TEXT_TYPES = frozenset({
    AnswerType.TEXT_SHORT,
    AnswerType.TEXT_LONG,
    AnswerType.EMAIL,
    AnswerType.PHONE,
    AnswerType.URL,
})
CHOICE_TYPES = frozenset({
    AnswerType.SINGLE_CHOICE,
    AnswerType.MULTIPLE_CHOICE,
    AnswerType.CHECKBOX,
})
NUMERIC_TYPES = frozenset({
    AnswerType.NUMBER,
    AnswerType.RATING,
    AnswerType.SCALE,
    AnswerType.SLIDER,
    AnswerType.NPS_SCORE,
})
TEMPORAL_TYPES = frozenset({AnswerType.DATE, AnswerType.DATETIME, AnswerType.TIME})


class RuleOperator(str, Enum):
    """Comparison operators a conditional rule can use.

    Rules are stored with plain operator strings; `from_wire` is the
    single place those strings are turned into an operator.
    """

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    GREATER_THAN = "greater_than"
    GREATER_THAN_OR_EQUAL = "greater_than_or_equal"
    LESS_THAN = "less_than"
    LESS_THAN_OR_EQUAL = "less_than_or_equal"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"
    MATCHES_PATTERN = "matches_pattern"
    IN_LIST = "in_list"
    NOT_IN_LIST = "not_in_list"

    @classmethod
    def from_wire(cls, value: Any) -> "RuleOperator | None":
        """Parse a stored operator string, or return None if unknown.

        Legacy ``*_ignore_case`` spellings map onto their base operator,
        since string comparisons are already case-normalized.
        """
        if isinstance(value, RuleOperator):
            return value
        if not isinstance(value, str):
            return None
        token = value.strip().lower()
        token = _OPERATOR_ALIASES.get(token, token)
        try:
            return cls(token)
        except ValueError:
            return None


_OPERATOR_ALIASES = {
    "equals_ignore_case": "equals",
    "not_equals_ignore_case": "not_equals",
    "contains_ignore_case": "contains",
    "starts_with_ignore_case": "starts_with",
    "ends_with_ignore_case": "ends_with",
}

ORDERING_OPERATORS = frozenset({
    RuleOperator.GREATER_THAN,
    RuleOperator.GREATER_THAN_OR_EQUAL,
    RuleOperator.LESS_THAN,
    RuleOperator.LESS_THAN_OR_EQUAL,
})


class LogicOperator(str, Enum):
    """How the results of a question's rules are combined."""

    AND = "and"
    OR = "or"


# --- Conditional Logic Models ---


class ConditionalRule(BaseModel):
    """One conditional clause referencing another question.

    All three keys are required. `value` may be null, but it must be
    present in the stored configuration.
    """

    question_id: str = Field(
        ...,
        description="The question whose answer this rule inspects",
    )
    operator: str = Field(
        ...,
        description="Comparison operator name (see RuleOperator)",
    )
    value: Any = Field(
        ...,
        description="Expected value: string, number, boolean or list depending on operator",
    )

    @field_validator("question_id", mode="before")
    @classmethod
    def coerce_question_id(cls, value: Any) -> Any:
        """Accept integer ids coming from relational storage."""
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @property
    def rule_operator(self) -> RuleOperator | None:
        return RuleOperator.from_wire(self.operator)


class ConditionalLogic(BaseModel):
    """A question's conditional configuration: operator plus ordered rules."""

    operator: str = Field(
        default=LogicOperator.AND.value,
        description="'and' (all rules pass) or 'or' (any rule passes)",
    )
    rules: list[ConditionalRule] = Field(
        default_factory=list,
        description="Ordered list of rules",
    )

    @property
    def logic_operator(self) -> LogicOperator | None:
        """The parsed logic operator, or None when it is not 'and'/'or'."""
        try:
            return LogicOperator(str(self.operator).strip().lower())
        except ValueError:
            return None


# --- Question ---


class Question(BaseModel):
    """Definition of a single form question."""

    id: str = Field(
        ...,
        min_length=1,
        description="Unique question identifier",
    )
    title: str = Field(
        default="",
        description="Question text shown to the respondent",
    )
    answer_type: AnswerType = Field(
        ...,
        description="Semantic type of the answer this question produces",
    )
    required: bool = Field(
        default=True,
        description="Whether a visible instance of this question must be answered",
    )
    position: int = Field(
        default=0,
        ge=0,
        description="Ordering position within the form",
    )
    options: list[str] | None = Field(
        default=None,
        description="Available options for choice questions",
    )
    conditional_enabled: bool = Field(
        default=False,
        description="Whether conditional_logic applies",
    )
    conditional_logic: ConditionalLogic | None = Field(
        default=None,
        description="Conditional visibility configuration",
    )

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @property
    def has_conditional_logic(self) -> bool:
        return self.conditional_enabled and self.conditional_logic is not None

    @property
    def conditional_rules(self) -> list[ConditionalRule]:
        """Rules that apply at runtime; empty when logic is disabled."""
        if not self.has_conditional_logic:
            return []
        return list(self.conditional_logic.rules)


def conditional_logic_errors(question: Question) -> list[str]:
    """Save-time checks for a single question's conditional logic."""
    errors: list[str] = []
    if not question.has_conditional_logic:
        return errors

    logic = question.conditional_logic
    if logic.logic_operator is None:
        errors.append(
            f"Question '{question.id}' has unknown logic operator '{logic.operator}'"
        )

    for index, rule in enumerate(logic.rules, start=1):
        operator = rule.rule_operator
        if operator is None:
            errors.append(
                f"Question '{question.id}' rule {index} has unknown operator '{rule.operator}'"
            )
            continue
        if rule.question_id == question.id:
            errors.append(f"Question '{question.id}' rule {index} references itself")
        if operator == RuleOperator.MATCHES_PATTERN:
            try:
                re.compile(str(rule.value))
            except re.error as e:
                errors.append(
                    f"Question '{question.id}' rule {index} has invalid pattern "
                    f"'{rule.value}': {e}"
                )
    return errors


# --- Top-Level Form Definition ---


class FormDefinition(BaseModel):
    """A form: an ordered collection of questions.

    Validates id uniqueness, rule references, and that the rule graph
    is free of cycles.
    """

    form_id: str = Field(
        ...,
        min_length=1,
        description="Unique form identifier",
    )
    title: str = Field(
        default="",
        description="Human-readable form title",
    )
    questions: list[Question] = Field(
        ...,
        min_length=1,
        description="Questions in display order",
    )

    @model_validator(mode="after")
    def validate_cross_question_references(self) -> "FormDefinition":
        """Validate id uniqueness, rule references and acyclicity.

        Every problem found is reported, one per line of the error message.
        """
        errors: list[str] = []
        question_ids = set()

        for q in self.questions:
            if q.id in question_ids:
                errors.append(f"Duplicate question ID: '{q.id}'")
            question_ids.add(q.id)

        for q in self.questions:
            if q.answer_type in CHOICE_TYPES and not q.options:
                errors.append(
                    f"Question '{q.id}' of type '{q.answer_type.value}' must have non-empty 'options'"
                )

            errors.extend(conditional_logic_errors(q))

            for rule in q.conditional_rules:
                if rule.question_id not in question_ids:
                    errors.append(
                        f"Question '{q.id}' has a rule referencing "
                        f"non-existent question '{rule.question_id}'"
                    )

        # Self-references are already reported above
        graph = {
            question_id: [target for target in targets if target != question_id]
            for question_id, targets in build_dependency_graph(self.questions).items()
        }
        cycle = find_cycle(graph)
        if cycle:
            errors.append(f"Conditional logic forms a cycle: {' -> '.join(cycle)}")

        if errors:
            raise ValueError("\n".join(errors))
        return self

    def get_question(self, question_id: str) -> Question | None:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None

    def ordered_questions(self) -> list[Question]:
        """Questions sorted by position, ties kept in declaration order."""
        return sorted(self.questions, key=lambda q: q.position)


# --- Save-time error reporting ---


def collect_configuration_errors(data: Any) -> list[str]:
    """Validate a raw form definition and return author-facing messages.

    An empty list means the definition is valid. Missing rule keys are
    grouped per rule so the author sees one message per broken rule.
    """
    try:
        FormDefinition.model_validate(data)
    except ValidationError as e:
        return _format_validation_errors(e.errors(), data)
    return []


def _format_validation_errors(errors: list[dict], data: Any) -> list[str]:
    messages: list[str] = []
    missing_keys: dict[tuple, list[str]] = {}

    for error in errors:
        loc = tuple(error.get("loc", ()))

        # ('questions', qi, 'conditional_logic', 'rules', ri, key)
        if (
            error.get("type") == "missing"
            and len(loc) == 6
            and loc[0] == "questions"
            and loc[3] == "rules"
        ):
            missing_keys.setdefault(loc[:5], []).append(str(loc[5]))
            continue

        if loc[-1:] == ("rules",) and error.get("type") == "list_type":
            messages.append(
                f"Question '{_question_label(data, loc[1])}' rules must be an array"
            )
            continue

        message = str(error.get("msg", "")).removeprefix("Value error, ")
        if not loc:
            # Form-level checks report one problem per line
            messages.extend(message.splitlines())
            continue
        messages.append(f"{'.'.join(str(part) for part in loc)}: {message}")

    for loc, keys in missing_keys.items():
        messages.append(
            f"Question '{_question_label(data, loc[1])}' rule {loc[4] + 1} "
            f"is missing required keys: {', '.join(keys)}"
        )

    return messages


def _question_label(data: Any, index: Any) -> str:
    """Best-effort id of the question at `index` in raw form data."""
    try:
        return str(data["questions"][index]["id"])
    except (KeyError, IndexError, TypeError):
        return f"#{index}"
