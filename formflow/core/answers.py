"""
Respondent answers and the in-memory answer set.
"""

import json
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field

from formflow.core.schema import AnswerType, FormDefinition
from formflow.core.utils import is_blank


class Answer(BaseModel):
    """One respondent's recorded answer to one question.

    `skipped` is independent of `value`: a question can be skipped with no
    value ever collected, or answered with an empty value without being
    skipped.
    """

    model_config = ConfigDict(frozen=True)

    value: Any = Field(
        default=None,
        description="The recorded answer: scalar, list, or a mapping with a 'value' key",
    )
    skipped: bool = Field(
        default=False,
        description="Whether the respondent explicitly skipped the question",
    )
    text: str | None = Field(
        default=None,
        description="Rendered text form of the answer, used when value is blank",
    )


def extract_actual_value(answer: Answer) -> Any:
    """Pull the comparable value out of a recorded answer.

    Order of preference:
    1. a non-blank ``value["value"]`` when the value is a mapping
    2. a non-blank scalar or list value
    3. a non-blank ``text``
    4. a non-empty mapping rendered as JSON

    Returns None when nothing usable is recorded.
    """
    data = answer.value

    if isinstance(data, Mapping):
        inner = data.get("value")
        if not is_blank(inner):
            return inner
    elif not is_blank(data):
        return data

    if answer.text is not None and not is_blank(answer.text):
        return answer.text

    if isinstance(data, Mapping) and data:
        return json.dumps(data, sort_keys=True, default=str)

    return None


class InMemoryAnswerSet:
    """Read-only snapshot of one respondent's answers.

    Satisfies both lookups the evaluator needs: answers by question id,
    and the answer type of each question in the form.
    """

    def __init__(
        self,
        answers: Mapping[str, Answer] | None = None,
        question_types: Mapping[str, AnswerType] | None = None,
    ):
        self._answers: dict[str, Answer] = dict(answers or {})
        self._question_types: dict[str, AnswerType] = dict(question_types or {})

    @classmethod
    def for_form(
        cls,
        form: FormDefinition,
        answers: Mapping[str, Any] | None = None,
    ) -> "InMemoryAnswerSet":
        """Build a snapshot for a form from raw answers.

        Each raw answer may be an `Answer` or a dict with `value`,
        `skipped` and `text` keys.
        """
        parsed = {
            question_id: raw if isinstance(raw, Answer) else Answer.model_validate(raw)
            for question_id, raw in (answers or {}).items()
        }
        types = {q.id: q.answer_type for q in form.questions}
        return cls(parsed, types)

    def get_answer(self, question_id: str) -> Answer | None:
        return self._answers.get(question_id)

    def get_question_type(self, question_id: str) -> AnswerType | None:
        return self._question_types.get(question_id)

    def answered_ids(self) -> list[str]:
        return list(self._answers)

    def __len__(self) -> int:
        return len(self._answers)
