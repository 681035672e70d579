"""
Shared test fixtures and helpers for the FormFlow test suite.
"""

from pathlib import Path

import pytest

from formflow.core.answers import Answer, InMemoryAnswerSet
from formflow.core.schema import FormDefinition, Question
from formflow.core.tracing import RecordingTraceSink

FORMS_DIR = Path(__file__).parent.parent / "forms"


def make_question(
    question_id: str = "target",
    rules: list[dict] | None = None,
    operator: str = "and",
    enabled: bool = True,
    answer_type: str = "text_short",
    **extra,
) -> Question:
    """Build a question, with conditional logic when `rules` is given."""
    data = {"id": question_id, "answer_type": answer_type, **extra}
    if rules is not None:
        data["conditional_enabled"] = enabled
        data["conditional_logic"] = {"operator": operator, "rules": rules}
    return Question(**data)


def make_answers(types: dict[str, str], answers: dict[str, dict] | None = None) -> InMemoryAnswerSet:
    """Build an answer set from {question_id: answer_type} and raw answers."""
    parsed = {qid: Answer(**raw) for qid, raw in (answers or {}).items()}
    return InMemoryAnswerSet(parsed, types)


@pytest.fixture
def sink() -> RecordingTraceSink:
    return RecordingTraceSink()


@pytest.fixture
def budget_form() -> FormDefinition:
    """A small form with one conditional follow-up question."""
    return FormDefinition(
        form_id="budget",
        title="Budget",
        questions=[
            {"id": "has_budget", "answer_type": "yes_no", "position": 1},
            {
                "id": "budget_follow_up",
                "title": "Budget follow-up",
                "answer_type": "number",
                "position": 2,
                "conditional_enabled": True,
                "conditional_logic": {
                    "operator": "and",
                    "rules": [
                        {"question_id": "has_budget", "operator": "equals", "value": "yes"},
                    ],
                },
            },
            {
                "id": "approver",
                "answer_type": "email",
                "position": 3,
                "conditional_enabled": True,
                "conditional_logic": {
                    "rules": [
                        {"question_id": "budget_follow_up", "operator": "greater_than", "value": 10000},
                    ],
                },
            },
            {"id": "notes", "answer_type": "text_long", "required": False, "position": 4},
        ],
    )
