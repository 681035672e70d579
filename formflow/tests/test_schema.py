"""
Unit tests for form definition validation.

Tests cover:
- Bundled form files load and validate
- Question and rule field requirements
- Duplicate ids, choice options and unknown references
- Save-time checks: operators, patterns, self-reference and cycles
- Author-facing error collection
- Question ordering and lookup
"""

import pytest
from pydantic import ValidationError

from formflow.core.loader import load_form
from formflow.core.schema import (
    AnswerType,
    ConditionalRule,
    FormDefinition,
    LogicOperator,
    Question,
    RuleOperator,
    collect_configuration_errors,
)
from formflow.tests.conftest import FORMS_DIR


def conditional(question_id, rules, operator="and", **extra):
    return {
        "id": question_id,
        "answer_type": "text_short",
        "conditional_enabled": True,
        "conditional_logic": {"operator": operator, "rules": rules},
        **extra,
    }


def form_data(*questions):
    return {"form_id": "test", "title": "Test", "questions": list(questions)}


def plain(question_id, answer_type="text_short", **extra):
    return {"id": question_id, "answer_type": answer_type, **extra}


# =============================================================
# Test: Bundled forms
# =============================================================


class TestBundledForms:

    def test_budget_survey(self):
        form = load_form(FORMS_DIR / "budget_survey.json")
        assert form.form_id == "budget_survey"
        assert len(form.questions) == 6
        follow_up = form.get_question("budget_follow_up")
        assert follow_up.has_conditional_logic
        assert follow_up.conditional_rules[0].rule_operator == RuleOperator.EQUALS

    def test_customer_feedback(self):
        form = load_form(FORMS_DIR / "customer_feedback.yaml")
        assert form.form_id == "customer_feedback"
        assert form.get_question("channels").options == ["Search", "Friend", "Social media", "Other"]
        assert form.get_question("channel_other").conditional_logic.logic_operator == LogicOperator.OR


# =============================================================
# Test: Questions and rules
# =============================================================


class TestQuestion:

    def test_defaults(self):
        question = Question(id="q", answer_type="text_short")
        assert question.required is True
        assert question.conditional_enabled is False
        assert question.conditional_rules == []

    def test_integer_id_coerced(self):
        assert Question(id=7, answer_type="number").id == "7"

    def test_unknown_answer_type_rejected(self):
        with pytest.raises(ValidationError):
            Question(id="q", answer_type="hologram")

    def test_slider_and_boolean_types(self):
        assert Question(id="s", answer_type="slider").answer_type == AnswerType.SLIDER
        assert Question(id="b", answer_type="boolean").answer_type == AnswerType.BOOLEAN

    def test_disabled_logic_has_no_rules(self):
        question = Question(**conditional("q", [{"question_id": "a", "operator": "equals", "value": 1}]))
        question = question.model_copy(update={"conditional_enabled": False})
        assert question.conditional_rules == []

    def test_bare_question_accepts_unknown_operator(self):
        question = Question(**conditional("q", [{"question_id": "a", "operator": "soundex", "value": 1}]))
        assert question.conditional_rules[0].rule_operator is None


class TestConditionalRule:

    @pytest.mark.parametrize("missing", ["question_id", "operator", "value"])
    def test_all_keys_required(self, missing):
        data = {"question_id": "a", "operator": "equals", "value": "x"}
        del data[missing]
        with pytest.raises(ValidationError):
            ConditionalRule(**data)

    def test_null_value_is_present(self):
        assert ConditionalRule(question_id="a", operator="is_empty", value=None).value is None

    def test_integer_question_id(self):
        assert ConditionalRule(question_id=12, operator="equals", value="x").question_id == "12"

    def test_alias_operator(self):
        rule = ConditionalRule(question_id="a", operator="Equals_Ignore_Case", value="x")
        assert rule.rule_operator == RuleOperator.EQUALS


# =============================================================
# Test: Form-level validation
# =============================================================


class TestFormValidation:

    def test_valid_form(self):
        form = FormDefinition(**form_data(
            plain("a"),
            conditional("b", [{"question_id": "a", "operator": "equals", "value": "x"}]),
        ))
        assert [q.id for q in form.questions] == ["a", "b"]

    def test_no_questions_rejected(self):
        with pytest.raises(ValidationError):
            FormDefinition(form_id="empty", questions=[])

    def test_duplicate_ids(self):
        with pytest.raises(ValidationError, match="Duplicate question ID"):
            FormDefinition(**form_data(plain("a"), plain("a")))

    def test_choice_without_options(self):
        with pytest.raises(ValidationError, match="must have non-empty 'options'"):
            FormDefinition(**form_data(plain("color", "single_choice")))

    def test_unknown_reference(self):
        with pytest.raises(ValidationError, match="non-existent question 'ghost'"):
            FormDefinition(**form_data(
                conditional("b", [{"question_id": "ghost", "operator": "equals", "value": "x"}]),
            ))

    def test_reference_to_later_question_allowed(self):
        form = FormDefinition(**form_data(
            conditional("b", [{"question_id": "a", "operator": "is_not_empty", "value": ""}]),
            plain("a"),
        ))
        assert form.get_question("b") is not None

    def test_unknown_operator(self):
        with pytest.raises(ValidationError, match="unknown operator 'soundex'"):
            FormDefinition(**form_data(
                plain("a"),
                conditional("b", [{"question_id": "a", "operator": "soundex", "value": "x"}]),
            ))

    def test_unknown_logic_operator(self):
        with pytest.raises(ValidationError, match="unknown logic operator 'xor'"):
            FormDefinition(**form_data(
                plain("a"),
                conditional("b", [{"question_id": "a", "operator": "equals", "value": "x"}], "xor"),
            ))

    def test_invalid_pattern(self):
        with pytest.raises(ValidationError, match="invalid pattern"):
            FormDefinition(**form_data(
                plain("a"),
                conditional("b", [{"question_id": "a", "operator": "matches_pattern", "value": "(["}]),
            ))

    def test_self_reference(self):
        with pytest.raises(ValidationError, match="references itself"):
            FormDefinition(**form_data(
                conditional("a", [{"question_id": "a", "operator": "is_empty", "value": ""}]),
            ))

    def test_cycle(self):
        with pytest.raises(ValidationError, match="cycle: a -> b -> a"):
            FormDefinition(**form_data(
                conditional("a", [{"question_id": "b", "operator": "is_empty", "value": ""}]),
                conditional("b", [{"question_id": "a", "operator": "is_empty", "value": ""}]),
            ))

    def test_disabled_logic_not_checked_for_cycles(self):
        form = FormDefinition(**form_data(
            conditional("a", [{"question_id": "b", "operator": "is_empty", "value": ""}]),
            conditional(
                "b",
                [{"question_id": "a", "operator": "is_empty", "value": ""}],
                conditional_enabled=False,
            ),
        ))
        assert len(form.questions) == 2


# =============================================================
# Test: Author-facing errors
# =============================================================


class TestCollectConfigurationErrors:

    def test_valid_definition(self):
        assert collect_configuration_errors(form_data(plain("a"))) == []

    def test_missing_rule_keys_grouped(self):
        data = form_data(
            plain("a"),
            conditional("b", [{"question_id": "a"}]),
        )
        assert collect_configuration_errors(data) == [
            "Question 'b' rule 1 is missing required keys: operator, value",
        ]

    def test_rules_must_be_array(self):
        data = form_data(plain("a"), conditional("b", "a equals x"))
        assert collect_configuration_errors(data) == ["Question 'b' rules must be an array"]

    def test_cross_question_error_message(self):
        errors = collect_configuration_errors(form_data(plain("a"), plain("a")))
        assert errors == ["Duplicate question ID: 'a'"]

    def test_cycle_message(self):
        data = form_data(
            conditional("a", [{"question_id": "c", "operator": "equals", "value": "x"}]),
            conditional("b", [{"question_id": "a", "operator": "equals", "value": "x"}]),
            conditional("c", [{"question_id": "b", "operator": "equals", "value": "x"}]),
        )
        assert collect_configuration_errors(data) == [
            "Conditional logic forms a cycle: a -> c -> b -> a",
        ]

    def test_field_errors_include_location(self):
        errors = collect_configuration_errors(form_data(plain("a", "hologram")))
        assert len(errors) == 1
        assert errors[0].startswith("questions.0.answer_type: ")

    def test_every_problem_reported(self):
        data = form_data(
            plain("a"),
            conditional("b", [{"question_id": "a", "operator": "bogus", "value": "x"}]),
            conditional("c", [{"question_id": "zzz", "operator": "equals", "value": "x"}]),
        )
        assert collect_configuration_errors(data) == [
            "Question 'b' rule 1 has unknown operator 'bogus'",
            "Question 'c' has a rule referencing non-existent question 'zzz'",
        ]

    def test_problems_across_checks_reported_together(self):
        data = form_data(
            plain("a"),
            plain("a"),
            plain("color", "single_choice"),
            conditional("x", [{"question_id": "y", "operator": "is_empty", "value": ""}]),
            conditional("y", [{"question_id": "x", "operator": "is_empty", "value": ""}]),
        )
        assert collect_configuration_errors(data) == [
            "Duplicate question ID: 'a'",
            "Question 'color' of type 'single_choice' must have non-empty 'options'",
            "Conditional logic forms a cycle: x -> y -> x",
        ]

    def test_self_reference_not_also_reported_as_cycle(self):
        data = form_data(
            conditional("a", [{"question_id": "a", "operator": "is_empty", "value": ""}]),
        )
        assert collect_configuration_errors(data) == ["Question 'a' rule 1 references itself"]


# =============================================================
# Test: Ordering and lookup
# =============================================================


class TestOrdering:

    def test_ordered_by_position(self):
        form = FormDefinition(**form_data(
            plain("c", position=3),
            plain("a", position=1),
            plain("b", position=2),
        ))
        assert [q.id for q in form.ordered_questions()] == ["a", "b", "c"]

    def test_ties_keep_declaration_order(self):
        form = FormDefinition(**form_data(plain("x"), plain("y")))
        assert [q.id for q in form.ordered_questions()] == ["x", "y"]

    def test_get_question_missing(self):
        assert FormDefinition(**form_data(plain("a"))).get_question("zzz") is None
