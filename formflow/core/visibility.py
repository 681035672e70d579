"""
Deterministic visibility evaluator for form questions.

Decides whether a question should be shown to a respondent based on its
conditional logic and the answers already given to other questions.
Evaluation is pure: the same question and answer snapshot always give
the same result, and nothing is retained between calls.
"""

from typing import Any

from formflow.core.absence import (
    handle_empty_response,
    handle_missing_response,
    handle_skipped_response,
)
from formflow.core.comparison import perform_comparison
from formflow.core.dependencies import (
    AnswerSet,
    DependencyResolver,
    DependencyState,
    ResolvedDependency,
    classify_dependencies,
)
from formflow.core.normalizer import normalize_value, parse_number
from formflow.core.schema import (
    ORDERING_OPERATORS,
    TEMPORAL_TYPES,
    ConditionalRule,
    LogicOperator,
    Question,
    RuleOperator,
)
from formflow.core.tracing import (
    GuardedTraceSink,
    LoggingTraceSink,
    TraceEvent,
    TraceEventKind,
    TraceSink,
)
from formflow.core.utils import parse_date, stringify

_default_sink = LoggingTraceSink()


def should_show(
    question: Question,
    answers: AnswerSet,
    trace_sink: TraceSink | None = None,
) -> bool:
    """Determine if a question should be shown given a respondent's answers.

    A question without enabled conditional logic, or with no rules, is
    always shown. Otherwise its rules are combined with the configured
    logic operator ('and' by default).

    Args:
        question: The question to evaluate.
        answers: The respondent's answer snapshot.
        trace_sink: Receives evaluation events. Defaults to a logging sink.

    Returns:
        True if the question should be shown, False otherwise.
    """
    return VisibilityEvaluator(trace_sink).should_show(question, answers)


class VisibilityEvaluator:
    """Evaluates question visibility, reporting each step to a trace sink.

    Holds no per-respondent state, so one instance can be shared across
    respondents and threads.
    """

    def __init__(self, trace_sink: TraceSink | None = None):
        self.trace_sink = trace_sink if trace_sink is not None else _default_sink
        self._sink = GuardedTraceSink(self.trace_sink)

    def should_show(self, question: Question, answers: AnswerSet) -> bool:
        rules = question.conditional_rules
        if not rules:
            return True

        resolver = DependencyResolver(answers, self._sink, owner_id=question.id)
        check = classify_dependencies(rules, resolver)
        self._emit(
            TraceEventKind.DEPENDENCIES_CLASSIFIED,
            question.id,
            inputs={
                "skipped": list(check.skipped_dependencies),
                "missing": list(check.missing_dependencies),
            },
        )

        if check.has_skipped_dependencies:
            skipped = set(check.skipped_dependencies)
            rules = [rule for rule in rules if rule.question_id not in skipped]
            self._emit(
                TraceEventKind.RULES_FILTERED,
                question.id,
                inputs={"remaining": len(rules), "skipped": sorted(skipped)},
            )
            if not rules:
                # Every condition hangs on a skipped question
                return self._decide(question.id, False)

        logic = self._logic_operator(question)
        results = (self._evaluate_rule(question.id, rule, resolver) for rule in rules)
        if logic == LogicOperator.OR:
            visible = any(results)
        else:
            visible = all(results)
        return self._decide(question.id, visible)

    # -----------------------------------------------------------------
    # Rule evaluation
    # -----------------------------------------------------------------

    def _evaluate_rule(
        self,
        question_id: str,
        rule: ConditionalRule,
        resolver: DependencyResolver,
    ) -> bool:
        rule_data = rule.model_dump()
        operator = rule.rule_operator
        if operator is None:
            self._emit(TraceEventKind.UNKNOWN_OPERATOR, question_id, rule_data, result=False)
            return False

        dependency = resolver.resolve(rule.question_id)

        match dependency.state:
            case DependencyState.MISSING:
                result = handle_missing_response(operator)
            case DependencyState.SKIPPED:
                result = handle_skipped_response(operator, rule.value)
            case DependencyState.EMPTY:
                result = handle_empty_response(operator, rule.value)
            case DependencyState.NORMAL:
                return self._compare(question_id, rule_data, operator, rule.value, dependency)

        self._emit(
            TraceEventKind.ABSENCE_POLICY_APPLIED,
            question_id,
            rule_data,
            inputs={"state": dependency.state.value},
            result=result,
        )
        return result

    def _compare(
        self,
        question_id: str,
        rule_data: dict[str, Any],
        operator: RuleOperator,
        expected: Any,
        dependency: ResolvedDependency,
    ) -> bool:
        actual = dependency.actual_value
        answer_type = dependency.answer_type
        normalized_actual = normalize_value(actual, answer_type)
        normalized_expected = normalize_value(expected, answer_type)

        self._report_unparsable(question_id, rule_data, operator, answer_type, actual, expected)

        result = perform_comparison(
            operator, normalized_actual, normalized_expected, actual, expected
        )
        self._emit(
            TraceEventKind.RULE_EVALUATED,
            question_id,
            rule_data,
            inputs={
                "answer_type": getattr(answer_type, "value", answer_type),
                "actual": actual,
                "expected": expected,
                "normalized_actual": normalized_actual,
                "normalized_expected": normalized_expected,
            },
            result=result,
        )
        return result

    def _report_unparsable(self, question_id, rule_data, operator, answer_type, actual, expected):
        """Emit anomalies for values that fell back to a default."""
        if operator in ORDERING_OPERATORS:
            for side, value in (("actual", actual), ("expected", expected)):
                if parse_number(value) is None:
                    self._emit(
                        TraceEventKind.NON_NUMERIC_OPERAND,
                        question_id,
                        rule_data,
                        inputs={side: value},
                    )
        elif answer_type in TEMPORAL_TYPES and parse_date(stringify(actual).strip()) is None:
            self._emit(
                TraceEventKind.UNPARSABLE_DATE,
                question_id,
                rule_data,
                inputs={"actual": actual},
            )

    def _logic_operator(self, question: Question) -> LogicOperator:
        logic = question.conditional_logic.logic_operator
        if logic is None:
            self._emit(
                TraceEventKind.UNKNOWN_LOGIC_OPERATOR,
                question.id,
                inputs={"operator": question.conditional_logic.operator},
            )
            return LogicOperator.AND
        return logic

    # -----------------------------------------------------------------
    # Tracing
    # -----------------------------------------------------------------

    def _decide(self, question_id: str, visible: bool) -> bool:
        self._emit(TraceEventKind.VISIBILITY_DECIDED, question_id, result=visible)
        return visible

    def _emit(
        self,
        kind: TraceEventKind,
        question_id: str,
        rule: dict[str, Any] | None = None,
        inputs: dict[str, Any] | None = None,
        result: bool | None = None,
    ) -> None:
        event = TraceEvent(
            kind=kind,
            question_id=question_id,
            rule=rule,
            inputs=inputs or {},
            result=result,
        )
        self._sink.emit(event)
