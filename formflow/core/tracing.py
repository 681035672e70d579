"""
Evaluation trace events and sinks.

The visibility evaluator never writes log lines itself. It emits
`TraceEvent` objects to an injected sink, and the embedding application
decides whether to log, count or discard them.
"""

import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class TraceEventKind(str, Enum):
    """What a trace event describes."""

    DEPENDENCIES_CLASSIFIED = "dependencies_classified"
    RULES_FILTERED = "rules_filtered"
    RULE_EVALUATED = "rule_evaluated"
    ABSENCE_POLICY_APPLIED = "absence_policy_applied"
    VISIBILITY_DECIDED = "visibility_decided"

    # Anomalies: evaluation continued with a safe default
    UNKNOWN_OPERATOR = "unknown_operator"
    UNKNOWN_LOGIC_OPERATOR = "unknown_logic_operator"
    UNPARSABLE_DATE = "unparsable_date"
    NON_NUMERIC_OPERAND = "non_numeric_operand"
    LOOKUP_FAILED = "lookup_failed"


ANOMALY_KINDS = frozenset({
    TraceEventKind.UNKNOWN_OPERATOR,
    TraceEventKind.UNKNOWN_LOGIC_OPERATOR,
    TraceEventKind.UNPARSABLE_DATE,
    TraceEventKind.NON_NUMERIC_OPERAND,
    TraceEventKind.LOOKUP_FAILED,
})


@dataclass(frozen=True)
class TraceEvent:
    """One step of a visibility evaluation, as data."""

    kind: TraceEventKind
    question_id: str
    rule: dict[str, Any] | None = None
    inputs: dict[str, Any] = field(default_factory=dict)
    result: bool | None = None

    @property
    def is_anomaly(self) -> bool:
        return self.kind in ANOMALY_KINDS

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        return data


class TraceSink(Protocol):
    """Receives trace events from the evaluator."""

    def emit(self, event: TraceEvent) -> None: ...


class NullTraceSink:
    """Discards every event."""

    def emit(self, event: TraceEvent) -> None:
        pass


class LoggingTraceSink:
    """Writes events to a standard logger.

    Regular steps go to DEBUG; anomalies go to WARNING so they show up
    in production logs without enabling trace output.
    """

    def __init__(self, log: logging.Logger | None = None):
        self._log = log or logger

    def emit(self, event: TraceEvent) -> None:
        level = logging.WARNING if event.is_anomaly else logging.DEBUG
        if not self._log.isEnabledFor(level):
            return
        self._log.log(
            level,
            "visibility %s question=%s rule=%s inputs=%s result=%s",
            event.kind.value,
            event.question_id,
            event.rule,
            event.inputs,
            event.result,
        )


class RecordingTraceSink:
    """Keeps events in memory, in emission order."""

    def __init__(self):
        self.events: list[TraceEvent] = []

    def emit(self, event: TraceEvent) -> None:
        self.events.append(event)

    @property
    def anomalies(self) -> list[TraceEvent]:
        return [e for e in self.events if e.is_anomaly]

    def of_kind(self, kind: TraceEventKind) -> list[TraceEvent]:
        return [e for e in self.events if e.kind == kind]

    def clear(self) -> None:
        self.events.clear()


class GuardedTraceSink:
    """Wraps a sink so that a failing sink cannot break evaluation."""

    def __init__(self, sink: TraceSink):
        self.sink = sink

    def emit(self, event: TraceEvent) -> None:
        try:
            self.sink.emit(event)
        except Exception:
            logger.exception("Trace sink failed on %s event", event.kind.value)
