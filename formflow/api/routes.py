"""
FastAPI routes for the FormFlow backend.

Endpoints:
- POST /validate-form        — validate a form definition (save-time checks)
- POST /visibility           — should one question be shown?
- POST /responses/progress   — visible/missing questions and completion status
- GET  /forms                — list example form definitions
- GET  /forms/{filename}     — get a specific form definition
- GET  /health               — health check
"""

import logging
from pathlib import Path
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ValidationError

from formflow.core.answers import InMemoryAnswerSet
from formflow.core.form_state import ResponseState
from formflow.core.loader import FormLoadError, list_forms, read_form_data
from formflow.core.schema import FormDefinition, collect_configuration_errors
from formflow.core.tracing import RecordingTraceSink
from formflow.core.visibility import VisibilityEvaluator, should_show

logger = logging.getLogger(__name__)

router = APIRouter()

# These will be injected by the app factory
_forms_dir: Path = Path(__file__).parent.parent / "forms"
_include_trace = False


def configure_routes(forms_dir: Path | None = None, include_trace: bool = False):
    """Inject the forms directory and trace setting into the routes module.

    Called by the app factory during startup.
    """
    global _forms_dir, _include_trace
    if forms_dir is not None:
        _forms_dir = Path(forms_dir)
    _include_trace = include_trace


# --- Request / Response Models ---


class ValidateFormRequest(BaseModel):
    """Request body for the /validate-form endpoint."""

    form: dict[str, Any]


class ValidateFormResponse(BaseModel):
    valid: bool
    errors: list[str]


class VisibilityRequest(BaseModel):
    """Request body for the /visibility endpoint.

    `answers` maps question ids to `{"value": ..., "skipped": bool}`.
    """

    form: dict[str, Any]
    question_id: str
    answers: dict[str, dict[str, Any]] = {}
    include_trace: bool | None = None


class VisibilityResponse(BaseModel):
    question_id: str
    visible: bool
    trace: list[dict[str, Any]] | None = None


class ProgressRequest(BaseModel):
    """Request body for the /responses/progress endpoint."""

    form: dict[str, Any]
    answers: dict[str, dict[str, Any]] = {}


class ProgressResponse(BaseModel):
    visible_question_ids: list[str]
    missing_required_question_ids: list[str]
    next_question_id: str | None
    can_complete: bool


# --- Helpers ---


def _parse_form(data: dict[str, Any]) -> FormDefinition:
    try:
        return FormDefinition.model_validate(data)
    except ValidationError:
        raise HTTPException(
            status_code=400,
            detail={"errors": collect_configuration_errors(data)},
        )


def _parse_answers(form: FormDefinition, answers: dict[str, dict[str, Any]]) -> InMemoryAnswerSet:
    try:
        return InMemoryAnswerSet.for_form(form, answers)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid answers: {e}")


# --- Endpoints ---


@router.post("/validate-form", response_model=ValidateFormResponse)
async def validate_form(request: ValidateFormRequest):
    """Run save-time validation and report every problem found."""
    errors = collect_configuration_errors(request.form)
    if errors:
        logger.info("Form '%s' failed validation: %d error(s)", request.form.get("form_id"), len(errors))
    return ValidateFormResponse(valid=not errors, errors=errors)


@router.post("/visibility", response_model=VisibilityResponse)
async def evaluate_visibility(request: VisibilityRequest):
    """Decide whether a single question should be shown."""
    form = _parse_form(request.form)
    question = form.get_question(request.question_id)
    if question is None:
        raise HTTPException(
            status_code=404,
            detail=f"Question '{request.question_id}' not found in form '{form.form_id}'",
        )

    answers = _parse_answers(form, request.answers)
    include_trace = _include_trace if request.include_trace is None else request.include_trace

    if not include_trace:
        return VisibilityResponse(
            question_id=question.id,
            visible=should_show(question, answers),
        )

    sink = RecordingTraceSink()
    visible = VisibilityEvaluator(sink).should_show(question, answers)
    return VisibilityResponse(
        question_id=question.id,
        visible=visible,
        trace=[event.to_dict() for event in sink.events],
    )


@router.post("/responses/progress", response_model=ProgressResponse)
async def response_progress(request: ProgressRequest):
    """Evaluate every question for one respondent's answers."""
    form = _parse_form(request.form)
    answers = _parse_answers(form, request.answers)
    state = ResponseState.from_snapshot(form, answers)

    missing = state.get_missing_required_questions()
    next_question = state.get_next_question()

    return ProgressResponse(
        visible_question_ids=[q.id for q in state.get_visible_questions()],
        missing_required_question_ids=[q.id for q in missing],
        next_question_id=next_question.id if next_question else None,
        can_complete=not missing,
    )


@router.get("/forms")
async def get_forms():
    """List available example form definitions (.json / .yaml)."""
    return {"forms": list_forms(_forms_dir)}


@router.get("/forms/{filename}")
async def get_form(filename: str):
    """Get a specific form definition by filename."""
    path = _forms_dir / filename
    if path.parent.resolve() != _forms_dir.resolve() or not path.exists():
        raise HTTPException(status_code=404, detail=f"Form '{filename}' not found")

    try:
        return {"filename": filename, "form": read_form_data(path)}
    except FormLoadError as e:
        raise HTTPException(status_code=500, detail=f"Error reading form file '{filename}': {e.message}")


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "forms_available": len(list_forms(_forms_dir)),
    }
