"""
Form definition loader.

Reads form definitions from JSON or YAML files into validated
FormDefinition models. YAML is convenient for hand-authored forms;
JSON matches what the form builder stores.
"""

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from formflow.core.schema import FormDefinition

logger = logging.getLogger(__name__)

FORM_SUFFIXES = (".json", ".yaml", ".yml")


class FormLoadError(Exception):
    """Raised when a form file cannot be read or parsed."""

    def __init__(self, path: Path, message: str):
        self.path = path
        self.message = message
        super().__init__(f"{path.name}: {message}")


def read_form_data(path: Path) -> dict[str, Any]:
    """Read a form file into a plain dict without validating it.

    Raises:
        FormLoadError: If the file is unreadable, malformed, or not a mapping.
    """
    path = Path(path)
    if path.suffix.lower() not in FORM_SUFFIXES:
        raise FormLoadError(path, f"unsupported file type '{path.suffix}'")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise FormLoadError(path, f"cannot read file: {e}") from e

    try:
        if path.suffix.lower() == ".json":
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise FormLoadError(path, f"malformed content: {e}") from e

    if not isinstance(data, dict):
        raise FormLoadError(path, "top level must be a mapping")
    return data


def load_form(path: Path) -> FormDefinition:
    """Load and validate a form definition file.

    Raises:
        FormLoadError: If the file cannot be read or parsed.
        pydantic.ValidationError: If the definition is invalid.
    """
    return FormDefinition.model_validate(read_form_data(path))


def list_forms(directory: Path) -> list[dict[str, Any]]:
    """List form files in a directory with their titles.

    Files that cannot be parsed are skipped with a warning.
    """
    directory = Path(directory)
    forms = []
    if not directory.exists():
        return forms

    for path in sorted(directory.iterdir()):
        if path.suffix.lower() not in FORM_SUFFIXES:
            continue
        try:
            data = read_form_data(path)
        except FormLoadError as e:
            logger.warning("Skipping form file: %s", e)
            continue
        forms.append({
            "filename": path.name,
            "form_id": data.get("form_id", path.stem),
            "title": data.get("title") or path.stem,
            "questions": len(data.get("questions") or []),
        })
    return forms
