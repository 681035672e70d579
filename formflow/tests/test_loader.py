"""
Unit tests for the form definition loader.

Tests cover:
- Loading JSON and YAML form files
- Unsupported, unreadable and malformed files
- Invalid definitions surface as validation errors
- Listing a forms directory
"""

import json

import pytest
from pydantic import ValidationError

from formflow.core.loader import FormLoadError, list_forms, load_form, read_form_data
from formflow.tests.conftest import FORMS_DIR

MINIMAL = {"form_id": "mini", "title": "Mini", "questions": [{"id": "q1", "answer_type": "text_short"}]}


class TestReadFormData:

    def test_json(self, tmp_path):
        path = tmp_path / "mini.json"
        path.write_text(json.dumps(MINIMAL))
        assert read_form_data(path) == MINIMAL

    def test_yaml(self, tmp_path):
        path = tmp_path / "mini.yml"
        path.write_text("form_id: mini\nquestions:\n  - id: q1\n    answer_type: yes_no\n")
        assert read_form_data(path)["questions"][0]["answer_type"] == "yes_no"

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "form.txt"
        path.write_text("{}")
        with pytest.raises(FormLoadError, match="unsupported file type"):
            read_form_data(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FormLoadError, match="cannot read file"):
            read_form_data(tmp_path / "absent.json")

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{")
        with pytest.raises(FormLoadError, match="malformed content"):
            read_form_data(path)

    def test_top_level_list(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(FormLoadError, match="must be a mapping") as exc_info:
            read_form_data(path)
        assert exc_info.value.path == path


class TestLoadForm:

    def test_bundled_yaml(self):
        form = load_form(FORMS_DIR / "customer_feedback.yaml")
        assert [q.id for q in form.ordered_questions()][:2] == ["nps", "detractor_reason"]

    def test_invalid_definition(self, tmp_path):
        path = tmp_path / "invalid.json"
        path.write_text(json.dumps({"form_id": "x", "questions": [{"id": "a"}]}))
        with pytest.raises(ValidationError):
            load_form(path)


class TestListForms:

    def test_bundled_directory(self):
        forms = list_forms(FORMS_DIR)
        assert {f["form_id"] for f in forms} == {"budget_survey", "customer_feedback"}

    def test_skips_broken_and_foreign_files(self, tmp_path):
        (tmp_path / "good.json").write_text(json.dumps(MINIMAL))
        (tmp_path / "broken.yaml").write_text("questions: [unclosed")
        (tmp_path / "README.md").write_text("# forms")
        assert list_forms(tmp_path) == [
            {"filename": "good.json", "form_id": "mini", "title": "Mini", "questions": 1},
        ]

    def test_defaults_from_filename(self, tmp_path):
        (tmp_path / "untitled.yaml").write_text("questions: []\n")
        assert list_forms(tmp_path) == [
            {"filename": "untitled.yaml", "form_id": "untitled", "title": "untitled", "questions": 0},
        ]

    def test_missing_directory(self, tmp_path):
        assert list_forms(tmp_path / "nope") == []
