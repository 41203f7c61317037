"""Tests for the file-backed rubric catalog."""

from __future__ import annotations

import json
import logging

import pytest

from rtass.exceptions import RtassError, RubricValidationError
from rtass.rubrics.library import RubricLibrary, is_safe_rubric_filename


@pytest.fixture
def rubric_dir(tmp_path, rubric_data):
    (tmp_path / "baseline.json").write_text(json.dumps(rubric_data))

    mayday = dict(rubric_data, id="mayday-only", name="Aardvark Mayday Drill")
    (tmp_path / "mayday.json").write_text(json.dumps(mayday))

    (tmp_path / "rubric.schema.json").write_text(json.dumps({"type": "object"}))
    (tmp_path / "notes.txt").write_text("not a rubric")
    return tmp_path


class TestSafeFilename:
    @pytest.mark.parametrize("name", ["baseline.json", "AFD-v2.json", "a_b.c.json"])
    def test_safe(self, name: str) -> None:
        assert is_safe_rubric_filename(name)

    @pytest.mark.parametrize("name", [
        "../secrets.json",
        "sub/rubric.json",
        "rubric.schema.json",
        "rubric.yaml",
        "has space.json",
        "..json",
    ])
    def test_unsafe(self, name: str) -> None:
        assert not is_safe_rubric_filename(name)


class TestRubricLibrary:
    def test_list_sorted_by_name(self, rubric_dir) -> None:
        summaries = RubricLibrary(rubric_dir).list_rubrics()

        assert [s.name for s in summaries] == ["Aardvark Mayday Drill", "AFD Radio Baseline"]
        assert summaries[1].source_file == "baseline.json"
        assert summaries[1].to_dict()["sourceFile"] == "baseline.json"
        assert summaries[1].tags == ("radio", "baseline")

    def test_list_skips_invalid_files(self, rubric_dir, caplog) -> None:
        (rubric_dir / "broken.json").write_text("{not json")
        (rubric_dir / "empty-sections.json").write_text(json.dumps({"id": "x"}))

        with caplog.at_level(logging.WARNING):
            summaries = RubricLibrary(rubric_dir).list_rubrics()

        assert len(summaries) == 2
        assert "broken.json" in caplog.text
        assert "empty-sections.json" in caplog.text

    def test_missing_directory(self, tmp_path) -> None:
        assert RubricLibrary(tmp_path / "nope").list_rubrics() == []

    def test_load(self, rubric_dir) -> None:
        rubric = RubricLibrary(rubric_dir).load("baseline.json")
        assert rubric.id == "afd-radio-baseline"

    def test_load_rejects_unsafe_name(self, rubric_dir) -> None:
        with pytest.raises(RtassError) as exc_info:
            RubricLibrary(rubric_dir).load("../baseline.json")
        assert exc_info.value.context["type"] == "invalid_file"

    def test_load_missing_file(self, rubric_dir) -> None:
        with pytest.raises(RtassError) as exc_info:
            RubricLibrary(rubric_dir).load("missing.json")
        assert exc_info.value.context["type"] == "not_found"

    def test_load_invalid_json(self, rubric_dir) -> None:
        (rubric_dir / "broken.json").write_text("{not json")
        with pytest.raises(RubricValidationError) as exc_info:
            RubricLibrary(rubric_dir).load("broken.json")
        assert exc_info.value.violations[0].path == "<root>"

    def test_list_skips_undecodable_and_non_finite_files(self, rubric_dir, rubric_data,
                                                         caplog) -> None:
        (rubric_dir / "latin1.json").write_bytes(b'{"id": "caf\xe9"}')
        text = json.dumps(rubric_data).replace('"weight": 0.6', '"weight": NaN', 1)
        (rubric_dir / "nan-weight.json").write_text(text)

        with caplog.at_level(logging.WARNING):
            summaries = RubricLibrary(rubric_dir).list_rubrics()

        assert len(summaries) == 2
        assert "latin1.json" in caplog.text
        assert "nan-weight.json" in caplog.text

    def test_load_undecodable_file(self, rubric_dir) -> None:
        (rubric_dir / "latin1.json").write_bytes(b'{"id": "caf\xe9"}')

        with pytest.raises(RubricValidationError) as exc_info:
            RubricLibrary(rubric_dir).load("latin1.json")

        violation = exc_info.value.violations[0]
        assert violation.path == "<root>"
        assert violation.message.startswith("invalid JSON")
        assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)
