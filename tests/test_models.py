"""Tests for the diagnostic and request value types."""

import os

import pytest

from lint_overlay.models import (
    GLOBAL_FILE,
    Diagnostic,
    RunAll,
    RunFiles,
    Severity,
    Unlink,
    decode_diagnostics,
    describe_error,
    encode_diagnostics,
    global_diagnostic,
    normalize_path,
)


class TestDiagnostic:
    def test_default_severity_is_error(self):
        d = Diagnostic(file="src/a.js", line=3, message="x", source="ESLint")
        assert d.severity is Severity.ERROR
        assert not d.is_global

    def test_to_dict_uses_plain_severity_string(self):
        d = Diagnostic("src/a.js", 3, "unused", "ESLint", Severity.WARNING)
        assert d.to_dict() == {
            "file": "src/a.js",
            "line": 3,
            "message": "unused",
            "source": "ESLint",
            "severity": "warning",
        }

    def test_from_dict_fills_missing_fields(self):
        d = Diagnostic.from_dict({"message": "oops", "source": "TS"})
        assert d.file == GLOBAL_FILE
        assert d.line == 0
        assert d.severity is Severity.ERROR

    def test_from_dict_rejects_unknown_severity(self):
        with pytest.raises(ValueError):
            Diagnostic.from_dict({"file": "a", "line": 1, "severity": "fatal"})

    def test_encode_decode_preserves_order(self):
        items = [
            Diagnostic("src/b.ts", 9, "m1", "TS"),
            Diagnostic("src/a.ts", 1, "m2", "TS", Severity.WARNING),
        ]
        assert decode_diagnostics(encode_diagnostics(items)) == items

    def test_diagnostics_are_hashable(self):
        d = Diagnostic("src/a.js", 1, "x", "ESLint")
        assert len({d, Diagnostic("src/a.js", 1, "x", "ESLint")}) == 1


class TestGlobalDiagnostic:
    def test_global_diagnostic_shape(self):
        d = global_diagnostic("TS", "tsconfig.json not found")
        assert d.file == GLOBAL_FILE
        assert d.line == 0
        assert d.source == "TS"
        assert d.is_global

    def test_global_warning(self):
        d = global_diagnostic("ESLint", "slow", Severity.WARNING)
        assert d.severity is Severity.WARNING


class TestNormalizePath:
    def test_relative_to_root(self, tmp_path):
        path = tmp_path / "src" / "nested" / "a.js"
        assert normalize_path(str(path), str(tmp_path)) == "src/nested/a.js"

    def test_already_relative_path(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert normalize_path(os.path.join("src", "a.js"), str(tmp_path)) == "src/a.js"

    def test_outside_root_keeps_parent_segments(self, tmp_path):
        root = tmp_path / "project"
        other = tmp_path / "elsewhere" / "a.js"
        assert normalize_path(str(other), str(root)) == "../elsewhere/a.js"


class TestDescribeError:
    def test_without_traceback(self):
        assert describe_error(ValueError("bad value")) == "bad value"

    def test_empty_message_uses_type_name(self):
        assert describe_error(KeyError()) == "KeyError"

    def test_includes_innermost_frame(self):
        def explode():
            raise RuntimeError("boom")

        try:
            explode()
        except RuntimeError as exc:
            text = describe_error(exc)

        first, location = text.split("\n")
        assert first == "boom"
        assert "in explode" in location
        assert location.strip().startswith("at ")


class TestRequests:
    def test_run_files_of_deduplicates(self):
        request = RunFiles.of("/p/a.js", "/p/a.js", "/p/b.js")
        assert request.files == frozenset({"/p/a.js", "/p/b.js"})

    def test_requests_compare_by_value(self):
        assert RunAll() == RunAll()
        assert Unlink("/p/a.js") == Unlink("/p/a.js")
        assert RunFiles.of("/p/a.js") != RunFiles.of("/p/b.js")
