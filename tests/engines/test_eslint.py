"""Tests for the ESLint engine and report parsing."""

import json
import subprocess
from unittest.mock import patch

import pytest

from lint_overlay.engines.base import find_executable
from lint_overlay.engines.eslint import EslintEngine, parse_eslint_report, project_glob
from lint_overlay.exceptions import AnalysisError, AnalyzerUnavailableError
from lint_overlay.models import Severity


def _report(root, *entries):
    return json.dumps(
        [{"filePath": str(root / path), "messages": messages} for path, messages in entries]
    )


class TestProjectGlob:
    def test_multiple_extensions(self):
        assert project_glob("src", (".js", ".ts")) == "src/**/*.{js,ts}"

    def test_single_extension(self):
        assert project_glob("lib", (".ts",)) == "lib/**/*.ts"


class TestParseReport:
    def test_severity_mapping(self, tmp_path):
        report = _report(
            tmp_path,
            (
                "src/a.js",
                [
                    {"line": 3, "message": "'x' is not defined.", "severity": 2},
                    {"line": 9, "message": "Unexpected console statement.", "severity": 1},
                ],
            ),
        )
        results = parse_eslint_report(report, str(tmp_path))
        errors = results["src/a.js"]
        assert [d.severity for d in errors] == [Severity.ERROR, Severity.WARNING]
        assert errors[0].line == 3
        assert errors[0].source == "ESLint"
        assert errors[0].file == "src/a.js"

    def test_clean_file_maps_to_empty_list(self, tmp_path):
        results = parse_eslint_report(_report(tmp_path, ("src/ok.js", [])), str(tmp_path))
        assert results == {"src/ok.js": []}

    def test_parse_error_without_line(self, tmp_path):
        report = _report(
            tmp_path,
            ("src/bad.js", [{"message": "Parsing error: Unexpected token", "severity": 2, "fatal": True}]),
        )
        [diag] = parse_eslint_report(report, str(tmp_path))["src/bad.js"]
        assert diag.line == 0
        assert diag.message.startswith("Parsing error")

    def test_empty_output(self, tmp_path):
        assert parse_eslint_report("", str(tmp_path)) == {}

    def test_garbage_output_raises(self, tmp_path):
        with pytest.raises(AnalysisError):
            parse_eslint_report("Oops! Something went wrong!", str(tmp_path))


class TestFindExecutable:
    def test_project_local_binary_preferred(self, tmp_path):
        bin_dir = tmp_path / "node_modules" / ".bin"
        bin_dir.mkdir(parents=True)
        (bin_dir / "eslint").write_text("#!/bin/sh\n")
        assert find_executable(str(tmp_path), "eslint") == [str(bin_dir / "eslint")]

    def test_falls_back_to_path(self, tmp_path):
        with patch("lint_overlay.engines.base.shutil.which", return_value="/usr/bin/eslint"):
            assert find_executable(str(tmp_path), "eslint") == ["/usr/bin/eslint"]

    def test_missing_raises(self, tmp_path):
        with patch("lint_overlay.engines.base.shutil.which", return_value=None):
            with pytest.raises(AnalyzerUnavailableError, match="eslint executable not found"):
                find_executable(str(tmp_path), "eslint")

    def test_explicit_command_is_split(self, tmp_path):
        with patch("lint_overlay.engines.base.shutil.which", return_value="/usr/bin/npx"):
            assert find_executable(str(tmp_path), "eslint", "npx eslint") == ["npx", "eslint"]


class TestEslintEngine:
    @pytest.fixture
    def engine(self, tmp_path):
        with patch("lint_overlay.engines.eslint.find_executable", return_value=["eslint"]):
            return EslintEngine(str(tmp_path), root_dir="src", extensions=(".js", ".ts"))

    def _completed(self, returncode, stdout="[]", stderr=""):
        return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)

    def test_full_scan_uses_project_glob(self, engine):
        with patch("lint_overlay.engines.eslint.subprocess.run", return_value=self._completed(0)) as run:
            assert engine.lint(None) == {}
        cmd = run.call_args[0][0]
        assert cmd[:3] == ["eslint", "--format", "json"]
        assert cmd[-1] == "src/**/*.{js,ts}"
        assert run.call_args.kwargs["start_new_session"] is True

    def test_explicit_files(self, engine, tmp_path):
        target = str(tmp_path / "src" / "a.js")
        report = _report(tmp_path, ("src/a.js", [{"line": 1, "message": "semi", "severity": 2}]))
        with patch(
            "lint_overlay.engines.eslint.subprocess.run", return_value=self._completed(1, report)
        ) as run:
            results = engine.lint([target])
        assert run.call_args[0][0][-1] == target
        assert len(results["src/a.js"]) == 1

    def test_empty_file_list_skips_run(self, engine):
        with patch("lint_overlay.engines.eslint.subprocess.run") as run:
            assert engine.lint([]) == {}
        run.assert_not_called()

    def test_config_error_exit_raises(self, engine):
        failed = self._completed(2, stdout="", stderr="No ESLint configuration found")
        with patch("lint_overlay.engines.eslint.subprocess.run", return_value=failed):
            with pytest.raises(AnalysisError, match="code 2") as excinfo:
                engine.lint(None)
        assert "No ESLint configuration" in excinfo.value.details["stderr"]

    def test_timeout_raises(self, tmp_path):
        with patch("lint_overlay.engines.eslint.find_executable", return_value=["eslint"]):
            engine = EslintEngine(str(tmp_path), timeout=1.0)
        with patch(
            "lint_overlay.engines.eslint.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="eslint", timeout=1.0),
        ):
            with pytest.raises(AnalysisError, match="timed out"):
                engine.lint(None)
