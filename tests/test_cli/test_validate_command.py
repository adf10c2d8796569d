"""Tests for ``oasir validate``."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from oasir.app import app
from oasir.exit_codes import EXIT_DOCUMENT_PARSE_ERROR, EXIT_VALIDATION_VIOLATION, EXIT_VERSION_UNSUPPORTED

from conftest import COMMON_URI, FIXTURES_DIR


@pytest.fixture
def broken(tmp_path: Path) -> Path:
    path = tmp_path / "broken.yaml"
    path.write_text(
        "openapi: 3.0.3\n"
        "info: {title: Broken, version: '1'}\n"
        "paths:\n"
        "  /a:\n"
        "    get:\n"
        "      responses:\n"
        "        '200': {description: ''}\n",
        encoding="utf-8",
    )
    return path


class TestValidateCommand:
    """Test exit codes and output of the validate command."""

    @pytest.mark.parametrize("name", ["petstore.yaml", "events.yaml", "swagger.json"])
    def test_valid_fixtures(self, cli_runner: CliRunner, name: str) -> None:
        result = cli_runner.invoke(app, ["--no-color", "validate", str(FIXTURES_DIR / name)])
        assert result.exit_code == 0, result.output
        assert "is valid" in result.output

    def test_json_success(self, cli_runner: CliRunner) -> None:
        path = str(FIXTURES_DIR / "petstore.yaml")
        result = cli_runner.invoke(app, ["--json", "validate", path])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == {"valid": True, "file": path}

    def test_violation(self, cli_runner: CliRunner, broken: Path) -> None:
        result = cli_runner.invoke(app, ["--no-color", "validate", str(broken)])
        assert result.exit_code == EXIT_VALIDATION_VIOLATION
        assert "response must have a non-empty description" in result.output

    def test_json_violation(self, cli_runner: CliRunner, broken: Path) -> None:
        result = cli_runner.invoke(app, ["--json", "validate", str(broken)])
        assert result.exit_code == EXIT_VALIDATION_VIOLATION
        assert json.loads(result.stdout) == {
            "valid": False,
            "path": "paths./a.get.responses.200",
            "message": "response must have a non-empty description",
        }

    def test_unsupported_version(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "future.json"
        path.write_text('{"openapi": "9.0.0", "info": {"title": "T", "version": "1"}, "paths": {}}')
        result = cli_runner.invoke(app, ["validate", str(path)])
        assert result.exit_code == EXIT_VERSION_UNSUPPORTED

    def test_unparsable_document(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("openapi: [unclosed\n")
        result = cli_runner.invoke(app, ["validate", str(path)])
        assert result.exit_code == EXIT_DOCUMENT_PARSE_ERROR

    def test_registered_documents(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            app,
            [
                "--quiet",
                "validate",
                str(FIXTURES_DIR / "catalog.yaml"),
                "-r",
                f"{COMMON_URI}={FIXTURES_DIR / 'common.yaml'}",
            ],
        )
        assert result.exit_code == 0, result.output
