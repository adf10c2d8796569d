"""Tests for the output formatting system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline
- Quiet mode suppression rules
- print_table and print_document in each format
- Global instance management
"""

from __future__ import annotations

import json

import pytest

from oasir.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    error,
    get_output,
    reset_output,
    set_output,
)


# ------------------------------------------------------------------ #
# Fixtures
# ------------------------------------------------------------------ #


@pytest.fixture()
def non_tty(monkeypatch):
    """Patch stdout.isatty() to return False."""
    monkeypatch.setattr("oasir.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    """Patch stdout.isatty() to return True."""
    monkeypatch.setattr("oasir.output._is_tty", lambda: True)


class TestOutputFormatResolution:
    """Test that AUTO format resolves correctly based on environment."""

    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.RICH

    def test_auto_resolves_to_plain_when_tty_but_no_color(self, tty):
        assert OutputManager(format=OutputFormat.AUTO, no_color=True).format == OutputFormat.PLAIN

    def test_explicit_json_stays_json(self, tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


class TestColorDisabling:
    def test_no_color_env_any_value(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb_disables_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_color_enabled_by_default(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


class TestTables:
    """Test print_table in the JSON and plain formats."""

    HEADERS = ["Method", "Path"]
    ROWS = [["GET", "/pets"], ["POST", "/pets"]]

    def test_json(self, capsys):
        OutputManager(format=OutputFormat.JSON).print_table(self.HEADERS, self.ROWS, title="Routes")
        assert json.loads(capsys.readouterr().out) == [
            {"Method": "GET", "Path": "/pets"},
            {"Method": "POST", "Path": "/pets"},
        ]

    def test_plain(self, capsys):
        OutputManager(format=OutputFormat.PLAIN).print_table(self.HEADERS, self.ROWS)
        assert capsys.readouterr().out.splitlines() == ["Method\tPath", "GET\t/pets", "POST\t/pets"]

    def test_rich_includes_title(self, capsys):
        OutputManager(format=OutputFormat.RICH, no_color=True).print_table(
            self.HEADERS, self.ROWS, title="Routes"
        )
        out = capsys.readouterr().out
        assert "Routes" in out
        assert "/pets" in out


class TestDocuments:
    def test_json_document(self, capsys):
        OutputManager(format=OutputFormat.PLAIN).print_document({"title": "Café", "count": 2})
        out = capsys.readouterr().out
        assert json.loads(out) == {"title": "Café", "count": 2}
        assert "Café" in out


class TestDiagnostics:
    """Diagnostics go to stderr; data never does."""

    def test_info_goes_to_stderr(self, capsys):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).info("assembled")
        captured = capsys.readouterr()
        assert captured.err == "assembled\n"
        assert captured.out == ""

    def test_quiet_suppresses_info_and_success(self, capsys):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.info("hidden")
        mgr.success("hidden")
        assert capsys.readouterr().err == ""

    def test_errors_survive_quiet(self, capsys):
        OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True).error("broken")
        assert capsys.readouterr().err == "Error: broken\n"


class TestGlobalInstance:
    def test_lazy_default(self):
        reset_output()
        assert get_output() is get_output()

    def test_set_output(self):
        mgr = OutputManager(format=OutputFormat.JSON)
        set_output(mgr)
        assert get_output() is mgr

    def test_error_uses_global(self, capsys):
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True))
        error("bad thing")
        assert capsys.readouterr().err == "Error: bad thing\n"
