"""Tests for the command-line interface."""

from __future__ import annotations

from typer.testing import CliRunner

from readable_fetch.cli import app

runner = CliRunner()


def test_normalize_prints_canonical_url_and_key():
    result = runner.invoke(app, ["normalize", "https://example.com/a/?source=x"])
    assert result.exit_code == 0
    assert "https://example.com/a\n" in result.output
    assert "fetch-fast:https://example.com/a" in result.output


def test_normalize_rejects_private_url():
    result = runner.invoke(app, ["normalize", "http://localhost/admin"])
    assert result.exit_code == 1
    assert "VALIDATION_ERROR" in result.output
