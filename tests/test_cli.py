"""Tests for arena/cli.py using click's CliRunner with mocked providers."""

from pathlib import Path

import pytest
from click.testing import CliRunner

from arena import cli
from tests.conftest import TEST_ENV, MockProvider, failing_provider


@pytest.fixture(autouse=True)
def _env(monkeypatch):
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    for key in ("FUNCTIONS_EMULATOR", "FIREBASE_EMULATOR_HUB", "ARENA_ENV", "AI_DAILY_LIMIT"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def providers(monkeypatch):
    built = [MockProvider("gemini", ("gemini-2.5-flash",))]
    monkeypatch.setattr(cli, "build_providers", lambda config: built)
    return built


def test_personas_lists_registry(runner):
    result = runner.invoke(cli.main, ["personas"])
    assert result.exit_code == 0
    assert "scientist" in result.output
    assert "devil" in result.output


def test_create_prints_debate_and_saves(runner, providers, tmp_path: Path):
    store_path = tmp_path / "store.json"
    out_dir = tmp_path / "out"

    result = runner.invoke(cli.main, [
        "create", "Debe el teletrabajo ser la norma?",
        "--persona-a", "scientist",
        "--persona-b", "skeptic",
        "--debate-id", "cli-debate-1",
        "--store", str(store_path),
        "--output", str(out_dir),
    ])

    assert result.exit_code == 0, result.output
    assert "Veredicto" in result.output
    assert "cli-debate-1" in result.output
    assert store_path.exists()
    saved = list(out_dir.glob("*.md"))
    assert len(saved) == 1
    assert "## Turno 6 (B - El Esceptico)" in saved[0].read_text(encoding="utf-8")


def test_create_validation_error_exits_nonzero(runner, providers, tmp_path: Path):
    result = runner.invoke(cli.main, [
        "create", "Debe el teletrabajo ser la norma?",
        "--persona-a", "scientist",
        "--persona-b", "scientist",
        "--store", str(tmp_path / "store.json"),
    ])

    assert result.exit_code == 1
    assert "invalid-argument" in result.output
    providers[0].generate.assert_not_called()


def test_create_generation_failure_exits_nonzero(runner, monkeypatch, tmp_path: Path):
    monkeypatch.setattr(
        cli, "build_providers", lambda config: [failing_provider("gemini", "[503 UNAVAILABLE] overloaded")]
    )

    result = runner.invoke(cli.main, [
        "create", "Debe el teletrabajo ser la norma?",
        "--persona-a", "scientist",
        "--persona-b", "skeptic",
        "--store", str(tmp_path / "store.json"),
    ])

    assert result.exit_code == 1
    assert "unavailable" in result.output


def test_usage_counts_created_debates(runner, providers, tmp_path: Path):
    store_path = tmp_path / "store.json"
    runner.invoke(cli.main, [
        "create", "Debe el teletrabajo ser la norma?",
        "--persona-a", "scientist",
        "--persona-b", "skeptic",
        "--user", "alice",
        "--store", str(store_path),
    ])

    result = runner.invoke(cli.main, ["usage", "--user", "alice", "--store", str(store_path)])

    assert result.exit_code == 0
    assert "Usados: 1 / 10" in result.output


def test_check_without_providers_exits_nonzero(runner, monkeypatch):
    monkeypatch.setattr(cli, "build_providers", lambda config: [])
    result = runner.invoke(cli.main, ["check"])
    assert result.exit_code == 1
    assert "No providers available" in result.output


def test_check_reports_ok(runner, providers):
    result = runner.invoke(cli.main, ["check"])
    assert result.exit_code == 0
    assert "gemini:gemini-2.5-flash" in result.output


def test_check_all_failing_exits_nonzero(runner, monkeypatch):
    monkeypatch.setattr(
        cli, "build_providers", lambda config: [failing_provider("gemini", "[403] Forbidden", models=("g1",))]
    )
    result = runner.invoke(cli.main, ["check"])
    assert result.exit_code == 1
    assert "FAIL" in result.output


def test_verbose_is_a_group_option(runner):
    assert runner.invoke(cli.main, ["--verbose", "personas"]).exit_code == 0
    assert runner.invoke(cli.main, ["personas", "--verbose"]).exit_code == 2
