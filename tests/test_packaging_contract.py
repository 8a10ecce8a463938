import tomllib
from pathlib import Path


def _pyproject():
    pyproject_path = Path(__file__).resolve().parents[1] / "pyproject.toml"
    return tomllib.loads(pyproject_path.read_text(encoding="utf-8"))


def test_pyproject_declares_runtime_dependencies():
    dependencies = " ".join(_pyproject()["project"]["dependencies"])

    for name in ("pydantic", "pydantic-settings", "PyYAML", "typer", "rich", "docker"):
        assert name in dependencies


def test_pyproject_declares_test_extra_and_cli_entry_point():
    payload = _pyproject()

    assert any(dep.startswith("pytest") for dep in payload["project"]["optional-dependencies"]["test"])
    assert payload["project"]["scripts"]["devbroker"] == "devbroker.cli.main:app"
