"""Tests for the codeshim command line (codeshim.cli)."""

import sys
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from codeshim import REGEX_TRANSFORMER, REPLACE_TRANSFORMER, active_protocol
from codeshim.cli import main


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "codeshim.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "transformers": [
                    {
                        "type_url": REGEX_TRANSFORMER,
                        "config": {"name": "greet", "pattern": "hello", "replacement": "goodbye"},
                    },
                    {
                        "type_url": REPLACE_TRANSFORMER,
                        "config": {"name": "shout", "old": "from", "new": "FROM"},
                    },
                ]
            }
        )
    )
    return path


class TestRun:
    def test_script_is_rewritten(
        self, runner: CliRunner, config_file: Path, tmp_path: Path
    ) -> None:
        script = tmp_path / "app.py"
        script.write_text('print("hello from app")\n')

        result = runner.invoke(main, ["run", "--config", str(config_file), str(script)])

        assert result.exit_code == 0, result.output
        assert "goodbye FROM app" in result.output
        assert active_protocol() is None

    def test_script_arguments_forwarded(
        self, runner: CliRunner, config_file: Path, tmp_path: Path
    ) -> None:
        script = tmp_path / "args.py"
        script.write_text("import sys\nprint(sys.argv[1:])\n")
        saved_argv = list(sys.argv)

        result = runner.invoke(
            main, ["run", "--config", str(config_file), str(script), "--flag", "x"]
        )

        assert result.exit_code == 0, result.output
        assert "['--flag', 'x']" in result.output
        assert sys.argv == saved_argv

    def test_imports_next_to_script_rewritten(
        self,
        runner: CliRunner,
        config_file: Path,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.syspath_prepend(str(tmp_path))
        (tmp_path / "shimmed_cli_helper.py").write_text('WORD = "hello"\n')
        script = tmp_path / "main.py"
        script.write_text("import shimmed_cli_helper\nprint(shimmed_cli_helper.WORD)\n")

        try:
            result = runner.invoke(main, ["run", "--config", str(config_file), str(script)])
        finally:
            sys.modules.pop("shimmed_cli_helper", None)

        assert result.exit_code == 0, result.output
        assert result.output.strip() == "goodbye"

    def test_without_config_runs_untouched(self, runner: CliRunner, tmp_path: Path) -> None:
        script = tmp_path / "plain.py"
        script.write_text('print("hello from app")\n')

        result = runner.invoke(main, ["run", str(script)])

        assert result.exit_code == 0, result.output
        assert "hello from app" in result.output

    def test_unknown_type_url(self, runner: CliRunner, tmp_path: Path) -> None:
        config = tmp_path / "bad.yaml"
        config.write_text(yaml.safe_dump({"transformers": [{"type_url": "acme.v1.Nope"}]}))
        script = tmp_path / "app.py"
        script.write_text("pass\n")

        result = runner.invoke(main, ["run", "--config", str(config), str(script)])

        assert result.exit_code == 1
        assert "unknown transformer type_url" in result.output

    def test_script_failure_uninstalls(self, runner: CliRunner, tmp_path: Path) -> None:
        script = tmp_path / "boom.py"
        script.write_text("raise RuntimeError('boom')\n")

        result = runner.invoke(main, ["run", str(script)])

        assert isinstance(result.exception, RuntimeError)
        assert active_protocol() is None


class TestCheck:
    def test_invalid_yaml(self, runner: CliRunner, tmp_path: Path) -> None:
        config = tmp_path / "broken.yaml"
        config.write_text("transformers: [\n")

        result = runner.invoke(main, ["check", "--config", str(config)])

        assert result.exit_code == 1
        assert "invalid YAML" in result.output
        assert not isinstance(result.exception, yaml.YAMLError)

    def test_lists_transformers(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(main, ["check", "--config", str(config_file)])

        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert lines[0] == "greet\tRegexTransformer"
        assert lines[1] == "shout\tReplaceTransformer"
        assert lines[2] == "import roots: (script directory)"

    def test_invalid_config(self, runner: CliRunner, tmp_path: Path) -> None:
        config = tmp_path / "bad.yaml"
        config.write_text(yaml.safe_dump({"transformers": "nope"}))

        result = runner.invoke(main, ["check", "--config", str(config)])

        assert result.exit_code == 1
        assert "must be a list" in result.output
