from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from testx.pipeline.cli import app

runner = CliRunner()

SAMPLE = """from testx import testx


def setup():
    return 4711


@testx
def test_sample(num):
    assert num == 4711
"""


def test_rewrite_prints_source(tmp_path: Path):
    path = tmp_path / "test_sample.py"
    path.write_text(SAMPLE)

    result = runner.invoke(app, ["rewrite", str(path)])

    assert result.exit_code == 0
    assert "def _test_sample_inner(num):" in result.stdout
    assert "    sr = setup()\n    _test_sample_inner(sr)" in result.stdout
    assert path.read_text() == SAMPLE


def test_rewrite_in_place(tmp_path: Path):
    path = tmp_path / "test_sample.py"
    path.write_text(SAMPLE)

    result = runner.invoke(app, ["rewrite", "--write", str(path)])

    assert result.exit_code == 0
    assert "Rewrote 1 test(s)" in result.stdout
    assert "import testx as _testx" in path.read_text()


def test_check_reports_pending_rewrites(tmp_path: Path):
    path = tmp_path / "test_sample.py"
    path.write_text(SAMPLE)

    result = runner.invoke(app, ["rewrite", "--check", str(path)])

    assert result.exit_code == 1
    assert "would rewrite" in result.stdout
    assert path.read_text() == SAMPLE


def test_check_passes_for_plain_files(tmp_path: Path):
    path = tmp_path / "test_plain.py"
    path.write_text("def test_plain():\n    pass\n")

    result = runner.invoke(app, ["rewrite", "--check", str(path)])

    assert result.exit_code == 0


def test_rewrite_reports_errors(tmp_path: Path):
    path = tmp_path / "test_bad.py"
    path.write_text("from testx import testx\n\n@testx(bogus)\ndef test_bad(num):\n    pass\n")

    result = runner.invoke(app, ["rewrite", str(path)])

    assert result.exit_code == 1
    assert "unsupported attribute for testx: 'bogus'" in result.output


def test_diff(tmp_path: Path):
    path = tmp_path / "test_sample.py"
    path.write_text(SAMPLE)

    result = runner.invoke(app, ["diff", str(path)])

    assert result.exit_code == 0
    assert "-@testx" in result.stdout
    assert "+def _test_sample_inner(num):" in result.stdout


def test_resolve():
    assert runner.invoke(app, ["resolve", ""]).stdout.strip() == "use-default setup"
    assert runner.invoke(app, ["resolve", "no_setup"]).stdout.strip() == "no-setup"
    assert (
        runner.invoke(app, ["resolve", 'setup = "setup_666"']).stdout.strip()
        == "use-path setup_666"
    )


def test_resolve_unsupported_key():
    result = runner.invoke(app, ["resolve", "bogus"])

    assert result.exit_code == 1
    assert "bogus" in result.output


def test_config_file(tmp_path: Path):
    config = tmp_path / "testx.yaml"
    config.write_text("rewrite:\n  default_setup: make_data\n")

    result = runner.invoke(app, ["resolve", "", "--config", str(config)])

    assert result.stdout.strip() == "use-default make_data"


def test_missing_config_file(tmp_path: Path):
    result = runner.invoke(app, ["resolve", "", "--config", str(tmp_path / "missing.yaml")])

    assert result.exit_code == 1
    assert "Invalid configuration" in result.output
