import json
from pathlib import Path

from typer.testing import CliRunner

from image_folder_classifier.workflow.cli import app

runner = CliRunner()


def test_enumerate_lists_records(assets_dir: Path):
    result = runner.invoke(app, ["enumerate", str(assets_dir)])

    assert result.exit_code == 0
    lines = result.stdout.splitlines()
    assert lines[-1] == "30 images"
    assert f"{assets_dir / 'cat' / 'a.jpg'}\tcat" in lines


def test_enumerate_with_filename_labels(assets_dir: Path):
    result = runner.invoke(
        app, ["enumerate", str(assets_dir), "--use-filename-labels"]
    )

    assert result.exit_code == 0
    assert f"{assets_dir / 'dog' / 'b.png'}\tb" in result.stdout.splitlines()


def test_split_saves_partitions(tmp_path: Path, assets_dir: Path):
    output_dir = tmp_path / "splits"
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"workspace_dir": str(tmp_path / "ws")}))

    result = runner.invoke(
        app,
        [
            "split",
            str(assets_dir),
            str(output_dir),
            "--config",
            str(config_path),
            "--seed",
            "1",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Datasets successfully built" in result.output
    summary = json.loads((output_dir / "summary.json").read_text())
    assert summary["train_size"] + summary["validation_size"] + summary["test_size"] == 30
    assert json.loads((output_dir / "label_mapping.json").read_text()) == {
        "cat": 0,
        "dog": 1,
    }


def test_split_of_empty_folder_exits_with_error(tmp_path: Path):
    (tmp_path / "empty").mkdir()
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"workspace_dir": str(tmp_path / "ws")}))

    result = runner.invoke(
        app,
        ["split", str(tmp_path / "empty"), str(tmp_path / "out"), "--config", str(config_path)],
    )

    assert result.exit_code == 1


def test_run_with_invalid_config_exits_with_error(tmp_path: Path, assets_dir: Path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("test_fraction: 2\n")

    result = runner.invoke(app, ["run", str(assets_dir), "--config", str(config_path)])

    assert result.exit_code == 1


def test_run_with_unsupported_config_format_exits_with_error(
    tmp_path: Path, assets_dir: Path
):
    config_path = tmp_path / "config.ini"
    config_path.write_text("[section]\n")

    result = runner.invoke(app, ["run", str(assets_dir), "--config", str(config_path)])

    assert result.exit_code == 1
