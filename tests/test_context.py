import sys
import types
from pathlib import Path

import torch

from image_folder_classifier.lib import PipelineContext


class FakeRun:
    def __init__(self, experiment):
        self.experiment = experiment
        self.tracked = []
        self.values = {}
        self.closed = False
        self.repo = types.SimpleNamespace(path="/tmp/.aim")

    def track(self, value, name, **kwargs):
        self.tracked.append((name, value, kwargs))

    def __setitem__(self, key, value):
        self.values[key] = value

    def close(self):
        self.closed = True


def test_seeded_contexts_share_a_random_stream(tmp_path: Path):
    first = PipelineContext(workspace_dir=tmp_path / "a", seed=11, device="cpu")
    second = PipelineContext(workspace_dir=tmp_path / "b", seed=11, device="cpu")

    assert first.random_state.randint(0, 10**6) == second.random_state.randint(0, 10**6)
    assert (tmp_path / "a").is_dir()
    assert first.device == torch.device("cpu")


def test_tracking_is_a_no_op_without_experiment(tmp_path: Path):
    with PipelineContext(workspace_dir=tmp_path, device="cpu") as context:
        context.track(1.0, name="loss")
        context.log_hparams({"lr": 0.1})
        assert context.aim_run is None


def test_aim_run_is_created_lazily_and_closed(tmp_path: Path, monkeypatch):
    monkeypatch.setitem(sys.modules, "aim", types.SimpleNamespace(Run=FakeRun))

    with PipelineContext(
        workspace_dir=tmp_path, device="cpu", aim_experiment="cats_v1"
    ) as context:
        context.log_hparams({"arch": "ResnetV2101", "path": tmp_path})
        context.track(0.5, name="epoch_accuracy", epoch=0)
        run = context.aim_run

    assert run.experiment == "cats_v1"
    assert run.values["hparams"] == {"arch": "ResnetV2101", "path": str(tmp_path)}
    assert run.tracked == [("epoch_accuracy", 0.5, {"epoch": 0})]
    assert run.closed
