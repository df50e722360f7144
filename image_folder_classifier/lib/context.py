import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np
import torch

from image_folder_classifier.lib.logger import setup_logger

logger = setup_logger(__name__)


class PipelineContext:
    """
    Per-run state shared by every pipeline stage.

    One context is built per run and passed explicitly to the enumerator,
    splitter, trainer and reporting stages. It owns the random state, the
    torch device, the workspace directory and, when an experiment name is
    given, the Aim run. Use it as a context manager so the Aim run is closed.
    """

    def __init__(
        self,
        workspace_dir: Union[str, Path] = "workspace",
        seed: Optional[int] = None,
        device: Optional[str] = None,
        aim_experiment: Optional[str] = None,
    ):
        self.seed = seed
        self.workspace_dir = Path(workspace_dir)
        self.workspace_dir.mkdir(parents=True, exist_ok=True)

        # Unseeded runs draw from OS entropy, so shuffles differ between runs
        self.random_state = np.random.RandomState(seed)
        if seed is not None:
            torch.manual_seed(seed)
            if torch.cuda.is_available():
                torch.cuda.manual_seed_all(seed)

        if device is None:
            device = "cuda" if torch.cuda.is_available() else "cpu"
        self.device = torch.device(device)

        self.aim_experiment = aim_experiment
        self._aim_run: Optional[Any] = None

        logger.info(
            f"Pipeline context ready (workspace={self.workspace_dir}, seed={seed}, device={self.device})"
        )

    @property
    def aim_run(self) -> Optional[Any]:
        """The Aim run for this context, created on first use."""
        if self.aim_experiment is None:
            return None
        if self._aim_run is None:
            import aim  # optional "tracking" extra

            self._aim_run = aim.Run(experiment=self.aim_experiment)
            logger.info(
                f"Aim run initialized. Check UI or logs at: {self._aim_run.repo.path}"
            )
        return self._aim_run

    def track(self, value: float, name: str, **kwargs: Any) -> None:
        run = self.aim_run
        if run is not None:
            run.track(value, name=name, **kwargs)

    def log_hparams(self, hparams: Dict[str, Any]) -> None:
        run = self.aim_run
        if run is not None:
            # Aim only stores plain JSON values
            run["hparams"] = json.loads(json.dumps(hparams, default=str))

    def close(self) -> None:
        if self._aim_run is not None:
            self._aim_run.close()
            self._aim_run = None

    def __enter__(self) -> "PipelineContext":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
