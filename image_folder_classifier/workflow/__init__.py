"""
End-to-end workflow: configuration, the pipeline runner and the command line.
"""

from .config import WorkflowConfig, load_config
from .runner import WorkflowResult, build_dataset, run_workflow

__all__ = [
    "WorkflowConfig",
    "load_config",
    "WorkflowResult",
    "build_dataset",
    "run_workflow",
]
