import logging
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(
    name: str,
    level: int = logging.INFO,
    log_dir: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """Set up a logger with the specified name and logging level.

    When ``log_dir`` is given, a DEBUG-level file handler writing to
    ``<log_dir>/<name>.log`` is attached next to the console handler.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT)

    if not logger.hasHandlers():
        console = logging.StreamHandler()
        console.setLevel(level)
        console.setFormatter(formatter)
        logger.addHandler(console)

    if log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_path = log_path / f"{name}.log"
        already_attached = any(
            isinstance(h, logging.FileHandler)
            and Path(h.baseFilename) == file_path.absolute()
            for h in logger.handlers
        )
        if not already_attached:
            file_handler = logging.FileHandler(file_path)
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger


def set_package_level(level: int) -> None:
    """Apply ``level`` to every logger already created under this package."""
    for name, candidate in logging.root.manager.loggerDict.items():
        if name.startswith("image_folder_classifier") and isinstance(
            candidate, logging.Logger
        ):
            candidate.setLevel(level)
            for handler in candidate.handlers:
                if not isinstance(handler, logging.FileHandler):
                    handler.setLevel(level)


def set_package_log_dir(log_dir: Union[str, Path]) -> None:
    """Attach a file handler under ``log_dir`` to every logger of this package."""
    for name, candidate in list(logging.root.manager.loggerDict.items()):
        if name.startswith("image_folder_classifier") and isinstance(
            candidate, logging.Logger
        ):
            setup_logger(name, level=candidate.level, log_dir=log_dir)
