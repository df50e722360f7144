from pathlib import Path
from typing import Iterator, Union

from image_folder_classifier.lib import ImageFormat, ImageRecord, setup_logger

logger = setup_logger(__name__)

SUPPORTED_EXTENSIONS = frozenset(format.value for format in ImageFormat)


def label_from_filename(filename: str) -> str:
    """Return the leading alphabetic prefix of ``filename``.

    ``"cat.01.jpg"`` gives ``"cat"``; a name starting with a non-letter gives
    an empty string.
    """
    for index, char in enumerate(filename):
        if not char.isalpha():
            return filename[:index]
    return filename


def is_supported_image(path: Path, case_sensitive: bool = True) -> bool:
    suffix = path.suffix if case_sensitive else path.suffix.lower()
    return suffix in SUPPORTED_EXTENSIONS


def load_images_from_directory(
    folder: Union[str, Path],
    use_folder_name_as_label: bool = True,
    case_sensitive_extensions: bool = True,
) -> Iterator[ImageRecord]:
    """
    Walk ``folder`` recursively and yield one ImageRecord per supported image.

    Args:
        folder: Root directory to search
        use_folder_name_as_label: Label each image with the name of its parent
            directory. Otherwise the label is the alphabetic prefix of the
            file name.
        case_sensitive_extensions: Only accept the exact extensions ``.jpg``
            and ``.png``. When False, ``.JPG`` and similar are accepted too.

    Files with other extensions are skipped silently. An empty or missing
    folder yields nothing.
    """
    root = Path(folder).absolute()
    if not root.is_dir():
        logger.warning(f"Image folder {root} does not exist")
        return
    logger.debug(f"Enumerating images under {root}")

    found = 0
    for file in sorted(root.rglob("*")):
        if not file.is_file():
            continue
        if not is_supported_image(file, case_sensitive=case_sensitive_extensions):
            logger.debug(f"Skipping unsupported file {file}")
            continue

        if use_folder_name_as_label:
            label = file.parent.name
        else:
            label = label_from_filename(file.name)
            if not label:
                logger.warning(f"File {file.name} does not start with a letter")

        found += 1
        yield ImageRecord(image_path=str(file), label=label)

    logger.info(f"Found {found} images under {root}")
