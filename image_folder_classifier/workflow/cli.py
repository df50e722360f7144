import json
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError

from image_folder_classifier.dataset_builder import load_images_from_directory
from image_folder_classifier.lib.logger import setup_logger

from .config import WorkflowConfig, load_config
from .runner import build_dataset, create_context, run_workflow

app = typer.Typer(help="Image Folder Classifier")

logger = setup_logger(__name__)


def _resolve_config(
    config_file: Optional[str],
    workspace: Optional[str] = None,
    seed: Optional[int] = None,
    use_filename_labels: bool = False,
) -> WorkflowConfig:
    """Load the config file (if any) and apply command line overrides."""
    try:
        config = load_config(config_file) if config_file else WorkflowConfig()
    except ValidationError as e:
        logger.critical(e, exc_info=True)
        raise typer.Exit(code=1)

    overrides = {}
    if workspace is not None:
        overrides["workspace_dir"] = workspace
    if seed is not None:
        overrides["seed"] = seed
    if use_filename_labels:
        overrides["use_folder_name_as_label"] = False
    return config.model_copy(update=overrides)


@app.command()
def run(
    image_dir: str = typer.Argument(..., help="Path to the root image directory"),
    config_file: Optional[str] = typer.Option(
        None, "--config", help="Path to the configuration file (YAML/JSON)"
    ),
    workspace: Optional[str] = typer.Option(
        None, help="Directory for caches, label mapping and checkpoints"
    ),
    seed: Optional[int] = typer.Option(None, help="Random seed for reproducibility"),
    use_filename_labels: bool = typer.Option(
        False, help="Label images by file name prefix instead of folder name"
    ),
):
    """
    Train a classifier on the images under IMAGE_DIR and print predictions for the test set.
    """
    try:
        config = _resolve_config(config_file, workspace, seed, use_filename_labels)
        result = run_workflow(image_dir, config)
        if result.evaluation:
            logger.info("Test results:")
            logger.info(json.dumps(result.evaluation, indent=4, default=str))
    except typer.Exit:
        raise
    except Exception as e:
        logger.critical(e, exc_info=True)
        raise typer.Exit(code=1)


@app.command("enumerate")
def enumerate_images(
    image_dir: str = typer.Argument(..., help="Path to the root image directory"),
    use_filename_labels: bool = typer.Option(
        False, help="Label images by file name prefix instead of folder name"
    ),
    case_insensitive: bool = typer.Option(
        False, help="Accept .JPG/.PNG and other upper-case extensions"
    ),
):
    """
    List the images found under IMAGE_DIR with the label derived for each.
    """
    count = 0
    for record in load_images_from_directory(
        image_dir,
        use_folder_name_as_label=not use_filename_labels,
        case_sensitive_extensions=not case_insensitive,
    ):
        typer.echo(f"{record.image_path}\t{record.label}")
        count += 1
    typer.echo(f"{count} images")


@app.command()
def split(
    image_dir: str = typer.Argument(..., help="Path to the root image directory"),
    output_dir: str = typer.Argument(..., help="Path to save the partitions"),
    config_file: Optional[str] = typer.Option(
        None, "--config", help="Path to the configuration file (YAML/JSON)"
    ),
    seed: Optional[int] = typer.Option(None, help="Random seed for reproducibility"),
    use_filename_labels: bool = typer.Option(
        False, help="Label images by file name prefix instead of folder name"
    ),
):
    """
    Split the images under IMAGE_DIR into train/validation/test sets and save them.
    """
    try:
        config = _resolve_config(config_file, seed=seed, use_filename_labels=use_filename_labels)
        with create_context(config) as context:
            dataset = build_dataset(image_dir, config, context)
        dataset.save(Path(output_dir))
    except typer.Exit:
        raise
    except Exception as e:
        logger.critical(e, exc_info=True)
        raise typer.Exit(code=1)

    typer.echo(f"Datasets successfully built and saved to {output_dir}")
    typer.echo(f"  - Train set: {len(dataset.train.items)} images")
    typer.echo(f"  - Validation set: {len(dataset.validation.items)} images")
    typer.echo(f"  - Test set: {len(dataset.test.items)} images")


if __name__ == "__main__":
    app()
