import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import typer

from image_folder_classifier.classifier_trainer.metrics import (
    ImageClassificationMetrics,
)
from image_folder_classifier.classifier_trainer.model import TrainedModel
from image_folder_classifier.classifier_trainer.trainer import (
    ImageClassificationTrainer,
)
from image_folder_classifier.dataset_builder import (
    LabelKeyMapper,
    load_images_from_directory,
    preprocess,
    shuffle_records,
    split_dataset,
)
from image_folder_classifier.feature_extractor.backbone import FeatureExtractor
from image_folder_classifier.lib import (
    Dataset,
    PipelineContext,
    PredictionRecord,
    setup_logger,
)
from image_folder_classifier.lib.logger import set_package_level, set_package_log_dir
from image_folder_classifier.prediction import classify_images, classify_single_image

from .config import WorkflowConfig

logger = setup_logger(__name__)


@dataclass
class WorkflowResult:
    dataset: Dataset
    model: TrainedModel
    single_prediction: PredictionRecord
    predictions: List[PredictionRecord]
    evaluation: Dict[str, Any] = field(default_factory=dict)


def create_context(config: WorkflowConfig) -> PipelineContext:
    set_package_level(getattr(logging, config.log_level))
    if config.log_dir:
        set_package_log_dir(config.log_dir)
    return PipelineContext(
        workspace_dir=config.workspace_dir,
        seed=config.seed,
        device=config.device,
        aim_experiment=config.aim_experiment,
    )


def load_label_mapper(config: WorkflowConfig, records) -> LabelKeyMapper:
    """Reuse the persisted label mapping when there is one, else build and persist it."""
    path = config.resolved_label_mapping_path
    if config.label_mapping_path and path.exists():
        return LabelKeyMapper.load(path)

    mapper = LabelKeyMapper.fit(records)
    mapper.save(path)
    return mapper


def build_dataset(
    image_dir: Union[str, Path], config: WorkflowConfig, context: PipelineContext
) -> Dataset:
    """Enumerate, shuffle, preprocess and split the images under ``image_dir``."""
    records = list(
        load_images_from_directory(
            image_dir,
            use_folder_name_as_label=config.use_folder_name_as_label,
            case_sensitive_extensions=config.case_sensitive_extensions,
        )
    )
    shuffled = shuffle_records(records, context.random_state)

    mapper = load_label_mapper(config, shuffled)
    items = preprocess(shuffled, mapper, image_folder=image_dir)

    return split_dataset(
        items,
        mapper.label_mapping,
        context.random_state,
        test_fraction=config.test_fraction,
        validation_test_fraction=config.validation_test_fraction,
    )


def run_workflow(
    image_dir: Union[str, Path],
    config: WorkflowConfig,
    feature_extractor: Optional[FeatureExtractor] = None,
) -> WorkflowResult:
    """
    Run the whole pipeline: load, preprocess, split, train, predict and print.

    Args:
        image_dir: Root directory of the labeled images
        config: Workflow configuration
        feature_extractor: Backbone to use instead of loading ``config.trainer.arch``

    Returns:
        The partitions, the trained model and the printed predictions
    """

    def print_metrics(metrics: ImageClassificationMetrics) -> None:
        typer.echo(str(metrics))

    with create_context(config) as context:
        dataset = build_dataset(image_dir, config, context)
        if config.save_splits:
            dataset.save(context.workspace_dir / "splits")

        trainer = ImageClassificationTrainer(
            context,
            config.trainer,
            dataset.label_mapping,
            metrics_callback=print_metrics if config.print_metrics else None,
            feature_extractor=feature_extractor,
        )
        model = trainer.fit(dataset.train, validation_set=dataset.validation)

        single_prediction = classify_single_image(dataset.test.items, model)
        predictions = classify_images(
            dataset.test.items, model, limit=config.prediction_limit
        )

        evaluation: Dict[str, Any] = {}
        if config.evaluate:
            evaluation = trainer.evaluate(model, dataset.test)

    return WorkflowResult(
        dataset=dataset,
        model=model,
        single_prediction=single_prediction,
        predictions=predictions,
        evaluation=evaluation,
    )
