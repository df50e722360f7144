from typing import List, Sequence

import typer

from image_folder_classifier.classifier_trainer.model import TrainedModel
from image_folder_classifier.lib import ImageItem, PredictionRecord, setup_logger

from .engine import PredictionEngine

logger = setup_logger(__name__)

DEFAULT_PREDICTION_LIMIT = 10


def format_prediction(prediction: PredictionRecord) -> str:
    return (
        f"Image: {prediction.image_name} | Actual Value: {prediction.label} "
        f"| Predicted Value: {prediction.predicted_label}"
    )


def output_prediction(prediction: PredictionRecord) -> None:
    typer.echo(format_prediction(prediction))


def classify_single_image(
    data: Sequence[ImageItem], model: TrainedModel
) -> PredictionRecord:
    """Predict and print the first image of ``data``."""
    if not data:
        raise ValueError("Cannot classify a single image from an empty dataset")

    engine = PredictionEngine(model)
    prediction = engine.predict(data[0])
    typer.echo("Classifying single image")
    output_prediction(prediction)
    return prediction


def classify_images(
    data: Sequence[ImageItem],
    model: TrainedModel,
    limit: int = DEFAULT_PREDICTION_LIMIT,
) -> List[PredictionRecord]:
    """Predict and print up to ``limit`` images of ``data``."""
    predictions = model.transform(list(data[:limit]))
    typer.echo("Classifying multiple images")
    for prediction in predictions:
        output_prediction(prediction)

    correct = sum(p.label == p.predicted_label for p in predictions)
    logger.info(f"{correct}/{len(predictions)} shown predictions match their label")
    return predictions
