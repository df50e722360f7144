from image_folder_classifier.classifier_trainer.model import TrainedModel
from image_folder_classifier.lib import ImageItem, PredictionRecord


class PredictionEngine:
    """Single-item inference on top of a trained model."""

    def __init__(self, model: TrainedModel):
        self.model = model

    def predict(self, item: ImageItem) -> PredictionRecord:
        (prediction,) = self.model.transform([item])
        return prediction
