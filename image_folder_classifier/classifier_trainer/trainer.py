import os
from typing import Any, Dict, List, Optional, Tuple, cast

import numpy as np
import pandas as pd
import torch
from sklearn.metrics import classification_report, confusion_matrix
from torch.utils.data import DataLoader
from tqdm import tqdm

from image_folder_classifier.classifier_trainer.config import ClassifierOptions
from image_folder_classifier.classifier_trainer.dataset import FeatureDataset
from image_folder_classifier.classifier_trainer.metrics import (
    DatasetKind,
    ImageClassificationMetrics,
    MetricsCallback,
    Phase,
)
from image_folder_classifier.classifier_trainer.model import (
    SimpleClassifierHead,
    TrainedModel,
)
from image_folder_classifier.feature_extractor.backbone import (
    BackboneFeatureExtractor,
    FeatureExtractor,
)
from image_folder_classifier.feature_extractor.bottleneck import (
    BottleneckCache,
    compute_bottleneck,
)
from image_folder_classifier.lib.context import PipelineContext
from image_folder_classifier.lib.logger import setup_logger
from image_folder_classifier.lib.models import DatasetSplit

logger = setup_logger(__name__)


class ImageClassificationTrainer:
    """
    Trains a classifier head on top of a frozen pretrained backbone.

    Every image is passed through the backbone once (the bottleneck phase) and
    the head is then trained on the cached outputs for ``options.epoch``
    epochs, stopping early when validation accuracy stops improving.
    """

    def __init__(
        self,
        context: PipelineContext,
        options: ClassifierOptions,
        label_mapping: Dict[str, int],
        metrics_callback: Optional[MetricsCallback] = None,
        feature_extractor: Optional[FeatureExtractor] = None,
    ):
        if not label_mapping:
            raise ValueError("Label mapping must contain at least one label")

        self.context = context
        self.options = options
        self.label_mapping = label_mapping
        self.num_classes = len(label_mapping)
        self.label_names = sorted(label_mapping, key=lambda x: label_mapping[x])
        self.metrics_callback = metrics_callback
        self.device = context.device

        self.feature_extractor = feature_extractor or BackboneFeatureExtractor(
            options.arch, device=self.device
        )

        self.output_dir = os.path.join(
            context.workspace_dir, "models", options.arch.value
        )
        os.makedirs(self.output_dir, exist_ok=True)
        logger.info(f"Training output will be saved to: {self.output_dir}")
        logger.info(f"Label Mapping: {label_mapping}")

        self.criterion = torch.nn.CrossEntropyLoss()
        self.model: Optional[SimpleClassifierHead] = None
        self.optimizer: Optional[torch.optim.Optimizer] = None

        # Higher is better for validation accuracy
        self.best_val_metric = float("-inf")
        self.best_epoch = -1

    def _emit(self, metrics: ImageClassificationMetrics) -> None:
        logger.debug(str(metrics))
        if self.metrics_callback is not None:
            self.metrics_callback(metrics)

    def _bottleneck_dataset(
        self, split: DatasetSplit, kind: DatasetKind, reuse: bool
    ) -> FeatureDataset:
        """Compute (or load) the backbone outputs for a split."""
        images = [
            getattr(item, self.options.feature_column_name) for item in split.items
        ]
        label_ids = [
            int(getattr(item, self.options.label_column_name)) for item in split.items
        ]
        for label_id in label_ids:
            if not 0 <= label_id < self.num_classes:
                raise ValueError(
                    f"Label key {label_id} outside of the {self.num_classes} mapped labels"
                )

        cache = BottleneckCache(
            os.path.join(
                self.context.workspace_dir,
                "bottleneck",
                f"{self.options.arch.value}_{type(self.feature_extractor).__name__}"
                f"_{kind.value.lower()}.pt",
            ),
            reuse=reuse,
        )
        features = compute_bottleneck(
            self.feature_extractor,
            images,
            batch_size=self.options.batch_size,
            cache=cache,
            on_image=lambda idx: self._emit(
                ImageClassificationMetrics(
                    phase=Phase.BOTTLENECK, dataset=kind, image_index=idx
                )
            ),
            desc=f"Bottleneck ({kind.value})",
        )
        return FeatureDataset(features, label_ids)

    def _run_epoch(
        self,
        loader: DataLoader[Tuple[torch.Tensor, torch.Tensor]],
        is_training: bool = True,
    ) -> Dict[str, float]:
        """Runs a single epoch of training or validation."""
        assert self.model is not None
        if is_training:
            assert self.optimizer is not None
            self.model.train()
            context = torch.enable_grad()
        else:
            self.model.eval()
            context = torch.no_grad()

        total_loss = 0.0
        correct = 0
        seen = 0
        num_batches = len(loader)

        pbar = tqdm(loader, desc=f"{'Train' if is_training else 'Eval'}", leave=False)
        with context:
            for features, labels in pbar:
                features, labels = features.to(self.device), labels.to(self.device)

                if is_training:
                    self.optimizer.zero_grad()

                logits = self.model(features)
                loss = self.criterion(logits, labels)

                if is_training:
                    loss.backward()
                    self.optimizer.step()

                batch_size = labels.shape[0]
                total_loss += loss.item() * batch_size
                correct += int((torch.argmax(logits, dim=1) == labels).sum().item())
                seen += batch_size

                pbar.set_postfix({"loss": f"{loss.item():.4f}"})

        return {
            "loss": total_loss / seen,
            "accuracy": correct / seen,
            "batches": float(num_batches),
        }

    def _emit_epoch(
        self, kind: DatasetKind, epoch: int, metrics: Dict[str, float]
    ) -> None:
        self._emit(
            ImageClassificationMetrics(
                phase=Phase.TRAINING,
                dataset=kind,
                batch_processed_count=int(metrics["batches"]),
                epoch=epoch,
                learning_rate=(
                    self.options.learning_rate if kind == DatasetKind.TRAIN else None
                ),
                accuracy=metrics["accuracy"],
                cross_entropy=metrics["loss"],
            )
        )
        subset = "train" if kind == DatasetKind.TRAIN else "val"
        for name in ("loss", "accuracy"):
            self.context.track(
                metrics[name],
                name=f"epoch_{name}",
                epoch=epoch,
                context={"subset": subset},
            )

    def _snapshot(self) -> Dict[str, torch.Tensor]:
        assert self.model is not None
        return {k: v.detach().clone() for k, v in self.model.state_dict().items()}

    def fit(
        self, train: DatasetSplit, validation_set: Optional[DatasetSplit] = None
    ) -> TrainedModel:
        """Runs the bottleneck phase and the training loop, returning the trained model."""
        if not train.items:
            raise ValueError("Training set must contain at least one image")

        logger.info(f"Starting training on {len(train.items)} images...")
        self.context.log_hparams(
            {
                "options": self.options.model_dump(mode="json"),
                "label_mapping": self.label_mapping,
            }
        )

        train_dataset = self._bottleneck_dataset(
            train,
            DatasetKind.TRAIN,
            reuse=self.options.reuse_train_set_bottleneck_cached_values,
        )
        val_dataset: Optional[FeatureDataset] = None
        if validation_set is not None and validation_set.items:
            val_dataset = self._bottleneck_dataset(
                validation_set,
                DatasetKind.VALIDATION,
                reuse=self.options.reuse_validation_set_bottleneck_cached_values,
            )
            assert (
                val_dataset.feature_dim == train_dataset.feature_dim
            ), "Validation feature dimension mismatch."
        else:
            logger.warning("No validation set given, early stopping is disabled.")

        logger.info(f"Detected Feature Dimension: {train_dataset.feature_dim}")

        train_loader = DataLoader(
            train_dataset, batch_size=self.options.batch_size, shuffle=True
        )
        val_loader = (
            DataLoader(val_dataset, batch_size=self.options.batch_size, shuffle=False)
            if val_dataset is not None
            else None
        )

        self.model = SimpleClassifierHead(
            input_dim=train_dataset.feature_dim, num_classes=self.num_classes
        )
        self.model.to(self.device)
        self.optimizer = torch.optim.AdamW(
            self.model.parameters(), lr=self.options.learning_rate
        )
        self.best_val_metric = float("-inf")
        self.best_epoch = -1

        best_state: Optional[Dict[str, torch.Tensor]] = None
        epochs_without_improvement = 0
        total_epochs = self.options.epoch

        for epoch in range(total_epochs):
            train_metrics = self._run_epoch(train_loader, is_training=True)
            logger.debug(
                f"Epoch {epoch+1}/{total_epochs} Train | Loss: {train_metrics['loss']:.4f}, Acc: {train_metrics['accuracy']:.4f}"
            )
            self._emit_epoch(DatasetKind.TRAIN, epoch, train_metrics)

            if val_loader is None:
                continue

            val_metrics = self._run_epoch(val_loader, is_training=False)
            logger.debug(
                f"Epoch {epoch+1}/{total_epochs} Val   | Loss: {val_metrics['loss']:.4f}, Acc: {val_metrics['accuracy']:.4f}"
            )
            self._emit_epoch(DatasetKind.VALIDATION, epoch, val_metrics)

            current_val_metric = val_metrics["accuracy"]
            if (
                current_val_metric - self.best_val_metric
                > self.options.early_stopping_min_delta
            ):
                self.best_val_metric = current_val_metric
                self.best_epoch = epoch
                best_state = self._snapshot()
                epochs_without_improvement = 0
                self.save("best_model.pth")
            else:
                epochs_without_improvement += 1

            patience = self.options.early_stopping_patience
            if patience and epochs_without_improvement >= patience:
                logger.info(
                    f"Validation accuracy has not improved for {patience} epochs, stopping at epoch {epoch+1}"
                )
                break

        if best_state is not None:
            logger.info(
                f"Best validation accuracy ({self.best_val_metric:.4f}) achieved at epoch {self.best_epoch+1}"
            )
            self.model.load_state_dict(best_state)

        logger.info("Training finished.")
        self.save("final_model.pth")

        if self.options.test_on_train_set:
            eval_loader = DataLoader(
                train_dataset, batch_size=self.options.batch_size, shuffle=False
            )
            train_eval = self._run_epoch(eval_loader, is_training=False)
            logger.info(
                f"Train set | Loss: {train_eval['loss']:.4f}, Acc: {train_eval['accuracy']:.4f}"
            )
            self._emit_epoch(DatasetKind.TRAIN, max(self.best_epoch, 0), train_eval)

        return TrainedModel(
            feature_extractor=self.feature_extractor,
            head=self.model,
            label_mapping=self.label_mapping,
            device=self.device,
            feature_column_name=self.options.feature_column_name,
            batch_size=self.options.batch_size,
        )

    def evaluate(self, model: TrainedModel, test: DatasetSplit) -> Dict[str, Any]:
        """Evaluates a trained model on the test set."""
        if not test.items:
            logger.warning("No test set available for evaluation.")
            return {}

        logger.info(f"Evaluating on {len(test.items)} test images...")
        predictions = model.transform(test.items)
        all_labels = [self.label_mapping[p.label] for p in predictions]
        all_preds = [self.label_mapping[p.predicted_label] for p in predictions]

        test_accuracy = float(np.mean(np.array(all_preds) == np.array(all_labels)))
        logger.info(f"Test Accuracy: {test_accuracy:.4f}")

        class_ids: List[int] = list(range(self.num_classes))
        report = cast(
            Dict[str, Any],
            classification_report(
                all_labels,
                all_preds,
                labels=class_ids,
                target_names=self.label_names,
                output_dict=True,
                zero_division=0,
            ),
        )
        cm = confusion_matrix(all_labels, all_preds, labels=class_ids)
        cm_df = pd.DataFrame(cm, index=self.label_names, columns=self.label_names)

        self.context.track(test_accuracy, name="test_accuracy")

        return {
            "test_accuracy": test_accuracy,
            "classification_report": report,
            "confusion_matrix": cm_df.to_dict(),
        }

    def save(self, filename: str = "model.pth") -> None:
        """Saves the classifier head state dictionary."""
        assert self.model is not None
        save_path = os.path.join(self.output_dir, filename)
        try:
            torch.save(self.model.state_dict(), save_path)
            logger.info(f"Model saved to {save_path}")
        except OSError as e:
            logger.error(f"Failed to save model to {save_path}: {e}")
