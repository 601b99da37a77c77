"""
train_scae.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: Layer-wise pre-training of a stacked convolutional auto-encoder on random patches of an
             image stack. Every layer is added on top of the trained ones and trained alone; PCA and
             LDA layers first collect samples for one epoch and are then solved in closed form.
Published: 10-19-2026
"""

import os
import time
from dataclasses import dataclass
from typing import Tuple

import tyro

from numpy_scae.scae_model import SCAE
from numpy_scae.units.autoencoder import UnitKind
from numpy_scae.units.factory import build_unit
from numpy_scae.model_builder.loss_functions import Loss_MeanAbsoluteError
from numpy_scae.model_builder.lr_schedules import build_schedule
from numpy_scae.utils import backend
from common_utils.logger import setup_logger
from common_utils.patch_dataset import (load_images, load_ground_truth, channel_statistics, standardize,
                                        image_to_block, sample_patches)
from common_utils.utils import get_new_run_dir

# units built around an encoder/decoder pair of layers
LAYERED_UNITS = (UnitKind.STANDARD, UnitKind.PCA, UnitKind.LDA, UnitKind.SPECTRAL)
CLOSED_FORM_UNITS = (UnitKind.PCA, UnitKind.LDA)
RBM_UNITS = (UnitKind.BBRBM, UnitKind.GBRBM)


@dataclass
class SCAETrainer:
    """
    Trainer configuration for an SCAE.

    Attributes:
        images_path (str): .npy image stack used for unsupervised layers.
        ground_truth_path (str): .npz with images and per-pixel labels, required by LDA layers.
        unit_kinds (Tuple[str, ...]): Unit type of every layer, bottom first.
        features (Tuple[int, ...]): Number of features of every layer (ignored by poolers).
        patch_sizes (Tuple[int, ...]): Square input patch size of every layer's unit.
        offsets (Tuple[int, ...]): Offset between neighbouring positions, used once a layer is widened.
        layer_kind (str): Layer type of layered units ('neural', 'linear', 'relu', ...).
        epochs (int): Epochs per layer.
        samples_per_epoch (int): Random patches drawn per epoch.
        lr (float): Initial learning rate.
        final_lr (float): Learning rate reached at the last epoch.
        schedule_type (str): 'constant', 'exponential' or 'step'.
        device (str): Compute backend to use: 'gpu' or 'cpu'.
        seed (int): Random seed.
    """
    images_path: str = "data/train_images.npy"
    ground_truth_path: str = ""
    unit_kinds: Tuple[str, ...] = ("standard", "standard")
    features: Tuple[int, ...] = (12, 24)
    patch_sizes: Tuple[int, ...] = (3, 3)
    offsets: Tuple[int, ...] = (3, 3)
    layer_kind: str = "neural"
    epochs: int = 10
    samples_per_epoch: int = 2000
    lr: float = 1e-3
    final_lr: float = 1e-4
    schedule_type: str = "exponential"
    device: str = "cpu"
    seed: int = 0

    def __post_init__(self):
        """
        Validate the layer description, configure the backend, load the images and prepare logging.
        """
        self.unit_kinds = [UnitKind.parse(kind) for kind in self.unit_kinds]
        if not (len(self.unit_kinds) == len(self.features) == len(self.patch_sizes) == len(self.offsets)):
            raise ValueError("unit_kinds, features, patch_sizes and offsets must have the same length")

        backend.set_backend('gpu' if self.device == 'gpu' else 'cpu')
        backend.seed(self.seed)
        self.schedule = build_schedule(self.schedule_type, self.lr, self.final_lr, self.epochs)

        if self.ground_truth_path:
            images, self.labels = load_ground_truth(self.ground_truth_path)
        else:
            images, self.labels = load_images(self.images_path), None
        if UnitKind.LDA in self.unit_kinds and self.labels is None:
            raise ValueError("LDA layers need a ground_truth_path")
        self.mean, self.std = channel_statistics(images)
        self.blocks = [image_to_block(image) for image in standardize(images, self.mean, self.std)]

        self.save_dir = get_new_run_dir(model_type="scae")
        self.logger = setup_logger(self.save_dir)
        self.logger.info(f"Loaded {len(self.blocks)} images of shape {images.shape[1:]}")
        self.scae = None

    def build_unit(self, n):
        kind = self.unit_kinds[n]
        input_depth = self.blocks[0].depth if n == 0 else self.scae.output_depth
        options = {"layer_kind": self.layer_kind} if kind in LAYERED_UNITS else {}
        # poolers and real converters keep their input depth
        output_depth = self.features[n] if kind in LAYERED_UNITS + RBM_UNITS else None
        return build_unit(kind, self.patch_sizes[n], self.patch_sizes[n], input_depth, output_depth, **options)

    def train_layer(self, n):
        """
        Train the current top layer for the configured number of epochs.
        """
        kind = self.unit_kinds[n]
        supervised = kind is UnitKind.LDA
        loss = Loss_MeanAbsoluteError()
        if not self.scae.top.base.is_trainable:
            self.logger.info(f"Layer {n} ({self.scae.top}) has nothing to train")
            return

        self.scae.start_training()
        for epoch in range(self.epochs):
            self.scae.set_learning_rate(self.schedule(epoch))
            loss.new_pass()
            for block, cx, cy, label in sample_patches(self.blocks, self.scae.input_width, self.scae.input_height,
                                                       self.samples_per_epoch, self.labels):
                self.scae.center_input(block, cx, cy)
                loss.record(self.scae.train_label(label) if supervised else self.scae.train())
            if epoch == 0 and kind in CLOSED_FORM_UNITS:
                self.scae.training_done()
                self.logger.info(f"Layer {n}: closed-form solution computed")
                continue
            self.logger.info(f"Layer {n} | epoch {epoch + 1}/{self.epochs} | lr {self.schedule(epoch):.2e} "
                             f"| error {loss.calculate_accumulated():.5f}")
        self.scae.training_done()
        self.scae.stop_training()

    def train(self):
        """
        Add and train the layers one after the other.
        """
        start_time = time.time()
        self.logger.info("Starting training...")
        for n in range(len(self.unit_kinds)):
            unit = self.build_unit(n)
            if self.scae is None:
                self.scae = SCAE(unit, self.offsets[n], self.offsets[n])
            else:
                self.scae.add_layer(unit, self.offsets[n], self.offsets[n])
            self.logger.info(f"Layer {n}: {self.scae}")
            with backend.profile_block(f"Layer {n} training", self.logger):
                self.train_layer(n)
        total_time = time.time() - start_time
        self.logger.info(f"Total training time: {total_time:.2f} seconds on {self.device}")

    def save(self):
        """
        Save the trained SCAE and the input statistics.
        """
        self.scae.save(os.path.join(self.save_dir, 'scae.model'))
        backend.np.savez(os.path.join(self.save_dir, 'statistics.npz'), mean=self.mean, std=self.std)
        self.logger.info(f"Saved {self.scae} to {self.save_dir}")

    def run(self):
        self.train()
        self.save()

if __name__ == "__main__":
    # Parse CLI args and initiate training
    trainer: SCAETrainer = tyro.cli(SCAETrainer)
    trainer.run()
