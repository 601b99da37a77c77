"""
train_ffcnn.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: Supervised fine-tuning of a pixel classifier built from a pre-trained SCAE. Classification
             layers are stacked on the SCAE layers, the network is optionally deconvolved, and every
             random pixel is classified from the patch centred on it.
Published: 10-19-2026
"""

import os
import time
from dataclasses import dataclass
from typing import Tuple

import numpy as np
import tyro

from numpy_scae.ffcnn_model import FFCNN
from numpy_scae.scae_model import SCAE
from numpy_scae.model_builder.loss_functions import Loss_MeanAbsoluteError
from numpy_scae.model_builder.lr_schedules import build_schedule
from numpy_scae.utils import backend
from numpy_scae.utils.metrics import Accuracy_Categorical
from common_utils.logger import setup_logger
from common_utils.patch_dataset import load_ground_truth, standardize, image_to_block, sample_patches
from common_utils.utils import get_new_run_dir


@dataclass
class FFCNNTrainer:
    """
    Trainer configuration for an FFCNN pixel classifier.

    Attributes:
        scae_path (str): Pre-trained SCAE (.model written by train_scae.py).
        statistics_path (str): Channel statistics saved next to the SCAE.
        ground_truth_path (str): .npz with images and per-pixel labels.
        nb_classes (int): Number of classes.
        hidden_layers (Tuple[int, ...]): Sizes of hidden layers below the classification layer.
        layer_kind (str): Layer type of the added layers.
        deconvolve (bool): Untie the convolution weights before training.
        trained_layers (int): Train only the top N layers; 0 trains all of them.
        epochs (int): Number of epochs.
        samples_per_epoch (int): Random pixels per epoch.
        lr (float): Initial learning rate.
        final_lr (float): Learning rate reached at the last epoch.
        schedule_type (str): 'constant', 'exponential' or 'step'.
        device (str): Compute backend to use: 'gpu' or 'cpu'.
        seed (int): Random seed.
    """
    scae_path: str = ""
    statistics_path: str = ""
    ground_truth_path: str = "data/train_gt.npz"
    nb_classes: int = 4
    hidden_layers: Tuple[int, ...] = ()
    layer_kind: str = "neural"
    deconvolve: bool = False
    trained_layers: int = 0
    epochs: int = 10
    samples_per_epoch: int = 2000
    lr: float = 1e-3
    final_lr: float = 1e-4
    schedule_type: str = "exponential"
    device: str = "cpu"
    seed: int = 0

    def __post_init__(self):
        """
        Configure the backend, load the labelled images and the SCAE, and build the network.
        """
        backend.set_backend('gpu' if self.device == 'gpu' else 'cpu')
        backend.seed(self.seed)
        self.schedule = build_schedule(self.schedule_type, self.lr, self.final_lr, self.epochs)

        self.save_dir = get_new_run_dir(model_type="ffcnn")
        self.logger = setup_logger(self.save_dir)

        images, self.labels = load_ground_truth(self.ground_truth_path)
        with np.load(self.statistics_path) as statistics:
            self.mean = backend.from_numpy(statistics["mean"])
            self.std = backend.from_numpy(statistics["std"])
        self.blocks = [image_to_block(image) for image in standardize(images, self.mean, self.std)]
        self.logger.info(f"Loaded {len(self.blocks)} labelled images of shape {images.shape[1:]}")

        scae = SCAE.load(self.scae_path)
        self.model = FFCNN.from_scae(scae, self.layer_kind, self.nb_classes, self.hidden_layers)
        if self.deconvolve:
            self.model.deconvolve()
        self.logger.info(f"Network: {self.model}")

    def train(self):
        """
        Per-pixel stochastic gradient descent with +1/-1 class targets.
        """
        nb_layers = self.trained_layers or None
        loss = Loss_MeanAbsoluteError()
        accuracy = Accuracy_Categorical()
        start_time = time.time()
        self.logger.info("Starting training...")
        self.model.start_training()
        for epoch in range(self.epochs):
            self.model.set_learning_rate(self.schedule(epoch))
            loss.new_pass()
            accuracy.new_pass()
            for block, cx, cy, label in sample_patches(self.blocks, self.model.input_width, self.model.input_height,
                                                       self.samples_per_epoch, self.labels):
                self.model.center_input(block, cx, cy)
                self.model.compute()
                accuracy.calculate(self.model.get_output_class(), label)
                self.model.set_expected_class(label)
                loss.record(self.model.back_propagate(nb_layers))
                self.model.learn(nb_layers)
            self.logger.info(f"epoch {epoch + 1}/{self.epochs} | lr {self.schedule(epoch):.2e} "
                             f"| error {loss.calculate_accumulated():.5f} | acc {accuracy.calculate_accumulated():.3f}")
        self.model.stop_training()
        total_time = time.time() - start_time
        self.logger.info(f"Total training time: {total_time:.2f} seconds on {self.device}")

    def save(self):
        self.model.save(os.path.join(self.save_dir, 'ffcnn.model'))
        backend.np.savez(os.path.join(self.save_dir, 'statistics.npz'), mean=self.mean, std=self.std)
        self.logger.info(f"Saved model to {self.save_dir}")

    def run(self):
        self.train()
        self.save()

if __name__ == "__main__":
    # Parse CLI args and initiate training
    trainer: FFCNNTrainer = tyro.cli(FFCNNTrainer)
    trainer.run()
