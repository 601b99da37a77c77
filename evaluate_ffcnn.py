"""
evaluate_ffcnn.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: CLI tool loading a trained FFCNN and reporting its pixel accuracy and mean error on
             random pixels of a labelled image set.
Published: 10-19-2026
"""

from dataclasses import dataclass

import numpy as np
import tyro

from numpy_scae.ffcnn_model import FFCNN
from numpy_scae.utils import backend
from numpy_scae.utils.metrics import Accuracy_Categorical
from numpy_scae.model_builder.loss_functions import Loss_MeanAbsoluteError
from common_utils.patch_dataset import load_ground_truth, standardize, image_to_block, sample_patches


@dataclass
class FFCNNEvaluation:
    """
    Attributes:
        checkpoint_path (str): FFCNN written by train_ffcnn.py.
        statistics_path (str): Channel statistics saved with it.
        ground_truth_path (str): .npz with images and per-pixel labels.
        samples (int): Number of random pixels to classify.
        seed (int): Random seed.
    """
    checkpoint_path: str = ""
    statistics_path: str = ""
    ground_truth_path: str = "data/test_gt.npz"
    samples: int = 5000
    seed: int = 0

    def __post_init__(self):
        backend.seed(self.seed)
        images, self.labels = load_ground_truth(self.ground_truth_path)
        with np.load(self.statistics_path) as statistics:
            mean = backend.from_numpy(statistics["mean"])
            std = backend.from_numpy(statistics["std"])
        self.blocks = [image_to_block(image) for image in standardize(images, mean, std)]
        self.model = FFCNN.load(self.checkpoint_path)

    def evaluate(self):
        """
        Returns:
            (float, float): Accuracy and mean absolute error against +1/-1 class targets.
        """
        accuracy = Accuracy_Categorical()
        loss = Loss_MeanAbsoluteError()
        targets = backend.np.full(self.model.output_size, -1., dtype=backend.np.float32)
        for block, cx, cy, label in sample_patches(self.blocks, self.model.input_width, self.model.input_height,
                                                   self.samples, self.labels):
            self.model.center_input(block, cx, cy)
            self.model.compute()
            accuracy.calculate(self.model.get_output_class(), label)
            targets[:] = -1.
            targets[label] = 1.
            loss.calculate(self.model.get_output().get_values(0, 0), targets)
        acc, err = accuracy.calculate_accumulated(), loss.calculate_accumulated()
        print(f"Accuracy on {self.samples} pixels: {acc:.4f} | mean error: {err:.5f}")
        return acc, err

if __name__ == "__main__":
    evaluation: FFCNNEvaluation = tyro.cli(FFCNNEvaluation)
    evaluation.evaluate()
