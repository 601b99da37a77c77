"""
scae_model.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: Stacked convolutional auto-encoder. Stages are trained one after the other: a new unit is
             added on top, the stages below are widened so that their outputs cover its input patch,
             and only the top stage trains while the lower ones just encode.
Published: 10-19-2026
"""

import copy
import logging
import math
import os
import pickle

from numpy_scae.convolution import Convolution
from numpy_scae.utils import backend
from numpy_scae.utils.data_block import DataBlock
from numpy_scae.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class SCAE:
    """
    Stack of Convolution stages, the bottom one reading the input patch.

    Args:
        base (AutoEncoder): Unit of the first stage.
        offset_x, offset_y (int): Offsets used by the first stage once it is widened.
    """
    def __init__(self, base, offset_x=1, offset_y=1):
        self.stages = [Convolution(base, 1, 1, offset_x, offset_y)]
        self.set_input(DataBlock(self.input_width, self.input_height, self.input_depth))

    @property
    def base(self):
        return self.stages[0]

    @property
    def top(self):
        return self.stages[-1]

    @property
    def input_width(self):
        return self.base.input_width

    @property
    def input_height(self):
        return self.base.input_height

    @property
    def input_depth(self):
        return self.base.input_depth

    @property
    def output_depth(self):
        return self.top.output_depth

    def add_layer(self, unit, offset_x=1, offset_y=1):
        """
        Stack a unit on top of the current stages.

        Every lower stage is resized so that its output grid exactly covers the input patch of
        the stage above it, which makes the input patch of the whole SCAE grow.

        Raises:
            ConfigurationError: The unit does not accept the output of the current top stage.
        """
        top_unit = self.top.base
        if unit.needs_binary_input and not top_unit.has_binary_output:
            raise ConfigurationError(
                f"{unit.type_name} requires binary inputs, but {top_unit.type_name} has real-valued outputs. "
                f"You could insert a binary layer to solve this.")
        if unit.input_depth != top_unit.output_depth:
            raise ConfigurationError(
                f"{unit} reads {unit.input_depth} channels, the top stage produces {top_unit.output_depth}")

        self.stages.append(Convolution(unit, 1, 1, offset_x, offset_y))
        for i in range(len(self.stages) - 1, 0, -1):
            upper, lower = self.stages[i], self.stages[i - 1]
            lower.resize(upper.input_width, upper.input_height)
            upper.set_input(lower.output)
        self.set_input(DataBlock(self.input_width, self.input_height, self.input_depth))
        logger.info(f"Added {unit}, input patch is now {self.input_width}x{self.input_height}x{self.input_depth}")

    # Input
    def set_input(self, block, x=0, y=0):
        self.base.set_input(block, x, y)

    def center_input(self, block, cx, cy):
        """Place the input patch so that it is centered on (cx, cy)."""
        self.set_input(block, cx - self.input_width // 2, cy - self.input_height // 2)

    # Computing
    def forward(self):
        """
        Encode every stage, bottom to top.

        Returns:
            ndarray: Features of the top stage (a view of its output cell).
        """
        for stage in self.stages:
            stage.encode()
        return self.top.output.get_values(0, 0)

    def backward(self):
        """
        Decode every stage, top to bottom. The input patch of the SCAE is overwritten with the
        reconstruction.
        """
        for stage in reversed(self.stages):
            stage.rebuild_input()

    def get_output(self):
        return self.top.output

    def highest_output_index(self):
        return int(backend.np.argmax(self.top.output.get_values(0, 0)))

    def central_features(self):
        """Concatenation of the central output cell of every stage, bottom to top."""
        return backend.np.concatenate([
            stage.output.get_values(stage.out_width // 2, stage.out_height // 2) for stage in self.stages
        ])

    # Training
    def train(self):
        """
        Encode the input through the lower stages, then train the top one.

        Returns:
            float: Training error of the top stage.
        """
        for stage in self.stages[:-1]:
            stage.encode()
        return self.top.train()

    def train_label(self, label):
        for stage in self.stages[:-1]:
            stage.encode()
        return self.top.train_label(label)

    def training_done(self):
        self.top.training_done()

    def start_training(self):
        for stage in self.stages:
            stage.start_training()

    def stop_training(self):
        for stage in self.stages:
            stage.stop_training()

    def get_learning_rate(self):
        return self.top.get_learning_rate()

    def set_learning_rate(self, learning_rate):
        for stage in self.stages:
            stage.set_learning_rate(learning_rate)

    def delete_features(self, *indices):
        self.top.delete_features(*indices)
        logger.info(f"Deleted {len(set(indices))} features, {self.output_depth} left")

    def extract_features(self):
        """
        Picture of what every top-level feature encodes.

        Each feature is activated alone and decoded down to the input; the reconstructions are
        laid out on a grid, separated by one empty cell.

        Returns:
            DataBlock: The mosaic.
        """
        n_features = self.output_depth
        grid_w = int(math.sqrt(n_features))
        grid_h = grid_w
        while grid_w * grid_h < n_features:
            grid_w += 1
        patch_w, patch_h = self.input_width, self.input_height
        mosaic = DataBlock(grid_w * (patch_w + 1) - 1, grid_h * (patch_h + 1) - 1, self.input_depth)

        bound = (self.base.input, self.base.input_x, self.base.input_y)
        scratch = DataBlock(patch_w, patch_h, self.input_depth)
        self.set_input(scratch)
        top_unit = self.top.base
        for n in range(n_features):
            x, y = (n % grid_w) * (patch_w + 1), (n // grid_w) * (patch_h + 1)
            self.top.output.clear()
            top_unit.set_output(self.top.output, 0, 0)
            top_unit.activate_output(n)
            scratch.clear()
            for stage in reversed(self.stages):
                stage.rebuild_input()
            mosaic.values[x:x + patch_w, y:y + patch_h] = scratch.values
            mosaic.weights[x:x + patch_w, y:y + patch_h] = scratch.weights
        mosaic.normalize_weights()
        self.set_input(*bound)
        return mosaic

    # Persistence
    def save(self, path):
        # the caller's image is not part of the model
        model = copy.deepcopy(self)
        model.set_input(DataBlock(self.input_width, self.input_height, self.input_depth))
        if os.path.dirname(path):
            os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'wb') as f:
            pickle.dump(model, f)

    @staticmethod
    def load(path):
        with open(path, 'rb') as f:
            model = pickle.load(f)
        if not isinstance(model, SCAE):
            raise ConfigurationError(f"{path} does not hold an SCAE but a {type(model).__name__}")
        return model

    def describe(self):
        return "(" + " | ".join(str(stage) for stage in self.stages) + ")"

    def __str__(self):
        return self.describe()
