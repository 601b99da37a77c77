"""
ffcnn_model.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: Feed-forward convolutional network obtained from a trained SCAE. Every SCAE stage becomes
             a shared-weight convolutional layer, classification layers can be stacked on top, and the
             whole network is then fine-tuned with back-propagation.
Published: 10-19-2026
"""

import copy
import logging
import os
import pickle

from numpy_scae.convolution import SharedConvolution
from numpy_scae.model_builder.layers import LayerKind
from numpy_scae.utils import backend
from numpy_scae.utils.data_block import DataBlock
from numpy_scae.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

MULTI_CLASS_THRESHOLD = 0.35


class FFCNN:
    """
    Ordered list of convolutional layers. Layer i reads the output block of layer i - 1 and sends
    its error into the error block of layer i - 1.

    Args:
        layers (list): Convolutional layers, bottom first.
    """
    def __init__(self, layers):
        if not layers:
            raise ConfigurationError("an FFCNN needs at least one layer")
        self.layers = list(layers)
        self.training = False
        self._wire()
        self.layers[0].set_input(DataBlock(self.input_width, self.input_height, self.input_depth))
        for layer in self.layers:
            layer.clear_error()

    def _wire(self):
        for lower, upper in zip(self.layers, self.layers[1:]):
            block = lower.output
            if (block.width, block.height, block.depth) != (upper.input_width, upper.input_height, upper.input_depth):
                raise ConfigurationError(
                    f"{upper} reads a {upper.input_width}x{upper.input_height}x{upper.input_depth} input "
                    f"but {lower} outputs {block}")
            upper.set_input(block, 0, 0)
            upper.set_prev_error(lower.error)

    @classmethod
    def from_scae(cls, scae, layer_kind=LayerKind.NEURAL, nb_classes=0, additional_layers=(), **layer_options):
        """
        Build a network from a trained SCAE.

        Args:
            scae (SCAE): Source of the convolutional layers; its units are cloned.
            layer_kind (LayerKind or str): Layer type of the added layers.
            nb_classes (int): Size of the classification layer, none is added when 0.
            additional_layers (iterable): Sizes of hidden layers inserted below the classification layer.

        Returns:
            FFCNN: The new network.
        """
        layers = [SharedConvolution.from_convolution(stage) for stage in scae.stages]
        sizes = list(additional_layers) + ([nb_classes] if nb_classes > 0 else [])
        for nb_neurons in sizes:
            layers.append(SharedConvolution.stacked_on(layers[-1], layer_kind, nb_neurons, **layer_options))
        return cls(layers)

    @property
    def top(self):
        return self.layers[-1]

    @property
    def input_width(self):
        return self.layers[0].input_width

    @property
    def input_height(self):
        return self.layers[0].input_height

    @property
    def input_depth(self):
        return self.layers[0].input_depth

    @property
    def output_size(self):
        return self.top.output_depth

    def count_layers(self):
        return len(self.layers)

    def get_layer(self, n):
        return self.layers[n]

    # Input
    def set_input(self, block, x=0, y=0):
        self.layers[0].set_input(block, x, y)

    def center_input(self, block, cx, cy):
        self.set_input(block, cx - self.input_width // 2, cy - self.input_height // 2)

    # Computing
    def compute(self):
        for layer in self.layers:
            layer.compute()

    def get_output(self):
        return self.top.output

    def get_output_class(self, multi_class=False):
        """
        Args:
            multi_class (bool): Return a bit mask of the outputs above the threshold instead
                of the index of the largest output.

        Returns:
            int: Class index, or bit mask in multi-class mode.
        """
        values = self.top.output.get_values(0, 0)
        if not multi_class:
            return int(backend.np.argmax(values))
        mask = 0
        for i, value in enumerate(backend.to_numpy(values)):
            if value > MULTI_CLASS_THRESHOLD:
                mask |= 1 << i
        return mask

    # Training
    def set_expected(self, class_index, value):
        self.top.set_expected(0, 0, class_index, value)

    def set_expected_class(self, class_index):
        """Target +1 for class_index and -1 for every other output."""
        for z in range(self.output_size):
            self.top.set_expected(0, 0, z, 1. if z == class_index else -1.)

    def add_error(self, z, e):
        self.top.add_error(0, 0, z, e)

    def _top_layers(self, nb_layers):
        if nb_layers is None:
            nb_layers = len(self.layers)
        if nb_layers < 1:
            raise ConfigurationError(f"at least the top layer takes part in back-propagation, got {nb_layers}")
        return self.layers[max(0, len(self.layers) - nb_layers):][::-1]

    def back_propagate(self, nb_layers=None):
        """
        Back-propagate through the top nb_layers layers (all by default), then clear the error of
        every layer.

        Returns:
            float: Mean error of the top layer.
        """
        layers = self._top_layers(nb_layers)
        err = layers[0].back_propagate()
        for layer in layers[1:]:
            layer.back_propagate()
        for layer in self.layers:
            layer.clear_error()
        return err

    def learn(self, nb_layers=None):
        for layer in self._top_layers(nb_layers):
            layer.learn()

    def clear_gradient(self):
        for layer in self.layers:
            layer.clear_gradient()

    def deconvolve(self):
        """Replace every shared-weight layer by an untied one with identical weights."""
        self.layers = [layer.deconvolve() for layer in self.layers]
        self._wire()
        logger.info(f"Deconvolved network: {self}")

    def start_training(self):
        self.training = True
        for layer in self.layers:
            layer.start_training()

    def stop_training(self):
        self.training = False
        for layer in self.layers:
            layer.stop_training()

    def get_learning_rate(self, layer_number=None):
        if layer_number is not None:
            return self.layers[layer_number].get_learning_rate()
        return self.top.get_learning_rate()

    def set_learning_rate(self, learning_rate, layer_number=None):
        layers = self.layers if layer_number is None else [self.layers[layer_number]]
        for layer in layers:
            layer.set_learning_rate(learning_rate)

    # Persistence
    def clone(self):
        return copy.deepcopy(self)

    def save(self, path):
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
        if not isinstance(model, FFCNN):
            raise ConfigurationError(f"{path} does not hold an FFCNN but a {type(model).__name__}")
        return model

    def describe(self):
        return "FFCNN[" + " > ".join(layer.describe() for layer in self.layers) + "]"

    def __str__(self):
        return self.describe()
