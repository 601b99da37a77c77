"""
autoencoder.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: Base class of the auto-encoder units. A unit reads a (width x height x depth) patch of an
             input DataBlock, encodes it into one output cell, decodes it back and can route its error
             to the block it reads from. Bindings to the shared DataBlocks are explicit and can be moved
             to another position at any time, which is how a single unit is swept over a grid.
Published: 10-19-2026
"""

import copy
from enum import Enum

from numpy_scae.utils import backend
from numpy_scae.utils.data_block import DataBlock
from numpy_scae.utils.exceptions import ConfigurationError, UnsupportedOperationError
from numpy_scae.utils.registry import parse_kind


class UnitKind(Enum):
    """Closed set of auto-encoder unit types."""
    STANDARD = "standard"
    PCA = "pca"
    LDA = "lda"
    MAX_POOLER = "max_pooler"
    POOLER = "pooler"
    BBRBM = "bbrbm"
    GBRBM = "gbrbm"
    TO_REAL = "to_real"
    SPECTRAL = "spectral"

    @classmethod
    def parse(cls, value):
        return parse_kind(cls, value, aliases=_UNIT_ALIASES)


_UNIT_ALIASES = {
    "StandardAutoEncoder": UnitKind.STANDARD,
    "PCAAutoEncoder": UnitKind.PCA,
    "LDAAutoEncoder": UnitKind.LDA,
    "MaxPooler": UnitKind.MAX_POOLER,
    "max": UnitKind.MAX_POOLER,
    "BBRBMUnit": UnitKind.BBRBM,
    "GBRBMUnit": UnitKind.GBRBM,
    "ToRealUnit": UnitKind.TO_REAL,
    "SpectralAutoEncoder": UnitKind.SPECTRAL,
}


class AutoEncoder:
    """
    Encode/decode unit bound to regions of shared DataBlocks.

    Bindings:
        input, input_x, input_y: patch origin the unit reads from.
        output, output_x, output_y: cell the code is written to.
        error: block holding the error of the code; the cell used is (output_x, output_y) when
            the error block has the output's grid size, (0, 0) otherwise.
        prev_error: optional block, same geometry as input, receiving the back-propagated error.

    Subclasses set encoder/decoder layers or override encode/decode/train/back_propagate.

    Attributes:
        input_array (ndarray): Flattened copy of the current input patch.
        decoded (ndarray): Reconstruction produced by decode().
    """
    kind = None
    type_name = "AutoEncoder"
    is_trainable = True
    supports_feature_deletion = True
    cloneable = True
    needs_binary_input = False
    has_binary_output = False

    def __init__(self, input_width, input_height, input_depth, output_depth):
        for name, value in (("input width", input_width), ("input height", input_height),
                            ("input depth", input_depth), ("output depth", output_depth)):
            if value <= 0:
                raise ConfigurationError(f"{type(self).__name__}: {name} must be positive, got {value}")
        self.input_width = input_width
        self.input_height = input_height
        self.input_depth = input_depth
        self.output_depth = output_depth

        self.input_array = backend.np.zeros(self.input_length, dtype=backend.np.float32)
        self.decoded = backend.np.zeros(self.input_length, dtype=backend.np.float32)
        self.encoder = None
        self.decoder = None
        self.training = False
        self._reset_bindings()

    @property
    def input_length(self):
        return self.input_width * self.input_height * self.input_depth

    def _reset_bindings(self):
        # private blocks so that an unbound unit can still run standalone
        self.input = DataBlock(self.input_width, self.input_height, self.input_depth)
        self.input_x = 0
        self.input_y = 0
        self.output = DataBlock(1, 1, self.output_depth)
        self.output_x = 0
        self.output_y = 0
        self.error = DataBlock(1, 1, self.output_depth)
        self.prev_error = None

    def layers(self):
        """Encoder and decoder layers that exist for this unit."""
        return [layer for layer in (self.encoder, self.decoder) if layer is not None]

    # Bindings
    def _check_input(self, block, x, y):
        if block.depth != self.input_depth:
            raise ConfigurationError(f"{self}: input depth {block.depth} does not match {self.input_depth}")
        if x < 0 or y < 0 or x + self.input_width > block.width or y + self.input_height > block.height:
            raise ConfigurationError(
                f"{self}: a {self.input_width}x{self.input_height} patch at ({x}, {y}) does not fit in {block}")

    def _check_output(self, block, x, y):
        if block.depth != self.output_depth:
            raise ConfigurationError(f"{self}: output depth {block.depth} does not match {self.output_depth}")
        if not (0 <= x < block.width and 0 <= y < block.height):
            raise ConfigurationError(f"{self}: output cell ({x}, {y}) outside of {block}")

    def set_input(self, block, x=0, y=0):
        """Bind the input patch origin and materialize the patch."""
        self._check_input(block, x, y)
        self.input, self.input_x, self.input_y = block, x, y
        self.input_patch_to_array()

    def set_output(self, block, x=0, y=0):
        self._check_output(block, x, y)
        self.output, self.output_x, self.output_y = block, x, y

    def bind(self, input_block, input_x, input_y, output_block, output_x, output_y):
        """
        Move the unit to another (input patch, output cell) pair in one step.

        Both bindings are validated before either is changed.
        """
        self._check_input(input_block, input_x, input_y)
        self._check_output(output_block, output_x, output_y)
        self.input, self.input_x, self.input_y = input_block, input_x, input_y
        self.output, self.output_x, self.output_y = output_block, output_x, output_y

    def set_error(self, block):
        if block.depth != self.output_depth:
            raise ConfigurationError(f"{self}: error depth {block.depth} does not match {self.output_depth}")
        self.error = block

    def set_prev_error(self, block):
        """Bind the block receiving back-propagated errors, None for the bottom layer."""
        if block is not None and block.depth != self.input_depth:
            raise ConfigurationError(f"{self}: previous error depth {block.depth} does not match {self.input_depth}")
        self.prev_error = block

    def _error_cell(self):
        if self.error.width == self.output.width and self.error.height == self.output.height:
            return self.output_x, self.output_y
        return 0, 0

    def output_values(self):
        """Code vector of the bound output cell (a view)."""
        return self.output.get_values(self.output_x, self.output_y)

    def error_values(self):
        """Error vector of the bound error cell (a view)."""
        return self.error.get_values(*self._error_cell())

    def input_patch_to_array(self):
        self.input.patch_to_array(self.input_x, self.input_y, self.input_width, self.input_height, out=self.input_array)
        return self.input_array

    # Computing
    def encode(self):
        """Re-read the input patch and write its code into the output cell."""
        self.input_patch_to_array()
        self.output_values()[:] = self.encoder.forward(self.input_array)

    def decode(self):
        """Reconstruct the input patch from the output cell into `decoded`."""
        self.decoded[:] = self.decoder.forward(self.output_values())

    def reconstruction_target(self):
        return self.input_array

    def train(self):
        """
        One reconstruction step: encode, decode, compare with the input, back-propagate through
        decoder and encoder, then update both.

        Returns:
            float: Mean absolute reconstruction error of the decoder.
        """
        self.encode()
        self.decode()
        self.decoder.set_expected(slice(None), self.reconstruction_target())
        err = self.decoder.back_propagate()
        error_cell = self.error_values()
        error_cell += self.decoder.dinputs
        self.encoder.back_propagate(error_cell)
        self.clear_error()
        self.decoder.learn()
        self.encoder.learn()
        return err

    def train_label(self, label):
        """Supervised training step; units that do not use labels fall back to train()."""
        return self.train()

    def training_done(self):
        """Called once the training data has been seen."""

    def back_propagate(self):
        """
        Propagate the error of the output cell through the encoder and paste the input error
        into prev_error at the input patch.

        Returns:
            float: Mean absolute error of the output cell.
        """
        err = self.encoder.back_propagate(self.error_values())
        if self.prev_error is not None:
            self.prev_error.weighted_patch_paste(
                self.encoder.dinputs, self.input_x, self.input_y, self.input_width, self.input_height)
        return err

    def learn(self):
        """Apply the gradient accumulated by back_propagate() to the encoder."""
        if self.encoder is not None:
            self.encoder.learn()

    def clear_error(self):
        self.error_values().fill(0)
        if self.encoder is not None:
            self.encoder.clear_previous_error()
        if self.decoder is not None:
            self.decoder.clear_error()

    def clear_gradient(self):
        for layer in self.layers():
            layer.clear_gradient()

    def start_training(self):
        self.training = True
        for layer in self.layers():
            layer.start_training()

    def stop_training(self):
        self.training = False
        for layer in self.layers():
            layer.stop_training()

    def get_learning_rate(self):
        return self.encoder.get_learning_rate() if self.encoder is not None else 0.

    def set_learning_rate(self, learning_rate):
        for layer in self.layers():
            layer.set_learning_rate(learning_rate)

    def activate_output(self, index, value=1.):
        """Set one feature of the output cell, e.g. to look at what it decodes to."""
        self.output_values()[index] = value

    def paste_decoded(self, target, x, y):
        """Weighted-paste the last reconstruction into `target` at (x, y)."""
        target.weighted_patch_paste(self.decoded, x, y, self.input_width, self.input_height)

    # Structure
    def delete_features(self, *indices):
        """
        Remove output features; remaining features are renumbered downwards.

        The output and error bindings are reset to private blocks of the new depth and must be
        rebound by the caller.
        """
        if not self.supports_feature_deletion:
            raise UnsupportedOperationError(f"{self.type_name} units do not support feature deletion")
        indices = sorted(set(int(i) for i in indices), reverse=True)
        if any(not 0 <= i < self.output_depth for i in indices):
            raise ConfigurationError(f"{self}: feature indices {indices} out of range [0, {self.output_depth})")
        if len(indices) >= self.output_depth:
            raise ConfigurationError(f"{self}: cannot delete every feature")

        for index in indices:
            self.encoder = self.encoder.delete_output(index)
            self.decoder = self.decoder.delete_input(index)
        self.output_depth -= len(indices)
        self.output = DataBlock(1, 1, self.output_depth)
        self.output_x = self.output_y = 0
        self.error = DataBlock(1, 1, self.output_depth)

    def clone(self):
        """
        Deep copy of the unit's parameters. DataBlock bindings are not copied: the copy starts
        with private blocks and has to be rebound by its owner.
        """
        if not self.cloneable:
            raise UnsupportedOperationError(f"{self.type_name} units cannot be cloned")
        bindings = (self.input, self.output, self.error, self.prev_error)
        self.input = self.output = self.error = self.prev_error = None
        try:
            twin = copy.deepcopy(self)
        finally:
            self.input, self.output, self.error, self.prev_error = bindings
        twin._reset_bindings()
        return twin

    def describe(self):
        return f"{self.type_name}:{self.input_width}x{self.input_height}x{self.input_depth}->{self.output_depth}"

    def __str__(self):
        return self.describe()
