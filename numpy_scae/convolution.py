"""
convolution.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: Convolutional layers built by sweeping auto-encoder units over a grid of output cells.
             Convolution is a stage of an SCAE (pre-training), SharedConvolution and UntiedConvolution
             are the two forms of an FFCNN layer (one unit for every position, or one unit per
             position), and UpsamplingConvolution expands every input cell into an output patch.
Published: 10-19-2026
"""

import logging

from numpy_scae.model_builder.layers import LayerKind
from numpy_scae.units.standard import StandardAutoEncoder
from numpy_scae.utils.data_block import DataBlock
from numpy_scae.utils.exceptions import ConfigurationError, UnsupportedOperationError

logger = logging.getLogger(__name__)


def _check_fits(owner, block, x, y, width, height, depth):
    if block.depth != depth:
        raise ConfigurationError(f"{owner}: input depth {block.depth} does not match {depth}")
    if x < 0 or y < 0 or x + width > block.width or y + height > block.height:
        raise ConfigurationError(f"{owner}: a {width}x{height} input at ({x}, {y}) does not fit in {block}")


class Convolution:
    """
    SCAE stage: one unit swept over an (out_width x out_height) grid.

    Output cell (ox, oy) encodes the input patch starting at
    (input_x + ox * offset_x, input_y + oy * offset_y).

    Args:
        base (AutoEncoder): Unit applied at every position.
        out_width, out_height (int): Output grid size.
        offset_x, offset_y (int): Input step between two neighbouring output cells.
    """
    def __init__(self, base, out_width, out_height, offset_x, offset_y):
        if out_width <= 0 or out_height <= 0:
            raise ConfigurationError(f"invalid output grid {out_width}x{out_height}")
        if offset_x <= 0 or offset_y <= 0:
            raise ConfigurationError(f"invalid offsets ({offset_x}, {offset_y})")
        self.base = base
        self.offset_x = offset_x
        self.offset_y = offset_y
        self.input_x = 0
        self.input_y = 0
        self.resize(out_width, out_height)

    @property
    def out_width(self):
        return self.output.width

    @property
    def out_height(self):
        return self.output.height

    @property
    def output_depth(self):
        return self.base.output_depth

    @property
    def input_width(self):
        return (self.out_width - 1) * self.offset_x + self.base.input_width

    @property
    def input_height(self):
        return (self.out_height - 1) * self.offset_y + self.base.input_height

    @property
    def input_depth(self):
        return self.base.input_depth

    def positions(self):
        """Yield (ox, oy, ix, iy): output cell and the origin of its input patch."""
        for ox in range(self.out_width):
            for oy in range(self.out_height):
                yield ox, oy, self.input_x + ox * self.offset_x, self.input_y + oy * self.offset_y

    def _move(self, ox, oy, ix, iy):
        self.base.bind(self.input, ix, iy, self.output, ox, oy)

    def set_input(self, block, x=0, y=0):
        _check_fits(self, block, x, y, self.input_width, self.input_height, self.input_depth)
        self.input, self.input_x, self.input_y = block, x, y

    def resize(self, out_width, out_height):
        """
        Change the output grid. New output and error blocks are allocated and the input is reset
        to a private block of the matching patch size.
        """
        self.output = DataBlock(out_width, out_height, self.base.output_depth)
        self.error = DataBlock(out_width, out_height, self.base.output_depth)
        self.input = DataBlock(self.input_width, self.input_height, self.input_depth)
        self.input_x = self.input_y = 0
        self.base.set_error(self.error)
        self.base.set_output(self.output, 0, 0)

    def encode(self):
        for ox, oy, ix, iy in self.positions():
            self._move(ox, oy, ix, iy)
            self.base.encode()

    def rebuild_input(self):
        """
        Decode every output cell and paste the reconstructions into the input region, which is
        emptied first. Overlapping reconstructions are averaged.
        """
        self.input.values[self.input_x:self.input_x + self.input_width,
                          self.input_y:self.input_y + self.input_height] = 0
        self.input.weights[self.input_x:self.input_x + self.input_width,
                           self.input_y:self.input_y + self.input_height] = 0
        for ox, oy, ix, iy in self.positions():
            self._move(ox, oy, ix, iy)
            self.base.decode()
            self.base.paste_decoded(self.input, ix, iy)
        self.input.normalize_weights()

    def train(self):
        """
        Train the unit once at every position.

        Returns:
            float: Mean training error over the grid.
        """
        err = 0.
        for ox, oy, ix, iy in self.positions():
            self._move(ox, oy, ix, iy)
            err += self.base.train()
        return err / (self.out_width * self.out_height)

    def train_label(self, label):
        err = 0.
        for ox, oy, ix, iy in self.positions():
            self._move(ox, oy, ix, iy)
            err += self.base.train_label(label)
        return err / (self.out_width * self.out_height)

    def training_done(self):
        self.base.training_done()

    def delete_features(self, *indices):
        if self.out_width != 1 or self.out_height != 1:
            raise UnsupportedOperationError(
                f"features can only be deleted from a 1x1 convolution, not {self.out_width}x{self.out_height}")
        self.base.delete_features(*indices)
        input_block, x, y = self.input, self.input_x, self.input_y
        self.resize(1, 1)
        self.set_input(input_block, x, y)

    def start_training(self):
        self.base.start_training()

    def stop_training(self):
        self.base.stop_training()

    def get_learning_rate(self):
        return self.base.get_learning_rate()

    def set_learning_rate(self, learning_rate):
        self.base.set_learning_rate(learning_rate)

    def __str__(self):
        return f"{self.base}+{self.offset_x}+{self.offset_y}"


class ConvolutionalLayer:
    """
    Common part of the FFCNN layers.

    A layer reads an (input_width x input_height x input_depth) region of its input block, writes
    an (out_width x out_height x output_depth) output block and keeps an error block of the same
    size. prev_error, when bound, is the error block of the layer below and receives the
    back-propagated error.
    """
    def __init__(self, input_width, input_height, input_depth, output, error):
        self.input_width = input_width
        self.input_height = input_height
        self.input_depth = input_depth
        self.output = output
        self.error = error
        self.input = DataBlock(input_width, input_height, input_depth)
        self.input_x = 0
        self.input_y = 0
        self.prev_error = None
        self.training = False

    @property
    def out_width(self):
        return self.output.width

    @property
    def out_height(self):
        return self.output.height

    @property
    def output_depth(self):
        return self.output.depth

    def units(self):
        raise NotImplementedError

    def _check_input(self, block, x, y):
        _check_fits(self, block, x, y, self.input_width, self.input_height, self.input_depth)

    def set_prev_error(self, block):
        if block is not None and block.depth != self.input_depth:
            raise ConfigurationError(f"{self}: previous error depth {block.depth} does not match {self.input_depth}")
        self.prev_error = block
        for unit in self.units():
            unit.set_prev_error(block)

    def add_error(self, x, y, z, e):
        self.error.values[x, y, z] += e

    def set_expected(self, x, y, z, value):
        """Add output - value to the error of one output entry."""
        self.add_error(x, y, z, self.output.get_value(z, x, y) - value)

    def clear_error(self):
        for unit in self.units():
            unit.clear_error()
        self.error.clear()

    def clear_gradient(self):
        for unit in self.units():
            unit.clear_gradient()

    def learn(self):
        for unit in self.units():
            unit.learn()

    def start_training(self):
        self.training = True
        for unit in self.units():
            unit.start_training()

    def stop_training(self):
        self.training = False
        for unit in self.units():
            unit.stop_training()

    def get_learning_rate(self):
        rates = [unit.get_learning_rate() for unit in self.units()]
        return sum(rates) / len(rates)

    def set_learning_rate(self, learning_rate):
        for unit in self.units():
            unit.set_learning_rate(learning_rate)

    def deconvolve(self):
        return self

    def describe(self):
        return (f"{type(self).__name__}({self.input_width}x{self.input_height}x{self.input_depth}"
                f"->{self.out_width}x{self.out_height}x{self.output_depth})")

    def __str__(self):
        return self.describe()


class SharedConvolution(ConvolutionalLayer):
    """
    One unit, hence one set of weights, for every output position.

    The unit is rebound to each position before it is used there. Gradients of all positions
    accumulate in the unit's layers and are applied by a single learn().

    Args:
        unit (AutoEncoder): The shared unit; this layer owns it.
        out_width, out_height (int): Output grid size.
        offset_x, offset_y (int): Input step between two neighbouring output cells.
        output, error (DataBlock): Blocks to write to, allocated when omitted.
    """
    def __init__(self, unit, out_width, out_height, offset_x=1, offset_y=1, output=None, error=None):
        if output is None:
            output = DataBlock(out_width, out_height, unit.output_depth)
        if error is None:
            error = DataBlock(out_width, out_height, unit.output_depth)
        super().__init__((out_width - 1) * offset_x + unit.input_width,
                         (out_height - 1) * offset_y + unit.input_height,
                         unit.input_depth, output, error)
        self.offset_x = offset_x
        self.offset_y = offset_y
        self.unit = unit
        self.unit.set_error(self.error)
        self.unit.set_output(self.output, 0, 0)
        self.unit.set_input(self.input, 0, 0)

    @classmethod
    def from_convolution(cls, convolution):
        """Promote a trained SCAE stage; the unit is cloned, the stage is left untouched."""
        return cls(convolution.base.clone(), convolution.out_width, convolution.out_height,
                   convolution.offset_x, convolution.offset_y)

    @classmethod
    def stacked_on(cls, previous, layer_kind=LayerKind.NEURAL, nb_neurons=1, **layer_options):
        """New 1x1 layer whose Standard unit reads the whole output volume of `previous`."""
        if nb_neurons <= 0:
            raise ConfigurationError(f"a layer needs at least one neuron, got {nb_neurons}")
        block = previous.output
        unit = StandardAutoEncoder(block.width, block.height, block.depth, nb_neurons,
                                   layer_kind=layer_kind, **layer_options)
        return cls(unit, 1, 1)

    def units(self):
        return [self.unit]

    def positions(self):
        for ox in range(self.out_width):
            for oy in range(self.out_height):
                yield ox, oy, self.input_x + ox * self.offset_x, self.input_y + oy * self.offset_y

    def _move(self, ox, oy, ix, iy):
        self.unit.bind(self.input, ix, iy, self.output, ox, oy)

    def get_unit(self, x, y):
        return self.unit

    def set_input(self, block, x=0, y=0):
        self._check_input(block, x, y)
        self.input, self.input_x, self.input_y = block, x, y
        self._move(0, 0, x, y)

    def compute(self):
        for ox, oy, ix, iy in self.positions():
            self._move(ox, oy, ix, iy)
            self.unit.encode()

    def back_propagate(self):
        """
        Back-propagate the error of every output cell. The unit is re-encoded at each position
        first so that its layers hold that position's activations.

        Returns:
            float: Mean error over the grid.
        """
        err = 0.
        for ox, oy, ix, iy in self.positions():
            self._move(ox, oy, ix, iy)
            self.unit.encode()
            err += self.unit.back_propagate()
        return err / (self.out_width * self.out_height)

    def add_error(self, x, y, z, e):
        # the single gradient is shared by every position
        self.error.values[x, y, z] += e / (self.out_width * self.out_height)

    def deconvolve(self):
        """
        Turn this layer into an UntiedConvolution with one clone of the unit per position.

        The new layer takes over the output, error, input and previous error bindings, so the
        surrounding layers keep working unchanged. This layer must not be used afterwards.
        """
        untied = UntiedConvolution.from_shared(self)
        self.unit = None
        logger.info(f"Deconvolved {untied}")
        return untied


class UntiedConvolution(ConvolutionalLayer):
    """
    One independent unit per output position.

    Args:
        grid (list): grid[x][y] is the unit computing output cell (x, y).
        offset_x, offset_y (int): Input step between two neighbouring output cells.
        output, error (DataBlock): Blocks to write to, allocated when omitted.
    """
    def __init__(self, grid, offset_x=1, offset_y=1, output=None, error=None):
        out_width, out_height = len(grid), len(grid[0])
        first = grid[0][0]
        if output is None:
            output = DataBlock(out_width, out_height, first.output_depth)
        if error is None:
            error = DataBlock(out_width, out_height, first.output_depth)
        super().__init__((out_width - 1) * offset_x + first.input_width,
                         (out_height - 1) * offset_y + first.input_height,
                         first.input_depth, output, error)
        self.offset_x = offset_x
        self.offset_y = offset_y
        self.grid = grid
        for unit in self.units():
            unit.set_error(self.error)
        self.set_input(self.input, 0, 0)

    @classmethod
    def from_shared(cls, shared):
        grid = [[shared.unit.clone() for _ in range(shared.out_height)] for _ in range(shared.out_width)]
        layer = cls(grid, shared.offset_x, shared.offset_y, output=shared.output, error=shared.error)
        layer.set_input(shared.input, shared.input_x, shared.input_y)
        layer.set_prev_error(shared.prev_error)
        if shared.training:
            layer.start_training()
        return layer

    @classmethod
    def stacked_on(cls, previous, layer_kind=LayerKind.NEURAL, out_width=1, out_height=1, out_depth=1,
                   **layer_options):
        """New layer where every output cell has its own Standard unit over the whole previous output."""
        block = previous.output
        grid = [[StandardAutoEncoder(block.width, block.height, block.depth, out_depth,
                                     layer_kind=layer_kind, **layer_options)
                 for _ in range(out_height)] for _ in range(out_width)]
        return cls(grid, 0, 0)

    def units(self):
        return [unit for column in self.grid for unit in column]

    def get_unit(self, x, y):
        return self.grid[x][y]

    def set_input(self, block, x=0, y=0):
        self._check_input(block, x, y)
        self.input, self.input_x, self.input_y = block, x, y
        for ox, column in enumerate(self.grid):
            for oy, unit in enumerate(column):
                unit.bind(block, x + ox * self.offset_x, y + oy * self.offset_y, self.output, ox, oy)

    def compute(self):
        for unit in self.units():
            unit.encode()

    def back_propagate(self):
        err = 0.
        for unit in self.units():
            err += unit.back_propagate()
        return err / (self.out_width * self.out_height)


class UpsamplingConvolution(ConvolutionalLayer):
    """
    Expands every cell of the input grid into a (patch_width x patch_height) patch of the output.

    Patch cell (px, py) is computed by its own 1x1 Standard unit from the channel vector of the
    input cell, so the same patch_width * patch_height units are reused for every input cell.

    Args:
        input_width, input_height, input_depth (int): Input grid.
        output_depth (int): Channels of the output.
        patch_width, patch_height (int): Output cells per input cell.
        layer_kind (LayerKind or str): Layer type of the units.
    """
    def __init__(self, input_width, input_height, input_depth, output_depth, patch_width, patch_height,
                 layer_kind=LayerKind.NEURAL, **layer_options):
        if patch_width <= 0 or patch_height <= 0:
            raise ConfigurationError(f"invalid patch size {patch_width}x{patch_height}")
        super().__init__(input_width, input_height, input_depth,
                         DataBlock(input_width * patch_width, input_height * patch_height, output_depth),
                         DataBlock(input_width * patch_width, input_height * patch_height, output_depth))
        self.patch_width = patch_width
        self.patch_height = patch_height
        self.patch_units = [[StandardAutoEncoder(1, 1, input_depth, output_depth, layer_kind=layer_kind, **layer_options)
                             for _ in range(patch_height)] for _ in range(patch_width)]
        for unit in self.units():
            unit.set_error(self.error)

    @classmethod
    def stacked_on(cls, previous, layer_kind=LayerKind.NEURAL, patch_width=2, patch_height=2, output_depth=1,
                   **layer_options):
        block = previous.output
        return cls(block.width, block.height, block.depth, output_depth, patch_width, patch_height,
                   layer_kind=layer_kind, **layer_options)

    def units(self):
        return [unit for column in self.patch_units for unit in column]

    def get_unit(self, x, y):
        return self.patch_units[x % self.patch_width][y % self.patch_height]

    def _move(self, ix, iy):
        for px, column in enumerate(self.patch_units):
            for py, unit in enumerate(column):
                unit.bind(self.input, self.input_x + ix, self.input_y + iy,
                          self.output, ix * self.patch_width + px, iy * self.patch_height + py)

    def set_input(self, block, x=0, y=0):
        self._check_input(block, x, y)
        self.input, self.input_x, self.input_y = block, x, y
        self._move(0, 0)

    def resize(self, out_width, out_height):
        """
        Change the output size, and with it the input grid.

        Raises:
            ConfigurationError: The size is not a multiple of the patch size.
        """
        if out_width % self.patch_width != 0:
            raise ConfigurationError(f"wrong width, {out_width} is not a multiple of {self.patch_width}")
        if out_height % self.patch_height != 0:
            raise ConfigurationError(f"wrong height, {out_height} is not a multiple of {self.patch_height}")
        self.input_width = out_width // self.patch_width
        self.input_height = out_height // self.patch_height
        self.output = DataBlock(out_width, out_height, self.output_depth)
        self.error = DataBlock(out_width, out_height, self.output_depth)
        self.input = DataBlock(self.input_width, self.input_height, self.input_depth)
        self.input_x = self.input_y = 0
        for unit in self.units():
            unit.set_error(self.error)
        self._move(0, 0)

    def compute(self):
        for ix in range(self.input_width):
            for iy in range(self.input_height):
                self._move(ix, iy)
                for unit in self.units():
                    unit.encode()

    def back_propagate(self):
        """
        Back-propagate every output cell; the units are re-encoded for each input cell. The error
        reaching an input cell is averaged over its patch.
        """
        err = 0.
        for ix in range(self.input_width):
            for iy in range(self.input_height):
                self._move(ix, iy)
                for unit in self.units():
                    unit.encode()
                    err += unit.back_propagate()
        if self.prev_error is not None:
            self.prev_error.values[self.input_x:self.input_x + self.input_width,
                                   self.input_y:self.input_y + self.input_height] /= self.patch_width * self.patch_height
        return err / (self.patch_width * self.patch_height * self.input_width * self.input_height)
