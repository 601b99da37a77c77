"""
pooling.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: Pooling units. They reduce a patch to one value per channel, have no trainable layers and
             cannot be trained as auto-encoders. MaxPooler routes the whole error of a channel to the
             first maximal input; Pooler delegates selection and error routing to a selector (max,
             mean, absolute extremum or a learnable soft maximum).
Published: 10-19-2026
"""

import math
from enum import Enum

from numpy_scae.utils import backend
from numpy_scae.utils.exceptions import UnsupportedOperationError
from numpy_scae.utils.registry import parse_kind
from .autoencoder import AutoEncoder, UnitKind


class _PoolingUnit(AutoEncoder):
    """Shared plumbing: output depth equals input depth and there is nothing to train."""
    is_trainable = False
    supports_feature_deletion = False

    def __init__(self, input_width, input_height, input_depth):
        super().__init__(input_width, input_height, input_depth, input_depth)

    def input_cells(self):
        """Current input patch as (cells, depth), cell index = x * input_height + y."""
        return self.input_patch_to_array().reshape(self.input_width * self.input_height, self.input_depth)

    def _cell_position(self, cell):
        return self.input_x + cell // self.input_height, self.input_y + cell % self.input_height

    def decode(self):
        # every cell of the patch gets the pooled channel vector
        self.decoded[:] = backend.np.tile(self.output_values(), self.input_width * self.input_height)

    def train(self):
        raise UnsupportedOperationError(f"{self.type_name} poolers cannot be trained")

    def clear_error(self):
        self.error_values().fill(0)


class MaxPooler(_PoolingUnit):
    """Per-channel maximum of the input patch."""
    kind = UnitKind.MAX_POOLER
    type_name = "MaxPooler"

    def encode(self):
        self.output_values()[:] = backend.np.max(self.input_cells(), axis=0)

    def back_propagate(self):
        """
        Send the error of every channel to the input cell holding that channel's maximum.

        Ties go to the first maximum in (x, y) scan order.
        """
        errors = self.error_values()
        err = float(backend.np.mean(backend.np.abs(errors)))
        if self.prev_error is None:
            return err
        # argmax returns the first occurrence
        winners = backend.np.argmax(self.input_cells(), axis=0)
        for z in range(self.input_depth):
            x, y = self._cell_position(int(winners[z]))
            self.prev_error.add_value(z, x, y, float(errors[z]))
        return err


class PoolerKind(Enum):
    MAX = "max"
    MEAN = "mean"
    EXTREMUM = "extremum"
    SEXPLOG = "sexplog"

    @classmethod
    def parse(cls, value):
        return parse_kind(cls, value)


class Selector_Max:
    """Maximum; the error goes to the first cell strictly above 0 that is largest, else to cell 0."""
    def select(self, cells):
        return backend.np.max(cells, axis=0)

    def route(self, cells, errors):
        routed = backend.np.zeros_like(cells)
        for z in range(cells.shape[1]):
            winner, best = 0, 0.
            for cell, value in enumerate(cells[:, z]):
                if value > best:
                    winner, best = cell, value
            routed[winner, z] = errors[z]
        return routed

    def learn(self):
        pass

class Selector_Mean:
    """Average; the error is spread evenly over the patch."""
    def select(self, cells):
        return backend.np.mean(cells, axis=0)

    def route(self, cells, errors):
        return backend.np.broadcast_to(errors / cells.shape[0], cells.shape).copy()

    def learn(self):
        pass

class Selector_Extremum(Selector_Max):
    """Value with the largest magnitude, sign kept."""
    def select(self, cells):
        picked = backend.np.zeros(cells.shape[1], dtype=cells.dtype)
        for z in range(cells.shape[1]):
            extremum = 0.
            for value in cells[:, z]:
                extremum = extremum if abs(extremum) > abs(value) else value
            picked[z] = extremum
        return picked

    def route(self, cells, errors):
        return super().route(backend.np.abs(cells), errors)

class Selector_SExpLog:
    """
    Smooth maximum log(sum(exp(w * x))) / w with a learnable sharpness w.

    Attributes:
        w (float): Sharpness, e at construction.
        learning_rate (float): Step size of the update of w.
    """
    def __init__(self, w=math.e, learning_rate=1e-4):
        self.w = w
        self.learning_rate = learning_rate
        self.w_gradient = 0.

    def select(self, cells):
        return backend.np.log(backend.np.sum(backend.np.exp(self.w * cells), axis=0)) / self.w

    def route(self, cells, errors):
        exps = backend.np.exp(self.w * cells)
        exp_sum = backend.np.sum(exps, axis=0)
        self.w_gradient += float(backend.np.sum(errors * backend.np.sum(cells * exps, axis=0) / exp_sum))
        return self.w * errors / exp_sum * exps

    def learn(self):
        self.w -= self.w_gradient * self.learning_rate
        self.w_gradient = 0.


_SELECTORS = {
    PoolerKind.MAX: Selector_Max,
    PoolerKind.MEAN: Selector_Mean,
    PoolerKind.EXTREMUM: Selector_Extremum,
    PoolerKind.SEXPLOG: Selector_SExpLog,
}


class Pooler(_PoolingUnit):
    """
    Pooling unit with a pluggable selector.

    Args:
        input_width, input_height, input_depth (int): Patch size.
        selector (PoolerKind or str): Selection strategy.
    """
    kind = UnitKind.POOLER

    def __init__(self, input_width, input_height, input_depth, selector=PoolerKind.MAX):
        super().__init__(input_width, input_height, input_depth)
        self.selector_kind = PoolerKind.parse(selector)
        self.selector = _SELECTORS[self.selector_kind]()

    @property
    def type_name(self):
        return f"Pooler[{self.selector_kind.value}]"

    def encode(self):
        self.output_values()[:] = self.selector.select(self.input_cells())

    def back_propagate(self):
        errors = self.error_values()
        err = float(backend.np.mean(backend.np.abs(errors)))
        if self.prev_error is None:
            return err
        routed = self.selector.route(self.input_cells(), errors)
        for cell in range(routed.shape[0]):
            x, y = self._cell_position(cell)
            for z in range(self.input_depth):
                self.prev_error.add_value(z, x, y, float(routed[cell, z]))
        return err

    def learn(self):
        self.selector.learn()
