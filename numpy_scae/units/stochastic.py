"""
stochastic.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: Units built on restricted Boltzmann machines (binary-binary and Gaussian-binary) and the
             binary-to-real converter placed on top of them. They are trained with contrastive
             divergence inside train(), not with back-propagation.
Published: 10-19-2026
"""

from numpy_scae.model_builder.rbm import BasicBBRBM, BasicGBRBM
from numpy_scae.utils import backend
from numpy_scae.utils.exceptions import ConfigurationError, UnsupportedOperationError
from .autoencoder import AutoEncoder, UnitKind


class _RBMUnit(AutoEncoder):
    """Common behaviour: binary codes, no gradient-based learning."""
    supports_feature_deletion = False
    has_binary_output = True

    def encode(self):
        self.input_patch_to_array()
        self.rbm.load(self.input_array)
        self.rbm.update_hidden()
        self.output_values()[:] = self.rbm.hidden

    def decode(self):
        self.rbm.hidden = (self.output_values() > 0.5).astype(self.rbm.hidden.dtype)
        self.rbm.decode()
        self.decoded[:] = self.rbm.visible

    def back_propagate(self):
        raise UnsupportedOperationError(f"{self.type_name} units are trained by contrastive divergence only")

    def learn(self):
        pass

    def __repr__(self):
        return f"{type(self).__name__}({self.describe()})"


class BBRBMUnit(_RBMUnit):
    """Binary input, binary features."""
    kind = UnitKind.BBRBM
    type_name = "BBRBM"
    needs_binary_input = True

    def __init__(self, input_width, input_height, input_depth, output_depth, eps=1e-3):
        super().__init__(input_width, input_height, input_depth, output_depth)
        self.rbm = BasicBBRBM(self.input_length, output_depth, eps=eps)

    def train(self):
        """
        Returns:
            float: Fraction of visible units flipped by the reconstruction.
        """
        self.input_patch_to_array()
        self.rbm.load(self.input_array)
        return self.rbm.train()


class GBRBMUnit(_RBMUnit):
    """Real-valued input, binary features."""
    kind = UnitKind.GBRBM
    type_name = "GBRBM"

    def __init__(self, input_width, input_height, input_depth, output_depth, eps=1e-4):
        super().__init__(input_width, input_height, input_depth, output_depth)
        self.rbm = BasicGBRBM(self.input_length, output_depth, eps=eps)

    def train(self):
        self.input_patch_to_array()
        return self.rbm.train(self.input_array)


class ToRealUnit(AutoEncoder):
    """
    Maps binary values to {-1, 1} so that real-valued units can be stacked on binary ones.

    Only valid on a single cell with as many outputs as inputs.
    """
    kind = UnitKind.TO_REAL
    type_name = "ToReal"
    needs_binary_input = True
    supports_feature_deletion = False
    cloneable = False

    def __init__(self, input_width, input_height, input_depth, output_depth=None):
        if output_depth is None:
            output_depth = input_depth
        if input_width != 1 or input_height != 1:
            raise ConfigurationError("real units cannot be added to convolved layers (input must be 1x1)")
        if output_depth != input_depth:
            raise ConfigurationError("real units require the same input and output depth")
        super().__init__(input_width, input_height, input_depth, output_depth)

    def encode(self):
        self.input_patch_to_array()
        self.output_values()[:] = backend.np.where(self.input_array > 0.5, 1., -1.)

    def decode(self):
        self.decoded[:] = backend.np.where(self.output_values() > 0.5, 1., -1.)

    def train(self):
        return 0.

    def back_propagate(self):
        raise UnsupportedOperationError("ToReal units do not propagate errors")
