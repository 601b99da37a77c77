"""
frequency.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: Auto-encoder unit working in a transformed (frequency) domain. The input patch goes through
             a forward transform before encoding and the reconstruction through an inverse transform
             after decoding.
Published: 10-19-2026
"""

from numpy_scae.model_builder.layers import LayerKind
from numpy_scae.utils import backend
from numpy_scae.utils.spectral_transforms import TransformKind, build_transform
from .autoencoder import UnitKind
from .standard import StandardAutoEncoder


class SpectralAutoEncoder(StandardAutoEncoder):
    """
    Frequency-domain unit.

    The encoder sees forward_transform(patch). The decoder output is mapped back to the spatial
    domain with inverse_transform.inverse(). With identical transforms, training compares the
    decoder output with the encoder input directly. Otherwise it compares it with
    inverse_transform.forward(patch), the patch expressed in the decoder's domain.

    Args:
        forward_transform (TransformKind or str): Transform applied before encoding.
        inverse_transform (TransformKind or str): Transform whose inverse is applied after decoding,
            defaults to forward_transform.
    """
    kind = UnitKind.SPECTRAL
    type_name = "Spectral"

    def __init__(self, input_width, input_height, input_depth, output_depth, layer_kind=LayerKind.NEURAL,
                 forward_transform=TransformKind.DHT2D, inverse_transform=None, **kwargs):
        super().__init__(input_width, input_height, input_depth, output_depth, layer_kind=layer_kind, **kwargs)
        if inverse_transform is None:
            inverse_transform = forward_transform
        self.forward_transform = build_transform(forward_transform, input_width, input_height, input_depth)
        self.inverse_transform = build_transform(inverse_transform, input_width, input_height, input_depth)
        self.spatial_array = backend.np.zeros(self.input_length, dtype=backend.np.float32)
        self.frequency_decoded = backend.np.zeros(self.input_length, dtype=backend.np.float32)

    @property
    def same_transforms(self):
        return self.forward_transform.kind is self.inverse_transform.kind

    def input_patch_to_array(self):
        """Read the spatial patch and store its transform in input_array."""
        super().input_patch_to_array()
        self.spatial_array[:] = self.input_array
        self.input_array[:] = self.forward_transform.forward(self.spatial_array)
        return self.input_array

    def decode(self):
        self.frequency_decoded[:] = self.decoder.forward(self.output_values())
        self.decoded[:] = self.inverse_transform.inverse(self.frequency_decoded)

    def reconstruction_target(self):
        if self.same_transforms:
            return self.input_array
        return self.inverse_transform.forward(self.spatial_array)

    def back_propagate(self):
        """
        The encoder's input error is mapped back with the inverse of forward_transform before it is
        pasted. This is the exact spatial gradient for the orthonormal transforms; for DHT2D it is
        the gradient divided by the patch area.
        """
        err = self.encoder.back_propagate(self.error_values())
        if self.prev_error is not None:
            spatial_error = self.forward_transform.inverse(self.encoder.dinputs)
            self.prev_error.weighted_patch_paste(
                spatial_error, self.input_x, self.input_y, self.input_width, self.input_height)
        return err

    def describe(self):
        return f"{super().describe()}[{self.forward_transform.kind.value}/{self.inverse_transform.kind.value}]"
