"""
spectral_transforms.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: Reversible real-valued 2D transforms applied channel by channel to flattened patches
             (Identity, Hartley, sine and cosine transforms), used by the frequency-domain unit.
Published: 10-19-2026
"""

from enum import Enum

import scipy.fft

from numpy_scae.utils import backend
from numpy_scae.utils.registry import parse_kind


class TransformKind(Enum):
    IDENTITY = "identity"
    DHT2D = "dht2d"
    DST2D = "dst2d"
    DCT2D = "dct2d"

    @classmethod
    def parse(cls, value):
        return parse_kind(cls, value)


class SpectralTransform:
    """
    Base class. Vectors use the (x, y, channel) patch layout; the transform runs over the
    two spatial axes of every channel independently.
    """
    kind = None

    def __init__(self, width, height, depth):
        self.width = width
        self.height = height
        self.depth = depth

    def _to_grid(self, vector):
        return backend.to_numpy(vector).reshape(self.width, self.height, self.depth).astype("float64")

    def _to_vector(self, grid):
        return backend.from_numpy(grid.reshape(-1), dtype=backend.np.float32)

    def forward(self, vector):
        return self._to_vector(self._forward(self._to_grid(vector)))

    def inverse(self, vector):
        return self._to_vector(self._inverse(self._to_grid(vector)))


class Identity(SpectralTransform):
    kind = TransformKind.IDENTITY

    def _forward(self, grid):
        return grid

    def _inverse(self, grid):
        return grid


class DHT2D(SpectralTransform):
    """Discrete Hartley transform: Re(F) - Im(F). It is its own inverse up to a 1/N factor."""
    kind = TransformKind.DHT2D

    def _forward(self, grid):
        spectrum = scipy.fft.fft2(grid, axes=(0, 1))
        return spectrum.real - spectrum.imag

    def _inverse(self, grid):
        return self._forward(grid) / (self.width * self.height)


class DST2D(SpectralTransform):
    """Orthonormal type-II discrete sine transform."""
    kind = TransformKind.DST2D

    def _forward(self, grid):
        return scipy.fft.dstn(grid, type=2, axes=(0, 1), norm="ortho")

    def _inverse(self, grid):
        return scipy.fft.idstn(grid, type=2, axes=(0, 1), norm="ortho")


class DCT2D(SpectralTransform):
    """Orthonormal type-II discrete cosine transform."""
    kind = TransformKind.DCT2D

    def _forward(self, grid):
        return scipy.fft.dctn(grid, type=2, axes=(0, 1), norm="ortho")

    def _inverse(self, grid):
        return scipy.fft.idctn(grid, type=2, axes=(0, 1), norm="ortho")


_TRANSFORMS = {cls.kind: cls for cls in (Identity, DHT2D, DST2D, DCT2D)}

def build_transform(kind, width, height, depth):
    """Create a transform for (width x height x depth) patches from its kind tag."""
    return _TRANSFORMS[TransformKind.parse(kind)](width, height, depth)
