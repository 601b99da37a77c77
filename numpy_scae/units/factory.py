"""
factory.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: Registry mapping every UnitKind to the constructor of its unit class.
Published: 10-19-2026
"""

from numpy_scae.utils.exceptions import ConfigurationError
from .autoencoder import UnitKind
from .frequency import SpectralAutoEncoder
from .pooling import MaxPooler, Pooler
from .projection import PCAAutoEncoder, LDAAutoEncoder
from .standard import StandardAutoEncoder
from .stochastic import BBRBMUnit, GBRBMUnit, ToRealUnit


def _same_depth(cls):
    def build(input_width, input_height, input_depth, output_depth, **options):
        if output_depth is not None and output_depth != input_depth:
            raise ConfigurationError(f"{cls.__name__} keeps the input depth ({input_depth}), got output depth {output_depth}")
        return cls(input_width, input_height, input_depth, **options)
    return build


UNIT_CLASSES = {
    UnitKind.STANDARD: StandardAutoEncoder,
    UnitKind.PCA: PCAAutoEncoder,
    UnitKind.LDA: LDAAutoEncoder,
    UnitKind.MAX_POOLER: _same_depth(MaxPooler),
    UnitKind.POOLER: _same_depth(Pooler),
    UnitKind.BBRBM: BBRBMUnit,
    UnitKind.GBRBM: GBRBMUnit,
    UnitKind.TO_REAL: ToRealUnit,
    UnitKind.SPECTRAL: SpectralAutoEncoder,
}

def build_unit(kind, input_width, input_height, input_depth, output_depth=None, **options):
    """
    Create a unit from its kind tag.

    Args:
        kind (UnitKind or str): Unit type.
        input_width, input_height, input_depth (int): Input patch size.
        output_depth (int): Number of features; poolers and real converters keep the input depth.
        **options: Unit specific keyword arguments, e.g. layer_kind for layer-based units,
            selector for Pooler, forward_transform/inverse_transform for the spectral unit.

    Returns:
        AutoEncoder: The new, unbound unit.

    Raises:
        ConfigurationError: Unknown kind or inconsistent sizes.
    """
    kind = UnitKind.parse(kind)
    if output_depth is None and kind not in (UnitKind.MAX_POOLER, UnitKind.POOLER, UnitKind.TO_REAL):
        raise ConfigurationError(f"{kind.value} units need an output depth")
    return UNIT_CLASSES[kind](input_width, input_height, input_depth, output_depth, **options)
