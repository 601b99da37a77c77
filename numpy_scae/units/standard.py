"""
standard.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: Standard auto-encoder unit, an encoder/decoder pair of layers of one kind trained
             on the reconstruction error.
Published: 10-19-2026
"""

from numpy_scae.model_builder.layers import LayerKind, build_layer
from .autoencoder import AutoEncoder, UnitKind


class StandardAutoEncoder(AutoEncoder):
    """
    Generic encoder/decoder pair.

    Args:
        input_width, input_height, input_depth (int): Input patch size.
        output_depth (int): Number of features.
        layer_kind (LayerKind or str): Type of both layers.
        encoder_weights, encoder_biases, decoder_weights, decoder_biases (ndarray): Optional
            initial parameters, e.g. from a previous training run.
        **layer_options: Forwarded to the layer constructors (learning_rate, decay, dropout_rate, ...).
    """
    kind = UnitKind.STANDARD
    type_name = "Standard"

    def __init__(self, input_width, input_height, input_depth, output_depth, layer_kind=LayerKind.NEURAL,
                 encoder_weights=None, encoder_biases=None, decoder_weights=None, decoder_biases=None, **layer_options):
        super().__init__(input_width, input_height, input_depth, output_depth)
        self.layer_kind = LayerKind.parse(layer_kind)
        self.encoder = build_layer(self.layer_kind, self.input_length, output_depth,
                                   weights=encoder_weights, biases=encoder_biases, **layer_options)
        self.decoder = build_layer(self.layer_kind, output_depth, self.input_length,
                                   weights=decoder_weights, biases=decoder_biases, **layer_options)
