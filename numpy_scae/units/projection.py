"""
projection.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: Auto-encoder units seeded in closed form. During a first phase train() only stores the
             input patches; training_done() then solves PCA (unsupervised) or LDA (supervised) once and
             writes the projection into the encoder and decoder. Afterwards the units train like a
             standard unit.
Published: 10-19-2026
"""

import logging

import numpy as np

from numpy_scae.model_builder.layers import LayerKind
from numpy_scae.utils import backend
from numpy_scae.utils.closed_form import fit_pca, fit_lda, fit_affine, normalize_rows, stack_samples
from numpy_scae.utils.exceptions import ConfigurationError, TrainingNotFinishedError, UnsupportedOperationError
from .autoencoder import UnitKind
from .standard import StandardAutoEncoder

logger = logging.getLogger(__name__)


class _ClosedFormAutoEncoder(StandardAutoEncoder):
    """Sample collection and fitted-state guard shared by the PCA and LDA units."""

    def __init__(self, input_width, input_height, input_depth, output_depth, layer_kind=LayerKind.LINEAR, **kwargs):
        if output_depth > input_width * input_height * input_depth:
            raise ConfigurationError(
                f"the projected subspace of {self.type_name} cannot have more dimensions ({output_depth}) "
                f"than its input ({input_width * input_height * input_depth})")
        super().__init__(input_width, input_height, input_depth, output_depth, layer_kind=layer_kind, **kwargs)
        self.is_fitted = False
        self.samples = []
        self.labels = []

    def _require_fitted(self, action):
        if not self.is_fitted:
            raise TrainingNotFinishedError(f"cannot {action} with a {self.type_name} unit before training_done()")

    def _store_sample(self, label=None):
        self.input_patch_to_array()
        self.samples.append(backend.to_numpy(self.input_array).copy())
        if label is not None:
            self.labels.append(label)

    def encode(self):
        self._require_fitted("encode")
        super().encode()

    def decode(self):
        self._require_fitted("decode")
        super().decode()

    def back_propagate(self):
        self._require_fitted("back-propagate")
        return super().back_propagate()

    def delete_features(self, *indices):
        self._require_fitted("delete features")
        super().delete_features(*indices)

    def _encode_samples(self, data):
        """Run every stored sample through the fitted encoder (host array of codes)."""
        return np.stack([backend.to_numpy(self.encoder.forward(backend.from_numpy(row))) for row in data])

    def _fit_decoder(self, data, stage):
        """
        Seed a nonlinear decoder: least squares between the codes and the inverse-activated
        inputs, so that the decoder output stays inside the activation's range.
        """
        codes = self._encode_samples(data)
        targets = backend.to_numpy(self.decoder.activation.inverse(backend.from_numpy(data)))
        weights, biases = fit_affine(codes, targets, f"{stage} (nonlinear decoder fit)")
        self.decoder.set_parameters(weights, biases)

    def _finish(self):
        self.is_fitted = True
        self.samples = []
        self.labels = []


class PCAAutoEncoder(_ClosedFormAutoEncoder):
    """
    Unit seeded with principal component analysis.

    The encoder becomes the projection W on the first output_depth principal directions with
    bias -mean @ W. A linear decoder becomes W.T with bias mean; other decoder kinds are fitted
    by least squares in the activated feature space.
    """
    kind = UnitKind.PCA
    type_name = "PCA"

    def train(self):
        if self.is_fitted:
            return super().train()
        self._store_sample()
        return 0.

    def training_done(self):
        if self.is_fitted:
            return
        data = stack_samples(self.samples, "PCA")
        logger.info(f"Computing PCA of {len(data)} samples ({self.input_length} -> {self.output_depth})")

        mean, projection, _ = fit_pca(data, self.output_depth)
        self.encoder.set_parameters(projection, -mean @ projection)
        if self.decoder.activation.is_linear:
            self.decoder.set_parameters(projection.T, mean)
        else:
            self._fit_decoder(data, "PCA")

        self._finish()
        logger.info("PCA finished")


class LDAAutoEncoder(_ClosedFormAutoEncoder):
    """
    Unit seeded with linear discriminant analysis; needs labelled samples through train_label().

    The encoder weights are the output_depth leading discriminant directions and the decoder
    weights the matching rows of their inverse, each row scaled to unit norm.
    """
    kind = UnitKind.LDA
    type_name = "LDA"

    def train(self):
        if not self.is_fitted:
            raise UnsupportedOperationError("LDA units collect labelled samples, use train_label(label)")
        return super().train()

    def train_label(self, label):
        if self.is_fitted:
            return self.train()
        self._store_sample(label)
        return 0.

    def training_done(self):
        if self.is_fitted:
            return
        data = stack_samples(self.samples, "LDA")
        logger.info(f"Computing LDA of {len(data)} samples in {len(set(self.labels))} classes")

        directions, _ = fit_lda(data, self.labels)
        self.encoder.set_weights(directions[:, :self.output_depth])
        if self.decoder.activation.is_linear:
            self.decoder.set_weights(normalize_rows(np.linalg.pinv(directions)[:self.output_depth, :]))
        else:
            self._fit_decoder(data, "LDA")

        self._finish()
        logger.info("LDA finished")
