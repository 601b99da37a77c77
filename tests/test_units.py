import numpy as np
import pytest

from numpy_scae.units.autoencoder import UnitKind
from numpy_scae.units.factory import build_unit
from numpy_scae.units.frequency import SpectralAutoEncoder
from numpy_scae.units.pooling import MaxPooler, Pooler
from numpy_scae.units.projection import PCAAutoEncoder, LDAAutoEncoder
from numpy_scae.units.standard import StandardAutoEncoder
from numpy_scae.units.stochastic import BBRBMUnit, GBRBMUnit, ToRealUnit
from numpy_scae.utils.data_block import DataBlock
from numpy_scae.utils.exceptions import (ConfigurationError, TrainingNotFinishedError,
                                         UnsupportedOperationError)


def _fit(unit, samples, labels=None):
    """Feed samples to a closed-form unit and run its one-time fit."""
    block = DataBlock(unit.input_width, unit.input_height, unit.input_depth)
    unit.set_input(block)
    for n, sample in enumerate(samples):
        block.values[...] = sample.reshape(block.shape)
        if labels is None:
            unit.train()
        else:
            unit.train_label(labels[n])
    unit.training_done()
    return block


def test_standard_unit_learns_a_checkerboard():
    unit = StandardAutoEncoder(2, 2, 1, 2, learning_rate=0.05)
    board = DataBlock.from_array(np.array([[[1.], [-1.]], [[-1.], [1.]]]))
    unit.set_input(board)
    unit.start_training()
    errors = [unit.train() for _ in range(1500)]
    assert errors[-1] < errors[0]


@pytest.mark.parametrize("kind, options", [
    ("standard", {"output_depth": 3}),
    ("pca", {"output_depth": 3}),
    ("max_pooler", {}),
    ("spectral", {"output_depth": 3, "forward_transform": "dct2d"}),
])
def test_unit_shapes(kind, options):
    unit = build_unit(kind, 2, 2, 2, **options)
    assert unit.input_length == 8
    assert unit.input_array.shape == (8,)
    assert unit.decoded.shape == (8,)
    assert unit.output.depth == unit.output_depth
    for layer in unit.layers():
        assert {layer.n_inputs, layer.n_outputs} == {8, unit.output_depth}


def test_feature_deletion_keeps_shapes_consistent():
    unit = StandardAutoEncoder(1, 1, 4, 5)
    encoder_weights = unit.encoder.weights.copy()
    decoder_weights = unit.decoder.weights.copy()
    unit.delete_features(1, 3)
    assert unit.output_depth == 3
    assert unit.output.depth == 3 and unit.error.depth == 3
    np.testing.assert_array_equal(unit.encoder.weights, np.delete(encoder_weights, [1, 3], axis=1))
    np.testing.assert_array_equal(unit.decoder.weights, np.delete(decoder_weights, [1, 3], axis=0))


def test_feature_deletion_rejects_bad_indices():
    unit = StandardAutoEncoder(1, 1, 2, 2)
    with pytest.raises(ConfigurationError):
        unit.delete_features(2)
    with pytest.raises(ConfigurationError):
        unit.delete_features(0, 1)


def test_pca_is_lossless_with_full_depth():
    samples = [np.random.uniform(-1, 1, size=4) for _ in range(40)]
    unit = PCAAutoEncoder(2, 2, 1, 4)
    block = _fit(unit, samples)
    assert unit.is_fitted
    for sample in samples[:5]:
        block.values[...] = sample.reshape(2, 2, 1)
        unit.encode()
        unit.decode()
        np.testing.assert_allclose(unit.decoded, sample, atol=1e-4)


def _reconstruction_error(unit, block, samples):
    errors = []
    for sample in samples:
        block.values[...] = sample.reshape(block.shape)
        unit.encode()
        unit.decode()
        errors.append(np.mean(np.abs(unit.decoded - sample)))
    return float(np.mean(errors))


def test_pca_fits_a_nonlinear_decoder_by_least_squares():
    basis = np.random.uniform(-1, 1, size=(2, 6))
    samples = [0.1 * np.random.uniform(-1, 1, size=2) @ basis for _ in range(80)]
    unit = PCAAutoEncoder(3, 2, 1, 2, layer_kind="neural")
    block = _fit(unit, samples)
    assert not unit.decoder.activation.is_linear
    scale = np.mean(np.abs(samples))
    assert _reconstruction_error(unit, block, samples) < 0.3 * scale
    assert np.all(np.abs(unit.decoded) < 1)


def test_lda_fits_a_nonlinear_decoder_by_least_squares():
    centres = {0: np.array([0.4, 0., 0.]), 1: np.array([-0.4, 0., 0.])}
    labels = [n % 2 for n in range(60)]
    samples = [centres[label] + np.random.normal(0, 0.03, size=3) for label in labels]
    unit = LDAAutoEncoder(1, 1, 3, 1, layer_kind="neural")
    block = _fit(unit, samples, labels)
    assert np.isfinite(unit.decoder.weights).all()
    # a single discriminant code recovers the class centre, which beats the overall mean
    overall = np.mean(np.abs(np.array(samples) - np.mean(samples, axis=0)))
    assert _reconstruction_error(unit, block, samples) < 0.5 * overall


def test_pca_needs_its_fit_first():
    unit = PCAAutoEncoder(1, 1, 3, 2)
    with pytest.raises(TrainingNotFinishedError):
        unit.encode()


def test_projection_cannot_exceed_its_input():
    with pytest.raises(ConfigurationError):
        PCAAutoEncoder(1, 1, 3, 4)
    with pytest.raises(ConfigurationError):
        LDAAutoEncoder(2, 1, 1, 3)


def test_lda_separates_two_classes():
    centres = {0: np.array([2., 0., 0.]), 1: np.array([-2., 0., 0.])}
    labels = [n % 2 for n in range(60)]
    samples = [centres[label] + np.random.normal(0, 0.3, size=3) for label in labels]
    unit = LDAAutoEncoder(1, 1, 3, 1)
    block = _fit(unit, samples, labels)

    codes = {0: [], 1: []}
    for sample, label in zip(samples, labels):
        block.values[...] = sample.reshape(1, 1, 3)
        unit.encode()
        codes[label].append(float(unit.output_values()[0]))
    # the projected classes do not overlap
    assert max(codes[0]) < min(codes[1]) or max(codes[1]) < min(codes[0])


def test_lda_only_takes_labelled_samples():
    unit = LDAAutoEncoder(1, 1, 2, 1)
    with pytest.raises(UnsupportedOperationError):
        unit.train()


def test_max_pooler_routes_error_to_the_maximum():
    pooler = MaxPooler(1, 3, 1)
    block = DataBlock.from_array(np.array([[[0.1], [0.9], [0.2]]]))
    prev_error = DataBlock(1, 3, 1)
    pooler.set_input(block)
    pooler.set_prev_error(prev_error)
    pooler.encode()
    assert pooler.output_values()[0] == pytest.approx(0.9)

    pooler.error_values()[:] = 0.5
    pooler.back_propagate()
    np.testing.assert_allclose(prev_error.values[0, :, 0], [0., 0.5, 0.])


def test_max_pooler_ties_go_to_the_first_cell():
    pooler = MaxPooler(2, 1, 1)
    prev_error = DataBlock(2, 1, 1)
    pooler.set_input(DataBlock.from_array(np.array([[[0.7]], [[0.7]]])))
    pooler.set_prev_error(prev_error)
    pooler.encode()
    pooler.error_values()[:] = 1.
    pooler.back_propagate()
    np.testing.assert_allclose(prev_error.values[:, 0, 0], [1., 0.])


def test_poolers_cannot_be_trained():
    with pytest.raises(UnsupportedOperationError):
        MaxPooler(2, 2, 1).train()
    with pytest.raises(UnsupportedOperationError):
        Pooler(2, 2, 1, selector="mean").train()
    with pytest.raises(UnsupportedOperationError):
        MaxPooler(2, 2, 1).delete_features(0)


def test_mean_pooler_spreads_the_error():
    pooler = Pooler(2, 2, 1, selector="mean")
    prev_error = DataBlock(2, 2, 1)
    pooler.set_input(DataBlock.from_array(np.arange(4.).reshape(2, 2, 1)))
    pooler.set_prev_error(prev_error)
    pooler.encode()
    assert pooler.output_values()[0] == pytest.approx(1.5)
    pooler.error_values()[:] = 1.
    pooler.back_propagate()
    np.testing.assert_allclose(prev_error.values, np.full((2, 2, 1), 0.25))


def test_back_propagate_pastes_into_the_bound_patch():
    unit = StandardAutoEncoder(2, 2, 1, 3)
    block = DataBlock.from_array(np.random.uniform(-1, 1, size=(4, 4, 1)))
    prev_error = DataBlock(4, 4, 1)
    unit.set_input(block, 1, 2)
    unit.set_prev_error(prev_error)
    unit.encode()
    unit.error_values()[:] = 1.
    unit.back_propagate()
    touched = prev_error.weights == 1
    assert touched.sum() == 4 and touched[1:3, 2:4].all()


def test_bind_validates_before_moving():
    unit = StandardAutoEncoder(2, 2, 1, 1)
    home = DataBlock(2, 2, 1)
    unit.set_input(home)
    with pytest.raises(ConfigurationError):
        unit.bind(DataBlock(3, 3, 1), 0, 0, DataBlock(1, 1, 2), 0, 0)
    assert unit.input is home
    with pytest.raises(ConfigurationError):
        unit.set_input(DataBlock(3, 3, 1), 2, 0)


def test_factory_parses_tags():
    assert isinstance(build_unit("StandardAutoEncoder", 1, 1, 2, 2), StandardAutoEncoder)
    assert isinstance(build_unit(UnitKind.MAX_POOLER, 2, 2, 3), MaxPooler)
    assert build_unit("pooler", 2, 2, 3, selector="extremum").output_depth == 3
    with pytest.raises(ConfigurationError):
        build_unit("convolutional_rbm", 1, 1, 1, 1)
    with pytest.raises(ConfigurationError):
        build_unit("standard", 1, 1, 2)
    with pytest.raises(ConfigurationError):
        build_unit("max_pooler", 2, 2, 3, 4)


def test_clone_is_independent():
    unit = StandardAutoEncoder(2, 2, 1, 2)
    twin = unit.clone()
    twin.encoder.weights += 1
    assert not np.allclose(twin.encoder.weights, unit.encoder.weights)
    assert twin.input is not unit.input


def test_to_real_unit():
    unit = ToRealUnit(1, 1, 3)
    unit.set_input(DataBlock.from_array(np.array([[[1., 0., 1.]]])))
    unit.encode()
    np.testing.assert_array_equal(unit.output_values(), [1., -1., 1.])
    with pytest.raises(UnsupportedOperationError):
        unit.clone()
    with pytest.raises(ConfigurationError):
        ToRealUnit(2, 1, 3)


def test_rbm_units_produce_binary_codes():
    for unit in (BBRBMUnit(2, 2, 1, 5), GBRBMUnit(2, 2, 1, 5)):
        unit.set_input(DataBlock.from_array(np.array([[[1.], [0.]], [[0.], [1.]]])))
        for _ in range(10):
            assert 0 <= unit.train()
        unit.encode()
        assert set(np.unique(unit.output_values())) <= {0., 1.}
        unit.decode()
        assert unit.decoded.shape == (4,)
        with pytest.raises(UnsupportedOperationError):
            unit.back_propagate()


@pytest.mark.parametrize("forward, inverse", [("identity", None), ("dht2d", None), ("dct2d", "dst2d")])
def test_spectral_unit_trains(forward, inverse):
    unit = SpectralAutoEncoder(2, 2, 1, 3, forward_transform=forward, inverse_transform=inverse,
                               learning_rate=0.01)
    unit.set_input(DataBlock.from_array(np.random.uniform(-0.5, 0.5, size=(2, 2, 1))))
    errors = [unit.train() for _ in range(200)]
    assert np.isfinite(errors).all()
    unit.decode()
    assert unit.decoded.shape == (4,)


@pytest.mark.parametrize("transform, scale", [("identity", 1.), ("dct2d", 1.), ("dst2d", 1.), ("dht2d", 4.)])
def test_spectral_error_is_pasted_in_the_spatial_domain(transform, scale):
    unit = SpectralAutoEncoder(2, 2, 1, 3, forward_transform=transform)
    patch = np.random.uniform(-0.5, 0.5, size=(2, 2, 1))
    block = DataBlock.from_array(patch)
    prev_error = DataBlock(2, 2, 1)
    unit.set_input(block)
    unit.set_prev_error(prev_error)
    error = np.array([0.3, -0.2, 0.5])

    def weighted_code(values):
        block.values[...] = values
        unit.encode()
        return float(np.dot(error, unit.output_values()))

    # central differences of error . code with respect to every spatial input
    reference = np.zeros(4)
    for i in range(4):
        step = np.zeros(4)
        step[i] = 1e-2
        reference[i] = (weighted_code(patch + step.reshape(patch.shape))
                        - weighted_code(patch - step.reshape(patch.shape))) / 2e-2

    block.values[...] = patch
    unit.encode()
    unit.error_values()[:] = error
    unit.back_propagate()
    # orthonormal transforms give the exact gradient, the unnormalized Hartley transform 1/N of it
    np.testing.assert_allclose(prev_error.values.reshape(-1) * scale, reference, rtol=2e-2, atol=2e-3)
