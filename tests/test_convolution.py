import numpy as np
import pytest

from numpy_scae.convolution import Convolution, SharedConvolution, UntiedConvolution, UpsamplingConvolution
from numpy_scae.scae_model import SCAE
from numpy_scae.units.pooling import MaxPooler
from numpy_scae.units.standard import StandardAutoEncoder
from numpy_scae.units.stochastic import BBRBMUnit, ToRealUnit
from numpy_scae.utils.data_block import DataBlock
from numpy_scae.utils.exceptions import ConfigurationError, UnsupportedOperationError


def test_shared_grid_on_uniform_input_gives_identical_cells():
    layer = SharedConvolution(StandardAutoEncoder(2, 2, 1, 3), 3, 3)
    layer.set_input(DataBlock.from_array(np.full((4, 4, 1), 0.4)))
    layer.compute()
    reference = layer.output.get_values(0, 0).copy()
    for x in range(3):
        for y in range(3):
            np.testing.assert_array_equal(layer.output.get_values(x, y), reference)


def test_shared_grid_geometry():
    layer = SharedConvolution(StandardAutoEncoder(3, 2, 2, 4), 2, 5, offset_x=2, offset_y=1)
    assert (layer.input_width, layer.input_height, layer.input_depth) == (5, 6, 2)
    assert layer.output.shape == (2, 5, 4)
    assert layer.error.shape == (2, 5, 4)
    with pytest.raises(ConfigurationError):
        layer.set_input(DataBlock(5, 5, 2))


def test_injected_errors_are_divided_by_the_grid_size():
    layer = SharedConvolution(StandardAutoEncoder(1, 1, 1, 2), 2, 3)
    layer.add_error(1, 2, 0, 3.)
    assert layer.error.get_value(0, 1, 2) == pytest.approx(0.5)

    untied = UntiedConvolution([[StandardAutoEncoder(1, 1, 1, 2)]])
    untied.add_error(0, 0, 1, 3.)
    assert untied.error.get_value(1, 0, 0) == pytest.approx(3.)


def test_shared_back_propagation_sums_every_position():
    unit = StandardAutoEncoder(2, 2, 1, 2)
    layer = SharedConvolution(unit, 2, 2)
    layer.set_input(DataBlock.from_array(np.random.uniform(-1, 1, size=(3, 3, 1))))
    prev_error = DataBlock(3, 3, 1)
    layer.set_prev_error(prev_error)
    layer.compute()
    layer.error.values[...] = 1.
    layer.back_propagate()
    # four overlapping patches meet in the centre
    assert prev_error.get_weight(1, 1) == 4
    assert prev_error.get_weight(0, 0) == 1
    assert unit.encoder.dweights.any()
    weights = unit.encoder.weights.copy()
    layer.learn()
    assert not np.array_equal(weights, unit.encoder.weights)
    assert not unit.encoder.dweights.any()


def test_deconvolve_preserves_outputs():
    shared = SharedConvolution(StandardAutoEncoder(2, 2, 2, 3), 3, 2)
    image = DataBlock.from_array(np.random.uniform(-1, 1, size=(4, 3, 2)))
    shared.set_input(image)
    shared.compute()
    before = shared.output.values.copy()
    output, error = shared.output, shared.error

    untied = shared.deconvolve()
    assert isinstance(untied, UntiedConvolution)
    assert shared.unit is None
    assert untied.output is output and untied.error is error and untied.input is image
    untied.output.clear()
    untied.compute()
    np.testing.assert_array_equal(untied.output.values, before)
    assert untied.get_unit(0, 0) is not untied.get_unit(2, 1)


def test_untied_units_learn_independently():
    shared = SharedConvolution(StandardAutoEncoder(1, 1, 1, 1), 2, 1)
    shared.set_input(DataBlock.from_array(np.array([[[0.5]], [[-0.5]]])))
    untied = shared.deconvolve()
    untied.compute()
    untied.set_expected(0, 0, 0, 1.)
    untied.back_propagate()
    untied.learn()
    first, second = untied.get_unit(0, 0), untied.get_unit(1, 0)
    assert not np.array_equal(first.encoder.weights, second.encoder.weights)


def test_stacked_layers_read_the_whole_volume():
    below = SharedConvolution(StandardAutoEncoder(2, 2, 1, 3), 2, 2)
    dense = SharedConvolution.stacked_on(below, nb_neurons=4)
    assert (dense.input_width, dense.input_height, dense.input_depth) == (2, 2, 3)
    assert dense.output.shape == (1, 1, 4)
    untied = UntiedConvolution.stacked_on(below, out_width=2, out_height=1, out_depth=2)
    assert untied.output.shape == (2, 1, 2)
    assert len(untied.units()) == 2


def test_upsampling_expands_every_cell():
    layer = UpsamplingConvolution(2, 3, 2, 1, 2, 2)
    assert layer.output.shape == (4, 6, 1)
    layer.set_input(DataBlock.from_array(np.random.uniform(-1, 1, size=(2, 3, 2))))
    layer.compute()
    assert np.count_nonzero(layer.output.values) == 24
    prev_error = DataBlock(2, 3, 2)
    layer.set_prev_error(prev_error)
    layer.error.values[...] = 1.
    assert layer.back_propagate() == pytest.approx(1.)
    assert prev_error.values.any()


def test_upsampling_resize_needs_a_multiple_of_the_patch():
    layer = UpsamplingConvolution(1, 1, 2, 1, 2, 3)
    with pytest.raises(ConfigurationError):
        layer.resize(5, 6)
    with pytest.raises(ConfigurationError):
        layer.resize(4, 7)
    layer.resize(4, 9)
    assert (layer.input_width, layer.input_height) == (2, 3)
    assert layer.output.shape == (4, 9, 1)


def test_convolution_stage_rebuilds_its_input():
    stage = Convolution(StandardAutoEncoder(2, 2, 1, 2), 2, 2, 1, 1)
    image = DataBlock.from_array(np.random.uniform(-1, 1, size=(3, 3, 1)))
    stage.set_input(image)
    stage.encode()
    stage.rebuild_input()
    np.testing.assert_array_equal(image.weights, np.ones((3, 3)))


def test_convolution_deletes_features_only_when_not_widened():
    stage = Convolution(StandardAutoEncoder(1, 1, 2, 3), 1, 1, 1, 1)
    stage.delete_features(0)
    assert stage.output.depth == 2
    stage.resize(2, 2)
    with pytest.raises(UnsupportedOperationError):
        stage.delete_features(0)


def test_scae_widens_lower_stages():
    scae = SCAE(StandardAutoEncoder(2, 2, 1, 4))
    scae.add_layer(StandardAutoEncoder(3, 3, 4, 5))
    assert scae.base.output.shape == (3, 3, 4)
    assert (scae.input_width, scae.input_height) == (4, 4)
    assert scae.output_depth == 5
    scae.add_layer(MaxPooler(1, 1, 5), 2, 2)
    assert (scae.input_width, scae.input_height) == (4, 4)
    assert str(scae).startswith("(")


def test_scae_checks_compatibility():
    scae = SCAE(StandardAutoEncoder(1, 1, 2, 3))
    with pytest.raises(ConfigurationError):
        scae.add_layer(StandardAutoEncoder(1, 1, 4, 2))
    with pytest.raises(ConfigurationError):
        scae.add_layer(ToRealUnit(1, 1, 3))
    binary = SCAE(BBRBMUnit(1, 1, 2, 3))
    binary.add_layer(ToRealUnit(1, 1, 3))
    assert binary.output_depth == 3


def test_scae_forward_and_backward():
    scae = SCAE(StandardAutoEncoder(2, 2, 1, 3))
    scae.add_layer(StandardAutoEncoder(2, 2, 3, 2))
    image = DataBlock.from_array(np.random.uniform(-1, 1, size=(6, 6, 1)))
    scae.center_input(image, 3, 3)
    assert (scae.base.input_x, scae.base.input_y) == (2, 2)
    features = scae.forward()
    assert features.shape == (2,)
    assert scae.central_features().shape == (5,)
    assert 0 <= scae.highest_output_index() < 2
    scae.backward()
    assert image.weights[2:5, 2:5].all()
    assert not image.weights[0, 0]


def test_scae_trains_only_the_top_stage():
    scae = SCAE(StandardAutoEncoder(1, 1, 2, 2))
    scae.add_layer(StandardAutoEncoder(1, 1, 2, 2))
    base_weights = scae.base.base.encoder.weights.copy()
    scae.set_input(DataBlock.from_array(np.random.uniform(-1, 1, size=(1, 1, 2))))
    for _ in range(5):
        scae.train()
    np.testing.assert_array_equal(scae.base.base.encoder.weights, base_weights)


def test_extract_features_returns_a_mosaic():
    scae = SCAE(StandardAutoEncoder(2, 2, 1, 5))
    bound = scae.base.input
    mosaic = scae.extract_features()
    # 5 features on a 3x2 grid of 2x2 patches separated by one cell
    assert mosaic.shape == (8, 5, 1)
    assert scae.base.input is bound


def test_scae_save_and_load(tmp_path):
    scae = SCAE(StandardAutoEncoder(2, 2, 1, 3))
    scae.add_layer(StandardAutoEncoder(1, 1, 3, 2))
    image = DataBlock.from_array(np.random.uniform(-1, 1, size=(2, 2, 1)))
    scae.set_input(image)
    expected = scae.forward().copy()

    path = tmp_path / "models" / "scae.model"
    scae.save(str(path))
    loaded = SCAE.load(str(path))
    loaded.set_input(image)
    np.testing.assert_array_equal(loaded.forward(), expected)
    assert str(loaded) == str(scae)
