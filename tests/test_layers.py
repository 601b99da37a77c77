import numpy as np
import pytest

from numpy_scae.model_builder.layers import (LayerKind, Layer_Linear, Layer_Neural, Layer_Sigmoid, Layer_ReLU,
                                             Layer_SoftSign, build_layer)
from numpy_scae.model_builder.lr_schedules import build_schedule
from numpy_scae.utils.exceptions import ConfigurationError
from numpy_scae.utils.gradient_check import gradient_check_layer


def _uniform(n):
    # away from 0 so that |s| kinks and tiny gradients do not spoil finite differences
    return np.random.uniform(0.5, 1.5, size=n).astype(np.float32)


@pytest.mark.parametrize("layer_class, options", [
    (Layer_Linear, {}),
    (Layer_Neural, {}),
    (Layer_Sigmoid, {}),
    (Layer_ReLU, {"activation_cost": 0.}),
])
def test_analytical_gradients_match_finite_differences(layer_class, options):
    layer = layer_class(6, 4, **options)
    worst = gradient_check_layer(layer, _uniform(6), _uniform(4), epsilon=1e-2, n_checks=6)
    assert worst < 5e-2


def test_gradients_accumulate_until_learn():
    layer = Layer_Linear(3, 2, learning_rate=0.1)
    inputs = np.array([1., 2., 3.], dtype=np.float32)
    layer.forward(inputs)
    layer.backward(np.array([1., -1.], dtype=np.float32))
    layer.forward(inputs)
    layer.backward(np.array([1., -1.], dtype=np.float32))
    np.testing.assert_allclose(layer.dweights, 2 * np.outer(inputs, [1., -1.]))
    layer.learn()
    assert not layer.dweights.any()


def test_sgd_update_rule():
    weights = np.array([[0.5, -0.25], [1., 0.]], dtype=np.float32)
    layer = Layer_Linear(2, 2, weights=weights, biases=[0.1, 0.2], learning_rate=0.5)
    inputs = np.array([1., 2.], dtype=np.float32)
    layer.forward(inputs)
    layer.set_expected(slice(None), np.array([0., 0.], dtype=np.float32))
    error = layer.output.copy()
    layer.back_propagate()
    layer.learn()
    np.testing.assert_allclose(layer.weights, weights - 0.5 * np.outer(inputs, error), rtol=1e-5)
    np.testing.assert_allclose(layer.biases, np.array([0.1, 0.2]) - 0.5 * error, rtol=1e-5)


def test_back_propagate_reports_mean_absolute_error():
    layer = Layer_Linear(2, 2, weights=np.eye(2))
    layer.forward(np.array([1., 3.]))
    layer.set_expected(0, 0.)
    layer.set_expected(1, 0.)
    assert layer.back_propagate() == pytest.approx(2.)
    np.testing.assert_allclose(layer.dinputs, [1., 3.])


def test_feature_deletion_reindexes_outputs_and_inputs():
    layer = Layer_Neural(3, 5)
    expected = np.delete(layer.weights, 2, axis=1)
    smaller = layer.delete_output(2)
    assert (smaller.n_inputs, smaller.n_outputs) == (3, 4)
    np.testing.assert_array_equal(smaller.weights, expected)
    np.testing.assert_array_equal(smaller.biases, np.delete(layer.biases, 2))

    narrower = layer.delete_input(0)
    np.testing.assert_array_equal(narrower.weights, layer.weights[1:])
    assert narrower.get_learning_rate() == layer.get_learning_rate()


def test_last_output_cannot_be_deleted():
    with pytest.raises(ConfigurationError):
        Layer_Linear(3, 1).delete_output(0)
    with pytest.raises(ConfigurationError):
        Layer_Linear(3, 2).delete_output(2)


def test_wrong_parameter_shapes_are_rejected():
    layer = Layer_Linear(3, 2)
    with pytest.raises(ConfigurationError):
        layer.set_weights(np.zeros((2, 3)))
    with pytest.raises(ConfigurationError):
        layer.set_biases(np.zeros(3))
    with pytest.raises(ConfigurationError):
        build_layer("linear", 0, 2)


def test_build_layer_accepts_tags():
    assert isinstance(build_layer("NeuralLayer", 2, 2), Layer_Neural)
    assert isinstance(build_layer(LayerKind.RELU, 2, 2), Layer_ReLU)
    with pytest.raises(ConfigurationError):
        build_layer("tanh", 2, 2)


def test_clone_is_independent():
    layer = Layer_Sigmoid(4, 3, learning_rate=0.2)
    twin = layer.clone()
    twin.weights += 1
    assert not np.allclose(twin.weights, layer.weights)
    assert twin.get_learning_rate() == 0.2


def test_softsign_dropout_keeps_some_outputs():
    layer = Layer_SoftSign(4, 10, dropout_rate=0.3)
    assert int(layer.active.sum()) == 7
    assert layer.dropout_rate == pytest.approx(0.3)
    layer.start_training()
    output = layer.forward(_uniform(4))
    assert np.count_nonzero(output) <= 7
    layer.stop_training()
    assert np.count_nonzero(layer.forward(_uniform(4))) == 10


def test_linear_layer_renormalizes_large_weights():
    layer = Layer_Linear(2, 2, weights=np.full((2, 2), 10.))
    layer.learn()
    assert np.sqrt(np.sum(layer.weights ** 2)) == pytest.approx(1., rel=1e-5)


@pytest.mark.parametrize("kind", ["constant", "exponential", "step"])
def test_learning_rate_schedules_start_at_initial_rate(kind):
    schedule = build_schedule(kind, 1e-2, 1e-4, 20)
    assert schedule(0) == pytest.approx(1e-2)
    assert schedule(19) <= 1e-2


def test_gradients_agree_with_torch_autograd():
    torch = pytest.importorskip("torch")
    layer = Layer_Neural(5, 3)
    inputs, target = _uniform(5), _uniform(3)
    layer.forward(inputs)
    dinputs = layer.backward(target)

    x = torch.tensor(inputs, requires_grad=True)
    w = torch.tensor(layer.weights, requires_grad=True)
    b = torch.tensor(layer.biases, requires_grad=True)
    s = x @ w + b
    loss = (torch.nn.functional.softsign(s) * torch.tensor(target)).sum()
    loss.backward()
    np.testing.assert_allclose(layer.dweights, w.grad.numpy(), rtol=1e-4, atol=1e-6)
    np.testing.assert_allclose(layer.dbiases, b.grad.numpy(), rtol=1e-4, atol=1e-6)
    np.testing.assert_allclose(dinputs, x.grad.numpy(), rtol=1e-4, atol=1e-6)
