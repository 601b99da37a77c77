"""
gradient_check.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: Gradient checking utilities for the computational layers, comparing the analytical
             gradients accumulated by backward() with finite-difference approximations of a dummy
             loss sum(output * target).
Published: 10-19-2026
"""

import logging

from numpy_scae.utils import backend

logger = logging.getLogger(__name__)


def _loss(layer, inputs, target):
    output = layer.forward(inputs, training=False)
    return float(backend.np.sum(output.astype(backend.np.float64) * target))

def _relative_error(numerical, analytical):
    # layers compute in float32, tiny gradients are compared on an absolute scale
    return abs(numerical - analytical) / max(1e-2, abs(numerical) + abs(analytical))

def gradient_check_layer(layer, inputs, target, epsilon=1e-2, n_checks=5):
    """
    Perform a gradient check on a layer using central finite differences.

    A few randomly chosen weights, biases and inputs are perturbed and the numerical derivative
    of sum(output * target) is compared with the analytical one.

    Args:
        layer (Layer): Layer to check; its accumulated gradient is cleared.
        inputs (ndarray): Input vector of length n_inputs.
        target (ndarray): Output-sized vector, i.e. d(loss)/d(output).
        epsilon (float): Perturbation size.
        n_checks (int): Number of entries checked per parameter kind.

    Returns:
        float: Largest relative error found.
    """
    # Forward and backward pass: d(loss)/d(output) = target
    layer.clear_gradient()
    layer.forward(inputs, training=False)
    dinputs = backend.to_numpy(layer.backward(target)).copy()
    dweights = backend.to_numpy(layer.dweights).copy()
    dbiases = backend.to_numpy(layer.dbiases).copy()

    worst = 0.
    for _ in range(n_checks):
        i, j = backend.np.random.randint(layer.n_inputs), backend.np.random.randint(layer.n_outputs)
        i, j = int(i), int(j)
        checks = (
            ("weight", layer.weights, (i, j), dweights[i, j]),
            ("bias", layer.biases, (j,), dbiases[j]),
        )
        for name, array, index, analytical in checks:
            orig_value = float(array[index])
            array[index] = orig_value + epsilon
            loss_plus = _loss(layer, inputs, target)
            array[index] = orig_value - epsilon
            loss_minus = _loss(layer, inputs, target)
            array[index] = orig_value
            numerical = (loss_plus - loss_minus) / (2 * epsilon)
            rel_error = _relative_error(numerical, float(analytical))
            logger.debug(f"{name}{index}: numerical {numerical:.6f} analytical {float(analytical):.6f} "
                         f"relative error {rel_error:.3e}")
            worst = max(worst, rel_error)

        # Input gradient
        shifted = backend.np.array(inputs, dtype=backend.np.float32)
        shifted[i] += epsilon
        loss_plus = _loss(layer, shifted, target)
        shifted[i] -= 2 * epsilon
        loss_minus = _loss(layer, shifted, target)
        numerical = (loss_plus - loss_minus) / (2 * epsilon)
        worst = max(worst, _relative_error(numerical, float(dinputs[i])))

    logger.info(f"Gradient check of {layer}: largest relative error {worst:.3e}")
    return worst
