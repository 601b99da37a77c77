"""
optimizers.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: Gradient-descent step applied by every trainable layer. Each layer owns its own
             optimizer instance so that learning rates can be set per unit.
Published: 10-19-2026
"""

from numpy_scae.utils import backend

class Optimizer_SGD:
    """
    Stochastic Gradient Descent (SGD) optimizer with weight decay and optional momentum.

    Attributes:
        learning_rate (float): Base learning rate.
        decay (float): Weight decay factor, weights are multiplied by (1 - decay) on every step.
        momentum (float): Momentum factor (0 for vanilla SGD).
    """
    def __init__(self, learning_rate=1e-3, decay=0., momentum=0.):
        """
        Initialize SGD optimizer.

        Args:
            learning_rate (float): Initial learning rate.
            decay (float): Weight decay coefficient.
            momentum (float): Momentum coefficient (0 disables momentum).
        """
        self.learning_rate = learning_rate
        self.current_learning_rate = learning_rate
        self.decay = decay
        self.iterations = 0
        self.momentum = momentum

    def set_learning_rate(self, learning_rate):
        self.learning_rate = learning_rate
        self.current_learning_rate = learning_rate

    # update parameters
    def update_params(self, layer, mask=None):
        """
        Apply parameter updates to a single layer from its accumulated gradients.

        Args:
            layer: Layer exposing weights, biases, dweights and dbiases.
            mask (ndarray): Optional per-output 0/1 mask; masked outputs keep their parameters.
        """
        # if we use momentum
        if self.momentum:
            # if layer does not contain momentum arrays, create them filled with zeros
            if getattr(layer, 'weight_momentums', None) is None or layer.weight_momentums.shape != layer.weights.shape:
                layer.weight_momentums = backend.np.zeros_like(layer.weights)
                layer.bias_momentums = backend.np.zeros_like(layer.biases)

            # build updates with momentum - previous updates times retain factor plus current gradients
            weight_updates = self.momentum * layer.weight_momentums - self.current_learning_rate * layer.dweights
            layer.weight_momentums = weight_updates
            bias_updates = self.momentum * layer.bias_momentums - self.current_learning_rate * layer.dbiases
            layer.bias_momentums = bias_updates

        else: # vanilla SGD updates without momentum
            weight_updates = -self.current_learning_rate * layer.dweights
            bias_updates = -self.current_learning_rate * layer.dbiases

        # (1 - decay) * w - lr * grad
        if self.decay:
            weight_updates = weight_updates - self.decay * layer.weights
            bias_updates = bias_updates - self.decay * layer.biases

        if mask is not None:
            weight_updates = weight_updates * mask
            bias_updates = bias_updates * mask

        layer.weights += weight_updates.astype(layer.weights.dtype, copy=False)
        layer.biases += bias_updates.astype(layer.biases.dtype, copy=False)
        self.iterations += 1
