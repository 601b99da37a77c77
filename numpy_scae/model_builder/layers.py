"""
layers.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: Computational layers used as encoders and decoders of the auto-encoder units: Linear,
             Neural (soft-sign), SoftSign with dropout, Sigmoid and ReLU. Every layer maps one input
             vector to one output vector, accumulates gradients over several backward passes and
             applies them with learn(). Feature deletion returns a new, smaller layer.
Published: 10-19-2026
"""

import logging
from enum import Enum

from numpy_scae.utils import backend
from numpy_scae.utils.exceptions import ConfigurationError
from numpy_scae.utils.registry import parse_kind
from .activation_functions import Activation_Linear, Activation_SoftSign, Activation_Sigmoid, Activation_ReLU
from .optimizers import Optimizer_SGD

logger = logging.getLogger(__name__)


class LayerKind(Enum):
    """Closed set of layer types a unit can be built with."""
    LINEAR = "linear"
    NEURAL = "neural"
    SOFTSIGN = "softsign"
    SIGMOID = "sigmoid"
    RELU = "relu"

    @classmethod
    def parse(cls, value):
        return parse_kind(cls, value, aliases=_LAYER_ALIASES)


_LAYER_ALIASES = {
    "LinearLayer": LayerKind.LINEAR,
    "NeuralLayer": LayerKind.NEURAL,
    "SigmoidLayer": LayerKind.SIGMOID,
    "soft_sign": LayerKind.SOFTSIGN,
}


# Base layer
class Layer:
    """
    Fully connected layer: output = activation(inputs @ weights + biases).

    Weights are stored as (n_inputs, n_outputs). Gradients accumulate in dweights/dbiases
    until learn() is called, which lets a shared-weight convolution sum the contributions of
    all its grid positions into one update.

    Attributes:
        weights (ndarray): (n_inputs, n_outputs) weight matrix.
        biases (ndarray): (n_outputs,) bias vector.
        error (ndarray): Output error buffer filled by set_expected().
        dinputs (ndarray): Error w.r.t. the inputs written by the last backward pass.
    """
    kind = LayerKind.LINEAR
    activation_class = Activation_Linear
    default_decay = 0.

    def __init__(self, n_inputs, n_outputs, weights=None, biases=None, learning_rate=1e-3, decay=None, momentum=0.):
        """
        Initialize weights and biases.

        Args:
            n_inputs (int): Number of input values.
            n_outputs (int): Number of output values.
            weights (ndarray): Optional (n_inputs, n_outputs) initial weights.
            biases (ndarray): Optional (n_outputs,) initial biases.
            learning_rate (float): Per-layer learning rate.
            decay (float): Weight decay, defaults to the layer type's own default.
            momentum (float): SGD momentum.
        """
        if n_inputs <= 0 or n_outputs <= 0:
            raise ConfigurationError(f"{type(self).__name__} needs positive sizes, got {n_inputs} -> {n_outputs}")
        self.n_inputs = n_inputs
        self.n_outputs = n_outputs

        if weights is None:
            weights = (1 - 2 * backend.np.random.rand(n_inputs, n_outputs)) / backend.np.sqrt(n_inputs)
        self.set_weights(weights)
        self.set_biases(backend.np.zeros(n_outputs) if biases is None else biases)

        self.activation = self.activation_class()
        self.optimizer = Optimizer_SGD(learning_rate, decay=self.default_decay if decay is None else decay, momentum=momentum)
        self.training = False

        self.inputs = backend.np.zeros(n_inputs, dtype=backend.np.float32)
        self.wsum = backend.np.zeros(n_outputs, dtype=backend.np.float32)
        self.output = backend.np.zeros(n_outputs, dtype=backend.np.float32)
        self.error = backend.np.zeros(n_outputs, dtype=backend.np.float32)
        self.dinputs = backend.np.zeros(n_inputs, dtype=backend.np.float32)
        self.clear_gradient()

    # Parameters
    def set_weights(self, weights):
        """
        Replace the weight matrix.

        Raises:
            ConfigurationError: If the shape is not (n_inputs, n_outputs).
        """
        weights = backend.np.array(weights, dtype=backend.np.float32)
        if weights.shape != (self.n_inputs, self.n_outputs):
            raise ConfigurationError(
                f"weight matrix of {type(self).__name__} must be {(self.n_inputs, self.n_outputs)}, got {weights.shape}")
        self.weights = weights

    def set_biases(self, biases):
        biases = backend.np.array(biases, dtype=backend.np.float32).reshape(-1)
        if biases.shape != (self.n_outputs,):
            raise ConfigurationError(
                f"bias vector of {type(self).__name__} must have {self.n_outputs} values, got {biases.shape[0]}")
        self.biases = biases

    def set_parameters(self, weights, biases):
        self.set_weights(weights)
        self.set_biases(biases)

    def get_learning_rate(self):
        return self.optimizer.learning_rate

    def set_learning_rate(self, learning_rate):
        self.optimizer.set_learning_rate(learning_rate)

    def start_training(self):
        self.training = True

    def stop_training(self):
        self.training = False

    # Forward pass
    def weighted_sum(self, inputs):
        return backend.np.dot(inputs, self.weights) + self.biases

    def forward(self, inputs, training=None):
        """
        Forward pass.

        Args:
            inputs (ndarray): Input vector of length n_inputs.
            training (bool): Overrides the layer's training flag when given.

        Returns:
            ndarray: Output vector of length n_outputs.
        """
        self.inputs = backend.np.array(inputs, dtype=backend.np.float32).reshape(-1)
        self.wsum = self.weighted_sum(self.inputs)
        self.output = self.activation.forward(self.wsum, self.training if training is None else training)
        return self.output

    def compute(self, inputs):
        return self.forward(inputs)

    # Errors
    def set_expected(self, index, value):
        """Record one target component: error[index] += output[index] - value."""
        self.error[index] += self.output[index] - value

    def add_error(self, index, value):
        self.error[index] += value

    def clear_error(self):
        self.error.fill(0)

    def clear_previous_error(self):
        self.dinputs.fill(0)

    def clear_gradient(self):
        self.dweights = backend.np.zeros((self.n_inputs, self.n_outputs), dtype=backend.np.float32)
        self.dbiases = backend.np.zeros(self.n_outputs, dtype=backend.np.float32)

    # backward pass
    def backward(self, dvalues):
        """
        Accumulate gradients for the last forward pass.

        Args:
            dvalues (ndarray): Error w.r.t. the layer outputs.

        Returns:
            ndarray: Error w.r.t. the layer inputs (also stored in dinputs).
        """
        fact = self.activation.backward(dvalues)
        # gradients on parameters, summed until learn()
        self.dweights += backend.np.outer(self.inputs, fact)
        self.dbiases += fact
        # gradient on values
        self.dinputs = backend.np.dot(self.weights, fact)
        return self.dinputs

    def back_propagate(self, error=None):
        """
        Back-propagate an output error.

        Args:
            error (ndarray): Error w.r.t. the outputs; defaults to the layer's own error buffer.

        Returns:
            float: Mean absolute output error.
        """
        if error is None:
            error = self.error
        error = backend.np.asarray(error, dtype=backend.np.float32).reshape(-1)
        self.backward(error)
        return float(backend.np.mean(backend.np.abs(error)))

    def learn(self):
        """Apply one gradient-descent step and reset the accumulated gradient."""
        self.optimizer.update_params(self)
        self.clear_gradient()

    # Structure
    def _options(self):
        return {
            "learning_rate": self.optimizer.learning_rate,
            "decay": self.optimizer.decay,
            "momentum": self.optimizer.momentum,
        }

    def _rebuild(self, weights, biases):
        layer = type(self)(weights.shape[0], weights.shape[1], weights=weights, biases=biases, **self._options())
        layer.training = self.training
        return layer

    def delete_output(self, index):
        """
        Return a copy of this layer without output `index`; outputs above it shift down by one.
        """
        if not 0 <= index < self.n_outputs:
            raise ConfigurationError(f"cannot delete output {index} of a layer with {self.n_outputs} outputs")
        if self.n_outputs == 1:
            raise ConfigurationError("cannot delete the last output of a layer")
        return self._rebuild(backend.np.delete(self.weights, index, axis=1), backend.np.delete(self.biases, index))

    def delete_input(self, index):
        """Return a copy of this layer without input `index`; inputs above it shift down by one."""
        if not 0 <= index < self.n_inputs:
            raise ConfigurationError(f"cannot delete input {index} of a layer with {self.n_inputs} inputs")
        if self.n_inputs == 1:
            raise ConfigurationError("cannot delete the last input of a layer")
        return self._rebuild(backend.np.delete(self.weights, index, axis=0), self.biases.copy())

    def clone(self):
        """Deep copy of weights, biases and hyper-parameters; buffers start empty."""
        return self._rebuild(self.weights.copy(), self.biases.copy())

    def __repr__(self):
        return f"{type(self).__name__}({self.n_inputs} -> {self.n_outputs})"


class Layer_Linear(Layer):
    """
    Identity activation, used by the PCA and LDA seeded units.

    When a weight grows above max_weight after an update, the whole matrix is divided by
    its Frobenius norm.
    """
    kind = LayerKind.LINEAR
    activation_class = Activation_Linear
    max_weight = 5.

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.normalization_count = 0

    def learn(self):
        super().learn()
        if backend.np.any(backend.np.abs(self.weights) > self.max_weight):
            self.normalization_count += 1
            if self.normalization_count % 100000 == 0:
                logger.warning(f"Weights are growing too big, normalizing for the {self.normalization_count}th time")
            self.weights /= backend.np.sqrt(backend.np.sum(self.weights * self.weights))


class Layer_Neural(Layer):
    """Soft-sign layer, s / (1 + |s|)."""
    kind = LayerKind.NEURAL
    activation_class = Activation_SoftSign


class Layer_Sigmoid(Layer):
    kind = LayerKind.SIGMOID
    activation_class = Activation_Sigmoid


class Layer_ReLU(Layer):
    """
    ReLU layer with weight decay and a small activation cost.

    The activation cost adds activation_cost * output to the error before back-propagation,
    which pushes towards sparse activations.
    """
    kind = LayerKind.RELU
    activation_class = Activation_ReLU
    default_decay = 1e-3

    def __init__(self, *args, activation_cost=1e-3, **kwargs):
        super().__init__(*args, **kwargs)
        self.activation_cost = activation_cost

    def _options(self):
        options = super()._options()
        options["activation_cost"] = self.activation_cost
        return options

    def backward(self, dvalues):
        return super().backward(dvalues + self.activation_cost * self.output)


class Layer_SoftSign(Layer):
    """
    Soft-sign layer with dropout.

    While training only the active outputs are computed and updated; the set of active
    outputs is reshuffled after every learn(). Outside of training all outputs are computed
    and the weighted sums are scaled by (1 - dropout_rate).
    """
    kind = LayerKind.SOFTSIGN
    activation_class = Activation_SoftSign

    def __init__(self, *args, dropout_rate=0.5, **kwargs):
        super().__init__(*args, **kwargs)
        self.set_dropout_rate(dropout_rate)

    def _options(self):
        options = super()._options()
        options["dropout_rate"] = self.dropout_rate
        return options

    def set_dropout_rate(self, rate):
        """
        Set the dropout rate; at least one output is always kept.

        Returns:
            float: Effective rate after rounding to a whole number of outputs.
        """
        assert 0 <= rate < 1, f"dropout rate must be in [0, 1), got {rate}"
        nb_kept = max(1, int(round(self.n_outputs * (1 - rate))))
        self.active = backend.np.arange(self.n_outputs) < nb_kept
        self.dropout_rate = 1. - nb_kept / self.n_outputs
        return self.dropout_rate

    def weighted_sum(self, inputs):
        wsum = super().weighted_sum(inputs)
        if self.training:
            return wsum * self.active
        return wsum * (1. - self.dropout_rate)

    def backward(self, dvalues):
        return super().backward(dvalues * self.active)

    def learn(self):
        self.optimizer.update_params(self, mask=self.active.astype(self.weights.dtype))
        self.clear_gradient()
        self.active = self.active[backend.np.random.permutation(self.n_outputs)]


_LAYER_CLASSES = {
    LayerKind.LINEAR: Layer_Linear,
    LayerKind.NEURAL: Layer_Neural,
    LayerKind.SOFTSIGN: Layer_SoftSign,
    LayerKind.SIGMOID: Layer_Sigmoid,
    LayerKind.RELU: Layer_ReLU,
}

def build_layer(kind, n_inputs, n_outputs, weights=None, biases=None, **options):
    """
    Create a layer from a kind tag.

    Args:
        kind (LayerKind or str): Layer type.
        n_inputs (int): Input size.
        n_outputs (int): Output size.
        weights, biases (ndarray): Optional initial parameters.
        **options: Extra keyword arguments of the layer class (learning_rate, dropout_rate, ...).

    Raises:
        ConfigurationError: On unknown kinds or inconsistent parameter shapes.
    """
    return _LAYER_CLASSES[LayerKind.parse(kind)](n_inputs, n_outputs, weights=weights, biases=biases, **options)
