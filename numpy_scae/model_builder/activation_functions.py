"""
activation_functions.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: Element-wise activation functions (Linear, SoftSign, Sigmoid, leaky ReLU) used by the
             computational layers. Each class provides forward and backward passes plus an inverse
             used when a decoder is fitted in closed form.
Published: 10-19-2026
"""

from numpy_scae.utils import backend

class Activation_Linear:
    """
    Linear (identity) activation function.

    forward: stores inputs and outputs same values.
    backward: gradient w.r.t. inputs is passed through unchanged.
    """
    is_linear = True

    def forward(self, inputs, training=False):
        """
        Forward pass for linear activation.

        Args:
            inputs (backend.np.ndarray): Weighted sums, any shape.
            training (bool): Ignored, present for API consistency.
        """
        # Store inputs and set output equal to inputs
        self.inputs = inputs
        self.output = inputs
        return self.output

    def backward(self, dvalues):
        # Derivative is 1. 1 * dvalues = dvalues - the chain rule
        self.dinputs = dvalues.copy()
        return self.dinputs

    def inverse(self, outputs):
        return outputs

class Activation_SoftSign:
    """
    Soft-sign squashing function s / (1 + |s|), bounded in (-1, 1).

    Its derivative 1 / (1 + |s|)^2 is taken from the stored weighted sums.
    """
    is_linear = False

    def forward(self, inputs, training=False):
        self.inputs = inputs
        self.output = inputs / (1 + backend.np.abs(inputs))
        return self.output

    def backward(self, dvalues):
        bottom = 1 + backend.np.abs(self.inputs)
        self.dinputs = dvalues / (bottom * bottom)
        return self.dinputs

    def inverse(self, outputs, bound=0.99):
        """
        Inverse of the soft-sign, y / (1 - |y|).

        Args:
            outputs (ndarray): Target activations.
            bound (float): Targets are clipped into [-bound, bound] first, the function
                never reaches +/-1.
        """
        outputs = backend.np.clip(outputs, -bound, bound)
        return outputs / (1 - backend.np.abs(outputs))

class Activation_Sigmoid:
    """
    Sigmoid activation.

    forward: 1 / (1 + exp(-x)).
    backward: derivative is output * (1 - output).
    """
    is_linear = False

    def forward(self, inputs, training=False):
        self.inputs = inputs
        self.output = 1 / (1 + backend.np.exp(-inputs))
        return self.output

    def backward(self, dvalues):
        self.dinputs = dvalues * (1 - self.output) * self.output
        return self.dinputs

    def inverse(self, outputs, bound=1e-3):
        outputs = backend.np.clip(outputs, bound, 1 - bound)
        return backend.np.log(outputs / (1 - outputs))

class Activation_ReLU:
    """
    Rectified Linear Unit (ReLU) activation.

    The forward pass is a plain max(0, x); the backward pass lets a small fraction
    (negative_slope) of the gradient through where the input was <= 0 so dead units
    can recover.
    """
    is_linear = False

    def __init__(self, negative_slope=1e-3):
        self.negative_slope = negative_slope

    def forward(self, inputs, training=False):
        self.inputs = inputs
        self.output = backend.np.maximum(0, inputs)  # ReLU activation function
        return self.output

    def backward(self, dvalues):
        self.dinputs = dvalues * backend.np.where(self.inputs > 0, 1., self.negative_slope)
        return self.dinputs

    def inverse(self, outputs):
        # only the positive half is invertible
        return backend.np.maximum(0, outputs)
