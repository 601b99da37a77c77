"""
loss_functions.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: Loss bookkeeping for the training drivers. The engine itself reports a mean absolute
             error from every train()/back_propagate() call; these classes accumulate those values
             (or compute them from outputs and targets) over an epoch.
Published: 10-19-2026
"""

from numpy_scae.utils import backend

# Common loss class
class Loss:
    """
    Base loss class providing accumulation logic.

    Methods:
        calculate: compute mean loss of a batch of outputs and targets and accumulate it.
        record: accumulate losses already computed by the engine.
        calculate_accumulated: mean loss over everything since new_pass().
        new_pass: reset accumulation counters.
    """
    def __init__(self):
        self.new_pass()

    def calculate(self, output, y):
        """
        Args:
            output (ndarray): Network outputs, shape (N, D) or (D,).
            y (ndarray): Targets with the same shape.

        Returns:
            float: Mean loss of the batch.
        """
        sample_losses = backend.np.atleast_1d(self.forward(backend.np.atleast_2d(output), backend.np.atleast_2d(y)))
        self.accumulated_sum += float(backend.np.sum(sample_losses))
        self.accumulated_count += len(sample_losses)
        return float(backend.np.mean(sample_losses))

    def record(self, loss, count=1):
        """Accumulate a loss value returned by train() or back_propagate()."""
        self.accumulated_sum += float(loss) * count
        self.accumulated_count += count
        return loss

    def calculate_accumulated(self):
        if self.accumulated_count == 0:
            return 0.
        return self.accumulated_sum / self.accumulated_count

    # reset variables for accumulated loss
    def new_pass(self):
        self.accumulated_sum = 0.
        self.accumulated_count = 0

class Loss_MeanAbsoluteError(Loss):
    """L1 loss, the error measure reported by every unit and layer."""
    def forward(self, y_pred, y_true):
        return backend.np.mean(backend.np.abs(y_true - y_pred), axis=-1)

