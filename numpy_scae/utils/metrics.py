"""
metrics.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: Accuracy metrics with epoch-level accumulation for evaluating FFCNN classifiers:
             top-1 categorical accuracy.
Published: 10-19-2026
"""

from numpy_scae.utils import backend

# Common accuracy class
class Accuracy:
    """
    Base class for accuracy metrics with accumulation support.

    Subclasses implement compare(predictions, y) returning a boolean array of correct predictions.
    """
    def __init__(self):
        self.new_pass()

    def calculate(self, predictions, y):
        """
        Calculate accuracy for a batch and update accumulators.

        Args:
            predictions (ndarray): Predicted labels.
            y (ndarray): True labels.

        Returns:
            float: Batch accuracy (fraction correct).
        """
        comparisons = backend.np.atleast_1d(self.compare(backend.np.asarray(predictions), backend.np.asarray(y)))
        self.accumulated_sum += int(backend.np.sum(comparisons))
        self.accumulated_count += len(comparisons)
        return float(backend.np.mean(comparisons))

    def calculate_accumulated(self):
        if self.accumulated_count == 0:
            return 0.
        return self.accumulated_sum / self.accumulated_count

    # Reset variables for accumulated accuracy
    def new_pass(self):
        self.accumulated_sum = 0
        self.accumulated_count = 0

# Accuracy calculation for classification model
class Accuracy_Categorical(Accuracy):
    """Top-1 accuracy; one-hot targets are converted to indices."""
    def compare(self, predictions, y):
        if y.ndim == 2:
            y = backend.np.argmax(y, axis=1)
        return predictions == y

