"""
rbm.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: Restricted Boltzmann machines trained with contrastive divergence: a binary-binary RBM and a
             Gaussian-binary RBM with learnt visible log-variances. They back the stochastic units.
Published: 10-19-2026
"""

from numpy_scae.utils import backend


def _sigmoid(x):
    return 1 / (1 + backend.np.exp(-x))

def _random_initial_weights(shape):
    # small weights with a Rayleigh-distributed magnitude and random sign
    magnitude = backend.np.sqrt(-2 * 1e-4 * backend.np.log(1 - backend.np.random.rand(*shape)))
    return magnitude * backend.np.sign(backend.np.random.rand(*shape) - 0.5)


class BasicBBRBM:
    """
    Binary visible / binary hidden RBM trained with one step of contrastive divergence (CD-1).

    Attributes:
        weights (ndarray): (n_visible, n_hidden) couplings.
        visible_biases (ndarray): (n_visible,) biases.
        hidden_biases (ndarray): (n_hidden,) biases.
        visible, hidden (ndarray): Current 0/1 states.
    """
    def __init__(self, n_visible, n_hidden, eps=1e-3):
        self.n_visible = n_visible
        self.n_hidden = n_hidden
        self.eps = eps
        self.weights = _random_initial_weights((n_visible, n_hidden))
        self.visible_biases = backend.np.zeros(n_visible)
        self.hidden_biases = backend.np.zeros(n_hidden)
        self.visible = backend.np.zeros(n_visible)
        self.hidden = backend.np.zeros(n_hidden)

    def load(self, sample):
        """Set the visible units, thresholding the sample at 0.5."""
        self.visible = (backend.np.asarray(sample) >= 0.5).astype(backend.np.float64)

    def update_hidden(self):
        p = _sigmoid(self.hidden_biases + backend.np.dot(self.visible, self.weights))
        self.hidden = (backend.np.random.rand(self.n_hidden) < p).astype(backend.np.float64)

    def update_visible(self):
        """
        Sample the visible units from the hidden ones.

        Returns:
            int: Number of visible units that changed.
        """
        p = _sigmoid(self.visible_biases + backend.np.dot(self.weights, self.hidden))
        sampled = (backend.np.random.rand(self.n_visible) < p).astype(backend.np.float64)
        diff = int(backend.np.count_nonzero(sampled != self.visible))
        self.visible = sampled
        return diff

    def decode(self):
        """Deterministic reconstruction of the visible units from the hidden ones."""
        p = _sigmoid(self.visible_biases + backend.np.dot(self.weights, self.hidden))
        self.visible = (p >= 0.5).astype(backend.np.float64)

    def train(self):
        """
        One CD-1 step from the loaded visible state.

        Returns:
            float: Fraction of visible units that flipped during reconstruction.
        """
        self.update_hidden()
        positive = (self.visible.copy(), self.hidden.copy())
        diff = self.update_visible()
        self.update_hidden()
        negative = (self.visible, self.hidden)

        self.weights += self.eps * (backend.np.outer(*positive) - backend.np.outer(*negative))
        self.visible_biases += self.eps * (positive[0] - negative[0])
        self.hidden_biases += self.eps * (positive[1] - negative[1])
        return diff / self.n_visible


class BasicGBRBM:
    """
    Gaussian visible / binary hidden RBM.

    Every visible unit has a learnt log-variance z; training runs CD with two extra Gibbs steps.
    """
    def __init__(self, n_visible, n_hidden, eps=1e-4, gibbs_steps=2):
        assert n_visible >= 1 and n_hidden >= 1
        self.n_visible = n_visible
        self.n_hidden = n_hidden
        self.eps = eps
        self.gibbs_steps = gibbs_steps
        self.weights = _random_initial_weights((n_visible, n_hidden))
        self.visible_biases = _random_initial_weights((n_visible,))
        self.hidden_biases = backend.np.zeros(n_hidden)
        self.log_variances = backend.np.ones(n_visible)
        self.visible = backend.np.zeros(n_visible)
        self.hidden = backend.np.zeros(n_hidden)

    def load(self, sample):
        self.visible = backend.np.array(sample, dtype=backend.np.float64)

    def update_hidden(self):
        scaled = self.visible / backend.np.exp(self.log_variances)
        p = _sigmoid(self.hidden_biases + backend.np.dot(scaled, self.weights))
        self.hidden = (backend.np.random.rand(self.n_hidden) < p).astype(backend.np.float64)

    def visible_mean(self):
        return self.visible_biases + backend.np.dot(self.weights, self.hidden)

    def update_visible(self):
        """
        Sample the visible units from N(mean, exp(z)).

        Returns:
            float: Mean absolute change of the visible units.
        """
        std = backend.np.sqrt(backend.np.exp(self.log_variances))
        sampled = self.visible_mean() + std * backend.np.random.randn(self.n_visible)
        diff = float(backend.np.mean(backend.np.abs(sampled - self.visible)))
        self.visible = sampled
        return diff

    def decode(self):
        self.visible = self.visible_mean()

    def _statistics(self):
        variances = backend.np.exp(self.log_variances)
        return (
            backend.np.outer(self.visible / variances, self.hidden),
            self.visible / variances,
            self.hidden.copy(),
            0.5 * (self.visible - self.visible_biases) ** 2 - self.visible * backend.np.dot(self.weights, self.hidden),
        )

    def train(self, sample):
        """
        One CD step on a sample.

        Returns:
            float: Mean absolute reconstruction change of the first Gibbs step.
        """
        self.load(sample)
        self.update_hidden()
        positive = self._statistics()
        diff = self.update_visible()
        self.update_hidden()
        for _ in range(self.gibbs_steps):
            self.update_visible()
            self.update_hidden()
        negative = self._statistics()

        self.weights += self.eps * (positive[0] - negative[0])
        self.visible_biases += self.eps * (positive[1] - negative[1])
        self.hidden_biases += self.eps * (positive[2] - negative[2])
        self.log_variances += self.eps * backend.np.exp(-self.log_variances) * (positive[3] - negative[3])
        return diff
