import logging

import numpy as np

from numpy_scae.utils import closed_form
from numpy_scae.utils.closed_form import fit_lda


def _two_classes():
    labels = [n % 2 for n in range(40)]
    samples = [np.array([1.5 if label else -1.5, 0.]) + np.random.normal(0, 0.2, size=2) for label in labels]
    return samples, labels


def test_lda_directions_are_real_without_warning(caplog):
    samples, labels = _two_classes()
    with caplog.at_level(logging.WARNING, logger="numpy_scae.utils.closed_form"):
        directions, eigenvalues = fit_lda(samples, labels)
    assert directions.dtype.kind == "f"
    assert eigenvalues[0] >= eigenvalues[1]
    assert not caplog.records


def test_dropped_imaginary_part_is_reported(caplog, monkeypatch):
    def complex_eig(matrix):
        return np.array([2. + 0.j, 1. + 0.j]), np.array([[1., 0.5j], [0.5j, 1.]])

    monkeypatch.setattr(closed_form.scipy.linalg, "eig", complex_eig)
    samples, labels = _two_classes()
    with caplog.at_level(logging.WARNING, logger="numpy_scae.utils.closed_form"):
        directions, _ = fit_lda(samples, labels)
    np.testing.assert_array_equal(directions, np.eye(2))
    assert any("imaginary" in record.getMessage() for record in caplog.records)
