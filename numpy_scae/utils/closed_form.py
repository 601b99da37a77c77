"""
closed_form.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: One-shot solvers used to seed auto-encoder units without gradient descent: principal
             component analysis, Fisher linear discriminant analysis and the least-squares fit of a
             decoder in the activated feature space. Everything runs on host arrays through SciPy and
             is checked for non-finite values after each step.
Published: 10-19-2026
"""

import logging

import numpy as np
import scipy.linalg

from numpy_scae.utils.exceptions import NumericalError

logger = logging.getLogger(__name__)

# relative size of the imaginary part of the LDA eigenvectors above which dropping it is reported
IMAGINARY_TOLERANCE = 1e-6


def check_finite(array, stage):
    """
    Raise if an array holds NaN or infinite values.

    Args:
        array (ndarray): Array to check.
        stage (str): Name of the solver step, used in the error message.
    """
    if not np.all(np.isfinite(array)):
        raise NumericalError(f"non-finite values detected during {stage}")

def stack_samples(samples, stage):
    """Turn a list of sample vectors into a (n_samples, n_features) float64 matrix."""
    if len(samples) == 0:
        raise NumericalError(f"{stage} needs at least one training sample")
    data = np.asarray(np.stack(samples), dtype=np.float64)
    check_finite(data, f"{stage} (training samples)")
    return data

def fit_pca(samples, n_components):
    """
    Principal component analysis by eigen-decomposition of the covariance matrix.

    Args:
        samples (list[ndarray]): Training vectors of equal length m.
        n_components (int): Number of principal directions to keep (<= m).

    Returns:
        tuple: (mean (m,), projection (m, n_components), eigenvalues (n_components,)), directions
            sorted by decreasing variance.
    """
    data = stack_samples(samples, "PCA")
    mean = data.mean(axis=0)
    centered = data - mean
    covariance = centered.T @ centered / max(1, len(data) - 1)

    eigenvalues, eigenvectors = scipy.linalg.eigh(covariance)
    order = np.argsort(eigenvalues)[::-1][:n_components]
    projection = eigenvectors[:, order]
    check_finite(projection, "PCA (eigenvectors)")
    return mean, projection, eigenvalues[order]

def fit_lda(samples, labels):
    """
    Fisher linear discriminant analysis.

    Builds the within-class and between-class scatter matrices, each class weighted by
    n_samples / n_classes, and diagonalizes pinv(Sw) @ Sb.

    Args:
        samples (list[ndarray]): Training vectors of length m.
        labels (list[int]): Class of every sample.

    Returns:
        tuple: (directions (m, m) sorted by decreasing eigenvalue, eigenvalues (m,)).
    """
    data = stack_samples(samples, "LDA")
    labels = np.asarray(labels)
    classes = np.unique(labels)
    class_weight = len(data) / len(classes)
    overall_mean = data.mean(axis=0)

    dims = data.shape[1]
    within = np.zeros((dims, dims))
    between = np.zeros((dims, dims))
    for cls in classes:
        members = data[labels == cls]
        class_mean = members.mean(axis=0)
        centered = members - class_mean
        within += class_weight * (centered.T @ centered) / len(members)
        offset = (class_mean - overall_mean)[:, None]
        between += class_weight * (offset @ offset.T)

    scatter = np.linalg.pinv(within) @ between
    check_finite(scatter, "LDA (scatter matrices)")

    eigenvalues, eigenvectors = scipy.linalg.eig(scatter)
    imaginary = np.linalg.norm(np.imag(eigenvectors)) / max(np.linalg.norm(eigenvectors), np.finfo(float).tiny)
    if imaginary > IMAGINARY_TOLERANCE:
        logger.warning(f"LDA eigenvectors have a relative imaginary part of {imaginary:.2e}, keeping the real part")
    eigenvalues = np.real(eigenvalues)
    eigenvectors = np.real(eigenvectors)
    order = np.argsort(eigenvalues)[::-1]
    directions = eigenvectors[:, order]
    check_finite(directions, "LDA (eigenvectors)")
    return directions, eigenvalues[order]

def normalize_rows(matrix):
    """Scale every row to unit L2 norm; all-zero rows stay zero."""
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms[norms == 0] = 1
    return matrix / norms

def fit_affine(features, targets, stage):
    """
    Least-squares solution of [features, 1] @ [weights; biases] = targets.

    Args:
        features (ndarray): (n_samples, k) inputs of the affine map.
        targets (ndarray): (n_samples, m) desired outputs.
        stage (str): Solver step name for error messages.

    Returns:
        tuple: (weights (k, m), biases (m,)).
    """
    design = np.hstack([features, np.ones((len(features), 1))])
    solution, _, _, _ = scipy.linalg.lstsq(design, targets)
    check_finite(solution, stage)
    return solution[:-1], solution[-1]
