"""
backend.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: Backend configuration for NumPy/CuPy-based computations. Provides the
             global array-module alias used by every layer and unit, host transfer
             for SciPy solvers, RNG seeding and a timing context manager.
Published: 10-19-2026
"""

import logging
import time
from contextlib import contextmanager
import numpy as _np
# Attempt to import CuPy for GPU acceleration; fall back to None if unavailable
try:
    import cupy as _cp
except ImportError:
    _cp = None

_logger = logging.getLogger(__name__)

# Global flags and aliases for active backend
IS_GPU = False
np = _np # Default to NumPy
cp = _cp # CuPy if available, else None


def set_backend(device):
    """
    Select compute backend: 'gpu' for CuPy (if available), otherwise NumPy.

    Modifies global 'np' alias and 'IS_GPU' flag for downstream operations.

    Args:
        device (str): 'gpu' to attempt CuPy, anything else for NumPy.
    """
    global np, IS_GPU
    if device == "gpu" and cp is not None:
        try:
            # quick test allocation on GPU
            cp.zeros((1,)).sum()
            np = cp
            IS_GPU = True
            _logger.info("Running on GPU with CuPy")
        except Exception as e:
            # Fallback to NumPy if CuPy fails
            np = _np
            IS_GPU = False
            _logger.warning(f"CuPy test failed ({e}), falling back to NumPy")
    else:
        # Force CPU backend
        np = _np
        IS_GPU = False
        _logger.info("Running on CPU with NumPy")

def seed(value):
    """
    Seed the random generator of the active backend.

    Args:
        value (int): Seed value.
    """
    np.random.seed(value)

def to_numpy(array):
    """
    Return a host (NumPy) copy of an array living on the active backend.

    SciPy solvers only accept host arrays, so every closed-form fit goes through here.
    """
    if IS_GPU:
        return cp.asnumpy(array)
    return _np.asarray(array)

def from_numpy(array, dtype=None):
    """Move a host array onto the active backend."""
    return np.asarray(array, dtype=dtype)

def sync_gpu():
    """
    Synchronize GPU operations to ensure all kernels complete.

    Only effective if using CuPy backend; otherwise does nothing.
    """
    if IS_GPU:
        cp.cuda.Device(0).synchronize()

@contextmanager
def profile_block(name="Block", logger=None):
    """
    Context manager to time execution and track GPU memory delta for a code block.

    Args:
        name (str): Identifier for the profiling block.
        logger: Optional logger to record profiling info; uses the module logger if None.
    """
    # Start timing and optional GPU sync
    start_time = time.time()
    start_mem = 0

    if IS_GPU:
        sync_gpu()
        start_mem = cp.get_default_memory_pool().used_bytes() / (1024 ** 2)

    yield  # Run the code block

    # End timing and memory measurement
    if IS_GPU:
        sync_gpu()
        end_mem = cp.get_default_memory_pool().used_bytes() / (1024 ** 2)
    else:
        end_mem = 0

    elapsed = time.time() - start_time
    msg = f"{name} | Time: {elapsed:.3f}s | GPU Memory: {start_mem:.2f} -> {end_mem:.2f} MB"
    (logger or _logger).info(msg)
