"""
exceptions.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: Error types raised by the SCAE engine. Every failure propagates synchronously
             to the caller; nothing here is retried.
Published: 10-19-2026
"""


class SCAEError(Exception):
    """Base class of every engine error."""


class ConfigurationError(SCAEError, ValueError):
    """
    Invalid construction or binding parameters.

    Raised eagerly for mismatched dimensions between adjacent layers, unknown kind tags,
    projection units asked for more outputs than they have inputs, or an upsampling size
    that is not a multiple of its patch size.
    """


class UnsupportedOperationError(SCAEError, NotImplementedError):
    """The unit or layer does not support the requested operation (e.g. training a pooler)."""


class NumericalError(SCAEError, ArithmeticError):
    """Non-finite values surfaced inside a closed-form solver."""


class TrainingNotFinishedError(SCAEError, RuntimeError):
    """A closed-form unit was used before its one-time fit ran (call training_done() first)."""
