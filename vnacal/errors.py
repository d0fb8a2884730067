"""
.. currentmodule:: vnacal.errors

========================================
errors (:mod:`vnacal.errors`)
========================================

Exceptions raised by the calibration engine.

Every error carries an :class:`ErrorKind` and a message. The concrete
exception classes also derive from the matching builtin exception so
that callers can catch a plain :class:`ValueError` for bad arguments or
an :class:`ArithmeticError` for singular input.

.. autosummary::
   :toctree: generated/

   ErrorKind
   VNACalError
   UsageError
   ResourceError
   MathError
   InternalError
   CalibrationWarning
   report_error

"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, NoReturn, Optional

logger = logging.getLogger(__name__)


class ErrorKind(Enum):
    """
    Category of an error.
    """
    SYSTEM = 'system'
    USAGE = 'usage'
    MATH = 'math'
    INTERNAL = 'internal'
    WARNING = 'warning'

    def __str__(self) -> str:
        return self.value


class VNACalError(Exception):
    """
    Base class of all errors raised by :mod:`vnacal`.

    Parameters
    ----------
    message : str
        human readable description
    kind : :class:`ErrorKind`
        category of the error
    """
    kind = ErrorKind.INTERNAL

    def __init__(self, message: str, kind: Optional[ErrorKind] = None):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind

    def __str__(self) -> str:
        return self.message


class UsageError(VNACalError, ValueError):
    """Arguments inconsistent with the calibration type or each other."""
    kind = ErrorKind.USAGE


class ResourceError(VNACalError, MemoryError):
    """Allocation failure."""
    kind = ErrorKind.SYSTEM


class MathError(VNACalError, ArithmeticError):
    """Numerically singular input, e.g. a singular 'a' matrix."""
    kind = ErrorKind.MATH


class InternalError(VNACalError, RuntimeError):
    kind = ErrorKind.INTERNAL


class CalibrationWarning(UserWarning):
    """Thrown for conditions that do not abort the operation."""
    pass


_EXCEPTIONS = {
    ErrorKind.SYSTEM: ResourceError,
    ErrorKind.USAGE: UsageError,
    ErrorKind.MATH: MathError,
    ErrorKind.INTERNAL: InternalError,
    ErrorKind.WARNING: VNACalError,
}

ErrorFunction = Callable[[str, ErrorKind], None]


def report_error(kind: ErrorKind, message: str,
                 error_fn: Optional[ErrorFunction] = None) -> NoReturn:
    """
    Log an error, pass it to the optional error callback and raise it.

    Parameters
    ----------
    kind : :class:`ErrorKind`
        category of the error
    message : str
        message, conventionally prefixed with the name of the operation
    error_fn : callable or None
        called as ``error_fn(message, kind)`` before the exception is
        raised

    Raises
    ------
    VNACalError
        always; the subclass matching `kind`
    """
    logger.error(message)
    if error_fn is not None:
        error_fn(message, kind)
    raise _EXCEPTIONS[kind](message, kind)
