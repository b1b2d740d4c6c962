"""
Array kernels for the measurement evaluator.

These functions operate purely on arrays plus lightweight metadata (register
length, selected slots) and never touch circuits or measurement inputs.
"""

from qubit_weave.core import kernels, meta

__all__ = ["kernels", "meta"]
