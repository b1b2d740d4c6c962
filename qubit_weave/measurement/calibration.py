from __future__ import annotations

import logging
from typing import Any, Sequence

import jax.numpy as jnp
import numpy as np

from qubit_weave._math.ops import kron_reduce
from qubit_weave.qubit_weave import Config

logger = logging.getLogger(__name__)


class ReadoutCalibration:
    """
    Confusion matrix of a bit register.

    ``matrix[measured, true]`` is the probability of reading the bit string
    ``measured`` when the register holds ``true``, bit strings being indexed
    with slot 0 as the most significant bit. The evaluator corrects the
    empirical outcome distribution ``p`` by ``inverse() @ p``.

    Parameters
    ----------
    matrix: Any
        Square real matrix of dimension ``2**length`` for a register of
        ``length`` slots

    Examples
    --------
    >>> flip = [[0.98, 0.05], [0.02, 0.95]]
    >>> calibration = ReadoutCalibration.from_single_qubit([flip, flip])
    >>> calibration.number_slots
    2
    """

    __slots__ = ("_matrix",)

    def __init__(self, matrix: Any) -> None:
        matrix = jnp.asarray(matrix, dtype=jnp.float64)
        if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
            raise ValueError(f"Calibration matrix must be square, got shape {matrix.shape}")
        dimension = matrix.shape[0]
        if dimension < 2 or dimension & (dimension - 1):
            raise ValueError(
                f"Calibration matrix dimension must be a power of two, got {dimension}"
            )
        self._matrix = matrix

    @classmethod
    def from_single_qubit(cls, matrices: Sequence[Any]) -> "ReadoutCalibration":
        """
        Builds the register calibration as the Kronecker product of per-slot
        2x2 confusion matrices, ``matrices[0]`` belonging to slot 0
        """
        if not matrices:
            raise ValueError("At least one single qubit calibration matrix is required")
        factors = [jnp.asarray(matrix, dtype=jnp.float64) for matrix in matrices]
        for slot, factor in enumerate(factors):
            if factor.shape != (2, 2):
                raise ValueError(
                    f"Calibration of slot {slot} must be 2x2, got shape {factor.shape}"
                )
        return cls(kron_reduce(factors))

    @property
    def matrix(self) -> jnp.ndarray:
        return self._matrix

    @property
    def dimension(self) -> int:
        return int(self._matrix.shape[0])

    @property
    def number_slots(self) -> int:
        return self.dimension.bit_length() - 1

    def inverse(self) -> jnp.ndarray:
        """
        Inverse of the confusion matrix, computed with the method selected by
        ``Config().calibration_inverse``
        """
        method = Config().calibration_inverse
        logger.debug("Inverting %dx%d calibration with %s", self.dimension, self.dimension, method)
        if method == "inv":
            return jnp.linalg.inv(self._matrix)
        return jnp.linalg.pinv(self._matrix)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ReadoutCalibration):
            return NotImplemented
        return self._matrix.shape == other._matrix.shape and bool(
            jnp.all(self._matrix == other._matrix)
        )

    def __hash__(self) -> int:
        return hash(np.asarray(self._matrix).tobytes())

    def __repr__(self) -> str:
        return f"ReadoutCalibration({self._matrix.tolist()!r})"
