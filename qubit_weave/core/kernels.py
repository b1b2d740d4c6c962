"""
Stateless reductions from per-shot bit rows to Pauli product expectation
values, intended for JAX JIT.

Design notes
------------
- Bit registers are integer arrays shaped (shots, length). Outcome indices
  read slot 0 as the most significant bit, matching the Kronecker order of
  `ReadoutCalibration.from_single_qubit`.
- Product metadata (slots, flips, register length) is static per compiled
  instance; see `qubit_weave.core.meta.ProductMeta`.
"""

from __future__ import annotations

from functools import partial
from typing import Tuple

import jax
import jax.numpy as jnp
import opt_einsum as oe

from qubit_weave.core.meta import ProductMeta


def signed_parity(
    bits: jnp.ndarray, slots: Tuple[int, ...], flips: Tuple[int, ...]
) -> jnp.ndarray:
    """
    Per-row product eigenvalue: +1 for even parity of the selected (and
    flipped) bits, -1 for odd parity.

    Parameters
    ----------
    bits : jnp.ndarray
        Bit rows shaped (rows, length).
    slots : Tuple[int, ...]
        Columns taking part in the parity.
    flips : Tuple[int, ...]
        0/1 per selected column, 1 negates that column's contribution.

    Returns
    -------
    jnp.ndarray
        Integer array shaped (rows,) with values in {+1, -1}.
    """
    selected = jnp.bitwise_xor(
        bits[:, jnp.asarray(slots, dtype=jnp.int32)],
        jnp.asarray(flips, dtype=bits.dtype),
    )
    parity = jnp.sum(selected, axis=1) % 2
    return 1 - 2 * parity


def parity_expectation(
    bits: jnp.ndarray, slots: Tuple[int, ...], flips: Tuple[int, ...]
) -> jnp.ndarray:
    """
    Mean of the signed parity over all rows, i.e. ``sum(s_i) / N``
    """
    signs = signed_parity(bits, slots, flips)
    return jnp.sum(signs) / signs.shape[0]


def outcome_indices(bits: jnp.ndarray) -> jnp.ndarray:
    length = bits.shape[1]
    weights = 2 ** jnp.arange(length - 1, -1, -1, dtype=jnp.int64)
    return bits.astype(jnp.int64) @ weights


def outcome_probabilities(bits: jnp.ndarray, number_outcomes: int) -> jnp.ndarray:
    """
    Empirical probability of every bit string of the register

    Returns
    -------
    jnp.ndarray
        Float array of length ``number_outcomes`` summing to one.
    """
    counts = jnp.bincount(outcome_indices(bits), length=number_outcomes)
    return counts / bits.shape[0]


def outcome_signs(length: int, slots: Tuple[int, ...], flips: Tuple[int, ...]) -> jnp.ndarray:
    """
    Product eigenvalue of every bit string of a register of ``length`` slots
    """
    outcomes = jnp.arange(2**length, dtype=jnp.int64)
    shifts = jnp.arange(length - 1, -1, -1, dtype=jnp.int64)
    table = (outcomes[:, None] >> shifts[None, :]) & 1
    return signed_parity(table, slots, flips)


def calibrated_expectation(
    probabilities: jnp.ndarray, inverse: jnp.ndarray, signs: jnp.ndarray
) -> jnp.ndarray:
    """
    Expectation value from calibration-corrected outcome probabilities,
    ``sum_i signs_i * (inverse @ probabilities)_i``
    """
    return oe.contract("ij,j,i->", inverse, probabilities, signs, backend="jax")


@partial(jax.jit, static_argnames=("slots", "flips"))
def _parity_expectation_jitted(
    bits: jnp.ndarray, slots: Tuple[int, ...], flips: Tuple[int, ...]
) -> jnp.ndarray:
    return parity_expectation(bits, slots, flips)


def parity_expectation_jit(meta: ProductMeta, bits: jnp.ndarray) -> jnp.ndarray:
    return _parity_expectation_jitted(bits, meta.slots, meta.flips)


@partial(jax.jit, static_argnames=("length", "slots", "flips"))
def _calibrated_expectation_jitted(
    bits: jnp.ndarray,
    inverse: jnp.ndarray,
    length: int,
    slots: Tuple[int, ...],
    flips: Tuple[int, ...],
) -> jnp.ndarray:
    probabilities = outcome_probabilities(bits, 2**length)
    return calibrated_expectation(probabilities, inverse, outcome_signs(length, slots, flips))


def calibrated_expectation_jit(
    meta: ProductMeta, bits: jnp.ndarray, inverse: jnp.ndarray
) -> jnp.ndarray:
    return _calibrated_expectation_jitted(bits, inverse, meta.length, meta.slots, meta.flips)
