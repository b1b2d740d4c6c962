import jax.numpy as jnp
import pytest

from qubit_weave.core import kernels
from qubit_weave.core.meta import make_meta


BITS = jnp.array(
    [[0, 0], [0, 1], [1, 1], [1, 0], [1, 1], [0, 0], [0, 0], [1, 0]], dtype=jnp.int64
)


def test_make_meta_marks_negated_slots():
    meta = make_meta(3, (2, 0), negated_slots=(0,))
    assert meta.slots == (2, 0)
    assert meta.flips == (0, 1)
    assert meta.number_outcomes == 8


def test_signed_parity_single_slot():
    signs = kernels.signed_parity(BITS, (0,), (0,))
    assert signs.tolist() == [1, 1, -1, -1, -1, 1, 1, -1]


def test_signed_parity_two_slots_and_negation():
    signs = kernels.signed_parity(BITS, (0, 1), (0, 0))
    assert signs.tolist() == [1, -1, 1, -1, 1, 1, 1, -1]
    flipped = kernels.signed_parity(BITS, (0, 1), (1, 0))
    assert flipped.tolist() == [-s for s in signs.tolist()]


def test_parity_expectation_is_exact_mean():
    signs = [1, 1, -1, -1, -1, 1, 1, -1]
    assert float(kernels.parity_expectation(BITS, (0,), (0,))) == sum(signs) / len(signs)


def test_outcome_probabilities_use_slot_zero_as_most_significant():
    probabilities = kernels.outcome_probabilities(BITS, 4)
    # outcomes 00, 01, 10, 11
    assert probabilities.tolist() == [3 / 8, 1 / 8, 2 / 8, 2 / 8]


def test_outcome_signs():
    assert kernels.outcome_signs(2, (0,), (0,)).tolist() == [1, 1, -1, -1]
    assert kernels.outcome_signs(2, (1,), (0,)).tolist() == [1, -1, 1, -1]
    assert kernels.outcome_signs(2, (0, 1), (0, 0)).tolist() == [1, -1, -1, 1]


def test_identity_calibration_matches_parity_average():
    probabilities = kernels.outcome_probabilities(BITS, 4)
    signs = kernels.outcome_signs(2, (0, 1), (0, 0))
    calibrated = kernels.calibrated_expectation(probabilities, jnp.eye(4), signs)
    assert float(calibrated) == pytest.approx(float(kernels.parity_expectation(BITS, (0, 1), (0, 0))))


def test_jitted_kernels_match_plain_ones():
    meta = make_meta(2, (0, 1), negated_slots=(1,))
    plain = kernels.parity_expectation(BITS, meta.slots, meta.flips)
    assert float(kernels.parity_expectation_jit(meta, BITS)) == pytest.approx(float(plain))
    calibrated = kernels.calibrated_expectation_jit(meta, BITS, jnp.eye(4))
    assert float(calibrated) == pytest.approx(float(plain))
