import jax.numpy as jnp
import pytest

from qubit_weave.measurement import ReadoutCalibration
from qubit_weave.qubit_weave import Session

FLIP = [[0.9, 0.2], [0.1, 0.8]]


def test_matrix_must_be_square_power_of_two():
    with pytest.raises(ValueError):
        ReadoutCalibration([[1.0, 0.0, 0.0]])
    with pytest.raises(ValueError):
        ReadoutCalibration(jnp.eye(3))


def test_single_qubit_calibrations_combine_with_slot_zero_first():
    identity = jnp.eye(2)
    calibration = ReadoutCalibration.from_single_qubit([FLIP, identity])
    assert calibration.number_slots == 2
    assert jnp.allclose(calibration.matrix, jnp.kron(jnp.asarray(FLIP), identity))


def test_single_qubit_calibrations_must_be_two_by_two():
    with pytest.raises(ValueError):
        ReadoutCalibration.from_single_qubit([jnp.eye(4)])
    with pytest.raises(ValueError):
        ReadoutCalibration.from_single_qubit([])


@pytest.mark.parametrize("method", ["pinv", "inv"])
def test_inverse_methods_agree(method):
    calibration = ReadoutCalibration(FLIP)
    with Session(calibration_inverse=method):
        inverse = calibration.inverse()
    assert jnp.allclose(inverse @ calibration.matrix, jnp.eye(2))
