import math

import jax
import jax.numpy as jnp
import pytest

from qubit_weave.backend import Backend, run_measurement
from qubit_weave.circuit import Circuit
from qubit_weave.measurement import MeasurementInput, PauliProduct, Registers
from qubit_weave.operation import (
    DefinitionOperationType,
    GateOperationType,
    MeasurementOperationType,
    Operation,
)
from qubit_weave.qubit_weave import Config, Session

SHOTS = 1000


class SamplingBackend:
    """
    Statevector sampler for circuits of single qubit gates followed by a
    repeated measurement
    """

    def run_circuit(self, circuit, number_qubits):
        state = jnp.zeros(2**number_qubits, dtype=jnp.complex128).at[0].set(1.0)
        readout, shots = None, 0
        for op in circuit:
            if "SingleQubitGateOperation" in op.tags:
                factors = [jnp.eye(2, dtype=jnp.complex128)] * number_qubits
                factors[op.qubit] = op.unitary_matrix()
                operator = factors[0]
                for factor in factors[1:]:
                    operator = jnp.kron(operator, factor)
                state = operator @ state
            elif op.hqslang == "PragmaRepeatedMeasurement":
                readout, shots = op.readout, op.number_measurements
        probabilities = jnp.abs(state) ** 2
        outcomes = jax.random.choice(
            Config().random_key, 2**number_qubits, shape=(shots,), p=probabilities
        )
        rows = [
            [(int(outcome) >> (number_qubits - 1 - qubit)) & 1 for qubit in range(number_qubits)]
            for outcome in outcomes
        ]
        return Registers(bit_registers={readout: rows})


def _measured(*gates, number_qubits=1):
    return Circuit(
        [
            Operation(
                DefinitionOperationType.DefinitionBit,
                name="ro",
                length=number_qubits,
                is_output=True,
            ),
            *gates,
            Operation(
                MeasurementOperationType.PragmaRepeatedMeasurement,
                readout="ro",
                number_measurements=SHOTS,
            ),
        ]
    )


def test_sampling_backend_satisfies_protocol():
    assert isinstance(SamplingBackend(), Backend)


def test_hadamard_has_vanishing_z_expectation():
    measurement_input = MeasurementInput(
        [_measured(Operation(GateOperationType.Hadamard, qubit=0))]
    )
    z = measurement_input.add_pauli_product(PauliProduct(0, "ro", (0,)))
    measurement_input.add_linear_exp_val("z", {z: 1.0})
    with Session(seed=1234):
        result = run_measurement(SamplingBackend(), measurement_input, 1)
    # standard deviation of the mean is 1/sqrt(1000)
    assert abs(result["z"]) < 0.15


def test_parametrized_rotation_is_substituted_before_running():
    circuit = _measured(
        Operation(GateOperationType.RotateY, qubit=0, theta="theta"),
        Operation(GateOperationType.PauliX, qubit=1),
        number_qubits=2,
    )
    measurement_input = MeasurementInput([circuit])
    z0 = measurement_input.add_pauli_product(PauliProduct(0, "ro", (0,)))
    z1 = measurement_input.add_pauli_product(PauliProduct(0, "ro", (1,)))
    measurement_input.add_linear_exp_val("z0", {z0: 1.0})
    measurement_input.add_linear_exp_val("z1", {z1: "scale"})
    with Session(seed=5):
        result = run_measurement(
            SamplingBackend(), measurement_input, 2, {"theta": math.pi, "scale": 2.0}
        )
    assert result["z0"] == pytest.approx(-1.0)
    assert result["z1"] == pytest.approx(-2.0)
