import pytest

from qubit_weave.backend import Backend, run_circuits, run_measurement, run_measurement_registers
from qubit_weave.circuit import Circuit
from qubit_weave.exceptions import BackendExecutionError
from qubit_weave.extra.symbolic import SymbolicValue
from qubit_weave.measurement import MeasurementInput, PauliProduct, Registers
from qubit_weave.operation import (
    DefinitionOperationType,
    GateOperationType,
    MeasurementOperationType,
    Operation,
)


class RecordingBackend:
    def __init__(self, rows):
        self.rows = rows
        self.circuits = []

    def run_circuit(self, circuit, number_qubits):
        self.circuits.append(circuit)
        return ({"ro": self.rows}, {}, {})


class FailingBackend:
    def run_circuit(self, circuit, number_qubits):
        raise RuntimeError("device offline")


def _input():
    circuit = Circuit(
        [
            Operation(DefinitionOperationType.DefinitionBit, name="ro", length=1, is_output=True),
            Operation(GateOperationType.RotateX, qubit=0, theta="theta"),
            Operation(
                MeasurementOperationType.PragmaRepeatedMeasurement,
                readout="ro",
                number_measurements=4,
            ),
        ]
    )
    measurement_input = MeasurementInput([circuit])
    z = measurement_input.add_pauli_product(PauliProduct(0, "ro", (0,)))
    measurement_input.add_linear_exp_val("z", {z: 1.0})
    return measurement_input


def test_backends_are_structural():
    assert isinstance(RecordingBackend([]), Backend)
    assert not isinstance(object(), Backend)


def test_backend_failure_is_wrapped():
    with pytest.raises(BackendExecutionError) as info:
        run_measurement(FailingBackend(), _input(), 1, {"theta": 0.0})
    assert isinstance(info.value.original, RuntimeError)
    assert info.value.__cause__ is info.value.original


def test_triple_results_are_coerced():
    backend = RecordingBackend([[0], [0], [1], [0]])
    results = run_circuits(backend, _input().circuits, 1)
    assert results == [Registers(bit_registers={"ro": [[0], [0], [1], [0]]})]


def test_substitutions_reach_the_backend():
    backend = RecordingBackend([[0], [0], [1], [0]])
    result = run_measurement(backend, _input(), 1, {"theta": 0.5})
    assert result == {"z": 0.5}
    assert backend.circuits[0][1].theta == SymbolicValue(0.5)


def test_constant_circuit_runs_first():
    prefix = Circuit([Operation(GateOperationType.PauliX, qubit=0)])
    measurement_input = MeasurementInput(_input().circuits, constant_circuit=prefix)
    backend = RecordingBackend([[1]])
    resolved, results = run_measurement_registers(backend, measurement_input, 1, {"theta": 1.0})
    assert len(results) == 1
    assert backend.circuits[0][0].hqslang == "PauliX"
    assert not resolved.circuits[0].is_parametrized


def test_list_results_are_coerced():
    class ListBackend:
        def run_circuit(self, circuit, number_qubits):
            return [{"ro": [[1], [1]]}, {}, {}]

    result = run_measurement(ListBackend(), _input(), 1, {"theta": 0.0})
    assert result == {"z": -1.0}
