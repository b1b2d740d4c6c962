import pytest

from qubit_weave.circuit import Circuit
from qubit_weave.exceptions import RegisterConflictError
from qubit_weave.extra.symbolic import SymbolicValue
from qubit_weave.measurement import MeasurementInput, PauliProduct, ReadoutCalibration
from qubit_weave.operation import (
    DefinitionOperationType,
    GateOperationType,
    MeasurementOperationType,
    Operation,
)


def _circuit(theta="theta"):
    return Circuit(
        [
            Operation(DefinitionOperationType.DefinitionBit, name="ro", length=2, is_output=True),
            Operation(DefinitionOperationType.DefinitionComplex, name="amp", length=1),
            Operation(GateOperationType.RotateY, qubit=0, theta=theta),
            Operation(
                MeasurementOperationType.PragmaRepeatedMeasurement,
                readout="ro",
                number_measurements=10,
            ),
        ]
    )


def test_pauli_product_validation():
    assert PauliProduct(0, "ro", [1, 0]).register_slots == (1, 0)
    assert PauliProduct(0, "ro", [3, 4], slots=[0, 1], negated=[4]).negated_slots == (1,)
    with pytest.raises(ValueError):
        PauliProduct(0, "ro", [0, 0])
    with pytest.raises(ValueError):
        PauliProduct(0, "ro", [0, 1], slots=[0])
    with pytest.raises(ValueError):
        PauliProduct(0, "ro", [0], negated=[1])


def test_definitions_are_registered():
    measurement_input = MeasurementInput([_circuit()])
    z0 = measurement_input.add_pauli_product(PauliProduct(0, "ro", (0,)))
    z1 = measurement_input.add_pauli_product(PauliProduct(0, "ro", (1,)))
    measurement_input.add_linear_exp_val("energy", {z0: 0.5, z1: "h"}, constant=1.0)
    measurement_input.add_symbolic_exp_val("ratio", "pauli_product_0 / (1 + pauli_product_1)")
    measurement_input.add_cheated_exp_val("amplitude", 0, "amp")
    assert measurement_input.definition_names == ("energy", "ratio", "amplitude")
    assert measurement_input.linear_exp_vals["energy"].terms[z1] == SymbolicValue("h")
    assert measurement_input.symbolic_exp_vals["ratio"].product_indices == (0, 1)


def test_duplicate_definition_names_are_refused():
    measurement_input = MeasurementInput([_circuit()])
    measurement_input.add_cheated_exp_val("value", 0, "amp")
    with pytest.raises(ValueError):
        measurement_input.add_cheated_exp_val("value", 0, "amp")


def test_unknown_product_indices_are_refused():
    measurement_input = MeasurementInput([_circuit()])
    with pytest.raises(ValueError):
        measurement_input.add_linear_exp_val("energy", {0: 1.0})
    with pytest.raises(ValueError):
        measurement_input.add_symbolic_exp_val("energy", "2 * pauli_product_3")


def test_register_types_are_checked():
    measurement_input = MeasurementInput([_circuit()])
    with pytest.raises(RegisterConflictError):
        measurement_input.add_pauli_product(PauliProduct(0, "amp", (0,)))
    with pytest.raises(RegisterConflictError):
        measurement_input.add_pauli_product(PauliProduct(0, "ro", (2,)))
    with pytest.raises(RegisterConflictError):
        measurement_input.add_cheated_exp_val("bits", 0, "ro")
    with pytest.raises(IndexError):
        measurement_input.add_pauli_product(PauliProduct(1, "ro", (0,)))


def test_constant_circuit_is_prepended():
    prefix = Circuit([Operation(GateOperationType.PauliX, qubit=1)])
    measurement_input = MeasurementInput([_circuit(), _circuit(0.3)], constant_circuit=prefix)
    circuits = measurement_input.circuits_to_run()
    assert len(circuits) == 2
    assert all(circuit[0].hqslang == "PauliX" for circuit in circuits)
    assert measurement_input.circuits[0][0].hqslang == "DefinitionBit"


def test_substitute_parameters_returns_new_input():
    measurement_input = MeasurementInput([_circuit()])
    z0 = measurement_input.add_pauli_product(PauliProduct(0, "ro", (0,)))
    measurement_input.add_linear_exp_val("energy", {z0: "2 * theta"})
    substituted = measurement_input.substitute_parameters({"theta": 0.25})
    assert not substituted.circuits[0].is_parametrized
    assert substituted.linear_exp_vals["energy"].terms[z0] == SymbolicValue(0.5)
    assert measurement_input.circuits[0].is_parametrized


def test_dict_and_json_round_trip():
    measurement_input = MeasurementInput(
        [_circuit()], constant_circuit=Circuit([Operation(GateOperationType.Hadamard, qubit=0)])
    )
    z0 = measurement_input.add_pauli_product(PauliProduct(0, "ro", (0, 1), negated=(1,)))
    measurement_input.add_linear_exp_val("energy", {z0: "h"}, constant=0.5)
    measurement_input.add_symbolic_exp_val("squared", "pauli_product_0**2")
    measurement_input.add_cheated_exp_val("amplitude", 0, "amp", row=0, index=0)
    measurement_input.set_calibration("ro", ReadoutCalibration.from_single_qubit([[[0.9, 0.1], [0.1, 0.9]]] * 2))

    restored = MeasurementInput.from_json(measurement_input.to_json())
    assert restored == measurement_input
    assert MeasurementInput.from_dict(measurement_input.to_dict()) == measurement_input
