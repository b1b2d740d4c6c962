import pickle

import pytest

from qubit_weave.circuit import Circuit
from qubit_weave.exceptions import QubitMappingError, SymbolicResolutionError
from qubit_weave.extra.symbolic import SymbolicValue
from qubit_weave.operation import (
    ALL_QUBITS,
    DefinitionOperationType,
    GateOperationType,
    MeasurementOperationType,
    Operation,
    PragmaOperationType,
)


def _compose(second, first):
    return {qubit: second[target] for qubit, target in first.items()}


OPERATIONS = [
    Operation(GateOperationType.RotateX, qubit=0, theta="theta"),
    Operation(GateOperationType.CNOT, control=1, target=0),
    Operation(GateOperationType.MultiQubitZZ, qubits=[0, 1, 2], theta="2*theta"),
    Operation(
        PragmaOperationType.PragmaStartDecompositionBlock,
        qubits=[0, 1],
        reordering_dictionary={0: 1, 1: 0},
    ),
    Operation(PragmaOperationType.PragmaDamping, qubit=2, gate_time="t", rate=0.1),
]


def test_involved_qubits_of_gates():
    assert OPERATIONS[0].involved_qubits() == frozenset({0})
    assert OPERATIONS[1].involved_qubits() == frozenset({0, 1})
    assert OPERATIONS[2].involved_qubits() == frozenset({0, 1, 2})


def test_global_and_empty_involvement():
    repeated = Operation(
        MeasurementOperationType.PragmaRepeatedMeasurement, readout="ro", number_measurements=10
    )
    definition = Operation(DefinitionOperationType.DefinitionBit, name="ro", length=2)
    assert repeated.involved_qubits() is ALL_QUBITS
    assert 17 in repeated.involved_qubits()
    assert definition.involved_qubits() == frozenset()


def test_conditional_reports_nested_circuit_qubits():
    inner = Circuit([Operation(GateOperationType.PauliX, qubit=3)])
    conditional = Operation(
        PragmaOperationType.PragmaConditional,
        condition_register="ro",
        condition_index=0,
        circuit=inner,
    )
    assert conditional.involved_qubits() == frozenset({3})


@pytest.mark.parametrize("op", OPERATIONS)
def test_remap_composition(op):
    first = {0: 3, 1: 4, 2: 5}
    second = {3: 7, 4: 6, 5: 8}
    twice = op.remap_qubits(first).remap_qubits(second)
    assert twice == op.remap_qubits(_compose(second, first))


@pytest.mark.parametrize("op", OPERATIONS)
def test_remap_touches_exactly_the_involved_qubits(op):
    mapping = {qubit: qubit + 10 for qubit in op.involved_qubits()}
    remapped = op.remap_qubits(mapping)
    assert remapped.involved_qubits() == frozenset(mapping.values())


def test_remap_missing_qubit_fails():
    with pytest.raises(QubitMappingError) as info:
        OPERATIONS[1].remap_qubits({0: 5})
    assert info.value.qubit == 1


def test_remap_decomposition_block_maps_keys_and_values():
    remapped = OPERATIONS[3].remap_qubits({0: 5, 1: 6})
    assert remapped.qubits == (5, 6)
    assert remapped.reordering_dictionary == {5: 6, 6: 5}


def test_remap_pauli_product_pragma_keeps_paulis():
    op = Operation(
        MeasurementOperationType.PragmaGetPauliProduct,
        qubit_paulis={0: 3, 2: 1},
        readout="pp",
    )
    remapped = op.remap_qubits({0: 1, 2: 0})
    assert remapped.qubit_paulis == {1: 3, 0: 1}


@pytest.mark.parametrize("op", OPERATIONS)
def test_substitution_is_idempotent_once_resolved(op):
    resolved = op.substitute_parameters({"theta": 0.5, "t": 2.0})
    assert not resolved.is_parametrized
    assert resolved.substitute_parameters({"theta": 1.5, "t": 7.0}) == resolved


@pytest.mark.parametrize("op", OPERATIONS)
def test_substitution_commutes_with_remapping(op):
    mapping = {0: 2, 1: 0, 2: 1}
    values = {"theta": 0.25, "t": 1.0}
    assert op.substitute_parameters(values).remap_qubits(mapping) == op.remap_qubits(
        mapping
    ).substitute_parameters(values)


def test_substitution_leaves_unrelated_parameters():
    op = Operation(GateOperationType.RotateZ, qubit=0, theta="phi")
    assert op.substitute_parameters({"theta": 1.0}) is op


def test_partially_resolved_parameter_fails():
    op = Operation(GateOperationType.RotateZ, qubit=0, theta="phi * theta")
    with pytest.raises(SymbolicResolutionError) as info:
        op.substitute_parameters({"theta": 1.0})
    assert info.value.variables == ("phi",)


def test_substitution_recurses_into_nested_circuit():
    inner = Circuit([Operation(GateOperationType.RotateX, qubit=1, theta="a")])
    op = Operation(
        MeasurementOperationType.PragmaGetStateVector, readout="psi", circuit=inner
    )
    assert op.is_parametrized
    resolved = op.substitute_parameters({"a": 0.1})
    assert not resolved.is_parametrized
    assert resolved.circuit[0].theta == SymbolicValue(0.1)


def test_tags():
    assert OPERATIONS[0].tags == (
        "Operation",
        "GateOperation",
        "SingleQubitGateOperation",
        "Rotation",
        "RotateX",
    )
    assert "PragmaNoiseOperation" in OPERATIONS[4].tags
    assert OPERATIONS[4].hqslang == "PragmaDamping"


def test_constructor_validates_fields():
    with pytest.raises(KeyError):
        Operation(GateOperationType.RotateX, qubit=0)
    with pytest.raises(TypeError):
        Operation(GateOperationType.PauliX, qubit=0, theta=1.0)


def test_operations_are_immutable_values():
    op = OPERATIONS[0]
    with pytest.raises(AttributeError):
        op.qubit = 4
    moved = op.replace(qubit=4)
    assert moved.qubit == 4 and op.qubit == 0
    assert moved == Operation(GateOperationType.RotateX, qubit=4, theta="theta")
    assert hash(moved) == hash(Operation(GateOperationType.RotateX, qubit=4, theta="theta"))


def test_operations_pickle():
    op = OPERATIONS[3]
    assert pickle.loads(pickle.dumps(op)) == op
