"""
Versioned dictionary and JSON form of operations, circuits and measurement
inputs.

An operation is stored as ``{"type": <operation type name>, <field>: ...}``
with the field names declared by its operation type, a circuit as
``{"schema_version": ..., "operations": [...]}``. Fields added by later
versions carry defaults, so older blobs keep deserializing. Operation types
that are not registered are refused with ``UnknownOperationError``.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Dict, Mapping

import numpy as np

from qubit_weave.circuit import Circuit
from qubit_weave.exceptions import SerializationError, UnknownOperationError
from qubit_weave.extra.symbolic import SymbolicValue
from qubit_weave.operation import FieldKind, Operation, operation_type_from_name

if TYPE_CHECKING:
    from qubit_weave.measurement.measurement_input import MeasurementInput

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


def _check_version(data: Mapping[str, Any], what: str) -> int:
    version = data.get("schema_version", SCHEMA_VERSION)
    if not isinstance(version, int) or isinstance(version, bool):
        raise SerializationError(f"Invalid schema_version {version!r} for {what}")
    if version > SCHEMA_VERSION:
        raise SerializationError(
            f"{what} was written with schema version {version}, "
            f"this version of qubit_weave reads up to {SCHEMA_VERSION}"
        )
    return version


def complex_array_to_dict(array: Any) -> Dict[str, Any]:
    array = np.asarray(array, dtype=np.complex128)
    return {
        "real": array.real.ravel().tolist(),
        "imag": array.imag.ravel().tolist(),
        "shape": list(array.shape),
    }


def complex_array_from_dict(data: Mapping[str, Any]) -> np.ndarray:
    try:
        real = np.asarray(data["real"], dtype=np.float64)
        imag = np.asarray(data["imag"], dtype=np.float64)
        return (real + 1j * imag).reshape(tuple(data["shape"]))
    except (KeyError, TypeError, ValueError) as exc:
        raise SerializationError(f"Malformed complex array: {exc}") from exc


def _encode_field(kind: FieldKind, value: Any) -> Any:
    if value is None:
        return None
    match kind:
        case FieldKind.Qubits:
            return list(value)
        case FieldKind.QubitMapping | FieldKind.QubitKeyed:
            # JSON object keys are strings
            return {str(qubit): item for qubit, item in value.items()}
        case FieldKind.Symbolic:
            return value.to_json()
        case FieldKind.ComplexArray:
            return complex_array_to_dict(value)
        case FieldKind.Circuit:
            return circuit_to_dict(value)
    return value


def _decode_field(kind: FieldKind, value: Any) -> Any:
    if value is None:
        return None
    match kind:
        case FieldKind.QubitMapping | FieldKind.QubitKeyed:
            return {int(qubit): item for qubit, item in value.items()}
        case FieldKind.Symbolic:
            return SymbolicValue.from_json(value)
        case FieldKind.ComplexArray:
            return complex_array_from_dict(value)
        case FieldKind.Circuit:
            return circuit_from_dict(value, nested=True)
    return value


def operation_to_dict(operation: Operation) -> Dict[str, Any]:
    data: Dict[str, Any] = {"type": operation.hqslang}
    for spec in operation.operation_type.field_specs:
        data[spec.name] = _encode_field(spec.kind, operation.fields[spec.name])
    return data


def operation_from_dict(data: Mapping[str, Any]) -> Operation:
    """
    Rebuilds an operation from its dictionary form

    Raises
    ------
    UnknownOperationError
        If the operation type is not registered
    SerializationError
        If the fields do not match the operation type
    """
    if not isinstance(data, Mapping) or "type" not in data:
        raise SerializationError(f"Operation entry without 'type': {data!r}")
    operation_type = operation_type_from_name(data["type"])
    fields = {}
    for spec in operation_type.field_specs:
        if spec.name in data:
            fields[spec.name] = _decode_field(spec.kind, data[spec.name])
    unknown = set(data) - set(operation_type.field_names) - {"type"}
    if unknown:
        raise SerializationError(
            f"Unexpected field(s) {sorted(unknown)} for {operation_type.name}"
        )
    try:
        return Operation(operation_type, **fields)
    except (KeyError, TypeError, ValueError) as exc:
        raise SerializationError(f"Invalid {operation_type.name} entry: {exc}") from exc


def circuit_to_dict(circuit: Circuit) -> Dict[str, Any]:
    return {
        "schema_version": SCHEMA_VERSION,
        "operations": [operation_to_dict(op) for op in circuit],
    }


def circuit_from_dict(data: Mapping[str, Any], nested: bool = False) -> Circuit:
    """
    Rebuilds a circuit, validating its register table on the way. With
    ``nested`` the circuit is built with ``Circuit.body`` and its register
    references are resolved by the enclosing circuit.

    Raises
    ------
    UnknownOperationError
        If any operation type is not registered; nothing is dropped
    SerializationError
        If the schema version is newer than supported or the data is malformed
    """
    if not isinstance(data, Mapping):
        raise SerializationError(f"Expected a circuit mapping, got {type(data).__name__}")
    _check_version(data, "Circuit")
    entries = data.get("operations")
    if not isinstance(entries, list):
        raise SerializationError("Circuit data has no 'operations' list")
    operations = [operation_from_dict(entry) for entry in entries]
    logger.debug("Deserialized circuit with %d operations", len(operations))
    return Circuit.body(operations) if nested else Circuit(operations)


def circuit_to_json(circuit: Circuit) -> str:
    return json.dumps(circuit_to_dict(circuit))


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise SerializationError(f"Invalid JSON: {exc}") from exc


def circuit_from_json(text: str) -> Circuit:
    return circuit_from_dict(_loads(text))


def measurement_input_to_dict(measurement_input: "MeasurementInput") -> Dict[str, Any]:
    constant = measurement_input.constant_circuit
    return {
        "schema_version": SCHEMA_VERSION,
        "circuits": [circuit_to_dict(circuit) for circuit in measurement_input.circuits],
        "constant_circuit": None if constant is None else circuit_to_dict(constant),
        "pauli_products": [
            {
                "circuit_index": product.circuit_index,
                "readout": product.readout,
                "qubits": list(product.qubits),
                "slots": None if product.slots is None else list(product.slots),
                "negated": list(product.negated),
            }
            for product in measurement_input.pauli_products
        ],
        "linear_exp_vals": {
            name: {
                "terms": {str(index): value.to_json() for index, value in definition.terms.items()},
                "constant": definition.constant.to_json(),
            }
            for name, definition in measurement_input.linear_exp_vals.items()
        },
        "symbolic_exp_vals": {
            name: definition.expression.to_json()
            for name, definition in measurement_input.symbolic_exp_vals.items()
        },
        "cheated_exp_vals": {
            name: {
                "circuit_index": definition.circuit_index,
                "readout": definition.readout,
                "row": definition.row,
                "index": definition.index,
            }
            for name, definition in measurement_input.cheated_exp_vals.items()
        },
        "calibrations": {
            register: np.asarray(calibration.matrix).tolist()
            for register, calibration in measurement_input.calibrations.items()
        },
    }


def measurement_input_from_dict(data: Mapping[str, Any]) -> "MeasurementInput":
    from qubit_weave.measurement.calibration import ReadoutCalibration
    from qubit_weave.measurement.measurement_input import (
        MeasurementInput,
        PauliProduct,
    )

    if not isinstance(data, Mapping):
        raise SerializationError(
            f"Expected a measurement input mapping, got {type(data).__name__}"
        )
    _check_version(data, "MeasurementInput")
    try:
        constant = data.get("constant_circuit")
        measurement_input = MeasurementInput(
            [circuit_from_dict(circuit) for circuit in data["circuits"]],
            constant_circuit=None if constant is None else circuit_from_dict(constant),
        )
        for product in data.get("pauli_products", []):
            measurement_input.add_pauli_product(PauliProduct(**product))
        for name, definition in data.get("linear_exp_vals", {}).items():
            measurement_input.add_linear_exp_val(
                name,
                {int(index): value for index, value in definition["terms"].items()},
                constant=definition.get("constant", 0.0),
            )
        for name, expression in data.get("symbolic_exp_vals", {}).items():
            measurement_input.add_symbolic_exp_val(name, expression)
        for name, definition in data.get("cheated_exp_vals", {}).items():
            measurement_input.add_cheated_exp_val(name, **definition)
        for register, matrix in data.get("calibrations", {}).items():
            calibration = ReadoutCalibration(matrix)
            measurement_input.set_calibration(register, calibration)
    except (IndexError, KeyError, TypeError, ValueError) as exc:
        if isinstance(exc, SerializationError):
            raise
        raise SerializationError(f"Malformed measurement input: {exc}") from exc
    return measurement_input


def measurement_input_to_json(measurement_input: "MeasurementInput") -> str:
    return json.dumps(measurement_input_to_dict(measurement_input))


def measurement_input_from_json(text: str) -> "MeasurementInput":
    return measurement_input_from_dict(_loads(text))


__all__ = [
    "SCHEMA_VERSION",
    "UnknownOperationError",
    "circuit_from_dict",
    "circuit_from_json",
    "circuit_to_dict",
    "circuit_to_json",
    "complex_array_from_dict",
    "complex_array_to_dict",
    "measurement_input_from_dict",
    "measurement_input_from_json",
    "measurement_input_to_dict",
    "measurement_input_to_json",
    "operation_from_dict",
    "operation_to_dict",
]
