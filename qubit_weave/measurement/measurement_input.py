"""
Description of what to measure: the circuits to run and the expectation
values to derive from their classical registers.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from qubit_weave.circuit import Circuit
from qubit_weave.exceptions import RegisterConflictError
from qubit_weave.extra.symbolic import SymbolicLike, SymbolicValue, Substitutions
from qubit_weave.measurement.calibration import ReadoutCalibration
from qubit_weave.operation import RegisterType

logger = logging.getLogger(__name__)

PAULI_PRODUCT_VARIABLE = "pauli_product_{}"
_PAULI_PRODUCT_PATTERN = re.compile(r"^pauli_product_(\d+)$")


@dataclass(frozen=True)
class PauliProduct:
    """
    Product of Z eigenvalues of ``qubits``, read from the bit register
    ``readout`` of circuit ``circuit_index``.

    Attributes
    ----------
    circuit_index : int
        Index of the circuit in ``MeasurementInput.circuits``
    readout : str
        Bit register holding the measured bits
    qubits : Tuple[int, ...]
        Qubits taking part in the product
    slots : Optional[Tuple[int, ...]]
        Register slot of each qubit, the qubit index itself when omitted
    negated : Tuple[int, ...]
        Qubits whose bit is flipped before the parity is taken
    """

    circuit_index: int
    readout: str
    qubits: Tuple[int, ...]
    slots: Optional[Tuple[int, ...]] = None
    negated: Tuple[int, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "qubits", tuple(int(q) for q in self.qubits))
        object.__setattr__(self, "negated", tuple(int(q) for q in self.negated))
        if self.slots is not None:
            object.__setattr__(self, "slots", tuple(int(s) for s in self.slots))
            if len(self.slots) != len(self.qubits):
                raise ValueError(
                    f"Got {len(self.slots)} slots for {len(self.qubits)} qubits"
                )
        if len(set(self.qubits)) != len(self.qubits):
            raise ValueError(f"Duplicate qubits in Pauli product {self.qubits}")
        if len(set(self.register_slots)) != len(self.register_slots):
            raise ValueError(f"Duplicate slots in Pauli product {self.register_slots}")
        stray = set(self.negated) - set(self.qubits)
        if stray:
            raise ValueError(f"Negated qubits {sorted(stray)} are not part of the product")

    @property
    def register_slots(self) -> Tuple[int, ...]:
        return self.qubits if self.slots is None else self.slots

    @property
    def negated_slots(self) -> Tuple[int, ...]:
        negated = set(self.negated)
        return tuple(
            slot for qubit, slot in zip(self.qubits, self.register_slots) if qubit in negated
        )


@dataclass(frozen=True)
class LinearExpectationValue:
    """
    ``constant + sum(coefficient * pauli_product[index])`` over ``terms``
    """

    terms: Mapping[int, SymbolicValue]
    constant: SymbolicValue = field(default_factory=SymbolicValue)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "terms",
            {int(k): SymbolicValue(v) for k, v in self.terms.items()},
        )
        object.__setattr__(self, "constant", SymbolicValue(self.constant))

    def substitute(self, mapping: Substitutions) -> "LinearExpectationValue":
        return LinearExpectationValue(
            {index: value.substitute(mapping) for index, value in self.terms.items()},
            self.constant.substitute(mapping),
        )


@dataclass(frozen=True)
class SymbolicExpectationValue:
    """
    Arbitrary expression over ``pauli_product_<index>`` variables
    """

    expression: SymbolicValue

    def __post_init__(self) -> None:
        object.__setattr__(self, "expression", SymbolicValue(self.expression))

    @property
    def product_indices(self) -> Tuple[int, ...]:
        indices = []
        for name in self.expression.free_symbols:
            match = _PAULI_PRODUCT_PATTERN.match(name)
            if match:
                indices.append(int(match.group(1)))
        return tuple(sorted(indices))


@dataclass(frozen=True)
class CheatedExpectationValue:
    """
    Value read directly from element ``index`` of row ``row`` of the float or
    complex register ``readout`` of circuit ``circuit_index``
    """

    circuit_index: int
    readout: str
    row: int = 0
    index: int = 0


class MeasurementInput:
    """
    Circuits to execute together with the expectation values derived from
    their results.

    Parameters
    ----------
    circuits: Sequence[Circuit]
        Circuits to execute, usually differing in their final basis rotations
    constant_circuit: Optional[Circuit]
        Circuit prepended to every circuit before execution

    Examples
    --------
    >>> measurement_input = MeasurementInput([circuit])
    >>> z0 = measurement_input.add_pauli_product(PauliProduct(0, "ro", (0,)))
    >>> measurement_input.add_linear_exp_val("energy", {z0: "0.5 * h"})
    """

    def __init__(
        self, circuits: Sequence[Circuit], constant_circuit: Optional[Circuit] = None
    ) -> None:
        circuits = tuple(circuits)
        for circuit in circuits + ((constant_circuit,) if constant_circuit is not None else ()):
            if not isinstance(circuit, Circuit):
                raise TypeError(f"Expected a Circuit, got {type(circuit).__name__}")
        self._circuits = circuits
        self._constant_circuit = constant_circuit
        self._pauli_products: List[PauliProduct] = []
        self._linear: Dict[str, LinearExpectationValue] = {}
        self._symbolic: Dict[str, SymbolicExpectationValue] = {}
        self._cheated: Dict[str, CheatedExpectationValue] = {}
        self._calibrations: Dict[str, ReadoutCalibration] = {}

    @property
    def circuits(self) -> Tuple[Circuit, ...]:
        return self._circuits

    @property
    def constant_circuit(self) -> Optional[Circuit]:
        return self._constant_circuit

    @property
    def pauli_products(self) -> Tuple[PauliProduct, ...]:
        return tuple(self._pauli_products)

    @property
    def linear_exp_vals(self) -> Mapping[str, LinearExpectationValue]:
        return MappingProxyType(self._linear)

    @property
    def symbolic_exp_vals(self) -> Mapping[str, SymbolicExpectationValue]:
        return MappingProxyType(self._symbolic)

    @property
    def cheated_exp_vals(self) -> Mapping[str, CheatedExpectationValue]:
        return MappingProxyType(self._cheated)

    @property
    def calibrations(self) -> Mapping[str, ReadoutCalibration]:
        return MappingProxyType(self._calibrations)

    @property
    def definition_names(self) -> Tuple[str, ...]:
        return tuple(self._linear) + tuple(self._symbolic) + tuple(self._cheated)

    def circuits_to_run(self) -> List[Circuit]:
        """
        Circuits as handed to a backend, the constant circuit prepended
        """
        if self._constant_circuit is None:
            return list(self._circuits)
        return [self._constant_circuit + circuit for circuit in self._circuits]

    def _circuit(self, index: int) -> Circuit:
        if not 0 <= index < len(self._circuits):
            raise IndexError(
                f"Circuit index {index} out of range for {len(self._circuits)} circuits"
            )
        circuit = self._circuits[index]
        if self._constant_circuit is not None:
            return self._constant_circuit + circuit
        return circuit

    def _check_register(
        self, circuit_index: int, readout: str, allowed: Tuple[RegisterType, ...]
    ) -> None:
        declared = self._circuit(circuit_index).registers.get(readout)
        if declared is not None and declared.register_type not in allowed:
            raise RegisterConflictError(
                readout,
                f"Register '{readout}' of circuit {circuit_index} is a "
                f"{declared.register_type.value} register",
            )

    def _check_name(self, name: str) -> None:
        if name in self.definition_names:
            raise ValueError(f"Expectation value '{name}' is already defined")

    def add_pauli_product(self, product: PauliProduct) -> int:
        """
        Adds a Pauli product and returns its index

        Raises
        ------
        RegisterConflictError
            If ``readout`` is declared as a non-bit register, or a slot lies
            outside the declared register
        """
        self._check_register(product.circuit_index, product.readout, (RegisterType.Bit,))
        declared = self._circuit(product.circuit_index).registers.get(product.readout)
        if declared is not None:
            outside = [slot for slot in product.register_slots if not 0 <= slot < declared.length]
            if outside:
                raise RegisterConflictError(
                    product.readout,
                    f"Slots {outside} are out of range for register "
                    f"'{product.readout}' of length {declared.length}",
                )
        self._pauli_products.append(product)
        return len(self._pauli_products) - 1

    def add_linear_exp_val(
        self,
        name: str,
        terms: Mapping[int, SymbolicLike],
        constant: SymbolicLike = 0.0,
    ) -> None:
        self._check_name(name)
        definition = LinearExpectationValue(terms, constant)
        missing = [index for index in definition.terms if not 0 <= index < len(self._pauli_products)]
        if missing:
            raise ValueError(f"Unknown Pauli product indices {missing} in '{name}'")
        self._linear[name] = definition

    def add_symbolic_exp_val(self, name: str, expression: SymbolicLike) -> None:
        self._check_name(name)
        definition = SymbolicExpectationValue(expression)
        missing = [
            index for index in definition.product_indices if index >= len(self._pauli_products)
        ]
        if missing:
            raise ValueError(f"Unknown Pauli product indices {missing} in '{name}'")
        self._symbolic[name] = definition

    def add_cheated_exp_val(
        self, name: str, circuit_index: int, readout: str, row: int = 0, index: int = 0
    ) -> None:
        self._check_name(name)
        self._check_register(circuit_index, readout, (RegisterType.Float, RegisterType.Complex))
        self._cheated[name] = CheatedExpectationValue(circuit_index, readout, row, index)

    def set_calibration(self, register: str, calibration: Any) -> None:
        if not isinstance(calibration, ReadoutCalibration):
            calibration = ReadoutCalibration(calibration)
        self._calibrations[register] = calibration

    def substitute_parameters(self, mapping: Substitutions) -> "MeasurementInput":
        """
        New measurement input with the parameters of every circuit and the
        linear coefficients substituted

        Raises
        ------
        SymbolicResolutionError
            If a circuit parameter can not be resolved
        """
        constant = self._constant_circuit
        substituted = MeasurementInput(
            [circuit.substitute_parameters(mapping) for circuit in self._circuits],
            constant_circuit=None if constant is None else constant.substitute_parameters(mapping),
        )
        substituted._pauli_products = list(self._pauli_products)
        substituted._linear = {
            name: definition.substitute(mapping) for name, definition in self._linear.items()
        }
        substituted._symbolic = dict(self._symbolic)
        substituted._cheated = dict(self._cheated)
        substituted._calibrations = dict(self._calibrations)
        return substituted

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MeasurementInput):
            return NotImplemented
        return (
            self._circuits == other._circuits
            and self._constant_circuit == other._constant_circuit
            and self._pauli_products == other._pauli_products
            and self._linear == other._linear
            and self._symbolic == other._symbolic
            and self._cheated == other._cheated
            and self._calibrations == other._calibrations
        )

    def __repr__(self) -> str:
        return (
            f"MeasurementInput({len(self._circuits)} circuits, "
            f"{len(self._pauli_products)} Pauli products, "
            f"definitions={list(self.definition_names)})"
        )

    def to_dict(self) -> Dict[str, Any]:
        from qubit_weave.serialization import measurement_input_to_dict

        return measurement_input_to_dict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MeasurementInput":
        from qubit_weave.serialization import measurement_input_from_dict

        return measurement_input_from_dict(data)

    def to_json(self) -> str:
        from qubit_weave.serialization import measurement_input_to_json

        return measurement_input_to_json(self)

    @classmethod
    def from_json(cls, text: str) -> "MeasurementInput":
        from qubit_weave.serialization import measurement_input_from_json

        return measurement_input_from_json(text)
