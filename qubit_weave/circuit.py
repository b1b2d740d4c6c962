"""
Ordered, immutable sequence of operations with a register table.

Every transform (appending, concatenation, substitution, remapping,
overrotation) returns a new ``Circuit`` and leaves the original untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import (
    Any,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Set,
    Union,
    overload,
)

import jax

from qubit_weave.exceptions import RegisterConflictError
from qubit_weave.extra.symbolic import Substitutions, SymbolicValue
from qubit_weave.operation import (
    ALL_QUBITS,
    DefinitionOperationType,
    InvolvedQubits,
    Operation,
    PragmaOperationType,
    RegisterType,
)
from qubit_weave.qubit_weave import Config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegisterSpec:
    """
    Declaration of a classical register

    Attributes
    ----------
    register_type : RegisterType
        Element type of the register
    length : int
        Number of elements per row
    is_output : bool
        Whether a backend has to return the register
    """

    register_type: RegisterType
    length: int
    is_output: bool = False

    def compatible(self, other: "RegisterSpec") -> bool:
        return self.register_type is other.register_type and self.length == other.length


def _register_spec(op: Operation) -> Optional[RegisterSpec]:
    register_type = getattr(op.operation_type, "register_type", None)
    if op.operation_type in DefinitionOperationType and register_type is not None:
        return RegisterSpec(register_type, op.length, op.is_output)
    return None


def _check_references(op: Operation, registers: Mapping[str, RegisterSpec]) -> None:
    """
    Checks the register ``op`` writes to or reads from, and the references of
    the circuits nested in ``op``, against ``registers``

    Raises
    ------
    RegisterConflictError
        If a register is undeclared, of the wrong type or too short
    """
    for nested in op.nested_circuits():
        scope = {**nested.registers, **registers}
        for inner in nested:
            if _register_spec(inner) is None:
                _check_references(inner, scope)

    reference = op.operation_type.register_reference
    if reference is None:
        return
    register_field, slot_field, register_type = reference
    register = getattr(op, register_field)
    declared = registers.get(register)
    if declared is None:
        raise RegisterConflictError(
            register, f"{op.hqslang} references undeclared register '{register}'"
        )
    if declared.register_type is not register_type:
        raise RegisterConflictError(
            register,
            f"{op.hqslang} needs a {register_type.value} register, "
            f"'{register}' is declared as {declared.register_type.value}",
        )
    if slot_field is not None:
        slot = getattr(op, slot_field)
        if not 0 <= slot < declared.length:
            raise RegisterConflictError(
                register,
                f"Slot {slot} is out of range for register '{register}' "
                f"of length {declared.length}",
            )


class Circuit:
    """
    Ordered sequence of operations plus the table of declared registers.

    Parameters
    ----------
    operations: Iterable[Operation]
        Operations in execution order

    Examples
    --------
    >>> circuit = Circuit()
    >>> circuit += Operation(DefinitionOperationType.DefinitionBit, name="ro", length=1, is_output=True)
    >>> circuit += Operation(GateOperationType.Hadamard, qubit=0)
    >>> circuit += Operation(MeasurementOperationType.MeasureQubit, qubit=0, readout="ro", readout_index=0)

    Circuits nested in another operation are built with ``Circuit.body`` so
    that they can write to registers of the circuit they end up in:

    >>> branch = Circuit.body([Operation(GateOperationType.PauliX, qubit=0)])
    """

    __slots__ = ("_operations", "_registers", "_nested")

    def __init__(self, operations: Iterable[Operation] = ()) -> None:
        self._operations: tuple = ()
        self._registers: Dict[str, RegisterSpec] = {}
        self._nested = False
        self._operations = self._extend(operations)

    @classmethod
    def body(cls, operations: Iterable[Operation] = ()) -> "Circuit":
        """
        Circuit meant to be nested in another operation, e.g. the branch of
        a ``PragmaConditional``.

        Register declarations are still checked for conflicts, but register
        references are only resolved once the enclosing operation is added to
        a circuit, against that circuit's registers.
        """
        new = cls.__new__(cls)
        new._operations = ()
        new._registers = {}
        new._nested = True
        new._operations = new._extend(operations)
        return new

    def _extend(self, operations: Iterable[Operation]) -> tuple:
        """
        Validates the operations against the register table, registering new
        declarations. Only used while the circuit is being built.
        """
        appended: List[Operation] = list(self._operations)
        for op in operations:
            if not isinstance(op, Operation):
                raise TypeError(f"Can not add {type(op).__name__} to a Circuit")
            spec = _register_spec(op)
            if spec is not None:
                existing = self._registers.get(op.name)
                if existing is not None:
                    if not existing.compatible(spec):
                        raise RegisterConflictError(
                            op.name,
                            f"Register '{op.name}' is already declared as "
                            f"{existing.register_type.value}[{existing.length}], "
                            f"can not redeclare it as {spec.register_type.value}[{spec.length}]",
                        )
                    logger.debug("Skipping repeated declaration of register '%s'", op.name)
                    continue
                self._registers[op.name] = spec
            elif not self._nested:
                _check_references(op, self._registers)
            appended.append(op)
        return tuple(appended)

    def add(self, other: Union[Operation, "Circuit", Iterable[Operation]]) -> "Circuit":
        """
        Returns a new circuit with ``other`` appended

        Raises
        ------
        RegisterConflictError
            If a register would be declared twice with different type or
            length, or an operation refers to a register that is not
            declared or does not fit
        """
        if isinstance(other, Operation):
            operations: Iterable[Operation] = (other,)
        elif isinstance(other, Circuit):
            operations = other._operations
        else:
            operations = other
        new = Circuit.__new__(Circuit)
        new._operations = self._operations
        new._registers = dict(self._registers)
        new._nested = self._nested
        new._operations = new._extend(operations)
        return new

    def __add__(self, other: Any) -> "Circuit":
        if not isinstance(other, (Operation, Circuit)):
            return NotImplemented
        return self.add(other)

    @property
    def operations(self) -> tuple:
        return self._operations

    @property
    def registers(self) -> Mapping[str, RegisterSpec]:
        return MappingProxyType(self._registers)

    def __len__(self) -> int:
        return len(self._operations)

    def __iter__(self) -> Iterator[Operation]:
        return iter(self._operations)

    @overload
    def __getitem__(self, index: int) -> Operation: ...

    @overload
    def __getitem__(self, index: slice) -> "Circuit": ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            # The slice keeps the register table of the whole circuit
            return self._rebuild(list(self._operations[index]))
        return self._operations[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Circuit):
            return NotImplemented
        return self._operations == other._operations

    def __hash__(self) -> int:
        return hash(self._operations)

    def __repr__(self) -> str:
        body = "\n".join(f"  {op!r}" for op in self._operations)
        return f"Circuit(\n{body}\n)" if body else "Circuit()"

    def definitions(self) -> List[Operation]:
        return [op for op in self._operations if op.operation_type in DefinitionOperationType]

    def operations_on_qubit(self, qubit: int) -> List[Operation]:
        """
        Operations touching ``qubit``, global operations included
        """
        return [op for op in self._operations if qubit in op.involved_qubits()]

    def filter_by_tag(self, tag: str) -> List[Operation]:
        return [op for op in self._operations if tag in op.tags]

    def count_occurrences(self, tags: Sequence[str]) -> int:
        """
        Number of operations carrying at least one of ``tags``
        """
        return sum(1 for op in self._operations if any(tag in op.tags for tag in tags))

    def get_operation_types(self) -> Set[str]:
        return {op.hqslang for op in self._operations}

    def involved_qubits(self) -> InvolvedQubits:
        involved: InvolvedQubits = frozenset()
        for op in self._operations:
            involved = involved | op.involved_qubits()
            if involved is ALL_QUBITS:
                break
        return involved

    @property
    def is_parametrized(self) -> bool:
        return any(op.is_parametrized for op in self._operations)

    def substitute_parameters(self, mapping: Substitutions) -> "Circuit":
        """
        Substitutes symbolic parameters of every operation.

        ``InputSymbolic`` definitions extend the mapping for the operations
        that follow them. Explicit entries in ``mapping`` take precedence.

        Raises
        ------
        SymbolicResolutionError
            If an operation can not be resolved; the circuit is left as is
        """
        variables: Dict[str, Any] = {}
        substituted = []
        for op in self._operations:
            if op.operation_type is DefinitionOperationType.InputSymbolic:
                variables[op.name] = op.input
            current = {**variables, **mapping}
            substituted.append(op.substitute_parameters(current))
        logger.debug("Substituted %d operations", len(substituted))
        return self._rebuild(substituted)

    def remap_qubits(self, mapping: Mapping[int, int]) -> "Circuit":
        """
        Relabels the qubits of every operation

        Raises
        ------
        QubitMappingError
            If an occurring qubit is missing from ``mapping``; the circuit is
            left as is
        """
        return self._rebuild([op.remap_qubits(mapping) for op in self._operations])

    def _rebuild(self, operations: List[Operation]) -> "Circuit":
        # Registers are unaffected by substitution and remapping
        new = Circuit.__new__(Circuit)
        new._operations = tuple(operations)
        new._registers = dict(self._registers)
        new._nested = self._nested
        return new

    def overrotate(self) -> "Circuit":
        """
        Applies every ``PragmaOverrotation`` to the next gate with the same
        name acting on the same qubits and drops the pragmas.

        The angle ``theta`` of the gate is shifted by ``amplitude`` times a
        normal sample with standard deviation ``variance`` drawn from the
        ``Config`` random key. With overrotation disabled in ``Config`` the
        pragmas are dropped and gates are left untouched.
        """
        config = Config()
        operations = list(self._operations)
        pending = []
        result: List[Operation] = []
        for op in operations:
            if op.operation_type is PragmaOperationType.PragmaOverrotation:
                pending.append(op)
                continue
            match = next(
                (
                    pragma
                    for pragma in pending
                    if pragma.gate_hqslang == op.hqslang and pragma.qubits == op.qubit_list()
                ),
                None,
            )
            if match is not None:
                pending.remove(match)
                if config.overrotation and "theta" in op.fields:
                    sample = float(jax.random.normal(config.random_key))
                    shift = match.amplitude * sample * match.variance
                    op = op.replace(theta=SymbolicValue(op.theta) + shift)
            result.append(op)
        for pragma in pending:
            logger.warning(
                "No %s gate on qubits %s follows the overrotation pragma, dropping it",
                pragma.gate_hqslang,
                pragma.qubits,
            )
        return self._rebuild(result)

    def to_dict(self) -> Dict[str, Any]:
        from qubit_weave.serialization import circuit_to_dict

        return circuit_to_dict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Circuit":
        from qubit_weave.serialization import circuit_from_dict

        return circuit_from_dict(data)

    def to_json(self) -> str:
        from qubit_weave.serialization import circuit_to_json

        return circuit_to_json(self)

    @classmethod
    def from_json(cls, text: str) -> "Circuit":
        from qubit_weave.serialization import circuit_from_json

        return circuit_from_json(text)
