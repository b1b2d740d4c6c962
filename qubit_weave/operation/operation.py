"""
Generic operation container.

Every operation is an ``Operation`` instance carrying an operation type (a
member of one of the ``*OperationType`` enums) and the field values that type
declares. The enum member is the variant tag: it declares the field schema,
the tags and how the involved qubits are derived, so qubit involvement,
substitution and remapping are implemented once for all variants.
"""

from __future__ import annotations

import operator
from enum import Enum, auto
from typing import (
    Any,
    Dict,
    FrozenSet,
    Iterator,
    Mapping,
    NamedTuple,
    Optional,
    Tuple,
    Union,
)

import jax.numpy as jnp
import numpy as np

from qubit_weave.exceptions import QubitMappingError, SymbolicResolutionError
from qubit_weave.extra.symbolic import Substitutions, SymbolicValue


class FieldKind(Enum):
    """
    Kind of an operation field, drives coercion, remapping and serialization
    """

    Qubit = auto()  # single qubit index
    Qubits = auto()  # ordered sequence of qubit indices
    QubitMapping = auto()  # qubit -> qubit, keys and values are remapped
    QubitKeyed = auto()  # qubit -> plain value, only keys are remapped
    Symbolic = auto()
    Integer = auto()
    Float = auto()
    String = auto()
    Boolean = auto()
    ComplexArray = auto()
    Circuit = auto()


QUBIT_KINDS = (FieldKind.Qubit, FieldKind.Qubits, FieldKind.QubitMapping, FieldKind.QubitKeyed)


class _Required:
    __slots__ = ()

    def __repr__(self) -> str:
        return "REQUIRED"


REQUIRED = _Required()


class FieldSpec(NamedTuple):
    name: str
    kind: FieldKind
    default: Any = REQUIRED


class Involvement(Enum):
    """
    How an operation type reports the qubits it touches
    """

    Fields = auto()  # union of all qubit fields
    All = auto()  # global operation, touches every qubit
    Empty = auto()  # touches no qubit
    Circuit = auto()  # involvement of the nested circuit


class _AllQubits:
    """
    Sentinel for operations acting on every qubit
    """

    __slots__ = ()

    def __repr__(self) -> str:
        return "ALL_QUBITS"

    def __contains__(self, qubit: object) -> bool:
        return True

    def __or__(self, other: object) -> "_AllQubits":
        return self

    __ror__ = __or__

    def __reduce__(self) -> str:
        return "ALL_QUBITS"


ALL_QUBITS = _AllQubits()

InvolvedQubits = Union[FrozenSet[int], _AllQubits]


class OperationTypeMixin:
    """
    Behaviour shared by every operation type enum. Concrete enums set
    ``field_specs``, ``involvement`` and ``extra_tags`` in ``__init__``.
    """

    field_specs: Tuple[FieldSpec, ...]
    involvement: Involvement
    extra_tags: Tuple[str, ...]
    name: str
    # (register field, slot field or None, RegisterType) for operations that
    # read or write a classical register
    register_reference: Optional[Tuple[str, Optional[str], Any]] = None

    @property
    def category(self) -> str:
        return type(self).__name__.removesuffix("Type")

    @property
    def tags(self) -> Tuple[str, ...]:
        return ("Operation", self.category) + self.extra_tags + (self.name,)

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(spec.name for spec in self.field_specs)

    def field_spec(self, name: str) -> FieldSpec:
        for spec in self.field_specs:
            if spec.name == name:
                return spec
        raise KeyError(f"{self.name} has no field '{name}'")


def _coerce(kind: FieldKind, value: Any) -> Any:
    if value is None:
        return None
    match kind:
        case FieldKind.Qubit | FieldKind.Integer:
            return operator.index(value)
        case FieldKind.Qubits:
            return tuple(operator.index(q) for q in value)
        case FieldKind.QubitMapping:
            return {operator.index(k): operator.index(v) for k, v in value.items()}
        case FieldKind.QubitKeyed:
            return {operator.index(k): v for k, v in value.items()}
        case FieldKind.Symbolic:
            return SymbolicValue(value)
        case FieldKind.Float:
            return float(value)
        case FieldKind.String:
            return str(value)
        case FieldKind.Boolean:
            return bool(value)
        case FieldKind.ComplexArray:
            return jnp.asarray(value, dtype=jnp.complex128)
        case FieldKind.Circuit:
            if not hasattr(value, "remap_qubits"):
                raise TypeError(f"Expected a Circuit, got {type(value).__name__}")
            return value
    raise ValueError(f"Unsupported field kind {kind}")


def _freeze(kind: FieldKind, value: Any) -> Any:
    """
    Hashable, comparable form of a field value
    """
    if value is None:
        return None
    if kind is FieldKind.ComplexArray:
        array = np.asarray(value)
        return (array.shape, array.tobytes())
    if kind in (FieldKind.QubitMapping, FieldKind.QubitKeyed):
        return frozenset(value.items())
    return value


class Operation:
    """
    One circuit instruction.

    Parameters
    ----------
    operation_type: OperationTypeMixin
        Variant of the operation, e.g. ``GateOperationType.RotateX``
    **kwargs: Any
        Field values declared by the operation type

    Examples
    --------
    >>> op = Operation(GateOperationType.RotateX, qubit=0, theta="alpha")
    >>> op.involved_qubits()
    frozenset({0})
    >>> op.substitute_parameters({"alpha": 0.5}).theta
    SymbolicValue(0.5)
    """

    __slots__ = ("_operation_type", "_fields")

    def __init__(self, operation_type: OperationTypeMixin, **kwargs: Any) -> None:
        unknown = set(kwargs) - set(operation_type.field_names)
        if unknown:
            raise TypeError(
                f"Unexpected argument(s) {sorted(unknown)} for {operation_type.name}"
            )
        fields: Dict[str, Any] = {}
        for spec in operation_type.field_specs:
            if spec.name in kwargs:
                value = kwargs[spec.name]
            elif spec.default is not REQUIRED:
                value = spec.default
            else:
                raise KeyError(
                    f"The '{spec.name}' argument is required for {operation_type.name}"
                )
            fields[spec.name] = _coerce(spec.kind, value)
        self._operation_type = operation_type
        self._fields = fields

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._fields[name]
        except KeyError:
            raise AttributeError(
                f"{self._operation_type.name} has no field '{name}'"
            ) from None

    def __setattr__(self, name: str, value: Any) -> None:
        if name in Operation.__slots__ and not hasattr(self, "_fields"):
            object.__setattr__(self, name, value)
            return
        raise AttributeError("Operations are immutable, use replace() instead")

    def __getstate__(self):
        return (self._operation_type, self._fields)

    def __setstate__(self, state) -> None:
        object.__setattr__(self, "_operation_type", state[0])
        object.__setattr__(self, "_fields", state[1])

    @property
    def operation_type(self) -> OperationTypeMixin:
        return self._operation_type

    @property
    def hqslang(self) -> str:
        """
        Name of the operation type, e.g. ``"RotateX"``
        """
        return self._operation_type.name

    @property
    def tags(self) -> Tuple[str, ...]:
        return self._operation_type.tags

    @property
    def fields(self) -> Mapping[str, Any]:
        return dict(self._fields)

    def replace(self, **changes: Any) -> "Operation":
        """
        Returns a copy with the given fields replaced
        """
        fields = dict(self._fields)
        fields.update(changes)
        return Operation(self._operation_type, **fields)

    def _items(self, *kinds: FieldKind) -> Iterator[Tuple[FieldSpec, Any]]:
        for spec in self._operation_type.field_specs:
            if spec.kind in kinds and self._fields[spec.name] is not None:
                yield spec, self._fields[spec.name]

    def nested_circuits(self) -> Tuple[Any, ...]:
        return tuple(circuit for _, circuit in self._items(FieldKind.Circuit))

    def qubit_list(self) -> Tuple[int, ...]:
        """
        Qubits of the qubit fields in declaration order, e.g.
        ``(control, target)`` for two qubit gates
        """
        qubits = []
        for spec, value in self._items(FieldKind.Qubit, FieldKind.Qubits):
            if spec.kind is FieldKind.Qubit:
                qubits.append(value)
            else:
                qubits.extend(value)
        return tuple(qubits)

    def involved_qubits(self) -> InvolvedQubits:
        """
        Set of qubits touched by the operation, or ``ALL_QUBITS``
        """
        match self._operation_type.involvement:
            case Involvement.All:
                return ALL_QUBITS
            case Involvement.Empty:
                return frozenset()
            case Involvement.Circuit:
                involved: InvolvedQubits = frozenset()
                for _, circuit in self._items(FieldKind.Circuit):
                    involved = involved | circuit.involved_qubits()
                return involved
        qubits = set(self.qubit_list())
        for spec, value in self._items(FieldKind.QubitMapping, FieldKind.QubitKeyed):
            qubits.update(value.keys())
            if spec.kind is FieldKind.QubitMapping:
                qubits.update(value.values())
        return frozenset(qubits)

    @property
    def is_parametrized(self) -> bool:
        for _, value in self._items(FieldKind.Symbolic):
            if not value.is_float:
                return True
        for _, circuit in self._items(FieldKind.Circuit):
            if circuit.is_parametrized:
                return True
        return False

    def substitute_parameters(self, mapping: Substitutions) -> "Operation":
        """
        Returns an equivalent operation with symbolic parameters resolved.

        Parameters that reference none of the variables in ``mapping`` are
        left untouched; a parameter that references at least one of them has
        to resolve completely.

        Raises
        ------
        SymbolicResolutionError
            If a substituted parameter still has free variables
        """
        changes: Dict[str, Any] = {}
        for spec, value in self._items(FieldKind.Symbolic):
            if value.is_float or not (value.free_symbols & set(mapping)):
                continue
            substituted = value.substitute(mapping)
            if not substituted.is_float:
                raise SymbolicResolutionError(
                    substituted.free_symbols,
                    f"Parameter '{spec.name}' of {self.hqslang} can not be resolved, "
                    f"missing: {', '.join(sorted(substituted.free_symbols))}",
                )
            changes[spec.name] = substituted
        for spec, circuit in self._items(FieldKind.Circuit):
            changes[spec.name] = circuit.substitute_parameters(mapping)
        if not changes:
            return self
        return self.replace(**changes)

    def remap_qubits(self, mapping: Mapping[int, int]) -> "Operation":
        """
        Returns an equivalent operation acting on relabeled qubits.

        Raises
        ------
        QubitMappingError
            If an occurring qubit has no entry in ``mapping``
        """

        def remap(qubit: int) -> int:
            try:
                return mapping[qubit]
            except KeyError:
                raise QubitMappingError(qubit) from None

        changes: Dict[str, Any] = {}
        for spec, value in self._items(*QUBIT_KINDS, FieldKind.Circuit):
            match spec.kind:
                case FieldKind.Qubit:
                    changes[spec.name] = remap(value)
                case FieldKind.Qubits:
                    changes[spec.name] = tuple(remap(q) for q in value)
                case FieldKind.QubitMapping:
                    changes[spec.name] = {remap(k): remap(v) for k, v in value.items()}
                case FieldKind.QubitKeyed:
                    changes[spec.name] = {remap(k): v for k, v in value.items()}
                case FieldKind.Circuit:
                    changes[spec.name] = value.remap_qubits(mapping)
        if not changes:
            return self
        return self.replace(**changes)

    def numeric_parameters(self) -> Dict[str, float]:
        """
        Symbolic fields as floats, fails on unresolved parameters
        """
        return {spec.name: value.value for spec, value in self._items(FieldKind.Symbolic)}

    def unitary_matrix(self) -> jnp.ndarray:
        """
        Unitary matrix of a gate operation with fully numeric parameters
        """
        compute = getattr(self._operation_type, "compute_operator", None)
        if compute is None:
            raise TypeError(f"{self.hqslang} is not a gate operation")
        return compute(len(self.qubit_list()), **self.numeric_parameters())

    def superoperator(self) -> jnp.ndarray:
        compute = getattr(self._operation_type, "compute_superoperator", None)
        if compute is None:
            raise TypeError(f"{self.hqslang} is not a noise operation")
        return compute(**self.numeric_parameters())

    def probability(self) -> SymbolicValue:
        compute = getattr(self._operation_type, "compute_probability", None)
        if compute is None:
            raise TypeError(f"{self.hqslang} is not a noise operation")
        return compute(**{spec.name: value for spec, value in self._items(FieldKind.Symbolic)})

    def powercf(self, power: Union[SymbolicValue, float, str]) -> "Operation":
        """
        Noise operation with its gate time scaled by ``power``
        """
        if "PragmaNoiseOperation" not in self.tags:
            raise TypeError(f"{self.hqslang} is not a noise operation")
        return self.replace(gate_time=SymbolicValue(power) * self.gate_time)

    def _frozen(self) -> Tuple[Any, ...]:
        return tuple(
            _freeze(spec.kind, self._fields[spec.name])
            for spec in self._operation_type.field_specs
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Operation):
            return NotImplemented
        return self._operation_type is other._operation_type and self._frozen() == other._frozen()

    def __hash__(self) -> int:
        return hash((self._operation_type, self._frozen()))

    def __repr__(self) -> str:
        arguments = ", ".join(f"{key}={value!r}" for key, value in self._fields.items())
        return f"{self.hqslang}({arguments})"
