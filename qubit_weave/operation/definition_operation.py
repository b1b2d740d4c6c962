from enum import Enum
from typing import Optional, Tuple

from qubit_weave.operation.operation import (
    FieldKind,
    FieldSpec,
    Involvement,
    OperationTypeMixin,
)


class RegisterType(Enum):
    """
    Element type of a classical register
    """

    Bit = "bit"
    Float = "float"
    Complex = "complex"


_REGISTER = (
    ("name", FieldKind.String),
    ("length", FieldKind.Integer),
    ("is_output", FieldKind.Boolean, False),
)


class DefinitionOperationType(OperationTypeMixin, Enum):
    """
    DefinitionOperationType

    Declares classical registers. ``DefinitionBit``, ``DefinitionFloat`` and
    ``DefinitionComplex`` declare a register ``name`` of ``length`` elements;
    ``is_output`` marks registers a backend has to return.

    ``InputSymbolic`` binds the symbolic variable ``name`` to ``input`` for
    every operation that follows it in the circuit when the circuit
    parameters are substituted.

    >>> op = Operation(DefinitionOperationType.DefinitionBit, name="ro", length=2, is_output=True)
    """

    DefinitionBit = (_REGISTER, RegisterType.Bit)
    DefinitionFloat = (_REGISTER, RegisterType.Float)
    DefinitionComplex = (_REGISTER, RegisterType.Complex)
    InputSymbolic = ((("name", FieldKind.String), ("input", FieldKind.Float)), None)

    def __init__(
        self, fields: Tuple[Tuple, ...], register_type: Optional[RegisterType]
    ) -> None:
        self.field_specs = tuple(FieldSpec(*field) for field in fields)
        self.involvement = Involvement.Empty
        self.extra_tags = ()
        self.register_type = register_type
