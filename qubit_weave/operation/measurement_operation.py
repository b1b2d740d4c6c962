from enum import Enum
from typing import Tuple

from qubit_weave.operation.definition_operation import RegisterType
from qubit_weave.operation.operation import (
    FieldKind,
    FieldSpec,
    Involvement,
    OperationTypeMixin,
)

_READOUT = (("readout", FieldKind.String),)
_CIRCUIT = (("circuit", FieldKind.Circuit, None),)
_PRAGMA = ("PragmaOperation",)


class MeasurementOperationType(OperationTypeMixin, Enum):
    """
    MeasurementOperationType

    Operations writing into classical registers.

    MeasureQubit
    ------------
    Projective measurement of ``qubit`` stored in slot ``readout_index`` of
    the bit register ``readout``.

    PragmaRepeatedMeasurement
    -------------------------
    Measures every qubit ``number_measurements`` times into ``readout``;
    ``qubit_mapping`` optionally maps qubits to register slots.

    PragmaGetStateVector / PragmaGetDensityMatrix
    ---------------------------------------------
    Simulator-only readout of the state (after the optional ``circuit``)
    into the complex register ``readout``.

    PragmaGetOccupationProbability
    ------------------------------
    Occupation probabilities of every qubit in the float register ``readout``.

    PragmaGetPauliProduct
    ---------------------
    Expectation value of the Pauli product described by ``qubit_paulis``
    (qubit -> 0: I, 1: X, 2: Y, 3: Z) in the float register ``readout``.
    """

    MeasureQubit = (
        (("qubit", FieldKind.Qubit),) + _READOUT + (("readout_index", FieldKind.Integer),),
        Involvement.Fields,
        (),
        RegisterType.Bit,
    )
    PragmaRepeatedMeasurement = (
        _READOUT
        + (
            ("number_measurements", FieldKind.Integer),
            ("qubit_mapping", FieldKind.QubitKeyed, None),
        ),
        Involvement.All,
        _PRAGMA,
        RegisterType.Bit,
    )
    PragmaGetStateVector = (
        _READOUT + _CIRCUIT,
        Involvement.All,
        _PRAGMA + ("StateVector",),
        RegisterType.Complex,
    )
    PragmaGetDensityMatrix = (
        _READOUT + _CIRCUIT,
        Involvement.All,
        _PRAGMA + ("DensityMatrix",),
        RegisterType.Complex,
    )
    PragmaGetOccupationProbability = (
        _READOUT + _CIRCUIT,
        Involvement.All,
        _PRAGMA,
        RegisterType.Float,
    )
    PragmaGetPauliProduct = (
        (("qubit_paulis", FieldKind.QubitKeyed),) + _READOUT + _CIRCUIT,
        Involvement.All,
        _PRAGMA,
        RegisterType.Float,
    )

    def __init__(
        self,
        fields: Tuple[Tuple, ...],
        involvement: Involvement,
        tags: Tuple[str, ...],
        register_type: RegisterType,
    ) -> None:
        self.field_specs = tuple(FieldSpec(*field) for field in fields)
        self.involvement = involvement
        self.extra_tags = tags
        self.register_type = register_type
        slot_field = "readout_index" if "readout_index" in self.field_names else None
        self.register_reference = ("readout", slot_field, register_type)
