from enum import Enum
from typing import Any, Optional, Tuple

import jax.numpy as jnp

from qubit_weave._math.ops import (
    damping_superoperator,
    dephasing_superoperator,
    depolarising_superoperator,
)
from qubit_weave.extra.symbolic import SymbolicValue
from qubit_weave.operation.definition_operation import RegisterType
from qubit_weave.operation.operation import (
    FieldKind,
    FieldSpec,
    Involvement,
    OperationTypeMixin,
)

_QUBIT = (("qubit", FieldKind.Qubit),)
_QUBITS = (("qubits", FieldKind.Qubits),)
_NOISE = _QUBIT + (("gate_time", FieldKind.Symbolic), ("rate", FieldKind.Symbolic))

_SINGLE = ("SingleQubitOperation",)
_MULTI = ("MultiQubitOperation",)
_NOISY = ("SingleQubitOperation", "PragmaNoiseOperation")


class PragmaOperationType(OperationTypeMixin, Enum):
    r"""
    PragmaOperationType

    Side-band instructions that are not unitary evolution: backend hints,
    state preparation, noise injection and classical control.

    PragmaSetNumberOfMeasurements
    -----------------------------
    Number of shots used for the bit register ``readout``.

    PragmaOverrotation
    ------------------
    Statistical overrotation of the next ``gate_hqslang`` gate acting on
    ``qubits``: ``amplitude`` times a normal sample with standard deviation
    ``variance`` is added to its ``theta`` by ``Circuit.overrotate``.

    PragmaDamping / PragmaDepolarising / PragmaDephasing
    ----------------------------------------------------
    Single qubit noise with ``rate`` applied for ``gate_time``. The
    superoperator acts on the vectorised density matrix
    :math:`(\rho_{00}, \rho_{01}, \rho_{10}, \rho_{11})`.

    PragmaStartDecompositionBlock
    -----------------------------
    Marks the start of a decomposition block; ``reordering_dictionary`` is a
    qubit relabeling and is remapped on both sides.

    PragmaConditional
    -----------------
    Executes ``circuit`` when slot ``condition_index`` of the bit register
    ``condition_register`` is set. Reports the qubits of its circuit.

    >>> op = Operation(PragmaOperationType.PragmaDamping, qubit=0, gate_time=0.1, rate="gamma")
    """

    PragmaSetNumberOfMeasurements = (
        (("number_measurements", FieldKind.Integer), ("readout", FieldKind.String)),
        Involvement.Empty,
        (),
        ("readout", None, RegisterType.Bit),
        1,
    )
    PragmaSetStateVector = (
        (("statevector", FieldKind.ComplexArray),),
        Involvement.All,
        (),
        None,
        2,
    )
    PragmaSetDensityMatrix = (
        (("density_matrix", FieldKind.ComplexArray),),
        Involvement.All,
        (),
        None,
        3,
    )
    PragmaRepeatGate = (
        (("repetition_coefficient", FieldKind.Integer),),
        Involvement.All,
        (),
        None,
        4,
    )
    PragmaOverrotation = (
        (
            ("gate_hqslang", FieldKind.String),
            ("qubits", FieldKind.Qubits),
            ("amplitude", FieldKind.Float),
            ("variance", FieldKind.Float),
        ),
        Involvement.Fields,
        _MULTI,
        None,
        5,
    )
    PragmaBoostNoise = (
        (("noise_coefficient", FieldKind.Symbolic),),
        Involvement.Empty,
        (),
        None,
        6,
    )
    PragmaStopParallelBlock = (
        _QUBITS + (("execution_time", FieldKind.Symbolic),),
        Involvement.Fields,
        _MULTI,
        None,
        7,
    )
    PragmaGlobalPhase = (
        (("phase", FieldKind.Symbolic),),
        Involvement.Empty,
        (),
        None,
        8,
    )
    PragmaSleep = (
        _QUBITS + (("sleep_time", FieldKind.Symbolic),),
        Involvement.Fields,
        _MULTI,
        None,
        9,
    )
    PragmaActiveReset = (_QUBIT, Involvement.Fields, _SINGLE, None, 10)
    PragmaStartDecompositionBlock = (
        _QUBITS + (("reordering_dictionary", FieldKind.QubitMapping),),
        Involvement.Fields,
        _MULTI,
        None,
        11,
    )
    PragmaStopDecompositionBlock = (_QUBITS, Involvement.Fields, _MULTI, None, 12)
    PragmaDamping = (_NOISE, Involvement.Fields, _NOISY, None, 13)
    PragmaDepolarising = (_NOISE, Involvement.Fields, _NOISY, None, 14)
    PragmaDephasing = (_NOISE, Involvement.Fields, _NOISY, None, 15)
    PragmaRandomNoise = (
        _QUBIT
        + (
            ("gate_time", FieldKind.Symbolic),
            ("depolarising_rate", FieldKind.Symbolic),
            ("dephasing_rate", FieldKind.Symbolic),
        ),
        Involvement.Fields,
        _NOISY,
        None,
        16,
    )
    PragmaGeneralNoise = (
        _NOISE + (("operators", FieldKind.ComplexArray),),
        Involvement.Fields,
        _SINGLE,
        None,
        17,
    )
    PragmaConditional = (
        (
            ("condition_register", FieldKind.String),
            ("condition_index", FieldKind.Integer),
            ("circuit", FieldKind.Circuit),
        ),
        Involvement.Circuit,
        _SINGLE,
        ("condition_register", "condition_index", RegisterType.Bit),
        18,
    )

    def __init__(
        self,
        fields: Tuple[Tuple, ...],
        involvement: Involvement,
        tags: Tuple[str, ...],
        register_reference: Optional[Tuple[str, Optional[str], RegisterType]],
        op_id: int,
    ) -> None:
        self.field_specs = tuple(FieldSpec(*field) for field in fields)
        self.involvement = involvement
        self.extra_tags = tags
        self.register_reference = register_reference

    def compute_superoperator(self, **kwargs: Any) -> jnp.ndarray:
        """
        Superoperator of a noise pragma with numeric parameters

        Returns
        -------
        jnp.ndarray
            4x4 real matrix acting on the vectorised density matrix
        """
        match self:
            case PragmaOperationType.PragmaDamping:
                return damping_superoperator(kwargs["gate_time"], kwargs["rate"])
            case PragmaOperationType.PragmaDepolarising:
                return depolarising_superoperator(kwargs["gate_time"], kwargs["rate"])
            case PragmaOperationType.PragmaDephasing:
                return dephasing_superoperator(kwargs["gate_time"], kwargs["rate"])
            case PragmaOperationType.PragmaRandomNoise:
                return dephasing_superoperator(kwargs["gate_time"], kwargs["dephasing_rate"])
        raise TypeError(f"{self.name} has no superoperator")

    def compute_probability(self, **kwargs: SymbolicValue) -> SymbolicValue:
        """
        Probability of the noise process happening, symbolic when the
        parameters are
        """
        gate_time = kwargs["gate_time"]
        match self:
            case PragmaOperationType.PragmaDamping | PragmaOperationType.PragmaDephasing:
                return ((gate_time * kwargs["rate"] * -2.0).exp() * -1.0 + 1.0) * 0.5
            case PragmaOperationType.PragmaDepolarising:
                return ((gate_time * kwargs["rate"] * -1.0).exp() * -1.0 + 1.0) * 0.75
            case PragmaOperationType.PragmaRandomNoise:
                depolarising = kwargs["depolarising_rate"] / 4.0
                return (depolarising * 3.0 + kwargs["dephasing_rate"]) * gate_time
        raise TypeError(f"{self.name} has no noise probability")
