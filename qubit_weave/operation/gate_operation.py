from enum import Enum
from typing import Any, Tuple

import jax.numpy as jnp

from qubit_weave._math.ops import (
    controlled_not_operator,
    controlled_phase_operator,
    controlled_y_operator,
    controlled_z_operator,
    hadamard_operator,
    identity_operator,
    inv_sx_operator,
    iswap_operator,
    multi_qubit_ms_operator,
    multi_qubit_zz_operator,
    phase_shift_operator,
    rx_operator,
    ry_operator,
    rz_operator,
    s_operator,
    single_qubit_operator,
    swap_operator,
    sx_operator,
    t_operator,
    x_operator,
    xy_operator,
    y_operator,
    z_operator,
)
from qubit_weave.operation.operation import (
    FieldKind,
    FieldSpec,
    Involvement,
    OperationTypeMixin,
)

_SINGLE = (("qubit", FieldKind.Qubit),)
_TWO = (("control", FieldKind.Qubit), ("target", FieldKind.Qubit))
_MULTI = (("qubits", FieldKind.Qubits),)
_THETA = (("theta", FieldKind.Symbolic),)

_S = ("SingleQubitGateOperation",)
_R = ("SingleQubitGateOperation", "Rotation")
_T = ("TwoQubitGateOperation",)
_TR = ("TwoQubitGateOperation", "Rotation")
_M = ("MultiQubitGateOperation", "Rotation")


class GateOperationType(OperationTypeMixin, Enum):
    """
    GateOperationType

    Unitary gates. Single qubit gates act on ``qubit``, two qubit gates on
    the ordered pair ``(control, target)`` and multi qubit gates on the
    ordered ``qubits`` list. Rotation gates carry a symbolic ``theta``.

    >>> op = Operation(GateOperationType.RotateZ, qubit=1, theta="phi / 2")
    >>> op = Operation(GateOperationType.CNOT, control=0, target=1)
    """

    Identity = (_SINGLE, _S, 1)
    PauliX = (_SINGLE, _S, 2)
    PauliY = (_SINGLE, _S, 3)
    PauliZ = (_SINGLE, _S, 4)
    Hadamard = (_SINGLE, _S, 5)
    SGate = (_SINGLE, _S, 6)
    TGate = (_SINGLE, _S, 7)
    SqrtPauliX = (_SINGLE, _S, 8)
    InvSqrtPauliX = (_SINGLE, _S, 9)
    RotateX = (_SINGLE + _THETA, _R, 10)
    RotateY = (_SINGLE + _THETA, _R, 11)
    RotateZ = (_SINGLE + _THETA, _R, 12)
    PhaseShiftState1 = (_SINGLE + _THETA, _R, 13)
    SingleQubitGate = (
        _SINGLE
        + (
            ("alpha_r", FieldKind.Symbolic),
            ("alpha_i", FieldKind.Symbolic),
            ("beta_r", FieldKind.Symbolic),
            ("beta_i", FieldKind.Symbolic),
            ("global_phase", FieldKind.Symbolic),
        ),
        _S,
        14,
    )
    CNOT = (_TWO, _T, 20)
    ControlledPauliY = (_TWO, _T, 21)
    ControlledPauliZ = (_TWO, _T, 22)
    SWAP = (_TWO, _T, 23)
    ISwap = (_TWO, _T, 24)
    ControlledPhaseShift = (_TWO + _THETA, _TR, 25)
    XY = (_TWO + _THETA, _TR, 26)
    MultiQubitMS = (_MULTI + _THETA, _M, 30)
    MultiQubitZZ = (_MULTI + _THETA, _M, 31)

    def __init__(
        self, fields: Tuple[Tuple[str, FieldKind], ...], tags: Tuple[str, ...], op_id: int
    ) -> None:
        self.field_specs = tuple(FieldSpec(*field) for field in fields)
        self.involvement = Involvement.Fields
        self.extra_tags = tags

    def compute_operator(self, number_qubits: int, **kwargs: Any) -> jnp.ndarray:
        """
        Computes the unitary matrix of the gate

        Parameters
        ----------
        number_qubits: int
            Number of qubits the gate acts on, only used by multi qubit gates
        **kwargs: Any
            Numeric gate parameters

        Returns
        -------
        jnp.ndarray
            Unitary in the basis where the first listed qubit is the most
            significant one
        """
        match self:
            case GateOperationType.Identity:
                return identity_operator()
            case GateOperationType.PauliX:
                return x_operator()
            case GateOperationType.PauliY:
                return y_operator()
            case GateOperationType.PauliZ:
                return z_operator()
            case GateOperationType.Hadamard:
                return hadamard_operator()
            case GateOperationType.SGate:
                return s_operator()
            case GateOperationType.TGate:
                return t_operator()
            case GateOperationType.SqrtPauliX:
                return sx_operator()
            case GateOperationType.InvSqrtPauliX:
                return inv_sx_operator()
            case GateOperationType.RotateX:
                return rx_operator(kwargs["theta"])
            case GateOperationType.RotateY:
                return ry_operator(kwargs["theta"])
            case GateOperationType.RotateZ:
                return rz_operator(kwargs["theta"])
            case GateOperationType.PhaseShiftState1:
                return phase_shift_operator(kwargs["theta"])
            case GateOperationType.SingleQubitGate:
                return single_qubit_operator(
                    kwargs["alpha_r"],
                    kwargs["alpha_i"],
                    kwargs["beta_r"],
                    kwargs["beta_i"],
                    kwargs["global_phase"],
                )
            case GateOperationType.CNOT:
                return controlled_not_operator()
            case GateOperationType.ControlledPauliY:
                return controlled_y_operator()
            case GateOperationType.ControlledPauliZ:
                return controlled_z_operator()
            case GateOperationType.SWAP:
                return swap_operator()
            case GateOperationType.ISwap:
                return iswap_operator()
            case GateOperationType.ControlledPhaseShift:
                return controlled_phase_operator(kwargs["theta"])
            case GateOperationType.XY:
                return xy_operator(kwargs["theta"])
            case GateOperationType.MultiQubitMS:
                return multi_qubit_ms_operator(number_qubits, kwargs["theta"])
            case GateOperationType.MultiQubitZZ:
                return multi_qubit_zz_operator(number_qubits, kwargs["theta"])
        raise ValueError("Operation Type not recognized")
