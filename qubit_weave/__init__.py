"""Top-level QubitWeave helpers."""

# Double precision for gate matrices and parity reductions, and a pinned PRNG
# implementation for seeded overrotation.
# Both need to run before importing modules that create arrays or keys.

import jax

jax.config.update("jax_enable_x64", True)
jax.config.update("jax_default_prng_impl", "threefry2x32")

from qubit_weave import _math, core, extra, operation  # noqa: E402
from qubit_weave.backend import Backend, run_measurement  # noqa: E402
from qubit_weave.circuit import Circuit, RegisterSpec  # noqa: E402
from qubit_weave.exceptions import (  # noqa: E402
    BackendExecutionError,
    MalformedRegisterError,
    MissingRegisterError,
    QubitMappingError,
    QubitWeaveError,
    RegisterConflictError,
    SerializationError,
    SymbolicResolutionError,
    UnknownOperationError,
)
from qubit_weave.extra.symbolic import SymbolicValue  # noqa: E402
from qubit_weave.measurement import (  # noqa: E402
    CheatedExpectationValue,
    LinearExpectationValue,
    MeasurementInput,
    PauliProduct,
    ReadoutCalibration,
    Registers,
    SymbolicExpectationValue,
    evaluate,
)
from qubit_weave.operation import (  # noqa: E402
    ALL_QUBITS,
    DefinitionOperationType,
    GateOperationType,
    MeasurementOperationType,
    Operation,
    PragmaOperationType,
    RegisterType,
)
from qubit_weave.qubit_weave import Config, Session  # noqa: E402

__all__ = [
    "core",
    "extra",
    "_math",
    "operation",
    "ALL_QUBITS",
    "Backend",
    "BackendExecutionError",
    "CheatedExpectationValue",
    "Circuit",
    "Config",
    "DefinitionOperationType",
    "GateOperationType",
    "LinearExpectationValue",
    "MalformedRegisterError",
    "MeasurementInput",
    "MeasurementOperationType",
    "MissingRegisterError",
    "Operation",
    "PauliProduct",
    "PragmaOperationType",
    "QubitMappingError",
    "QubitWeaveError",
    "ReadoutCalibration",
    "RegisterConflictError",
    "RegisterSpec",
    "RegisterType",
    "Registers",
    "SerializationError",
    "Session",
    "SymbolicExpectationValue",
    "SymbolicResolutionError",
    "SymbolicValue",
    "UnknownOperationError",
    "evaluate",
    "run_measurement",
]
