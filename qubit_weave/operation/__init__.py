# flake8: noqa

from .definition_operation import DefinitionOperationType, RegisterType  # noqa: F401
from .gate_operation import GateOperationType  # noqa: F401
from .measurement_operation import MeasurementOperationType  # noqa: F401
from .operation import (  # noqa: F401
    ALL_QUBITS,
    FieldKind,
    FieldSpec,
    Involvement,
    InvolvedQubits,
    Operation,
    OperationTypeMixin,
)
from .pragma_operation import PragmaOperationType  # noqa: F401
from .registry import (  # noqa: F401
    operation_type_from_name,
    register_operation_type,
    registered_operation_types,
)

for _operation_type in (
    GateOperationType,
    DefinitionOperationType,
    MeasurementOperationType,
    PragmaOperationType,
):
    register_operation_type(_operation_type)
