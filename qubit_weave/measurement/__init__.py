# flake8: noqa

from .calibration import ReadoutCalibration  # noqa: F401
from .evaluator import evaluate, evaluate_pauli_products  # noqa: F401
from .measurement_input import (  # noqa: F401
    CheatedExpectationValue,
    LinearExpectationValue,
    MeasurementInput,
    PauliProduct,
    SymbolicExpectationValue,
)
from .registers import Registers  # noqa: F401
