"""
Execution of measurement inputs on a backend.

A backend is any object with a ``run_circuit(circuit, number_qubits)`` method
returning the classical registers of one execution. Failures inside the
backend are surfaced as ``BackendExecutionError`` and never retried.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from qubit_weave.circuit import Circuit
from qubit_weave.exceptions import BackendExecutionError
from qubit_weave.extra.symbolic import Substitutions
from qubit_weave.measurement.evaluator import ExpectationValue, evaluate
from qubit_weave.measurement.measurement_input import MeasurementInput
from qubit_weave.measurement.registers import Registers

logger = logging.getLogger(__name__)


@runtime_checkable
class Backend(Protocol):
    """
    Protocol of execution backends.

    Methods
    -------
    run_circuit(circuit, number_qubits)
        Executes ``circuit`` on ``number_qubits`` qubits and returns its bit,
        float and complex registers, either as ``Registers`` or as a
        ``(bit, float, complex)`` triple of mappings.
    """

    def run_circuit(self, circuit: Circuit, number_qubits: int) -> Any: ...


def run_circuits(
    backend: Backend, circuits: List[Circuit], number_qubits: int
) -> List[Registers]:
    """
    Runs every circuit in order

    Raises
    ------
    BackendExecutionError
        Wrapping the first error raised by the backend
    """
    results: List[Registers] = []
    for index, circuit in enumerate(circuits):
        logger.debug("Running circuit %d of %d", index + 1, len(circuits))
        try:
            output = backend.run_circuit(circuit, number_qubits)
        except Exception as exc:
            logger.error("Backend failed on circuit %d: %r", index, exc)
            raise BackendExecutionError(exc) from exc
        results.append(Registers.coerce(output))
    return results


def run_measurement_registers(
    backend: Backend,
    measurement_input: MeasurementInput,
    number_qubits: int,
    substitutions: Optional[Substitutions] = None,
) -> Tuple[MeasurementInput, List[Registers]]:
    """
    Substitutes the circuit parameters and runs every circuit of
    ``measurement_input``, the constant circuit prepended
    """
    if substitutions:
        measurement_input = measurement_input.substitute_parameters(substitutions)
    return measurement_input, run_circuits(
        backend, measurement_input.circuits_to_run(), number_qubits
    )


def run_measurement(
    backend: Backend,
    measurement_input: MeasurementInput,
    number_qubits: int,
    substitutions: Optional[Substitutions] = None,
) -> Dict[str, ExpectationValue]:
    """
    Runs every circuit of ``measurement_input`` and evaluates the expectation
    values from the returned registers

    Raises
    ------
    BackendExecutionError
        If the backend fails, with the backend error as ``original``
    """
    measurement_input, results = run_measurement_registers(
        backend, measurement_input, number_qubits, substitutions
    )
    return evaluate(measurement_input, results, substitutions)
