"""
Reduction of raw classical registers to named expectation values.

Evaluation is all-or-nothing: the first missing register, malformed register
or unresolved coefficient aborts the call and no partial result is returned.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

import jax.numpy as jnp

from qubit_weave.circuit import Circuit
from qubit_weave.core import kernels
from qubit_weave.core.meta import ProductMeta, make_meta
from qubit_weave.exceptions import (
    MalformedRegisterError,
    MissingRegisterError,
    SymbolicResolutionError,
)
from qubit_weave.extra.symbolic import Substitutions, SymbolicValue
from qubit_weave.measurement.measurement_input import (
    PAULI_PRODUCT_VARIABLE,
    MeasurementInput,
    PauliProduct,
)
from qubit_weave.measurement.registers import Registers
from qubit_weave.operation import RegisterType
from qubit_weave.qubit_weave import Config

logger = logging.getLogger(__name__)

ExpectationValue = Union[float, complex]


def _bit_array(
    rows: Sequence[Sequence[Any]], register: str, declared_length: Optional[int]
) -> jnp.ndarray:
    try:
        bits = jnp.asarray(rows, dtype=jnp.int64)
    except (TypeError, ValueError) as exc:
        raise MalformedRegisterError(
            register, f"Bit register '{register}' has rows of unequal length"
        ) from exc
    if bits.ndim != 2 or bits.shape[0] == 0:
        raise MalformedRegisterError(
            register, f"Bit register '{register}' must hold at least one row of bits"
        )
    if declared_length is not None and bits.shape[1] != declared_length:
        raise MalformedRegisterError(
            register,
            f"Bit register '{register}' rows have length {bits.shape[1]}, "
            f"declared length is {declared_length}",
        )
    if bool(jnp.any((bits != 0) & (bits != 1))):
        raise MalformedRegisterError(register, f"Bit register '{register}' holds non-binary values")
    return bits


class _Evaluation:
    """
    State of a single ``evaluate`` call, memoising register conversion,
    calibration inverses and Pauli product values.
    """

    def __init__(
        self,
        measurement_input: MeasurementInput,
        results: Sequence[Registers],
    ) -> None:
        self.measurement_input = measurement_input
        self.circuits: Sequence[Circuit] = measurement_input.circuits_to_run()
        self.results = results
        self.use_jit = Config().use_jit
        self._bits: Dict[Tuple[int, str], jnp.ndarray] = {}
        self._inverses: Dict[str, jnp.ndarray] = {}
        self._products: Dict[int, float] = {}

    def registers(self, circuit_index: int, register: str) -> Registers:
        if not 0 <= circuit_index < len(self.results):
            raise MissingRegisterError(
                register,
                f"No results for circuit {circuit_index}, register '{register}' is unavailable",
            )
        return self.results[circuit_index]

    def bits(self, circuit_index: int, register: str) -> jnp.ndarray:
        key = (circuit_index, register)
        if key not in self._bits:
            rows = self.registers(circuit_index, register).bit_registers.get(register)
            if rows is None:
                raise MissingRegisterError(
                    register, f"Circuit {circuit_index} returned no bit register '{register}'"
                )
            declared_length = None
            if circuit_index < len(self.circuits):
                declared = self.circuits[circuit_index].registers.get(register)
                if declared is not None and declared.register_type is RegisterType.Bit:
                    declared_length = declared.length
            self._bits[key] = _bit_array(rows, register, declared_length)
        return self._bits[key]

    def inverse(self, register: str) -> jnp.ndarray:
        if register not in self._inverses:
            self._inverses[register] = self.measurement_input.calibrations[register].inverse()
        return self._inverses[register]

    def product(self, index: int) -> float:
        if index not in self._products:
            product = self.measurement_input.pauli_products[index]
            self._products[index] = self._evaluate_product(product)
        return self._products[index]

    def _evaluate_product(self, product: PauliProduct) -> float:
        bits = self.bits(product.circuit_index, product.readout)
        width = bits.shape[1]
        outside = [slot for slot in product.register_slots if not 0 <= slot < width]
        if outside:
            raise MalformedRegisterError(
                product.readout,
                f"Slots {outside} are outside bit register '{product.readout}' of length {width}",
            )
        meta = make_meta(width, product.register_slots, product.negated_slots)
        calibration = self.measurement_input.calibrations.get(product.readout)
        if calibration is None:
            if self.use_jit:
                return float(kernels.parity_expectation_jit(meta, bits))
            return float(kernels.parity_expectation(bits, meta.slots, meta.flips))
        if calibration.number_slots != width:
            raise MalformedRegisterError(
                product.readout,
                f"Calibration of '{product.readout}' covers {calibration.number_slots} slots, "
                f"the register has {width}",
            )
        return self._calibrated(meta, bits, self.inverse(product.readout))

    def _calibrated(self, meta: ProductMeta, bits: jnp.ndarray, inverse: jnp.ndarray) -> float:
        if self.use_jit:
            return float(kernels.calibrated_expectation_jit(meta, bits, inverse))
        probabilities = kernels.outcome_probabilities(bits, meta.number_outcomes)
        signs = kernels.outcome_signs(meta.length, meta.slots, meta.flips)
        return float(kernels.calibrated_expectation(probabilities, inverse, signs))

    def cheated(self, circuit_index: int, readout: str, row: int, index: int) -> ExpectationValue:
        found = self.registers(circuit_index, readout).lookup(readout)
        if found is None or found[0] is RegisterType.Bit:
            raise MissingRegisterError(
                readout,
                f"Circuit {circuit_index} returned no float or complex register '{readout}'",
            )
        register_type, rows = found
        if not 0 <= row < len(rows) or not 0 <= index < len(rows[row]):
            raise MalformedRegisterError(
                readout,
                f"Register '{readout}' has no element {index} in row {row}",
            )
        value = rows[row][index]
        if register_type is RegisterType.Complex:
            return complex(value)
        return float(value)


def _resolve(value: SymbolicValue, variables: Substitutions, name: str) -> float:
    try:
        return value.evaluate(variables)
    except SymbolicResolutionError as exc:
        raise SymbolicResolutionError(
            exc.variables,
            f"Can not evaluate '{name}', unresolved: {', '.join(exc.variables)}",
        ) from exc


def evaluate(
    measurement_input: MeasurementInput,
    results: Sequence[Any],
    substitutions: Optional[Substitutions] = None,
) -> Dict[str, ExpectationValue]:
    """
    Evaluates every expectation value of ``measurement_input``.

    Parameters
    ----------
    measurement_input: MeasurementInput
        Circuits and expectation value definitions
    results: Sequence[Registers]
        Registers returned for every circuit, aligned with
        ``measurement_input.circuits``
    substitutions: Optional[Substitutions]
        Values of symbolic coefficients. Elements of single-row float
        registers are available as ``<register>_<index>`` unless overridden
        here.

    Returns
    -------
    Dict[str, ExpectationValue]
        Value of every definition, complex for cheated values read from
        complex registers

    Raises
    ------
    MissingRegisterError
        If a referenced register is not part of the results
    MalformedRegisterError
        If register rows do not match the declared register
    SymbolicResolutionError
        If a coefficient references an unknown variable
    """
    registers = [Registers.coerce(entry) for entry in results]
    evaluation = _Evaluation(measurement_input, registers)

    variables: Dict[str, Any] = {}
    for entry in registers:
        variables.update(entry.float_variables())
    if substitutions:
        variables.update(substitutions)

    values: Dict[str, ExpectationValue] = {}
    for name, linear in measurement_input.linear_exp_vals.items():
        total = _resolve(linear.constant, variables, name)
        for index, coefficient in linear.terms.items():
            total += _resolve(coefficient, variables, name) * evaluation.product(index)
        values[name] = total

    for name, symbolic in measurement_input.symbolic_exp_vals.items():
        scope: Dict[str, Any] = dict(variables)
        for index in symbolic.product_indices:
            scope[PAULI_PRODUCT_VARIABLE.format(index)] = evaluation.product(index)
        values[name] = _resolve(symbolic.expression, scope, name)

    for name, cheated in measurement_input.cheated_exp_vals.items():
        values[name] = evaluation.cheated(
            cheated.circuit_index, cheated.readout, cheated.row, cheated.index
        )

    logger.debug(
        "Evaluated %d expectation values from %d Pauli products",
        len(values),
        len(evaluation._products),
    )
    return values


def evaluate_pauli_products(
    measurement_input: MeasurementInput,
    results: Sequence[Any],
) -> Mapping[int, float]:
    """
    Expectation value of every Pauli product, keyed by product index
    """
    evaluation = _Evaluation(measurement_input, [Registers.coerce(entry) for entry in results])
    return {
        index: evaluation.product(index)
        for index in range(len(measurement_input.pauli_products))
    }
