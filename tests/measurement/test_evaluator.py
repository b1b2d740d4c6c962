import pytest

from qubit_weave.circuit import Circuit
from qubit_weave.exceptions import (
    MalformedRegisterError,
    MissingRegisterError,
    SymbolicResolutionError,
)
from qubit_weave.measurement import (
    MeasurementInput,
    PauliProduct,
    ReadoutCalibration,
    Registers,
    evaluate,
    evaluate_pauli_products,
)
from qubit_weave.operation import DefinitionOperationType, MeasurementOperationType, Operation
from qubit_weave.qubit_weave import Session

SHOTS = [[0], [1], [1], [0], [0], [0], [1], [0], [0], [1], [0]]


def _circuit(length=1):
    return Circuit(
        [
            Operation(DefinitionOperationType.DefinitionBit, name="M1", length=length, is_output=True),
            Operation(DefinitionOperationType.DefinitionComplex, name="amp", length=1),
            Operation(DefinitionOperationType.DefinitionFloat, name="angles", length=2),
            Operation(
                MeasurementOperationType.PragmaRepeatedMeasurement,
                readout="M1",
                number_measurements=len(SHOTS),
            ),
        ]
    )


def _single_qubit_input(coefficient=1.0):
    measurement_input = MeasurementInput([_circuit()])
    z0 = measurement_input.add_pauli_product(PauliProduct(0, "M1", (0,)))
    measurement_input.add_linear_exp_val("z", {z0: coefficient})
    return measurement_input


class TestParity:

    def test_uncalibrated_value_is_exact_mean_of_signs(self):
        signs = [1 - 2 * row[0] for row in SHOTS]
        result = evaluate(_single_qubit_input(), [Registers(bit_registers={"M1": SHOTS})])
        assert result == {"z": sum(signs) / len(signs)}

    def test_boolean_rows_are_accepted(self):
        rows = [[bool(row[0])] for row in SHOTS]
        expected = evaluate(_single_qubit_input(), [Registers(bit_registers={"M1": SHOTS})])
        assert evaluate(_single_qubit_input(), [Registers(bit_registers={"M1": rows})]) == expected

    def test_two_qubit_product_with_negated_qubit(self):
        rows = [[0, 0], [0, 1], [1, 1], [1, 1]]
        measurement_input = MeasurementInput([_circuit(length=2)])
        zz = measurement_input.add_pauli_product(PauliProduct(0, "M1", (0, 1)))
        negated = measurement_input.add_pauli_product(PauliProduct(0, "M1", (0, 1), negated=(1,)))
        values = evaluate_pauli_products(measurement_input, [Registers({"M1": rows})])
        assert values[zz] == 0.5
        assert values[negated] == -0.5

    def test_slots_select_register_columns(self):
        rows = [[0, 1], [0, 1], [0, 0], [0, 1]]
        measurement_input = MeasurementInput([_circuit(length=2)])
        index = measurement_input.add_pauli_product(PauliProduct(0, "M1", (5,), slots=(1,)))
        values = evaluate_pauli_products(measurement_input, [Registers({"M1": rows})])
        assert values[index] == -0.5

    def test_jit_path_matches(self):
        registers = [Registers(bit_registers={"M1": SHOTS})]
        plain = evaluate(_single_qubit_input(), registers)
        with Session(use_jit=True):
            jitted = evaluate(_single_qubit_input(), registers)
        assert jitted["z"] == pytest.approx(plain["z"])

    def test_register_triple_is_accepted(self):
        result = evaluate(_single_qubit_input(), [({"M1": SHOTS}, {}, {})])
        assert result["z"] == pytest.approx(3 / 11)


class TestCalibration:

    def test_identity_calibration_matches_uncalibrated(self):
        registers = [Registers(bit_registers={"M1": SHOTS})]
        plain = evaluate(_single_qubit_input(), registers)
        calibrated_input = _single_qubit_input()
        calibrated_input.set_calibration("M1", ReadoutCalibration([[1.0, 0.0], [0.0, 1.0]]))
        for method in ("pinv", "inv"):
            with Session(calibration_inverse=method):
                calibrated = evaluate(calibrated_input, registers)
            assert calibrated["z"] == pytest.approx(plain["z"], abs=1e-12)

    def test_confusion_is_undone(self):
        # true state |0>, 10% of the shots read out as 1
        rows = [[0]] * 9 + [[1]]
        measurement_input = _single_qubit_input()
        measurement_input.set_calibration("M1", [[0.9, 0.2], [0.1, 0.8]])
        result = evaluate(measurement_input, [Registers(bit_registers={"M1": rows})])
        assert result["z"] == pytest.approx(1.0)

    def test_calibration_must_cover_register(self):
        measurement_input = _single_qubit_input()
        measurement_input.set_calibration("M1", ReadoutCalibration.from_single_qubit([[[1, 0], [0, 1]]] * 2))
        with pytest.raises(MalformedRegisterError):
            evaluate(measurement_input, [Registers(bit_registers={"M1": SHOTS})])


class TestCheated:

    def test_cheated_value_is_read_exactly(self):
        measurement_input = MeasurementInput([_circuit()])
        measurement_input.add_cheated_exp_val("amplitude", 0, "amp")
        registers = Registers(
            bit_registers={"M1": SHOTS}, complex_registers={"amp": [[0.5 + 0.0j]]}
        )
        result = evaluate(measurement_input, [registers])
        assert result == {"amplitude": 0.5 + 0.0j}
        assert isinstance(result["amplitude"], complex)

    def test_cheated_float_register_with_row_and_index(self):
        measurement_input = MeasurementInput([_circuit()])
        measurement_input.add_cheated_exp_val("second", 0, "angles", row=1, index=1)
        registers = Registers(float_registers={"angles": [[0.1, 0.2], [0.3, 0.4]]})
        assert evaluate(measurement_input, [registers]) == {"second": 0.4}

    def test_cheated_out_of_range_is_malformed(self):
        measurement_input = MeasurementInput([_circuit()])
        measurement_input.add_cheated_exp_val("amplitude", 0, "amp", row=2)
        with pytest.raises(MalformedRegisterError):
            evaluate(measurement_input, [Registers(complex_registers={"amp": [[1j]]})])


class TestCoefficients:

    def test_coefficients_resolve_from_substitutions(self):
        registers = [Registers(bit_registers={"M1": [[0], [0]]})]
        result = evaluate(_single_qubit_input("2 * h"), registers, {"h": 0.25})
        assert result["z"] == pytest.approx(0.5)

    def test_single_row_float_registers_are_variables(self):
        registers = [
            Registers(bit_registers={"M1": [[0]]}, float_registers={"angles": [[0.5, 3.0]]})
        ]
        result = evaluate(_single_qubit_input("angles_1"), registers)
        assert result["z"] == pytest.approx(3.0)
        override = evaluate(_single_qubit_input("angles_1"), registers, {"angles_1": -1.0})
        assert override["z"] == pytest.approx(-1.0)

    def test_unresolved_coefficient_aborts(self):
        measurement_input = _single_qubit_input("g")
        measurement_input.add_cheated_exp_val("amplitude", 0, "amp")
        registers = Registers(bit_registers={"M1": SHOTS}, complex_registers={"amp": [[1.0]]})
        with pytest.raises(SymbolicResolutionError) as info:
            evaluate(measurement_input, [registers])
        assert info.value.variables == ("g",)

    def test_symbolic_expectation_value(self):
        measurement_input = _single_qubit_input()
        measurement_input.add_symbolic_exp_val("shifted", "pauli_product_0 + offset")
        registers = [Registers(bit_registers={"M1": [[1], [1]]})]
        result = evaluate(measurement_input, registers, {"offset": 2.0})
        assert result["shifted"] == pytest.approx(1.0)


class TestFailures:

    def test_missing_register_aborts(self):
        measurement_input = _single_qubit_input()
        measurement_input.add_cheated_exp_val("amplitude", 0, "amp")
        with pytest.raises(MissingRegisterError) as info:
            evaluate(measurement_input, [Registers(bit_registers={"M1": SHOTS})])
        assert info.value.register == "amp"

    def test_missing_circuit_results_abort(self):
        with pytest.raises(MissingRegisterError):
            evaluate(_single_qubit_input(), [])

    @pytest.mark.parametrize(
        "rows",
        [
            [[0, 1], [1, 0]],  # longer than the declared register
            [[0], [1, 0]],  # ragged
            [[0], [2]],  # not a bit
            [],  # no shots
        ],
    )
    def test_malformed_bit_register_aborts(self, rows):
        with pytest.raises(MalformedRegisterError):
            evaluate(_single_qubit_input(), [Registers(bit_registers={"M1": rows})])
