from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from qubit_weave.operation import RegisterType

BitRows = Sequence[Sequence[Union[bool, int]]]
FloatRows = Sequence[Sequence[float]]
ComplexRows = Sequence[Sequence[complex]]


@dataclass
class Registers:
    """
    Classical registers returned by one circuit execution.

    Every register maps its name to a sequence of rows; bit registers hold
    one row per shot.
    """

    bit_registers: Dict[str, BitRows] = field(default_factory=dict)
    float_registers: Dict[str, FloatRows] = field(default_factory=dict)
    complex_registers: Dict[str, ComplexRows] = field(default_factory=dict)

    @classmethod
    def coerce(cls, value: Any) -> "Registers":
        """
        Accepts ``Registers`` or a ``(bit, float, complex)`` sequence of mappings
        """
        if isinstance(value, Registers):
            return value
        if isinstance(value, Sequence) and not isinstance(value, str) and len(value) == 3:
            bits, floats, complexes = value
            return cls(dict(bits or {}), dict(floats or {}), dict(complexes or {}))
        raise TypeError(
            f"Expected Registers or a (bit, float, complex) triple, got {type(value).__name__}"
        )

    def lookup(self, name: str) -> Optional[Tuple[RegisterType, Sequence[Sequence[Any]]]]:
        """
        Finds ``name`` among all registers, complex registers first
        """
        for register_type, registers in (
            (RegisterType.Complex, self.complex_registers),
            (RegisterType.Float, self.float_registers),
            (RegisterType.Bit, self.bit_registers),
        ):
            if name in registers:
                return register_type, registers[name]
        return None

    def float_variables(self) -> Mapping[str, float]:
        """
        ``<name>_<index>`` for every element of single-row float registers
        """
        variables: Dict[str, float] = {}
        for name, rows in self.float_registers.items():
            if len(rows) == 1:
                for index, value in enumerate(rows[0]):
                    variables[f"{name}_{index}"] = float(value)
        return variables
