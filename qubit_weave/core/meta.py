"""
Metadata helpers for JIT-friendly parity reductions.

`ProductMeta` collects the register length, the selected slots and the
per-slot flips of one Pauli product so they can be passed as static
arguments to jitted entry points.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple


@dataclass(frozen=True)
class ProductMeta:
    length: int
    slots: Tuple[int, ...]
    flips: Tuple[int, ...]

    @property
    def number_outcomes(self) -> int:
        return 2**self.length


def make_meta(length: int, slots: Sequence[int], negated_slots: Sequence[int] = ()) -> ProductMeta:
    """
    Parameters
    ----------
    length : int
        Number of slots of the bit register
    slots : Sequence[int]
        Slots contributing to the parity, in product order
    negated_slots : Sequence[int]
        Slots whose bit is flipped before the parity is taken
    """
    negated = set(negated_slots)
    return ProductMeta(
        length=int(length),
        slots=tuple(int(slot) for slot in slots),
        flips=tuple(int(slot in negated) for slot in slots),
    )
