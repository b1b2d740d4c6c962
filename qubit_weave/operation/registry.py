"""
Name based lookup of operation types.

The serialized form identifies an operation by the name of its operation
type. The built-in enums are registered on import; additional enums built on
``OperationTypeMixin`` can be added with ``register_operation_type``.
"""

from __future__ import annotations

import logging
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, Type

from qubit_weave.exceptions import UnknownOperationError
from qubit_weave.operation.operation import FieldKind, Involvement, OperationTypeMixin

logger = logging.getLogger(__name__)

_REGISTRY: Dict[str, OperationTypeMixin] = {}


def _validate(member: OperationTypeMixin) -> None:
    if not isinstance(member, OperationTypeMixin):
        raise TypeError(f"{member!r} does not derive from OperationTypeMixin")
    if not isinstance(getattr(member, "involvement", None), Involvement):
        raise TypeError(f"{member.name} does not declare its qubit involvement")
    names = [spec.name for spec in member.field_specs]
    if len(names) != len(set(names)):
        raise ValueError(f"{member.name} declares duplicate fields")
    for spec in member.field_specs:
        if not isinstance(spec.kind, FieldKind):
            raise TypeError(f"Field '{spec.name}' of {member.name} has no FieldKind")


def register_operation_type(enum_cls: Type[Enum]) -> None:
    """
    Registers every member of an operation type enum

    Parameters
    ----------
    enum_cls: Type[Enum]
        Enum deriving from ``OperationTypeMixin``

    Raises
    ------
    ValueError
        If a member name is already taken by another operation type
    """
    members = list(enum_cls)
    for member in members:
        _validate(member)
        registered = _REGISTRY.get(member.name)
        if registered is not None and registered is not member:
            raise ValueError(
                f"Operation name '{member.name}' is already registered by "
                f"{type(registered).__name__}"
            )
    for member in members:
        _REGISTRY[member.name] = member
    logger.debug("Registered %d operation types from %s", len(members), enum_cls.__name__)


def operation_type_from_name(name: str) -> OperationTypeMixin:
    try:
        return _REGISTRY[name]
    except KeyError:
        raise UnknownOperationError(name) from None


def registered_operation_types() -> Mapping[str, OperationTypeMixin]:
    return MappingProxyType(_REGISTRY)
