"""
Exception hierarchy for qubit_weave.

Every error raised by the operation algebra, the circuit container and the
measurement evaluator derives from :class:`QubitWeaveError`.
"""

from __future__ import annotations

from typing import Iterable, Optional


class QubitWeaveError(Exception):
    """
    Base exception for all qubit_weave errors.
    """


class RegisterConflictError(QubitWeaveError):
    """
    Raised when a circuit would end up with two incompatible declarations
    of the same classical register, or when an operation refers to a
    register that is not declared or does not fit.
    """

    def __init__(self, register: str, message: str) -> None:
        self.register = register
        super().__init__(message)


class QubitMappingError(QubitWeaveError):
    """
    Raised when a qubit remapping has no entry for an occurring qubit.
    """

    def __init__(self, qubit: int) -> None:
        self.qubit = qubit
        super().__init__(f"Qubit {qubit} has no entry in the qubit mapping")


class SymbolicResolutionError(QubitWeaveError):
    """
    Raised when a symbolic value has to be evaluated but still references
    unresolved variables.
    """

    def __init__(self, variables: Iterable[str], message: Optional[str] = None) -> None:
        self.variables = tuple(sorted(variables))
        if message is None:
            message = "Unresolved symbolic variables: " + ", ".join(self.variables)
        super().__init__(message)


class MissingRegisterError(QubitWeaveError):
    """
    Raised when a register referenced by a measurement definition is not
    part of the results handed to the evaluator.
    """

    def __init__(self, register: str, message: Optional[str] = None) -> None:
        self.register = register
        super().__init__(message or f"Register '{register}' is missing")


class MalformedRegisterError(QubitWeaveError):
    """
    Raised when raw register data does not have the expected shape.
    """

    def __init__(self, register: str, message: str) -> None:
        self.register = register
        super().__init__(message)


class SerializationError(QubitWeaveError, ValueError):
    """
    Raised when serialized data can not be turned back into objects.
    """


class UnknownOperationError(SerializationError):
    """
    Raised when an operation name is not part of the active variant set.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown operation type '{name}'")


class BackendExecutionError(QubitWeaveError):
    """
    Wraps any error raised by an execution backend. The backend error is
    kept in ``original`` and chained as ``__cause__``.
    """

    def __init__(self, original: BaseException) -> None:
        self.original = original
        super().__init__(f"Backend execution failed: {original!r}")
