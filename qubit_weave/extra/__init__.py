from .symbolic import SymbolicValue, Substitutions, SymbolicLike  # noqa: F401
