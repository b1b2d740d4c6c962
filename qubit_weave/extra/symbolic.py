"""
Scalar parameters that are either a concrete float or a symbolic expression.

Expressions are parsed and manipulated with SymPy. A value collapses back to a
plain float as soon as it no longer has free symbols, so code that only deals
with numbers never has to touch SymPy objects.
"""

from __future__ import annotations

import io
import keyword
import math
import numbers
import tokenize
from typing import Any, Callable, Dict, Mapping, Optional, Union

import sympy as sp
from sympy.parsing.sympy_parser import auto_number, auto_symbol, parse_expr
from sympy.printing.str import StrPrinter

from qubit_weave.exceptions import SerializationError, SymbolicResolutionError

SymbolicLike = Union["SymbolicValue", float, int, str, sp.Basic]
Substitutions = Mapping[str, SymbolicLike]


_FUNCTIONS = {
    "sqrt": sp.sqrt,
    "exp": sp.exp,
    "sin": sp.sin,
    "cos": sp.cos,
    "Abs": sp.Abs,
    "abs": sp.Abs,
    "pi": sp.pi,
}
# Names emitted by the parser transformations themselves
_BUILDERS = {
    "Symbol": sp.Symbol,
    "Integer": sp.Integer,
    "Float": sp.Float,
    "Rational": sp.Rational,
}
_OPERATORS = frozenset({"+", "-", "*", "/", "**", "(", ")"})
_IGNORED = frozenset({tokenize.NEWLINE, tokenize.NL, tokenize.ENDMARKER})


def _check_tokens(text: str) -> None:
    try:
        tokens = list(tokenize.generate_tokens(io.StringIO(text).readline))
    except (tokenize.TokenError, SyntaxError) as exc:
        raise ValueError(f"Can not parse symbolic expression '{text}'") from exc
    for token in tokens:
        if token.type in _IGNORED:
            continue
        if token.type == tokenize.NUMBER and token.string[-1] not in "jJ":
            continue
        if token.type == tokenize.OP and token.string in _OPERATORS:
            continue
        if (
            token.type == tokenize.NAME
            and not token.string.startswith("_")
            and not keyword.iskeyword(token.string)
            and token.string not in _BUILDERS
        ):
            continue
        raise ValueError(f"Unsupported token '{token.string}' in symbolic expression '{text}'")


def _parse(text: str) -> sp.Expr:
    """
    Parses ``text`` into a SymPy expression.

    Only numbers, names, arithmetic operators and ``sqrt``, ``exp``, ``sin``,
    ``cos``, ``abs`` and ``pi`` are accepted. Every other name becomes a free
    variable, including names SymPy would otherwise read as constants or
    functions (``E``, ``gamma``, ``N``).
    """
    text = text.strip()
    _check_tokens(text)
    namespace: Dict[str, Any] = {"__builtins__": {}, **_BUILDERS, **_FUNCTIONS}
    try:
        expr = parse_expr(
            text,
            local_dict={},
            global_dict=namespace,
            transformations=(auto_symbol, auto_number),
        )
    except (sp.SympifyError, SyntaxError, TypeError, ValueError) as exc:
        raise ValueError(f"Can not parse symbolic expression '{text}'") from exc
    if not isinstance(expr, sp.Expr):
        raise ValueError(f"'{text}' is not a scalar expression")
    return expr


class _ExpressionPrinter(StrPrinter):
    # Euler's number has no name of its own in the accepted grammar
    def _print_Exp1(self, expr: Any) -> str:
        return "exp(1)"


def _collapse(expr: sp.Expr) -> float:
    try:
        return float(expr.evalf())
    except TypeError as exc:
        raise ValueError(f"Expression '{expr}' does not evaluate to a real number") from exc


class SymbolicValue:
    """
    A real number or a symbolic expression over named variables.

    Parameters
    ----------
    value: SymbolicLike
        Number, numeric string, expression string (``"2*theta + pi"``),
        SymPy expression or another ``SymbolicValue``

    Examples
    --------
    >>> angle = SymbolicValue("theta / 2")
    >>> angle.is_float
    False
    >>> angle.substitute({"theta": 1.0})
    SymbolicValue(0.5)
    """

    __slots__ = ("_float", "_expr")

    def __init__(self, value: SymbolicLike = 0.0) -> None:
        self._float: Optional[float] = None
        self._expr: Optional[sp.Expr] = None
        if isinstance(value, SymbolicValue):
            self._float = value._float
            self._expr = value._expr
            return
        if isinstance(value, bool):
            raise TypeError("Boolean values are not valid symbolic values")
        if isinstance(value, numbers.Real):
            self._float = float(value)
            return
        if isinstance(value, str):
            try:
                self._float = float(value)
                return
            except ValueError:
                value = _parse(value)
        if isinstance(value, sp.Basic):
            if value.free_symbols:
                self._expr = value
            else:
                self._float = _collapse(value)
            return
        raise TypeError(f"Can not build a symbolic value from {type(value).__name__}")

    @property
    def is_float(self) -> bool:
        return self._float is not None

    @property
    def value(self) -> float:
        """
        Numeric value, only available once every variable is resolved
        """
        if self._float is None:
            raise SymbolicResolutionError(self.free_symbols)
        return self._float

    @property
    def expression(self) -> sp.Expr:
        if self._expr is not None:
            return self._expr
        return sp.Float(self._float)

    @property
    def free_symbols(self) -> frozenset:
        if self._expr is None:
            return frozenset()
        return frozenset(symbol.name for symbol in self._expr.free_symbols)

    def substitute(self, mapping: Optional[Substitutions]) -> "SymbolicValue":
        """
        Replaces the variables found in ``mapping``. Substitution is partial:
        variables missing from the mapping stay symbolic.
        """
        if self._expr is None or not mapping:
            return self
        replacements = {
            sp.Symbol(name): _as_expr(value)
            for name, value in mapping.items()
            if name in self.free_symbols
        }
        if not replacements:
            return self
        return SymbolicValue(self._expr.subs(replacements))

    def evaluate(self, mapping: Optional[Substitutions] = None) -> float:
        """
        Substitutes and requires a numeric result

        Raises
        ------
        SymbolicResolutionError
            If variables remain unresolved after substitution
        """
        return self.substitute(mapping).value

    def to_json(self) -> Union[float, str]:
        if self._float is not None:
            return self._float
        return _ExpressionPrinter().doprint(self._expr)

    @classmethod
    def from_json(cls, data: Union[float, int, str]) -> "SymbolicValue":
        """
        Restores a value written by ``to_json``

        Raises
        ------
        SerializationError
            If ``data`` is not a number or an accepted expression
        """
        try:
            return cls(data)
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"Invalid symbolic value {data!r}") from exc

    def _binary(
        self,
        other: Any,
        numeric: Callable[[float, float], float],
        symbolic: Callable[[sp.Expr, sp.Expr], sp.Expr],
        reflected: bool = False,
    ) -> "SymbolicValue":
        try:
            other = SymbolicValue(other)
        except TypeError:
            return NotImplemented
        left, right = (other, self) if reflected else (self, other)
        if left.is_float and right.is_float:
            return SymbolicValue(numeric(left._float, right._float))
        return SymbolicValue(symbolic(left.expression, right.expression))

    def __add__(self, other: Any) -> "SymbolicValue":
        return self._binary(other, lambda a, b: a + b, lambda a, b: a + b)

    def __radd__(self, other: Any) -> "SymbolicValue":
        return self._binary(other, lambda a, b: a + b, lambda a, b: a + b, True)

    def __sub__(self, other: Any) -> "SymbolicValue":
        return self._binary(other, lambda a, b: a - b, lambda a, b: a - b)

    def __rsub__(self, other: Any) -> "SymbolicValue":
        return self._binary(other, lambda a, b: a - b, lambda a, b: a - b, True)

    def __mul__(self, other: Any) -> "SymbolicValue":
        return self._binary(other, lambda a, b: a * b, lambda a, b: a * b)

    def __rmul__(self, other: Any) -> "SymbolicValue":
        return self._binary(other, lambda a, b: a * b, lambda a, b: a * b, True)

    def __truediv__(self, other: Any) -> "SymbolicValue":
        return self._binary(other, lambda a, b: a / b, lambda a, b: a / b)

    def __rtruediv__(self, other: Any) -> "SymbolicValue":
        return self._binary(other, lambda a, b: a / b, lambda a, b: a / b, True)

    def __neg__(self) -> "SymbolicValue":
        if self._float is not None:
            return SymbolicValue(-self._float)
        return SymbolicValue(-self._expr)

    def __abs__(self) -> "SymbolicValue":
        if self._float is not None:
            return SymbolicValue(abs(self._float))
        return SymbolicValue(sp.Abs(self._expr))

    def _unary(self, numeric: Callable[[float], float], symbolic) -> "SymbolicValue":
        if self._float is not None:
            return SymbolicValue(numeric(self._float))
        return SymbolicValue(symbolic(self._expr))

    def sqrt(self) -> "SymbolicValue":
        return self._unary(math.sqrt, sp.sqrt)

    def exp(self) -> "SymbolicValue":
        return self._unary(math.exp, sp.exp)

    def cos(self) -> "SymbolicValue":
        return self._unary(math.cos, sp.cos)

    def sin(self) -> "SymbolicValue":
        return self._unary(math.sin, sp.sin)

    def __float__(self) -> float:
        return self.value

    def __eq__(self, other: object) -> bool:
        try:
            other = SymbolicValue(other)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return NotImplemented
        if self.is_float and other.is_float:
            return self._float == other._float
        if self.is_float or other.is_float:
            return False
        return bool(self._expr == other._expr)

    def __hash__(self) -> int:
        if self._float is not None:
            return hash(self._float)
        return hash(self._expr)

    def __repr__(self) -> str:
        if self._float is not None:
            return f"SymbolicValue({self._float!r})"
        return f"SymbolicValue('{self._expr}')"

    def __str__(self) -> str:
        return str(self.to_json())


def _as_expr(value: SymbolicLike) -> sp.Expr:
    return SymbolicValue(value).expression
