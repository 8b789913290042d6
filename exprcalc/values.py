"""Runtime values.

Numbers and booleans are plain Python ``int``, ``float`` and ``bool``;
sequences are tuples. Functions are represented by :class:`Closure` and
:class:`Builtin`, and a failed evaluation is reported to the UI as an
:class:`ErrorValue`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Optional, Tuple, Union

from .ast_nodes import ASTNode
from .errors import CalculatorError, ErrorKind, EvalError

if TYPE_CHECKING:
    from .environment import Environment


@dataclass(eq=False)
class Closure:
    """A user function together with the scope it was defined in.

    ``scope`` is the live defining Environment, not a copy, so later changes
    to captured variables are visible when the closure runs.
    """
    params: Tuple[str, ...]
    body: ASTNode
    scope: 'Environment' = field(repr=False)
    name: Optional[str] = None

    @property
    def arity(self) -> int:
        return len(self.params)

    def __repr__(self) -> str:
        return f"<closure {self.name or 'anonymous'}/{self.arity}>"


@dataclass(frozen=True)
class Builtin:
    """A native function from the built-in catalog.

    ``max_args`` of None means variadic. When ``needs_context`` is set the
    native function receives the evaluator's context as its first argument.
    """
    name: str
    min_args: int
    max_args: Optional[int]
    fn: Callable[..., Any] = field(repr=False)
    needs_context: bool = False
    doc: str = ''

    def accepts(self, count: int) -> bool:
        if count < self.min_args:
            return False
        return self.max_args is None or count <= self.max_args

    def arity_text(self) -> str:
        if self.max_args == self.min_args:
            return str(self.min_args)
        if self.max_args is None:
            return f"at least {self.min_args}"
        return f"{self.min_args} to {self.max_args}"

    def __repr__(self) -> str:
        return f"<builtin {self.name}>"


@dataclass(frozen=True)
class ErrorValue:
    kind: str
    message: str
    pos: Optional[int] = None

    @classmethod
    def from_exception(cls, exc: CalculatorError) -> 'ErrorValue':
        return cls(exc.kind, exc.message, exc.pos)


Number = Union[int, float]
Value = Union[int, float, bool, tuple, Closure, Builtin, ErrorValue]


def is_int(value: Any) -> bool:
    """True for Int values. Booleans are not integers here."""
    return isinstance(value, int) and not isinstance(value, bool)


def is_number(value: Any) -> bool:
    return is_int(value) or isinstance(value, float)


def is_callable(value: Any) -> bool:
    return isinstance(value, (Closure, Builtin))


def type_name(value: Any) -> str:
    if isinstance(value, bool):
        return 'Boolean'
    if is_int(value):
        return 'Int'
    if isinstance(value, float):
        return 'Float'
    if isinstance(value, tuple):
        return 'Sequence'
    if isinstance(value, Closure):
        return 'Closure'
    if isinstance(value, Builtin):
        return 'Builtin'
    if isinstance(value, ErrorValue):
        return 'Error'
    return type(value).__name__


def truthy(value: Any, pos: Optional[int] = None) -> bool:
    """Truth value of a Boolean or Number; anything else is a TypeMismatch."""
    if isinstance(value, bool):
        return value
    if is_number(value):
        return value != 0
    raise EvalError(ErrorKind.TYPE_MISMATCH, f"Expected Boolean or number, got {type_name(value)}", pos)
