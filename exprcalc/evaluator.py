"""Tree-walking evaluator.

Operands are evaluated strictly left to right, depth first. Every binary
operator has exactly one rule function in ``BINARY_OPERATORS``; the rules
implement the numeric tower (Int op Int stays Int, anything involving a
Float becomes Float) and reject Booleans, Sequences and functions where a
number is required.
"""

from __future__ import annotations

import logging
import math
import operator
import sys
from typing import Any, Callable, Dict, Optional, Tuple

from .ast_nodes import (
    ASTNode,
    Assignment,
    BinaryOp,
    Call,
    FunctionLiteral,
    Identifier,
    Literal,
    SequenceLiteral,
    UnaryOp,
)
from .environment import Environment
from .errors import CalculatorError, ErrorKind, EvalError
from .values import Builtin, Closure, is_int, is_number, truthy, type_name

logger = logging.getLogger(__name__)

DEFAULT_MAX_CALL_DEPTH = 100
DEFAULT_MAX_INT_BITS = 4096

# Interpreter frames reserved per closure call, so the call-depth guard
# fires before Python's own recursion limit.
FRAMES_PER_CALL = 50

Rule = Callable[[Any, Any, Optional[int], int], Any]


# --------------------------
# Operator rules
# --------------------------

def _mismatch(op: str, a: Any, b: Any, pos: Optional[int]) -> EvalError:
    return EvalError(ErrorKind.TYPE_MISMATCH,
                     f"Unsupported operand types for {op}: {type_name(a)} and {type_name(b)}", pos)


def _check_numbers(op: str, a: Any, b: Any, pos: Optional[int]) -> None:
    if not (is_number(a) and is_number(b)):
        raise _mismatch(op, a, b, pos)


def _check_ints(op: str, a: Any, b: Any, pos: Optional[int]) -> None:
    if not (is_int(a) and is_int(b)):
        raise EvalError(ErrorKind.TYPE_MISMATCH,
                        f"Bitwise {op} requires Int operands, got {type_name(a)} and {type_name(b)}", pos)


def _arithmetic(op: str, func: Callable[[Any, Any], Any]) -> Rule:
    def rule(a: Any, b: Any, pos: Optional[int], max_bits: int) -> Any:
        _check_numbers(op, a, b, pos)
        if is_int(a) and is_int(b):
            return func(a, b)
        return func(float(a), float(b))
    return rule


def _divide(a: Any, b: Any, pos: Optional[int], max_bits: int) -> Any:
    _check_numbers('/', a, b, pos)
    if b == 0:
        raise EvalError(ErrorKind.DIVISION_BY_ZERO, "Division by zero", pos)
    if is_int(a) and is_int(b):
        quotient, remainder = divmod(a, b)
        if remainder == 0:
            return quotient
    return a / b


def _modulo(a: Any, b: Any, pos: Optional[int], max_bits: int) -> Any:
    _check_numbers('%', a, b, pos)
    if b == 0:
        raise EvalError(ErrorKind.DIVISION_BY_ZERO, "Modulo by zero", pos)
    if is_int(a) and is_int(b):
        return a % b
    return float(a) % float(b)


def _power(a: Any, b: Any, pos: Optional[int], max_bits: int) -> Any:
    _check_numbers('**', a, b, pos)
    if is_int(a) and is_int(b) and b >= 0:
        # |a| >= 2 ** (bit_length - 1), so this bound never rejects a result that fits
        if (a.bit_length() - 1) * b > max_bits:
            raise EvalError(ErrorKind.OVERFLOW, f"Integer result exceeds {max_bits} bits", pos)
        return a ** b
    if a == 0 and b < 0:
        raise EvalError(ErrorKind.DIVISION_BY_ZERO, "Zero raised to a negative power", pos)
    return math.pow(float(a), float(b))


def _bitwise(op: str, func: Callable[[int, int], int]) -> Rule:
    def rule(a: Any, b: Any, pos: Optional[int], max_bits: int) -> int:
        _check_ints(op, a, b, pos)
        return func(a, b)
    return rule


def _shift(op: str) -> Rule:
    def rule(a: Any, b: Any, pos: Optional[int], max_bits: int) -> int:
        _check_ints(op, a, b, pos)
        if b < 0:
            raise EvalError(ErrorKind.DOMAIN, "negative shift count", pos)
        if op == '>>':
            return a >> b
        if a and a.bit_length() + b > max_bits:
            raise EvalError(ErrorKind.OVERFLOW, f"Integer result exceeds {max_bits} bits", pos)
        return a << b
    return rule


def values_equal(a: Any, b: Any) -> bool:
    """Equality across Values: numbers compare numerically, other types never equal numbers."""
    if is_number(a) and is_number(b):
        return a == b
    if type_name(a) != type_name(b):
        return False
    if isinstance(a, tuple):
        return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, Closure):
        return a is b
    return a == b


def _equality(negate: bool) -> Rule:
    def rule(a: Any, b: Any, pos: Optional[int], max_bits: int) -> bool:
        return values_equal(a, b) != negate
    return rule


def _ordering(op: str, func: Callable[[Any, Any], bool]) -> Rule:
    def rule(a: Any, b: Any, pos: Optional[int], max_bits: int) -> bool:
        _check_numbers(op, a, b, pos)
        return func(a, b)
    return rule


BINARY_OPERATORS: Dict[str, Rule] = {
    '+': _arithmetic('+', operator.add),
    '-': _arithmetic('-', operator.sub),
    '*': _arithmetic('*', operator.mul),
    '/': _divide,
    '%': _modulo,
    '**': _power,
    '&': _bitwise('&', operator.and_),
    '|': _bitwise('|', operator.or_),
    '^': _bitwise('^', operator.xor),
    '<<': _shift('<<'),
    '>>': _shift('>>'),
    '==': _equality(False),
    '!=': _equality(True),
    '<': _ordering('<', operator.lt),
    '>': _ordering('>', operator.gt),
    '<=': _ordering('<=', operator.le),
    '>=': _ordering('>=', operator.ge),
}


def _native_error(exc: Exception, what: str, pos: Optional[int]) -> EvalError:
    if isinstance(exc, ZeroDivisionError):
        return EvalError(ErrorKind.DIVISION_BY_ZERO, f"Division by zero in {what}", pos)
    if isinstance(exc, OverflowError):
        return EvalError(ErrorKind.OVERFLOW, f"Numerical result out of range in {what}", pos)
    return EvalError(ErrorKind.DOMAIN, f"Domain error in {what}: {exc}", pos)


# --------------------------
# Evaluator
# --------------------------

class EvalContext:
    """Handed to context-taking built-ins (map, filter, reduce, reset)."""

    def __init__(self, evaluator: 'Evaluator', env: Environment, pos: Optional[int]):
        self._evaluator = evaluator
        self._env = env
        self._pos = pos

    @property
    def globals(self) -> Environment:
        return self._env.root()

    def call(self, fn: Any, args: Tuple[Any, ...]) -> Any:
        return self._evaluator.call_value(fn, args, self._env, self._pos)


class Evaluator:
    """Evaluates AST nodes against an Environment."""

    def __init__(self, max_call_depth: int = DEFAULT_MAX_CALL_DEPTH,
                 max_int_bits: int = DEFAULT_MAX_INT_BITS):
        self.max_call_depth = max_call_depth
        self.max_int_bits = max_int_bits
        self.depth = 0

    def evaluate(self, node: ASTNode, env: Environment) -> Any:
        """Evaluate given AST node and return the result or raise EvalError."""
        self.depth = 0
        limit = sys.getrecursionlimit()
        sys.setrecursionlimit(limit + self.max_call_depth * FRAMES_PER_CALL)
        try:
            return self.eval(node, env)
        except RecursionError:
            raise EvalError(ErrorKind.RECURSION_LIMIT, "Maximum recursion depth exceeded", getattr(node, 'pos', None))
        finally:
            sys.setrecursionlimit(limit)
            self.depth = 0

    def _check_int(self, value: Any, pos: Optional[int]) -> Any:
        if is_int(value) and value.bit_length() > self.max_int_bits:
            raise EvalError(ErrorKind.OVERFLOW, f"Integer result exceeds {self.max_int_bits} bits", pos)
        return value

    def eval(self, node: ASTNode, env: Environment) -> Any:
        if isinstance(node, Literal):
            return self._check_int(node.value, node.pos)
        if isinstance(node, Identifier):
            return env.get(node.name, node.pos)
        if isinstance(node, SequenceLiteral):
            return tuple([self.eval(e, env) for e in node.elements])
        if isinstance(node, UnaryOp):
            return self._unary(node, self.eval(node.operand, env))
        if isinstance(node, BinaryOp):
            return self._binary(node, env)
        if isinstance(node, Assignment):
            value = self.eval(node.value, env)
            env.define(node.name, value)
            logger.debug("bound %s", node.name)
            return value
        if isinstance(node, Call):
            callee = self.eval(node.callee, env)
            args = tuple([self.eval(a, env) for a in node.args])
            return self.call_value(callee, args, env, node.pos)
        if isinstance(node, FunctionLiteral):
            return Closure(node.params, node.body, env, node.name)
        raise EvalError(ErrorKind.TYPE_MISMATCH, f"Unsupported AST node: {type(node).__name__}")

    def _unary(self, node: UnaryOp, val: Any) -> Any:
        op = node.op
        if op == 'not':
            return not truthy(val, node.pos)
        if op == '~':
            if not is_int(val):
                raise EvalError(ErrorKind.TYPE_MISMATCH, f"Bitwise ~ requires an Int operand, got {type_name(val)}", node.pos)
            return ~val
        if op in ('-', '+'):
            if not is_number(val):
                raise EvalError(ErrorKind.TYPE_MISMATCH, f"Unary {op} requires a number, got {type_name(val)}", node.pos)
            return -val if op == '-' else val
        raise EvalError(ErrorKind.TYPE_MISMATCH, f"Unknown unary operator: {op}", node.pos)

    def _binary(self, node: BinaryOp, env: Environment) -> Any:
        left_val = self.eval(node.left, env)
        # logical short-circuit; the deciding operand is the result
        if node.op == 'and':
            return self.eval(node.right, env) if truthy(left_val, node.pos) else left_val
        if node.op == 'or':
            return left_val if truthy(left_val, node.pos) else self.eval(node.right, env)
        right_val = self.eval(node.right, env)
        rule = BINARY_OPERATORS.get(node.op)
        if rule is None:
            raise EvalError(ErrorKind.TYPE_MISMATCH, f"Unknown binary operator: {node.op}", node.pos)
        try:
            result = rule(left_val, right_val, node.pos, self.max_int_bits)
        except CalculatorError:
            raise
        except (ArithmeticError, ValueError) as e:
            raise _native_error(e, f"operator {node.op}", node.pos)
        return self._check_int(result, node.pos)

    def call_value(self, fn: Any, args: Tuple[Any, ...], env: Environment, pos: Optional[int] = None) -> Any:
        """Invoke a Builtin or Closure with already evaluated arguments."""
        if isinstance(fn, Builtin):
            return self._call_builtin(fn, args, env, pos)
        if isinstance(fn, Closure):
            return self._call_closure(fn, args, pos)
        raise EvalError(ErrorKind.NOT_CALLABLE, f"{type_name(fn)} value is not callable", pos)

    def _call_builtin(self, fn: Builtin, args: Tuple[Any, ...], env: Environment, pos: Optional[int]) -> Any:
        if not fn.accepts(len(args)):
            raise EvalError(ErrorKind.ARITY_MISMATCH,
                            f"{fn.name}() takes {fn.arity_text()} argument(s), got {len(args)}", pos)
        try:
            if fn.needs_context:
                result = fn.fn(EvalContext(self, env, pos), *args)
            else:
                result = fn.fn(*args)
        except CalculatorError as e:
            if e.pos is None:
                e.pos = pos
            raise
        except (ArithmeticError, ValueError) as e:
            raise _native_error(e, f"function '{fn.name}'", pos)
        return self._check_int(result, pos)

    def _call_closure(self, fn: Closure, args: Tuple[Any, ...], pos: Optional[int]) -> Any:
        if len(args) != fn.arity:
            label = fn.name or 'function'
            raise EvalError(ErrorKind.ARITY_MISMATCH,
                            f"{label} takes {fn.arity} argument(s), got {len(args)}", pos)
        if self.depth >= self.max_call_depth:
            raise EvalError(ErrorKind.RECURSION_LIMIT,
                            f"Maximum call depth of {self.max_call_depth} exceeded", pos)
        scope = fn.scope.child()
        for name, value in zip(fn.params, args):
            scope.define(name, value)
        self.depth += 1
        try:
            return self.eval(fn.body, scope)
        finally:
            self.depth -= 1
