"""Built-in functions and constants.

The catalog is fixed at import time and exposed read-only. Native functions
take Values and return Values; argument checking raises ``EvalError`` and
any ``ValueError``/``OverflowError`` escaping a native function is turned
into a DomainError/Overflow by the evaluator.
"""

from __future__ import annotations

import math
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from .environment import reset_variables
from .errors import ErrorKind, EvalError
from .values import Builtin, Number, is_callable, is_int, is_number, truthy, type_name

MAX_FACTORIAL = 1000
MAX_SEQUENCE = 100_000
MAX_MASK_BITS = 4096


# --------------------------
# Argument helpers
# --------------------------

def _type_error(name: str, expected: str, got: Any) -> EvalError:
    return EvalError(ErrorKind.TYPE_MISMATCH, f"{name}() expects {expected}, got {type_name(got)}")


def _number(name: str, x: Any) -> Number:
    if not is_number(x):
        raise _type_error(name, 'a number', x)
    return x


def _as_float(name: str, x: Any) -> float:
    return float(_number(name, x))


def _ensure_int(name: str, x: Any, integral_float: bool = False) -> int:
    """Return x as int. Integer-valued floats are accepted only when asked for."""
    if is_int(x):
        return x
    if integral_float and isinstance(x, float):
        # Accept floats that represent exact integers (within tolerance)
        if math.isfinite(x) and abs(x - round(x)) < 1e-9:
            return int(round(x))
        raise EvalError(ErrorKind.DOMAIN, f"{name}() expects an integer value, got {x}")
    raise _type_error(name, 'an Int', x)


def _sequence(name: str, x: Any) -> tuple:
    if not isinstance(x, tuple):
        raise _type_error(name, 'a sequence', x)
    return x


def _function(name: str, fn: Any) -> Any:
    if not is_callable(fn):
        raise _type_error(name, 'a function', fn)
    return fn


def _numbers(name: str, args: Tuple[Any, ...]) -> Tuple[Number, ...]:
    if len(args) == 1 and isinstance(args[0], tuple):
        args = args[0]
    if not args:
        raise EvalError(ErrorKind.DOMAIN, f"{name}() of an empty sequence")
    return tuple(_number(name, a) for a in args)


# --------------------------
# Native implementations
# --------------------------

def _do_factorial(val: Any) -> int:
    """Factorial for non-negative integer-like values."""
    n = _ensure_int('factorial', val, integral_float=True)
    if n < 0:
        raise EvalError(ErrorKind.DOMAIN, "factorial not defined for negative numbers")
    if n > MAX_FACTORIAL:
        raise EvalError(ErrorKind.OVERFLOW, "factorial result too large")
    return math.factorial(n)


def _log(x: Any, base: Any = None) -> float:
    value = _as_float('log', x)
    if base is None:
        return math.log10(value)
    b = _as_float('log', base)
    if b == 1:
        raise EvalError(ErrorKind.DOMAIN, "log() base must not be 1")
    return math.log(value, b)


def _abs(x: Any) -> Number:
    return abs(_number('abs', x))


def _sq(x: Any) -> Number:
    x = _number('sq', x)
    return x * x


def _cube(x: Any) -> Number:
    x = _number('cube', x)
    return x * x * x


def _rounding(name: str, func: Callable[[float], int]) -> Callable[[Any], int]:
    def apply(x: Any) -> int:
        x = _number(name, x)
        if is_int(x):
            return x
        return func(x)
    return apply


def _round(x: Any, ndigits: Any = None) -> Number:
    x = _number('round', x)
    if ndigits is None:
        return x if is_int(x) else round(x)
    return float(round(x, _ensure_int('round', ndigits)))


def _to_int(x: Any) -> int:
    if isinstance(x, bool):
        return int(x)
    x = _number('int', x)
    return x if is_int(x) else math.trunc(x)


def _to_float(x: Any) -> float:
    if isinstance(x, bool):
        return float(x)
    return _as_float('float', x)


def _gcd(a: Any, b: Any) -> int:
    return math.gcd(_ensure_int('gcd', a), _ensure_int('gcd', b))


def _lcm(a: Any, b: Any) -> int:
    return math.lcm(_ensure_int('lcm', a), _ensure_int('lcm', b))


def _popcount(x: Any) -> int:
    n = _ensure_int('popcount', x)
    if n < 0:
        raise EvalError(ErrorKind.DOMAIN, "popcount() of a negative number")
    return bin(n).count('1')


def _bitlen(x: Any) -> int:
    return _ensure_int('bitlen', x).bit_length()


def _mask(bits: Any) -> int:
    n = _ensure_int('mask', bits)
    if n < 0:
        raise EvalError(ErrorKind.DOMAIN, "mask() width must be non-negative")
    if n > MAX_MASK_BITS:
        raise EvalError(ErrorKind.OVERFLOW, f"mask() width above {MAX_MASK_BITS} bits")
    return (1 << n) - 1


def _bit(x: Any, index: Any) -> int:
    n = _ensure_int('bit', x)
    i = _ensure_int('bit', index)
    if i < 0:
        raise EvalError(ErrorKind.DOMAIN, "bit() index must be non-negative")
    return (n >> i) & 1


def _min(*args: Any) -> Number:
    return min(_numbers('min', args))


def _max(*args: Any) -> Number:
    return max(_numbers('max', args))


def _sum(seq: Any) -> Number:
    items = tuple(_number('sum', x) for x in _sequence('sum', seq))
    return sum(items)


def _len(seq: Any) -> int:
    return len(_sequence('len', seq))


def _range(*args: Any) -> tuple:
    bounds = [_ensure_int('range', a) for a in args]
    if len(bounds) == 1:
        bounds.insert(0, 0)
    if len(bounds) == 3 and bounds[2] == 0:
        raise EvalError(ErrorKind.DOMAIN, "range() step must not be zero")
    r = range(*bounds)
    if len(r) > MAX_SEQUENCE:
        raise EvalError(ErrorKind.OVERFLOW, f"range() longer than {MAX_SEQUENCE} items")
    return tuple(r)


def _map(ctx: Any, seq: Any, fn: Any) -> tuple:
    items = _sequence('map', seq)
    fn = _function('map', fn)
    return tuple([ctx.call(fn, (item,)) for item in items])


def _filter(ctx: Any, seq: Any, fn: Any) -> tuple:
    items = _sequence('filter', seq)
    fn = _function('filter', fn)
    return tuple([item for item in items if truthy(ctx.call(fn, (item,)))])


def _reduce(ctx: Any, seq: Any, fn: Any, *initial: Any) -> Any:
    items = list(_sequence('reduce', seq))
    fn = _function('reduce', fn)
    if initial:
        acc = initial[0]
    elif items:
        acc = items.pop(0)
    else:
        raise EvalError(ErrorKind.DOMAIN, "reduce() of empty sequence with no initial value")
    for item in items:
        acc = ctx.call(fn, (acc, item))
    return acc


def _reset(ctx: Any) -> int:
    return reset_variables(ctx.globals)


# --------------------------
# Registry
# --------------------------

_BUILTINS: Dict[str, Builtin] = {}


def _register(name: str, fn: Callable[..., Any], min_args: int = 1,
              max_args: Optional[int] = -1, needs_context: bool = False, doc: str = '') -> None:
    if max_args == -1:
        max_args = min_args
    _BUILTINS[name] = Builtin(name, min_args, max_args, fn, needs_context, doc)


def _register_float(name: str, func: Callable[..., float], doc: str, arity: int = 1) -> None:
    def apply(*args: Any) -> float:
        return func(*(_as_float(name, a) for a in args))
    _register(name, apply, arity, doc=doc)


# Float domain math
_register_float('sin', math.sin, 'sine (radians)')
_register_float('cos', math.cos, 'cosine (radians)')
_register_float('tan', math.tan, 'tangent (radians)')
_register_float('asin', math.asin, 'arc sine')
_register_float('acos', math.acos, 'arc cosine')
_register_float('atan', math.atan, 'arc tangent')
_register_float('atan2', math.atan2, 'atan2(y, x)', arity=2)
_register_float('sinh', math.sinh, 'hyperbolic sine')
_register_float('cosh', math.cosh, 'hyperbolic cosine')
_register_float('tanh', math.tanh, 'hyperbolic tangent')
_register_float('sqrt', math.sqrt, 'square root')
_register_float('cbrt', math.cbrt, 'cube root')
_register_float('exp', math.exp, 'e raised to x')
_register_float('ln', math.log, 'natural logarithm')
_register_float('log2', math.log2, 'base 2 logarithm')
_register_float('hypot', math.hypot, 'hypot(x, y)', arity=2)
_register('log', _log, 1, 2, doc='log(x) base 10, log(x, b) base b')
_register('sq', _sq, doc='x squared')
_register('cube', _cube, doc='x cubed')

# Rounding / conversion
_register('abs', _abs, doc='absolute value')
_register('floor', _rounding('floor', math.floor), doc='round down to Int')
_register('ceil', _rounding('ceil', math.ceil), doc='round up to Int')
_register('trunc', _rounding('trunc', math.trunc), doc='round toward zero to Int')
_register('round', _round, 1, 2, doc='round(x) to Int, round(x, n) to n digits')
_register('int', _to_int, doc='convert to Int, truncating')
_register('float', _to_float, doc='convert to Float')

# Integers and bits
_register('factorial', _do_factorial, doc='n!')
_register('gcd', _gcd, 2, doc='greatest common divisor')
_register('lcm', _lcm, 2, doc='least common multiple')
_register('popcount', _popcount, doc='number of set bits')
_register('bitlen', _bitlen, doc='number of bits needed to represent x')
_register('mask', _mask, doc='mask(n) == 2 ** n - 1')
_register('bit', _bit, 2, doc='bit(x, i) is bit i of x')

# Sequences
_register('min', _min, 1, None, doc='smallest of the arguments or of a sequence')
_register('max', _max, 1, None, doc='largest of the arguments or of a sequence')
_register('sum', _sum, doc='sum of a sequence')
_register('len', _len, doc='length of a sequence')
_register('range', _range, 1, 3, doc='range(stop), range(start, stop[, step])')
_register('map', _map, 2, needs_context=True, doc='map(seq, f) applies f to each item')
_register('filter', _filter, 2, needs_context=True, doc='filter(seq, f) keeps items where f is true')
_register('reduce', _reduce, 2, 3, needs_context=True, doc='reduce(seq, f[, init]) folds left')

# Session
_register('reset', _reset, 0, needs_context=True, doc='remove all user variables')

BUILTINS: Mapping[str, Builtin] = MappingProxyType(_BUILTINS)

CONSTANTS: Mapping[str, float] = MappingProxyType({
    'pi': math.pi,
    'e': math.e,
    'tau': math.tau,
    'inf': math.inf,
    'nan': math.nan,
})

CATALOG: Mapping[str, Any] = MappingProxyType({**CONSTANTS, **BUILTINS})


def builtin_names() -> list:
    """Sorted function names, for help and completion."""
    return sorted(BUILTINS)
