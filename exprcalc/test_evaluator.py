import math
import sys

import pytest

from exprcalc.config import CalculatorSettings
from exprcalc.environment import create_session
from exprcalc.errors import CalculatorError, ErrorKind, EvalError
from exprcalc.evaluator import Evaluator, values_equal
from exprcalc.lexer import tokenize
from exprcalc.parser import parse
from exprcalc.session import Session
from exprcalc.values import Closure, is_int


def run(session, *lines):
    result = None
    for line in lines:
        result = session.evaluate(line)
    return result


def error_kind(session, text):
    with pytest.raises(CalculatorError) as e:
        session.evaluate(text)
    return e.value.kind


# ---------------------------
# Literals and arithmetic
# ---------------------------

@pytest.mark.parametrize("text", ["255", "0xff", "0b11111111", "0XFF"])
def test_radix_does_not_change_value(session, text):
    value = session.evaluate(text)
    assert value == 255 and is_int(value)


def test_precedence_with_inexact_division(session):
    value = session.evaluate("0xff + 0b10 / 10")
    assert isinstance(value, float)
    assert math.isclose(value, 255.2)


def test_xor_of_binary_literals(session):
    assert session.evaluate("0b1000001 ^ 0b100") == 69


@pytest.mark.parametrize("text, expected", [
    ("6 / 3", 2),
    ("-6 / 3", -2),
    ("7 / 2", 3.5),
    ("-7 / 2", -3.5),
    ("1.0 / 2", 0.5),
    ("7 % 3", 1),
    ("7.5 % 2", 1.5),
    ("2 + 3 * 4", 14),
    ("(2 + 3) * 4", 20),
    ("2 ** 10", 1024),
    ("2 ** 3 ** 2", 512),
    ("-2 ** 2", 4),
    ("2 ** -1", 0.5),
    ("10 - 2 - 3", 5),
    ("--3", 3),
    ("+4", 4),
])
def test_arithmetic(session, text, expected):
    value = session.evaluate(text)
    assert value == expected
    assert type(value) is type(expected)


def test_int_float_promotion(session):
    assert session.evaluate("1 + 2.0") == 3.0
    assert isinstance(session.evaluate("1 + 2.0"), float)
    assert isinstance(session.evaluate("6.0 / 3"), float)
    assert isinstance(session.evaluate("2.0 ** 2"), float)
    assert isinstance(session.evaluate("-(2.5)"), float)


def test_division_by_zero_keeps_session_usable(session):
    assert error_kind(session, "1 / 0") == ErrorKind.DIVISION_BY_ZERO
    assert error_kind(session, "5 % 0") == ErrorKind.DIVISION_BY_ZERO
    assert error_kind(session, "5 % 0.0") == ErrorKind.DIVISION_BY_ZERO
    assert error_kind(session, "0 ** -1") == ErrorKind.DIVISION_BY_ZERO
    assert session.evaluate("1 + 1") == 2


def test_domain_and_overflow_errors(session):
    assert error_kind(session, "(-8) ** 0.5") == ErrorKind.DOMAIN
    assert error_kind(session, "10.0 ** 400") == ErrorKind.OVERFLOW
    assert error_kind(session, "2 ** 5000") == ErrorKind.OVERFLOW
    assert error_kind(session, "1 << 5000") == ErrorKind.OVERFLOW
    assert session.evaluate("2 ** 4000").bit_length() == 4001


# ---------------------------
# Bitwise
# ---------------------------

@pytest.mark.parametrize("text, expected", [
    ("0b1100 & 0b1010", 0b1000),
    ("0b1100 | 0b1010", 0b1110),
    ("0b1100 ^ 0b1010", 0b0110),
    ("1 << 3", 8),
    ("-16 >> 2", -4),
    ("~5", -6),
    ("0xff & ~0x0f", 0xf0),
])
def test_bitwise(session, text, expected):
    assert session.evaluate(text) == expected


@pytest.mark.parametrize("text", ["0b1 & 1.5", "1.5 ^ 2", "~1.5", "1 << 2.0", "true | 1", "[1] & 1"])
def test_bitwise_requires_ints(session, text):
    assert error_kind(session, text) == ErrorKind.TYPE_MISMATCH


def test_negative_shift_count(session):
    assert error_kind(session, "1 << -1") == ErrorKind.DOMAIN


# ---------------------------
# Comparisons and logic
# ---------------------------

@pytest.mark.parametrize("text, expected", [
    ("1 < 2", True),
    ("1 == 1.0", True),
    ("2 >= 2.5", False),
    ("3 != 3", False),
    ("true == 1", False),
    ("[1, 2] == [1, 2.0]", True),
    ("[1, 2] == [2, 1]", False),
    ("not 0", True),
    ("not true", False),
])
def test_comparisons(session, text, expected):
    assert session.evaluate(text) is expected


def test_ordering_requires_numbers(session):
    assert error_kind(session, "1 < true") == ErrorKind.TYPE_MISMATCH
    assert error_kind(session, "[1] < [2]") == ErrorKind.TYPE_MISMATCH


def test_logical_short_circuiting_prevents_errors(session):
    assert session.evaluate("0 and (1 / 0)") == 0
    assert session.evaluate("1 or (1 / 0)") == 1
    assert session.evaluate("false or 5") == 5
    assert session.evaluate("true and 7") == 7


def test_logic_rejects_non_boolean_non_number(session):
    assert error_kind(session, "[1] and 1") == ErrorKind.TYPE_MISMATCH


def test_arithmetic_rejects_booleans_and_sequences(session):
    assert error_kind(session, "1 + true") == ErrorKind.TYPE_MISMATCH
    assert error_kind(session, "[1] + [2]") == ErrorKind.TYPE_MISMATCH
    assert error_kind(session, "-true") == ErrorKind.TYPE_MISMATCH


def test_eval_error_carries_operator_position(session):
    with pytest.raises(EvalError) as e:
        session.evaluate("1 + true")
    assert e.value.pos == 2


# ---------------------------
# Variables
# ---------------------------

def test_assignment_round_trip_and_reset(session):
    assert session.evaluate("a = 5") == 5
    assert session.evaluate("a + 1") == 6
    session.reset_variables()
    assert error_kind(session, "a") == ErrorKind.UNDEFINED_VARIABLE


def test_completed_bindings_survive_later_errors(session):
    assert error_kind(session, "(b = 1) + (1 / 0)") == ErrorKind.DIVISION_BY_ZERO
    assert session.evaluate("b") == 1


def test_user_binding_shadows_builtin_until_reset(session):
    run(session, "sin = 3")
    assert session.evaluate("sin + 1") == 4
    session.reset_variables()
    assert session.evaluate("sin(0)") == 0.0


def test_pure_expression_is_idempotent(session):
    run(session, "k = 3", "f = |x| x * k + 0.5")
    first = session.evaluate("f(2) + sin(1) + 0xff")
    second = session.evaluate("f(2) + sin(1) + 0xff")
    assert first == second


# ---------------------------
# Functions
# ---------------------------

def test_closure_power(session):
    run(session, "let pow = |a, b| a ** b")
    value = session.evaluate("pow(2, 10)")
    assert value == 1024 and is_int(value)


def test_map_preserves_order(session):
    assert session.evaluate("map([1, 2, 3], |x| x ** 3)") == (1, 8, 27)


def test_function_literal_is_a_closure_value(session):
    value = session.evaluate("|x, y| x")
    assert isinstance(value, Closure)
    assert value.params == ('x', 'y')
    assert value.scope is session.globals


def test_closure_sees_later_outer_mutation(session):
    run(session, "a = 1", "f = || a")
    assert session.evaluate("f()") == 1
    run(session, "a = 2")
    assert session.evaluate("f()") == 2


def test_closure_outlives_defining_call(session):
    run(session, "make = |x| |y| x + y", "add2 = make(2)")
    assert session.evaluate("add2(5)") == 7
    assert session.evaluate("make(10)(1)") == 11


def test_parameters_shadow_globals(session):
    run(session, "x = 10", "f = |x| x * 2")
    assert session.evaluate("f(3)") == 6
    assert session.evaluate("x") == 10


def test_assignment_inside_closure_is_local(session):
    run(session, "g = |v| (w = v) + 1")
    assert session.evaluate("g(1)") == 2
    assert error_kind(session, "w") == ErrorKind.UNDEFINED_VARIABLE


def test_named_function_declaration(session):
    value = session.evaluate("fn hyp(a, b) sqrt(a ** 2 + b ** 2)")
    assert isinstance(value, Closure) and value.name == 'hyp'
    assert session.evaluate("hyp(3, 4)") == 5.0


def test_recursion_through_short_circuit(session):
    run(session, "fact = |n| n <= 1 and 1 or n * fact(n - 1)")
    assert session.evaluate("fact(10)") == 3628800


def test_runaway_recursion_is_bounded(session):
    run(session, "f = |x| f(x)")
    assert error_kind(session, "f(1)") == ErrorKind.RECURSION_LIMIT
    assert session.evaluate("2 + 2") == 4


def test_call_depth_setting():
    s = Session(CalculatorSettings(history_file=None, rc_file=None, max_call_depth=5))
    run(s, "f = |n| n <= 0 and 0 or f(n - 1)")
    assert s.evaluate("f(4)") == 0
    assert error_kind(s, "f(5)") == ErrorKind.RECURSION_LIMIT


def test_arity_mismatch(session):
    run(session, "f = |a, b| a + b")
    assert error_kind(session, "f(1)") == ErrorKind.ARITY_MISMATCH
    assert error_kind(session, "f(1, 2, 3)") == ErrorKind.ARITY_MISMATCH
    assert error_kind(session, "sin(1, 2)") == ErrorKind.ARITY_MISMATCH


def test_not_callable(session):
    run(session, "x = 5")
    assert error_kind(session, "x(1)") == ErrorKind.NOT_CALLABLE
    assert error_kind(session, "2(3)") == ErrorKind.NOT_CALLABLE


def test_unknown_function_is_undefined_variable(session):
    assert error_kind(session, "no_such_fn(1)") == ErrorKind.UNDEFINED_VARIABLE


def test_builtins_are_values(session):
    run(session, "s = sqrt")
    assert session.evaluate("s(16)") == 4.0
    assert session.evaluate("map([1, 4], sqrt)") == (1.0, 2.0)


def test_reset_builtin_clears_globals(session):
    run(session, "a = 1", "reset()")
    assert error_kind(session, "a") == ErrorKind.UNDEFINED_VARIABLE


# ---------------------------
# Evaluator API
# ---------------------------

def test_evaluator_against_fresh_environment():
    env = create_session()
    ev = Evaluator()
    assert ev.evaluate(parse(tokenize("y = 2 * 21")), env) == 42
    assert env.get('y') == 42
    # a second environment is independent
    with pytest.raises(EvalError):
        ev.evaluate(parse(tokenize("y")), create_session())


def test_values_equal():
    assert values_equal(1, 1.0)
    assert not values_equal(True, 1)
    assert values_equal((1, (2, 3)), (1.0, (2, 3)))
    assert not values_equal((1,), (1, 2))


# ---------------------------
# Resource bounds
# ---------------------------

def test_builtin_int_results_are_bounded(session):
    assert error_kind(session, "sq(factorial(1000))") == ErrorKind.OVERFLOW
    assert error_kind(session, "bitlen(sq(mask(4096)))") == ErrorKind.OVERFLOW
    assert error_kind(session, "cube(mask(2000))") == ErrorKind.OVERFLOW
    assert session.evaluate("bitlen(mask(4096))") == 4096


def test_oversized_builtin_result_leaves_session_intact(session):
    session.evaluate("1")
    outcome = session.run_line("sq(factorial(1000))")
    assert not outcome.ok
    assert outcome.text.startswith("Overflow")
    assert session.evaluate("ans") == 1


def test_int_literal_is_bounded(session):
    assert error_kind(session, "0x" + "f" * 1100) == ErrorKind.OVERFLOW


def test_recursion_through_map_reaches_call_depth(session):
    run(session, "f = |n| n <= 0 and 1 or sum(map([n - 1], f))")
    assert session.evaluate("f(95)") == 1
    with pytest.raises(EvalError) as e:
        session.evaluate("f(150)")
    assert e.value.kind == ErrorKind.RECURSION_LIMIT
    assert "call depth of 100" in e.value.message


def test_large_call_depth_setting_is_honoured():
    s = Session(CalculatorSettings(history_file=None, rc_file=None, max_call_depth=1000))
    run(s, "g = |n| n <= 0 and 0 or g(n - 1)")
    limit = sys.getrecursionlimit()
    assert s.evaluate("g(900)") == 0
    with pytest.raises(EvalError) as e:
        s.evaluate("g(1200)")
    assert "call depth of 1000" in e.value.message
    assert sys.getrecursionlimit() == limit


def test_long_flat_sum_within_limit(session):
    assert session.evaluate(" + ".join(["1"] * 200)) == 200
