import pytest

from exprcalc.ast_nodes import (
    Assignment,
    BinaryOp,
    Call,
    FunctionLiteral,
    Identifier,
    Literal,
    SequenceLiteral,
    UnaryOp,
    tree_depth,
    unparse,
)
from exprcalc.errors import ErrorKind, ParseError
from exprcalc.lexer import tokenize
from exprcalc.parser import parse


def parse_expr(text):
    return parse(tokenize(text))


def test_multiplicative_binds_tighter_than_additive():
    assert parse_expr("1 + 2 * 3") == BinaryOp('+', Literal(1), BinaryOp('*', Literal(2), Literal(3)))


def test_division_binds_tighter_than_plus_with_radix_literals():
    tree = parse_expr("0xff + 0b10 / 10")
    assert tree == BinaryOp('+', Literal(255, 'hex'), BinaryOp('/', Literal(2, 'bin'), Literal(10, 'dec')))


def test_parser_exponent_right_associative():
    assert parse_expr("2 ** 3 ** 2") == BinaryOp('**', Literal(2), BinaryOp('**', Literal(3), Literal(2)))


def test_unary_minus_binds_tighter_than_power():
    assert parse_expr("-2 ** 2") == BinaryOp('**', UnaryOp('-', Literal(2)), Literal(2))


def test_bitwise_precedence_chain():
    # | < ^ < & < == < < < << < +
    tree = parse_expr("a | b ^ c & d == e < f << g + h")
    expected = BinaryOp('|', Identifier('a'), BinaryOp(
        '^', Identifier('b'), BinaryOp(
            '&', Identifier('c'), BinaryOp(
                '==', Identifier('d'), BinaryOp(
                    '<', Identifier('e'), BinaryOp(
                        '<<', Identifier('f'), BinaryOp('+', Identifier('g'), Identifier('h'))))))))
    assert tree == expected


def test_logical_keywords_are_lowest_above_assignment():
    tree = parse_expr("x = not a and b or c")
    assert tree == Assignment('x', BinaryOp(
        'or', BinaryOp('and', UnaryOp('not', Identifier('a')), Identifier('b')), Identifier('c')))


def test_assignment_right_associative():
    assert parse_expr("a = b = 3") == Assignment('a', Assignment('b', Literal(3)))


def test_let_assignment():
    assert parse_expr("let a = 1 + 2") == Assignment('a', BinaryOp('+', Literal(1), Literal(2)))


def test_grouping_overrides_precedence():
    assert parse_expr("(1 + 2) * 3") == BinaryOp('*', BinaryOp('+', Literal(1), Literal(2)), Literal(3))


def test_lambda_literal():
    tree = parse_expr("|a, b| a ** b")
    assert tree == FunctionLiteral(('a', 'b'), BinaryOp('**', Identifier('a'), Identifier('b')))


def test_lambda_with_arrow_and_without_params():
    assert parse_expr("|x| => x") == FunctionLiteral(('x',), Identifier('x'))
    assert parse_expr("|| 42") == FunctionLiteral((), Literal(42))


def test_lambda_as_call_argument_stops_at_comma():
    tree = parse_expr("reduce(xs, |a, b| a + b, 0)")
    assert tree == Call(Identifier('reduce'), (
        Identifier('xs'),
        FunctionLiteral(('a', 'b'), BinaryOp('+', Identifier('a'), Identifier('b'))),
        Literal(0),
    ))


def test_fn_declaration_is_named_assignment():
    tree = parse_expr("fn add(x, y) x + y")
    body = BinaryOp('+', Identifier('x'), Identifier('y'))
    assert tree == Assignment('add', FunctionLiteral(('x', 'y'), body, 'add'))


def test_calls_chain_and_apply_to_groups():
    assert parse_expr("f(1)(2)") == Call(Call(Identifier('f'), (Literal(1),)), (Literal(2),))
    tree = parse_expr("(|x| x)(3)")
    assert tree == Call(FunctionLiteral(('x',), Identifier('x')), (Literal(3),))


def test_call_binds_tighter_than_unary():
    assert parse_expr("-f(2)") == UnaryOp('-', Call(Identifier('f'), (Literal(2),)))


def test_sequence_literal():
    assert parse_expr("[1, 2 + 3]") == SequenceLiteral((Literal(1), BinaryOp('+', Literal(2), Literal(3))))
    assert parse_expr("[]") == SequenceLiteral(())


def test_true_false_literals():
    assert parse_expr("true") == Literal(True)
    assert parse_expr("false") == Literal(False)


def test_positions_recorded():
    tree = parse_expr("1 + 2")
    assert tree.pos == 2
    assert tree.right.pos == 4


@pytest.mark.parametrize("text", [
    "1 +",
    "(1 + 2",
    "1 + 2)",
    "*1",
    "f(1,,2)",
    "f(1,",
    "1 2",
    "",
    "|a, a| a",
    "|a b| a",
    "let 1 = 2",
    "fn (x) x",
    "and",
    "[1, 2",
])
def test_malformed_input_rejected(text):
    with pytest.raises(ParseError) as e:
        parse_expr(text)
    assert e.value.kind == ErrorKind.SYNTAX


def test_assignment_lhs_must_be_variable_parse_error():
    with pytest.raises(ParseError) as e:
        parse_expr("1 = 2")
    assert "Left-hand side" in e.value.message


def test_parse_error_reports_expected_and_found():
    with pytest.raises(ParseError) as e:
        parse_expr("(1 + 2")
    assert e.value.expected == "')'"
    assert e.value.found == 'end of input'
    assert e.value.pos == 6


def test_trailing_tokens_rejected():
    with pytest.raises(ParseError) as e:
        parse_expr("1 2")
    assert e.value.pos == 2
    assert e.value.found == "'2'"


def test_deep_nesting_is_a_parse_error():
    with pytest.raises(ParseError) as e:
        parse_expr("(" * 500 + "1" + ")" * 500)
    assert "nested too deeply" in e.value.message


@pytest.mark.parametrize("text", [
    "1 + 2 * 3",
    "-2 ** 2",
    "f = |a, b| a * b + 1",
    "fn g(x) x & 0xff",
    "map([1, 2, 3], |x| x ** 3)",
    "not a or b == 0b101",
    "(|x| x)(3)",
])
def test_unparse_round_trips(text):
    tree = parse_expr(text)
    assert parse_expr(unparse(tree)) == tree


def test_long_flat_expression_is_a_parse_error():
    with pytest.raises(ParseError) as e:
        parse_expr("+".join(["1"] * 3000))
    assert e.value.kind == ErrorKind.SYNTAX
    assert "too long" in e.value.message


def test_tree_depth():
    assert tree_depth(parse_expr("1")) == 1
    assert tree_depth(parse_expr("1 + 2 * 3")) == 3
    assert tree_depth(parse_expr("f(1, [2, -3])")) == 4
