"""Pratt (top-down operator precedence) parser for calculator expressions."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

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
    tree_depth,
)
from .errors import ParseError
from .lexer import Token, TokenType

logger = logging.getLogger(__name__)

# Explicit operator precedence maps. Higher number = higher precedence.
ASSIGN_BP = 5
CALL_BP = 110

# Prefix unary operators: bp indicates the precedence used to parse the operand
PREFIX_BP: Dict[str, int] = {
    'not': 8,
    '+': 100,
    '-': 100,
    '~': 100,
}

# Infix operators: map to (binding_power, right_assoc)
INFIX_BP: Dict[str, Tuple[int, bool]] = {
    '=': (ASSIGN_BP, True),   # assignment (right-assoc)
    'or': (6, False),
    'and': (7, False),
    '|': (10, False),
    '^': (20, False),         # bitwise XOR
    '&': (30, False),
    '==': (40, False),
    '!=': (40, False),
    '<': (50, False),
    '>': (50, False),
    '<=': (50, False),
    '>=': (50, False),
    '<<': (60, False),
    '>>': (60, False),
    '+': (70, False),
    '-': (70, False),
    '*': (80, False),
    '/': (80, False),
    '%': (80, False),
    '**': (90, True),         # exponentiation (right-assoc)
}

MAX_NESTING = 200
MAX_TREE_DEPTH = 256


def _describe(tok: Token) -> str:
    if tok.type == TokenType.EOF:
        return 'end of input'
    return repr(tok.lexeme or tok.value)


class Parser:
    """Pratt parser producing an AST for one input line."""

    def __init__(self, tokens: Iterable[Token]):
        self.tokens: List[Token] = list(tokens)
        if not self.tokens or self.tokens[-1].type != TokenType.EOF:
            end = self.tokens[-1].pos + len(self.tokens[-1].lexeme) if self.tokens else 0
            self.tokens.append(Token(TokenType.EOF, None, end))
        self.pos = 0
        self.depth = 0

    def _current(self) -> Token:
        return self.tokens[self.pos]

    def _advance(self) -> Token:
        tok = self.tokens[self.pos]
        if tok.type != TokenType.EOF:
            self.pos += 1
        return tok

    def _error(self, tok: Token, expected: str) -> ParseError:
        found = _describe(tok)
        return ParseError(f"Expected {expected}; got {found}", tok.pos, expected, found)

    def _expect(self, typ: str, value: Optional[str] = None, expected: Optional[str] = None) -> Token:
        tok = self._current()
        if tok.type != typ or (value is not None and tok.value != value):
            raise self._error(tok, expected or repr(value or typ))
        return self._advance()

    def parse(self) -> ASTNode:
        node = self.parse_expression(0)
        tok = self._current()
        if tok.type != TokenType.EOF:
            raise ParseError(f"Unexpected token {_describe(tok)}", tok.pos, 'end of input', _describe(tok))
        # left-associative chains are built in a loop, so only the finished tree shows their depth
        if tree_depth(node) > MAX_TREE_DEPTH:
            raise ParseError(f"Expression too long: more than {MAX_TREE_DEPTH} nested operations", node.pos)
        logger.debug("parsed %r", node)
        return node

    def parse_expression(self, rbp: int = 0) -> ASTNode:
        self.depth += 1
        try:
            if self.depth > MAX_NESTING:
                raise ParseError("Expression nested too deeply", self._current().pos)
            left = self.nud(self._advance())
            while True:
                cur = self._current()
                # Call: '(' after any primary, binds tighter than every operator
                if cur.type == TokenType.LPAREN:
                    if CALL_BP <= rbp:
                        break
                    args = self._parse_argument_list()
                    left = Call(left, tuple(args), pos=cur.pos)
                    continue
                if cur.type in (TokenType.OP, TokenType.KEYWORD) and cur.value in INFIX_BP:
                    bp, right_assoc = INFIX_BP[cur.value]
                    if bp <= rbp:
                        break
                    op_tok = self._advance()
                    # For right-assoc operators, parse right-hand side with rbp = bp - 1
                    right = self.parse_expression(bp - 1 if right_assoc else bp)
                    if op_tok.value == '=':
                        if not isinstance(left, Identifier):
                            raise ParseError("Left-hand side of assignment must be a variable",
                                             op_tok.pos, 'identifier', type(left).__name__)
                        left = Assignment(left.name, right, pos=left.pos)
                    else:
                        left = BinaryOp(op_tok.value, left, right, pos=op_tok.pos)
                    continue
                break
            return left
        finally:
            self.depth -= 1

    def nud(self, tok: Token) -> ASTNode:
        """Null denotation (prefix/primary)."""
        if tok.type == TokenType.NUMBER:
            return Literal(tok.value, tok.radix, pos=tok.pos)
        if tok.type == TokenType.IDENT:
            return Identifier(tok.value, pos=tok.pos)
        if tok.type == TokenType.LPAREN:
            expr = self.parse_expression(0)
            self._expect(TokenType.RPAREN, expected="')'")
            return expr
        if tok.type == TokenType.LBRACKET:
            return SequenceLiteral(tuple(self._parse_items(TokenType.RBRACKET, "']'")), pos=tok.pos)
        if tok.type == TokenType.KEYWORD:
            return self._keyword(tok)
        if tok.type == TokenType.OP:
            if tok.value == '|':
                return self._lambda(tok)
            if tok.value in PREFIX_BP:
                operand = self.parse_expression(PREFIX_BP[tok.value])
                return UnaryOp(tok.value, operand, pos=tok.pos)
            raise ParseError(f"Unexpected operator {tok.value!r}", tok.pos, 'expression', repr(tok.value))
        raise self._error(tok, 'expression')

    def _keyword(self, tok: Token) -> ASTNode:
        word = tok.value
        if word in ('true', 'false'):
            return Literal(word == 'true', pos=tok.pos)
        if word == 'not':
            operand = self.parse_expression(PREFIX_BP['not'])
            return UnaryOp('not', operand, pos=tok.pos)
        if word == 'let':
            name = self._expect(TokenType.IDENT, expected='identifier')
            self._expect(TokenType.OP, '=', expected="'='")
            value = self.parse_expression(ASSIGN_BP - 1)
            return Assignment(name.value, value, pos=tok.pos)
        if word == 'fn':
            name = self._expect(TokenType.IDENT, expected='function name')
            self._expect(TokenType.LPAREN, expected="'('")
            params = self._parse_params(TokenType.RPAREN, "')'")
            body = self.parse_expression(0)
            return Assignment(name.value, FunctionLiteral(params, body, name.value, pos=tok.pos), pos=tok.pos)
        raise ParseError(f"Unexpected keyword {word!r}", tok.pos, 'expression', repr(word))

    def _lambda(self, tok: Token) -> FunctionLiteral:
        """Parse '|' [IDENT (',' IDENT)*] '|' ['=>'] expr. Assumes the opening '|' is consumed."""
        params = self._parse_params(TokenType.OP, "'|'", closing_value='|')
        if self._current().type == TokenType.ARROW:
            self._advance()
        body = self.parse_expression(0)
        return FunctionLiteral(params, body, pos=tok.pos)

    def _parse_params(self, closing: str, label: str, closing_value: Optional[str] = None) -> Tuple[str, ...]:
        def at_close(t: Token) -> bool:
            return t.type == closing and (closing_value is None or t.value == closing_value)

        params: List[str] = []
        if at_close(self._current()):
            self._advance()
            return ()
        while True:
            name = self._expect(TokenType.IDENT, expected='parameter name')
            if name.value in params:
                raise ParseError(f"Duplicate parameter {name.value!r}", name.pos, 'parameter name', repr(name.value))
            params.append(name.value)
            cur = self._current()
            if cur.type == TokenType.COMMA:
                self._advance()
                continue
            if at_close(cur):
                self._advance()
                return tuple(params)
            raise self._error(cur, f"',' or {label}")

    def _parse_items(self, closing: str, label: str) -> List[ASTNode]:
        """Parse expr (, expr)* up to the closing token. Assumes the opening token is consumed."""
        items: List[ASTNode] = []
        if self._current().type == closing:
            # empty list
            self._advance()
            return items
        while True:
            items.append(self.parse_expression(0))
            cur = self._current()
            if cur.type == TokenType.COMMA:
                self._advance()
                continue
            if cur.type == closing:
                self._advance()
                return items
            raise self._error(cur, f"',' or {label}")

    def _parse_argument_list(self) -> List[ASTNode]:
        """Parse '(' expr (, expr)* ')' and return list of AST args. Assumes current token is LPAREN."""
        self._expect(TokenType.LPAREN)
        return self._parse_items(TokenType.RPAREN, "')'")


def parse(tokens: Iterable[Token]) -> ASTNode:
    """Parse a token sequence into a single expression tree."""
    return Parser(tokens).parse()
