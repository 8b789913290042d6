"""Tokenizer for calculator expressions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Union

from .errors import LexerError

logger = logging.getLogger(__name__)


# --------------------------
# Tokens
# --------------------------

class TokenType:
    """Enumeration of token types."""
    NUMBER = 'NUMBER'
    IDENT = 'IDENT'
    KEYWORD = 'KEYWORD'
    OP = 'OP'
    LPAREN = 'LPAREN'
    RPAREN = 'RPAREN'
    LBRACKET = 'LBRACKET'
    RBRACKET = 'RBRACKET'
    COMMA = 'COMMA'
    ARROW = 'ARROW'
    EOF = 'EOF'


_KIND_BY_TYPE = {
    TokenType.NUMBER: 'Number',
    TokenType.IDENT: 'Ident',
    TokenType.KEYWORD: 'Keyword',
    TokenType.OP: 'Operator',
}

KEYWORDS = frozenset({'let', 'fn', 'and', 'or', 'not', 'true', 'false'})

DECIMAL = 'dec'
HEX = 'hex'
BINARY = 'bin'


@dataclass(frozen=True)
class Token:
    """Represents a token with type, value, and character position.

    ``value`` is the decoded number for NUMBER tokens and the lexeme for
    everything else. ``radix`` records how an integer literal was written.
    """
    type: str
    value: Any
    pos: int
    lexeme: str = ''
    radix: Optional[str] = None

    @property
    def kind(self) -> str:
        return _KIND_BY_TYPE.get(self.type, 'Punctuation')

    def __repr__(self) -> str:
        return f"Token({self.type}, {self.value!r}, pos={self.pos})"


# Multi-character operators are tried before single characters. '|' is never
# merged into '||' so the parser can read '||' as an empty lambda header.
_MULTI_OPS = ('**', '<<', '>>', '==', '!=', '<=', '>=')
_SINGLE_OPS = set('+-*/%&|^~=<>')
_PUNCT = {
    '(': TokenType.LPAREN,
    ')': TokenType.RPAREN,
    '[': TokenType.LBRACKET,
    ']': TokenType.RBRACKET,
    ',': TokenType.COMMA,
}
_HEX_DIGITS = set('0123456789abcdefABCDEF')


def _is_digit(ch: str) -> bool:
    return '0' <= ch <= '9'


class Lexer:
    """Tokenizer for calculator expressions.

    Produces tokens: NUMBER, IDENT, KEYWORD, OP, LPAREN, RPAREN, LBRACKET,
    RBRACKET, COMMA, ARROW, EOF. Always tokenizes '-' as operator (no
    negative literal tokens).
    """

    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.len = len(text)

    def _peek(self, n: int = 0) -> str:
        i = self.pos + n
        return self.text[i] if i < self.len else ''

    def _advance(self, n: int = 1) -> None:
        self.pos += n

    def _skip_whitespace(self) -> None:
        while self._peek() and self._peek().isspace():
            self._advance()

    def _reject_trailing(self, start: int) -> None:
        ch = self._peek()
        if ch and (ch.isalnum() or ch == '_' or ch == '.'):
            raise LexerError(
                f"Invalid numeric literal {self.text[start:self.pos + 1]!r}", start)

    def _read_radix_number(self) -> Token:
        start = self.pos
        prefix = self._peek(1).lower()
        self._advance(2)
        if prefix == 'x':
            radix, base, digits = HEX, 16, _HEX_DIGITS
        else:
            radix, base, digits = BINARY, 2, set('01')
        while self._peek() and self._peek() in digits:
            self._advance()
        raw = self.text[start:self.pos]
        if len(raw) == 2:
            raise LexerError(f"Missing digits after {raw!r}", start)
        self._reject_trailing(start)
        return Token(TokenType.NUMBER, int(raw[2:], base), start, raw, radix)

    def _read_number(self) -> Token:
        if self._peek() == '0' and self._peek(1).lower() in ('x', 'b'):
            return self._read_radix_number()
        start = self.pos
        has_dot = False
        has_exp = False
        while True:
            ch = self._peek()
            if _is_digit(ch):
                self._advance()
            elif ch == '.' and not has_dot and not has_exp:
                has_dot = True
                self._advance()
            elif ch in ('e', 'E') and not has_exp:
                has_exp = True
                self._advance()
                if self._peek() in ('+', '-'):
                    self._advance()
                # require at least one digit after e/E
                if not _is_digit(self._peek()):
                    raise LexerError("Invalid numeric literal: missing exponent digits", start)
            else:
                break
        self._reject_trailing(start)
        raw = self.text[start:self.pos]
        try:
            val: Union[int, float] = float(raw) if (has_dot or has_exp) else int(raw)
        except ValueError:
            # int() refuses decimal strings above sys.get_int_max_str_digits()
            raise LexerError(f"Integer literal too long ({len(raw)} digits)", start)
        return Token(TokenType.NUMBER, val, start, raw, None if isinstance(val, float) else DECIMAL)

    def _read_ident(self) -> Token:
        start = self.pos
        while self._peek() and (self._peek().isalnum() or self._peek() == '_'):
            self._advance()
        raw = self.text[start:self.pos]
        if not raw.isascii():
            raise LexerError(f"Unknown character in identifier {raw!r}", start)
        typ = TokenType.KEYWORD if raw in KEYWORDS else TokenType.IDENT
        return Token(typ, raw, start, raw)

    def _match_op(self) -> Optional[str]:
        two = self.text[self.pos:self.pos + 2]
        if two == '=>':
            return two
        if two in _MULTI_OPS:
            return two
        ch = self._peek()
        if ch in _SINGLE_OPS:
            return ch
        return None

    def tokens(self) -> Iterator[Token]:
        """Lazily yield tokens, ending with a single EOF token."""
        self.pos = 0
        while True:
            self._skip_whitespace()
            ch = self._peek()
            if ch == '':
                break
            if _is_digit(ch) or (ch == '.' and _is_digit(self._peek(1))):
                yield self._read_number()
            elif ch.isalpha() or ch == '_':
                yield self._read_ident()
            elif ch in _PUNCT:
                yield Token(_PUNCT[ch], ch, self.pos, ch)
                self._advance()
            else:
                op = self._match_op()
                if not op:
                    raise LexerError(f"Unknown character {ch!r}", self.pos)
                typ = TokenType.ARROW if op == '=>' else TokenType.OP
                yield Token(typ, op, self.pos, op)
                self._advance(len(op))
        yield Token(TokenType.EOF, None, self.pos)

    def tokenize(self) -> List[Token]:
        tokens = list(self.tokens())
        logger.debug("tokenized %r into %d tokens", self.text, len(tokens))
        return tokens


def tokenize(text: str) -> List[Token]:
    """Tokenize one input line."""
    return Lexer(text).tokenize()
