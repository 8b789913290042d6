"""Exception types shared by the lexer, parser and evaluator."""

from __future__ import annotations

from typing import Optional


class ErrorKind:
    """Enumeration of error kinds surfaced to the user."""
    LEX = 'LexError'
    SYNTAX = 'SyntaxError'
    UNDEFINED_VARIABLE = 'UndefinedVariable'
    NOT_CALLABLE = 'NotCallable'
    ARITY_MISMATCH = 'ArityMismatch'
    TYPE_MISMATCH = 'TypeMismatch'
    DIVISION_BY_ZERO = 'DivisionByZero'
    RECURSION_LIMIT = 'RecursionLimitExceeded'
    DOMAIN = 'DomainError'
    OVERFLOW = 'Overflow'


class CalculatorError(Exception):
    """Base class for calculator errors.

    Every error carries a ``kind`` from :class:`ErrorKind`, a human readable
    ``message`` and, when known, the 0-based column ``pos`` in the input line.
    """

    default_kind = ErrorKind.SYNTAX

    def __init__(self, message: str, pos: Optional[int] = None, kind: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.pos = pos
        self.kind = kind or self.default_kind

    def __str__(self) -> str:
        if self.pos is None:
            return self.message
        return f"{self.message} at pos {self.pos}"


class LexerError(CalculatorError):
    """Raised for errors during tokenization."""
    default_kind = ErrorKind.LEX


class ParseError(CalculatorError):
    """Raised for parsing errors, with what was expected and what was found."""
    default_kind = ErrorKind.SYNTAX

    def __init__(self, message: str, pos: Optional[int] = None,
                 expected: Optional[str] = None, found: Optional[str] = None):
        super().__init__(message, pos)
        self.expected = expected
        self.found = found


class EvalError(CalculatorError):
    """Raised for errors during evaluation, e.g. domain errors, type errors."""

    def __init__(self, kind: str, message: str, pos: Optional[int] = None):
        super().__init__(message, pos, kind)
