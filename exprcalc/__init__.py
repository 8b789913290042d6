# Expression calculator package
# Lexer, parser, evaluator and REPL for an interactive calculator with closures.
from .errors import CalculatorError, ErrorKind, EvalError, LexerError, ParseError
from .environment import Environment, create_session, known_identifiers, reset_variables
from .evaluator import Evaluator
from .lexer import tokenize
from .parser import parse
from .session import Outcome, Session

__all__ = [
    'CalculatorError',
    'ErrorKind',
    'EvalError',
    'LexerError',
    'ParseError',
    'Environment',
    'create_session',
    'known_identifiers',
    'reset_variables',
    'Evaluator',
    'tokenize',
    'parse',
    'Outcome',
    'Session',
]
