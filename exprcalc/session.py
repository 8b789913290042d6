"""A calculator session: one global scope plus the evaluate/format pipeline.

This is the object a front-end talks to. ``run_line`` is the error boundary:
whatever goes wrong while lexing, parsing or evaluating one line is turned
into an ``ErrorValue`` and the session stays usable for the next line.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from .ast_nodes import Assignment, FunctionLiteral, unparse
from .config import CalculatorSettings
from .environment import create_session, known_identifiers, reset_variables
from .errors import CalculatorError
from .evaluator import Evaluator
from .formatting import RADIXES, format_value
from .lexer import tokenize
from .parser import parse
from .values import Builtin, Closure, ErrorValue, is_int

logger = logging.getLogger(__name__)

ANS = 'ans'


@dataclass(frozen=True)
class Outcome:
    """Result of one input line, ready for display."""
    ok: bool
    value: Any
    text: str


class Session:
    """Evaluates input lines against a persistent global scope."""

    def __init__(self, settings: Optional[CalculatorSettings] = None):
        self.settings = settings or CalculatorSettings(history_file=None, rc_file=None)
        self.globals = create_session()
        self.evaluator = Evaluator(self.settings.max_call_depth, self.settings.max_int_bits)
        self.radix = self.settings.radix

    def evaluate(self, line: str, remember: bool = True) -> Any:
        """Lex, parse and evaluate one line. Raises CalculatorError on failure.

        With ``remember`` the result is also bound to ``ans``.
        """
        tree = parse(tokenize(line))
        value = self.evaluator.evaluate(tree, self.globals)
        if remember and self.settings.track_ans:
            self.globals.define(ANS, value)
        return value

    def format(self, value: Any) -> str:
        return format_value(value, self.radix, self.settings.float_precision)

    def run_line(self, line: str) -> Outcome:
        try:
            value = self.evaluate(line)
        except CalculatorError as e:
            logger.debug("evaluation of %r failed: %s", line, e)
            err = ErrorValue.from_exception(e)
            return Outcome(False, err, self.format(err))
        return Outcome(True, value, self.format(value))

    def known_identifiers(self) -> Set[str]:
        return known_identifiers(self.globals)

    def reset_variables(self) -> int:
        return reset_variables(self.globals)

    def variables(self) -> Dict[str, Any]:
        """User bindings in the global scope."""
        return dict(self.globals.values)

    def set_radix(self, radix: str) -> None:
        radix = radix.strip().lower()
        if radix not in RADIXES:
            raise ValueError(f"Unknown radix {radix!r}; use one of {', '.join(RADIXES)}")
        self.radix = radix

    # --------------------------
    # Definitions file
    # --------------------------

    def _definition(self, name: str, value: Any) -> Optional[str]:
        if isinstance(value, Closure):
            if value.scope is not self.globals:
                return None
            fn = FunctionLiteral(value.params, value.body, value.name)
            if value.name and value.name != name:
                fn = FunctionLiteral(value.params, value.body)
            return unparse(Assignment(name, fn))
        source = _value_source(value)
        if source is None:
            return None
        return f"{name} = {source}"

    def export_definitions(self) -> List[str]:
        """One source line per user binding, reloadable with load_definitions."""
        lines = []
        for name, value in self.globals.values.items():
            if name == ANS:
                continue
            line = self._definition(name, value)
            if line is None:
                logger.warning("skipping %s: value cannot be written as a definition", name)
                continue
            lines.append(line)
        return lines

    def load_definitions(self, lines: Iterable[str]) -> Tuple[int, List[str]]:
        """Evaluate definition lines; returns (loaded count, error messages)."""
        loaded = 0
        errors: List[str] = []
        for number, line in enumerate(lines, 1):
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            try:
                self.evaluate(line, remember=False)
            except CalculatorError as e:
                errors.append(f"line {number}: {self.format(ErrorValue.from_exception(e))}")
                continue
            loaded += 1
        return loaded, errors


def _value_source(value: Any) -> Optional[str]:
    if isinstance(value, Builtin):
        return value.name
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if is_int(value):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return 'nan'
        if math.isinf(value):
            return 'inf' if value > 0 else '-inf'
        return repr(value)
    if isinstance(value, tuple):
        items = [_value_source(v) for v in value]
        if any(i is None for i in items):
            return None
        return '[' + ', '.join(items) + ']'
    return None
