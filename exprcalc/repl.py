"""Read-Eval-Print Loop, colon commands and help text."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional, Tuple

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.history import FileHistory, InMemoryHistory

from .builtin_functions import BUILTINS, CONSTANTS, builtin_names
from .config import CalculatorSettings
from .lexer import KEYWORDS
from .session import Session

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 50

# --------------------------
# Help
# --------------------------

_HELP_TOPICS: Dict[str, str] = {
    'general': (
        "Calculator REPL help:\n"
        "Supports arithmetic, bitwise and logical operators, hex (0xff) and binary (0b101) literals,\n"
        "variables, function literals and built-in functions.\n"
        "Examples:\n"
        "  x = 3\n"
        "  let pow = |a, b| a ** b\n"
        "  pow(2, 10) -> 1024\n"
        "  fn hyp(a, b) sqrt(a ** 2 + b ** 2)\n"
        "  map([1, 2, 3], |x| x ** 3) -> [1, 8, 27]\n"
        "  0b1000001 ^ 0b100 -> 69\n"
        "Commands:\n"
        "  :help, help [topic]    show help (topics: operators, functions, lambdas)\n"
        "  :vars                  list variables\n"
        "  :reset                 remove all variables\n"
        "  :history               show evaluated expressions\n"
        "  :clear                 forget evaluated expressions\n"
        "  :radix [dec|hex|bin]   show or set the display radix for integers\n"
        "  :save [file]           save definitions\n"
        "  :load [file]           load definitions\n"
        "  :exit                  exit\n"
    ),
    'operators': (
        "Operators and precedence (high -> low):\n"
        "  call: f(x), grouping: ( )\n"
        "  prefix: - + ~ (bitwise not)\n"
        "  exponent: ** (right-assoc)\n"
        "  * / %\n"
        "  + -\n"
        "  << >>\n"
        "  < > <= >=\n"
        "  == !=\n"
        "  &\n"
        "  ^\n"
        "  |\n"
        "  not, and, or\n"
        "  = (assignment, right-assoc)\n"
        "Notes:\n"
        "  - Use '**' for exponentiation (2 ** 3 ** 2 == 2 ** (3 ** 2)); -2 ** 2 == 4.\n"
        "  - '^' is bitwise XOR. Bitwise operators need Int operands.\n"
        "  - '/' gives an Int when the division is exact, a Float otherwise.\n"
        "  - 'and' and 'or' short-circuit and return the deciding operand.\n"
    ),
    'lambdas': (
        "Functions are values:\n"
        "  |a, b| a + b           anonymous function\n"
        "  || 42                  function without parameters\n"
        "  f = |x| x * 2          bind it to a name, then call f(21)\n"
        "  fn f(x) x * 2          same, with a named function\n"
        "Functions capture the scope they are defined in; later changes to\n"
        "captured variables are visible when the function runs.\n"
    ),
}


def _functions_help() -> str:
    lines = ["Built-in functions:"]
    for name in builtin_names():
        doc = BUILTINS[name].doc
        lines.append(f"  {name:<10} {doc}")
    lines.append("Constants: " + ", ".join(sorted(CONSTANTS)))
    return "\n".join(lines) + "\n"


def show_help(topic: Optional[str] = None) -> str:
    """Return help text for topic or general if None."""
    if not topic:
        return _HELP_TOPICS['general']
    key = topic.strip().lower()
    if key == 'functions':
        return _functions_help()
    return _HELP_TOPICS.get(key, f"No help available for topic '{topic}'")


# --------------------------
# REPL
# --------------------------

class REPL:
    """Read-Eval-Print Loop for the calculator."""

    def __init__(self, settings: Optional[CalculatorSettings] = None,
                 session: Optional[Session] = None, prompt_session: Any = None):
        self.settings = settings or CalculatorSettings(history_file=None, rc_file=None)
        self.session = session or Session(self.settings)
        self.prompt_session = prompt_session
        self.expressions: List[str] = []

    def _create_prompt_session(self) -> PromptSession:
        if self.settings.history_file:
            return PromptSession(history=FileHistory(self.settings.history_file))
        return PromptSession(history=InMemoryHistory())

    def completer(self) -> WordCompleter:
        words = sorted(self.session.known_identifiers() | KEYWORDS)
        return WordCompleter(words, ignore_case=False)

    def load_rc(self) -> Optional[str]:
        """Load the definitions file named in the settings, if it exists."""
        path = self.settings.rc_file
        if not path or not os.path.exists(path):
            return None
        return self._run_command('load', [path])

    def _process_command(self, line: str) -> Optional[str]:
        """Process commands starting with ':' or 'help'. Returns response string if a command, else None."""
        s = line.strip()
        if not s:
            return None
        if s.startswith(':'):
            body = s[1:].lstrip()
            if body == '':
                return "No command specified. Use :help for available commands."
            parts = body.split(None, 1)
            cmd = parts[0]
            args = parts[1].split() if len(parts) > 1 else []
            return self._run_command(cmd, args)
        # help keyword at line start: allow 'help' or 'help topic'
        parts = s.split(None, 1)
        if parts[0].lower() != 'help':
            return None
        if len(parts) == 1:
            # a user variable named help is read back like any other name
            if s in self.session.variables():
                return None
            return show_help()
        if parts[1].strip().isidentifier():
            return show_help(parts[1])
        return None

    def _run_command(self, cmd: str, args: List[str]) -> str:
        """Execute a REPL colon command. Raises EOFError for exit/quit to allow outer loop to handle shutdown."""
        cmd_lower = cmd.lower()
        if cmd_lower in {'exit', 'quit'}:
            raise EOFError()
        if cmd_lower == 'help':
            return show_help(args[0] if args else None)
        if cmd_lower == 'vars':
            items = sorted(self.session.variables().items())
            if not items:
                return "(no variables)"
            return "\n".join(f"{k} = {self.session.format(v)}" for k, v in items)
        if cmd_lower == 'reset':
            count = self.session.reset_variables()
            return f"Removed {count} variable(s)"
        if cmd_lower == 'clear':
            count = len(self.expressions)
            self.expressions.clear()
            return f"Cleared {count} expression(s)"
        if cmd_lower == 'history':
            if not self.expressions:
                return "(no history)"
            return "\n".join(self.expressions[-HISTORY_LIMIT:])
        if cmd_lower == 'radix':
            if not args:
                return f"Radix: {self.session.radix}"
            try:
                self.session.set_radix(args[0])
            except ValueError as e:
                return str(e)
            return f"Radix: {self.session.radix}"
        if cmd_lower == 'save':
            return self._save(args[0] if args else self.settings.rc_file)
        if cmd_lower == 'load':
            return self._load(args[0] if args else self.settings.rc_file)
        return f"Unknown command: {cmd}"

    def _save(self, fname: Optional[str]) -> str:
        if not fname:
            return "Usage: :save <file>"
        lines = self.session.export_definitions()
        try:
            with open(fname, 'w', encoding='utf-8') as f:
                f.write("\n".join(lines) + ("\n" if lines else ""))
        except OSError as e:
            logger.error("could not write %s: %s", fname, e)
            return f"Error saving definitions: {e}"
        logger.info("saved %d definitions to %s", len(lines), fname)
        return f"Saved {len(lines)} definitions to {fname}"

    def _load(self, fname: Optional[str]) -> str:
        if not fname:
            return "Usage: :load <file>"
        try:
            with open(fname, 'r', encoding='utf-8') as f:
                lines = f.read().splitlines()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("could not read %s: %s", fname, e)
            return f"Could not read definitions: {e}"
        loaded, errors = self.session.load_definitions(lines)
        logger.info("loaded %d definitions from %s", loaded, fname)
        for err in errors:
            logger.warning("%s: %s", fname, err)
        return "\n".join([f"Loaded {loaded} definitions from {fname}"] + errors)

    def _remember(self, line: str) -> None:
        text = line.strip()
        if text not in self.expressions:
            self.expressions.append(text)

    def evaluate_line(self, line: str) -> Tuple[bool, str]:
        """Evaluate a single line (either command or expression). Returns (ok, output)."""
        cmd_out = self._process_command(line)
        if cmd_out is not None:
            return True, cmd_out
        outcome = self.session.run_line(line)
        if outcome.ok:
            self._remember(line)
        return outcome.ok, outcome.text

    def repl_loop(self) -> None:
        """Interactive REPL loop with prompt_toolkit history and completion."""
        if self.prompt_session is None:
            self.prompt_session = self._create_prompt_session()
        print("Interactive Calculator REPL. Type :help for help. Ctrl-D or :exit to quit.")
        while True:
            try:
                # update completer with builtins and current variables
                line = self.prompt_session.prompt('> ', completer=self.completer())
            except KeyboardInterrupt:
                print("^C")
                continue
            except EOFError:
                print("Exiting.")
                break
            if not line.strip():
                continue
            try:
                ok, out = self.evaluate_line(line)
            except EOFError:
                print("Exiting.")
                break
            print(out)
