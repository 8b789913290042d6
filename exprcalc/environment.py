"""Variable scopes and the session lifecycle helpers."""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Set

from .errors import ErrorKind, EvalError

logger = logging.getLogger(__name__)


class Environment:
    """Represents a scope mapping identifiers to values.

    Lookups walk from this scope through its parents; the first match wins.
    The global scope has no parent and falls back to the read-only built-in
    catalog, so user bindings shadow built-ins without ever removing them.
    """

    def __init__(self, parent: Optional['Environment'] = None,
                 builtins: Optional[Mapping[str, Any]] = None):
        self.parent = parent
        self.values: Dict[str, Any] = {}
        self.builtins: Mapping[str, Any] = builtins if builtins is not None else {}

    @property
    def is_global(self) -> bool:
        return self.parent is None

    def child(self) -> 'Environment':
        return Environment(parent=self)

    def root(self) -> 'Environment':
        scope = self
        while scope.parent is not None:
            scope = scope.parent
        return scope

    def get(self, name: str, pos: Optional[int] = None) -> Any:
        scope: Optional[Environment] = self
        while scope is not None:
            if name in scope.values:
                return scope.values[name]
            if scope.parent is None and name in scope.builtins:
                return scope.builtins[name]
            scope = scope.parent
        raise EvalError(ErrorKind.UNDEFINED_VARIABLE, f"Undefined variable: {name}", pos)

    def __contains__(self, name: str) -> bool:
        try:
            self.get(name)
        except EvalError:
            return False
        return True

    def define(self, name: str, value: Any) -> None:
        """Bind ``name`` in this scope, replacing any earlier binding here."""
        self.values[name] = value

    def clear(self) -> int:
        count = len(self.values)
        self.values.clear()
        return count

    def names(self) -> Set[str]:
        """All names visible from this scope, built-ins included."""
        seen: Set[str] = set()
        scope: Optional[Environment] = self
        while scope is not None:
            seen.update(scope.values)
            if scope.parent is None:
                seen.update(scope.builtins)
            scope = scope.parent
        return seen


def create_session() -> Environment:
    """Create a fresh global scope wired to the built-in catalog."""
    from .builtin_functions import CATALOG

    return Environment(builtins=CATALOG)


def reset_variables(env: Environment) -> int:
    """Remove every user binding from the global scope of ``env``."""
    count = env.root().clear()
    logger.info("reset %d variable(s)", count)
    return count


def known_identifiers(env: Environment) -> Set[str]:
    """Built-in names plus every currently bound variable."""
    return env.names()
