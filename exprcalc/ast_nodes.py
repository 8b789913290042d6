"""AST node definitions for calculator expressions.

Nodes are immutable once the parser produces them. Every node records the
column of its leading token in ``pos``. Positions and literal radix are
ignored by equality so trees compare structurally.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Tuple


@dataclass(frozen=True)
class ASTNode:
    """Base AST node."""
    pass


@dataclass(frozen=True)
class Literal(ASTNode):
    value: Any
    radix: Optional[str] = field(default=None, compare=False)
    pos: int = field(default=0, compare=False)


@dataclass(frozen=True)
class Identifier(ASTNode):
    name: str
    pos: int = field(default=0, compare=False)


@dataclass(frozen=True)
class UnaryOp(ASTNode):
    op: str
    operand: ASTNode
    pos: int = field(default=0, compare=False)


@dataclass(frozen=True)
class BinaryOp(ASTNode):
    op: str
    left: ASTNode
    right: ASTNode
    pos: int = field(default=0, compare=False)


@dataclass(frozen=True)
class Assignment(ASTNode):
    name: str
    value: ASTNode
    pos: int = field(default=0, compare=False)


@dataclass(frozen=True)
class Call(ASTNode):
    callee: ASTNode
    args: Tuple[ASTNode, ...]
    pos: int = field(default=0, compare=False)


@dataclass(frozen=True)
class FunctionLiteral(ASTNode):
    params: Tuple[str, ...]
    body: ASTNode
    name: Optional[str] = None
    pos: int = field(default=0, compare=False)


@dataclass(frozen=True)
class SequenceLiteral(ASTNode):
    elements: Tuple[ASTNode, ...]
    pos: int = field(default=0, compare=False)


def children(node: ASTNode) -> Tuple[ASTNode, ...]:
    """Direct sub-expressions of ``node``."""
    if isinstance(node, UnaryOp):
        return (node.operand,)
    if isinstance(node, BinaryOp):
        return (node.left, node.right)
    if isinstance(node, Assignment):
        return (node.value,)
    if isinstance(node, Call):
        return (node.callee,) + node.args
    if isinstance(node, FunctionLiteral):
        return (node.body,)
    if isinstance(node, SequenceLiteral):
        return node.elements
    return ()


def tree_depth(node: ASTNode) -> int:
    """Height of the tree under ``node``, computed without recursion."""
    deepest = 0
    stack = [(node, 1)]
    while stack:
        current, depth = stack.pop()
        deepest = max(deepest, depth)
        stack.extend((child, depth + 1) for child in children(current))
    return deepest


# --------------------------
# Unparsing
# --------------------------

def _literal_source(node: Literal) -> str:
    value = node.value
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, int) and node.radix in ('hex', 'bin'):
        return format(value, '#x' if node.radix == 'hex' else '#b')
    return repr(value)


def unparse(node: ASTNode) -> str:
    """Render a node back to source text that parses to an equal tree.

    Operands of operators are always parenthesised, which keeps the output
    independent of the precedence table.
    """
    if isinstance(node, Literal):
        return _literal_source(node)
    if isinstance(node, Identifier):
        return node.name
    if isinstance(node, UnaryOp):
        sep = ' ' if node.op == 'not' else ''
        return f"{node.op}{sep}({unparse(node.operand)})"
    if isinstance(node, BinaryOp):
        return f"({unparse(node.left)}) {node.op} ({unparse(node.right)})"
    if isinstance(node, Assignment):
        value = node.value
        if isinstance(value, FunctionLiteral) and value.name == node.name:
            return f"fn {node.name}({', '.join(value.params)}) {unparse(value.body)}"
        return f"{node.name} = {unparse(value)}"
    if isinstance(node, Call):
        args = ', '.join(unparse(a) for a in node.args)
        callee = unparse(node.callee)
        if not isinstance(node.callee, (Identifier, Call)):
            callee = f"({callee})"
        return f"{callee}({args})"
    if isinstance(node, FunctionLiteral):
        return f"|{', '.join(node.params)}| {unparse(node.body)}"
    if isinstance(node, SequenceLiteral):
        return '[' + ', '.join(unparse(e) for e in node.elements) + ']'
    raise TypeError(f"Cannot unparse {type(node).__name__}")
