"""Arithmetic expression evaluator used as the search fallback.

Queries are parsed with the ``ast`` module and only a small whitelist of
node types is evaluated, so arbitrary Python never runs.
"""
import ast
import math
import operator
from typing import Optional

_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

# Exponents above this are rejected to keep evaluation instant
_MAX_EXPONENT = 1000
# Longer input is not a typed calculation; deep trees exhaust the parser stack
_MAX_SOURCE_LENGTH = 512


class Expression:
    """A parsed arithmetic expression."""

    def __init__(self, source: str, tree: ast.Expression) -> None:
        self.source = source
        self._tree = tree

    @classmethod
    def parse(cls, text: str) -> Optional['Expression']:
        """Parse text into an Expression, or None if it is not arithmetic.

        ``^`` is accepted as exponentiation. A bare number is not treated as
        an expression.
        """
        source = text.strip().replace('^', '**')
        if not source or len(source) > _MAX_SOURCE_LENGTH:
            return None
        try:
            tree = ast.parse(source, mode='eval')
            if not isinstance(tree.body, (ast.BinOp, ast.UnaryOp)):
                return None
            if not cls._is_arithmetic(tree.body):
                return None
        except (SyntaxError, ValueError, RecursionError, MemoryError):
            return None

        expression = cls(text, tree)
        if expression.evaluate() is None:
            return None
        return expression

    @classmethod
    def _is_arithmetic(cls, node: ast.AST) -> bool:
        if isinstance(node, ast.Constant):
            return isinstance(node.value, (int, float)) and not isinstance(node.value, bool)
        if isinstance(node, ast.BinOp):
            return (type(node.op) in _BINARY_OPS
                    and cls._is_arithmetic(node.left)
                    and cls._is_arithmetic(node.right))
        if isinstance(node, ast.UnaryOp):
            return type(node.op) in _UNARY_OPS and cls._is_arithmetic(node.operand)
        return False

    def evaluate(self) -> Optional[float]:
        """Evaluate the expression, returning None on math errors."""
        try:
            value = self._eval(self._tree.body)
            if isinstance(value, complex) or math.isnan(value) or math.isinf(value):
                return None
        except (ArithmeticError, ValueError, RecursionError):
            return None
        return value

    def _eval(self, node: ast.AST):
        if isinstance(node, ast.Constant):
            return node.value
        if isinstance(node, ast.UnaryOp):
            return _UNARY_OPS[type(node.op)](self._eval(node.operand))
        left = self._eval(node.left)
        right = self._eval(node.right)
        if isinstance(node.op, ast.Pow) and abs(right) > _MAX_EXPONENT:
            raise ValueError("exponent too large")
        return _BINARY_OPS[type(node.op)](left, right)


def format_value(value: float) -> str:
    """Format a result the way it is shown: integral values drop '.0'."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class Calculator:
    """ExpressionEvaluator backed by Expression."""

    def parse(self, text: str) -> Optional[float]:
        expression = Expression.parse(text)
        if expression is None:
            return None
        value = expression.evaluate()
        return None if value is None else float(value)
