"""Sandboxed expression evaluation for loop bodies."""

import ast
import re
from typing import Any, Dict, List, Optional, Tuple

import structlog

from nodeflow.exceptions import NodeFlowException

logger = structlog.get_logger()

# Positional order of arrow-function parameters
LOOP_VARIABLES = ("element", "index", "array", "accumulator")


class ExpressionError(NodeFlowException):
    """Raised when an expression is rejected or fails to evaluate."""

    def __init__(self, message: str, expression: str):
        super().__init__(message)
        self.message = message
        self.expression = expression


class SafeEvalVisitor(ast.NodeVisitor):
    """AST visitor for safe expression evaluation."""

    # Allowed names
    ALLOWED_NAMES = {
        'None', 'True', 'False', 'true', 'false', 'null',
        'int', 'float', 'str', 'bool', 'list', 'dict', 'tuple', 'set',
        'len', 'sum', 'min', 'max', 'abs', 'round',
        'any', 'all', 'sorted', 'reversed',
    }

    # Methods that change their receiver in place
    MUTATING_METHODS = {
        'append', 'extend', 'insert', 'pop', 'remove', 'clear', 'sort', 'reverse',
        'update', 'setdefault', 'popitem', 'add', 'discard',
        'difference_update', 'intersection_update', 'symmetric_difference_update',
    }

    def __init__(self, names: Dict[str, Any]):
        self.names = names
        self.unsafe = False
        self.reason: Optional[str] = None

    def _reject(self, reason: str) -> None:
        if not self.unsafe:
            self.reason = reason
        self.unsafe = True

    def visit_Name(self, node):
        if node.id not in self.ALLOWED_NAMES and node.id not in self.names:
            self._reject(f"Unknown name: {node.id}")
        self.generic_visit(node)

    def visit_Attribute(self, node):
        if node.attr.startswith("_"):
            self._reject(f"Private attribute access: {node.attr}")
        self.generic_visit(node)

    def visit_Call(self, node):
        # Only allow certain function calls
        if isinstance(node.func, ast.Name):
            if node.func.id not in self.ALLOWED_NAMES:
                self._reject(f"Function not allowed: {node.func.id}")
        elif isinstance(node.func, ast.Attribute):
            # Allow non-mutating method calls on known objects
            if node.func.attr in self.MUTATING_METHODS:
                self._reject(f"Mutating method not allowed: {node.func.attr}")
            elif not isinstance(node.func.value, (ast.Name, ast.Constant)):
                self._reject("Chained method calls are not allowed")
            elif isinstance(node.func.value, ast.Name) and node.func.value.id not in self.names:
                self._reject(f"Method call on unknown name: {node.func.value.id}")
        else:
            self._reject("Dynamic calls are not allowed")
        self.generic_visit(node)

    def visit_Lambda(self, node):
        self._reject("Lambdas are not allowed")

    def visit_NamedExpr(self, node):
        self._reject("Assignment expressions are not allowed")


class ExpressionEvaluator:
    """
    Safe expression evaluator for loop-body expressions.

    Expressions are parsed in eval mode, checked by ``SafeEvalVisitor`` and
    evaluated with empty builtins and a small whitelist. A handful of common
    JavaScript spellings (``===``, ``&&``, ``||``, ``!``, ``true``) are accepted
    so that expressions written in the editor keep working.

    Two forms are supported::

        element * 2
        (x, i) => x * i
    """

    ARROW_PATTERN = re.compile(r'^\s*(\((?P<params>[^()]*)\)|(?P<param>[A-Za-z_]\w*))\s*=>\s*(?P<body>.+)$', re.S)

    # Single or double quoted literal, backslash escapes included
    STRING_PATTERN = re.compile(r'''('(?:\\.|[^'\\])*'|"(?:\\.|[^"\\])*")''', re.S)

    # Order matters: strict operators before their loose forms
    OPERATOR_REWRITES = (
        (re.compile(r'!=='), '!='),
        (re.compile(r'==='), '=='),
        (re.compile(r'&&'), ' and '),
        (re.compile(r'\|\|'), ' or '),
        (re.compile(r'!(?!=)'), ' not '),
    )

    NAMESPACE = {
        '__builtins__': {},  # Empty builtins for safety
        'len': len,
        'sum': sum,
        'min': min,
        'max': max,
        'abs': abs,
        'round': round,
        'any': any,
        'all': all,
        'sorted': sorted,
        'reversed': lambda value: list(reversed(value)),
        'str': str,
        'int': int,
        'float': float,
        'bool': bool,
        'list': list,
        'dict': dict,
        'tuple': tuple,
        'set': set,
        'true': True,
        'false': False,
        'null': None,
    }

    def __init__(self):
        self.logger = logger.bind(component="expression_evaluator")

    def evaluate(self, expression: str, data: Dict[str, Any]) -> Any:
        """
        Evaluate an expression against ``data``.

        Raises:
            ExpressionError: If the expression is unsafe, malformed or fails
        """
        body, bindings = self._unwrap_arrow(expression, data)
        source = self._rewrite_operators(body)

        try:
            tree = ast.parse(source.strip(), mode='eval')
        except (SyntaxError, ValueError) as e:
            raise ExpressionError(f"Invalid expression syntax: {e}", expression) from e

        # Check for unsafe operations
        visitor = SafeEvalVisitor(bindings)
        visitor.visit(tree)
        if visitor.unsafe:
            raise ExpressionError(f"Unsafe expression: {visitor.reason}", expression)

        namespace = dict(self.NAMESPACE)
        namespace.update(bindings)

        try:
            return eval(compile(tree, '<expression>', 'eval'), namespace)
        except Exception as e:
            raise ExpressionError(f"Expression evaluation failed: {e}", expression) from e

    def evaluate_loop_expression(
        self,
        expression: str,
        element: Any,
        index: int,
        array: List[Any],
        accumulator: Any = None,
    ) -> Any:
        """Evaluate a loop-body expression for one element."""
        return self.evaluate(
            expression,
            {
                "element": element,
                "index": index,
                "array": array,
                "accumulator": accumulator,
            },
        )

    def validate_expression(self, expression: str, names: Optional[Tuple[str, ...]] = None) -> bool:
        """Validate that an expression is safe and syntactically correct."""
        data = dict.fromkeys(names or LOOP_VARIABLES)
        try:
            body, bindings = self._unwrap_arrow(expression, data)
            tree = ast.parse(self._rewrite_operators(body).strip(), mode='eval')
        except (ExpressionError, SyntaxError, ValueError):
            return False

        visitor = SafeEvalVisitor(bindings)
        visitor.visit(tree)
        return not visitor.unsafe

    def _unwrap_arrow(self, expression: str, data: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
        """Split ``params => body`` and bind params positionally to the loop variables."""
        if "=>" not in self._code_only(expression):
            return expression, dict(data)

        match = self.ARROW_PATTERN.match(expression)
        if not match:
            raise ExpressionError("Malformed arrow expression", expression)

        raw_params = match.group("params")
        if raw_params is None:
            raw_params = match.group("param")
        params = [param.strip() for param in raw_params.split(",") if param.strip()]
        if len(params) > len(LOOP_VARIABLES):
            raise ExpressionError(
                f"Arrow expression takes at most {len(LOOP_VARIABLES)} parameters",
                expression,
            )

        bindings = dict(data)
        for param, variable in zip(params, LOOP_VARIABLES):
            if not param.isidentifier():
                raise ExpressionError(f"Invalid parameter name: {param}", expression)
            bindings[param] = data.get(variable)

        return match.group("body"), bindings

    def _rewrite_operators(self, source: str) -> str:
        # Odd segments are quoted literals and are kept verbatim
        segments = self.STRING_PATTERN.split(source)
        for position in range(0, len(segments), 2):
            code = segments[position]
            for pattern, replacement in self.OPERATOR_REWRITES:
                code = pattern.sub(replacement, code)
            segments[position] = code
        return "".join(segments)

    def _code_only(self, source: str) -> str:
        return "".join(self.STRING_PATTERN.split(source)[0::2])
