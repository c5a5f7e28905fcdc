"""
Expression engine for rendering {{ }} templates in input mappings.

Uses simpleeval for safe expression evaluation (no eval() or exec()).
Dotted references such as ``input.items.0.name`` are resolved against the
node's formatted input and shared context; missing references render as
an empty string.
"""

from __future__ import annotations

import json
import logging
import math
import re
from datetime import datetime
from typing import Any

from simpleeval import (
    DEFAULT_FUNCTIONS,
    DEFAULT_OPERATORS,
    AttributeDoesNotExist,
    InvalidExpression,
    NameNotDefined,
    SimpleEval,
)

from ..core.exceptions import ExpressionError
from .jtree import MISSING, get_by_path

logger = logging.getLogger(__name__)

TEMPLATE_PATTERN = re.compile(r"\{\{(.+?)\}\}", re.DOTALL)

# String literals are left untouched by the expression rewrites
_STRING_LITERAL = re.compile(r"(\"(?:[^\"\\]|\\.)*\"|'(?:[^'\\]|\\.)*')")

# name.segment.0.segment, not preceded by another name, attribute or call
_DOTTED_CHAIN = re.compile(r"(?<![\w.\])])([A-Za-z_]\w*)((?:\.(?:[A-Za-z_]\w*|\d+))+)(\s*\()?")

_LITERAL_NAMES = {"true": True, "false": False, "null": None, "none": None}


def _path_get(value: Any, *segments: Any) -> Any:
    result = get_by_path(value, ".".join(str(s) for s in segments))
    return None if result is MISSING else result


class ExpressionEngine:
    """
    Safe template renderer that doesn't use eval() or exec().

    Uses simpleeval library with a whitelist of allowed functions.
    """

    def __init__(self) -> None:
        self._setup_evaluator()

    def _setup_evaluator(self) -> None:
        """Set up the safe evaluator with allowed functions."""
        self.evaluator = SimpleEval()
        self.evaluator.operators = DEFAULT_OPERATORS.copy()

        self.evaluator.functions = {
            **DEFAULT_FUNCTIONS,
            "getpath": _path_get,
            # Type conversion
            "str": str,
            "int": int,
            "float": float,
            "bool": bool,
            "list": list,
            "dict": dict,
            # String functions
            "lower": lambda s: str(s).lower(),
            "upper": lambda s: str(s).upper(),
            "trim": lambda s: str(s).strip(),
            "split": lambda s, sep=" ": str(s).split(sep),
            "join": lambda arr, sep="": sep.join(str(x) for x in arr),
            "includes": lambda s, search: search in s,
            "replace": lambda s, old, new: str(s).replace(old, new),
            "substring": lambda s, start, end=None: str(s)[start:end],
            "length": lambda x: len(x),
            "startswith": lambda s, prefix: str(s).startswith(prefix),
            "endswith": lambda s, suffix: str(s).endswith(suffix),
            # Array functions
            "first": lambda arr: arr[0] if arr else None,
            "last": lambda arr: arr[-1] if arr else None,
            "at": lambda arr, idx: arr[idx] if 0 <= idx < len(arr) else None,
            "reverse": lambda arr: list(reversed(arr)),
            "sort": lambda arr: sorted(arr),
            "unique": lambda arr: list(dict.fromkeys(arr)),
            # Math functions
            "abs": abs,
            "min": min,
            "max": max,
            "sum": sum,
            "round": round,
            "floor": math.floor,
            "ceil": math.ceil,
            # Date functions
            "date_now": lambda: datetime.now().isoformat(),
            "timestamp": lambda: int(datetime.now().timestamp()),
            # JSON functions
            "json_stringify": lambda v: json.dumps(v),
            "json_parse": lambda s: json.loads(s) if s else None,
            # Type checking
            "typeof": lambda v: type(v).__name__,
            "is_array": lambda v: isinstance(v, list),
            "is_empty": lambda v: v is None or v == "" or (isinstance(v, (list, dict)) and len(v) == 0),
            "is_none": lambda v: v is None,
            # Object functions
            "keys": lambda d: list(d.keys()) if isinstance(d, dict) else [],
            "values": lambda d: list(d.values()) if isinstance(d, dict) else [],
            "get": lambda d, key, default=None: d.get(key, default) if isinstance(d, dict) else default,
        }

    @staticmethod
    def is_template(text: str) -> bool:
        """Check whether a mapping contains {{ }} expressions."""
        return "{{" in text

    def render(self, template: str, scope: dict[str, Any]) -> str:
        """Replace every {{ }} expression in a template with its rendered value."""

        def replacer(match: re.Match[str]) -> str:
            return self._stringify(self.evaluate(match.group(1).strip(), scope))

        return TEMPLATE_PATTERN.sub(replacer, template)

    def evaluate(self, expression: str, scope: dict[str, Any]) -> Any:
        """
        Evaluate a single expression against a scope.

        Raises:
            ExpressionError: If the expression is malformed or fails for a
                reason other than a missing reference
        """
        transformed = self._transform_expression(expression)

        try:
            self.evaluator.names = {**_LITERAL_NAMES, **scope}
            return self.evaluator.eval(transformed.strip())
        except (NameNotDefined, AttributeDoesNotExist, KeyError, IndexError):
            logger.debug("Unresolved reference in expression: %s", expression)
            return None
        except (InvalidExpression, SyntaxError) as e:
            raise ExpressionError(f"Invalid expression: {e}", expression) from e
        except (ArithmeticError, TypeError, ValueError) as e:
            raise ExpressionError(f"Expression evaluation failed: {e}", expression) from e

    def _transform_expression(self, expression: str) -> str:
        """Rewrite template syntax into Python-compatible syntax."""
        parts = _STRING_LITERAL.split(expression)
        # Odd indexes hold the captured string literals
        for i in range(0, len(parts), 2):
            parts[i] = self._transform_code(parts[i])
        return "".join(parts)

    def _transform_code(self, code: str) -> str:
        code = code.replace("&&", " and ").replace("||", " or ")
        code = re.sub(r"!(?!=)", " not ", code)
        return _DOTTED_CHAIN.sub(self._rewrite_chain, code)

    @staticmethod
    def _rewrite_chain(match: re.Match[str]) -> str:
        root, chain, call = match.group(1), match.group(2), match.group(3)
        segments = chain.lstrip(".").split(".")

        # A trailing call keeps its last segment as a method
        method = None
        if call:
            method = segments.pop()

        args = ", ".join(s if s.isdigit() else json.dumps(s) for s in segments)
        rewritten = f"getpath({root}, {args})" if segments else root
        if method:
            rewritten = f"{rewritten}.{method}{call}"
        return rewritten

    def _stringify(self, value: Any) -> str:
        """Convert value to string for interpolation."""
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (dict, list)):
            return json.dumps(value)
        return str(value)


# Singleton instance
expression_engine = ExpressionEngine()
