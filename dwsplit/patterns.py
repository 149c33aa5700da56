"""Declarative annotation rules.

A rule maps a variable or constraint pattern to a destination::

    x[m, _] => subproblem(m)
    assignment[_] => master()
    capacity[m] => subproblem(m)
    z => master()

Index positions are bare names, captured for use in the destination, or
``_`` to ignore the position. The argument of ``subproblem`` is a small
expression over the captured names and the caller's namespace: constants,
tuples, subscripts, public attributes and arithmetic.
"""

from __future__ import annotations

import ast
import logging
import operator
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from dwsplit.exceptions import (
    ArityError,
    EmptyDecompositionError,
    MalformedAssignment,
    MalformedPattern,
    MissingAnnotation,
)
from dwsplit.types import MASTER, Annotation, dantzig_wolfe_subproblem, make_key

logger = logging.getLogger(__name__)

WILDCARD = "_"


@dataclass(frozen=True)
class MasterAssignment:
    pass


@dataclass(frozen=True)
class SubproblemAssignment:
    source: str
    node: Any = field(compare=False, repr=False)


@dataclass(frozen=True)
class PatternRule:
    name: str
    indices: Tuple[str, ...]
    assignment: Union[MasterAssignment, SubproblemAssignment]

    @property
    def arity(self) -> int:
        return len(self.indices)


def parse_pattern(text: str) -> Tuple[str, Tuple[str, ...]]:
    """Parse ``name`` or ``name[i, j, ...]`` into a name and index names."""
    try:
        node = ast.parse(text.strip(), mode="eval").body
    except SyntaxError as exc:
        raise MalformedPattern(f"Cannot parse pattern {text.strip()!r}") from exc
    if isinstance(node, ast.Name):
        return node.id, ()
    if not (isinstance(node, ast.Subscript) and isinstance(node.value, ast.Name)):
        raise MalformedPattern(f"Expected name or name[indices], got {text.strip()!r}")
    elements = node.slice.elts if isinstance(node.slice, ast.Tuple) else [node.slice]
    indices = []
    for element in elements:
        if not isinstance(element, ast.Name):
            raise MalformedPattern(
                f"Index must be a name or {WILDCARD}, got {ast.unparse(element)!r} in {text.strip()!r}"
            )
        if element.id != WILDCARD and element.id in indices:
            raise MalformedPattern(f"Index name {element.id!r} is captured twice in {text.strip()!r}")
        indices.append(element.id)
    return node.value.id, tuple(indices)


_BINARY_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}
_UNARY_OPERATORS = {ast.UAdd: operator.pos, ast.USub: operator.neg}


def _check_id_expression(node, known: Iterable[str], namespace: Mapping[str, Any], text: str) -> None:
    """Reject anything but names, constants, tuples, subscripts, attributes and arithmetic."""
    if isinstance(node, ast.Constant):
        return
    if isinstance(node, ast.Name):
        if node.id not in known and node.id not in namespace:
            raise MalformedAssignment(
                f"Name {node.id!r} in {text!r} is neither a captured index nor in the namespace"
            )
        return
    if isinstance(node, ast.Tuple):
        children = node.elts
    elif isinstance(node, ast.Subscript):
        children = [node.value, node.slice]
    elif isinstance(node, ast.Attribute):
        if node.attr.startswith("_"):
            raise MalformedAssignment(f"Private attribute {node.attr!r} is not accepted in {text!r}")
        children = [node.value]
    elif isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPERATORS:
        children = [node.left, node.right]
    elif isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPERATORS:
        children = [node.operand]
    else:
        raise MalformedAssignment(f"Unsupported expression {ast.unparse(node)!r} in {text!r}")
    for child in children:
        _check_id_expression(child, known, namespace, text)


def evaluate_id_expression(node, scope: Mapping[str, Any]):
    """Evaluate a checked ``subproblem(...)`` argument against ``scope``."""
    if isinstance(node, ast.Constant):
        return node.value
    if isinstance(node, ast.Name):
        return scope[node.id]
    if isinstance(node, ast.Tuple):
        return tuple(evaluate_id_expression(elt, scope) for elt in node.elts)
    if isinstance(node, ast.Subscript):
        return evaluate_id_expression(node.value, scope)[evaluate_id_expression(node.slice, scope)]
    if isinstance(node, ast.Attribute):
        return getattr(evaluate_id_expression(node.value, scope), node.attr)
    if isinstance(node, ast.BinOp):
        return _BINARY_OPERATORS[type(node.op)](
            evaluate_id_expression(node.left, scope), evaluate_id_expression(node.right, scope)
        )
    if isinstance(node, ast.UnaryOp):
        return _UNARY_OPERATORS[type(node.op)](evaluate_id_expression(node.operand, scope))
    raise TypeError(f"Cannot evaluate {ast.unparse(node)!r}")


def parse_assignment(text: str, captures: Iterable[str], namespace: Mapping[str, Any]):
    """Parse ``master()`` or ``subproblem(expr)``."""
    try:
        node = ast.parse(text.strip(), mode="eval").body
    except SyntaxError as exc:
        raise MalformedAssignment(f"Cannot parse assignment {text.strip()!r}") from exc
    if not (isinstance(node, ast.Call) and isinstance(node.func, ast.Name)):
        raise MalformedAssignment(f"Expected master() or subproblem(id), got {text.strip()!r}")
    if node.keywords:
        raise MalformedAssignment(f"Keyword arguments are not accepted in {text.strip()!r}")
    if node.func.id == "master":
        if node.args:
            raise ArityError(f"master() takes no arguments, got {len(node.args)}")
        return MasterAssignment()
    if node.func.id != "subproblem":
        raise MalformedAssignment(f"Unknown assignment function {node.func.id!r}")
    if len(node.args) != 1:
        raise ArityError(f"subproblem() requires exactly one argument, got {len(node.args)}")

    id_expr = node.args[0]
    _check_id_expression(id_expr, set(captures) - {WILDCARD}, namespace, text.strip())
    return SubproblemAssignment(source=ast.unparse(id_expr), node=id_expr)


def _rule_lines(rules) -> Iterable[str]:
    if isinstance(rules, str):
        rules = rules.splitlines()
    for line in rules:
        line = line.strip()
        if line and not line.startswith("#"):
            yield line


def parse_rule(text: str, namespace: Mapping[str, Any]) -> PatternRule:
    pattern, arrow, assignment = text.partition("=>")
    if not arrow:
        raise MalformedPattern(f"Expected 'pattern => assignment', got {text!r}")
    name, indices = parse_pattern(pattern)
    return PatternRule(name, indices, parse_assignment(assignment, indices, namespace))


class RuleClassifier:
    """Annotation function compiled from pattern rules."""

    def __init__(self, rules: Iterable[PatternRule], namespace: Optional[Mapping[str, Any]] = None) -> None:
        self.namespace = dict(namespace or {})
        self._rules: Dict[Tuple[str, int], PatternRule] = {}
        for rule in rules:
            key = (rule.name, rule.arity)
            if key in self._rules:
                raise MalformedPattern(f"Duplicate rule for {rule.name!r} with {rule.arity} indices")
            self._rules[key] = rule

    @property
    def rules(self) -> Tuple[PatternRule, ...]:
        return tuple(self._rules.values())

    def __call__(self, name: str, *index: Any) -> Annotation:
        rule = self._rules.get((name, len(index)))
        if rule is None:
            raise MissingAnnotation(make_key(name, index))
        if isinstance(rule.assignment, MasterAssignment):
            return MASTER
        scope = dict(self.namespace)
        scope.update((var, val) for var, val in zip(rule.indices, index) if var != WILDCARD)
        return dantzig_wolfe_subproblem(evaluate_id_expression(rule.assignment.node, scope))

    def __len__(self) -> int:
        return len(self._rules)


def compile_rules(rules: Union[str, Iterable[str]], namespace: Optional[Mapping[str, Any]] = None) -> RuleClassifier:
    """Compile declarative rules into an annotation function.

    Args:
        rules: One multi-line string or a sequence of rule strings. Blank
            lines and lines starting with ``#`` are skipped.
        namespace: Names visible to ``subproblem(...)`` expressions.

    Returns:
        A :class:`RuleClassifier` usable as ``classify``.

    Raises:
        MalformedPattern: A left-hand side is not a valid pattern.
        MalformedAssignment: A right-hand side is not a valid destination.
        ArityError: ``master``/``subproblem`` got the wrong argument count.
        EmptyDecompositionError: No rule was given.
    """
    namespace = dict(namespace or {})
    parsed = [parse_rule(line, namespace) for line in _rule_lines(rules)]
    if not parsed:
        raise EmptyDecompositionError("No decomposition rules were given")
    classifier = RuleClassifier(parsed, namespace)
    logger.debug("Compiled %d decomposition rules", len(classifier))
    return classifier
