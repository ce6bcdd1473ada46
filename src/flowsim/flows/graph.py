"""
Dependency ordering and validation for action graphs.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Sequence, Set

from ..errors import ValidationError
from .models import Action

__all__ = ["order_by_dependencies", "order_actions", "validate_actions", "iter_actions"]


def order_by_dependencies(names: Sequence[str], dependencies: Dict[str, Iterable[str]], *, scope: str = "flow") -> List[str]:
    """
    Stable topological sort: among the actions whose prerequisites have all
    been emitted, the one declared first goes next.
    """
    known = set(names)
    for name in names:
        for dep in dependencies.get(name, ()):
            if dep not in known:
                raise ValidationError(
                    f"Action '{name}' in {scope} runs after '{dep}', but no action named '{dep}' exists at that level."
                )
    remaining = list(names)
    emitted: Set[str] = set()
    ordered: List[str] = []
    while remaining:
        for idx, name in enumerate(remaining):
            if all(dep in emitted for dep in dependencies.get(name, ())):
                ordered.append(name)
                emitted.add(name)
                del remaining[idx]
                break
        else:
            raise ValidationError(f"Action graph in {scope} contains a cycle: {_describe_cycle(remaining, dependencies)}")
    return ordered


def _describe_cycle(names: List[str], dependencies: Dict[str, Iterable[str]]) -> str:
    pending = set(names)
    path: List[str] = []
    current = names[0]
    while current not in path:
        path.append(current)
        current = next(dep for dep in dependencies.get(current, ()) if dep in pending)
    cycle = path[path.index(current) :] + [current]
    return " -> ".join(reversed(cycle))


def order_actions(actions: Sequence[Action], *, scope: str = "flow") -> List[Action]:
    by_name = {action.name: action for action in actions}
    names = [action.name for action in actions]
    ordered = order_by_dependencies(names, {a.name: a.run_after for a in actions}, scope=scope)
    return [by_name[name] for name in ordered]


def iter_actions(actions: Iterable[Action]) -> Iterable[Action]:
    for action in actions:
        yield action
        for child_list in action.children():
            yield from iter_actions(child_list)


def validate_actions(actions: Sequence[Action], *, flow_name: str = "flow") -> None:
    """Reject duplicate names flow-wide, unresolved run-after names and cycles."""
    seen: Set[str] = set()
    for action in iter_actions(actions):
        if not action.name:
            raise ValidationError(f"Every action in flow '{flow_name}' needs a name.")
        if action.name in seen:
            raise ValidationError(f"Action name '{action.name}' is used more than once in flow '{flow_name}'.")
        seen.add(action.name)
    _validate_level(actions, f"flow '{flow_name}'")


def _validate_level(actions: Sequence[Action], scope: str) -> None:
    order_actions(actions, scope=scope)
    for action in actions:
        for child_list in action.children():
            _validate_level(child_list, f"'{action.name}'")
