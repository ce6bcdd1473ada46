"""
Structured list-query options ($filter, $orderby, $top, $skip, $count,
$select) and their evaluation against in-memory records.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from ..errors import ValidationError

COMPARISON_OPS = {"eq", "ne", "gt", "ge", "lt", "le"}
STRING_FUNCTIONS = {"contains", "startswith", "endswith"}


@dataclass
class Comparison:
    field: str
    op: str
    value: Any


@dataclass
class FunctionFilter:
    function: str
    field: str
    value: Any


@dataclass
class LogicalFilter:
    op: str
    left: "FilterNode"
    right: "FilterNode"


@dataclass
class NotFilter:
    operand: "FilterNode"


FilterNode = Union[Comparison, FunctionFilter, LogicalFilter, NotFilter]


@dataclass
class OrderClause:
    field: str
    descending: bool = False


@dataclass
class QueryOptions:
    filter: Optional[FilterNode] = None
    filter_text: Optional[str] = None
    order_by: List[OrderClause] = field(default_factory=list)
    top: Optional[int] = None
    skip: Optional[int] = None
    include_count: bool = False
    select: List[str] = field(default_factory=list)
    expand: Optional[str] = None


_TOKEN_RE = re.compile(
    r"""\s*(?:
        (?P<string>'(?:[^']|'')*')
      | (?P<guid>[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12})
      | (?P<number>-?\d+(?:\.\d+)?)
      | (?P<lparen>\()
      | (?P<rparen>\))
      | (?P<comma>,)
      | (?P<word>[A-Za-z_@][\w./@-]*)
    )""",
    re.VERBOSE,
)


def _tokenize_filter(text: str) -> List[Tuple[str, str]]:
    tokens: List[Tuple[str, str]] = []
    pos = 0
    while pos < len(text):
        if text[pos:].strip() == "":
            break
        match = _TOKEN_RE.match(text, pos)
        if not match or match.end() == pos:
            raise ValidationError(f"I couldn't parse the $filter near '{text[pos:pos + 20].strip()}'.")
        kind = match.lastgroup or ""
        tokens.append((kind, match.group(kind)))
        pos = match.end()
    return tokens


class _FilterParser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens = _tokenize_filter(text)
        self.index = 0

    def peek(self) -> Tuple[str, str] | None:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def advance(self) -> Tuple[str, str]:
        tok = self.peek()
        if tok is None:
            raise ValidationError(f"The $filter '{self.text}' ended unexpectedly.")
        self.index += 1
        return tok

    def expect(self, kind: str) -> Tuple[str, str]:
        tok = self.advance()
        if tok[0] != kind:
            raise ValidationError(f"Expected {kind} in $filter '{self.text}' but found '{tok[1]}'.")
        return tok

    def _keyword(self, word: str) -> bool:
        tok = self.peek()
        if tok and tok[0] == "word" and tok[1].lower() == word:
            self.index += 1
            return True
        return False

    def parse(self) -> FilterNode:
        node = self.parse_or()
        if self.peek() is not None:
            raise ValidationError(f"Unexpected '{self.peek()[1]}' in $filter '{self.text}'.")
        return node

    def parse_or(self) -> FilterNode:
        node = self.parse_and()
        while self._keyword("or"):
            node = LogicalFilter("or", node, self.parse_and())
        return node

    def parse_and(self) -> FilterNode:
        node = self.parse_not()
        while self._keyword("and"):
            node = LogicalFilter("and", node, self.parse_not())
        return node

    def parse_not(self) -> FilterNode:
        if self._keyword("not"):
            return NotFilter(self.parse_not())
        return self.parse_primary()

    def parse_primary(self) -> FilterNode:
        tok = self.peek()
        if tok is None:
            raise ValidationError(f"The $filter '{self.text}' ended unexpectedly.")
        if tok[0] == "lparen":
            self.advance()
            node = self.parse_or()
            self.expect("rparen")
            return node
        if tok[0] != "word":
            raise ValidationError(f"Expected an attribute name in $filter '{self.text}' but found '{tok[1]}'.")
        name = self.advance()[1]
        if name.lower() in STRING_FUNCTIONS and self.peek() and self.peek()[0] == "lparen":
            self.advance()
            attr = self.expect("word")[1]
            self.expect("comma")
            value = self._literal()
            self.expect("rparen")
            return FunctionFilter(name.lower(), attr.lower(), value)
        op_tok = self.expect("word")
        op = op_tok[1].lower()
        if op not in COMPARISON_OPS:
            raise ValidationError(f"Unsupported operator '{op_tok[1]}' in $filter '{self.text}'.")
        return Comparison(name.lower(), op, self._literal())

    def _literal(self) -> Any:
        kind, raw = self.advance()
        if kind == "string":
            return raw[1:-1].replace("''", "'")
        if kind == "guid":
            return raw
        if kind == "number":
            return float(raw) if "." in raw else int(raw)
        if kind == "word":
            lowered = raw.lower()
            if lowered == "true":
                return True
            if lowered == "false":
                return False
            if lowered == "null":
                return None
            return raw
        raise ValidationError(f"Expected a literal value in $filter '{self.text}' but found '{raw}'.")


def parse_filter(text: str | None) -> Optional[FilterNode]:
    if text is None or not str(text).strip():
        return None
    return _FilterParser(str(text)).parse()


def parse_order_by(text: str | None) -> List[OrderClause]:
    clauses: List[OrderClause] = []
    if not text:
        return clauses
    for part in str(text).split(","):
        bits = part.strip().split()
        if not bits:
            continue
        descending = len(bits) > 1 and bits[1].lower() == "desc"
        if len(bits) > 1 and bits[1].lower() not in {"asc", "desc"}:
            raise ValidationError(f"Unsupported sort direction '{bits[1]}' in $orderby '{text}'.")
        clauses.append(OrderClause(bits[0].lower(), descending))
    return clauses


def _coerce_int(value: Any, name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{name} must be an integer but got {value!r}.") from exc
    if number < 0:
        raise ValidationError(f"{name} must not be negative.")
    return number


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes"}
    return bool(value)


def build_query_options(
    filter_text: Any = None,
    order_by: Any = None,
    top: Any = None,
    skip: Any = None,
    count: Any = None,
    select: Any = None,
    expand: Any = None,
    *,
    defer_filter: bool = False,
) -> QueryOptions:
    """
    Build structured options. ``defer_filter`` keeps the raw filter text
    unparsed so it can be resolved once dynamic values are known.
    """
    text = None if filter_text in (None, "") else str(filter_text)
    return QueryOptions(
        filter=None if defer_filter else parse_filter(text),
        filter_text=text,
        order_by=parse_order_by(order_by),
        top=_coerce_int(top, "$top"),
        skip=_coerce_int(skip, "$skip"),
        include_count=_coerce_bool(count) if count is not None else False,
        select=[s.strip().lower() for s in str(select).split(",") if s.strip()] if select else [],
        expand=str(expand) if expand else None,
    )


def _field_value(record: Dict[str, Any], name: str) -> Any:
    if name in record:
        return record[name]
    for key, value in record.items():
        if key.lower() == name:
            return value
    return None


def _compare(left: Any, right: Any) -> int | None:
    if left is None or right is None:
        return None
    try:
        if isinstance(left, str) and isinstance(right, str):
            a, b = left.lower(), right.lower()
            return (a > b) - (a < b)
        return (left > right) - (left < right)
    except TypeError:
        return None


def matches(node: Optional[FilterNode], record: Dict[str, Any]) -> bool:
    if node is None:
        return True
    if isinstance(node, LogicalFilter):
        if node.op == "and":
            return matches(node.left, record) and matches(node.right, record)
        return matches(node.left, record) or matches(node.right, record)
    if isinstance(node, NotFilter):
        return not matches(node.operand, record)
    if isinstance(node, FunctionFilter):
        value = _field_value(record, node.field)
        if value is None:
            return False
        haystack = str(value).lower()
        needle = str(node.value).lower()
        if node.function == "contains":
            return needle in haystack
        if node.function == "startswith":
            return haystack.startswith(needle)
        return haystack.endswith(needle)
    value = _field_value(record, node.field)
    if node.op == "eq":
        if isinstance(value, str) and isinstance(node.value, str):
            return value.lower() == node.value.lower()
        return value == node.value
    if node.op == "ne":
        if isinstance(value, str) and isinstance(node.value, str):
            return value.lower() != node.value.lower()
        return value != node.value
    order = _compare(value, node.value)
    if order is None:
        return False
    if node.op == "gt":
        return order > 0
    if node.op == "ge":
        return order >= 0
    if node.op == "lt":
        return order < 0
    return order <= 0


def apply_query(records: Iterable[Dict[str, Any]], options: QueryOptions) -> Tuple[List[Dict[str, Any]], int]:
    """Filter, sort and page ``records``; returns (page, total matching)."""
    rows = [record for record in records if matches(options.filter, record)]
    for clause in reversed(options.order_by):
        # Stable multi-key sort; records without the attribute go last.
        present = [r for r in rows if _field_value(r, clause.field) is not None]
        missing = [r for r in rows if _field_value(r, clause.field) is None]
        present.sort(key=lambda r: _sort_key(_field_value(r, clause.field)), reverse=clause.descending)
        rows = present + missing
    total = len(rows)
    if options.skip:
        rows = rows[options.skip :]
    if options.top is not None:
        rows = rows[: options.top]
    if options.select:
        rows = [_project(r, options.select) for r in rows]
    return rows, total


def _sort_key(value: Any) -> Tuple[int, Any]:
    if isinstance(value, bool):
        return (0, int(value))
    if isinstance(value, (int, float)):
        return (0, value)
    return (1, str(value).lower())


def _project(record: Dict[str, Any], columns: List[str]) -> Dict[str, Any]:
    return {key: value for key, value in record.items() if key == "id" or key.lower() in columns}
