"""
Visual query builder.

A filter is authored as a list of condition groups. Conditions inside a group
are combined with the group's logic ($and / $or); groups are combined with an
implicit $and. build_query compiles that structure into a MongoDB filter
document.

The compiled filter is the single source of truth. The raw (JSON) and visual
editors are two renderings of it:

    groups --build_query--> filter --render_raw_query--> text
    text --parse_filter_text--> filter --query_to_groups--> groups
"""

import dataclasses
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any

from bson.errors import BSONError
from bson.regex import Regex

from ..codecs.ejson import dumps as ejson_dumps
from ..codecs.ejson import loads as ejson_loads
from ..constants import LOGIC_AND, LOGIC_OR, OPERATOR_LABELS
from ..exceptions import QueryBuildError
from .values import parse_value

logger = logging.getLogger(__name__)


class Operator(str, Enum):
    """Comparison operator of a single condition."""

    EQ = "$eq"
    NE = "$ne"
    GT = "$gt"
    GTE = "$gte"
    LT = "$lt"
    LTE = "$lte"
    IN = "$in"
    NIN = "$nin"
    REGEX = "$regex"
    EXISTS = "$exists"

    @property
    def label(self) -> str:
        return OPERATOR_LABELS[self.value]

    @classmethod
    def parse(cls, name: "str | Operator") -> "Operator":
        """
        Resolve an operator from its MongoDB tag ("$gte"), bare tag ("gte")
        or descriptive name ("greater-or-equal").

        Raises:
            QueryBuildError: If the name is not a known operator
        """
        if isinstance(name, cls):
            return name
        key = name.strip()
        if key in _OPERATOR_ALIASES:
            return _OPERATOR_ALIASES[key]
        try:
            return cls(key if key.startswith("$") else f"${key}")
        except ValueError:
            raise QueryBuildError(f"Unknown operator: {name!r}") from None


_OPERATOR_ALIASES: dict[str, Operator] = {
    "equals": Operator.EQ,
    "not-equals": Operator.NE,
    "greater-than": Operator.GT,
    "greater-or-equal": Operator.GTE,
    "less-than": Operator.LT,
    "less-or-equal": Operator.LTE,
    "in-set": Operator.IN,
    "not-in-set": Operator.NIN,
    "matches-pattern": Operator.REGEX,
    "exists": Operator.EXISTS,
}


class Logic(str, Enum):
    """How the conditions of one group are combined."""

    AND = LOGIC_AND
    OR = LOGIC_OR


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4()}"


@dataclass
class Condition:
    """One field/operator/value row of the visual builder. ``value`` is raw text."""

    field: str = ""
    operator: Operator = Operator.EQ
    value: str = ""
    id: str = dataclasses.field(default_factory=lambda: _new_id("qb"))

    def __post_init__(self) -> None:
        self.operator = Operator.parse(self.operator)

    def compile(self) -> dict[str, Any] | None:
        """
        Compile to a filter fragment, or None when the field is blank.

        $eq collapses to ``{field: value}``. $exists is true for any text
        other than "false".
        """
        if not self.field:
            return None
        if self.operator is Operator.EQ:
            return {self.field: parse_value(self.value)}
        if self.operator is Operator.EXISTS:
            return {self.field: {Operator.EXISTS.value: self.value != "false"}}
        return {self.field: {self.operator.value: parse_value(self.value)}}


@dataclass
class ConditionGroup:
    """An ordered list of conditions sharing one logic."""

    logic: Logic = Logic.AND
    conditions: list[Condition] = dataclasses.field(default_factory=list)
    id: str = dataclasses.field(default_factory=lambda: _new_id("qb"))

    def __post_init__(self) -> None:
        self.logic = Logic(self.logic)

    def add_condition(
        self, field: str = "", operator: "Operator | str" = Operator.EQ, value: str = ""
    ) -> Condition:
        condition = Condition(field=field, operator=operator, value=value)
        self.conditions.append(condition)
        return condition

    def remove_condition(self, condition_id: str) -> None:
        self.conditions = [c for c in self.conditions if c.id != condition_id]

    def update_condition(self, condition_id: str, **changes: Any) -> Condition:
        """
        Update field, operator and/or value of one condition in place.

        Raises:
            KeyError: If no condition has that id
        """
        for condition in self.conditions:
            if condition.id == condition_id:
                if "field" in changes:
                    condition.field = changes["field"]
                if "operator" in changes:
                    condition.operator = Operator.parse(changes["operator"])
                if "value" in changes:
                    condition.value = changes["value"]
                return condition
        raise KeyError(condition_id)

    def toggle_logic(self) -> Logic:
        self.logic = Logic.OR if self.logic is Logic.AND else Logic.AND
        return self.logic

    def compile(self) -> dict[str, Any] | None:
        """
        Compile the group, or None if no condition survives.

        A single surviving condition is returned bare.
        """
        compiled = [c for c in (cond.compile() for cond in self.conditions) if c is not None]
        if not compiled:
            return None
        if len(compiled) == 1:
            return compiled[0]
        return {self.logic.value: compiled}


def build_query(groups: list[ConditionGroup]) -> dict[str, Any]:
    """
    Compile condition groups into a MongoDB filter.

    Groups that compile to nothing are skipped. No groups match everything.

    Example:
        group = ConditionGroup()
        group.add_condition("age", "$gte", "18")
        build_query([group])  # {"age": {"$gte": 18}}
    """
    compiled = [g for g in (group.compile() for group in groups) if g is not None]
    if not compiled:
        return {}
    if len(compiled) == 1:
        return compiled[0]
    return {LOGIC_AND: compiled}


class QueryBuilderState:
    """
    Editable state of the visual builder: always at least one group.
    """

    def __init__(self, groups: list[ConditionGroup] | None = None) -> None:
        self.groups: list[ConditionGroup] = groups or [ConditionGroup()]

    def add_group(self, logic: "Logic | str" = Logic.AND) -> ConditionGroup:
        group = ConditionGroup(logic=Logic(logic))
        self.groups.append(group)
        return group

    def remove_group(self, group_id: str) -> None:
        """Remove a group; removing the last one leaves a fresh empty group."""
        self.groups = [g for g in self.groups if g.id != group_id] or [ConditionGroup()]

    def get_group(self, group_id: str) -> ConditionGroup:
        for group in self.groups:
            if group.id == group_id:
                return group
        raise KeyError(group_id)

    def build(self) -> dict[str, Any]:
        return build_query(self.groups)

    def to_raw(self) -> str:
        return render_raw_query(self.build())

    @classmethod
    def from_raw(cls, text: str) -> "QueryBuilderState":
        return cls(query_to_groups(parse_filter_text(text)))


# ============================================================================
# RENDERERS
# ============================================================================


def render_raw_query(query: dict[str, Any]) -> str:
    """Render a filter as pretty Extended JSON text; the empty filter renders as ""."""
    if not query:
        return ""
    return ejson_dumps(query, indent=2)


def parse_filter_text(text: str) -> dict[str, Any]:
    """
    Parse a raw filter typed by the user.

    Extended JSON tags are honoured, so ``{"_id": {"$oid": "..."}}`` matches
    by ObjectId. Blank text is the empty filter.

    Raises:
        QueryBuildError: If the text is not valid JSON or not an object
    """
    if not text or not text.strip():
        return {}
    try:
        parsed = ejson_loads(text)
    except (ValueError, TypeError, BSONError) as e:
        logger.debug(f"Rejected raw filter: {e}")
        raise QueryBuildError(f"Invalid JSON in filter: {e}") from e
    if not isinstance(parsed, dict):
        raise QueryBuildError(f"Filter must be a JSON object, got {type(parsed).__name__}")
    return parsed


def _render_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return ejson_dumps(value)


def _render_operand(field_name: str, operand: Any) -> str:
    """
    Render an operand as condition text that compiles back to the same value.

    Raises:
        QueryBuildError: If the text would be coerced to something else
            (numeric-looking strings, BSON types such as ObjectId or dates)
    """
    text = _render_value(operand)
    restored = parse_value(text)
    if type(restored) is not type(operand) or restored != operand:
        raise QueryBuildError(
            f"Value of {field_name!r} cannot be represented in the visual builder"
        )
    return text


def _condition_from_fragment(field_name: str, value: Any) -> Condition:
    if isinstance(value, Regex):
        if value.flags:
            raise QueryBuildError(
                f"Regex options on {field_name!r} cannot be represented in the visual builder"
            )
        return Condition(field_name, Operator.REGEX, _render_operand(field_name, value.pattern))
    if isinstance(value, dict) and len(value) == 1:
        (op_name, operand), = value.items()
        if op_name in OPERATOR_LABELS:
            operator = Operator(op_name)
            if operator is Operator.EXISTS:
                return Condition(field_name, operator, "true" if operand else "false")
            if not isinstance(operand, dict):
                return Condition(field_name, operator, _render_operand(field_name, operand))
    if isinstance(value, dict):
        raise QueryBuildError(
            f"Condition on {field_name!r} cannot be represented in the visual builder"
        )
    return Condition(field_name, Operator.EQ, _render_operand(field_name, value))


def _is_field_fragment(fragment: Any) -> bool:
    return (
        isinstance(fragment, dict)
        and len(fragment) >= 1
        and not any(key.startswith("$") for key in fragment)
    )


def _group_from_fragments(fragments: list[Any], logic: Logic) -> ConditionGroup:
    group = ConditionGroup(logic=logic)
    for fragment in fragments:
        if not _is_field_fragment(fragment):
            raise QueryBuildError("Nested logical operators cannot be shown in the visual builder")
        for field_name, value in fragment.items():
            group.conditions.append(_condition_from_fragment(field_name, value))
    return group


def _group_from_expression(expr: dict[str, Any]) -> ConditionGroup:
    if len(expr) == 1:
        (key, value), = expr.items()
        if key in (LOGIC_AND, LOGIC_OR) and isinstance(value, list):
            return _group_from_fragments(value, Logic(key))
    return _group_from_fragments([expr], Logic.AND)


def query_to_groups(query: dict[str, Any]) -> list[ConditionGroup]:
    """
    Render a filter back into visual condition groups.

    Handles every shape build_query produces and plain ``{field: value, ...}``
    filters. A top-level $and whose members are all plain conditions becomes
    one AND group; otherwise each member becomes its own group.

    Raises:
        QueryBuildError: If the filter uses constructs the visual builder
            cannot show (nested logic, operator documents with several keys,
            regex options, values that would not survive the round trip)
    """
    if not query:
        return [ConditionGroup()]

    if len(query) == 1 and isinstance(query.get(LOGIC_AND), list):
        members = query[LOGIC_AND]
        if all(_is_field_fragment(m) for m in members):
            return [_group_from_fragments(members, Logic.AND)]
        if not all(isinstance(m, dict) for m in members):
            raise QueryBuildError("$and members must be objects")
        return [_group_from_expression(m) for m in members]

    return [_group_from_expression(query)]
