"""Cascading filter builder: ordered (field, value) criteria -> conjunctive SQL clauses.

Order is a UI affordance only; every criterion is ANDed. Default match is a case-insensitive
substring test on the column's text form.

priority is special, and differs by path (kept as-is; both behaviors are relied on):
  - row search: value "has_value" -> priority != NO_PRIORITY; any other value uses the default match
  - facet options: any priority criterion, whatever its value -> priority < NO_PRIORITY
"""

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from sqlalchemy import ColumnElement, String, cast

from podtrack.api.models.pod import NO_PRIORITY, Pod
from podtrack.api.services.errors import InvalidPayload
from podtrack.api.services.field_registry import column_for, require_field

HAS_VALUE = "has_value"
PRIORITY_FIELD = "priority"


@dataclass(frozen=True)
class Criterion:
    """One validated filter. field is guaranteed to be a registry field."""

    field: str
    value: str


def parse_criteria(pairs: Iterable[Any]) -> list[Criterion]:
    """Validate ordered criteria. Accepts (field, value) pairs or {"field", "value"} mappings.
    Raises InvalidPayload for malformed entries and InvalidField for unknown fields."""
    if isinstance(pairs, (str, bytes)) or not isinstance(pairs, Iterable):
        raise InvalidPayload("Filters must be a list of {field, value} objects")
    out: list[Criterion] = []
    for i, item in enumerate(pairs):
        if isinstance(item, Mapping):
            field, value = item.get("field"), item.get("value")
        elif isinstance(item, (tuple, list)) and len(item) == 2:
            field, value = item
        else:
            raise InvalidPayload(f"Filter {i} must be a {{field, value}} object")
        if not isinstance(field, str):
            raise InvalidPayload(f"Filter {i} field must be a string")
        if value is None:
            value = ""
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        elif not isinstance(value, str):
            raise InvalidPayload(f"Filter {i} value must be a string")
        out.append(Criterion(field=require_field(field), value=value))
    return out


def criteria_from_query_params(params: Mapping[str, str]) -> list[Criterion]:
    """Read field0/value0, field1/value1, ... until the first missing fieldN.
    Pairs with a blank field or value are dropped."""
    pairs: list[tuple[str, str]] = []
    i = 0
    while f"field{i}" in params:
        field = params.get(f"field{i}")
        value = params.get(f"value{i}")
        if field and value:
            pairs.append((field, value))
        i += 1
    return parse_criteria(pairs)


def criteria_from_json(raw: str | None) -> list[Criterion]:
    """Parse the facet path's serialized filter list. Empty/None -> no criteria."""
    if raw is None or not raw.strip():
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise InvalidPayload("filters is not valid JSON") from e
    if not isinstance(data, list):
        raise InvalidPayload("filters must be a JSON list")
    return parse_criteria(data)


def contains_clause(field: str, value: str) -> ColumnElement[bool]:
    """Case-insensitive substring match on the column's text form. LIKE wildcards in value are literal."""
    col = column_for(field)
    text_col = col if isinstance(col.type, String) else cast(col, String)
    return text_col.icontains(value, autoescape=True)


def row_search_clauses(criteria: Iterable[Criterion]) -> list[ColumnElement[bool]]:
    """Clauses for the paginated row search."""
    clauses: list[ColumnElement[bool]] = []
    for c in criteria:
        if c.field == PRIORITY_FIELD and c.value == HAS_VALUE:
            clauses.append(Pod.priority != NO_PRIORITY)
        else:
            clauses.append(contains_clause(c.field, c.value))
    return clauses


def facet_clauses(criteria: Iterable[Criterion]) -> list[ColumnElement[bool]]:
    """Clauses for the distinct-values path. Any priority criterion collapses to priority < NO_PRIORITY."""
    clauses: list[ColumnElement[bool]] = []
    has_priority = False
    for c in criteria:
        if c.field == PRIORITY_FIELD:
            has_priority = True
            continue
        clauses.append(contains_clause(c.field, c.value))
    if has_priority:
        clauses.append(Pod.priority < NO_PRIORITY)
    return clauses
