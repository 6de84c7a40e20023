from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping

from loguru import logger

from groups.index import Group, GroupIndex
from maps.errors import FilterPredicateFailure

Predicate = Callable[[Mapping[str, Any]], bool]


@dataclass(frozen=True)
class FieldValueFilter:
    """
    Declarative predicate: every listed field must hold one of its allowed values.

    Example: FieldValueFilter({"techno": ["4G", "5G"]})
    Values are compared as strings so "5" in YAML matches an integer 5 in a CSV.
    """

    props: Mapping[str, list[Any]]

    def __call__(self, fields: Mapping[str, Any]) -> bool:
        for name, allowed in self.props.items():
            value = fields.get(name)
            text = "" if value is None else str(value)
            if text not in {"" if a is None else str(a) for a in allowed}:
                return False
        return True


class FilterEngine:
    """
    Ordered list of predicates over a group's field values. A group is active
    iff every predicate returns True. Filters cannot be removed; a filter id is
    its position in the list.
    """

    def __init__(self, index: GroupIndex) -> None:
        self.index = index
        self._filters: list[Predicate] = []

    def __len__(self) -> int:
        return len(self._filters)

    def add_filter(self, predicate: Predicate) -> int:
        self._filters.append(predicate)
        filter_id = len(self._filters) - 1
        try:
            self.refresh_all_filters()
        except FilterPredicateFailure:
            # Nothing was applied yet; forget the predicate so the engine stays usable.
            self._filters.pop()
            raise
        logger.debug(f"Added filter #{filter_id}")
        return filter_id

    def is_active(self, fields: Mapping[str, Any]) -> bool:
        for filter_id, predicate in enumerate(self._filters):
            if not self._evaluate(filter_id, predicate, fields):
                return False
        return True

    def refresh_filter(self, filter_id: int) -> None:
        if not 0 <= filter_id < len(self._filters):
            raise KeyError(f"Unknown filter id: {filter_id}")
        # A group's activity depends on every filter, not just this one.
        self.refresh_all_filters()

    def refresh_all_filters(self) -> None:
        """
        Re-evaluate every group. All predicates run before any group changes, so
        a failing predicate leaves the previous state intact.
        """
        decisions: list[tuple[Group, bool]] = [
            (group, self.is_active(group.fields)) for group in self.index
        ]
        for group, active in decisions:
            self.index.set_active(group, active)

    @staticmethod
    def _evaluate(filter_id: int, predicate: Predicate, fields: Mapping[str, Any]) -> bool:
        try:
            result = predicate(fields)
        except Exception as e:
            raise FilterPredicateFailure(filter_id, fields, cause=e) from e
        if not isinstance(result, bool):
            raise FilterPredicateFailure(filter_id, fields, result=result)
        return result
