from __future__ import annotations

from typing import Any, Mapping


class PointMapError(Exception):
    """Base class for errors surfaced by point maps."""


class UnsupportedFormat(PointMapError, ValueError):
    def __init__(self, fmt: str, source: str | None = None) -> None:
        self.format = fmt
        self.source = source
        where = f" ({source})" if source else ""
        super().__init__(f"Unsupported data format: {fmt!r}{where}")


class MalformedPayload(PointMapError, ValueError):
    def __init__(self, fmt: str, reason: str) -> None:
        self.format = fmt
        self.reason = reason
        super().__init__(f"Malformed {fmt} payload: {reason}")


class MissingRadiusEntry(PointMapError, LookupError):
    def __init__(self, zoom: float) -> None:
        self.zoom = zoom
        super().__init__(f"No radius configured for zoom level {zoom}")


class FilterPredicateFailure(PointMapError, RuntimeError):
    """
    A filter predicate raised or returned something other than a bool.

    `cause` is the original exception, or None when the predicate returned a
    non-boolean value (kept in `result`).
    """

    def __init__(
        self,
        filter_id: int,
        fields: Mapping[str, Any],
        *,
        cause: BaseException | None = None,
        result: Any = None,
    ) -> None:
        self.filter_id = filter_id
        self.fields = dict(fields)
        self.cause = cause
        self.result = result
        if cause is not None:
            detail = f"raised {type(cause).__name__}: {cause}"
        else:
            detail = f"returned non-boolean {result!r}"
        super().__init__(f"Filter #{filter_id} {detail} for fields {self.fields}")
