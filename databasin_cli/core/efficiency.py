"""
Token efficiency: shrink response payloads before they reach the user.

The toggles are independent and evaluated in fixed precedence:
count wins over everything, then limit (lists only), then fields.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class TokenEfficiencyOptions:
    """Response-size reduction options."""

    count: bool = False
    fields: str | None = None
    limit: int | None = None

    @property
    def field_list(self) -> list[str]:
        """Parsed, trimmed field names."""
        if not self.fields:
            return []
        return [f.strip() for f in self.fields.split(",") if f.strip()]

    @property
    def active(self) -> bool:
        """True if any option would change the response."""
        return bool(self.count or (self.limit is not None and self.limit > 0) or self.field_list)


def _project(item: Any, names: list[str]) -> Any:
    if not isinstance(item, dict):
        return item
    return {name: item[name] for name in names if name in item}


def apply_token_efficiency(data: Any, options: TokenEfficiencyOptions | None) -> Any:
    """
    Reshape a successful response body.

    Args:
        data: Parsed JSON body
        options: Efficiency options (None means passthrough)

    Returns:
        {"count": N}, a truncated list, a field projection, or data unchanged

    """
    if options is None or data is None:
        return data

    if options.count:
        if isinstance(data, list):
            return {"count": len(data)}
        return {"count": 1}

    if options.limit is not None and options.limit > 0 and isinstance(data, list):
        return data[: options.limit]

    names = options.field_list
    if names:
        if isinstance(data, list):
            return [_project(item, names) for item in data]
        return _project(data, names)

    return data
