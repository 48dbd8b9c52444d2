"""Helpers for reading fields out of extraction payloads."""

from collections.abc import Iterable, Mapping, Sequence


def resolve_path(payload: object, path: Sequence[str]) -> Mapping[str, object] | None:
    """Walk nested objects along ``path`` and return the mapping found there."""
    current = payload
    for key in path:
        if not isinstance(current, Mapping) or key not in current:
            return None
        current = current[key]
    if isinstance(current, Mapping):
        return current
    return None


def read_field_value(fields: Mapping[str, object], key: str) -> str | None:
    """Return the first non-blank scalar stored under ``key``.

    Accepts ``{"value": scalar}`` and ``{"values": [{"value": scalar}, scalar]}``.
    """
    field = fields.get(key)
    if not isinstance(field, Mapping):
        return None
    if "value" in field:
        text = _scalar_to_text(field["value"])
        if text is not None:
            return text
    values = field.get("values")
    if isinstance(values, list):
        for item in values:
            if isinstance(item, Mapping):
                text = _scalar_to_text(item.get("value"))
            else:
                text = _scalar_to_text(item)
            if text is not None:
                return text
    return None


def first_field_value(
    fields: Mapping[str, object], candidates: Iterable[str]
) -> str | None:
    """Return the value of the first candidate key that yields one."""
    for key in candidates:
        value = read_field_value(fields, key)
        if value is not None:
            return value
    return None


def _scalar_to_text(value: object) -> str | None:
    if isinstance(value, bool):
        text = "true" if value else "false"
    elif isinstance(value, int | float):
        text = str(value)
    elif isinstance(value, str):
        text = value
    else:
        return None
    return text if text.strip() else None
