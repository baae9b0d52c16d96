from typing import Any, Mapping


def get_option(options: Mapping[str, Any], key: str, default: Any = None) -> Any:
    """Return options[key], or default when the key is missing or None."""
    value = options.get(key)
    return default if value is None else value
