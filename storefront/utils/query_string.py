"""
Bracket-notation query strings
Magento reads nested GET params as searchCriteria[filterGroups][0][filters][0][field]=...
"""
from typing import Any, List, Tuple
from urllib.parse import urlencode


def flatten_params(value: Any, prefix: str = "") -> List[Tuple[str, str]]:
    """
    Flatten nested dicts/lists into (key, value) pairs using bracket notation

    None values and empty containers are skipped, booleans become "true"/"false".
    """
    pairs: List[Tuple[str, str]] = []

    if isinstance(value, dict):
        for key, item in value.items():
            name = f"{prefix}[{key}]" if prefix else str(key)
            pairs.extend(flatten_params(item, name))
    elif isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            pairs.extend(flatten_params(item, f"{prefix}[{index}]"))
    elif value is None:
        pass
    elif isinstance(value, bool):
        pairs.append((prefix, "true" if value else "false"))
    else:
        pairs.append((prefix, str(value)))

    return pairs


def encode_query(value: dict) -> str:
    """Encode nested params to a query string (without the leading '?')"""
    return urlencode(flatten_params(value))
