from __future__ import annotations

import re
from typing import Any, List, Optional

__all__ = [
    'from_camel',
    'to_camel',
    'ensure_list',
    'split_csv',
]

_camel_to_snake_pattern = re.compile(r'(?<=[a-z])(?=[A-Z])')

def from_camel(name: str) -> str:
    """Convert lower/upper camelCase to snake_case.

    Runs of capitals stay together, so ``HTTPRequestLog`` becomes
    ``httprequest_log`` the same way table names are derived for entities.
    """
    if not name:
        return name
    return _camel_to_snake_pattern.sub('_', str(name)).lower()


def to_camel(name: str) -> str:
    """Convert snake_case to lowerCamelCase."""
    if not name:
        return name
    parts = str(name).split('_')
    if not parts:
        return name
    return parts[0] + ''.join(p.capitalize() for p in parts[1:])


def ensure_list(value: Any) -> Optional[List[Any]]:
    """Wrap scalars into a list, preserving list inputs."""
    if value is None:
        return None
    if isinstance(value, list):
        return value
    if isinstance(value, (tuple, set, frozenset)):
        return list(value)
    return [value]


def split_csv(value: str) -> List[str]:
    """Split a comma-separated query value.

    Trailing empty segments are dropped (``"a,b,"`` -> ``['a', 'b']``);
    inner empty segments are kept so malformed lists stay visible.
    """
    parts = str(value).split(',')
    while parts and parts[-1] == '':
        parts.pop()
    return parts
