"""Deep merge for nested configuration values."""

from collections.abc import Mapping
from copy import deepcopy
from typing import Any


def deep_merge(base: Any, patch: Any) -> Any:
    """Merge ``patch`` into ``base`` and return a new value.

    Mappings merge key by key, recursively. Any other value in ``patch``
    (scalars, lists, ``None``) replaces what was in ``base``. Keys present
    only in ``base`` are kept. Neither argument is mutated.
    """
    if not isinstance(base, Mapping) or not isinstance(patch, Mapping):
        return deepcopy(patch)

    merged = {key: deepcopy(value) for key, value in base.items()}
    for key, value in patch.items():
        if key in merged and isinstance(merged[key], Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = deepcopy(value)
    return merged
