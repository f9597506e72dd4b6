"""Permission resolution.

Pure functions over already-loaded data: callers pass flattened ``key -> level`` maps,
one per role, and get the merged (highest level wins) result back.
"""

from __future__ import annotations

from typing import Iterable, Mapping

from ..core.enums import PermissionLevel
from .model import PermissionKey

LevelMap = Mapping[PermissionKey, PermissionLevel]


def higher_level(a: PermissionLevel, b: PermissionLevel) -> PermissionLevel:
    return a if a.rank >= b.rank else b


def merge_levels(role_levels: Iterable[LevelMap]) -> dict[PermissionKey, PermissionLevel]:
    merged: dict[PermissionKey, PermissionLevel] = {}
    for levels in role_levels:
        for key, level in levels.items():
            current = merged.get(key)
            merged[key] = level if current is None else higher_level(current, level)
    return merged


def effective_level(role_levels: Iterable[LevelMap], key: PermissionKey) -> PermissionLevel:
    level = PermissionLevel.FORBIDDEN
    for levels in role_levels:
        granted = levels.get(key)
        if granted is not None:
            level = higher_level(level, granted)
    return level


def satisfies(effective: PermissionLevel, required: PermissionLevel) -> bool:
    if effective == PermissionLevel.FORBIDDEN:
        return False
    if required == PermissionLevel.AUTHORIZED:
        return effective == PermissionLevel.AUTHORIZED
    return effective in {PermissionLevel.LIMITED, PermissionLevel.AUTHORIZED}
