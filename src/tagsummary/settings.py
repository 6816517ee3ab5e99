"""Summary composition settings.

Settings are an explicit, immutable value handed to the composition step.
Line resolution only reads ``include_children`` and ``dedupe``; the other
toggles only change how a resolved match is decorated.
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from tagsummary.io_utils import load_json, save_json


@dataclass(frozen=True, slots=True)
class SummarySettings:
    """Toggles for how matches are selected and decorated."""

    include_callout: bool = True    # wrap each match in a "> [!name]" callout
    include_link: bool = True       # provenance as a [[path|name]] link
    remove_tags: bool = False       # strip "#tags" from match text
    list_paragraph: bool = True     # False: flatten list matches to one paragraph
    include_children: bool = True   # fold nested list items into a tag's match
    dedupe: bool = False            # drop matches contained in another match

    def to_dict(self) -> dict[str, bool]:
        return dataclasses.asdict(self)


DEFAULT_SETTINGS = SummarySettings()

# Flat keys used by the editor plugin's settings file.
_LEGACY_KEYS = {
    "includecallout": "include_callout",
    "includelink": "include_link",
    "removetags": "remove_tags",
    "listparagraph": "list_paragraph",
    "includechildren": "include_children",
}

_FIELD_NAMES = frozenset(f.name for f in dataclasses.fields(SummarySettings))


def settings_from_dict(
    raw: dict[str, Any],
    *,
    base: SummarySettings = DEFAULT_SETTINGS,
) -> SummarySettings:
    """Overlay *raw* onto *base*.

    Accepts snake_case and legacy flat keys. Unknown keys are ignored;
    non-boolean values raise ``ValueError``.
    """
    overrides: dict[str, bool] = {}
    for key, value in raw.items():
        field = _LEGACY_KEYS.get(key, key)
        if field not in _FIELD_NAMES:
            continue
        if not isinstance(value, bool):
            raise ValueError(f"Setting {key!r} must be a boolean, got {value!r}")
        overrides[field] = value
    return dataclasses.replace(base, **overrides)


def load_settings(path: Path | None) -> SummarySettings:
    """Load settings from a JSON object file merged over the defaults.

    A missing path or file yields ``DEFAULT_SETTINGS``.
    """
    if path is None or not path.exists():
        return DEFAULT_SETTINGS
    raw = load_json(path)
    if not isinstance(raw, dict):
        raise ValueError(f"Settings file {path} must contain a JSON object")
    return settings_from_dict(raw)


def save_settings(settings: SummarySettings, path: Path) -> None:
    save_json(settings.to_dict(), path)
