"""
core/versions.py - Named versions of a layout.

Each version stores a full copy of the elements and canvas settings with a
short change summary. Restoring writes those back into a live layout;
print settings and orientation are left alone.
"""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .models import CanvasSettings, Layout, TemplateElement


@dataclass(frozen=True)
class LayoutVersion:
    number: int
    summary: str
    created_at: datetime
    elements: tuple = ()                      # of wire dicts
    canvas_settings: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version_number": self.number,
            "changes_summary": self.summary,
            "created_at": self.created_at.isoformat(),
            "template_elements": copy.deepcopy(list(self.elements)),
            "canvas_settings": copy.deepcopy(self.canvas_settings),
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "LayoutVersion":
        return LayoutVersion(
            number=int(d["version_number"]),
            summary=str(d.get("changes_summary", "")),
            created_at=datetime.fromisoformat(d["created_at"]),
            elements=tuple(copy.deepcopy(d.get("template_elements") or [])),
            canvas_settings=copy.deepcopy(d.get("canvas_settings") or {}),
        )


@dataclass(frozen=True)
class VersionDiff:
    added: List[str]
    removed: List[str]
    changed: List[str]
    canvas_changed: bool = False

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.changed or self.canvas_changed)


class VersionLog:
    def __init__(self, versions: Optional[List[LayoutVersion]] = None):
        self._versions: List[LayoutVersion] = list(versions or [])

    def __len__(self) -> int:
        return len(self._versions)

    @property
    def versions(self) -> List[LayoutVersion]:
        """Newest first."""
        return sorted(self._versions, key=lambda v: v.number, reverse=True)

    def next_number(self) -> int:
        return max((v.number for v in self._versions), default=0) + 1

    def get(self, number: int) -> LayoutVersion:
        for v in self._versions:
            if v.number == number:
                return v
        raise KeyError(f"No version {number}")

    def create(self, layout: Layout, summary: str = "", now: Optional[datetime] = None) -> LayoutVersion:
        version = LayoutVersion(
            number=self.next_number(),
            summary=summary,
            created_at=now or datetime.now(),
            elements=tuple(copy.deepcopy(e.to_dict()) for e in layout.elements),
            canvas_settings=layout.canvas_settings.to_dict(),
        )
        self._versions.append(version)
        return version

    def restore(self, number: int, layout: Layout) -> Layout:
        version = self.get(number)
        layout.elements = [TemplateElement.from_dict(copy.deepcopy(e)) for e in version.elements]
        layout.canvas_settings = CanvasSettings.from_dict(copy.deepcopy(version.canvas_settings))
        return layout

    def compare(self, older: int, newer: int) -> VersionDiff:
        a = {e["id"]: e for e in self.get(older).elements}
        b = {e["id"]: e for e in self.get(newer).elements}
        return VersionDiff(
            added=[eid for eid in b if eid not in a],
            removed=[eid for eid in a if eid not in b],
            changed=[eid for eid in b if eid in a and a[eid] != b[eid]],
            canvas_changed=self.get(older).canvas_settings != self.get(newer).canvas_settings,
        )

    def to_list(self) -> List[Dict[str, Any]]:
        return [v.to_dict() for v in self.versions]

    @staticmethod
    def from_list(items: List[Dict[str, Any]]) -> "VersionLog":
        return VersionLog([LayoutVersion.from_dict(d) for d in items])
