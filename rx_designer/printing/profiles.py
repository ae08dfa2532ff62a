from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import json
from PySide6.QtCore import QSettings

from ..core.config import APP_NAME, ORG_NAME
from ..core.models import PrintSettings


@dataclass
class PrintProfile:
    """
    A named set of print settings.

    - name: what shows up in the UI ("Consultorio A4", "Farmacia Carta")
    - printer_name: system printer to send to ("" = system default)
    - settings: page margins, quality, color mode, scale and watermark
    """
    name: str = "Default"
    printer_name: str = ""
    settings: PrintSettings = field(default_factory=PrintSettings)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PrintProfile":
        return cls(
            name=data.get("name", "Unnamed"),
            printer_name=data.get("printer_name", "") or "",
            settings=PrintSettings.from_dict(data.get("settings") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "printer_name": self.printer_name,
            "settings": self.settings.to_dict(),
        }


def _settings() -> QSettings:
    return QSettings(ORG_NAME, APP_NAME)


def load_profiles(
    load_single_fn: Optional[Callable[[], Optional[PrintSettings]]] = None,
    settings: Optional[QSettings] = None,
) -> List[PrintProfile]:
    """
    Load print profiles from QSettings.

    If no profiles are stored yet (or the stored JSON is unreadable), this
    optionally calls `load_single_fn()` to seed a single 'Default' profile,
    e.g. from the print settings of the layout in use.
    """
    s = settings or _settings()
    raw = s.value("print_profiles", "", type=str)

    if raw:
        try:
            arr = json.loads(raw)
            profiles = [PrintProfile.from_dict(d) for d in arr]
            if profiles:
                return profiles
        except (ValueError, TypeError, AttributeError):
            # unreadable: fall back to a fresh default below
            pass

    seed = load_single_fn() if load_single_fn is not None else None
    return [PrintProfile(name="Default", settings=seed or PrintSettings())]


def save_profiles(profiles: List[PrintProfile], settings: Optional[QSettings] = None) -> None:
    """
    Persist print profiles to QSettings as JSON.
    """
    s = settings or _settings()
    raw = json.dumps([p.to_dict() for p in profiles], indent=2)
    s.setValue("print_profiles", raw)
    s.sync()


def find_profile(profiles: List[PrintProfile], name: str) -> Optional[PrintProfile]:
    for p in profiles:
        if p.name == name:
            return p
    return None
