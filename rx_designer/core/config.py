from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Optional

from PySide6.QtCore import QSettings


ORG_NAME = "RxDesigner"
APP_NAME = "RxDesigner"


@dataclass
class EditorConfig:
    """
    Editor preferences kept in QSettings under the "editor/" group.

    Validation must feel immediate; the QR image may lag behind edits a bit.
    """
    default_zoom: float = 1.0
    min_zoom: float = 0.25
    max_zoom: float = 2.0
    zoom_step: float = 0.1
    validation_debounce_ms: int = 100
    qr_debounce_ms: int = 300
    show_validation_panel: bool = True
    last_layout_id: str = "portrait_default"

    def normalized(self) -> "EditorConfig":
        """Clamp values read back from settings into a usable range."""
        min_zoom = max(0.05, float(self.min_zoom))
        max_zoom = max(min_zoom, float(self.max_zoom))
        return EditorConfig(
            default_zoom=min(max_zoom, max(min_zoom, float(self.default_zoom))),
            min_zoom=min_zoom,
            max_zoom=max_zoom,
            zoom_step=max(0.01, float(self.zoom_step)),
            validation_debounce_ms=max(0, int(self.validation_debounce_ms)),
            qr_debounce_ms=max(0, int(self.qr_debounce_ms)),
            show_validation_panel=bool(self.show_validation_panel),
            last_layout_id=str(self.last_layout_id or "portrait_default"),
        )


def _settings() -> QSettings:
    return QSettings(ORG_NAME, APP_NAME)


def load_editor_config(settings: Optional[QSettings] = None) -> EditorConfig:
    s = settings or _settings()
    defaults = EditorConfig()
    values = {}
    for f in fields(EditorConfig):
        default = getattr(defaults, f.name)
        values[f.name] = s.value(f"editor/{f.name}", default, type=type(default))
    return EditorConfig(**values).normalized()


def save_editor_config(cfg: EditorConfig, settings: Optional[QSettings] = None) -> None:
    s = settings or _settings()
    for key, value in asdict(cfg.normalized()).items():
        s.setValue(f"editor/{key}", value)
    s.sync()
