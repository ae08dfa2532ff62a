from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import List, Optional, Any, Dict, Iterator

from .geometry import Position, Size, Rect


ELEMENT_TYPES = (
    "text",
    "logo",
    "signature",
    "qr",
    "separator",
    "box",
    "date",
    "time",
    "table",
    "icon",
)
PAGE_SIZES = ("A4", "Letter", "Legal")
ORIENTATIONS = ("portrait", "landscape")
COLOR_MODES = ("color", "grayscale", "blackwhite")

# content of a logo element that has no image yet
LOGO_PLACEHOLDER = "LOGO"


class UnknownElementTypeError(ValueError):
    """Raised when an element carries a type tag outside ELEMENT_TYPES."""


class ElementNotFoundError(KeyError):
    """Raised when a layout has no element with the requested id."""


def check_element_type(kind: str) -> str:
    if kind not in ELEMENT_TYPES:
        raise UnknownElementTypeError(
            f"Unknown element type {kind!r}; expected one of {', '.join(ELEMENT_TYPES)}"
        )
    return kind


# ---------- Text style ----------

# python attribute -> wire key
_STYLE_KEYS = {
    "font_size": "fontSize",
    "font_family": "fontFamily",
    "color": "color",
    "font_weight": "fontWeight",
    "font_style": "fontStyle",
    "text_decoration": "textDecoration",
    "text_align": "textAlign",
    "line_height": "lineHeight",
}


@dataclass
class TextStyle:
    """Partial text style; None means "inherit from the element defaults"."""
    font_size: Optional[float] = None
    font_family: Optional[str] = None
    color: Optional[str] = None
    font_weight: Optional[str] = None       # normal|bold
    font_style: Optional[str] = None        # normal|italic
    text_decoration: Optional[str] = None   # none|underline
    text_align: Optional[str] = None        # left|center|right
    line_height: Optional[float] = None

    def merged_over(self, defaults: "TextStyle") -> "TextStyle":
        """Return a style where every unset field falls back to *defaults*."""
        merged = {}
        for attr in _STYLE_KEYS:
            own = getattr(self, attr)
            merged[attr] = own if own is not None else getattr(defaults, attr)
        return TextStyle(**merged)

    def updated(self, **changes: Any) -> "TextStyle":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for attr, key in _STYLE_KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                out[key] = value
        return out

    @staticmethod
    def from_dict(d: Optional[Dict[str, Any]]) -> "TextStyle":
        d = d or {}
        return TextStyle(**{attr: d.get(key) for attr, key in _STYLE_KEYS.items()})


BASE_TEXT_STYLE = TextStyle(
    font_size=12,
    font_family="Arial",
    color="#000000",
    font_weight="normal",
    font_style="normal",
    text_decoration="none",
    text_align="left",
    line_height=1.2,
)


# ---------- Per-type defaults for interactively added elements ----------

_DEFAULT_SIZES: Dict[str, Size] = {
    "text": Size(200, 50),
    "logo": Size(120, 120),
    "signature": Size(200, 50),
    "qr": Size(100, 100),
    "separator": Size(300, 2),
    "box": Size(250, 100),
    "date": Size(150, 30),
    "time": Size(150, 30),
    "table": Size(400, 100),
    "icon": Size(60, 60),
}

_DEFAULT_CONTENT: Dict[str, str] = {
    "text": "Nuevo texto",
    "logo": LOGO_PLACEHOLDER,
    "signature": "____________________\nFirma del Médico",
    "qr": "QR",
    "separator": "",
    "box": "Cuadro de texto",
    "date": "",
    "time": "",
    "table": "Medicamento | Dosis | Frecuencia\nEjemplo | 500mg | 3 veces/día",
    "icon": "Ícono",
}

_CENTERED_TYPES = {"logo", "signature", "qr", "icon"}


def default_size(kind: str) -> Size:
    return _DEFAULT_SIZES[check_element_type(kind)]


def default_content(kind: str, icon_type: Optional[str] = None) -> str:
    check_element_type(kind)
    if kind == "icon" and icon_type:
        return icon_type
    return _DEFAULT_CONTENT[kind]


def default_style(kind: str) -> TextStyle:
    check_element_type(kind)
    return TextStyle(
        font_size=14,
        font_family="Arial",
        color="#374151",
        text_align="center" if kind in _CENTERED_TYPES else "left",
    )


# ---------- Core element model ----------

_ELEMENT_KEYS = {
    "id", "type", "position", "size", "content", "style", "zIndex",
    "isVisible", "isLocked", "iconType", "borderColor", "backgroundColor",
    "extras",
}


@dataclass
class TemplateElement:
    # identity / variant tag
    id: str
    type: str                       # one of ELEMENT_TYPES

    # geometry
    position: Position = field(default_factory=Position)
    size: Size = field(default_factory=Size)

    # literal text, placeholder template, or pipe-delimited table grid
    content: str = ""
    style: TextStyle = field(default_factory=TextStyle)

    # paint order and interaction
    z_index: int = 0
    is_visible: bool = True
    is_locked: bool = False

    # type-specific
    icon_type: Optional[str] = None
    border_color: Optional[str] = None
    background_color: Optional[str] = None

    # arbitrary extras for forward-compat
    extras: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        check_element_type(self.type)

    @property
    def rect(self) -> Rect:
        return Rect.from_geometry(self.position, self.size)

    def resolved_style(self) -> TextStyle:
        return self.style.merged_over(BASE_TEXT_STYLE)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "position": {"x": self.position.x, "y": self.position.y},
            "size": {"width": self.size.width, "height": self.size.height},
            "content": self.content,
            "style": self.style.to_dict(),
            "zIndex": self.z_index,
            "isVisible": self.is_visible,
            "isLocked": self.is_locked,
        }
        if self.icon_type is not None:
            d["iconType"] = self.icon_type
        if self.border_color is not None:
            d["borderColor"] = self.border_color
        if self.background_color is not None:
            d["backgroundColor"] = self.background_color
        if self.extras:
            d["extras"] = dict(self.extras)
        return d

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "TemplateElement":
        pos = d.get("position") or {}
        size = d.get("size") or {}
        extras = dict(d.get("extras") or {})

        # keep keys we don't know about so a round trip does not drop them
        unknown = {k: v for k, v in d.items() if k not in _ELEMENT_KEYS}
        if unknown:
            merged = dict(extras.get("_unknown") or {})
            merged.update(unknown)
            extras["_unknown"] = merged

        return TemplateElement(
            id=str(d["id"]),
            type=str(d.get("type", "")),
            position=Position(float(pos.get("x", 0.0)), float(pos.get("y", 0.0))),
            size=Size(float(size.get("width", 0.0)), float(size.get("height", 0.0))),
            content=str(d.get("content") or ""),
            style=TextStyle.from_dict(d.get("style")),
            z_index=int(d.get("zIndex", 0) or 0),
            is_visible=bool(d.get("isVisible", True)),
            is_locked=bool(d.get("isLocked", False)),
            icon_type=d.get("iconType"),
            border_color=d.get("borderColor"),
            background_color=d.get("backgroundColor"),
            extras=extras,
        )


# ---------- Canvas / print settings ----------

@dataclass
class CanvasSettings:
    background_color: str = "#ffffff"
    canvas_size: Optional[Size] = field(default_factory=lambda: Size(794, 1123))
    page_size: str = "A4"           # A4|Letter|Legal
    margin: str = "15mm"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "backgroundColor": self.background_color,
            "canvasSize": (
                {"width": self.canvas_size.width, "height": self.canvas_size.height}
                if self.canvas_size is not None
                else None
            ),
            "pageSize": self.page_size,
            "margin": self.margin,
        }

    @staticmethod
    def from_dict(d: Optional[Dict[str, Any]]) -> "CanvasSettings":
        d = d or {}
        raw_size = d.get("canvasSize")
        canvas_size = None
        if raw_size:
            canvas_size = Size(float(raw_size.get("width", 0.0)), float(raw_size.get("height", 0.0)))
        return CanvasSettings(
            background_color=d.get("backgroundColor", "#ffffff"),
            canvas_size=canvas_size,
            page_size=d.get("pageSize", "A4"),
            margin=d.get("margin", "15mm"),
        )


def _default_margins() -> Dict[str, str]:
    return {"top": "20mm", "right": "15mm", "bottom": "20mm", "left": "15mm"}


@dataclass
class PrintSettings:
    page_margins: Dict[str, str] = field(default_factory=_default_margins)
    print_quality: str = "high"     # draft|normal|high
    color_mode: str = "color"       # color|grayscale|blackwhite
    scale_factor: float = 1.0
    watermark_text: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pageMargins": dict(self.page_margins),
            "printQuality": self.print_quality,
            "colorMode": self.color_mode,
            "scaleFactor": self.scale_factor,
            "watermarkText": self.watermark_text,
        }

    @staticmethod
    def from_dict(d: Optional[Dict[str, Any]]) -> "PrintSettings":
        d = d or {}
        margins = _default_margins()
        margins.update(d.get("pageMargins") or {})
        return PrintSettings(
            page_margins=margins,
            print_quality=d.get("printQuality", "high"),
            color_mode=d.get("colorMode", "color"),
            scale_factor=float(d.get("scaleFactor", 1.0) or 1.0),
            watermark_text=d.get("watermarkText", "") or "",
        )


# ---------- Layout / document ----------

@dataclass
class Layout:
    elements: List[TemplateElement] = field(default_factory=list)
    canvas_settings: CanvasSettings = field(default_factory=CanvasSettings)
    print_settings: PrintSettings = field(default_factory=PrintSettings)
    orientation: str = "portrait"   # portrait|landscape
    name: str = "Untitled"

    # ---- lookup ----
    def __iter__(self) -> Iterator[TemplateElement]:
        return iter(self.elements)

    def __len__(self) -> int:
        return len(self.elements)

    def find(self, element_id: str) -> Optional[TemplateElement]:
        for e in self.elements:
            if e.id == element_id:
                return e
        return None

    def get(self, element_id: str) -> TemplateElement:
        e = self.find(element_id)
        if e is None:
            raise ElementNotFoundError(element_id)
        return e

    def index_of(self, element_id: str) -> int:
        for i, e in enumerate(self.elements):
            if e.id == element_id:
                return i
        raise ElementNotFoundError(element_id)

    # ---- z-order ----
    def next_z_index(self) -> int:
        if not self.elements:
            return 1
        return max(e.z_index for e in self.elements) + 1

    def sorted_for_paint(self) -> List[TemplateElement]:
        """Ascending z-index; sorted() is stable so ties keep sequence order."""
        return sorted(self.elements, key=lambda e: e.z_index)

    # ---- mutation ----
    def new_element_id(self, kind: str) -> str:
        taken = {e.id for e in self.elements}
        n = len(self.elements) + 1
        while f"{kind}-{n}" in taken:
            n += 1
        return f"{kind}-{n}"

    def add_element(
        self,
        kind: str,
        position: Optional[Position] = None,
        content: Optional[str] = None,
        icon_type: Optional[str] = None,
        element_id: Optional[str] = None,
    ) -> TemplateElement:
        """Create an element with the interactive defaults and paint it on top."""
        elem = self.create_element(kind, position, content, icon_type, element_id)
        self.append(elem)
        return elem

    def create_element(
        self,
        kind: str,
        position: Optional[Position] = None,
        content: Optional[str] = None,
        icon_type: Optional[str] = None,
        element_id: Optional[str] = None,
    ) -> TemplateElement:
        """Like add_element() but leaves the layout untouched (undo commands append)."""
        check_element_type(kind)
        return TemplateElement(
            id=element_id or self.new_element_id(kind),
            type=kind,
            position=position or Position(100, 100),
            size=default_size(kind),
            content=default_content(kind, icon_type) if content is None else content,
            style=default_style(kind),
            z_index=self.next_z_index(),
            icon_type=icon_type,
            border_color="#374151",
            background_color="#f9fafb" if kind == "box" else "transparent",
        )

    def append(self, elem: TemplateElement) -> None:
        if self.find(elem.id) is not None:
            raise ValueError(f"Duplicate element id {elem.id!r}")
        self.elements.append(elem)

    def insert(self, index: int, elem: TemplateElement) -> None:
        if self.find(elem.id) is not None:
            raise ValueError(f"Duplicate element id {elem.id!r}")
        self.elements.insert(index, elem)

    def remove_element(self, element_id: str) -> TemplateElement:
        """Remove and return the element; z-indices of the rest are untouched."""
        idx = self.index_of(element_id)
        return self.elements.pop(idx)

    def duplicate_element(self, element_id: str, offset: float = 20.0) -> TemplateElement:
        copy = self.make_duplicate(element_id, offset)
        self.append(copy)
        return copy

    def make_duplicate(self, element_id: str, offset: float = 20.0) -> TemplateElement:
        """Unattached copy of an element: shifted by *offset*, on top, unlocked."""
        src = self.get(element_id)
        copy = TemplateElement.from_dict(src.to_dict())
        copy.id = self.new_element_id(src.type)
        copy.position = src.position.offset(offset, offset)
        copy.z_index = self.next_z_index()
        copy.is_locked = False
        return copy

    def move_element(self, element_id: str, position: Position) -> TemplateElement:
        elem = self.get(element_id)
        elem.position = position
        return elem

    def resize_element(self, element_id: str, size: Size) -> TemplateElement:
        elem = self.get(element_id)
        elem.size = size
        return elem

    def update_style(self, element_id: str, **changes: Any) -> TemplateElement:
        elem = self.get(element_id)
        elem.style = elem.style.updated(**changes)
        return elem

    # ---- serialization ----
    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "orientation": self.orientation,
            "template_elements": [e.to_dict() for e in self.elements],
            "canvas_settings": self.canvas_settings.to_dict(),
            "print_settings": self.print_settings.to_dict(),
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Layout":
        elements = d.get("template_elements")
        if elements is None:
            elements = d.get("templateElements", [])
        canvas = d.get("canvas_settings", d.get("canvasSettings"))
        printing = d.get("print_settings", d.get("printSettings"))
        return Layout(
            elements=[TemplateElement.from_dict(x) for x in elements],
            canvas_settings=CanvasSettings.from_dict(canvas),
            print_settings=PrintSettings.from_dict(printing),
            orientation=d.get("orientation", "portrait"),
            name=d.get("name", "Untitled"),
        )

    def copy(self) -> "Layout":
        """Deep copy through the wire format (JSON-safe by construction)."""
        return Layout.from_dict(self.to_dict())
