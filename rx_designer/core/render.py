"""
core/render.py - Layout -> ordered visual nodes for one render target.

render() is pure: it resolves placeholders, reads the injected clock for
date/time stamps and applies per-target styling, but never paints. The Qt
side (core/raster.py) turns a RenderedPage into pixels.

Targets:
    editor   selection decoration kept
    preview  no decoration
    print    no decoration, white page, opaque colors, print color mode

Geometry and content are identical across targets.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .bindings import resolve_placeholders
from .geometry import Rect
from .models import (
    LOGO_PLACEHOLDER,
    Layout,
    TemplateElement,
    TextStyle,
    UnknownElementTypeError,
)


RENDER_TARGETS = ("editor", "preview", "print")

Clock = Callable[[], datetime]

_MONTHS_ES = (
    "enero", "febrero", "marzo", "abril", "mayo", "junio",
    "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
)


def system_clock() -> datetime:
    return datetime.now()


def fixed_clock(moment: datetime) -> Clock:
    """A clock that always answers *moment* (snapshot replay, tests)."""
    def _clock() -> datetime:
        return moment
    return _clock


def format_long_date(moment: datetime) -> str:
    """17 de octubre de 2026"""
    return f"{moment.day} de {_MONTHS_ES[moment.month - 1]} de {moment.year}"


def format_time(moment: datetime) -> str:
    return moment.strftime("%H:%M")


# ---------- output records ----------

@dataclass(frozen=True)
class RenderedNode:
    element_id: str
    kind: str
    rect: Rect
    z_index: int
    style: TextStyle
    text: str = ""
    # table grid; row 0 is the header
    rows: Tuple[Tuple[str, ...], ...] = ()
    header_rows: int = 0
    image_ref: Optional[str] = None
    image_png: Optional[bytes] = None
    placeholder: bool = False
    icon_type: Optional[str] = None
    border_color: Optional[str] = None
    background_color: Optional[str] = None
    selected: bool = False


@dataclass(frozen=True)
class RenderedPage:
    target: str
    width: float
    height: float
    background_color: str
    color_mode: str = "color"
    watermark_text: str = ""
    nodes: Tuple[RenderedNode, ...] = ()

    def node(self, element_id: str) -> Optional[RenderedNode]:
        for n in self.nodes:
            if n.element_id == element_id:
                return n
        return None

    def texts(self) -> List[str]:
        """Every visible string on the page, in paint order."""
        out: List[str] = []
        for n in self.nodes:
            if n.text:
                out.append(n.text)
            for row in n.rows:
                out.extend(c for c in row if c)
        return out

    def contains_text(self, needle: str) -> bool:
        return any(needle in t for t in self.texts())


# ---------- color handling for print ----------

_RGBA_RE = re.compile(
    r"^rgba?\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*(?:,\s*([0-9.]+)\s*)?\)$", re.I
)


def _parse_color(color: Optional[str]) -> Optional[Tuple[int, int, int]]:
    if not color:
        return None
    c = color.strip()
    if c.lower() == "transparent":
        return None
    if c.startswith("#"):
        h = c[1:]
        if len(h) in (3, 4):
            h = "".join(ch * 2 for ch in h[:3])
        if len(h) in (6, 8):
            try:
                return int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16)
            except ValueError:
                return None
        return None
    m = _RGBA_RE.match(c)
    if m:
        return tuple(min(255, int(v)) for v in m.group(1, 2, 3))  # type: ignore[return-value]
    return None


def _hex(rgb: Tuple[int, int, int]) -> str:
    return "#{:02x}{:02x}{:02x}".format(*rgb)


def print_color(color: Optional[str], color_mode: str) -> Optional[str]:
    """
    Opaque version of *color* for paper, converted to the print color mode.
    Transparent or unparseable colors come back unchanged.
    """
    rgb = _parse_color(color)
    if rgb is None:
        return color
    if color_mode in ("grayscale", "blackwhite"):
        r, g, b = rgb
        lum = int(round(0.299 * r + 0.587 * g + 0.114 * b))
        if color_mode == "blackwhite":
            lum = 0 if lum < 128 else 255
        rgb = (lum, lum, lum)
    return _hex(rgb)


# ---------- per-type handlers ----------

class _RenderContext:
    def __init__(
        self,
        bindings: Mapping[str, Any],
        clock: Clock,
        qr_image: Optional[bytes],
        signature_image: Optional[bytes],
    ):
        self.now = clock()
        self.qr_image = qr_image
        self.signature_image = signature_image
        # {{date}} / {{time}} fall back to the clock when not bound
        merged: Dict[str, Any] = {
            "date": format_long_date(self.now),
            "time": format_time(self.now),
        }
        merged.update({k: v for k, v in bindings.items() if v is not None})
        self.bindings = merged

    def resolve(self, text: str) -> str:
        return resolve_placeholders(text, self.bindings)


def _render_text(elem: TemplateElement, ctx: _RenderContext) -> Dict[str, Any]:
    return {"text": ctx.resolve(elem.content)}


def _render_table(elem: TemplateElement, ctx: _RenderContext) -> Dict[str, Any]:
    resolved = ctx.resolve(elem.content)
    rows = tuple(
        tuple(cell.strip() for cell in line.split("|"))
        for line in resolved.split("\n")
        if line.strip()
    )
    return {"text": resolved, "rows": rows, "header_rows": 1 if rows else 0}


def _render_logo(elem: TemplateElement, ctx: _RenderContext) -> Dict[str, Any]:
    ref = elem.content.strip()
    if not ref or ref == LOGO_PLACEHOLDER:
        return {"text": LOGO_PLACEHOLDER, "placeholder": True}
    return {"image_ref": ref}


def _render_signature(elem: TemplateElement, ctx: _RenderContext) -> Dict[str, Any]:
    return {"text": ctx.resolve(elem.content), "image_png": ctx.signature_image}


def _render_qr(elem: TemplateElement, ctx: _RenderContext) -> Dict[str, Any]:
    if ctx.qr_image is None:
        return {"text": "QR", "placeholder": True}
    return {"image_png": ctx.qr_image}


def _render_date(elem: TemplateElement, ctx: _RenderContext) -> Dict[str, Any]:
    return {"text": format_long_date(ctx.now)}


def _render_time(elem: TemplateElement, ctx: _RenderContext) -> Dict[str, Any]:
    return {"text": format_time(ctx.now)}


def _render_icon(elem: TemplateElement, ctx: _RenderContext) -> Dict[str, Any]:
    return {"text": ctx.resolve(elem.content), "icon_type": elem.icon_type}


_HANDLERS: Dict[str, Callable[[TemplateElement, _RenderContext], Dict[str, Any]]] = {
    "text": _render_text,
    "box": _render_text,
    "separator": _render_text,
    "table": _render_table,
    "logo": _render_logo,
    "signature": _render_signature,
    "qr": _render_qr,
    "date": _render_date,
    "time": _render_time,
    "icon": _render_icon,
}


def render_element(
    elem: TemplateElement,
    ctx: _RenderContext,
    target: str,
    color_mode: str = "color",
    selected: bool = False,
) -> RenderedNode:
    handler = _HANDLERS.get(elem.type)
    if handler is None:
        raise UnknownElementTypeError(f"No renderer for element type {elem.type!r}")
    parts = handler(elem, ctx)

    style = elem.resolved_style()
    border = elem.border_color
    background = elem.background_color
    if target == "print":
        style = style.updated(color=print_color(style.color, color_mode))
        border = print_color(border, color_mode)
        background = print_color(background, color_mode)

    return RenderedNode(
        element_id=elem.id,
        kind=elem.type,
        rect=elem.rect,
        z_index=elem.z_index,
        style=style,
        border_color=border,
        background_color=background,
        selected=selected and target == "editor",
        **parts,
    )


def render(
    layout: Layout,
    bindings: Mapping[str, Any],
    target: str,
    *,
    clock: Optional[Clock] = None,
    qr_image: Optional[bytes] = None,
    signature_image: Optional[bytes] = None,
    selected_id: Optional[str] = None,
) -> RenderedPage:
    """
    Render every visible element of *layout* in paint order (ascending
    z-index, ties in sequence order).

    Missing bindings leave their {{token}} in place; a logo without an image
    or a qr element without *qr_image* becomes a placeholder node.
    """
    if target not in RENDER_TARGETS:
        raise ValueError(f"Unknown render target {target!r}")

    ctx = _RenderContext(bindings, clock or system_clock, qr_image, signature_image)
    color_mode = layout.print_settings.color_mode

    nodes = tuple(
        render_element(e, ctx, target, color_mode, selected=(e.id == selected_id))
        for e in layout.sorted_for_paint()
        if e.is_visible
    )

    canvas = layout.canvas_settings
    width = canvas.canvas_size.width if canvas.canvas_size else 0.0
    height = canvas.canvas_size.height if canvas.canvas_size else 0.0
    background = canvas.background_color
    if target == "print":
        background = "#ffffff"

    return RenderedPage(
        target=target,
        width=width,
        height=height,
        background_color=background,
        color_mode=color_mode if target == "print" else "color",
        watermark_text=layout.print_settings.watermark_text if target != "editor" else "",
        nodes=nodes,
    )
