from __future__ import annotations

from typing import Optional

from PySide6 import QtCore, QtGui

from .render import RenderedNode, RenderedPage


_ALIGN = {
    "left": QtCore.Qt.AlignLeft,
    "center": QtCore.Qt.AlignHCenter,
    "right": QtCore.Qt.AlignRight,
}

TEXT_PADDING = 4
SELECTION_COLOR = "#2563eb"

# icon_type -> glyph drawn for icon elements
ICON_GLYPHS = {
    "stethoscope": "⚕",
    "pill": "●",
    "heart": "♥",
    "cross": "✚",
    "phone": "☎",
    "mail": "✉",
    "calendar": "▦",
    "clock": "◷",
}


def _qcolor(value: Optional[str], fallback: str = "#000000") -> QtGui.QColor:
    c = QtGui.QColor(value) if value else QtGui.QColor()
    return c if c.isValid() else QtGui.QColor(fallback)


def _font_for(node: RenderedNode, bold: Optional[bool] = None) -> QtGui.QFont:
    st = node.style
    font = QtGui.QFont(st.font_family or "Arial")
    font.setPixelSize(max(1, int(round(st.font_size or 12))))
    font.setBold(bold if bold is not None else st.font_weight == "bold")
    font.setItalic(st.font_style == "italic")
    font.setUnderline(st.text_decoration == "underline")
    return font


def _text_flags(node: RenderedNode, vcenter: bool = False) -> int:
    h = _ALIGN.get(node.style.text_align or "left", QtCore.Qt.AlignLeft)
    v = QtCore.Qt.AlignVCenter if vcenter else QtCore.Qt.AlignTop
    return int(h | v | QtCore.Qt.TextWordWrap)


def _node_rect(node: RenderedNode) -> QtCore.QRectF:
    r = node.rect
    return QtCore.QRectF(r.left, r.top, r.width, r.height)


def _draw_placeholder(p: QtGui.QPainter, rect: QtCore.QRectF, label: str) -> None:
    pen = QtGui.QPen(QtGui.QColor("#9ca3af"))
    pen.setStyle(QtCore.Qt.DashLine)
    p.setPen(pen)
    p.setBrush(QtCore.Qt.NoBrush)
    p.drawRect(rect)
    p.drawLine(rect.topLeft(), rect.bottomRight())
    p.drawLine(rect.topRight(), rect.bottomLeft())
    p.drawText(rect, int(QtCore.Qt.AlignCenter), label)


def _draw_image(p: QtGui.QPainter, rect: QtCore.QRectF, img: QtGui.QImage, mode: str) -> None:
    if mode != "color":
        img = img.convertToFormat(QtGui.QImage.Format_Grayscale8)
    p.drawImage(rect, img)


def _draw_text_block(p: QtGui.QPainter, node: RenderedNode, rect: QtCore.QRectF, vcenter: bool = False) -> None:
    p.setPen(_qcolor(node.style.color))
    p.setFont(_font_for(node))
    inner = rect.adjusted(TEXT_PADDING, TEXT_PADDING, -TEXT_PADDING, -TEXT_PADDING)
    p.drawText(inner, _text_flags(node, vcenter), node.text)


def _paint_table(p: QtGui.QPainter, node: RenderedNode, rect: QtCore.QRectF) -> None:
    if not node.rows:
        return
    row_h = rect.height() / len(node.rows)
    grid_pen = QtGui.QPen(_qcolor(node.border_color, "#374151"))
    for r, row in enumerate(node.rows):
        cols = max(1, len(row))
        col_w = rect.width() / cols
        is_header = r < node.header_rows
        p.setFont(_font_for(node, bold=True if is_header else None))
        for c, cell in enumerate(row):
            cell_rect = QtCore.QRectF(rect.left() + c * col_w, rect.top() + r * row_h, col_w, row_h)
            if is_header:
                p.fillRect(cell_rect, QtGui.QColor("#f3f4f6"))
            p.setPen(grid_pen)
            p.drawRect(cell_rect)
            p.setPen(_qcolor(node.style.color))
            p.drawText(
                cell_rect.adjusted(TEXT_PADDING, 0, -TEXT_PADDING, 0),
                int(QtCore.Qt.AlignLeft | QtCore.Qt.AlignVCenter),
                cell,
            )


def paint_node(p: QtGui.QPainter, node: RenderedNode, color_mode: str = "color") -> None:
    rect = _node_rect(node)
    kind = node.kind

    if kind == "box":
        bg = _qcolor(node.background_color, "transparent")
        p.setBrush(QtGui.QBrush(bg) if bg.alpha() else QtCore.Qt.NoBrush)
        p.setPen(QtGui.QPen(_qcolor(node.border_color, "#374151"), 1))
        p.drawRect(rect)
        if node.text:
            _draw_text_block(p, node, rect)

    elif kind == "separator":
        color = _qcolor(node.border_color or node.style.color, "#374151")
        p.fillRect(rect, color)

    elif kind == "table":
        _paint_table(p, node, rect)

    elif kind in ("logo", "qr"):
        img = QtGui.QImage()
        if node.image_png:
            img.loadFromData(node.image_png, "PNG")
        elif node.image_ref:
            img.load(node.image_ref)
        if node.placeholder or img.isNull():
            _draw_placeholder(p, rect, node.text or kind.upper())
        else:
            _draw_image(p, rect, img, color_mode)

    elif kind == "signature":
        if node.image_png:
            img = QtGui.QImage()
            if img.loadFromData(node.image_png):
                _draw_image(p, rect, img, color_mode)
        _draw_text_block(p, node, rect, vcenter=True)

    elif kind == "icon":
        glyph = ICON_GLYPHS.get(node.icon_type or "", "")
        p.setPen(_qcolor(node.style.color))
        p.setFont(_font_for(node))
        p.drawText(rect, int(QtCore.Qt.AlignCenter), glyph or node.text)

    else:
        # text, date, time
        bg = _qcolor(node.background_color, "transparent")
        if bg.alpha():
            p.fillRect(rect, bg)
        _draw_text_block(p, node, rect)

    if node.selected:
        pen = QtGui.QPen(QtGui.QColor(SELECTION_COLOR), 1)
        pen.setStyle(QtCore.Qt.DashLine)
        p.setPen(pen)
        p.setBrush(QtCore.Qt.NoBrush)
        p.drawRect(rect.adjusted(-2, -2, 2, 2))


def _paint_watermark(p: QtGui.QPainter, page: RenderedPage) -> None:
    p.save()
    p.setOpacity(0.1)
    font = QtGui.QFont("Arial")
    font.setPixelSize(max(12, int(min(page.width, page.height) / 8)))
    font.setBold(True)
    p.setFont(font)
    p.setPen(QtGui.QColor("#000000"))
    p.translate(page.width / 2.0, page.height / 2.0)
    p.rotate(-45)
    p.drawText(
        QtCore.QRectF(-page.width, -page.height / 4.0, page.width * 2, page.height / 2.0),
        int(QtCore.Qt.AlignCenter),
        page.watermark_text,
    )
    p.restore()


def paint_page(p: QtGui.QPainter, page: RenderedPage, watermark: bool = True) -> None:
    """Paint *page* in canvas coordinates on an already-scaled painter."""
    p.fillRect(QtCore.QRectF(0, 0, page.width, page.height), _qcolor(page.background_color, "#ffffff"))
    for node in page.nodes:
        p.save()
        paint_node(p, node, page.color_mode)
        p.restore()
    if watermark and page.watermark_text:
        _paint_watermark(p, page)


def page_to_image(page: RenderedPage, scale: float = 1.0, watermark: bool = True) -> QtGui.QImage:
    w = max(1, int(page.width * scale))
    h = max(1, int(page.height * scale))
    img = QtGui.QImage(w, h, QtGui.QImage.Format_ARGB32_Premultiplied)
    img.fill(QtCore.Qt.white)
    painter = QtGui.QPainter(img)
    painter.setRenderHint(QtGui.QPainter.Antialiasing, True)
    painter.setRenderHint(QtGui.QPainter.TextAntialiasing, True)
    painter.scale(scale, scale)
    paint_page(painter, page, watermark)
    painter.end()
    return img
