"""
core/catalog.py - Built-in prescription layouts.

Entries are kept in the persisted wire format and turned into a fresh Layout
on every get_catalog_layout() call, so callers can edit what they get back
without touching the catalog.
"""
from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .models import Layout


CATEGORIES = ("classic", "modern", "compact", "minimal")


@dataclass(frozen=True)
class CatalogEntry:
    id: str
    name: str
    description: str
    category: str
    orientation: str
    page_size: str


def _el(eid: str, kind: str, x: float, y: float, w: float, h: float,
        content: str = "", style: Optional[Dict[str, Any]] = None,
        z: int = 1, **extra: Any) -> Dict[str, Any]:
    d = {
        "id": eid,
        "type": kind,
        "position": {"x": x, "y": y},
        "size": {"width": w, "height": h},
        "content": content,
        "style": style or {},
        "zIndex": z,
        "isVisible": True,
        "isLocked": False,
    }
    d.update(extra)
    return d


def _margins(mm: str) -> Dict[str, str]:
    return {"top": mm, "right": mm, "bottom": mm, "left": mm}


def _print_settings(mm: str) -> Dict[str, Any]:
    return {
        "pageMargins": _margins(mm),
        "printQuality": "high",
        "colorMode": "color",
        "scaleFactor": 1.0,
    }


_HORIZONTAL_CLASSIC = {
    "name": "Clásica Horizontal",
    "orientation": "landscape",
    "template_elements": [
        _el("header", "text", 50, 30, 1000, 80,
            "{{clinicName}}\n{{doctorName}} - Cédula: {{doctorLicense}}",
            {"fontSize": 16, "fontWeight": "bold", "textAlign": "center"}),
        _el("patient_info_box", "box", 50, 130, 500, 200, "",
            borderColor="#333333", backgroundColor="#f9f9f9"),
        _el("patient_data", "text", 70, 150, 460, 160,
            "Paciente: {{patientName}}\nEdad: {{patientAge}}\nFecha: {{date}}\nDiagnóstico: {{diagnosis}}",
            {"fontSize": 12, "lineHeight": 1.5}, z=2),
        _el("medications_box", "box", 570, 130, 500, 400, "",
            borderColor="#333333", backgroundColor="#ffffff"),
        _el("medications_title", "text", 590, 150, 460, 30, "MEDICAMENTOS PRESCRITOS",
            {"fontSize": 14, "fontWeight": "bold", "textAlign": "center"}, z=2),
        _el("medications_list", "text", 590, 190, 460, 320, "{{medications}}",
            {"fontSize": 11, "lineHeight": 1.4}, z=2),
        _el("signature_area", "signature", 590, 550, 200, 60, "{{doctorName}}",
            {"fontSize": 10, "textAlign": "center"}),
        _el("qr_code", "qr", 50, 550, 80, 80, "{{prescriptionId}}"),
    ],
    "canvas_settings": {
        "backgroundColor": "#ffffff",
        "canvasSize": {"width": 1123, "height": 794},
        "pageSize": "A4",
        "margin": "15mm",
    },
    "print_settings": _print_settings("15mm"),
}

_HORIZONTAL_COMPACT = {
    "name": "Compacta Horizontal",
    "orientation": "landscape",
    "template_elements": [
        _el("compact_header", "text", 30, 20, 1000, 50,
            "{{clinicName}} | {{doctorName}} | Tel: {{clinicPhone}}",
            {"fontSize": 12, "fontWeight": "bold", "textAlign": "center"}),
        _el("patient_compact", "text", 30, 80, 350, 80,
            "Paciente: {{patientName}}\nEdad: {{patientAge}} | Fecha: {{date}}",
            {"fontSize": 10}),
        _el("medications_compact", "text", 30, 180, 720, 300,
            "MEDICAMENTOS:\n{{medications}}",
            {"fontSize": 11, "lineHeight": 1.3}),
        _el("signature_compact", "signature", 30, 500, 200, 40, "{{doctorName}}",
            {"fontSize": 9}),
        _el("qr_compact", "qr", 670, 490, 60, 60, "{{prescriptionId}}"),
    ],
    "canvas_settings": {
        "backgroundColor": "#ffffff",
        "canvasSize": {"width": 1056, "height": 816},
        "pageSize": "Letter",
        "margin": "10mm",
    },
    "print_settings": _print_settings("10mm"),
}

_HORIZONTAL_MODERN = {
    "name": "Moderna Horizontal",
    "orientation": "landscape",
    "template_elements": [
        _el("modern_header", "box", 0, 0, 1123, 100, "",
            borderColor="#2563eb", backgroundColor="#eff6ff"),
        _el("clinic_logo", "icon", 30, 20, 60, 60, "",
            {"color": "#2563eb"}, z=2, iconType="stethoscope"),
        _el("clinic_header", "text", 110, 25, 700, 50,
            "{{clinicName}}\n{{doctorName}} - Cédula: {{doctorLicense}}",
            {"fontSize": 16, "fontWeight": "bold", "color": "#1e3a8a"}, z=2),
        _el("patient_modern", "text", 30, 120, 350, 120,
            "Paciente: {{patientName}}\nEdad: {{patientAge}}\nFecha: {{date}}",
            {"fontSize": 12, "lineHeight": 1.5}),
        _el("medications_section", "box", 400, 120, 690, 400, "",
            borderColor="#dc2626", backgroundColor="#fef2f2"),
        _el("medications_content", "text", 420, 180, 650, 320, "{{medications}}",
            {"fontSize": 11, "lineHeight": 1.5, "color": "#7f1d1d"}, z=2),
        _el("signature_modern", "signature", 400, 560, 220, 60, "{{doctorName}}",
            {"fontSize": 10, "textAlign": "center"}),
        _el("qr_modern", "qr", 30, 560, 80, 80, "{{prescriptionId}}"),
    ],
    "canvas_settings": {
        "backgroundColor": "#ffffff",
        "canvasSize": {"width": 1123, "height": 794},
        "pageSize": "A4",
        "margin": "15mm",
    },
    "print_settings": _print_settings("15mm"),
}

_BODY = {"fontSize": 14, "fontFamily": "Arial", "color": "#374151", "lineHeight": 1.5}

_PORTRAIT_DEFAULT = {
    "name": "Receta Vertical",
    "orientation": "portrait",
    "template_elements": [
        _el("titulo", "text", 50, 50, 694, 60, "RECETA MÉDICA",
            {"fontSize": 32, "fontFamily": "Arial", "color": "#1f2937",
             "fontWeight": "bold", "textAlign": "center"}),
        _el("info-doctor", "text", 50, 120, 400, 100,
            "Dr. [NOMBRE DEL MÉDICO]\n[ESPECIALIDAD]\nCédula Profesional: [NÚMERO]", _BODY),
        _el("info-clinica", "text", 50, 240, 694, 80,
            "[NOMBRE DE LA CLÍNICA]\n[DIRECCIÓN]\nTel: [TELÉFONO] | Email: [EMAIL]",
            {"fontSize": 12, "fontFamily": "Arial", "color": "#6b7280",
             "textAlign": "center", "lineHeight": 1.4}),
        _el("info-paciente", "text", 50, 340, 694, 60,
            "Paciente: [NOMBRE DEL PACIENTE]\nFecha: [FECHA]", _BODY),
        _el("diagnostico", "text", 50, 420, 694, 60, "Diagnóstico: [DIAGNÓSTICO]", _BODY),
        _el("medicamentos", "text", 50, 500, 694, 200,
            "MEDICAMENTOS:\n\n1. [MEDICAMENTO] - [DOSIS]\n   Frecuencia: [FRECUENCIA]\n"
            "   Duración: [DURACIÓN]\n   Instrucciones: [INSTRUCCIONES]",
            dict(_BODY, fontSize=13, lineHeight=1.6)),
        _el("notas", "text", 50, 720, 694, 80,
            "Indicaciones adicionales:\n[NOTAS E INSTRUCCIONES ESPECIALES]",
            dict(_BODY, fontSize=12)),
        _el("firma", "text", 50, 860, 300, 100, "____________________\nFirma del Médico",
            dict(_BODY, fontSize=12, textAlign="center")),
        _el("logo", "logo", 600, 120, 120, 120, "LOGO",
            {"fontSize": 24, "fontFamily": "Arial", "color": "#9ca3af", "textAlign": "center"}, z=2),
    ],
    "canvas_settings": {
        "backgroundColor": "#ffffff",
        "canvasSize": {"width": 794, "height": 1123},
        "pageSize": "A4",
        "margin": "20mm",
    },
    "print_settings": _print_settings("20mm"),
}


_CATALOG: List[tuple] = [
    (CatalogEntry("horizontal_classic", "Clásica Horizontal",
                  "Diseño tradicional de dos columnas - ideal para consultorios",
                  "classic", "landscape", "A4"), _HORIZONTAL_CLASSIC),
    (CatalogEntry("horizontal_compact", "Compacta Horizontal",
                  "Formato compacto para máxima eficiencia de espacio",
                  "compact", "landscape", "Letter"), _HORIZONTAL_COMPACT),
    (CatalogEntry("horizontal_modern", "Moderna Horizontal",
                  "Diseño moderno con elementos visuales y colores",
                  "modern", "landscape", "A4"), _HORIZONTAL_MODERN),
    (CatalogEntry("portrait_default", "Receta Vertical",
                  "Receta clásica en formato vertical con campos de ejemplo",
                  "minimal", "portrait", "A4"), _PORTRAIT_DEFAULT),
]

DEFAULT_LAYOUT_ID = "portrait_default"


def list_catalog(category: Optional[str] = None) -> List[CatalogEntry]:
    """All entries, or only those of *category* ("all" means no filter)."""
    if category in (None, "", "all"):
        return [entry for entry, _ in _CATALOG]
    return [entry for entry, _ in _CATALOG if entry.category == category]


def get_catalog_layout(layout_id: str) -> Layout:
    for entry, data in _CATALOG:
        if entry.id == layout_id:
            return Layout.from_dict(copy.deepcopy(data))
    raise KeyError(f"No catalog layout named {layout_id!r}")


def default_layout() -> Layout:
    return get_catalog_layout(DEFAULT_LAYOUT_ID)
