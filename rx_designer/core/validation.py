"""
core/validation.py - Layout validation engine.

validate() is a pure function over (elements, canvas settings). Every rule is
evaluated so the user sees all problems at once; findings are returned, never
raised. Callers debounce re-runs during drags; there is no caching here.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Union

from .geometry import intersects
from .models import CanvasSettings, Layout, TemplateElement


ERROR = "error"
WARNING = "warning"
INFO = "info"

MIN_CANVAS_SIDE = 100
MIN_FONT_SIZE = 8
MAX_FONT_SIZE = 72
DEFAULT_FONT_SIZE = 12
MIN_QR_SIDE = 50

# each required fact: (code, severity, tokens, message, suggestion)
_REQUIRED_FACTS = (
    (
        "MISSING_PATIENT_INFO",
        ERROR,
        ("{{patientName}}", "[NOMBRE DEL PACIENTE]"),
        "The prescription must show the patient's name",
        "Add an element containing {{patientName}}",
    ),
    (
        "MISSING_DOCTOR_INFO",
        ERROR,
        ("{{doctorName}}", "[NOMBRE DEL MÉDICO]"),
        "The prescription must show the doctor's name",
        "Add an element containing {{doctorName}}",
    ),
    (
        "MISSING_MEDICATIONS",
        ERROR,
        ("{{medications}}", "[MEDICAMENTO]"),
        "The prescription must include space for the medications",
        "Add an element containing {{medications}}",
    ),
    (
        "MISSING_DATE",
        WARNING,
        ("{{date}}", "[FECHA]"),
        "Including the date on the prescription is recommended",
        'Add an element containing {{date}} or an element of type "date"',
    ),
)


@dataclass(frozen=True)
class ValidationFinding:
    severity: str                       # error|warning|info
    code: str
    message: str
    element_id: Optional[str] = None
    related_element_id: Optional[str] = None
    suggestion: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.severity == ERROR

    def to_dict(self) -> dict:
        return {
            "severity": self.severity,
            "code": self.code,
            "message": self.message,
            "elementId": self.element_id,
            "relatedElementId": self.related_element_id,
            "suggestion": self.suggestion,
        }


# ---------- individual rule groups ----------

def _check_canvas(canvas: CanvasSettings) -> List[ValidationFinding]:
    if canvas.canvas_size is None:
        return [ValidationFinding(
            ERROR,
            "CANVAS_SIZE_MISSING",
            "The canvas size is not defined",
            suggestion="Set the canvas size in the canvas settings",
        )]
    size = canvas.canvas_size
    if size.width < MIN_CANVAS_SIDE or size.height < MIN_CANVAS_SIDE:
        return [ValidationFinding(
            WARNING,
            "CANVAS_TOO_SMALL",
            "The canvas is too small for a medical prescription",
            suggestion="Use at least 794x1123 px (A4)",
        )]
    return []


def _check_element(elem: TemplateElement, canvas: CanvasSettings) -> List[ValidationFinding]:
    out: List[ValidationFinding] = []
    eid = elem.id

    if canvas.canvas_size is not None:
        if elem.position.x < 0 or elem.position.y < 0:
            out.append(ValidationFinding(
                ERROR,
                "ELEMENT_OUT_OF_BOUNDS_NEGATIVE",
                f'Element "{eid}" is outside the canvas (negative position)',
                element_id=eid,
                suggestion="Move the element inside the canvas area",
            ))
        rect = elem.rect
        if rect.right > canvas.canvas_size.width or rect.bottom > canvas.canvas_size.height:
            out.append(ValidationFinding(
                WARNING,
                "ELEMENT_OUT_OF_BOUNDS",
                f'Element "{eid}" extends past the printable area',
                element_id=eid,
                suggestion="Resize or reposition the element so it fits the canvas",
            ))

    if elem.size.width <= 0 or elem.size.height <= 0:
        out.append(ValidationFinding(
            ERROR,
            "INVALID_DIMENSIONS",
            f'Element "{eid}" has invalid dimensions',
            element_id=eid,
            suggestion="Width and height must both be greater than 0",
        ))

    if elem.type == "text":
        out.extend(_check_text(elem, canvas))
    elif elem.type == "qr":
        side = min(elem.size.width, elem.size.height)
        if side < MIN_QR_SIDE:
            out.append(ValidationFinding(
                WARNING,
                "QR_TOO_SMALL",
                f'QR code "{eid}" is too small ({side:g}px)',
                element_id=eid,
                suggestion=f"QR codes need at least {MIN_QR_SIDE}x{MIN_QR_SIDE} px to scan reliably",
            ))
    return out


def _check_text(elem: TemplateElement, canvas: CanvasSettings) -> List[ValidationFinding]:
    out: List[ValidationFinding] = []
    eid = elem.id
    font_size = elem.style.font_size or DEFAULT_FONT_SIZE

    if font_size < MIN_FONT_SIZE:
        out.append(ValidationFinding(
            WARNING,
            "TEXT_TOO_SMALL",
            f'Text "{eid}" may be hard to read ({font_size:g}px)',
            element_id=eid,
            suggestion="Use at least 10px for prescription text",
        ))
    if font_size > MAX_FONT_SIZE:
        out.append(ValidationFinding(
            WARNING,
            "TEXT_TOO_LARGE",
            f'Text "{eid}" is excessively large ({font_size:g}px)',
            element_id=eid,
            suggestion="Consider a smaller font size",
        ))

    # Exact string equality only; near-identical colors are not caught.
    color = elem.style.color
    if color and canvas.background_color and color == canvas.background_color:
        out.append(ValidationFinding(
            ERROR,
            "POOR_CONTRAST",
            f'Text "{eid}" is invisible (same color as the background)',
            element_id=eid,
            suggestion="Pick a text color that contrasts with the background",
        ))

    if not elem.content.strip():
        out.append(ValidationFinding(
            INFO,
            "EMPTY_TEXT",
            f'Text element "{eid}" is empty',
            element_id=eid,
            suggestion="Add content or remove the element",
        ))
    return out


def _check_overlaps(visible: Sequence[TemplateElement]) -> List[ValidationFinding]:
    out: List[ValidationFinding] = []
    rects = [e.rect for e in visible]
    for i in range(len(visible)):
        for j in range(i + 1, len(visible)):
            if intersects(rects[i], rects[j]):
                a, b = visible[i], visible[j]
                out.append(ValidationFinding(
                    WARNING,
                    "ELEMENTS_OVERLAP",
                    f'Elements "{a.id}" and "{b.id}" overlap',
                    element_id=a.id,
                    related_element_id=b.id,
                    suggestion="Reposition the elements, or adjust z-index if the overlap is intentional",
                ))
    return out


def _check_required_facts(elements: Sequence[TemplateElement]) -> List[ValidationFinding]:
    out: List[ValidationFinding] = []
    for code, severity, tokens, message, suggestion in _REQUIRED_FACTS:
        present = any(tok in e.content for e in elements for tok in tokens)
        if code == "MISSING_DATE":
            present = present or any(e.type == "date" for e in elements)
        if not present:
            out.append(ValidationFinding(severity, code, message, suggestion=suggestion))
    return out


# ---------- public API ----------

def validate(
    elements: Iterable[TemplateElement],
    canvas_settings: CanvasSettings,
) -> List[ValidationFinding]:
    """
    Run every layout rule and return the findings in a stable order:
    canvas, then per element (sequence order), then overlapping pairs,
    then the required prescription facts.
    """
    elements = list(elements)
    visible = [e for e in elements if e.is_visible]

    findings: List[ValidationFinding] = []
    findings.extend(_check_canvas(canvas_settings))
    for elem in visible:
        findings.extend(_check_element(elem, canvas_settings))
    findings.extend(_check_overlaps(visible))
    findings.extend(_check_required_facts(elements))
    return findings


def validate_layout(layout: Layout) -> List[ValidationFinding]:
    return validate(layout.elements, layout.canvas_settings)


def is_valid(subject: Union[Layout, Iterable[ValidationFinding]]) -> bool:
    """A layout is valid iff no finding has severity error."""
    if isinstance(subject, Layout):
        subject = validate_layout(subject)
    return not any(f.severity == ERROR for f in subject)


def summarize(findings: Iterable[ValidationFinding]) -> dict:
    counts = {ERROR: 0, WARNING: 0, INFO: 0}
    for f in findings:
        counts[f.severity] = counts.get(f.severity, 0) + 1
    return counts
