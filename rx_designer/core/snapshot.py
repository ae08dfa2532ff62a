"""
core/snapshot.py - Issue-time snapshots and identical reprints.

issue() freezes a layout, its resolved bindings and the verification QR at
the moment a prescription is issued. reprint() replays that frozen data
through the print target with a clock pinned to the issuance instant, so a
snapshot renders the same output for as long as it exists, whatever happens
to the live layout afterwards.
"""
from __future__ import annotations

import base64
import copy
import sys
import threading
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from .bindings import Prescription, stringify_bindings
from .models import Layout
from .payload import (
    PayloadComposer,
    PayloadError,
    PayloadIncompleteError,
    VerificationPayload,
    build_payload,
    encode_payload,
    qr_side_px,
    report_fault,
)
from .render import (
    Clock,
    RenderedPage,
    fixed_clock,
    format_long_date,
    format_time,
    render,
    system_clock,
)


DEBUG_SNAPSHOT = False

# issuance must see one consistent layout state while copying
_ISSUE_LOCK = threading.Lock()


def _freeze(value: Any) -> Any:
    """Read-only deep copy: dicts become mapping proxies, lists become tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return copy.deepcopy(value)


def _thaw(value: Any) -> Any:
    """Inverse of _freeze; returns plain dicts and lists."""
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_thaw(v) for v in value]
    return copy.deepcopy(value)


@dataclass(frozen=True)
class LayoutSnapshot:
    prescription_id: str
    issued_at: datetime
    layout_data: Mapping[str, Any]
    bindings: Mapping[str, str]
    payload: Optional[VerificationPayload] = None
    qr_png: Optional[bytes] = field(default=None, repr=False)
    qr_error: Optional[str] = None

    @property
    def layout(self) -> Layout:
        """A fresh Layout built from the frozen data (safe to mutate)."""
        return Layout.from_dict(_thaw(self.layout_data))

    @property
    def has_qr(self) -> bool:
        return self.qr_png is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prescriptionId": self.prescription_id,
            "issuedAt": self.issued_at.isoformat(),
            "layout": _thaw(self.layout_data),
            "bindings": dict(self.bindings),
            "payload": self.payload.to_dict() if self.payload is not None else None,
            "qrPng": base64.b64encode(self.qr_png).decode("ascii") if self.qr_png else None,
            "qrError": self.qr_error,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "LayoutSnapshot":
        raw_png = d.get("qrPng")
        raw_payload = d.get("payload")
        return LayoutSnapshot(
            prescription_id=str(d.get("prescriptionId", "")),
            issued_at=datetime.fromisoformat(d["issuedAt"]),
            layout_data=_freeze(d.get("layout") or {}),
            bindings=MappingProxyType(stringify_bindings(d.get("bindings") or {})),
            payload=VerificationPayload.from_dict(raw_payload) if raw_payload else None,
            qr_png=base64.b64decode(raw_png) if raw_png else None,
            qr_error=d.get("qrError"),
        )


def issue(
    layout: Layout,
    bindings: Mapping[str, Any],
    prescription: Optional[Prescription] = None,
    *,
    clock: Optional[Clock] = None,
    composer: Optional[PayloadComposer] = None,
) -> LayoutSnapshot:
    """
    Freeze *layout* and *bindings* into a LayoutSnapshot.

    The verification payload is built once, here. A payload fault never
    blocks issuance: the snapshot keeps qr_png=None and the reason in
    qr_error, and the QR element prints as a placeholder. When a live
    *composer* is given it is frozen as well, and its prescription is used
    if *prescription* is omitted. With neither, the payload is never built
    from the display bindings: the snapshot records a PayloadIncompleteError
    instead.
    """
    with _ISSUE_LOCK:
        issued_at = (clock or system_clock)()
        layout_data = _freeze(layout.to_dict())
        side = qr_side_px(layout.elements)

        resolved = stringify_bindings(bindings)
        resolved.setdefault("date", format_long_date(issued_at))
        resolved.setdefault("time", format_time(issued_at))

    if prescription is None and composer is not None:
        prescription = composer.prescription
    if prescription is not None:
        prescription_id = prescription.prescription_id
    else:
        prescription_id = resolved.get("prescriptionId", "")

    payload: Optional[VerificationPayload] = None
    qr_png: Optional[bytes] = None
    qr_error: Optional[str] = None
    try:
        if prescription is None:
            raise PayloadIncompleteError("no prescription record to take medications and signature from")
        payload = build_payload(prescription, issued_at)
        qr_png = encode_payload(payload, side)
    except PayloadError as exc:
        payload = None
        qr_error = f"{type(exc).__name__}: {exc}"
        report_fault(exc, prescription_id)

    if composer is not None:
        composer.freeze()

    snap = LayoutSnapshot(
        prescription_id=prescription_id,
        issued_at=issued_at,
        layout_data=layout_data,
        bindings=MappingProxyType(resolved),
        payload=payload,
        qr_png=qr_png,
        qr_error=qr_error,
    )
    if DEBUG_SNAPSHOT:
        print(
            f"[SNAPSHOT] issued {snap.prescription_id} at {issued_at.isoformat()} "
            f"({len(layout_data.get('template_elements', []))} elements, qr={'yes' if qr_png else 'no'})",
            file=sys.stderr,
        )
    return snap


def reprint(snapshot: LayoutSnapshot) -> RenderedPage:
    """Render the frozen snapshot for print; never consults a live layout."""
    return render(
        snapshot.layout,
        snapshot.bindings,
        "print",
        clock=fixed_clock(snapshot.issued_at),
        qr_image=snapshot.qr_png,
    )
