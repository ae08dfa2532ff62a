"""
core/payload.py - Verification payload behind the prescription QR code.

The payload is the minimal record that ties a printed prescription back to
its source data: prescription id, patient id, issuance timestamp, the
medications (name/dosage/frequency/duration only) and whether the
prescription is signed. The diagnosis is never included.

Serialization is compact JSON with sorted keys so the same prescription
always yields the same bytes.
"""
from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from .barcodes import (
    MIN_QR_SIDE_PX,
    BarcodeEncodingError,
    BarcodeValidationError,
    render_qr_png,
)
from .bindings import Prescription
from .models import TemplateElement


# Fits comfortably in a version ~25 QR at error correction M
MAX_PAYLOAD_BYTES = 1200
PAYLOAD_VERSION = 1

DEBUG_QR = False


# --- Exceptions -----------------------------------------------------------


class PayloadError(Exception):
    """Base class for payload build/encode faults (never block issuance)."""


class PayloadTooLargeError(PayloadError):
    """Serialized payload exceeds MAX_PAYLOAD_BYTES or any QR capacity."""


class PayloadEncodingError(PayloadError):
    """The QR encoder failed on an otherwise valid payload."""


class PayloadIncompleteError(PayloadError):
    """No prescription record was available to build the payload from."""


class PayloadFrozenError(RuntimeError):
    """The payload was frozen at issuance and can no longer change."""


# --- Payload record -------------------------------------------------------


@dataclass(frozen=True)
class PayloadMedication:
    name: str
    dosage: str
    frequency: str
    duration: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "name": self.name,
            "dosage": self.dosage,
            "frequency": self.frequency,
            "duration": self.duration,
        }


@dataclass(frozen=True)
class VerificationPayload:
    prescription_id: str
    patient_id: str
    issued_at: str                  # ISO-8601, seconds precision
    medications: Tuple[PayloadMedication, ...] = ()
    has_signature: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "v": PAYLOAD_VERSION,
            "prescriptionId": self.prescription_id,
            "patientId": self.patient_id,
            "issuedAt": self.issued_at,
            "medications": [m.to_dict() for m in self.medications],
            "signed": self.has_signature,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "VerificationPayload":
        return VerificationPayload(
            prescription_id=str(d.get("prescriptionId", "")),
            patient_id=str(d.get("patientId", "")),
            issued_at=str(d.get("issuedAt", "")),
            medications=tuple(
                PayloadMedication(
                    name=str(m.get("name", "")),
                    dosage=str(m.get("dosage", "")),
                    frequency=str(m.get("frequency", "")),
                    duration=str(m.get("duration", "")),
                )
                for m in d.get("medications") or []
            ),
            has_signature=bool(d.get("signed", False)),
        )

    def serialize(self) -> str:
        """Compact, key-sorted JSON. Raises PayloadTooLargeError past the cap."""
        text = json.dumps(
            self.to_dict(), sort_keys=True, separators=(",", ":"), ensure_ascii=False
        )
        size = len(text.encode("utf-8"))
        if size > MAX_PAYLOAD_BYTES:
            raise PayloadTooLargeError(
                f"Verification payload is {size} bytes (limit {MAX_PAYLOAD_BYTES})"
            )
        return text


def build_payload(prescription: Prescription, issued_at: datetime) -> VerificationPayload:
    return VerificationPayload(
        prescription_id=prescription.prescription_id,
        patient_id=prescription.patient_id,
        issued_at=issued_at.isoformat(timespec="seconds"),
        medications=tuple(
            PayloadMedication(m.name, m.dosage, m.frequency, m.duration)
            for m in prescription.medications
        ),
        has_signature=prescription.has_signature,
    )


def qr_side_px(elements: Iterable[TemplateElement]) -> int:
    """Pixel side for the QR image: the first visible qr element's box."""
    for elem in elements:
        if elem.type == "qr" and elem.is_visible:
            side = int(min(elem.size.width, elem.size.height))
            return max(MIN_QR_SIDE_PX, side)
    return MIN_QR_SIDE_PX


def encode_payload(payload: VerificationPayload, side_px: int) -> bytes:
    """Serialize and encode to QR PNG bytes, mapping encoder faults to PayloadError."""
    data = payload.serialize()
    try:
        return render_qr_png(data, side_px)
    except BarcodeValidationError as exc:
        raise PayloadTooLargeError(str(exc)) from exc
    except BarcodeEncodingError as exc:
        raise PayloadEncodingError(str(exc)) from exc


def report_fault(exc: BaseException, prescription_id: str = "") -> None:
    print(
        f"[QR] payload fault for prescription {prescription_id or '?'}: "
        f"{type(exc).__name__}: {exc}",
        file=sys.stderr,
    )


# --- Live composer --------------------------------------------------------


class PayloadComposer:
    """
    Keeps the QR image current while a prescription is being composed.

    update() rebuilds the payload when a medication, patient or diagnosis
    field changed since the last build. freeze() pins the current payload;
    any later update raises PayloadFrozenError. Callers debounce update()
    on field edits.
    """

    def __init__(
        self,
        prescription: Prescription,
        side_px: int = 100,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._prescription = prescription
        self.side_px = max(MIN_QR_SIDE_PX, int(side_px))
        self._clock = clock or datetime.now
        self._frozen = False
        self._fingerprint: Optional[tuple] = None
        self.payload: Optional[VerificationPayload] = None
        self.png: Optional[bytes] = None
        self.error: Optional[PayloadError] = None
        self.generation = 0

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def prescription(self) -> Prescription:
        return self._prescription

    @staticmethod
    def _fingerprint_of(p: Prescription) -> tuple:
        return (
            p.prescription_id,
            p.patient_id,
            p.patient_name,
            p.diagnosis,
            p.has_signature,
            tuple(
                (m.name, m.dosage, m.frequency, m.duration, m.instructions)
                for m in p.medications
            ),
        )

    def update(self, prescription: Optional[Prescription] = None) -> bool:
        """Returns True when the payload was regenerated."""
        if self._frozen:
            raise PayloadFrozenError("Verification payload is frozen after issuance")
        if prescription is not None:
            self._prescription = prescription
        fingerprint = self._fingerprint_of(self._prescription)
        if fingerprint == self._fingerprint and self.payload is not None:
            return False
        self._fingerprint = fingerprint
        self._regenerate()
        return True

    def _regenerate(self) -> None:
        self.payload = build_payload(self._prescription, self._clock())
        self.generation += 1
        try:
            self.png = encode_payload(self.payload, self.side_px)
            self.error = None
        except PayloadError as exc:
            self.png = None
            self.error = exc
            report_fault(exc, self._prescription.prescription_id)
        if DEBUG_QR:
            print(
                f"[QR] regenerated #{self.generation} for {self._prescription.prescription_id}",
                file=sys.stderr,
            )

    def freeze(self) -> Optional[VerificationPayload]:
        if not self._frozen:
            if self.payload is None:
                self.update()
            self._frozen = True
        return self.payload
