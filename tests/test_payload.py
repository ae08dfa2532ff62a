"""
Tests for QR rendering and the verification payload.
"""
import json
from datetime import datetime

import pytest

from rx_designer.core import barcodes
from rx_designer.core.barcodes import (
    BarcodeValidationError,
    png_size,
    render_qr_png,
    validate_qr_data,
)
from rx_designer.core.bindings import Medication, Prescription
from rx_designer.core.geometry import Position, Size
from rx_designer.core.models import TemplateElement
from rx_designer.core.payload import (
    MAX_PAYLOAD_BYTES,
    PayloadComposer,
    PayloadFrozenError,
    PayloadTooLargeError,
    VerificationPayload,
    build_payload,
    encode_payload,
    qr_side_px,
)

ISSUED = datetime(2026, 10, 17, 9, 30, 15)


def sample_rx(**kw):
    base = dict(
        prescription_id="RX-001",
        patient_id="P-77",
        patient_name="Ana",
        diagnosis="Faringitis",
        medications=[Medication("Amoxicilina", "500mg", "cada 8 horas", "7 días", "con alimentos")],
        has_signature=True,
    )
    base.update(kw)
    return Prescription(**base)


class TestQrRendering:
    def test_empty_data_rejected(self):
        with pytest.raises(BarcodeValidationError):
            validate_qr_data("   ")

    def test_oversized_data_rejected(self):
        with pytest.raises(BarcodeValidationError):
            validate_qr_data("x" * (barcodes.MAX_QR_BYTES + 1))

    def test_png_matches_requested_side(self):
        png = render_qr_png("RX-001", 120)
        assert png.startswith(b"\x89PNG")
        assert png_size(png) == (120, 120)

    def test_side_never_below_minimum(self):
        assert png_size(render_qr_png("RX-001", 10)) == (barcodes.MIN_QR_SIDE_PX, barcodes.MIN_QR_SIDE_PX)

    def test_cached(self):
        barcodes.clear_cache()
        first = render_qr_png("cache-me", 80)
        assert render_qr_png("cache-me", 80) is first

    def test_cache_is_bounded(self, monkeypatch):
        """Every distinct live edit renders a new QR; old ones are evicted."""
        monkeypatch.setattr(barcodes, "QR_CACHE_SIZE", 4)
        barcodes.clear_cache()
        first = render_qr_png("edit-0", 60)
        for i in range(1, 10):
            render_qr_png(f"edit-{i}", 60)
        assert len(barcodes._QR_PNG_CACHE) == 4
        assert ("edit-0", 60, "M") not in barcodes._QR_PNG_CACHE
        assert render_qr_png("edit-0", 60) is not first
        assert render_qr_png("edit-0", 60) == first

    def test_recent_hit_survives_eviction(self, monkeypatch):
        monkeypatch.setattr(barcodes, "QR_CACHE_SIZE", 2)
        barcodes.clear_cache()
        keep = render_qr_png("keep", 60)
        render_qr_png("a", 60)
        render_qr_png("keep", 60)
        render_qr_png("b", 60)
        assert render_qr_png("keep", 60) is keep


class TestPayload:
    def test_fields_and_no_diagnosis(self):
        payload = build_payload(sample_rx(), ISSUED)
        data = json.loads(payload.serialize())
        assert data["prescriptionId"] == "RX-001"
        assert data["patientId"] == "P-77"
        assert data["issuedAt"] == "2026-10-17T09:30:15"
        assert data["signed"] is True
        assert data["medications"] == [
            {"name": "Amoxicilina", "dosage": "500mg", "frequency": "cada 8 horas", "duration": "7 días"}
        ]
        text = payload.serialize()
        assert "Faringitis" not in text
        assert "con alimentos" not in text
        assert "Ana" not in text

    def test_compact_sorted_and_deterministic(self):
        text = build_payload(sample_rx(), ISSUED).serialize()
        assert " " not in text.replace("cada 8 horas", "").replace("7 días", "")
        assert list(json.loads(text).keys()) == sorted(json.loads(text).keys())
        assert text == build_payload(sample_rx(), ISSUED).serialize()

    def test_too_large(self):
        meds = [Medication(f"Medicamento {i}", "500mg", "cada 8 horas", "30 días") for i in range(40)]
        payload = build_payload(sample_rx(medications=meds), ISSUED)
        with pytest.raises(PayloadTooLargeError):
            payload.serialize()
        with pytest.raises(PayloadTooLargeError):
            encode_payload(payload, 100)

    def test_dict_round_trip(self):
        payload = build_payload(sample_rx(), ISSUED)
        assert VerificationPayload.from_dict(payload.to_dict()) == payload

    def test_encode_png(self):
        png = encode_payload(build_payload(sample_rx(), ISSUED), 150)
        assert png_size(png) == (150, 150)

    def test_qr_side_from_first_visible_qr(self):
        hidden = TemplateElement(id="h", type="qr", size=Size(300, 300), is_visible=False)
        qr = TemplateElement(id="q", type="qr", position=Position(0, 0), size=Size(120, 90))
        assert qr_side_px([hidden, qr]) == 90
        assert qr_side_px([]) == barcodes.MIN_QR_SIDE_PX


class TestComposer:
    def test_regenerates_only_on_change(self):
        composer = PayloadComposer(sample_rx(), side_px=100, clock=lambda: ISSUED)
        assert composer.update() is True
        assert composer.png is not None
        assert composer.update() is False
        assert composer.generation == 1

        changed = sample_rx(medications=[Medication("Ibuprofeno", "400mg", "cada 8 horas", "5 días")])
        assert composer.update(changed) is True
        assert composer.payload.medications[0].name == "Ibuprofeno"
        assert composer.generation == 2

    def test_diagnosis_change_regenerates(self):
        composer = PayloadComposer(sample_rx(), clock=lambda: ISSUED)
        composer.update()
        assert composer.update(sample_rx(diagnosis="Otitis")) is True

    def test_fault_recorded_not_raised(self, capsys):
        meds = [Medication(f"Medicamento {i}", "500mg", "cada 8 horas", "30 días") for i in range(40)]
        composer = PayloadComposer(sample_rx(medications=meds), clock=lambda: ISSUED)
        composer.update()
        assert composer.png is None
        assert isinstance(composer.error, PayloadTooLargeError)
        assert "[QR]" in capsys.readouterr().err

    def test_frozen_after_issue(self):
        composer = PayloadComposer(sample_rx(), clock=lambda: ISSUED)
        payload = composer.freeze()
        assert payload is not None
        assert composer.frozen
        with pytest.raises(PayloadFrozenError):
            composer.update(sample_rx(patient_id="P-99"))
        assert composer.payload.patient_id == "P-77"

    def test_payload_cap_constant(self):
        assert MAX_PAYLOAD_BYTES == 1200
