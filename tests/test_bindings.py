"""
Tests for placeholder resolution and binding-context construction.
"""
from rx_designer.core.bindings import (
    DoctorIdentity,
    Medication,
    Prescription,
    build_binding_context,
    format_medications,
    resolve_placeholders,
    scan_placeholders,
    stringify_bindings,
)


class TestResolvePlaceholders:
    def test_substitutes_known_tokens(self):
        out = resolve_placeholders("Paciente: {{patientName}}", {"patientName": "Ana"})
        assert out == "Paciente: Ana"

    def test_unknown_tokens_stay_verbatim(self):
        out = resolve_placeholders("{{patientName}} / {{bloodType}}", {"patientName": "Ana"})
        assert out == "Ana / {{bloodType}}"

    def test_none_value_counts_as_missing(self):
        assert resolve_placeholders("{{date}}", {"date": None}) == "{{date}}"

    def test_empty_text(self):
        assert resolve_placeholders("", {"a": "b"}) == ""
        assert resolve_placeholders(None, {"a": "b"}) == ""

    def test_malformed_tokens_untouched(self):
        assert resolve_placeholders("{{ patientName }} {patientName}", {"patientName": "Ana"}) == (
            "{{ patientName }} {patientName}"
        )

    def test_scan(self):
        used = scan_placeholders(["{{a}} and {{b}}", None, "{{a}}"])
        assert used == {"a", "b"}


class TestBindingContext:
    def test_format_medications_block(self):
        text = format_medications([
            Medication("Amoxicilina", "500mg", "cada 8 horas", "7 días", "con alimentos"),
            Medication("Paracetamol", "500mg", "cada 6 horas", "3 días"),
        ])
        assert text == (
            "1. Amoxicilina 500mg\n"
            "   cada 8 horas por 7 días\n"
            "   Indicaciones: con alimentos\n"
            "\n"
            "2. Paracetamol 500mg\n"
            "   cada 6 horas por 3 días"
        )

    def test_build_context(self):
        rx = Prescription(
            prescription_id="RX-1",
            patient_id="P-1",
            patient_name="Ana",
            diagnosis="Gripe",
            medications=[Medication("Ibuprofeno", "400mg", "cada 8 horas", "5 días")],
        )
        ctx = build_binding_context(rx, DoctorIdentity(doctor_name="Dr. Luis"))
        assert ctx["patientName"] == "Ana"
        assert ctx["doctorName"] == "Dr. Luis"
        assert ctx["prescriptionId"] == "RX-1"
        assert ctx["medications"].startswith("1. Ibuprofeno 400mg")
        assert "date" not in ctx

    def test_prescription_from_camel_case(self):
        rx = Prescription.from_dict({
            "id": "RX-9",
            "patientName": "Ana",
            "hasSignature": True,
            "medications": [{"name": "A", "dosage": "1"}],
        })
        assert rx.prescription_id == "RX-9"
        assert rx.has_signature
        assert rx.medications[0].name == "A"

    def test_stringify(self):
        assert stringify_bindings({"a": 1, "b": None}) == {"a": "1", "b": ""}
