"""
core/bindings.py - Prescription records and placeholder resolution.

Placeholders look like {{patientName}}. Tokens with no value in the binding
context are left verbatim so a missing binding never breaks rendering.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Set


PLACEHOLDER_PATTERN = re.compile(r"\{\{([a-zA-Z_][a-zA-Z0-9_]*)\}\}")

BindingContext = Dict[str, str]


@dataclass
class Medication:
    name: str = ""
    dosage: str = ""
    frequency: str = ""
    duration: str = ""
    instructions: str = ""

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "Medication":
        return Medication(
            name=str(d.get("name") or ""),
            dosage=str(d.get("dosage") or ""),
            frequency=str(d.get("frequency") or ""),
            duration=str(d.get("duration") or ""),
            instructions=str(d.get("instructions") or ""),
        )


@dataclass
class Prescription:
    """The slice of a prescription record the layout engine consumes."""
    prescription_id: str
    patient_id: str = ""
    patient_name: str = ""
    diagnosis: str = ""
    medications: List[Medication] = field(default_factory=list)
    notes: str = ""
    patient_age: str = ""
    patient_weight: str = ""
    follow_up_date: str = ""
    date: Optional[str] = None
    has_signature: bool = False

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "Prescription":
        return Prescription(
            prescription_id=str(d.get("prescriptionId") or d.get("id") or ""),
            patient_id=str(d.get("patientId") or ""),
            patient_name=str(d.get("patientName") or ""),
            diagnosis=str(d.get("diagnosis") or ""),
            medications=[Medication.from_dict(m) for m in d.get("medications") or []],
            notes=str(d.get("notes") or ""),
            patient_age=str(d.get("patientAge") or ""),
            patient_weight=str(d.get("patientWeight") or ""),
            follow_up_date=str(d.get("followUpDate") or ""),
            date=d.get("date"),
            has_signature=bool(d.get("hasSignature", False)),
        )


@dataclass
class DoctorIdentity:
    """Values supplied by the identity/session service."""
    doctor_name: str = ""
    doctor_license: str = ""
    clinic_name: str = ""
    clinic_phone: str = ""
    clinic_address: str = ""
    clinic_email: str = ""


def format_medications(medications: List[Medication]) -> str:
    """
    Pre-format the medication list as the multi-line block bound to
    {{medications}}:

        1. Amoxicilina 500mg
           cada 8 horas por 7 días
           Indicaciones: tomar con alimentos
    """
    blocks = []
    for index, med in enumerate(medications, start=1):
        lines = [
            f"{index}. {med.name} {med.dosage}".rstrip(),
            f"   {med.frequency} por {med.duration}",
        ]
        if med.instructions:
            lines.append(f"   Indicaciones: {med.instructions}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def build_binding_context(
    prescription: Prescription,
    identity: Optional[DoctorIdentity] = None,
) -> BindingContext:
    """Flatten a prescription (and the signed-in doctor) into placeholder values."""
    identity = identity or DoctorIdentity()
    ctx: BindingContext = {
        "prescriptionId": prescription.prescription_id,
        "patientId": prescription.patient_id,
        "patientName": prescription.patient_name,
        "diagnosis": prescription.diagnosis,
        "medications": format_medications(prescription.medications),
        "notes": prescription.notes,
        "patientAge": prescription.patient_age,
        "patientWeight": prescription.patient_weight,
        "followUpDate": prescription.follow_up_date,
        "doctorName": identity.doctor_name,
        "doctorLicense": identity.doctor_license,
        "clinicName": identity.clinic_name,
        "clinicPhone": identity.clinic_phone,
        "clinicAddress": identity.clinic_address,
        "clinicEmail": identity.clinic_email,
    }
    if prescription.date:
        ctx["date"] = prescription.date
    return ctx


def resolve_placeholders(text: Optional[str], bindings: Mapping[str, Any]) -> str:
    """Substitute every {{token}} found in *bindings*; leave the rest as-is."""
    if not text:
        return ""

    def _replace(m: re.Match) -> str:
        name = m.group(1)
        if name not in bindings or bindings[name] is None:
            return m.group(0)
        return str(bindings[name])

    return PLACEHOLDER_PATTERN.sub(_replace, text)


def scan_placeholders(texts) -> Set[str]:
    """Return the set of placeholder names used across *texts*."""
    used: Set[str] = set()
    for text in texts:
        if text:
            used.update(PLACEHOLDER_PATTERN.findall(text))
    return used


def stringify_bindings(bindings: Mapping[str, Any]) -> BindingContext:
    """Coerce every bound value to a plain string (None becomes "")."""
    return {str(k): "" if v is None else str(v) for k, v in bindings.items()}
