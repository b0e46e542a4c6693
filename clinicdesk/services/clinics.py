"""
Clinic create/update forms.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from clinicdesk.db.repositories import ClinicRepository
from clinicdesk.errors import NotFoundError, ValidationError


class ClinicForm(BaseModel):
    """Submitted clinic fields, in stored (camelCase) names."""
    clinic_name: str = Field("", alias="clinicName")
    doctor_name: str = Field("", alias="doctorName")
    clinic_mail: str = Field("", alias="clinicMail")
    clinic_number: Optional[str] = Field(None, alias="clinicNumber")
    establishment_date: Optional[str] = Field(None, alias="establishmentDate")
    location: Optional[str] = None
    panchakrma: Optional[str] = None
    number_of_patients: Optional[str] = Field(None, alias="numberOfPatients")
    revenue: Optional[str] = None

    class Config:
        populate_by_name = True

    def validate_required(self) -> None:
        if not self.clinic_name.strip() or not self.doctor_name.strip() or not self.clinic_mail.strip():
            raise ValidationError("Please fill in all required fields.")

    def to_db(self) -> dict:
        return self.model_dump(by_alias=True)


def save_clinic(
    clinics: ClinicRepository,
    owner_email: str,
    form: ClinicForm,
    clinic_id: str | None = None,
) -> str:
    """
    Create a clinic, or update one the admin owns.

    Returns the clinic id.
    """
    form.validate_required()

    if clinic_id is None:
        return clinics.create(form.to_db(), owner_email)

    if clinics.get_owned(clinic_id, owner_email) is None:
        raise NotFoundError(f"Clinic {clinic_id} not found")
    clinics.update(clinic_id, form.to_db())
    return clinic_id
