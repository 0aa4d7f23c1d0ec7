"""
Persistence for patients and therapists.
"""

from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from models import Patient, Therapist


class PatientRepository:
    """Queries and writes on the patients table."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, patient_id: int) -> Optional[Patient]:
        return self.db.query(Patient).filter(Patient.id == patient_id).first()

    def list(self) -> List[Patient]:
        """All patients, by last name then first name."""
        return (
            self.db.query(Patient)
            .order_by(Patient.last_name, Patient.first_name, Patient.id)
            .all()
        )

    def search(self, term: str) -> List[Patient]:
        """Patients whose first name, last name or email contains the term (case-insensitive)."""
        pattern = f"%{term}%"
        return (
            self.db.query(Patient)
            .filter(or_(
                Patient.first_name.ilike(pattern),
                Patient.last_name.ilike(pattern),
                Patient.email.ilike(pattern),
            ))
            .order_by(Patient.last_name, Patient.first_name, Patient.id)
            .all()
        )

    def add(self, patient: Patient) -> Patient:
        self.db.add(patient)
        self.db.flush()
        return patient


class TherapistRepository:
    """Queries and writes on the therapists table."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, therapist_id: int) -> Optional[Therapist]:
        return self.db.query(Therapist).filter(Therapist.id == therapist_id).first()

    def list(self) -> List[Therapist]:
        return self.db.query(Therapist).order_by(Therapist.name, Therapist.id).all()

    def add(self, therapist: Therapist) -> Therapist:
        self.db.add(therapist)
        self.db.flush()
        return therapist
