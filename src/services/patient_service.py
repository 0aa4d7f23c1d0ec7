"""
Patient and therapist service.

The directory the scheduling core books against: listing, lookup and
registration of patients and therapists.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from core.exceptions import NotFoundError
from models import Patient, Therapist
from repositories import PatientRepository, TherapistRepository

logger = logging.getLogger(__name__)


class PatientService:
    """Service class for patient operations."""

    @staticmethod
    def get_patient(db: Session, patient_id: int) -> Patient:
        """
        Raises:
            NotFoundError: If the patient does not exist
        """
        patient = PatientRepository(db).get(patient_id)
        if patient is None:
            raise NotFoundError("Patient", patient_id)
        return patient

    @staticmethod
    def list_patients(db: Session, search: Optional[str] = None) -> List[Patient]:
        """
        List patients by last name, then first name.

        Args:
            db: Database session
            search: Optional term matched against names and email

        Returns:
            Matching Patient objects
        """
        patients = PatientRepository(db)
        if search and search.strip():
            return patients.search(search.strip())
        return patients.list()

    @staticmethod
    def create_patient(
        db: Session,
        first_name: str,
        last_name: str,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Patient:
        """
        Register a new patient.

        Raises:
            ValueError: If a name is blank
        """
        if not first_name.strip() or not last_name.strip():
            raise ValueError("first_name and last_name are required")

        try:
            patient = PatientRepository(db).add(Patient(
                first_name=first_name.strip(),
                last_name=last_name.strip(),
                email=email,
                phone=phone,
                notes=notes,
            ))
            db.commit()
        except Exception as e:
            logger.error(f"Failed to create patient: {e}")
            db.rollback()
            raise

        logger.info(f"Created patient {patient.id}")
        return patient


class TherapistService:
    """Service class for therapist operations."""

    @staticmethod
    def get_therapist(db: Session, therapist_id: int) -> Therapist:
        """
        Raises:
            NotFoundError: If the therapist does not exist
        """
        therapist = TherapistRepository(db).get(therapist_id)
        if therapist is None:
            raise NotFoundError("Therapist", therapist_id)
        return therapist

    @staticmethod
    def list_therapists(db: Session) -> List[Therapist]:
        return TherapistRepository(db).list()

    @staticmethod
    def create_therapist(
        db: Session,
        name: str,
        specialty: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> Therapist:
        """
        Register a new therapist.

        Raises:
            ValueError: If the name is blank
        """
        if not name.strip():
            raise ValueError("name is required")

        try:
            therapist = TherapistRepository(db).add(Therapist(
                name=name.strip(),
                specialty=specialty,
                email=email,
                phone=phone,
            ))
            db.commit()
        except Exception as e:
            logger.error(f"Failed to create therapist: {e}")
            db.rollback()
            raise

        logger.info(f"Created therapist {therapist.id}")
        return therapist
