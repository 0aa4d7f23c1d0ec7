"""
Patient API endpoints.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from api.responses import PatientListResponse, PatientResponse
from core.constants import MAX_NOTES_LENGTH, MAX_STRING_LENGTH
from core.database import get_db
from services import PatientService

logger = logging.getLogger(__name__)

router = APIRouter()


class PatientCreateRequest(BaseModel):
    """Request model for registering a patient."""
    first_name: str = Field(..., min_length=1, max_length=MAX_STRING_LENGTH)
    last_name: str = Field(..., min_length=1, max_length=MAX_STRING_LENGTH)
    email: Optional[str] = Field(None, max_length=MAX_STRING_LENGTH)
    phone: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH)


@router.get("", response_model=PatientListResponse)
async def list_patients(
    q: Optional[str] = Query(None, description="Matches first name, last name or email"),
    db: Session = Depends(get_db),
):
    """List patients by last name, optionally filtered by a search term."""
    patients = PatientService.list_patients(db, search=q)
    return PatientListResponse(patients=[PatientResponse.from_model(p) for p in patients])


@router.get("/{patient_id}", response_model=PatientResponse)
async def get_patient(patient_id: int, db: Session = Depends(get_db)):
    return PatientResponse.from_model(PatientService.get_patient(db, patient_id))


@router.post("", response_model=PatientResponse, status_code=status.HTTP_201_CREATED)
async def create_patient(request: PatientCreateRequest, db: Session = Depends(get_db)):
    patient = PatientService.create_patient(
        db,
        first_name=request.first_name,
        last_name=request.last_name,
        email=request.email,
        phone=request.phone,
        notes=request.notes,
    )
    return PatientResponse.from_model(patient)
