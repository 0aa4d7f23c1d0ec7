"""
Therapist API endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from api.responses import TherapistListResponse, TherapistResponse
from core.constants import MAX_STRING_LENGTH
from core.database import get_db
from services import TherapistService

router = APIRouter()


class TherapistCreateRequest(BaseModel):
    """Request model for registering a therapist."""
    name: str = Field(..., min_length=1, max_length=MAX_STRING_LENGTH)
    specialty: Optional[str] = Field(None, max_length=MAX_STRING_LENGTH)
    email: Optional[str] = Field(None, max_length=MAX_STRING_LENGTH)
    phone: Optional[str] = Field(None, max_length=50)


@router.get("", response_model=TherapistListResponse)
async def list_therapists(db: Session = Depends(get_db)):
    therapists = TherapistService.list_therapists(db)
    return TherapistListResponse(therapists=[TherapistResponse.from_model(t) for t in therapists])


@router.get("/{therapist_id}", response_model=TherapistResponse)
async def get_therapist(therapist_id: int, db: Session = Depends(get_db)):
    return TherapistResponse.from_model(TherapistService.get_therapist(db, therapist_id))


@router.post("", response_model=TherapistResponse, status_code=status.HTTP_201_CREATED)
async def create_therapist(request: TherapistCreateRequest, db: Session = Depends(get_db)):
    therapist = TherapistService.create_therapist(
        db,
        name=request.name,
        specialty=request.specialty,
        email=request.email,
        phone=request.phone,
    )
    return TherapistResponse.from_model(therapist)
