"""
PetNet Backend: Publication Request/Response Schemas
======================================================

What:  Pydantic models for the publication endpoints.
How:   Input models validate pet fields against their closed domains
       (species, sex, size) and the photo against the accepted data URI
       format. FastAPI turns failures into 400 responses with a field-level
       error list (see the RequestValidationError handler in main.py).
"""

import re
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from app.models.publication import Availability, Sex, Size, Species

# Frontend sends compressed images inline as data URIs.
PHOTO_DATA_URI_PATTERN = re.compile(r"^data:image/(jpeg|jpg|png|gif|webp);base64,")
# Roughly 5MB of image once base64 overhead is accounted for.
MAX_PHOTO_LENGTH = 7_000_000


def _validate_photo(value: str) -> str:
    if not PHOTO_DATA_URI_PATTERN.match(value):
        raise ValueError(
            "Photo must be a base64 image data URI (data:image/jpeg;base64,...)"
        )
    if len(value) > MAX_PHOTO_LENGTH:
        raise ValueError("Photo is too large (maximum 5MB)")
    return value


# ══════════════════════════════════════════════════════════════════════════
# Input Models
# ══════════════════════════════════════════════════════════════════════════


class PetAttributes(BaseModel):
    """Pet fields shared by create and edit."""

    name: str = Field(min_length=1, max_length=100, description="Pet name")
    species: Species = Field(description="dog, cat, bird or rabbit")
    sex: Sex = Field(description="male or female")
    size: Size = Field(description="small, medium or large")
    description: str = Field(min_length=1, description="Free-text description")

    @field_validator("name", "description")
    @classmethod
    def not_blank(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Field must not be blank")
        return stripped


class PublicationCreate(PetAttributes):
    """Body of POST /api/publications. The photo is mandatory."""

    photo: str = Field(description="Image data URI")

    @field_validator("photo")
    @classmethod
    def validate_photo(cls, v: str) -> str:
        return _validate_photo(v)


class PublicationUpdate(PetAttributes):
    """
    Body of PUT /api/publications/{id}.

    Photo is optional (omitted keeps the current one). Availability may be
    sent by the edit form; it must agree with the publication's request
    history or the edit is rejected.
    """

    photo: Optional[str] = Field(default=None, description="Replacement image data URI")
    availability: Optional[Availability] = Field(default=None)

    @field_validator("photo")
    @classmethod
    def validate_photo(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _validate_photo(v)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class PetResponse(BaseModel):
    id: int
    name: str
    species: Species
    sex: Sex
    size: Size
    description: str

    model_config = {"from_attributes": True}


class PetSummary(BaseModel):
    name: str
    species: Species

    model_config = {"from_attributes": True}


class PublicationResponse(BaseModel):
    id: int
    photo: str
    availability: Availability
    owner_id: int
    pet: Optional[PetResponse] = None

    model_config = {"from_attributes": True}


class PublicationMutationResponse(BaseModel):
    """Returned by create (201) and edit (200)."""

    message: str
    publication: PublicationResponse


class AvailablePublicationItem(BaseModel):
    """Marketplace card: photo plus the pet's name and species."""

    id: int
    availability: Availability
    photo: str
    pet: Optional[PetSummary] = None

    model_config = {"from_attributes": True}


class AvailablePublicationListResponse(BaseModel):
    """
    GET /api/publications/available.

    An empty marketplace is a normal answer, not an error: `publications`
    is empty and `message` says so.
    """

    publications: List[AvailablePublicationItem]
    message: Optional[str] = None


class PublicationListResponse(BaseModel):
    publications: List[PublicationResponse]


class OwnerContact(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str
    phone: str
    province: str
    locality: str

    model_config = {"from_attributes": True}


class PublicationDetailResponse(BaseModel):
    id: int
    photo: str
    availability: Availability
    pet: Optional[PetResponse] = None
    owner: OwnerContact

    model_config = {"from_attributes": True}
