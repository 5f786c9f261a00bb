# Importing every model registers it on Base.metadata (Alembic, create_all).
from app.models.adoption_request import AdoptionRequest, RequestState
from app.models.publication import Availability, Pet, Publication, Sex, Size, Species
from app.models.user import User

__all__ = [
    "AdoptionRequest",
    "Availability",
    "Pet",
    "Publication",
    "RequestState",
    "Sex",
    "Size",
    "Species",
    "User",
]
