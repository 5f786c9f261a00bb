"""
PetNet Backend: Publication and Pet SQLAlchemy Models
=======================================================

What:  ORM models for the `publications` and `pets` tables.
How:   A publication is an adoption listing; its pet is the descriptive
       payload. The relationship is one-to-one, enforced by a UNIQUE
       foreign key on `pets.publication_id`.

Availability State:
    available    Listed in the marketplace, accepts adoption requests
    unavailable  The publication has an approved adoption request

    The adoption-request lifecycle flips `available → unavailable` when a
    request is approved. Nothing flips it back: approval is terminal.

Deletion:
    `pets.publication_id` and `adoption_requests.publication_id` are
    declared ON DELETE CASCADE. Deleting a publication row removes its pet
    and every request for it inside the database; the ORM relationships use
    passive_deletes so SQLAlchemy does not try to do the same work itself.
"""

import enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

if TYPE_CHECKING:
    from app.models.adoption_request import AdoptionRequest
    from app.models.user import User


class Availability(str, enum.Enum):
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


class Species(str, enum.Enum):
    DOG = "dog"
    CAT = "cat"
    BIRD = "bird"
    RABBIT = "rabbit"


class Sex(str, enum.Enum):
    MALE = "male"
    FEMALE = "female"


class Size(str, enum.Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


def _enum_column(enum_cls: type[enum.Enum], name: str) -> Enum:
    # Stored as VARCHAR holding the lowercase value, not the member name.
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda members: [m.value for m in members],
    )


class Publication(Base):
    """
    An adoption listing owned by a user.

    Lifecycle:
        1. Created by its owner together with its pet (availability='available')
        2. Edited by its owner (pet fields, photo)
        3. Closed by the request lifecycle when a request is approved
        4. Deleted by its owner; pet and requests go with it
    """

    __tablename__ = "publications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Image data URI (data:image/...;base64,...) uploaded by the frontend.
    photo: Mapped[str] = mapped_column(Text, nullable=False)

    availability: Mapped[Availability] = mapped_column(
        _enum_column(Availability, "publication_availability"),
        nullable=False,
        default=Availability.AVAILABLE,
    )

    owner_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )

    owner: Mapped["User"] = relationship(back_populates="publications")
    pet: Mapped[Optional["Pet"]] = relationship(
        back_populates="publication",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    adoption_requests: Mapped[List["AdoptionRequest"]] = relationship(
        back_populates="publication",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_publications_owner_id", "owner_id"),
        Index("idx_publications_availability", "availability"),
    )

    def __repr__(self) -> str:
        return (
            f"<Publication(id={self.id}, owner_id={self.owner_id}, "
            f"availability='{self.availability.value}')>"
        )


class Pet(Base):
    """Descriptive payload of exactly one publication."""

    __tablename__ = "pets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    species: Mapped[Species] = mapped_column(_enum_column(Species, "pet_species"), nullable=False)
    sex: Mapped[Sex] = mapped_column(_enum_column(Sex, "pet_sex"), nullable=False)
    size: Mapped[Size] = mapped_column(_enum_column(Size, "pet_size"), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    publication_id: Mapped[int] = mapped_column(
        ForeignKey("publications.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    publication: Mapped["Publication"] = relationship(back_populates="pet")

    def __repr__(self) -> str:
        return f"<Pet(id={self.id}, name='{self.name}', species='{self.species.value}')>"
