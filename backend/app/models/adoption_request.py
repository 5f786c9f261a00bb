"""
PetNet Backend: Adoption Request SQLAlchemy Model
===================================================

What:  ORM model for the `adoption_requests` table.

State Machine:
    pending ──→ approved   (terminal: never modified again)
       │  ↑
       ↓  │
    rejected ──→ approved

    Approval closes the publication and rejects every other pending request
    on it (see AdoptionRequestService.change_status).

Constraints:
    UNIQUE (requester_id, publication_id): one request per user per listing.
    publication_id ON DELETE CASCADE: requests disappear with their listing.
"""

import enum
from typing import TYPE_CHECKING

from sqlalchemy import Enum, ForeignKey, Index, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

if TYPE_CHECKING:
    from app.models.publication import Publication
    from app.models.user import User


class RequestState(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AdoptionRequest(Base):
    __tablename__ = "adoption_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    state: Mapped[RequestState] = mapped_column(
        Enum(
            RequestState,
            name="adoption_request_state",
            native_enum=False,
            length=20,
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
        default=RequestState.PENDING,
    )

    requester_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )
    publication_id: Mapped[int] = mapped_column(
        ForeignKey("publications.id", ondelete="CASCADE"),
        nullable=False,
    )

    requester: Mapped["User"] = relationship(back_populates="adoption_requests")
    publication: Mapped["Publication"] = relationship(back_populates="adoption_requests")

    __table_args__ = (
        UniqueConstraint(
            "requester_id",
            "publication_id",
            name="uq_adoption_requests_requester_publication",
        ),
        Index("idx_adoption_requests_publication_state", "publication_id", "state"),
    )

    def __repr__(self) -> str:
        return (
            f"<AdoptionRequest(id={self.id}, publication_id={self.publication_id}, "
            f"state='{self.state.value}')>"
        )
