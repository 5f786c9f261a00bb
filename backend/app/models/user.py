"""
PetNet Backend: User SQLAlchemy Model
=======================================

What:  ORM model for the `users` table.
Who:   Read by the adoption-request lifecycle (requester contact data for
       notifications) and the publication detail view (owner contact data).

Users are created by the registration service, which is outside this
backend's scope. Nothing here creates, edits or deletes them.
"""

from typing import TYPE_CHECKING, List

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

if TYPE_CHECKING:
    from app.models.adoption_request import AdoptionRequest
    from app.models.publication import Publication


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    province: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    locality: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    publications: Mapped[List["Publication"]] = relationship(back_populates="owner")
    adoption_requests: Mapped[List["AdoptionRequest"]] = relationship(
        back_populates="requester"
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
