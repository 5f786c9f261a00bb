"""Create users, publications, pets and adoption_requests tables

Revision ID: 001
Revises: None
Create Date: 2025-10-22 00:00:00.000000+00:00

What:  Initial PetNet schema.
How:   Enumerations are stored as VARCHAR(20) with CHECK constraints
       (native_enum=False) so the same migration runs on SQLite and
       PostgreSQL. Deleting a publication cascades to its pet and requests.

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _enum(name: str, *values: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False, length=20)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("phone", sa.String(50), nullable=False, server_default=""),
        sa.Column("province", sa.String(100), nullable=False, server_default=""),
        sa.Column("locality", sa.String(100), nullable=False, server_default=""),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "publications",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("photo", sa.Text(), nullable=False, comment="Image data URI"),
        sa.Column(
            "availability",
            _enum("publication_availability", "available", "unavailable"),
            nullable=False,
            server_default="available",
        ),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_publications"),
        sa.ForeignKeyConstraint(
            ["owner_id"], ["users.id"],
            name="fk_publications_owner_id_users",
            ondelete="RESTRICT",
        ),
    )
    op.create_index("idx_publications_owner_id", "publications", ["owner_id"])
    op.create_index("idx_publications_availability", "publications", ["availability"])

    op.create_table(
        "pets",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("species", _enum("pet_species", "dog", "cat", "bird", "rabbit"), nullable=False),
        sa.Column("sex", _enum("pet_sex", "male", "female"), nullable=False),
        sa.Column("size", _enum("pet_size", "small", "medium", "large"), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("publication_id", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_pets"),
        # One pet per publication.
        sa.UniqueConstraint("publication_id", name="uq_pets_publication_id"),
        sa.ForeignKeyConstraint(
            ["publication_id"], ["publications.id"],
            name="fk_pets_publication_id_publications",
            ondelete="CASCADE",
        ),
    )

    op.create_table(
        "adoption_requests",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column(
            "state",
            _enum("adoption_request_state", "pending", "approved", "rejected"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("requester_id", sa.Integer(), nullable=False),
        sa.Column("publication_id", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_adoption_requests"),
        sa.UniqueConstraint(
            "requester_id", "publication_id",
            name="uq_adoption_requests_requester_publication",
        ),
        sa.ForeignKeyConstraint(
            ["requester_id"], ["users.id"],
            name="fk_adoption_requests_requester_id_users",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["publication_id"], ["publications.id"],
            name="fk_adoption_requests_publication_id_publications",
            ondelete="CASCADE",
        ),
    )
    op.create_index(
        "idx_adoption_requests_publication_state",
        "adoption_requests",
        ["publication_id", "state"],
    )


def downgrade() -> None:
    op.drop_index("idx_adoption_requests_publication_state", table_name="adoption_requests")
    op.drop_table("adoption_requests")
    op.drop_table("pets")
    op.drop_index("idx_publications_availability", table_name="publications")
    op.drop_index("idx_publications_owner_id", table_name="publications")
    op.drop_table("publications")
    op.drop_table("users")
