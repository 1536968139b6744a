"""SQLAlchemy table definitions.

These map to the frozen dataclass domain models in
assessment_service/models/.  Repos convert between rows and dataclasses.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import Index, Integer, String, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from assessment_service.db.engine import Base


class SubmissionRow(Base):
    __tablename__ = "assessment_submissions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    # The catalog lives outside this service, so no foreign key.
    assessment_id: Mapped[str] = mapped_column(String(128), nullable=False)
    responses: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB, nullable=False, default=list
    )
    percent_complete: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="in_progress"
    )  # in_progress|completed
    created_at: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[int | None] = mapped_column(Integer, nullable=True)
    completed_at: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        # One authoritative draft per (user, assessment).  Completed rows
        # fall out of the index, so history can accumulate.
        Index(
            "uq_assessment_submissions_active",
            "user_id",
            "assessment_id",
            unique=True,
            postgresql_where=text("status = 'in_progress'"),
        ),
    )
