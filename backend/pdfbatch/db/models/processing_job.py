"""
ProcessingJob — one row per submitted batch.

The only channel through which clients observe a batch: status,
processed/total progress, accumulated error strings and, once
completed, where the result archive lives.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from pdfbatch.db.models.base import Base, JSONType, generate_uuid, utcnow


class ProcessingJob(Base):
    """One row per batch submission."""

    __tablename__ = "processing_jobs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    operation: Mapped[str] = mapped_column(String(20), nullable=False)

    # ── Status / Progress ────────────────────
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="queued", index=True)
    total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    file_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # ── Outcome ───────────────────────────────
    errors: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    result_location: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    total_size_bytes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # ── Timestamps (UTC) ─────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<ProcessingJob {self.id} op={self.operation} status={self.status} {self.processed}/{self.total}>"
