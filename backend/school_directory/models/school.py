"""
School Directory Backend — School SQLAlchemy Model
====================================================

What:  ORM model representing the `schools` table.
Who:   Used by SchoolService for CRUD operations and by Alembic.

Table Design Rationale:
    - Integer primary key: assigned by the database on insert, immutable
    - contact: BIGINT, since ten digits overflow a 32-bit INTEGER (max 2147483647)
    - image: display reference handed to clients (relative path or URL)
    - image_key: Blob Store identifier used for deletion; stored explicitly so
      it never has to be parsed back out of the display URL
    - created_at: UTC with timezone
"""

from datetime import datetime, timezone

from sqlalchemy import BigInteger, DateTime, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from school_directory.database import Base


class School(Base):
    """
    A school in the directory.

    Lifecycle:
        1. Created by SchoolService.create_school() together with its image
        2. Fields and/or image replaced by SchoolService.update_school()
        3. Removed by SchoolService.delete_school(); the image is cleaned up
    """

    __tablename__ = "schools"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str] = mapped_column(String(500), nullable=False)
    city: Mapped[str] = mapped_column(String(255), nullable=False)
    state: Mapped[str] = mapped_column(String(255), nullable=False)

    # Ten-digit phone number; serialized as a string on the wire
    contact: Mapped[int] = mapped_column(BigInteger, nullable=False)

    email_id: Mapped[str] = mapped_column(String(320), nullable=False)

    # Format: /schoolImages/<ts>-<name> (local) or https://... (s3)
    image: Mapped[str] = mapped_column(
        String(1024),
        nullable=False,
        comment="Display reference: public relative path or absolute URL",
    )

    # Format: <ts>-<name> (local filename) or schoolImages/<ts>-<stem> (s3 key)
    image_key: Mapped[str] = mapped_column(
        String(1024),
        nullable=False,
        comment="Blob Store identifier of the image",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<School(id={self.id}, name='{self.name}', city='{self.city}')>"
