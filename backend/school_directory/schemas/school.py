"""
School Directory Backend — Pydantic Request/Response Schemas
==============================================================

What:  Pydantic models defining the API contract.
Why:   Field validation at the boundary and a single place where `contact`
       crosses between its wire form (decimal string) and its stored form
       (64-bit integer).
Who:   Used by route handlers and by SchoolService to build responses.

Contact encoding:
    Ten-digit numbers fit in a 64-bit integer but not in every JSON reader's
    number type without care, so `contact` is always a string on the wire.
    `SchoolResponse` zero-pads the stored int back to ten digits; `contact_as_int()`
    converts validated input back.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


# ASCII only: \d would also accept other Unicode digits, which int() silently folds
CONTACT_PATTERN = r"^[0-9]{10}$"


# ══════════════════════════════════════════════════════════════════════════
# Request Models: validated form fields
# ══════════════════════════════════════════════════════════════════════════


class SchoolCreate(BaseModel):
    """
    What:  Fields required to create a school (the image travels separately).
    Who:   Built by POST /api/schools from multipart form fields.
    """
    name: str = Field(min_length=1, description="School name")
    address: str = Field(min_length=1, description="Street address")
    city: str = Field(min_length=1, description="City")
    state: str = Field(min_length=1, description="State")
    contact: str = Field(pattern=CONTACT_PATTERN, description="10-digit phone number")
    email_id: EmailStr = Field(description="Contact email address")

    @field_validator("name", "address", "city", "state", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    def contact_as_int(self) -> int:
        return int(self.contact)


class SchoolUpdate(BaseModel):
    """
    What:  Any subset of the create fields.
    How:   Omitted fields stay unset; `changes()` returns only supplied values,
           with `contact` already converted to its stored int form.
    """
    name: Optional[str] = Field(default=None, min_length=1)
    address: Optional[str] = Field(default=None, min_length=1)
    city: Optional[str] = Field(default=None, min_length=1)
    state: Optional[str] = Field(default=None, min_length=1)
    contact: Optional[str] = Field(default=None, pattern=CONTACT_PATTERN)
    email_id: Optional[EmailStr] = None

    @field_validator("name", "address", "city", "state", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    def changes(self) -> dict:
        values = self.model_dump(exclude_unset=True, exclude_none=True)
        if "contact" in values:
            values["contact"] = int(values["contact"])
        return values


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class SchoolResponse(BaseModel):
    """
    What:  A school as returned by GET /api/schools.
    Note:  `image_key` is internal and deliberately not exposed.
    """
    id: int = Field(description="School identifier")
    name: str
    address: str
    city: str
    state: str
    contact: str = Field(description="10-digit phone number as a decimal string")
    email_id: str
    image: str = Field(description="Image path (local backend) or URL (remote backend)")
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @field_validator("contact", mode="before")
    @classmethod
    def contact_to_string(cls, v: Any) -> Any:
        # BIGINT column → zero-padded str; never emitted as a JSON number
        return f"{v:010d}" if isinstance(v, int) else v


class MessageResponse(BaseModel):
    """Confirmation body for create, update and delete."""
    message: str
    id: Optional[int] = Field(default=None, description="Identifier of the created school")


class ErrorResponse(BaseModel):
    """
    What:  Error body shared by every endpoint.

    Example:
        {
            "error": "Failed to save school to database",
            "details": "IntegrityError: NOT NULL constraint failed: schools.city",
            "request_id": "1f2e3d4c"
        }
    """
    error: str = Field(description="Human-readable error message")
    details: Optional[Any] = Field(default=None, description="Secondary detail message")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check body: service status plus dependency reachability."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str
    database: str = Field(description="connected or disconnected")
    storage: str = Field(description="Backend name and reachability, e.g. 'local:available'")
    uptime_seconds: float
