"""
Credential portal schema — Pydantic v2 models and result types.

Stored documents use the camelCase field names written by the web client
(``displayName``, ``credentials``/``credentialIds``, ``createdAt``); models
accept those names as well as the snake_case attribute names.

  UserProfile ──credential_ids──▶ Credential ──cid──▶ content-addressed document
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class LookupStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"


class ViewState(str, Enum):
    SIGNED_OUT = "signed_out"
    GUEST = "guest"
    READY = "ready"


class NotificationKind(str, Enum):
    CREDENTIALS_LOAD_FAILED = "credentials_load_failed"
    PROFILE_LOAD_FAILED = "profile_load_failed"
    CREDENTIAL_SUBMITTED = "credential_submitted"
    CREDENTIAL_SUBMIT_FAILED = "credential_submit_failed"
    SIGNED_OUT = "signed_out"


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


# ---------------------------------------------------------------------------
# Stored records
# ---------------------------------------------------------------------------

class UserProfile(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    display_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("display_name", "displayName"),
    )
    credential_ids: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("credential_ids", "credentialIds", "credentials"),
    )

    @field_validator("credential_ids", mode="before")
    @classmethod
    def _stored_ids(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            # Stored lists may carry blanks or non-string junk; skip those ids
            return [v for v in value if isinstance(v, str) and v]
        return value


class Credential(BaseModel):
    """A stored academic credential. ``type`` and ``cid`` are opaque strings."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    type: str = ""
    institution: str = ""
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        validation_alias=AliasChoices("created_at", "createdAt"),
    )
    cid: str = ""
    subject_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("subject_name", "subjectName"),
    )
    subject_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("subject_id", "subjectId"),
    )

    @field_validator("created_at", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> Any:
        if value is None:
            return datetime.now(timezone.utc)
        # Client SDK timestamps serialize as {"seconds": ..., "nanoseconds": ...}
        if isinstance(value, dict) and "seconds" in value:
            seconds = float(value["seconds"]) + float(value.get("nanoseconds", 0)) / 1e9
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        if isinstance(value, (int, float)):
            # Epoch milliseconds, as produced by Date.now()
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        return value

    @field_validator("created_at", mode="after")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    @property
    def year(self) -> int:
        return self.created_at.year

    def to_document(self) -> dict:
        """Field layout written to the credentials collection (id excluded)."""
        doc = {
            "type": self.type,
            "institution": self.institution,
            "createdAt": self.created_at,
            "cid": self.cid,
        }
        if self.subject_name is not None:
            doc["subjectName"] = self.subject_name
        if self.subject_id is not None:
            doc["subjectId"] = self.subject_id
        return doc


# ---------------------------------------------------------------------------
# Lookup / aggregation results
# ---------------------------------------------------------------------------

@dataclass
class LookupResult:
    """Outcome of one credential lookup."""
    credential_id: str
    status: LookupStatus
    credential: Credential | None = None
    error: str = ""

    @property
    def found(self) -> bool:
        return self.status == LookupStatus.FOUND


@dataclass
class CredentialAggregate:
    """All-settle result of resolving a list of credential ids."""
    credentials: list[Credential] = field(default_factory=list)
    missing_ids: list[str] = field(default_factory=list)
    failed_ids: list[str] = field(default_factory=list)

    @property
    def requested(self) -> int:
        return len(self.credentials) + len(self.missing_ids) + len(self.failed_ids)

    @property
    def resolved_ids(self) -> set[str]:
        return {c.id for c in self.credentials}


# ---------------------------------------------------------------------------
# Upload path
# ---------------------------------------------------------------------------

@dataclass
class CredentialDraft:
    """Fields submitted by the institution upload form."""
    type: str = ""
    subject_name: str = ""
    subject_id: str = ""
    institution: str = ""
    filename: str = ""
    document: bytes = b""


class UploadAck(BaseModel):
    credential_id: str
    cid: str
    subject_id: str


# ---------------------------------------------------------------------------
# Caller-facing view
# ---------------------------------------------------------------------------

class Notification(BaseModel):
    """Semantic outcome for the presentation layer to turn into a toast."""
    kind: NotificationKind
    level: NotificationLevel = NotificationLevel.ERROR
    count: int = 0
    detail: str = ""


class DashboardStats(BaseModel):
    total: int = 0
    by_type: dict[str, int] = Field(default_factory=dict)


class DashboardView(BaseModel):
    state: ViewState
    profile: Optional[UserProfile] = None
    credentials: list[Credential] = Field(default_factory=list)
    notifications: list[Notification] = Field(default_factory=list)
    stats: DashboardStats = Field(default_factory=DashboardStats)

    @property
    def is_empty(self) -> bool:
        return not self.credentials
