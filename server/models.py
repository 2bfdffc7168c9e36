"""Request/response models for the portal API."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from portal.schema import Credential


# ---------------------------------------------------------------------------
# POST /portal/credentials/resolve
# ---------------------------------------------------------------------------

class ResolveRequest(BaseModel):
    credential_ids: list[str] = Field(default_factory=list, max_length=500)


class ResolveResponse(BaseModel):
    credentials: list[Credential]
    missing_ids: list[str] = Field(default_factory=list)
    failed_ids: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# POST /portal/credentials
# ---------------------------------------------------------------------------

class SubmitRequest(BaseModel):
    type: str = ""
    subject_name: str = ""
    subject_id: str = ""
    institution: str = ""
    filename: str = ""
    document_b64: str = ""  # base64-encoded document bytes


# ---------------------------------------------------------------------------
# GET /portal/credentials/{credential_id}/document
# ---------------------------------------------------------------------------

class DocumentLinkResponse(BaseModel):
    credential_id: str
    cid: str
    url: str


# ---------------------------------------------------------------------------
# GET /portal/auth/config
# ---------------------------------------------------------------------------

class AuthConfigResponse(BaseModel):
    configured: bool
    domain: str = ""
    client_id: str = ""
    authorization_params: Optional[dict] = None
