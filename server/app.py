"""
Credential portal FastAPI server.

Endpoints:
  GET  /portal/dashboard                             — dashboard view for X-User-Id
  GET  /portal/profiles/{user_id}                    — profile record
  POST /portal/credentials/resolve                   — aggregate credential lookup
  POST /portal/credentials                           — submit a new credential
  GET  /portal/credentials/{credential_id}/document  — gateway link for the document
  GET  /portal/auth/config                           — identity provider client settings

Authentication happens upstream; the verified user id arrives in the
X-User-Id header. A missing header is the signed-out state.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Optional

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from portal.aggregator import aggregate_credentials, lookup_credential
from portal.config import IdentityProviderConfig, PortalConfig
from portal.content import ContentStore, InMemoryContentStore, gateway_url
from portal.dashboard import DashboardLoader
from portal.demo import get_demo_store
from portal.errors import (
    InvalidRequestError,
    MalformedRecordError,
    ProfileNotFound,
    ReconciliationError,
    SubmissionValidationError,
    TransientStoreError,
)
from portal.profile import resolve_profile
from portal.schema import (
    CredentialDraft,
    DashboardView,
    LookupStatus,
    UploadAck,
    UserProfile,
)
from portal.session import AuthSession, Identity
from portal.store import DocumentStore
from portal.upload import submit_credential

from .models import (
    AuthConfigResponse,
    DocumentLinkResponse,
    ResolveRequest,
    ResolveResponse,
    SubmitRequest,
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Credential Portal",
    description="Academic credential lookup and submission",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Global state (one store per process)
# ---------------------------------------------------------------------------
_config: PortalConfig | None = None
_store: DocumentStore | None = None
_content: ContentStore | None = None


def get_config() -> PortalConfig:
    global _config
    if _config is None:
        _config = PortalConfig.from_env()
    return _config


def get_store() -> DocumentStore:
    global _store
    if _store is None:
        config = get_config()
        if config.firestore_project_id:
            from portal.firestore import FirestoreRestStore
            _store = FirestoreRestStore(
                config.firestore_project_id, api_key=config.firestore_api_key
            )
        else:
            logger.info("FIRESTORE_PROJECT_ID not set; serving demo data")
            _store = get_demo_store()
    return _store


def get_content_store() -> ContentStore:
    global _content
    if _content is None:
        _content = InMemoryContentStore()
    return _content


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

@app.exception_handler(ProfileNotFound)
async def _profile_not_found(request: Request, exc: ProfileNotFound):
    return JSONResponse(status_code=404, content={"detail": "profile_not_found", "user_id": exc.user_id})


@app.exception_handler(TransientStoreError)
async def _transient(request: Request, exc: TransientStoreError):
    return JSONResponse(status_code=503, content={"detail": "store_unavailable", "retryable": True})


@app.exception_handler(MalformedRecordError)
async def _malformed_record(request: Request, exc: MalformedRecordError):
    return JSONResponse(
        status_code=502,
        content={"detail": "malformed_record", "collection": exc.collection, "id": exc.doc_id},
    )


@app.exception_handler(SubmissionValidationError)
async def _invalid_submission(request: Request, exc: SubmissionValidationError):
    return JSONResponse(status_code=422, content={"detail": "validation_error", "fields": exc.fields})


@app.exception_handler(ReconciliationError)
async def _reconciliation(request: Request, exc: ReconciliationError):
    return JSONResponse(
        status_code=409,
        content={
            "detail": "reconciliation_required",
            "credential_id": exc.credential_id,
            "cid": exc.cid,
            "subject_id": exc.subject_id,
        },
    )


@app.exception_handler(InvalidRequestError)
async def _invalid_request(request: Request, exc: InvalidRequestError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


# ---------------------------------------------------------------------------
# GET /portal/dashboard
# ---------------------------------------------------------------------------

@app.get("/portal/dashboard", response_model=DashboardView)
async def dashboard(
    x_user_id: Optional[str] = Header(default=None),
    x_user_name: Optional[str] = Header(default=None),
):
    """Dashboard for the signed-in user; signed-out view without a user id."""
    session = AuthSession()
    if x_user_id:
        session.sign_in(Identity(user_id=x_user_id, name=x_user_name or ""))
    loader = DashboardLoader(get_store(), get_config())
    return await loader.build(session)


# ---------------------------------------------------------------------------
# GET /portal/profiles/{user_id}
# ---------------------------------------------------------------------------

@app.get("/portal/profiles/{user_id}", response_model=UserProfile)
async def profile(user_id: str):
    return await resolve_profile(get_store(), user_id, get_config())


# ---------------------------------------------------------------------------
# POST /portal/credentials/resolve
# ---------------------------------------------------------------------------

@app.post("/portal/credentials/resolve", response_model=ResolveResponse)
async def resolve(req: ResolveRequest):
    """Resolve a list of credential ids; unresolvable ids are reported, not fatal."""
    aggregate = await aggregate_credentials(get_store(), req.credential_ids, get_config())
    return ResolveResponse(
        credentials=aggregate.credentials,
        missing_ids=aggregate.missing_ids,
        failed_ids=aggregate.failed_ids,
    )


# ---------------------------------------------------------------------------
# POST /portal/credentials
# ---------------------------------------------------------------------------

@app.post("/portal/credentials", response_model=UploadAck, status_code=201)
async def submit(req: SubmitRequest, x_user_id: Optional[str] = Header(default=None)):
    """Submit a credential on behalf of the signed-in institution."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Sign in to submit credentials")

    try:
        document = base64.b64decode(req.document_b64, validate=True)
    except (binascii.Error, ValueError):
        raise SubmissionValidationError(["document"])

    draft = CredentialDraft(
        type=req.type,
        subject_name=req.subject_name,
        subject_id=req.subject_id,
        institution=req.institution,
        filename=req.filename,
        document=document,
    )
    return await submit_credential(draft, get_store(), get_content_store(), get_config())


# ---------------------------------------------------------------------------
# GET /portal/credentials/{credential_id}/document
# ---------------------------------------------------------------------------

@app.get("/portal/credentials/{credential_id}/document", response_model=DocumentLinkResponse)
async def document_link(credential_id: str):
    config = get_config()
    result = await lookup_credential(
        get_store(), credential_id,
        timeout=config.lookup_timeout,
        collection=config.credentials_collection,
    )
    if result.status == LookupStatus.NOT_FOUND:
        raise HTTPException(status_code=404, detail="Credential not found")
    if result.status == LookupStatus.ERROR:
        raise TransientStoreError(result.error)
    cid = result.credential.cid
    return DocumentLinkResponse(
        credential_id=credential_id,
        cid=cid,
        url=gateway_url(cid, config.ipfs_gateway),
    )


# ---------------------------------------------------------------------------
# GET /portal/auth/config
# ---------------------------------------------------------------------------

@app.get("/portal/auth/config", response_model=AuthConfigResponse)
async def auth_config(origin: str = "http://localhost:5173"):
    idp = IdentityProviderConfig.from_env()
    if not idp.configured:
        return AuthConfigResponse(configured=False)
    return AuthConfigResponse(
        configured=True,
        domain=idp.domain,
        client_id=idp.client_id,
        authorization_params=idp.authorization_params(origin),
    )
