"""Credential portal core — profile resolution, credential aggregation, upload."""

from .schema import (
    Credential,
    CredentialAggregate,
    CredentialDraft,
    DashboardView,
    LookupResult,
    LookupStatus,
    Notification,
    NotificationKind,
    UploadAck,
    UserProfile,
    ViewState,
)
from .errors import (
    InvalidRequestError,
    MalformedRecordError,
    PortalError,
    ProfileNotFound,
    ReconciliationError,
    StoreError,
    SubmissionValidationError,
    TransientStoreError,
)
from .config import IdentityProviderConfig, PortalConfig
from .store import DocumentStore, InMemoryDocumentStore
from .content import ContentStore, InMemoryContentStore, gateway_url
from .profile import resolve_profile
from .aggregator import (
    aggregate_credentials,
    lookup_credential,
    resolve_credentials,
    sort_by_created_at,
)
from .upload import submission_notice, submit_credential, validate_draft
from .session import AuthSession, Identity, ViewGeneration
from .dashboard import DashboardLoader

__all__ = [
    "Credential",
    "CredentialAggregate",
    "CredentialDraft",
    "DashboardView",
    "LookupResult",
    "LookupStatus",
    "Notification",
    "NotificationKind",
    "UploadAck",
    "UserProfile",
    "ViewState",
    "InvalidRequestError",
    "MalformedRecordError",
    "PortalError",
    "ProfileNotFound",
    "ReconciliationError",
    "StoreError",
    "SubmissionValidationError",
    "TransientStoreError",
    "IdentityProviderConfig",
    "PortalConfig",
    "DocumentStore",
    "InMemoryDocumentStore",
    "ContentStore",
    "InMemoryContentStore",
    "gateway_url",
    "resolve_profile",
    "aggregate_credentials",
    "lookup_credential",
    "resolve_credentials",
    "sort_by_created_at",
    "submission_notice",
    "submit_credential",
    "validate_draft",
    "AuthSession",
    "Identity",
    "ViewGeneration",
    "DashboardLoader",
]
