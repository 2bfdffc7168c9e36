"""
Error taxonomy for the credential portal core.

  PortalError
    ├── InvalidRequestError        caller broke a precondition (also a ValueError)
    ├── StoreError                 raw fault reported by a document/content store
    │     └── MalformedRecordError stored document cannot be decoded; never retried
    ├── TransientStoreError        retryable; surfaced as a recoverable notification
    ├── ProfileNotFound            permanent; render the guest/new-user state
    ├── SubmissionValidationError  upload draft rejected, lists offending fields
    └── ReconciliationError        credential written but profile link failed

Per-credential lookup failures are not exceptions at the public boundary:
the aggregator absorbs them into ``LookupResult`` values.
"""

from __future__ import annotations


class PortalError(Exception):
    """Base class for every error raised by the portal core."""


class InvalidRequestError(PortalError, ValueError):
    """A precondition was violated (empty user id, malformed id list, ...)."""


class StoreError(PortalError):
    """A document or content store could not complete an operation."""

    def __init__(self, message: str, *, collection: str = "", doc_id: str = ""):
        super().__init__(message)
        self.collection = collection
        self.doc_id = doc_id


class MalformedRecordError(StoreError):
    """A stored document exists but cannot be decoded into its record type."""


class TransientStoreError(PortalError):
    """Store unreachable or timed out. Safe to retry."""


class ProfileNotFound(PortalError):
    """No profile document exists for the user id."""

    def __init__(self, user_id: str):
        super().__init__(f"Profile {user_id!r} not found")
        self.user_id = user_id


class SubmissionValidationError(PortalError):
    """A credential draft is missing or has invalid fields."""

    def __init__(self, fields: list[str]):
        super().__init__(f"Invalid credential draft: {', '.join(fields)}")
        self.fields = list(fields)


class ReconciliationError(PortalError):
    """
    The credential record exists but could not be linked to its subject.

    Carries enough context for an operator to finish the write by hand.
    """

    def __init__(self, credential_id: str, cid: str, subject_id: str, reason: str = ""):
        msg = (
            f"Credential {credential_id} (cid={cid}) was stored but could not "
            f"be added to profile {subject_id}"
        )
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
        self.credential_id = credential_id
        self.cid = cid
        self.subject_id = subject_id
