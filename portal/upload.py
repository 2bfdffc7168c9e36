"""
Credential submission — validate, store document, write record, link profile.

Steps:
  1. Validate the draft (type, subject, document, extension, size).
  2. Check the subject profile exists.
  3. Put the document into the content store → cid.
  4. Create the credential record referencing the cid.
  5. Append the new credential id to the subject profile.

Failure handling:
  - 1/2 fail → nothing is written.
  - 4 fails  → the document stored in 3 is removed again (unless it was
               already present before this submission) so no orphan remains.
  - 5 fails  → ReconciliationError with the credential id and cid; the
               record is kept so the link can be repaired.
"""

from __future__ import annotations

import logging
from pathlib import PurePath

from .config import PortalConfig
from .content import ContentStore
from .errors import (
    ReconciliationError,
    StoreError,
    SubmissionValidationError,
    TransientStoreError,
)
from .schema import (
    Credential,
    CredentialDraft,
    Notification,
    NotificationKind,
    NotificationLevel,
    UploadAck,
)
from .store import DocumentStore

logger = logging.getLogger(__name__)


def validate_draft(draft: CredentialDraft, config: PortalConfig | None = None) -> list[str]:
    """Return the names of all invalid fields (empty list if the draft is valid)."""
    config = config or PortalConfig()
    invalid: list[str] = []

    if not draft.type.strip():
        invalid.append("type")
    if not draft.subject_name.strip():
        invalid.append("subject_name")
    if not draft.subject_id.strip():
        invalid.append("subject_id")

    if not draft.document:
        invalid.append("document")
    elif len(draft.document) > config.max_document_bytes:
        invalid.append("document")

    if draft.filename:
        suffix = PurePath(draft.filename).suffix.lower()
        if suffix not in config.allowed_extensions:
            invalid.append("filename")
    elif draft.document:
        invalid.append("filename")

    return invalid


async def submit_credential(
    draft: CredentialDraft,
    documents: DocumentStore,
    content: ContentStore,
    config: PortalConfig | None = None,
) -> UploadAck:
    """
    Persist a new credential for ``draft.subject_id``.

    Raises:
        SubmissionValidationError: draft invalid or subject profile missing.
        TransientStoreError: a store failed before the record was linked;
            nothing dangling was left behind.
        ReconciliationError: the record was written but the profile link failed.
    """
    config = config or PortalConfig()

    invalid = validate_draft(draft, config)
    if invalid:
        raise SubmissionValidationError(invalid)

    subject_id = draft.subject_id.strip()
    try:
        subject = await documents.get(config.profiles_collection, subject_id)
    except StoreError as e:
        raise TransientStoreError(f"Could not load subject profile {subject_id}: {e}") from e
    if subject is None:
        raise SubmissionValidationError(["subject_id"])

    # Document
    try:
        already_stored = await content.exists(content.address(draft.document))
        cid = await content.put(draft.document, draft.filename)
    except StoreError as e:
        raise TransientStoreError(f"Could not store document: {e}") from e

    # Record
    record = Credential(
        id="",
        type=draft.type.strip(),
        institution=draft.institution.strip(),
        cid=cid,
        subject_name=draft.subject_name.strip(),
        subject_id=subject_id,
    )
    try:
        credential_id = await documents.create(
            config.credentials_collection, record.to_document()
        )
    except StoreError as e:
        if not already_stored:
            await _discard_document(content, cid)
        raise TransientStoreError(f"Could not write credential record: {e}") from e

    # Profile link
    try:
        await documents.array_union(
            config.profiles_collection, subject_id,
            config.profile_credentials_field, credential_id,
        )
    except StoreError as e:
        logger.error(
            f"Credential {credential_id} stored but not linked to {subject_id}: {e}"
        )
        raise ReconciliationError(credential_id, cid, subject_id, reason=str(e)) from e

    logger.info(f"Submitted credential {credential_id} for {subject_id} (cid={cid})")
    return UploadAck(credential_id=credential_id, cid=cid, subject_id=subject_id)


async def _discard_document(content: ContentStore, cid: str) -> None:
    try:
        await content.remove(cid)
    except StoreError as e:
        logger.error(f"Could not remove orphaned document {cid}: {e}")


def submission_notice(error: Exception | None = None) -> Notification:
    """Semantic notification for the outcome of a submission."""
    if error is None:
        return Notification(
            kind=NotificationKind.CREDENTIAL_SUBMITTED,
            level=NotificationLevel.SUCCESS,
        )
    return Notification(
        kind=NotificationKind.CREDENTIAL_SUBMIT_FAILED,
        level=NotificationLevel.ERROR,
        detail=str(error),
    )
