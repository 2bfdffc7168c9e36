"""Tests for portal record models and result types."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from portal.schema import (
    Credential,
    CredentialAggregate,
    DashboardView,
    LookupResult,
    LookupStatus,
    UserProfile,
    ViewState,
)


class TestUserProfile:
    def test_accepts_stored_field_names(self):
        profile = UserProfile.model_validate({
            "id": "u1",
            "displayName": "Asha",
            "credentials": ["c1", "c2"],
        })
        assert profile.display_name == "Asha"
        assert profile.credential_ids == ["c1", "c2"]

    def test_accepts_credential_ids_alias(self):
        profile = UserProfile.model_validate({"id": "u1", "credentialIds": ["c1"]})
        assert profile.credential_ids == ["c1"]

    def test_snake_case_names(self):
        profile = UserProfile(id="u1", display_name="Asha", credential_ids=["c1"])
        assert profile.credential_ids == ["c1"]

    def test_missing_or_null_ids_are_empty(self):
        assert UserProfile.model_validate({"id": "u2"}).credential_ids == []
        assert UserProfile.model_validate({"id": "u2", "credentials": None}).credential_ids == []

    def test_blank_and_non_string_ids_skipped(self):
        profile = UserProfile.model_validate({"id": "u1", "credentials": ["c1", "", 7, None, "c2"]})
        assert profile.credential_ids == ["c1", "c2"]

    def test_non_list_ids_rejected(self):
        with pytest.raises(ValidationError):
            UserProfile.model_validate({"id": "u1", "credentials": "c1"})

    def test_order_preserved(self):
        profile = UserProfile.model_validate({"id": "u1", "credentials": ["c3", "c1", "c2"]})
        assert profile.credential_ids == ["c3", "c1", "c2"]

    def test_id_required(self):
        with pytest.raises(ValidationError):
            UserProfile.model_validate({"credentials": []})


class TestCredential:
    def test_iso_timestamp(self):
        cred = Credential.model_validate({
            "id": "c1", "type": "degree", "institution": "State U",
            "createdAt": "2023-06-15T10:00:00Z", "cid": "bafy123",
        })
        assert cred.year == 2023
        assert cred.created_at.tzinfo is not None

    def test_sdk_timestamp_dict(self):
        cred = Credential.model_validate({
            "id": "c1", "createdAt": {"seconds": 1700000000, "nanoseconds": 500},
        })
        assert cred.year == 2023

    def test_epoch_milliseconds(self):
        cred = Credential.model_validate({"id": "c1", "createdAt": 1704067200000})
        assert cred.created_at == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_naive_timestamp_assumed_utc(self):
        cred = Credential(id="c1", created_at=datetime(2022, 1, 1, 12, 0))
        assert cred.created_at.tzinfo == timezone.utc

    def test_null_timestamp_uses_default(self):
        cred = Credential.model_validate({"id": "c1", "createdAt": None})
        assert cred.created_at.tzinfo is not None

    def test_type_is_open_string(self):
        cred = Credential(id="c1", type="micro-badge")
        assert cred.type == "micro-badge"

    def test_cid_not_validated(self):
        cred = Credential(id="c1", cid="not a real cid!")
        assert cred.cid == "not a real cid!"

    def test_to_document_uses_stored_names(self):
        cred = Credential(
            id="c1", type="diploma", institution="City College",
            cid="bafy", subject_name="Leo", subject_id="u2",
        )
        doc = cred.to_document()
        assert "id" not in doc
        assert doc["createdAt"] == cred.created_at
        assert doc["subjectId"] == "u2"
        assert Credential.model_validate({**doc, "id": "c1"}).subject_name == "Leo"

    def test_to_document_omits_unset_subject(self):
        doc = Credential(id="c1").to_document()
        assert "subjectName" not in doc
        assert "subjectId" not in doc


class TestResults:
    def test_lookup_result_found(self):
        r = LookupResult("c1", LookupStatus.FOUND, credential=Credential(id="c1"))
        assert r.found
        assert not LookupResult("c2", LookupStatus.NOT_FOUND).found

    def test_aggregate_counts(self):
        agg = CredentialAggregate(
            credentials=[Credential(id="c1")],
            missing_ids=["c2"],
            failed_ids=["c3", "c4"],
        )
        assert agg.requested == 4
        assert agg.resolved_ids == {"c1"}

    def test_empty_view(self):
        view = DashboardView(state=ViewState.READY)
        assert view.is_empty
        assert view.stats.total == 0
