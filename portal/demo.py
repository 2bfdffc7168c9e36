"""
Built-in demo data: two students, three stored credentials.

u1 references a missing credential (c9) so the partial-result path is
visible in the demo; u2 has no credentials yet.
"""

from __future__ import annotations

from .store import InMemoryDocumentStore

DEMO_DATA: dict[str, dict[str, dict]] = {
    "users": {
        "u1": {
            "displayName": "Asha Verma",
            "credentials": ["c1", "c2", "c9"],
        },
        "u2": {
            "displayName": "Leo Martins",
            "credentials": [],
        },
    },
    "credentials": {
        "c1": {
            "type": "degree",
            "institution": "State University",
            "createdAt": "2023-06-15T10:00:00Z",
            "cid": "bafybeigdyrzt5sfp7udm7hu76uh7y26nf3efuylqabf3oclgtqy55fbzdi",
            "subjectName": "Asha Verma",
            "subjectId": "u1",
        },
        "c2": {
            "type": "certificate",
            "institution": "Open Learning Institute",
            "createdAt": "2024-02-01T09:30:00Z",
            "cid": "bafkreihdwdcefgh4dqkjv67uzcmw7ojee6xedzdetojuzjevtenxquvyku",
            "subjectName": "Asha Verma",
            "subjectId": "u1",
        },
        "c3": {
            "type": "diploma",
            "institution": "City College",
            "createdAt": "2021-05-20T12:00:00Z",
            "cid": "bafybeie5gq4jxvzmsym6hjlwxej4rwdoxt7wadqvmmwbqi7r27fclha2va",
        },
    },
}


def get_demo_store() -> InMemoryDocumentStore:
    """Return a fresh store loaded with the demo data."""
    return InMemoryDocumentStore(DEMO_DATA)
