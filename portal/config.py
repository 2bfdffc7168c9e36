"""
Runtime configuration for the portal core.

Defaults suit tests and local runs; ``from_env`` overlays environment
variables for deployed servers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    return float(raw) if raw else default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    return int(raw) if raw else default


@dataclass
class PortalConfig:
    """
    Configuration for profile resolution, credential aggregation and upload.
    """
    # Collections in the document store
    profiles_collection: str = "users"
    credentials_collection: str = "credentials"
    profile_credentials_field: str = "credentials"

    # Aggregation
    lookup_timeout: float = 5.0          # seconds per credential lookup

    # Profile resolution retries (TransientStoreError only)
    profile_max_tries: int = 3
    retry_backoff: float = 0.2           # backoff factor in seconds

    # Upload validation
    max_document_bytes: int = 10 * 1024 * 1024
    allowed_extensions: tuple[str, ...] = (".pdf", ".doc", ".docx")

    # Viewer
    ipfs_gateway: str = "https://ipfs.io/ipfs/"

    # Firestore REST backend (optional)
    firestore_project_id: str = ""
    firestore_api_key: str = ""

    @classmethod
    def from_env(cls) -> "PortalConfig":
        defaults = cls()
        return cls(
            lookup_timeout=_env_float("PORTAL_LOOKUP_TIMEOUT", defaults.lookup_timeout),
            profile_max_tries=_env_int("PORTAL_PROFILE_MAX_TRIES", defaults.profile_max_tries),
            retry_backoff=_env_float("PORTAL_RETRY_BACKOFF", defaults.retry_backoff),
            max_document_bytes=_env_int("PORTAL_MAX_DOCUMENT_BYTES", defaults.max_document_bytes),
            ipfs_gateway=os.environ.get("PORTAL_IPFS_GATEWAY", defaults.ipfs_gateway),
            firestore_project_id=os.environ.get("FIRESTORE_PROJECT_ID", ""),
            firestore_api_key=os.environ.get("FIRESTORE_API_KEY", ""),
        )


@dataclass
class IdentityProviderConfig:
    """OAuth settings handed to the browser client; the core never calls the provider."""
    domain: str = ""
    client_id: str = ""
    scope: str = "openid profile email"
    callback_path: str = "/callback"

    @property
    def audience(self) -> str:
        return f"https://{self.domain}/api/v2" if self.domain else ""

    @property
    def configured(self) -> bool:
        return bool(self.domain and self.client_id)

    def authorization_params(self, origin: str) -> dict:
        return {
            "redirect_uri": f"{origin.rstrip('/')}{self.callback_path}",
            "audience": self.audience,
            "scope": self.scope,
            "response_type": "code",
            "prompt": "login",
        }

    @classmethod
    def from_env(cls) -> "IdentityProviderConfig":
        return cls(
            domain=os.environ.get("AUTH0_DOMAIN", ""),
            client_id=os.environ.get("AUTH0_CLIENT_ID", ""),
        )
