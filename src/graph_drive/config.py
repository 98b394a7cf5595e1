"""Application configuration loaded from environment variables."""

import os
from dataclasses import dataclass

# Graph accepts simple PUT uploads up to 4 MiB.
DEFAULT_SIMPLE_UPLOAD_LIMIT = 4 * 1024 * 1024
# Upload session chunks must be a multiple of 320 KiB.
UPLOAD_CHUNK_UNIT = 320 * 1024
DEFAULT_UPLOAD_CHUNK_SIZE = 10 * UPLOAD_CHUNK_UNIT

ACCOUNT_ORGANIZATIONAL = "organizational"
ACCOUNT_PERSONAL = "personal"


@dataclass(frozen=True)
class AppConfig:
    """Centralized application configuration.

    Required fields have no defaults and will cause a KeyError at startup
    if the corresponding environment variable is missing. Tuning values
    have sensible defaults but can be overridden via environment variables.
    """

    # Credentials and the default drive owner; no defaults
    client_id: str
    client_secret: str
    tenant_id: str
    drive_user: str

    # Account and transfer tuning
    account_type: str = ACCOUNT_ORGANIZATIONAL
    simple_upload_limit: int = DEFAULT_SIMPLE_UPLOAD_LIMIT
    upload_chunk_size: int = DEFAULT_UPLOAD_CHUNK_SIZE
    page_size: int | None = None

    def __post_init__(self) -> None:
        if self.account_type not in (ACCOUNT_ORGANIZATIONAL, ACCOUNT_PERSONAL):
            raise ValueError(f"Unknown account type: {self.account_type!r}")
        if self.upload_chunk_size <= 0 or self.upload_chunk_size % UPLOAD_CHUNK_UNIT:
            raise ValueError(
                f"Upload chunk size must be a positive multiple of {UPLOAD_CHUNK_UNIT} bytes"
            )


def load_config() -> AppConfig:
    """Construct an AppConfig from environment variables.

    Required environment variables:
        GD_CLIENT_ID: Azure AD application (client) ID.
        GD_CLIENT_SECRET: Azure AD application client secret.
        GD_TENANT_ID: Azure AD tenant ID.
        GD_DRIVE_USER: UPN or object ID of the user whose drive is the default.

    Optional environment variables (with defaults):
        GD_ACCOUNT_TYPE: "organizational" or "personal" (default: organizational).
        GD_SIMPLE_UPLOAD_LIMIT: Size in bytes below which uploads use a single PUT
            (default: 4194304).
        GD_UPLOAD_CHUNK_SIZE: Chunk size for upload sessions, a multiple of 327680
            (default: 3276800).
        GD_PAGE_SIZE: Page size ($top) requested for collections (default: server's).

    Returns:
        Configured AppConfig instance.
    """
    page_size = os.environ.get("GD_PAGE_SIZE")
    return AppConfig(
        client_id=os.environ["GD_CLIENT_ID"],
        client_secret=os.environ["GD_CLIENT_SECRET"],
        tenant_id=os.environ["GD_TENANT_ID"],
        drive_user=os.environ["GD_DRIVE_USER"],
        account_type=os.environ.get("GD_ACCOUNT_TYPE", ACCOUNT_ORGANIZATIONAL).lower(),
        simple_upload_limit=int(
            os.environ.get("GD_SIMPLE_UPLOAD_LIMIT", str(DEFAULT_SIMPLE_UPLOAD_LIMIT))
        ),
        upload_chunk_size=int(
            os.environ.get("GD_UPLOAD_CHUNK_SIZE", str(DEFAULT_UPLOAD_CHUNK_SIZE))
        ),
        page_size=int(page_size) if page_size else None,
    )
