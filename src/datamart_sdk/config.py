from __future__ import annotations

import os
import re
from typing import Dict, Optional

from pydantic import BaseModel, field_validator

DEFAULT_BASE_URL = "https://app.displayr.com/api"

COMPANY_SECRET_HEADER = "X-Q-Company-Secret"
PROJECT_ID_HEADER = "X-Q-Project-ID"


def _normalize_client_id(value: Optional[str]) -> str:
    return re.sub(r"[^0-9]", "", str(value or ""))


class DataMartConfig(BaseModel):
    """Credentials and connection settings shared by every Data Mart call.

    Build one per session and hand it to :class:`DataMartClient`. Missing
    credentials default to empty strings; the client refuses to send
    requests with them (see ``has_credentials``).
    """

    company_secret: str = ""
    client_id: str = ""
    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = 60.0
    temp_dir: Optional[str] = None

    @field_validator("company_secret", mode="before")
    @classmethod
    def _coerce_secret(cls, value):
        return "" if value is None else str(value)

    @field_validator("client_id", mode="before")
    @classmethod
    def _digits_only(cls, value):
        return _normalize_client_id(value)

    @field_validator("base_url")
    @classmethod
    def _normalize_base_url(cls, value: str) -> str:
        cleaned = (value or "").strip()
        if not cleaned:
            raise ValueError("base_url must be a non-empty URL")
        return cleaned.rstrip("/")

    @property
    def has_credentials(self) -> bool:
        return bool(self.company_secret) and bool(self.client_id)

    def headers(self) -> Dict[str, str]:
        return {
            COMPANY_SECRET_HEADER: self.company_secret,
            PROJECT_ID_HEADER: self.client_id,
        }

    @classmethod
    def from_env(cls) -> "DataMartConfig":
        return cls(
            company_secret=os.getenv("DATAMART_COMPANY_SECRET", ""),
            client_id=os.getenv("DATAMART_CLIENT_ID", ""),
            base_url=os.getenv("DATAMART_BASE_URL", DEFAULT_BASE_URL),
            timeout_seconds=float(os.getenv("DATAMART_TIMEOUT_SECONDS", "60")),
            temp_dir=os.getenv("DATAMART_TEMP_DIR") or None,
        )
