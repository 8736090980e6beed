"""Verification directory models: mobile number -> registered identity."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class IdentityRecord(BaseModel):
    """One registered producer in the verification directory."""

    model_config = ConfigDict(frozen=True)

    mobile: str
    identity: str  # 0x-hex digest derived from the mobile number
    name: str
    location: str = ""
    state_code: str = ""
    district_code: str = ""
    land_acres: float = 0.0
    crop: str = ""
    verified: bool = False
    registration_date: str = ""
    content_ref: str = ""  # latest evidence content id for this producer


class DirectoryMetadata(BaseModel):
    version: str = "1.0"
    last_updated: str = ""
    total_identities: int = 0
    description: str = "Producer verification directory keyed by mobile number"


class DirectoryDocument(BaseModel):
    """On-disk layout of the directory file."""

    identities: list[IdentityRecord] = Field(default_factory=list)
    metadata: DirectoryMetadata = Field(default_factory=DirectoryMetadata)
