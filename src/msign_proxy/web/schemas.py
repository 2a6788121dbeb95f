"""Request/response bodies of the HTTP API."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..constants import DEFAULT_DESCRIPTION, DEFAULT_FILE_NAME


class SignRequestDto(BaseModel):
    """Document submission as sent by the calling application."""

    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(default=DEFAULT_FILE_NAME, alias="fileName")
    file_base64: str = Field(default="", alias="fileBase64")
    description: str = Field(default=DEFAULT_DESCRIPTION)
    return_url: str = Field(default="", alias="returnUrl")


class SignInitiateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id_sign: str = Field(alias="idSign")
    redirect_url: str = Field(alias="redirectUrl")


class SignResultBody(BaseModel):
    model_config = ConfigDict(extra="allow")

    signature: Optional[str] = None
    certificate: Optional[str] = None


class SignResponseBody(BaseModel):
    status: str
    message: Optional[str] = None
    results: list[SignResultBody] = []
    payload: dict[str, Any] = {}


class ErrorBody(BaseModel):
    error: str
    kind: Optional[str] = None
