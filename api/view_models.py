# api/view_models.py
from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class RemoveRedirectUriViewModel(BaseModel):
    """Confirmation page model for removing a redirect URI from an application."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Application name")
    redirect_uri: str = Field(description="Redirect URI to remove")


class ApplicationViewModel(BaseModel):
    model_config = ConfigDict(frozen=True)

    client_id: str = Field(description="Client id")
    name: str = Field(description="Application name")
    redirect_uris: List[str] = Field(default_factory=list, description="Registered redirect URIs")
