"""Defines schema of requests and responses related to security"""

from pydantic import BaseModel, Field

from typing import Annotated


class AccessTokenResponse(BaseModel):
    """Model representing a freshly issued access token."""

    access_token: Annotated[str, Field(serialization_alias="accessToken")]


class AuthErrorDetail(BaseModel):
    """Model representing the detail of an authentication failure."""

    message: str
    error: str
