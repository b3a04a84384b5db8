"""Contains the schema definition for requests and responses related to users
"""

from pydantic import BaseModel, Field, EmailStr

from typing import Annotated


class UserCredentialsRequest(BaseModel):
    """Describes the structure of the signup and login requests."""

    model_config = {"str_strip_whitespace": True}

    email: Annotated[EmailStr, Field(max_length=254)]
    password: Annotated[str, Field(min_length=8, description="Plain text password, hashed before it is stored")]


class UserResponse(BaseModel):
    """Describes the public representation of a user."""

    id: Annotated[str, Field(serialization_alias="_id", description="Unique identifier for the user")]
    email: Annotated[EmailStr, Field()]

    @classmethod
    def from_user(cls, user) -> "UserResponse":
        """Build the response from a user document, leaving out the password and sessions."""
        return cls(id=str(user.id), email=user.email)
