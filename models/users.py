from pydantic import Field, EmailStr, BaseModel, field_serializer
from typing import Annotated, List

from beanie import Document, Indexed, PydanticObjectId


class Session(BaseModel):
    """A refresh token and the unix timestamp (seconds) it expires at.
    """
    token: Annotated[str, Field()]
    expires_at: Annotated[float, Field(alias="expiresAt")]

    model_config = {"populate_by_name": True}


class User(Document):
    """A user of the diagram editor and the sessions they have logged in with.
    """
    # Regular unique ascending index, text indexes cannot be unique
    email: Annotated[EmailStr, Indexed(unique=True), Field(max_length=254)]
    password: Annotated[str, Field(min_length=8)]  # bcrypt hash, never the plain text
    sessions: Annotated[List[Session], Field(default=[])]

    @field_serializer("id")
    def convert_pydantic_object_id_to_string(self, id: PydanticObjectId):
        return str(id)

    class Settings:
        """Beanie document settings."""
        name = "users"
