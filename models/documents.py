"""Defines the diagram documents and the shapes drawn on them.
"""
import pytz

from datetime import datetime

from pydantic import Field, field_serializer

from typing import Annotated, Optional
from beanie import Document, Indexed, PydanticObjectId


class DiagramDocument(Document):
    """A diagram owned by a single user.
    """
    title: Annotated[str, Field(min_length=3)]
    user_id: Annotated[PydanticObjectId, Indexed()]  # owner of the document
    created_at: Annotated[datetime, Field(default_factory=lambda: datetime.now(pytz.utc))]
    updated_at: Annotated[datetime, Field(default_factory=lambda: datetime.now(pytz.utc))]

    @field_serializer("id", "user_id")
    def convert_pydantic_object_id_to_string(self, value: PydanticObjectId):
        return str(value)

    class Settings:
        """Beanie document settings."""
        name = "documents"


class Shape(Document):
    """A shape positioned on a diagram document.
    """
    doc_id: Annotated[PydanticObjectId, Indexed()]
    index: Annotated[int, Field()]  # position of the shape in the client's shape list
    type: Annotated[str, Field(min_length=1)]
    label: Annotated[Optional[str], Field(default=None)]
    translate_x: Annotated[float, Field()]
    translate_y: Annotated[float, Field()]
    background_color: Annotated[Optional[str], Field(default=None)]
    text_color: Annotated[Optional[str], Field(default=None)]
    border_color: Annotated[str, Field()]

    @field_serializer("id", "doc_id")
    def convert_pydantic_object_id_to_string(self, value: PydanticObjectId):
        return str(value)

    class Settings:
        """Beanie document settings."""
        name = "shapes"
