"""Contains the schema definition for requests and responses related to documents and shapes
"""

from datetime import datetime

from pydantic import BaseModel, Field

from typing import Annotated, Optional

from models.documents import DiagramDocument, Shape


class CreateDocumentRequest(BaseModel):
    """Describes the structure of the create document request."""

    model_config = {"str_strip_whitespace": True}

    title: Annotated[str, Field(min_length=3)]


class UpdateDocumentRequest(BaseModel):
    """Describes the fields of a document that can be updated."""

    model_config = {"str_strip_whitespace": True}

    title: Annotated[Optional[str], Field(default=None, min_length=3)]


class DocumentResponse(BaseModel):
    """Describes a document as returned by the API."""

    id: Annotated[str, Field(serialization_alias="_id")]
    title: str
    user_id: Annotated[str, Field(serialization_alias="_userId")]
    created_at: Annotated[datetime, Field(serialization_alias="createdAt")]
    updated_at: Annotated[datetime, Field(serialization_alias="updatedAt")]

    @classmethod
    def from_document(cls, document: DiagramDocument) -> "DocumentResponse":
        return cls(
            id=str(document.id),
            title=document.title,
            user_id=str(document.user_id),
            created_at=document.created_at,
            updated_at=document.updated_at,
        )


class ShapeRequest(BaseModel):
    """Describes the structure of the create shape request.

    Field names follow the camelCase used by the editor client.
    """

    model_config = {"str_strip_whitespace": True, "populate_by_name": True}

    index: Annotated[int, Field(alias="id", description="Position of the shape in the client's shape list")]
    type: Annotated[str, Field(min_length=1)]
    label: Annotated[Optional[str], Field(default=None)]
    translate_x: Annotated[float, Field(alias="translateX")]
    translate_y: Annotated[float, Field(alias="translateY")]
    background_color: Annotated[Optional[str], Field(default=None, alias="backgroundColor")]
    text_color: Annotated[Optional[str], Field(default=None, alias="textColor")]
    border_color: Annotated[str, Field(alias="borderColor")]


class UpdateShapeRequest(BaseModel):
    """Describes the fields of a shape that can be updated."""

    model_config = {"str_strip_whitespace": True, "populate_by_name": True}

    index: Annotated[Optional[int], Field(default=None, alias="id")]
    type: Annotated[Optional[str], Field(default=None, min_length=1)]
    label: Annotated[Optional[str], Field(default=None)]
    translate_x: Annotated[Optional[float], Field(default=None, alias="translateX")]
    translate_y: Annotated[Optional[float], Field(default=None, alias="translateY")]
    background_color: Annotated[Optional[str], Field(default=None, alias="backgroundColor")]
    text_color: Annotated[Optional[str], Field(default=None, alias="textColor")]
    border_color: Annotated[Optional[str], Field(default=None, alias="borderColor")]


class ShapeResponse(BaseModel):
    """Describes a shape as returned by the API."""

    id: Annotated[str, Field(serialization_alias="_id")]
    doc_id: Annotated[str, Field(serialization_alias="_docId")]
    index: Annotated[int, Field(serialization_alias="id")]
    type: str
    label: Optional[str] = None
    translate_x: Annotated[float, Field(serialization_alias="translateX")]
    translate_y: Annotated[float, Field(serialization_alias="translateY")]
    background_color: Annotated[Optional[str], Field(default=None, serialization_alias="backgroundColor")]
    text_color: Annotated[Optional[str], Field(default=None, serialization_alias="textColor")]
    border_color: Annotated[str, Field(serialization_alias="borderColor")]

    @classmethod
    def from_shape(cls, shape: Shape) -> "ShapeResponse":
        return cls(
            id=str(shape.id),
            doc_id=str(shape.doc_id),
            **shape.model_dump(
                include={
                    "index",
                    "type",
                    "label",
                    "translate_x",
                    "translate_y",
                    "background_color",
                    "text_color",
                    "border_color",
                }
            ),
        )
