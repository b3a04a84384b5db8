"""Document router for the diagram documents and their shapes.

Every endpoint requires a valid `x-access-token` and only sees the documents
owned by the authenticated user.
"""

import pytz
import logfire

from datetime import datetime

from fastapi import APIRouter, status, Depends, Path
from fastapi.responses import JSONResponse

from beanie import PydanticObjectId
from beanie.operators import And

from models.documents import DiagramDocument, Shape
from schema.documents import (
    CreateDocumentRequest,
    UpdateDocumentRequest,
    DocumentResponse,
    ShapeRequest,
    UpdateShapeRequest,
    ShapeResponse,
)

from security.helpers import get_current_user_id

from typing import Annotated, List

router = APIRouter(
    prefix="/docs",
    tags=["Documents"],
)

DOCUMENT_NOT_FOUND = {"detail": "Document not found"}
SHAPE_NOT_FOUND = {"detail": "Shape not found"}


async def get_owned_document(
    doc_id: Annotated[PydanticObjectId, Path(description="ID of the document")],
    user_id: Annotated[str, Depends(get_current_user_id)],
) -> DiagramDocument | None:
    """Get the document `doc_id` if it belongs to the authenticated user."""
    return await DiagramDocument.find_one(
        And(DiagramDocument.id == doc_id, DiagramDocument.user_id == PydanticObjectId(user_id))
    )


@router.get("", response_model=List[DocumentResponse])
async def list_documents(user_id: Annotated[str, Depends(get_current_user_id)]):
    """Get all the documents of the authenticated user."""
    documents = await DiagramDocument.find(DiagramDocument.user_id == PydanticObjectId(user_id)).to_list()
    return [DocumentResponse.from_document(document) for document in documents]


@router.post("", response_model=DocumentResponse)
async def create_document(
    payload: CreateDocumentRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
):
    """Create a new document owned by the authenticated user."""
    document = DiagramDocument(title=payload.title, user_id=PydanticObjectId(user_id))
    await document.insert()

    logfire.info(f"User {user_id} created document {document.id}")
    return DocumentResponse.from_document(document)


@router.patch("/{doc_id}", response_model=DocumentResponse)
async def update_document(
    payload: UpdateDocumentRequest,
    document: Annotated[DiagramDocument | None, Depends(get_owned_document)],
):
    """Update the title of a document."""
    if document is None:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=DOCUMENT_NOT_FOUND)

    for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(document, field, value)
    document.updated_at = datetime.now(pytz.utc)
    await document.save()

    return DocumentResponse.from_document(document)


@router.delete("/{doc_id}", response_model=DocumentResponse)
async def delete_document(document: Annotated[DiagramDocument | None, Depends(get_owned_document)]):
    """Delete a document and all of its shapes."""
    if document is None:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=DOCUMENT_NOT_FOUND)

    await Shape.find(Shape.doc_id == document.id).delete()
    await document.delete()

    logfire.info(f"Deleted document {document.id}")
    return DocumentResponse.from_document(document)


@router.get("/{doc_id}/shapes", response_model=List[ShapeResponse])
async def list_shapes(document: Annotated[DiagramDocument | None, Depends(get_owned_document)]):
    """Get all the shapes of a document."""
    if document is None:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=DOCUMENT_NOT_FOUND)

    shapes = await Shape.find(Shape.doc_id == document.id).to_list()
    return [ShapeResponse.from_shape(shape) for shape in shapes]


@router.post("/{doc_id}/shapes", response_model=ShapeResponse)
async def create_shape(
    payload: ShapeRequest,
    document: Annotated[DiagramDocument | None, Depends(get_owned_document)],
):
    """Create a new shape in a document."""
    if document is None:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=DOCUMENT_NOT_FOUND)

    shape = Shape(doc_id=document.id, **payload.model_dump())
    await shape.insert()

    return ShapeResponse.from_shape(shape)


@router.patch("/{doc_id}/shapes/{shape_id}", response_model=ShapeResponse)
async def update_shape(
    shape_id: Annotated[PydanticObjectId, Path(description="ID of the shape")],
    payload: UpdateShapeRequest,
    document: Annotated[DiagramDocument | None, Depends(get_owned_document)],
):
    """Update the fields of a shape that are present in the request."""
    if document is None:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=DOCUMENT_NOT_FOUND)

    shape = await Shape.find_one(And(Shape.id == shape_id, Shape.doc_id == document.id))
    if shape is None:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=SHAPE_NOT_FOUND)

    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(shape, field, value)
    await shape.save()

    return ShapeResponse.from_shape(shape)


@router.delete("/{doc_id}/shapes/{shape_id}", response_model=ShapeResponse)
async def delete_shape(
    shape_id: Annotated[PydanticObjectId, Path(description="ID of the shape")],
    document: Annotated[DiagramDocument | None, Depends(get_owned_document)],
):
    """Delete a shape from a document."""
    if document is None:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=DOCUMENT_NOT_FOUND)

    shape = await Shape.find_one(And(Shape.id == shape_id, Shape.doc_id == document.id))
    if shape is None:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=SHAPE_NOT_FOUND)

    await shape.delete()
    return ShapeResponse.from_shape(shape)
