""" User router for signup, login, session refresh and account endpoints.
"""

import logfire

from fastapi import APIRouter, status, Depends, Response
from fastapi.responses import JSONResponse

from schema.users import UserCredentialsRequest, UserResponse
from schema.security import AccessTokenResponse

from models.users import User
from models.documents import DiagramDocument, Shape

from pymongo.errors import DuplicateKeyError, ConnectionFailure, ServerSelectionTimeoutError

from security.helpers import (
    ACCESS_TOKEN_HEADER,
    REFRESH_TOKEN_HEADER,
    SessionContext,
    authenticate_user,
    get_current_user,
    get_password_hash,
    get_session_store,
    get_token_codec,
    get_user,
    verify_session,
)
from security.sessions import SessionStore
from security.tokens import TokenCodec

from typing import Annotated

router = APIRouter(
    prefix="/users",
    tags=["Users"],
)


async def _start_session(
    user: User, response: Response, store: SessionStore, codec: TokenCodec
) -> UserResponse:
    """Create a session for `user` and put both tokens on the response headers."""
    refresh_token = await store.create_session(user)
    access_token = codec.issue(str(user.id))

    response.headers[REFRESH_TOKEN_HEADER] = refresh_token
    response.headers[ACCESS_TOKEN_HEADER] = access_token

    return UserResponse.from_user(user)


@router.post("", response_model=UserResponse, response_model_by_alias=True)
async def create_user(
    payload: UserCredentialsRequest,
    response: Response,
    store: Annotated[SessionStore, Depends(get_session_store)],
    codec: Annotated[TokenCodec, Depends(get_token_codec)],
):
    """Creates a new user and logs them in.

    The new session's tokens are returned in the `x-access-token` and
    `x-refresh-token` response headers.

    ## Possible Errors
    - 409 Conflict: If a user with the provided email already exists.
    - 422 Unprocessable Entity: If the email is invalid or the password is shorter than 8 characters.
    - 503 Service Unavailable: If there is a database connection issue.
    """
    try:
        with logfire.span(f"Creating new user: {payload.email}"):
            if await get_user(payload.email):
                logfire.warning(f"Attempt to create duplicate user: {payload.email}")
                return JSONResponse(
                    status_code=status.HTTP_409_CONFLICT,
                    content={"detail": "A user with this email already exists"},
                )

            new_user = User(email=payload.email, password=get_password_hash(payload.password))
            await new_user.insert()
            logfire.info(f"Saved new user to database: {new_user.email}")

            return await _start_session(new_user, response, store, codec)
    except DuplicateKeyError:
        logfire.warning(f"Attempt to create duplicate user: {payload.email}")
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": "A user with this email already exists"},
        )
    except (ServerSelectionTimeoutError, ConnectionFailure):
        logfire.error(f"Database unavailable when creating user: {payload.email}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Service temporarily unavailable"},
        )


@router.post("/login", response_model=UserResponse, response_model_by_alias=True)
async def login(
    payload: UserCredentialsRequest,
    response: Response,
    store: Annotated[SessionStore, Depends(get_session_store)],
    codec: Annotated[TokenCodec, Depends(get_token_codec)],
):
    """Logs a user in and starts a new session.

    ## Possible Errors
    - 400 Bad Request: If the email or password is wrong.
    - 503 Service Unavailable: If there is a database connection issue.
    """
    try:
        user = await authenticate_user(payload.email, payload.password)

        user_response = await _start_session(user, response, store, codec)

        logfire.info(f"User {user.email} logged in successfully")
        return user_response
    except (ServerSelectionTimeoutError, ConnectionFailure):
        logfire.error(f"Database unavailable during login for: {payload.email}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Service temporarily unavailable"},
        )


@router.get("/me/access-token", response_model=AccessTokenResponse, response_model_by_alias=True)
async def get_access_token(
    context: Annotated[SessionContext, Depends(verify_session)],
    response: Response,
    codec: Annotated[TokenCodec, Depends(get_token_codec)],
):
    """Exchanges a valid refresh token for a new access token.

    Expects the `x-refresh-token` and `_id` request headers. The new token is
    returned both in the `x-access-token` header and in the body.

    ## Possible Errors
    - 401 Unauthorized: If the session does not exist or has expired.
    """
    access_token = codec.issue(str(context.user.id))
    response.headers[ACCESS_TOKEN_HEADER] = access_token

    logfire.info(f"Access token refreshed for user {context.user.id}")

    return AccessTokenResponse(access_token=access_token)


@router.get("/me", response_model=UserResponse, response_model_by_alias=True)
async def get_user_details(current_user: Annotated[User, Depends(get_current_user)]):
    """Get details of the authenticated user."""
    return UserResponse.from_user(current_user)


@router.delete("/me/session", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_session(
    context: Annotated[SessionContext, Depends(verify_session)],
    store: Annotated[SessionStore, Depends(get_session_store)],
):
    """Revokes the session the request's refresh token belongs to."""
    await store.revoke_session(context.user, context.refresh_token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/me", response_model=UserResponse, response_model_by_alias=True)
async def delete_user(current_user: Annotated[User, Depends(get_current_user)]):
    """Deletes the authenticated user along with their documents and shapes.

    ## Possible Errors
    - 401 Unauthorized: If the access token is invalid or expired.
    - 503 Service Unavailable: If there is a database connection issue.
    """
    try:
        with logfire.span(f"Deleting user {current_user.id}"):
            documents = await DiagramDocument.find(DiagramDocument.user_id == current_user.id).to_list()
            document_ids = [document.id for document in documents]

            if document_ids:
                await Shape.find({"doc_id": {"$in": document_ids}}).delete()
                await DiagramDocument.find({"_id": {"$in": document_ids}}).delete()

            deleted_user = UserResponse.from_user(current_user)
            await current_user.delete()

            logfire.info(f"Deleted user {deleted_user.id} and {len(document_ids)} documents")

            return deleted_user
    except (ServerSelectionTimeoutError, ConnectionFailure):
        logfire.error(f"Database unavailable when deleting user: {current_user.id}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Service temporarily unavailable"},
        )
