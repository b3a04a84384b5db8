import logfire

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from contextlib import asynccontextmanager

from motor.motor_asyncio import AsyncIOMotorClient
from beanie import init_beanie

from config.settings import get_settings

from models.users import User
from models.documents import DiagramDocument, Shape

from security.exceptions import AuthError
from security.helpers import ACCESS_TOKEN_HEADER, REFRESH_TOKEN_HEADER

from schema.security import AuthErrorDetail

from utils.logger import instrument_libraries

from routers import users, documents


DOCUMENT_MODELS = [User, DiagramDocument, Shape]

settings = get_settings()

# Configure logfire BEFORE creating FastAPI app
logfire.configure(token=settings.logfire_write_token, send_to_logfire="if-token-present")

if settings.logfire_write_token:
    instrument_libraries()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logfire.info("Starting diagram editor API...")

    client = AsyncIOMotorClient(settings.database_connection_string)  # * Connect to MongoDB

    await init_beanie(
        database=client[settings.database_name],
        document_models=DOCUMENT_MODELS,
    )
    logfire.info("Database initialized successfully")

    yield

    logfire.info("Shutting down diagram editor API...")
    client.close()
    logfire.info("Application shutdown complete")


app = FastAPI(
    title="Diagram Editor API",
    description="Stores diagram documents and their shapes for authenticated users.",
    lifespan=lifespan,
)


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError):
    """Render authentication failures with the status their type maps to."""
    logfire.info(f"Authentication failed on {request.url.path}: {exc.code}")

    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": ACCESS_TOKEN_HEADER}

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": AuthErrorDetail(message=exc.message, error=exc.code).model_dump()},
        headers=headers,
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[ACCESS_TOKEN_HEADER, REFRESH_TOKEN_HEADER],
)
app.add_middleware(GZipMiddleware, minimum_size=500)
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["127.0.0.1"])

app.include_router(users.router)
app.include_router(documents.router)
