# The module provides the FastAPI application serving the conversation over HTTP.
# Date: 2025-10-07
# Version: 0.2.0

from contextlib import asynccontextmanager

from fastapi import FastAPI

from toolchat.api.v1.api import api_router
from toolchat.core.bootstrap import build_runtime
from toolchat.core.config import get_settings
from toolchat.utils.logger import console


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.runtime = await build_runtime(get_settings())
    console.success("toolchat runtime ready.")
    try:
        yield
    finally:
        await app.state.runtime.close()


app = FastAPI(
    title="toolchat",
    version="0.2.0",
    description="A conversation service that lets a language model call MCP tools mid-conversation.",
    lifespan=lifespan,
)


@app.get("/", summary="Health Check", tags=["Status"])
def read_root():
    """Root endpoint to check if the service is alive."""
    console.info("Health check endpoint was hit.")
    return {"message": "toolchat is alive and running!"}


# Include the v1 router with a global '/v1' prefix
app.include_router(api_router, prefix="/v1")
