"""DinoWalk Walk API - FastAPI application entry point."""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .routes import session
from .services.walk_service import walk_service

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    await walk_service.startup()
    try:
        yield
    finally:
        await walk_service.shutdown()


app = FastAPI(
    title="DinoWalk Walk API",
    description="Step counting and GPS distance tracking for walking sessions",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT"],
    allow_headers=["*"],
)

# Include routers
app.include_router(session.router)


@app.get("/health")
async def health_check():
    """Health check endpoint for the API."""
    return {"status": "healthy", "service": "walk-api"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "server.walk_api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True,
    )
