"""
Storefront Gateway - FastAPI Backend
GraphQL storefront API on top of a Magento 2 REST backend
"""
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from storefront.config import settings, get_backend_info
from storefront.api.graphql import router as graphql_router
from storefront.commerce.factory import close_commerce_backend

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"{settings.APP_NAME} starting, backend: {get_backend_info()}")
    yield
    await close_commerce_backend()

app = FastAPI(
    title="Storefront Gateway API",
    description="GraphQL storefront API backed by Magento 2",
    version="1.0.0",
    lifespan=lifespan
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Cart quote id, customer token and currency travel in a signed session cookie
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SESSION_SECRET,
    session_cookie=settings.SESSION_COOKIE,
    max_age=settings.SESSION_MAX_AGE,
    same_site="lax",
    https_only=not settings.DEBUG,
)

# Include API routers
app.include_router(graphql_router, prefix="/graphql")

@app.get("/")
async def root():
    """API root endpoint"""
    return {
        "app": settings.APP_NAME,
        "version": "1.0.0",
        "status": "ready",
        "graphql": "/graphql",
        "backend": get_backend_info()
    }

@app.get("/health")
async def health_check():
    """Health check endpoint - simple and fast, does not call Magento"""
    return {
        "status": "healthy",
        "commerce": {
            "provider": settings.COMMERCE_PROVIDER.value,
            "url": settings.MAGENTO_URL,
            "configured": bool(
                settings.MAGENTO_ACCESS_TOKEN
                or (settings.MAGENTO_ADMIN_USERNAME and settings.MAGENTO_ADMIN_PASSWORD)
            )
        }
    }

@app.get("/config")
async def get_config():
    """
    Get current backend configuration

    Secrets (tokens, passwords, session secret) are never returned.
    To change the backend, set MAGENTO_* variables in .env
    """
    return {
        "message": "To change the commerce backend, set MAGENTO_* variables in .env",
        "current_backend": get_backend_info(),
        "available_providers": ["magento2"],
        "debug": settings.DEBUG
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
