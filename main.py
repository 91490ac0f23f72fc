import os
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from app.core.config import settings
from app.core import database
from app.models.user import User
from app.routes import (
    account_routes,
    ai_routes,
    analytics_routes,
    auth_routes,
    cron_routes,
    post_routes,
    settings_routes,
)
from app.utils.logger import setup_logging

setup_logging()

@asynccontextmanager
async def lifespan(app: FastAPI):
    await database.ensure_beanie_initialized()
    yield
    if database.client is not None:
        database.client.close()

app = FastAPI(title="Omnilytics Backend", version="1.0.0", lifespan=lifespan)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include Routers
app.include_router(auth_routes.router)
app.include_router(account_routes.router)
app.include_router(account_routes.connect_router)
app.include_router(analytics_routes.router)
app.include_router(post_routes.router)
app.include_router(settings_routes.router)
app.include_router(ai_routes.router)
app.include_router(cron_routes.router)

@app.get("/health")
async def health_check():
    try:
        # Check if initialized
        if not database.db_initialized:
            await database.ensure_beanie_initialized()

        # Try a simple query
        await User.count()
        db_status = "connected"
    except Exception as e:
        db_status = f"error: {str(e)}"

    return {
        "status": "ok" if "error" not in db_status else "degraded",
        "message": "Omnilytics Backend is running",
        "database": db_status,
        "initialized": database.db_initialized
    }

@app.get("/")
async def root():
    return {"message": "Welcome to the Omnilytics API"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", 3000)), reload=True)
