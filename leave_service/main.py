import logging

from fastapi import FastAPI

from leave_service.api.grants import router as grants_router
from leave_service.api.leaves import router as leaves_router
from leave_service.core.config import settings
from leave_service.core.db import close_client

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Leave Service",
    version="0.1.0",
    description="Integrated leave records over the leaves / schedules collections (REST + MongoDB)",
)

app.include_router(leaves_router)
app.include_router(grants_router)


@app.get("/health")
async def health_check():
    return {
        "status": "ok",
        "service": "leave-service",
    }


@app.get("/")
async def root():
    return {
        "message": "Leave Service is running",
        "docs": "/docs",
    }


@app.on_event("shutdown")
async def on_shutdown():
    logger.info("Closing MongoDB client for Leave Service")
    close_client()
