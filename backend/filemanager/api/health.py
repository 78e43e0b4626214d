"""
Health check endpoint.
Verifies storage connectivity.
"""
import asyncio
from fastapi import APIRouter, Depends, HTTPException

from filemanager.api.dependencies import get_storage
from filemanager.errors import StorageError
from filemanager.storage.r2_client import R2Client

router = APIRouter()


@router.get("")
async def health_check(r2: R2Client = Depends(get_storage)):
    """
    Health check endpoint.
    Returns status of the storage bucket.
    """
    health_status = {
        "status": "healthy",
        "storage": "unknown"
    }

    try:
        await asyncio.to_thread(r2.check_bucket)
        health_status["storage"] = "connected"
    except StorageError as e:
        health_status["storage"] = f"error: {e.detail}"
        health_status["status"] = "unhealthy"

    if health_status["status"] == "unhealthy":
        raise HTTPException(status_code=503, detail=health_status)

    return health_status
