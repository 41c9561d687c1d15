"""
Health check endpoint.
"""
from fastapi import APIRouter, Request

router = APIRouter()


@router.get("")
async def health_check(request: Request):
    """Report that the process is up and which bucket it writes to."""
    credentials = request.app.state.credentials
    return {
        "status": "healthy",
        "bucket": credentials.bucket,
        "region": credentials.region,
    }
