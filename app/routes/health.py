from fastapi import APIRouter
from sqlalchemy import text

import app.models  # noqa: F401  registers every table on Base.metadata
from app.database import Base, async_session

router = APIRouter(tags=["health"])

@router.get("/health")
async def health_check():
    """Basic health check"""
    return {"status": "healthy", "service": "Order Fulfillment Engine"}

@router.get("/health/db")
async def database_health():
    """Check database connectivity"""
    try:
        async with async_session() as session:
            await session.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "database": "connected",
            "tables_count": len(Base.metadata.tables),
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "database": "error",
            "error": str(e)
        }
