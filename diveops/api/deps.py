"""
FastAPI dependencies for dive center isolation and database access.
Authentication happens upstream; the caller's dive center arrives in the
X-Dive-Center-Id header.
"""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from diveops.database import get_db
from diveops.models.dive_center import DiveCenter


async def get_current_dive_center(
    db: Annotated[AsyncSession, Depends(get_db)],
    x_dive_center_id: Annotated[int, Header(description="Dive center the request acts for")],
) -> DiveCenter:
    """Resolve the dive center from the request header."""
    result = await db.execute(
        select(DiveCenter).where(DiveCenter.id == x_dive_center_id, DiveCenter.status == "active")
    )
    dive_center = result.scalar_one_or_none()
    if not dive_center:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Dive center not found or inactive",
        )
    return dive_center


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db)]
CurrentDiveCenter = Annotated[DiveCenter, Depends(get_current_dive_center)]
