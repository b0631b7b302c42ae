from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from ..deps import AuthContext, require_session
from ..models import user_view

router = APIRouter(prefix="/api/user", tags=["user"])


@router.get("/profile")
async def profile(auth: AuthContext = Depends(require_session)) -> dict[str, Any]:
    return {"success": True, "user": user_view(auth.user, detailed=True)}
