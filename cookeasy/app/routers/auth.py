from __future__ import annotations
from fastapi import APIRouter, Depends
from cookeasy.app.deps import get_active_user, CurrentUser

router = APIRouter(prefix="/auth", tags=["auth"])

@router.get("/me", response_model=CurrentUser)
async def me(user: CurrentUser = Depends(get_active_user)):
    return user
