"""Unlock API: record watched ads and report what they unlocked."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from api.deps import get_unlock_ledger, require_user_id
from models.errors import ErrorCode, format_error
from models.request import UnlockRequest
from models.unlock import UnlockStatus, UnlockType, UsageRecord
from services.unlock_ledger import UnlockLedger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/unlock", tags=["unlock"])


class UnlockResponse(BaseModel):
    success: bool = True
    status: UnlockStatus


@router.post("", response_model=UnlockResponse)
async def record_unlock(
    req: UnlockRequest,
    user_id: str = Depends(require_user_id),
    ledger: UnlockLedger = Depends(get_unlock_ledger),
):
    """Record one rewarded ad and return the updated unlock status."""
    try:
        unlock_type = UnlockType(req.unlock_type)
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail=format_error(ErrorCode.INVALID_REQUEST, "invalid unlock type"),
        ) from None

    await ledger.record_unlock(user_id, unlock_type, revenue_cents=req.revenue_cents or None)
    return UnlockResponse(status=await ledger.unlock_status(user_id))


@router.get("", response_model=UnlockStatus)
async def unlock_status(
    user_id: str = Depends(require_user_id),
    ledger: UnlockLedger = Depends(get_unlock_ledger),
):
    return await ledger.unlock_status(user_id)


@router.get("/usage", response_model=UsageRecord)
async def usage(
    user_id: str = Depends(require_user_id),
    ledger: UnlockLedger = Depends(get_unlock_ledger),
):
    """Per-user media usage counters."""
    return await ledger.get_usage(user_id)
