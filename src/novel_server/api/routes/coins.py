"""Coin ledger endpoints: purchases, unlocks, balance and transaction history."""

from fastapi import APIRouter, Depends, Query

from novel_server.api.auth import get_current_user_id
from novel_server.api.models import (
    AuthorEarningRequest,
    BalanceAuditResponse,
    BalanceResponse,
    PurchaseCoinsRequest,
    TransactionResponse,
    TransactionType,
    UnlockChapterRequest,
)
from novel_server.api.permissions import Permission
from novel_server.api.routes.utils import to_http_exception
from novel_server.errors import PlatformError
from novel_server.services import ledger
from novel_server.services.common import load_actor, require_permission

router = APIRouter(tags=["coins"])


@router.post("/coins/purchase", response_model=TransactionResponse, status_code=201)
async def purchase_coins(
    request: PurchaseCoinsRequest,
    actor_id: int = Depends(get_current_user_id),
):
    """Credit purchased coins to the caller."""
    try:
        return ledger.purchase_coins(actor_id, request.amount, request.description)
    except PlatformError as exc:
        raise to_http_exception(exc) from exc


@router.post(
    "/chapters/{chapter_id}/unlock", response_model=TransactionResponse, status_code=201
)
async def unlock_chapter(
    chapter_id: int,
    request: UnlockChapterRequest | None = None,
    actor_id: int = Depends(get_current_user_id),
):
    """
    Spend coins to unlock a chapter.

    Responds 402 when the balance is too low and 409 when the caller already
    owns the chapter; neither case changes any state.
    """
    coin_cost = request.coin_cost if request is not None else None
    try:
        return ledger.unlock_chapter(actor_id, chapter_id, coin_cost)
    except PlatformError as exc:
        raise to_http_exception(exc) from exc


@router.get("/coins/balance", response_model=BalanceResponse)
async def get_balance(actor_id: int = Depends(get_current_user_id)):
    try:
        return {"user_id": actor_id, "coins_balance": ledger.get_balance(actor_id)}
    except PlatformError as exc:
        raise to_http_exception(exc) from exc


@router.get("/transactions", response_model=list[TransactionResponse])
async def list_transactions(
    user_id: int | None = None,
    type: TransactionType | None = None,
    limit: int = Query(default=50, gt=0),
    offset: int = Query(default=0, ge=0),
    actor_id: int = Depends(get_current_user_id),
):
    """Ledger history, newest first. Non-admins only see their own rows."""
    try:
        return ledger.list_transactions(
            actor_id, user_id=user_id, type_=type, limit=limit, offset=offset
        )
    except PlatformError as exc:
        raise to_http_exception(exc) from exc


@router.post("/admin/earnings", response_model=TransactionResponse, status_code=201)
async def record_author_earning(
    request: AuthorEarningRequest,
    actor_id: int = Depends(get_current_user_id),
):
    """Admin-only author payout outside the unlock flow."""
    try:
        return ledger.record_author_earning(
            actor_id,
            request.author_id,
            request.amount,
            description=request.description,
            novel_id=request.novel_id,
            chapter_id=request.chapter_id,
        )
    except PlatformError as exc:
        raise to_http_exception(exc) from exc


@router.get("/admin/users/{user_id}/balance-audit", response_model=BalanceAuditResponse)
async def audit_balance(user_id: int, actor_id: int = Depends(get_current_user_id)):
    """Admin-only: compare a stored balance with the user's ledger total."""
    try:
        require_permission(load_actor(actor_id), Permission.MANAGE_USERS, "audit balances")
        return ledger.audit_balance(user_id)
    except PlatformError as exc:
        raise to_http_exception(exc) from exc
