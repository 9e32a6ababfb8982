"""Gift router: all /api/v1/gifts/* endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from litpad.auth.dependencies import get_current_user, get_current_writer
from litpad.database import get_session
from litpad.db.models import User
from litpad.exceptions import InvalidParamError
from litpad.gifts.schemas import GiftResponse, SentGiftResponse, SentGiftsData
from litpad.gifts.service import SENT_GIFTS_PER_PAGE, claim_gift, list_gifts, list_sent_gifts, send_gift
from litpad.responses import DataResponse, paginate_meta
from litpad.social.notification_push import send_notification_in_socket

router = APIRouter(prefix="/api/v1/gifts", tags=["Gifts"])

_CLAIMED_FILTER = {"CLAIMED": True, "NOT_CLAIMED": False}


@router.get("", response_model=DataResponse[list[GiftResponse]])
async def get_gifts(db: AsyncSession = Depends(get_session)) -> DataResponse[list[GiftResponse]]:
    gifts = await list_gifts(db)
    return DataResponse(message="Gifts fetched", data=[GiftResponse.model_validate(g) for g in gifts])


@router.get("/sent", response_model=DataResponse[SentGiftsData])
async def get_sent_gifts(
    claimed: str | None = Query(None),
    page: int = Query(1, ge=1),
    user: User = Depends(get_current_writer),
    db: AsyncSession = Depends(get_session),
) -> DataResponse[SentGiftsData]:
    """Gifts sent to the calling writer; ``?claimed=CLAIMED|NOT_CLAIMED``."""
    if claimed is not None and claimed not in _CLAIMED_FILTER:
        raise InvalidParamError("Invalid claimed param", data={"claimed": "Must be CLAIMED or NOT_CLAIMED"})
    gifts, total = await list_sent_gifts(
        db,
        user.id,
        claimed=_CLAIMED_FILTER.get(claimed) if claimed else None,
        page=page,
    )
    return DataResponse(
        message="Sent gifts fetched",
        data=SentGiftsData(
            **paginate_meta(total, page, SENT_GIFTS_PER_PAGE),
            gifts=[SentGiftResponse.model_validate(g) for g in gifts],
        ),
    )


@router.get("/sent/{sent_gift_id}/claim", response_model=DataResponse[SentGiftResponse])
async def claim_sent_gift(
    sent_gift_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> DataResponse[SentGiftResponse]:
    try:
        gift_id = uuid.UUID(sent_gift_id)
    except ValueError as e:
        raise InvalidParamError("Invalid ID") from e
    sent_gift = await claim_gift(db, user, gift_id)
    await db.commit()
    return DataResponse(message="Gift claimed successfully", data=SentGiftResponse.model_validate(sent_gift))


@router.get(
    "/{username}/{gift_slug}/send",
    status_code=status.HTTP_201_CREATED,
    response_model=DataResponse[SentGiftResponse],
)
async def send_gift_to_writer(
    username: str,
    gift_slug: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> DataResponse[SentGiftResponse]:
    """Send a gift; the writer is notified after the transaction commits."""
    sent_gift, notification = await send_gift(db, user, username, gift_slug)
    await db.commit()
    await send_notification_in_socket(notification)
    return DataResponse(message="Gift sent successfully", data=SentGiftResponse.model_validate(sent_gift))
