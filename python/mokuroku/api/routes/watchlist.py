"""Watch-list API routes.

Read-only listing of the records written by the interactive toggles.
Routes are transport-only: each calls exactly one service function.

Response envelope: {"data": [...], "page": {...}}
Error envelope: {"error": {"code": "...", "message": "...", "request_id": "..."}}
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from mokuroku.api.deps import get_session_context
from mokuroku.db.models import MediaKind, WatchStatus
from mokuroku.errors import ApiErrorCode, InvalidRequestError
from mokuroku.services.context import SessionContext
from mokuroku.services.tracked import TrackedItemSource, list_watchlist

router = APIRouter(tags=["watchlist"])


def _parse_statuses(raw: str) -> list[WatchStatus]:
    statuses = []
    for value in raw.split(","):
        value = value.strip().upper()
        if not value:
            continue
        try:
            statuses.append(WatchStatus(value))
        except ValueError:
            raise InvalidRequestError(
                ApiErrorCode.E_INVALID_STATUS, f"Unknown watch status: {value}"
            ) from None
    if not statuses:
        raise InvalidRequestError(ApiErrorCode.E_INVALID_STATUS, "At least one status is required")
    return statuses


def _parse_kind(raw: str) -> MediaKind | None:
    value = raw.strip().upper()
    if value == "ALL":
        return None
    try:
        return MediaKind(value)
    except ValueError:
        raise InvalidRequestError(ApiErrorCode.E_INVALID_KIND, f"Unknown media kind: {raw}") from None


@router.get("/users/{user_id}/watchlist")
async def get_watchlist(
    user_id: int,
    ctx: Annotated[SessionContext, Depends(get_session_context)],
    status: str = Query(
        default=WatchStatus.consuming.value,
        description="Comma-separated statuses (NOT_SEEN, CONSUMING, FINISHED)",
    ),
    kind: str = Query(default=MediaKind.anime.value, description="ANIME, MANGA or ALL"),
    suggests: bool | None = Query(default=None, description="Only suggested (or unsuggested) items"),
    page: int = Query(default=1, ge=1, description="1-based page number"),
) -> dict:
    """List one page of a user's tracked items grouped by release season.

    Errors:
        E_INVALID_STATUS (400): A status is not a known watch status.
        E_INVALID_KIND (400): kind is not ANIME, MANGA or ALL.
    """
    source = TrackedItemSource(
        ctx.session_factory,
        user_id,
        statuses=_parse_statuses(status),
        kind=_parse_kind(kind),
        per_page=ctx.watchlist_page_size,
        suggests=suggests,
    )
    result = await list_watchlist(source, page)
    return result.model_dump(mode="json")
