"""Public read-only routes."""

from typing import Any
from urllib.parse import unquote

from aws_lambda_powertools import Logger
from aws_lambda_powertools.event_handler.api_gateway import Router

from . import dependencies as deps
from .api_utils import parse_list_type
from .errors import InvalidRequestError

logger = Logger()
router = Router()

MAX_LEADERBOARD_LIMIT = 500


@router.get("/health")
def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return deps.lists.health_check()


@router.get("/lists/<list_type>")
def get_list(list_type: str) -> list[dict[str, Any]]:
    """Levels on a list ordered by placement."""
    levels = deps.lists.get_list(parse_list_type(list_type))
    return [level.to_json() for level in levels]


@router.get("/lists/<list_type>/history")
def get_list_history(list_type: str) -> list[dict[str, Any]]:
    """Approximate a list as it stood at the end of ``?date=YYYY-MM-DD``."""
    parsed = parse_list_type(list_type)
    date_value = router.current_event.get_query_string_value("date")
    levels = deps.lists.get_history(parsed, date_value)
    logger.info(
        "List history reconstructed",
        extra={"list": parsed.value, "date": date_value, "levels": len(levels)},
    )
    return [level.to_json() for level in levels]


@router.get("/level/<ref>")
def get_level(ref: str) -> dict[str, Any]:
    """Level by entity ID, or by external level ID when the ref is numeric."""
    list_param = router.current_event.get_query_string_value("list")
    list_type = parse_list_type(list_param) if list_param else None
    return deps.lists.get_level(unquote(ref), list_type).to_json()


@router.get("/levels/<level_id>/history")
def get_level_history(level_id: str) -> list[dict[str, Any]]:
    changes = deps.lists.get_level_history(level_id)
    return [change.to_json() for change in changes]


@router.get("/leaderboard")
def get_leaderboard() -> dict[str, Any]:
    """Ranked players of the primary list."""
    limit_param = router.current_event.get_query_string_value("limit")
    try:
        limit = (
            int(limit_param)
            if limit_param
            else deps.settings.leaderboard_default_limit
        )
        if limit < 1 or limit > MAX_LEADERBOARD_LIMIT:
            raise ValueError()
    except ValueError as ve:
        raise InvalidRequestError(
            f"Invalid limit: must be an integer between 1 and {MAX_LEADERBOARD_LIMIT}"
        ) from ve

    response = deps.stats.get_leaderboard(limit)
    logger.info(
        "Leaderboard retrieved",
        extra={"limit": limit, "entries_count": len(response.leaderboard)},
    )
    return response.to_json()


@router.get("/player-stats/<player_name>")
def get_player_stats(player_name: str) -> dict[str, Any]:
    """Score, rank and levels of one player."""
    name = unquote(player_name).strip()
    if not name:
        raise InvalidRequestError("Player name parameter is required.")
    return deps.stats.get_player_profile(name).to_json()


@router.get("/layouts")
def list_layouts() -> list[dict[str, Any]]:
    return [layout.to_json() for layout in deps.layouts.list_layouts()]


@router.get("/layouts/<layout_id>")
def get_layout(layout_id: str) -> dict[str, Any]:
    return deps.layouts.get(layout_id).to_json()
