"""Routes reserved for admins and moderators."""

from typing import Any

from aws_lambda_powertools import Logger
from aws_lambda_powertools.event_handler import Response
from aws_lambda_powertools.event_handler.api_gateway import Router

from . import dependencies as deps
from .api_utils import created, parse_body
from .auth import ADMIN_ONLY, STAFF, authenticate
from .errors import InvalidRequestError
from .models import (
    AddLevelRequest,
    AddRecordRequest,
    LayoutReportUpdate,
    MoveLevelRequest,
    RemoveLevelRequest,
    RemoveRecordRequest,
    SubmissionReview,
    SubmissionStatus,
    TokenPayload,
    UpdateLevelRequest,
)

logger = Logger()
router = Router()


def _admin() -> TokenPayload:
    return authenticate(router.current_event, deps.settings, roles=ADMIN_ONLY)


def _staff() -> TokenPayload:
    return authenticate(router.current_event, deps.settings, roles=STAFF)


@router.post("/admin/add-level")
def add_level() -> Response:
    """Insert a level at a placement on a list."""
    caller = _admin()
    request = parse_body(router.current_event, AddLevelRequest)
    logger.info(
        "Add level requested",
        extra={
            "user_id": caller.user_id,
            "list": request.list_type.value,
            "placement": request.placement,
        },
    )

    mutation = deps.lists.add_level(request)
    deps.stats.refresh_after(mutation)
    return created(mutation.level.to_json())


@router.put("/admin/move-level")
def move_level() -> dict[str, Any]:
    """Move a level to a new placement on its list."""
    caller = _admin()
    request = parse_body(router.current_event, MoveLevelRequest)
    logger.info(
        "Move level requested",
        extra={
            "user_id": caller.user_id,
            "level_id": request.level_id,
            "new_placement": request.new_placement,
        },
    )

    mutation = deps.lists.move_level(request)
    deps.stats.refresh_after(mutation)
    return mutation.level.to_json()


@router.delete("/admin/remove-level")
def remove_level() -> dict[str, str]:
    """Remove a level from its list."""
    caller = _admin()
    request = parse_body(router.current_event, RemoveLevelRequest)
    logger.info(
        "Remove level requested",
        extra={"user_id": caller.user_id, "level_id": request.level_id},
    )

    mutation = deps.lists.remove_level(request)
    deps.stats.refresh_after(mutation)
    return {"message": mutation.message}


@router.put("/admin/update-level")
def update_level() -> dict[str, Any]:
    """Edit a level's metadata without touching its placement."""
    _admin()
    request = parse_body(router.current_event, UpdateLevelRequest)
    mutation = deps.lists.update_level(request)
    deps.stats.refresh_after(mutation)
    return mutation.level.to_json()


@router.post("/admin/regenerate-stats")
def regenerate_stats() -> dict[str, Any]:
    """Recompute every player's score and rank."""
    caller = _admin()
    logger.info("Stats regeneration requested", extra={"user_id": caller.user_id})
    ranked = deps.stats.regenerate()
    return {
        "message": "Player stats regenerated.",
        "players": len(ranked),
        "ranked": sum(1 for stat in ranked if stat.rank is not None),
    }


@router.get("/admin/submissions")
def list_submissions() -> list[dict[str, Any]]:
    """Submissions in ``?status=`` (PENDING by default), oldest first."""
    _staff()
    status_param = router.current_event.get_query_string_value("status", "PENDING")
    try:
        status = SubmissionStatus(status_param.upper())
    except ValueError as ve:
        raise InvalidRequestError(
            f"Invalid status: {status_param}. "
            f"Must be one of: {[s.value for s in SubmissionStatus]}"
        ) from ve
    return [s.to_json() for s in deps.submissions.list_submissions(status)]


@router.post("/admin/update-submission")
def update_submission() -> dict[str, Any]:
    """Approve or reject a pending submission."""
    caller = _staff()
    review = parse_body(router.current_event, SubmissionReview)
    submission, mutations = deps.submissions.review(review)
    logger.info(
        "Submission status updated",
        extra={
            "user_id": caller.user_id,
            "submission_id": submission.id,
            "status": submission.status.value,
        },
    )
    if mutations:
        deps.stats.refresh_after(*mutations)
    return {
        "message": f"Submission status updated to {submission.status.value}",
        "submission": submission.to_json(),
    }


@router.post("/admin/add-record")
def add_record() -> Response:
    _staff()
    request = parse_body(router.current_event, AddRecordRequest)
    mutation = deps.lists.add_record(request)
    deps.stats.refresh_after(mutation)
    return created({"message": mutation.message, "level": mutation.level.to_json()})


@router.post("/admin/remove-record")
def remove_record() -> dict[str, Any]:
    _staff()
    request = parse_body(router.current_event, RemoveRecordRequest)
    mutation = deps.lists.remove_record(request)
    deps.stats.refresh_after(mutation)
    return {"message": mutation.message, "level": mutation.level.to_json()}


@router.get("/admin/layout-reports")
def list_layout_reports() -> list[dict[str, Any]]:
    """Pending layout reports, oldest first."""
    _staff()
    return [r.to_json() for r in deps.layouts.list_reports()]


@router.put("/admin/layout-reports")
def update_layout_report() -> dict[str, str]:
    _staff()
    update = parse_body(router.current_event, LayoutReportUpdate)
    deps.layouts.update_report(update)
    return {"message": "Report status updated."}
