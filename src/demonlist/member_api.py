"""Routes for any signed-in user."""

from typing import Any

from aws_lambda_powertools.event_handler import Response
from aws_lambda_powertools.event_handler.api_gateway import Router

from . import dependencies as deps
from .api_utils import created, parse_body
from .auth import authenticate
from .models import (
    FriendRequest,
    FriendResponse,
    LayoutCreate,
    LayoutReportCreate,
    PersonalRecordInput,
    SubmissionCreate,
    TokenPayload,
)

router = Router()


def _caller() -> TokenPayload:
    return authenticate(router.current_event, deps.settings)


@router.post("/submissions")
def create_submission() -> Response:
    """Queue a completion for moderator review."""
    caller = _caller()
    payload = parse_body(router.current_event, SubmissionCreate)
    submission = deps.submissions.create(caller, payload)
    return created(
        {
            "message": "Record submitted for review successfully!",
            "submission": submission.to_json(),
        }
    )


@router.get("/personal-records")
def list_personal_records() -> list[dict[str, Any]]:
    caller = _caller()
    return [r.to_json() for r in deps.personal_records.list_mine(caller.user_id)]


@router.post("/personal-records")
def create_personal_record() -> Response:
    caller = _caller()
    payload = parse_body(router.current_event, PersonalRecordInput)
    record = deps.personal_records.create(caller.user_id, payload)
    return created(record.to_json())


@router.get("/personal-records/<record_id>")
def get_personal_record(record_id: str) -> dict[str, Any]:
    """A record, visible to its owner and the owner's friends."""
    caller = _caller()
    return deps.personal_records.get(caller.user_id, record_id).to_json()


@router.put("/personal-records/<record_id>")
def update_personal_record(record_id: str) -> dict[str, Any]:
    caller = _caller()
    payload = parse_body(router.current_event, PersonalRecordInput)
    record = deps.personal_records.update(caller.user_id, record_id, payload)
    return {"message": "Record updated successfully.", "record": record.to_json()}


@router.delete("/personal-records/<record_id>")
def delete_personal_record(record_id: str) -> dict[str, str]:
    caller = _caller()
    deps.personal_records.delete(caller.user_id, record_id)
    return {"message": "Record deleted successfully."}


@router.get("/friends")
def list_friends() -> list[dict[str, Any]]:
    """Accepted friendships of the caller."""
    caller = _caller()
    friendships = deps.friends.list_friends(caller.user_id)
    return [
        {**f.to_json(), "friendId": f.other(caller.user_id)} for f in friendships
    ]


@router.get("/friends/requests")
def list_friend_requests() -> list[dict[str, Any]]:
    caller = _caller()
    return [f.to_json() for f in deps.friends.list_requests(caller.user_id)]


@router.post("/friends")
def send_friend_request() -> Response:
    caller = _caller()
    payload = parse_body(router.current_event, FriendRequest)
    friendship = deps.friends.send_request(caller.user_id, payload.receiver_id)
    return created(
        {"message": "Friend request sent.", "friendship": friendship.to_json()}
    )


@router.put("/friends")
def respond_to_friend_request() -> dict[str, Any]:
    caller = _caller()
    payload = parse_body(router.current_event, FriendResponse)
    friendship = deps.friends.respond(caller.user_id, payload)
    return {
        "message": f"Friend request has been {friendship.status.value.lower()}.",
        "friendship": friendship.to_json(),
    }


@router.post("/layouts")
def create_layout() -> Response:
    caller = _caller()
    payload = parse_body(router.current_event, LayoutCreate)
    layout = deps.layouts.create(caller.user_id, payload)
    return created(layout.to_json())


@router.delete("/layouts/<layout_id>")
def delete_layout(layout_id: str) -> dict[str, str]:
    """Delete a layout; only its creator or an admin may."""
    caller = _caller()
    deps.layouts.delete(caller, layout_id)
    return {"message": "Layout deleted successfully."}


@router.post("/layout-reports")
def create_layout_report() -> Response:
    caller = _caller()
    payload = parse_body(router.current_event, LayoutReportCreate)
    report = deps.layouts.report(caller.user_id, payload)
    return created(
        {"message": "Report submitted successfully.", "report": report.to_json()}
    )
