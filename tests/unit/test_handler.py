"""Tests for demonlist HTTP routes."""

import json
from datetime import datetime, timedelta, UTC
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import EndpointConnectionError

from src.demonlist.errors import (
    ConflictError,
    PermissionDeniedError,
    ResourceNotFoundError,
)
from src.demonlist.models import (
    Friendship,
    FriendshipStatus,
    LeaderboardResponse,
    Level,
    ListType,
    PlayerStat,
    Submission,
    SubmissionStatus,
)
from src.demonlist.service import ListMutation, StatsService
from tests.conftest import api_event, make_token

ADD_LEVEL_BODY = {
    "levelData": {
        "name": "Tidal Wave",
        "creator": "OniLink",
        "verifier": "Zoink",
        "videoId": "xyz",
        "levelId": "86407629",
    },
    "list": "main",
    "placement": 1,
}


def make_level(placement: int = 1) -> Level:
    return Level(
        id="level-1",
        name="Tidal Wave",
        creator="OniLink",
        verifier="Zoink",
        video_id="xyz",
        level_id=86407629,
        list_type=ListType.MAIN,
        placement=placement,
    )


def body(response: dict):
    return json.loads(response["body"])


class TestPublicRoutes:
    """Tests for unauthenticated endpoints."""

    def setup_method(self, method) -> None:
        """Set up test environment."""
        # Import here so conftest has set the environment first
        from src.demonlist.handler import app

        self.app = app

    def test_health_check(self) -> None:
        response = self.app.resolve(api_event("GET", "/api/health"), {})

        assert response["statusCode"] == 200
        assert body(response) == {"status": "healthy", "service": "demonlist"}

    @patch("src.demonlist.dependencies.lists")
    def test_get_list(self, mock_lists: MagicMock) -> None:
        mock_lists.get_list.return_value = [make_level()]

        response = self.app.resolve(api_event("GET", "/api/lists/main"), {})

        assert response["statusCode"] == 200
        assert body(response)[0]["videoId"] == "xyz"
        mock_lists.get_list.assert_called_once_with(ListType.MAIN)

    def test_unknown_list(self) -> None:
        response = self.app.resolve(api_event("GET", "/api/lists/weekly"), {})

        assert response["statusCode"] == 400
        assert "Invalid list" in body(response)["message"]

    @patch("src.demonlist.dependencies.lists")
    def test_list_history_passes_date(self, mock_lists: MagicMock) -> None:
        mock_lists.get_history.return_value = []

        response = self.app.resolve(
            api_event(
                "GET", "/api/lists/future/history", query_params={"date": "2024-01-01"}
            ),
            {},
        )

        assert response["statusCode"] == 200
        mock_lists.get_history.assert_called_once_with(ListType.FUTURE, "2024-01-01")

    @patch("src.demonlist.dependencies.lists")
    def test_level_not_found(self, mock_lists: MagicMock) -> None:
        mock_lists.get_level.side_effect = ResourceNotFoundError("Level not found.")

        response = self.app.resolve(api_event("GET", "/api/level/12345"), {})

        assert response["statusCode"] == 404
        assert body(response) == {"message": "Level not found."}

    @patch("src.demonlist.dependencies.stats")
    def test_leaderboard_default_limit(self, mock_stats: MagicMock) -> None:
        mock_stats.get_leaderboard.return_value = LeaderboardResponse(
            leaderboard=[PlayerStat(name="Zoink", score=500.0, rank=1)]
        )

        response = self.app.resolve(api_event("GET", "/api/leaderboard"), {})

        assert response["statusCode"] == 200
        mock_stats.get_leaderboard.assert_called_once_with(250)
        assert body(response)["leaderboard"][0]["name"] == "Zoink"

    @pytest.mark.parametrize("limit", ["0", "501", "ten"])
    def test_leaderboard_bad_limit(self, limit: str) -> None:
        response = self.app.resolve(
            api_event("GET", "/api/leaderboard", query_params={"limit": limit}), {}
        )

        assert response["statusCode"] == 400
        assert "between 1 and 500" in body(response)["message"]

    @patch("src.demonlist.dependencies.stats")
    def test_player_stats_unquotes_name(self, mock_stats: MagicMock) -> None:
        mock_stats.get_player_profile.return_value = MagicMock(
            to_json=MagicMock(return_value={"playerStat": {}})
        )

        response = self.app.resolve(
            api_event("GET", "/api/player-stats/Cool%20Guy"), {}
        )

        assert response["statusCode"] == 200
        mock_stats.get_player_profile.assert_called_once_with("Cool Guy")

    @patch("src.demonlist.dependencies.lists")
    def test_database_failure_is_500(self, mock_lists: MagicMock) -> None:
        mock_lists.get_list.side_effect = RuntimeError("Failed to load list: boom")

        response = self.app.resolve(api_event("GET", "/api/lists/main"), {})

        assert response["statusCode"] == 500
        assert body(response) == {"message": "Internal server error."}


class TestAdminRoutes:
    """Tests for admin and moderator endpoints."""

    def setup_method(self, method) -> None:
        """Set up test environment."""
        from src.demonlist.handler import app

        self.app = app
        self.admin = make_token(user_id="admin-1", role="ADMIN")

    def test_add_level_requires_token(self) -> None:
        response = self.app.resolve(
            api_event("POST", "/api/admin/add-level", ADD_LEVEL_BODY), {}
        )

        assert response["statusCode"] == 401

    def test_add_level_requires_admin(self) -> None:
        for role in ("USER", "MODERATOR"):
            response = self.app.resolve(
                api_event(
                    "POST",
                    "/api/admin/add-level",
                    ADD_LEVEL_BODY,
                    token=make_token(role=role),
                ),
                {},
            )

            assert response["statusCode"] == 403

    @patch("src.demonlist.dependencies.stats")
    @patch("src.demonlist.dependencies.lists")
    def test_add_level(self, mock_lists: MagicMock, mock_stats: MagicMock) -> None:
        mutation = ListMutation(level=make_level(), rescore_all=True)
        mock_lists.add_level.return_value = mutation

        response = self.app.resolve(
            api_event("POST", "/api/admin/add-level", ADD_LEVEL_BODY, token=self.admin),
            {},
        )

        assert response["statusCode"] == 201
        assert body(response)["levelId"] == 86407629
        request = mock_lists.add_level.call_args[0][0]
        assert request.level_data.level_id == 86407629
        assert request.placement == 1
        mock_stats.refresh_after.assert_called_once_with(mutation)

    @patch("src.demonlist.dependencies.lists")
    def test_add_level_survives_stats_connection_failure(
        self, mock_lists: MagicMock
    ) -> None:
        mock_lists.add_level.return_value = ListMutation(
            level=make_level(), rescore_all=True
        )
        stats_database = MagicMock()
        stats_database.load_list.side_effect = EndpointConnectionError(
            endpoint_url="http://localhost:4566"
        )

        with patch(
            "src.demonlist.dependencies.stats",
            StatsService(database=stats_database),
        ):
            response = self.app.resolve(
                api_event(
                    "POST", "/api/admin/add-level", ADD_LEVEL_BODY, token=self.admin
                ),
                {},
            )

        assert response["statusCode"] == 201
        assert body(response)["levelId"] == 86407629

    @patch("src.demonlist.dependencies.lists")
    def test_add_level_validation_error(self, mock_lists: MagicMock) -> None:
        payload = {**ADD_LEVEL_BODY, "placement": 0}

        response = self.app.resolve(
            api_event("POST", "/api/admin/add-level", payload, token=self.admin), {}
        )

        assert response["statusCode"] == 400
        assert body(response)["errors"][0]["field"] == "placement"
        mock_lists.add_level.assert_not_called()

    def test_add_level_missing_body(self) -> None:
        response = self.app.resolve(
            api_event("POST", "/api/admin/add-level", token=self.admin), {}
        )

        assert response["statusCode"] == 400
        assert body(response) == {"message": "Request body is required."}

    def test_add_level_malformed_json(self) -> None:
        response = self.app.resolve(
            api_event("POST", "/api/admin/add-level", "{not json", token=self.admin),
            {},
        )

        assert response["statusCode"] == 400

    @patch("src.demonlist.dependencies.stats")
    @patch("src.demonlist.dependencies.lists")
    def test_move_level_conflict(
        self, mock_lists: MagicMock, mock_stats: MagicMock
    ) -> None:
        mock_lists.move_level.side_effect = ConflictError(
            "The list was changed by another request. Please retry."
        )

        response = self.app.resolve(
            api_event(
                "PUT",
                "/api/admin/move-level",
                {"levelId": "level-1", "newPlacement": 3},
                token=self.admin,
            ),
            {},
        )

        assert response["statusCode"] == 409
        mock_stats.refresh_after.assert_not_called()

    @patch("src.demonlist.dependencies.stats")
    @patch("src.demonlist.dependencies.lists")
    def test_remove_level(self, mock_lists: MagicMock, mock_stats: MagicMock) -> None:
        mock_lists.remove_level.return_value = ListMutation(
            level=make_level(),
            message="Tidal Wave removed successfully.",
            rescore_all=True,
        )

        response = self.app.resolve(
            api_event(
                "DELETE",
                "/api/admin/remove-level",
                {"levelId": "level-1"},
                token=self.admin,
            ),
            {},
        )

        assert response["statusCode"] == 200
        assert body(response) == {"message": "Tidal Wave removed successfully."}
        mock_stats.refresh_after.assert_called_once()

    @patch("src.demonlist.dependencies.stats")
    def test_regenerate_stats(self, mock_stats: MagicMock) -> None:
        mock_stats.regenerate.return_value = [
            PlayerStat(name="a", score=1.0, rank=1),
            PlayerStat(name="b", score=0.0),
        ]

        response = self.app.resolve(
            api_event("POST", "/api/admin/regenerate-stats", token=self.admin), {}
        )

        assert response["statusCode"] == 200
        assert body(response)["players"] == 2
        assert body(response)["ranked"] == 1

    @patch("src.demonlist.dependencies.stats")
    @patch("src.demonlist.dependencies.submissions")
    def test_moderator_approves_submission(
        self, mock_submissions: MagicMock, mock_stats: MagicMock
    ) -> None:
        submission = Submission(
            id="sub-1",
            level_name="Tidal Wave",
            player="Zoink",
            percent=100,
            video_id="v",
            raw_footage_link="raw",
            status=SubmissionStatus.APPROVED,
            submitted_by="user-1",
            created_at=datetime(2024, 1, 1, tzinfo=UTC),
        )
        mutation = ListMutation(level=make_level(), rescore_players={"Zoink"})
        mock_submissions.review.return_value = (submission, [mutation])

        response = self.app.resolve(
            api_event(
                "POST",
                "/api/admin/update-submission",
                {"submissionId": "sub-1", "newStatus": "APPROVED"},
                token=make_token(role="MODERATOR"),
            ),
            {},
        )

        assert response["statusCode"] == 200
        assert body(response)["message"] == "Submission status updated to APPROVED"
        mock_stats.refresh_after.assert_called_once_with(mutation)

    def test_submissions_bad_status(self) -> None:
        response = self.app.resolve(
            api_event(
                "GET",
                "/api/admin/submissions",
                query_params={"status": "LOST"},
                token=self.admin,
            ),
            {},
        )

        assert response["statusCode"] == 400


class TestMemberRoutes:
    """Tests for signed-in user endpoints."""

    def setup_method(self, method) -> None:
        """Set up test environment."""
        from src.demonlist.handler import app

        self.app = app
        self.token = make_token(user_id="alice")

    def test_friends_requires_token(self) -> None:
        response = self.app.resolve(api_event("GET", "/api/friends"), {})

        assert response["statusCode"] == 401

    def test_expired_token(self) -> None:
        token = make_token(expires_in=timedelta(minutes=-5))

        response = self.app.resolve(api_event("GET", "/api/friends", token=token), {})

        assert response["statusCode"] == 401
        assert body(response) == {"message": "Unauthorized: Invalid token."}

    @patch("src.demonlist.dependencies.friends")
    def test_list_friends_adds_friend_id(self, mock_friends: MagicMock) -> None:
        mock_friends.list_friends.return_value = [
            Friendship(
                id="f1",
                requester_id="bob",
                receiver_id="alice",
                status=FriendshipStatus.ACCEPTED,
                updated_at=datetime(2024, 1, 1, tzinfo=UTC),
            )
        ]

        response = self.app.resolve(
            api_event("GET", "/api/friends", token=self.token), {}
        )

        assert response["statusCode"] == 200
        assert body(response)[0]["friendId"] == "bob"
        mock_friends.list_friends.assert_called_once_with("alice")

    @patch("src.demonlist.dependencies.submissions")
    def test_create_submission(self, mock_submissions: MagicMock) -> None:
        mock_submissions.create.return_value = MagicMock(
            to_json=MagicMock(return_value={"id": "sub-1"})
        )

        response = self.app.resolve(
            api_event(
                "POST",
                "/api/submissions",
                {
                    "levelName": "Tidal Wave",
                    "player": "Zoink",
                    "percent": 100,
                    "videoId": "v",
                    "rawFootageLink": "raw",
                },
                token=self.token,
            ),
            {},
        )

        assert response["statusCode"] == 201
        assert body(response)["submission"] == {"id": "sub-1"}
        caller, payload = mock_submissions.create.call_args[0]
        assert caller.user_id == "alice"
        assert payload.level_name == "Tidal Wave"

    @patch("src.demonlist.dependencies.layouts")
    def test_delete_layout_forbidden(self, mock_layouts: MagicMock) -> None:
        mock_layouts.delete.side_effect = PermissionDeniedError(
            "You do not have permission to delete this layout."
        )

        response = self.app.resolve(
            api_event("DELETE", "/api/layouts/layout-1", token=self.token), {}
        )

        assert response["statusCode"] == 403
