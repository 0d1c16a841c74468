"""Community features: submissions, personal records, friends and layouts."""

from datetime import datetime, UTC
from uuid import uuid4

from aws_lambda_powertools import Logger

from .database import DemonlistDatabase
from .errors import (
    InvalidRequestError,
    PermissionDeniedError,
    ResourceNotFoundError,
)
from .models import (
    FriendResponse,
    Friendship,
    FriendshipStatus,
    Layout,
    LayoutCreate,
    LayoutReport,
    LayoutReportCreate,
    LayoutReportStatus,
    LayoutReportUpdate,
    LevelRecord,
    PersonalRecord,
    PersonalRecordInput,
    PersonalRecordStatus,
    Role,
    Submission,
    SubmissionCreate,
    SubmissionReview,
    SubmissionStatus,
    TokenPayload,
)
from .service import ListMutation, ListService

logger = Logger()

MODERATION_ROLES = frozenset({Role.ADMIN, Role.MODERATOR})


class SubmissionService:
    """Record submissions and their moderation queue."""

    def __init__(
        self,
        database: DemonlistDatabase | None = None,
        lists: ListService | None = None,
    ) -> None:
        """Initialize service with database dependency."""
        self.db = database or DemonlistDatabase()
        self.lists = lists or ListService(self.db)

    def create(self, caller: TokenPayload, payload: SubmissionCreate) -> Submission:
        """Queue a completion for review.

        Users may only submit for themselves; moderators and admins may
        submit on anyone's behalf.

        Raises:
            PermissionDeniedError: If submitting for another player without rights
            ResourceNotFoundError: If no level has the given name
        """
        own_name = (caller.username or "").strip().lower()
        if payload.player.lower() != own_name and caller.role not in MODERATION_ROLES:
            raise PermissionDeniedError(
                "You are not authorized to submit records for other players."
            )

        levels = self.lists.find_levels_by_name(payload.level_name)
        if not levels:
            raise ResourceNotFoundError(
                f'Level "{payload.level_name}" not found on the demon list. '
                "Please check the spelling."
            )

        submission = Submission(
            id=uuid4().hex,
            submitted_by=caller.user_id,
            created_at=datetime.now(UTC),
            **payload.model_dump(exclude={"level_name"}),
            level_name=levels[0].name,
        )
        self.db.put_submission(submission)
        logger.info(
            "Submission created",
            extra={"submission_id": submission.id, "level_name": submission.level_name},
        )
        return submission

    def list_submissions(self, status: SubmissionStatus) -> list[Submission]:
        return self.db.list_submissions(status)

    def review(
        self, review: SubmissionReview
    ) -> tuple[Submission, list[ListMutation]]:
        """Approve or reject a pending submission.

        Approval appends the record to every level named like the
        submission's level.

        Returns:
            The updated submission and one mutation per level touched

        Raises:
            ResourceNotFoundError: If the submission, or on approval a
                matching level, does not exist
            InvalidRequestError: If the submission was already reviewed
        """
        submission = self.db.get_submission(review.submission_id)
        if submission is None:
            raise ResourceNotFoundError("Submission not found.")
        if submission.status is not SubmissionStatus.PENDING:
            raise InvalidRequestError("This submission has already been reviewed.")

        mutations: list[ListMutation] = []
        if review.new_status is SubmissionStatus.APPROVED:
            record = LevelRecord(
                username=submission.player,
                percent=submission.percent,
                video_id=submission.video_id,
            )
            mutations = self.lists.add_record_by_level_name(
                submission.level_name, record
            )

        # Records first, so a failed append leaves the submission pending.
        self.db.set_submission_status(submission.id, review.new_status)
        submission.status = review.new_status

        logger.info(
            "Submission reviewed",
            extra={
                "submission_id": submission.id,
                "status": submission.status.value,
                "levels_updated": len(mutations),
            },
        )
        return submission, mutations


class FriendService:
    """Friend requests and friendships between users."""

    def __init__(self, database: DemonlistDatabase | None = None) -> None:
        """Initialize service with database dependency."""
        self.db = database or DemonlistDatabase()

    def are_friends(self, user_id: str, other_id: str) -> bool:
        friendship = self.db.get_friendship(user_id, other_id)
        return friendship is not None and friendship.status is FriendshipStatus.ACCEPTED

    def send_request(self, requester_id: str, receiver_id: str) -> Friendship:
        """Ask another user to be friends.

        A declined friendship can be asked for again, by either side.

        Raises:
            InvalidRequestError: If asking yourself, or a request or
                friendship already exists
        """
        if requester_id == receiver_id:
            raise InvalidRequestError("You cannot send a friend request to yourself.")

        existing = self.db.get_friendship(requester_id, receiver_id)
        if existing is not None and existing.status is not FriendshipStatus.DECLINED:
            raise InvalidRequestError("A friendship or pending request already exists.")

        friendship = Friendship(
            id=existing.id if existing else uuid4().hex,
            requester_id=requester_id,
            receiver_id=receiver_id,
            status=FriendshipStatus.PENDING,
            updated_at=datetime.now(UTC),
        )
        self.db.save_friendship(friendship)
        logger.info("Friend request sent", extra={"friendship_id": friendship.id})
        return friendship

    def respond(self, receiver_id: str, response: FriendResponse) -> Friendship:
        """Accept or decline a request addressed to ``receiver_id``.

        Raises:
            PermissionDeniedError: If the request is not addressed to the caller
            InvalidRequestError: If the request was already answered
        """
        friendship = next(
            (
                f
                for f in self.db.list_friendships(receiver_id)
                if f.id == response.friendship_id
            ),
            None,
        )
        if friendship is None or friendship.receiver_id != receiver_id:
            raise PermissionDeniedError(
                "You do not have permission to respond to this request."
            )
        if friendship.status is not FriendshipStatus.PENDING:
            raise InvalidRequestError("This request is no longer pending.")

        friendship.status = response.response
        friendship.updated_at = datetime.now(UTC)
        self.db.save_friendship(friendship)
        return friendship

    def list_friends(self, user_id: str) -> list[Friendship]:
        return [
            f
            for f in self.db.list_friendships(user_id)
            if f.status is FriendshipStatus.ACCEPTED
        ]

    def list_requests(self, user_id: str) -> list[Friendship]:
        """Pending requests other users sent to ``user_id``."""
        return [
            f
            for f in self.db.list_friendships(user_id)
            if f.status is FriendshipStatus.PENDING and f.receiver_id == user_id
        ]


class PersonalRecordService:
    """Each user's own ordered lists of completed and in-progress levels."""

    def __init__(
        self,
        database: DemonlistDatabase | None = None,
        friends: FriendService | None = None,
    ) -> None:
        """Initialize service with database dependency."""
        self.db = database or DemonlistDatabase()
        self.friends = friends or FriendService(self.db)

    def list_mine(self, user_id: str) -> list[PersonalRecord]:
        """Completed records first, then in-progress ones, each by placement."""
        return [
            record
            for status in PersonalRecordStatus
            for record in self.db.load_personal_list(user_id, status)
        ]

    def create(self, user_id: str, payload: PersonalRecordInput) -> PersonalRecord:
        """Insert a record at its placement, pushing the rest down."""
        ranked = self.db.load_personal_list(user_id, payload.status)
        record = PersonalRecord(
            id=uuid4().hex,
            user_id=user_id,
            created_at=datetime.now(UTC),
            **payload.model_dump(),
        )
        ranked.insert(record, payload.placement)
        self.db.commit_personal_lists(user_id, {payload.status: ranked}, saved=[record])
        logger.info(
            "Personal record created",
            extra={"record_id": record.id, "placement": record.placement},
        )
        return record

    def get(self, user_id: str, record_id: str) -> PersonalRecord:
        """A record visible to its owner and the owner's friends.

        Raises:
            ResourceNotFoundError: If the record does not exist
            PermissionDeniedError: If the caller is neither owner nor friend
        """
        owner_id, status = self._locate(record_id)
        if owner_id != user_id and not self.friends.are_friends(user_id, owner_id):
            raise PermissionDeniedError(
                "You do not have permission to view this record."
            )
        return self._find(owner_id, status, record_id)

    def update(
        self, user_id: str, record_id: str, payload: PersonalRecordInput
    ) -> PersonalRecord:
        """Edit a record, moving it within its list or across to the other one."""
        owner_id, old_status = self._locate(record_id)
        if owner_id != user_id:
            raise PermissionDeniedError(
                "You do not have permission to edit this record."
            )

        source = self.db.load_personal_list(user_id, old_status)
        record = source.find(record_id)
        if record is None:
            raise ResourceNotFoundError("Record not found.")

        if payload.status is old_status:
            source.move(record_id, payload.placement)
            lists = {old_status: source}
        else:
            source.remove(record_id)
            target = self.db.load_personal_list(user_id, payload.status)
            target.insert(record, payload.placement)
            lists = {old_status: source, payload.status: target}

        for name, value in payload.model_dump(exclude={"placement"}).items():
            setattr(record, name, value)
        self.db.commit_personal_lists(user_id, lists, saved=[record])
        return record

    def delete(self, user_id: str, record_id: str) -> None:
        """Delete a record and close the gap in its list."""
        owner_id, status = self._locate(record_id)
        if owner_id != user_id:
            raise PermissionDeniedError(
                "You do not have permission to delete this record."
            )
        ranked = self.db.load_personal_list(user_id, status)
        try:
            result = ranked.remove(record_id)
        except KeyError as e:
            raise ResourceNotFoundError("Record not found.") from e
        self.db.commit_personal_lists(user_id, {status: ranked}, deleted=[result.entry])

    def _locate(self, record_id: str) -> tuple[str, PersonalRecordStatus]:
        located = self.db.get_personal_record_owner(record_id)
        if located is None:
            raise ResourceNotFoundError("Record not found.")
        return located

    def _find(
        self, owner_id: str, status: PersonalRecordStatus, record_id: str
    ) -> PersonalRecord:
        record = self.db.load_personal_list(owner_id, status).find(record_id)
        if record is None:
            raise ResourceNotFoundError("Record not found.")
        return record


class LayoutService:
    """Community layouts and reports against them."""

    def __init__(self, database: DemonlistDatabase | None = None) -> None:
        """Initialize service with database dependency."""
        self.db = database or DemonlistDatabase()

    def create(self, creator_id: str, payload: LayoutCreate) -> Layout:
        layout = Layout(
            id=uuid4().hex,
            creator_id=creator_id,
            created_at=datetime.now(UTC),
            **payload.model_dump(),
        )
        self.db.put_layout(layout)
        logger.info("Layout created", extra={"layout_id": layout.id})
        return layout

    def list_layouts(self) -> list[Layout]:
        return self.db.list_layouts()

    def get(self, layout_id: str) -> Layout:
        layout = self.db.get_layout(layout_id)
        if layout is None:
            raise ResourceNotFoundError("Layout not found.")
        return layout

    def delete(self, caller: TokenPayload, layout_id: str) -> None:
        """Delete a layout; only its creator or an admin may."""
        layout = self.get(layout_id)
        if layout.creator_id != caller.user_id and caller.role is not Role.ADMIN:
            raise PermissionDeniedError(
                "You do not have permission to delete this layout."
            )
        self.db.delete_layout(layout_id)
        logger.info("Layout deleted", extra={"layout_id": layout_id})

    def report(self, reporter_id: str, payload: LayoutReportCreate) -> LayoutReport:
        """File a report against an existing layout."""
        self.get(payload.layout_id)
        report = LayoutReport(
            id=uuid4().hex,
            reporter_id=reporter_id,
            created_at=datetime.now(UTC),
            **payload.model_dump(),
        )
        self.db.put_layout_report(report)
        logger.info(
            "Layout reported",
            extra={"report_id": report.id, "layout_id": report.layout_id},
        )
        return report

    def list_reports(
        self, status: LayoutReportStatus = LayoutReportStatus.PENDING
    ) -> list[LayoutReport]:
        return self.db.list_layout_reports(status)

    def update_report(self, update: LayoutReportUpdate) -> None:
        self.db.set_layout_report_status(update.report_id, update.status)
