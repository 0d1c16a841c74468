"""DynamoDB operations for demonlist service.

Everything lives in one table keyed by ``pk`` / ``sort_key``. The order of
each ranked list is held in a single order document (``entry_ids`` plus a
``version``); a level's placement is its index in that document. Reorders
rewrite the order document, any created or deleted items and the audit
entry in one ``TransactWriteItems`` call, conditioned on the version that
was read.
"""

from datetime import datetime, UTC
from decimal import Decimal
from typing import Any

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError

from .config import Settings, get_settings
from .errors import ConflictError, ResourceNotFoundError
from .models import (
    ChangeType,
    Friendship,
    FriendshipStatus,
    Layout,
    LayoutReport,
    LayoutReportStatus,
    Level,
    LevelData,
    LevelRecord,
    ListChange,
    ListType,
    PersonalRecord,
    PersonalRecordStatus,
    PlayerStat,
    Submission,
    SubmissionStatus,
)
from .reordering import RankedList

BATCH_GET_LIMIT = 100
ORDER = "ORDER"
META = "META"
STATS_PK = "STATS#main"
RANKING = "RANKING"


def timestamp(value: datetime) -> str:
    """Sortable ISO timestamp in UTC."""
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def _optional_int(value: Any) -> int | None:
    return None if value is None else int(value)


def _parse_time(value: Any) -> datetime | None:
    return None if value is None else datetime.fromisoformat(str(value))


class DemonlistDatabase:
    """DynamoDB operations for demonlist data."""

    def __init__(
        self, table_name: str | None = None, settings: Settings | None = None
    ) -> None:
        """Initialize database connection."""
        settings = settings or get_settings()
        resolved_table_name = table_name or settings.table_name
        if not resolved_table_name:
            raise ValueError("Table name must be provided")
        self.table_name = resolved_table_name
        self.dynamodb = boto3.resource(
            "dynamodb",
            region_name=settings.region,
            endpoint_url=settings.endpoint_url,
        )
        self.table = self.dynamodb.Table(self.table_name)
        # the resource's client accepts plain Python values
        self.client = self.dynamodb.meta.client

    def create_table(self) -> None:
        """Create the table if it does not exist yet."""
        try:
            self.dynamodb.create_table(
                TableName=self.table_name,
                KeySchema=[
                    {"AttributeName": "pk", "KeyType": "HASH"},
                    {"AttributeName": "sort_key", "KeyType": "RANGE"},
                ],
                AttributeDefinitions=[
                    {"AttributeName": "pk", "AttributeType": "S"},
                    {"AttributeName": "sort_key", "AttributeType": "S"},
                ],
                BillingMode="PAY_PER_REQUEST",
            )
            self.client.get_waiter("table_exists").wait(TableName=self.table_name)
        except self.client.exceptions.ResourceInUseException:
            pass

    # ------------------------------------------------------------------
    # low-level helpers
    # ------------------------------------------------------------------

    def _query_all(self, **kwargs: Any) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        while True:
            response = self.table.query(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    def _batch_get(self, keys: list[dict[str, str]]) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        for start in range(0, len(keys), BATCH_GET_LIMIT):
            request: dict[str, Any] | None = {
                self.table_name: {
                    "Keys": keys[start : start + BATCH_GET_LIMIT],
                    "ConsistentRead": True,
                }
            }
            while request:
                response = self.dynamodb.batch_get_item(RequestItems=request)
                items.extend(response["Responses"].get(self.table_name, []))
                request = response.get("UnprocessedKeys") or None
        return items

    def _get(self, pk: str, sort_key: str) -> dict[str, Any] | None:
        response = self.table.get_item(
            Key={"pk": pk, "sort_key": sort_key}, ConsistentRead=True
        )
        return response.get("Item")

    def _put_op(
        self,
        item: dict[str, Any],
        condition: str | None = None,
        names: dict[str, str] | None = None,
        values: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        op: dict[str, Any] = {"TableName": self.table_name, "Item": item}
        if condition:
            op["ConditionExpression"] = condition
        if names:
            op["ExpressionAttributeNames"] = names
        if values:
            op["ExpressionAttributeValues"] = values
        return {"Put": op}

    def _delete_op(self, pk: str, sort_key: str) -> dict[str, Any]:
        return {
            "Delete": {
                "TableName": self.table_name,
                "Key": {"pk": pk, "sort_key": sort_key},
            }
        }

    def _order_op(self, pk: str, sort_key: str, ranked: RankedList) -> dict[str, Any]:
        return self._put_op(
            {
                "pk": pk,
                "sort_key": sort_key,
                "entry_ids": ranked.ids(),
                "version": ranked.version + 1,
            },
            condition="attribute_not_exists(pk) OR #version = :version",
            names={"#version": "version"},
            values={":version": ranked.version},
        )

    def _transact(self, items: list[dict[str, Any]]) -> None:
        try:
            self.client.transact_write_items(TransactItems=items)
        except ClientError as e:
            if e.response["Error"]["Code"] == "TransactionCanceledException":
                raise ConflictError(
                    "The data was changed by another request. Please retry."
                ) from e
            raise RuntimeError(f"Failed to write transaction: {e}") from e
        except BotoCoreError as e:
            raise RuntimeError(f"Failed to write transaction: {e}") from e

    def _read_order(self, pk: str, sort_key: str) -> tuple[list[str], int]:
        item = self._get(pk, sort_key)
        if not item:
            return [], 0
        return [str(i) for i in item.get("entry_ids", [])], int(item["version"])

    # ------------------------------------------------------------------
    # levels and ranked lists
    # ------------------------------------------------------------------

    @staticmethod
    def _list_pk(list_type: ListType) -> str:
        return f"LIST#{list_type.value}"

    @staticmethod
    def _level_item(level: Level) -> dict[str, Any]:
        return {
            "pk": f"LEVEL#{level.id}",
            "sort_key": META,
            "id": level.id,
            "name": level.name,
            "creator": level.creator,
            "verifier": level.verifier,
            "video_id": level.video_id,
            "level_id": level.level_id,
            "description": level.description,
            "list_type": level.list_type.value,
            "records": [record.model_dump() for record in level.records],
        }

    @staticmethod
    def _to_level(item: dict[str, Any], placement: int) -> Level:
        return Level(
            id=str(item["id"]),
            name=str(item["name"]),
            creator=str(item["creator"]),
            verifier=str(item["verifier"]),
            video_id=str(item["video_id"]),
            level_id=_optional_int(item.get("level_id")),
            description=str(item.get("description") or ""),
            list_type=ListType(item["list_type"]),
            placement=placement,
            records=[
                LevelRecord(
                    username=str(r["username"]),
                    percent=int(r["percent"]),
                    video_id=r.get("video_id"),
                )
                for r in item.get("records", [])
            ],
        )

    def load_list(self, list_type: ListType) -> RankedList[Level]:
        """Read the current snapshot of a ranked list."""
        try:
            ids, version = self._read_order(self._list_pk(list_type), ORDER)
            items = self._batch_get(
                [{"pk": f"LEVEL#{level_id}", "sort_key": META} for level_id in ids]
            )
        except (ClientError, BotoCoreError) as e:
            raise RuntimeError(f"Failed to load list: {e}") from e

        by_id = {str(item["id"]): item for item in items}
        present = [level_id for level_id in ids if level_id in by_id]
        levels = [
            self._to_level(by_id[level_id], placement)
            for placement, level_id in enumerate(present, 1)
        ]
        return RankedList(
            list_type.value, levels, max_length=list_type.max_length, version=version
        )

    def get_level(self, level_id: str) -> Level | None:
        """Get a level by its ID, with its current placement."""
        try:
            item = self._get(f"LEVEL#{level_id}", META)
            if not item:
                return None
            ids, _ = self._read_order(
                self._list_pk(ListType(item["list_type"])), ORDER
            )
        except (ClientError, BotoCoreError) as e:
            raise RuntimeError(f"Failed to get level: {e}") from e

        if level_id not in ids:
            return None
        return self._to_level(item, ids.index(level_id) + 1)

    def get_level_id_claim(self, external_id: int) -> str | None:
        """Return the ID of the level holding an external level ID."""
        try:
            item = self._get(f"GDLEVEL#{external_id}", "CLAIM")
        except (ClientError, BotoCoreError) as e:
            raise RuntimeError(f"Failed to look up level ID: {e}") from e
        return str(item["level"]) if item else None

    def commit_list(
        self,
        list_type: ListType,
        ranked: RankedList[Level],
        created: list[Level] | None = None,
        deleted: list[Level] | None = None,
        change: ListChange | None = None,
    ) -> None:
        """Atomically write a list's new order with its side effects."""
        items = [self._order_op(self._list_pk(list_type), ORDER, ranked)]
        for level in created or []:
            items.append(self._put_op(self._level_item(level)))
            if level.level_id is not None:
                items.append(
                    self._put_op(
                        {
                            "pk": f"GDLEVEL#{level.level_id}",
                            "sort_key": "CLAIM",
                            "level": level.id,
                        },
                        condition="attribute_not_exists(pk)",
                    )
                )
        for level in deleted or []:
            items.append(self._delete_op(f"LEVEL#{level.id}", META))
            if level.level_id is not None:
                items.append(self._delete_op(f"GDLEVEL#{level.level_id}", "CLAIM"))
        if change is not None:
            items.append(self._put_op(self._change_item(change)))

        self._transact(items)
        ranked.version += 1

    def update_level_data(
        self, level_id: str, data: LevelData, old_external_id: int | None
    ) -> None:
        """Replace a level's metadata, moving its external ID claim if needed."""
        fields = data.model_dump()
        items: list[dict[str, Any]] = [
            {
                "Update": {
                    "TableName": self.table_name,
                    "Key": {"pk": f"LEVEL#{level_id}", "sort_key": META},
                    "UpdateExpression": "SET "
                    + ", ".join(f"#{name} = :{name}" for name in fields),
                    "ConditionExpression": "attribute_exists(pk)",
                    "ExpressionAttributeNames": {f"#{name}": name for name in fields},
                    "ExpressionAttributeValues": {
                        f":{name}": value for name, value in fields.items()
                    },
                }
            }
        ]
        if data.level_id != old_external_id:
            if old_external_id is not None:
                items.append(self._delete_op(f"GDLEVEL#{old_external_id}", "CLAIM"))
            if data.level_id is not None:
                items.append(
                    self._put_op(
                        {
                            "pk": f"GDLEVEL#{data.level_id}",
                            "sort_key": "CLAIM",
                            "level": level_id,
                        },
                        condition="attribute_not_exists(pk)",
                    )
                )
        self._transact(items)

    def set_records(self, level_id: str, records: list[LevelRecord]) -> None:
        """Overwrite the records of a level."""
        try:
            self.table.update_item(
                Key={"pk": f"LEVEL#{level_id}", "sort_key": META},
                UpdateExpression="SET #records = :records",
                ConditionExpression=Attr("pk").exists(),
                ExpressionAttributeNames={"#records": "records"},
                ExpressionAttributeValues={
                    ":records": [record.model_dump() for record in records]
                },
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise ResourceNotFoundError("Level not found.") from e
            raise RuntimeError(f"Failed to update records: {e}") from e
        except BotoCoreError as e:
            raise RuntimeError(f"Failed to update records: {e}") from e

    def append_record(self, level_id: str, record: LevelRecord) -> None:
        """Append one record to a level."""
        try:
            self.table.update_item(
                Key={"pk": f"LEVEL#{level_id}", "sort_key": META},
                UpdateExpression=(
                    "SET #records = list_append(if_not_exists(#records, :empty), :new)"
                ),
                ConditionExpression=Attr("pk").exists(),
                ExpressionAttributeNames={"#records": "records"},
                ExpressionAttributeValues={
                    ":empty": [],
                    ":new": [record.model_dump()],
                },
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise ResourceNotFoundError("Level not found.") from e
            raise RuntimeError(f"Failed to append record: {e}") from e
        except BotoCoreError as e:
            raise RuntimeError(f"Failed to append record: {e}") from e

    # ------------------------------------------------------------------
    # audit log
    # ------------------------------------------------------------------

    @staticmethod
    def _change_item(change: ListChange) -> dict[str, Any]:
        return {
            "pk": f"CHANGES#{change.list_type.value}",
            "sort_key": f"{timestamp(change.created_at)}#{change.id}",
            "id": change.id,
            "type": change.change_type.value,
            "description": change.description,
            "level_id": change.level_id,
            "list_type": change.list_type.value,
            "created_at": timestamp(change.created_at),
        }

    @staticmethod
    def _to_change(item: dict[str, Any]) -> ListChange:
        return ListChange(
            id=str(item["id"]),
            change_type=ChangeType(item["type"]),
            description=str(item["description"]),
            level_id=str(item["level_id"]),
            list_type=ListType(item["list_type"]),
            created_at=datetime.fromisoformat(str(item["created_at"])),
        )

    def get_changes_after(
        self, list_type: ListType, after: datetime
    ) -> list[ListChange]:
        """Changes to a list made after ``after``, newest first."""
        try:
            items = self._query_all(
                KeyConditionExpression=Key("pk").eq(f"CHANGES#{list_type.value}")
                & Key("sort_key").gt(timestamp(after)),
                ScanIndexForward=False,
            )
        except (ClientError, BotoCoreError) as e:
            raise RuntimeError(f"Failed to get list changes: {e}") from e
        return [self._to_change(item) for item in items]

    def get_level_changes(
        self, level_id: str, list_types: list[ListType]
    ) -> list[ListChange]:
        """All changes recorded for one level, newest first."""
        changes: list[ListChange] = []
        try:
            for list_type in list_types:
                items = self._query_all(
                    KeyConditionExpression=Key("pk").eq(f"CHANGES#{list_type.value}"),
                    FilterExpression=Attr("level_id").eq(level_id),
                    ScanIndexForward=False,
                )
                changes.extend(self._to_change(item) for item in items)
        except (ClientError, BotoCoreError) as e:
            raise RuntimeError(f"Failed to get level history: {e}") from e
        changes.sort(key=lambda c: c.created_at, reverse=True)
        return changes

    # ------------------------------------------------------------------
    # player stats
    # ------------------------------------------------------------------

    def get_player_stats(self) -> list[PlayerStat]:
        """All player stats, ranks filled in from the ranking document."""
        try:
            items = self._query_all(
                KeyConditionExpression=Key("pk").eq(STATS_PK)
                & Key("sort_key").begins_with("PLAYER#")
            )
            ranking = self._get(STATS_PK, RANKING)
        except (ClientError, BotoCoreError) as e:
            raise RuntimeError(f"Failed to get player stats: {e}") from e

        ranks = {
            str(key): rank
            for rank, key in enumerate((ranking or {}).get("ranked", []), 1)
        }
        stats = []
        for item in items:
            stat = PlayerStat(
                name=str(item["name"]),
                score=float(str(item["score"])),
                hardest_demon_name=item.get("hardest_demon_name"),
                hardest_demon_placement=_optional_int(
                    item.get("hardest_demon_placement")
                ),
                updated_at=_parse_time(item.get("updated_at")),
            )
            stat.rank = ranks.get(stat.key)
            stats.append(stat)
        return stats

    def put_player_stats(self, stats: list[PlayerStat]) -> None:
        """Upsert player stats; each item is written independently."""
        try:
            writer = self.table.batch_writer(overwrite_by_pkeys=["pk", "sort_key"])
            with writer as batch:
                for stat in stats:
                    batch.put_item(
                        Item={
                            "pk": STATS_PK,
                            "sort_key": f"PLAYER#{stat.key}",
                            "name": stat.name,
                            "score": Decimal(str(stat.score)),
                            "hardest_demon_name": stat.hardest_demon_name,
                            "hardest_demon_placement": stat.hardest_demon_placement,
                            "updated_at": (
                                timestamp(stat.updated_at) if stat.updated_at else None
                            ),
                        }
                    )
        except (ClientError, BotoCoreError) as e:
            raise RuntimeError(f"Failed to save player stats: {e}") from e

    def save_ranking(self, ranked_keys: list[str]) -> None:
        """Replace the whole ranking in one write."""
        try:
            self.table.put_item(
                Item={
                    "pk": STATS_PK,
                    "sort_key": RANKING,
                    "ranked": ranked_keys,
                    "updated_at": timestamp(datetime.now(UTC)),
                }
            )
        except (ClientError, BotoCoreError) as e:
            raise RuntimeError(f"Failed to save ranking: {e}") from e

    # ------------------------------------------------------------------
    # submissions
    # ------------------------------------------------------------------

    @staticmethod
    def _to_submission(item: dict[str, Any]) -> Submission:
        return Submission(
            id=str(item["id"]),
            level_name=str(item["level_name"]),
            player=str(item["player"]),
            percent=int(item["percent"]),
            video_id=str(item["video_id"]),
            raw_footage_link=str(item["raw_footage_link"]),
            notes=item.get("notes"),
            status=SubmissionStatus(item["status"]),
            submitted_by=str(item["submitted_by"]),
            created_at=datetime.fromisoformat(str(item["created_at"])),
        )

    def put_submission(self, submission: Submission) -> None:
        """Store a new submission."""
        try:
            self.table.put_item(
                Item={
                    "pk": "SUBMISSIONS",
                    "sort_key": f"SUBMISSION#{submission.id}",
                    "id": submission.id,
                    "level_name": submission.level_name,
                    "player": submission.player,
                    "percent": submission.percent,
                    "video_id": submission.video_id,
                    "raw_footage_link": submission.raw_footage_link,
                    "notes": submission.notes,
                    "status": submission.status.value,
                    "submitted_by": submission.submitted_by,
                    "created_at": timestamp(submission.created_at),
                }
            )
        except (ClientError, BotoCoreError) as e:
            raise RuntimeError(f"Failed to save submission: {e}") from e

    def get_submission(self, submission_id: str) -> Submission | None:
        try:
            item = self._get("SUBMISSIONS", f"SUBMISSION#{submission_id}")
        except (ClientError, BotoCoreError) as e:
            raise RuntimeError(f"Failed to get submission: {e}") from e
        return self._to_submission(item) if item else None

    def list_submissions(self, status: SubmissionStatus) -> list[Submission]:
        """Submissions in a status, oldest first."""
        try:
            items = self._query_all(
                KeyConditionExpression=Key("pk").eq("SUBMISSIONS"),
                FilterExpression=Attr("status").eq(status.value),
            )
        except (ClientError, BotoCoreError) as e:
            raise RuntimeError(f"Failed to list submissions: {e}") from e
        submissions = [self._to_submission(item) for item in items]
        submissions.sort(key=lambda s: s.created_at)
        return submissions

    def set_submission_status(
        self, submission_id: str, status: SubmissionStatus
    ) -> None:
        """Move a pending submission to its final status."""
        try:
            self.table.update_item(
                Key={"pk": "SUBMISSIONS", "sort_key": f"SUBMISSION#{submission_id}"},
                UpdateExpression="SET #status = :status",
                ConditionExpression=Attr("status").eq(SubmissionStatus.PENDING.value),
                ExpressionAttributeNames={"#status": "status"},
                ExpressionAttributeValues={":status": status.value},
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise ConflictError("This submission is no longer pending.") from e
            raise RuntimeError(f"Failed to update submission: {e}") from e
        except BotoCoreError as e:
            raise RuntimeError(f"Failed to update submission: {e}") from e

    # ------------------------------------------------------------------
    # personal records
    # ------------------------------------------------------------------

    @staticmethod
    def _personal_order_key(
        user_id: str, status: PersonalRecordStatus
    ) -> tuple[str, str]:
        return f"USER#{user_id}", f"ORDER#{status.value}"

    @staticmethod
    def _personal_record_item(record: PersonalRecord) -> dict[str, Any]:
        return {
            "pk": f"PRECORD#{record.id}",
            "sort_key": META,
            "id": record.id,
            "user_id": record.user_id,
            "level_name": record.level_name,
            "difficulty": record.difficulty,
            "attempts": record.attempts,
            "video_url": record.video_url,
            "thumbnail_url": record.thumbnail_url,
            "status": record.status.value,
            "created_at": timestamp(record.created_at),
        }

    @staticmethod
    def _to_personal_record(item: dict[str, Any], placement: int) -> PersonalRecord:
        return PersonalRecord(
            id=str(item["id"]),
            user_id=str(item["user_id"]),
            placement=placement,
            level_name=str(item["level_name"]),
            difficulty=str(item["difficulty"]),
            attempts=_optional_int(item.get("attempts")),
            video_url=str(item["video_url"]),
            thumbnail_url=item.get("thumbnail_url"),
            status=PersonalRecordStatus(item["status"]),
            created_at=datetime.fromisoformat(str(item["created_at"])),
        )

    def load_personal_list(
        self, user_id: str, status: PersonalRecordStatus
    ) -> RankedList[PersonalRecord]:
        """Read one of a user's personal record lists."""
        try:
            ids, version = self._read_order(*self._personal_order_key(user_id, status))
            items = self._batch_get(
                [{"pk": f"PRECORD#{record_id}", "sort_key": META} for record_id in ids]
            )
        except (ClientError, BotoCoreError) as e:
            raise RuntimeError(f"Failed to load personal records: {e}") from e

        by_id = {str(item["id"]): item for item in items}
        present = [record_id for record_id in ids if record_id in by_id]
        records = [
            self._to_personal_record(by_id[record_id], placement)
            for placement, record_id in enumerate(present, 1)
        ]
        return RankedList(f"{user_id}:{status.value}", records, version=version)

    def get_personal_record_owner(
        self, record_id: str
    ) -> tuple[str, PersonalRecordStatus] | None:
        """Return the owner and status list of a personal record."""
        try:
            item = self._get(f"PRECORD#{record_id}", META)
        except (ClientError, BotoCoreError) as e:
            raise RuntimeError(f"Failed to get personal record: {e}") from e
        if not item:
            return None
        return str(item["user_id"]), PersonalRecordStatus(item["status"])

    def commit_personal_lists(
        self,
        user_id: str,
        lists: dict[PersonalRecordStatus, RankedList[PersonalRecord]],
        saved: list[PersonalRecord] | None = None,
        deleted: list[PersonalRecord] | None = None,
    ) -> None:
        """Atomically write one or both of a user's personal lists."""
        items = [
            self._order_op(*self._personal_order_key(user_id, status), ranked)
            for status, ranked in lists.items()
        ]
        for record in saved or []:
            items.append(self._put_op(self._personal_record_item(record)))
        for record in deleted or []:
            items.append(self._delete_op(f"PRECORD#{record.id}", META))

        self._transact(items)
        for ranked in lists.values():
            ranked.version += 1

    # ------------------------------------------------------------------
    # friendships
    # ------------------------------------------------------------------

    @staticmethod
    def _to_friendship(item: dict[str, Any]) -> Friendship:
        return Friendship(
            id=str(item["id"]),
            requester_id=str(item["requester_id"]),
            receiver_id=str(item["receiver_id"]),
            status=FriendshipStatus(item["status"]),
            updated_at=datetime.fromisoformat(str(item["updated_at"])),
        )

    def get_friendship(self, user_id: str, other_id: str) -> Friendship | None:
        """The friendship between two users, whoever asked first."""
        try:
            item = self._get(f"USER#{user_id}", f"FRIEND#{other_id}")
        except (ClientError, BotoCoreError) as e:
            raise RuntimeError(f"Failed to get friendship: {e}") from e
        return self._to_friendship(item) if item else None

    def list_friendships(self, user_id: str) -> list[Friendship]:
        """Every friendship or request involving a user."""
        try:
            items = self._query_all(
                KeyConditionExpression=Key("pk").eq(f"USER#{user_id}")
                & Key("sort_key").begins_with("FRIEND#")
            )
        except (ClientError, BotoCoreError) as e:
            raise RuntimeError(f"Failed to list friendships: {e}") from e
        return [self._to_friendship(item) for item in items]

    def save_friendship(self, friendship: Friendship) -> None:
        """Write both users' copies of a friendship together."""
        body = {
            "id": friendship.id,
            "requester_id": friendship.requester_id,
            "receiver_id": friendship.receiver_id,
            "status": friendship.status.value,
            "updated_at": timestamp(friendship.updated_at),
        }
        a, b = friendship.requester_id, friendship.receiver_id
        self._transact(
            [
                self._put_op({"pk": f"USER#{a}", "sort_key": f"FRIEND#{b}", **body}),
                self._put_op({"pk": f"USER#{b}", "sort_key": f"FRIEND#{a}", **body}),
            ]
        )

    # ------------------------------------------------------------------
    # layouts and reports
    # ------------------------------------------------------------------

    @staticmethod
    def _to_layout(item: dict[str, Any]) -> Layout:
        return Layout(
            id=str(item["id"]),
            creator_id=str(item["creator_id"]),
            level_name=str(item["level_name"]),
            description=item.get("description"),
            song_name=item.get("song_name"),
            song_id=item.get("song_id"),
            video_url=str(item["video_url"]),
            difficulty=str(item["difficulty"]),
            tags=[str(tag) for tag in item.get("tags", [])],
            created_at=datetime.fromisoformat(str(item["created_at"])),
        )

    def put_layout(self, layout: Layout) -> None:
        try:
            self.table.put_item(
                Item={
                    "pk": "LAYOUTS",
                    "sort_key": f"LAYOUT#{layout.id}",
                    "id": layout.id,
                    "creator_id": layout.creator_id,
                    "level_name": layout.level_name,
                    "description": layout.description,
                    "song_name": layout.song_name,
                    "song_id": layout.song_id,
                    "video_url": layout.video_url,
                    "difficulty": layout.difficulty,
                    "tags": layout.tags,
                    "created_at": timestamp(layout.created_at),
                }
            )
        except (ClientError, BotoCoreError) as e:
            raise RuntimeError(f"Failed to save layout: {e}") from e

    def get_layout(self, layout_id: str) -> Layout | None:
        try:
            item = self._get("LAYOUTS", f"LAYOUT#{layout_id}")
        except (ClientError, BotoCoreError) as e:
            raise RuntimeError(f"Failed to get layout: {e}") from e
        return self._to_layout(item) if item else None

    def list_layouts(self) -> list[Layout]:
        """All layouts, newest first."""
        try:
            items = self._query_all(KeyConditionExpression=Key("pk").eq("LAYOUTS"))
        except (ClientError, BotoCoreError) as e:
            raise RuntimeError(f"Failed to list layouts: {e}") from e
        layouts = [self._to_layout(item) for item in items]
        layouts.sort(key=lambda layout: layout.created_at, reverse=True)
        return layouts

    def delete_layout(self, layout_id: str) -> None:
        """Delete a layout and every report filed against it."""
        reports = [r for r in self.list_layout_reports() if r.layout_id == layout_id]
        try:
            with self.table.batch_writer() as batch:
                for report in reports:
                    batch.delete_item(
                        Key={"pk": "LAYOUT_REPORTS", "sort_key": f"REPORT#{report.id}"}
                    )
                batch.delete_item(
                    Key={"pk": "LAYOUTS", "sort_key": f"LAYOUT#{layout_id}"}
                )
        except (ClientError, BotoCoreError) as e:
            raise RuntimeError(f"Failed to delete layout: {e}") from e

    @staticmethod
    def _to_layout_report(item: dict[str, Any]) -> LayoutReport:
        return LayoutReport(
            id=str(item["id"]),
            layout_id=str(item["layout_id"]),
            reporter_id=str(item["reporter_id"]),
            reason=str(item["reason"]),
            status=LayoutReportStatus(item["status"]),
            created_at=datetime.fromisoformat(str(item["created_at"])),
        )

    def put_layout_report(self, report: LayoutReport) -> None:
        try:
            self.table.put_item(
                Item={
                    "pk": "LAYOUT_REPORTS",
                    "sort_key": f"REPORT#{report.id}",
                    "id": report.id,
                    "layout_id": report.layout_id,
                    "reporter_id": report.reporter_id,
                    "reason": report.reason,
                    "status": report.status.value,
                    "created_at": timestamp(report.created_at),
                }
            )
        except (ClientError, BotoCoreError) as e:
            raise RuntimeError(f"Failed to save layout report: {e}") from e

    def list_layout_reports(
        self, status: LayoutReportStatus | None = None
    ) -> list[LayoutReport]:
        """Layout reports, oldest first, optionally filtered by status."""
        kwargs: dict[str, Any] = {
            "KeyConditionExpression": Key("pk").eq("LAYOUT_REPORTS")
        }
        if status is not None:
            kwargs["FilterExpression"] = Attr("status").eq(status.value)
        try:
            items = self._query_all(**kwargs)
        except (ClientError, BotoCoreError) as e:
            raise RuntimeError(f"Failed to list layout reports: {e}") from e
        reports = [self._to_layout_report(item) for item in items]
        reports.sort(key=lambda r: r.created_at)
        return reports

    def set_layout_report_status(
        self, report_id: str, status: LayoutReportStatus
    ) -> None:
        try:
            self.table.update_item(
                Key={"pk": "LAYOUT_REPORTS", "sort_key": f"REPORT#{report_id}"},
                UpdateExpression="SET #status = :status",
                ConditionExpression=Attr("pk").exists(),
                ExpressionAttributeNames={"#status": "status"},
                ExpressionAttributeValues={":status": status.value},
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise ResourceNotFoundError("Report not found.") from e
            raise RuntimeError(f"Failed to update layout report: {e}") from e
        except BotoCoreError as e:
            raise RuntimeError(f"Failed to update layout report: {e}") from e
