"""Integration test configuration and fixtures."""

import os
import time
from collections.abc import Generator

import pytest
from testcontainers.localstack import LocalStackContainer

from src.demonlist import dependencies as deps
from src.demonlist.community import (
    FriendService,
    LayoutService,
    PersonalRecordService,
    SubmissionService,
)
from src.demonlist.config import Settings
from src.demonlist.database import DemonlistDatabase
from src.demonlist.service import ListService, StatsService
from tests.conftest import TEST_SECRET

TEST_TABLE = "demonlist-integration"


@pytest.fixture(scope="session")
def localstack_container() -> Generator[LocalStackContainer, None, None]:
    """Start LocalStack container for integration tests."""
    with LocalStackContainer(image="localstack/localstack:3.0") as localstack:
        localstack.with_services("dynamodb")

        # Wait for LocalStack to be ready
        time.sleep(2)

        os.environ["AWS_ACCESS_KEY_ID"] = "test"
        os.environ["AWS_SECRET_ACCESS_KEY"] = "test"  # noqa: S105
        os.environ["AWS_DEFAULT_REGION"] = "us-east-1"

        yield localstack


@pytest.fixture(scope="session")
def integration_settings(localstack_container: LocalStackContainer) -> Settings:
    return Settings(
        table_name=TEST_TABLE,
        endpoint_url=localstack_container.get_url(),
        jwt_secret=TEST_SECRET,
    )


@pytest.fixture
def demonlist_db(
    integration_settings: Settings,
) -> Generator[DemonlistDatabase, None, None]:
    """DemonlistDatabase on a fresh LocalStack table."""
    db = DemonlistDatabase(settings=integration_settings)
    db.create_table()

    yield db

    # Cleanup
    try:
        db.table.delete()
        db.client.get_waiter("table_not_exists").wait(TableName=db.table_name)
    except Exception:
        # Cleanup failed, but continue - this is expected during teardown
        pass  # noqa: S110


@pytest.fixture
def wired_app(
    demonlist_db: DemonlistDatabase,
    integration_settings: Settings,
    monkeypatch: pytest.MonkeyPatch,
):
    """Point every route at services backed by the LocalStack table."""
    lists = ListService(demonlist_db)
    friends = FriendService(demonlist_db)
    monkeypatch.setattr(deps, "settings", integration_settings)
    monkeypatch.setattr(deps, "database", demonlist_db)
    monkeypatch.setattr(deps, "lists", lists)
    monkeypatch.setattr(deps, "stats", StatsService(demonlist_db))
    monkeypatch.setattr(deps, "friends", friends)
    monkeypatch.setattr(deps, "submissions", SubmissionService(demonlist_db, lists))
    monkeypatch.setattr(
        deps, "personal_records", PersonalRecordService(demonlist_db, friends)
    )
    monkeypatch.setattr(deps, "layouts", LayoutService(demonlist_db))

    from src.demonlist.handler import lambda_handler

    return lambda_handler


@pytest.fixture
def lambda_context():
    """Mock Lambda context for testing."""

    class MockLambdaContext:
        def __init__(self):
            self.function_name = "demonlist-test"
            self.function_version = "$LATEST"
            self.invoked_function_arn = (
                "arn:aws:lambda:us-east-1:123456789012:function:demonlist-test"
            )
            self.memory_limit_in_mb = 128
            self.remaining_time_in_millis = lambda: 30000
            self.log_group_name = "/aws/lambda/demonlist-test"
            self.log_stream_name = "2024/01/01/[$LATEST]test"
            self.aws_request_id = "test-request-id"

    return MockLambdaContext()
