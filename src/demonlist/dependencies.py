"""Services shared by every request handled in this process.

Built once at import, so a warm Lambda container reuses the same boto3
resource. Tests replace attributes here with ``unittest.mock.patch``.
"""

from .community import (
    FriendService,
    LayoutService,
    PersonalRecordService,
    SubmissionService,
)
from .config import get_settings
from .database import DemonlistDatabase
from .service import ListService, StatsService

settings = get_settings()
database = DemonlistDatabase(settings=settings)

lists = ListService(database)
stats = StatsService(database)
friends = FriendService(database)
submissions = SubmissionService(database, lists)
personal_records = PersonalRecordService(database, friends)
layouts = LayoutService(database)
