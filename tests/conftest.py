"""Shared test configuration and helpers."""

import json
import os
from datetime import datetime, timedelta, UTC

import jwt

# Set before any src.demonlist module reads its settings
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")  # noqa: S105
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("DEMONLIST_TABLE", "demonlist-test")
os.environ.setdefault("JWT_SECRET", "test-secret")  # noqa: S105

TEST_TABLE = "demonlist-test"
TEST_SECRET = "test-secret"  # noqa: S105


def make_token(
    user_id: str = "user-1",
    username: str | None = "Zoink",
    role: str | None = "USER",
    secret: str = TEST_SECRET,
    expires_in: timedelta = timedelta(hours=1),
) -> str:
    """Sign a bearer token the way the auth service would."""
    claims = {"userId": user_id, "exp": datetime.now(UTC) + expires_in}
    if username is not None:
        claims["username"] = username
    if role is not None:
        claims["role"] = role
    return jwt.encode(claims, secret, algorithm="HS256")


def api_event(
    method: str,
    path: str,
    body: dict | str | None = None,
    query_params: dict | None = None,
    token: str | None = None,
) -> dict:
    """Build a minimal API Gateway REST event."""
    headers = {"Content-Type": "application/json"}
    if token is not None:
        headers["Authorization"] = f"Bearer {token}"
    if isinstance(body, dict):
        body = json.dumps(body)
    return {
        "resource": path,
        "path": path,
        "httpMethod": method,
        "headers": headers,
        "queryStringParameters": query_params,
        "pathParameters": None,
        "body": body,
        "isBase64Encoded": False,
        "requestContext": {"httpMethod": method, "path": path, "stage": "test"},
    }
