"""Helpers shared by the API routers."""

import json
from http import HTTPStatus
from json import JSONDecodeError
from typing import Any, TypeVar

from aws_lambda_powertools.event_handler import Response, content_types
from aws_lambda_powertools.utilities.data_classes.common import BaseProxyEvent
from pydantic import BaseModel

from .errors import InvalidRequestError
from .models import ListType

M = TypeVar("M", bound=BaseModel)


def parse_body(event: BaseProxyEvent, model: type[M]) -> M:
    """Validate the JSON body of a request against ``model``.

    Raises:
        InvalidRequestError: If the body is missing or not JSON
        ValidationError: If the body does not fit the model
    """
    if not event.body:
        raise InvalidRequestError("Request body is required.")
    try:
        data = event.json_body
    except JSONDecodeError as e:
        raise InvalidRequestError("Request body must be valid JSON.") from e
    return model.model_validate(data)


def parse_list_type(value: str) -> ListType:
    try:
        return ListType(value.strip().lower())
    except ValueError as e:
        raise InvalidRequestError(
            f"Invalid list: {value}. Must be one of: {[t.value for t in ListType]}"
        ) from e


def json_response(body: Any, status_code: int = HTTPStatus.OK) -> Response:
    """JSON response with an explicit status code."""
    return Response(
        status_code=status_code,
        content_type=content_types.APPLICATION_JSON,
        body=json.dumps(body),
    )


def created(body: Any) -> Response:
    return json_response(body, HTTPStatus.CREATED)
