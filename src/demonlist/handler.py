"""Lambda handler for demonlist service."""

from typing import Any

from aws_lambda_powertools import Logger
from aws_lambda_powertools.event_handler import APIGatewayRestResolver, Response
from aws_lambda_powertools.logging import correlation_paths
from aws_lambda_powertools.utilities.typing import LambdaContext
from pydantic import ValidationError

from . import admin_api, member_api, public_api
from .api_utils import json_response
from .errors import DemonlistError

logger = Logger()
app = APIGatewayRestResolver()
app.include_router(public_api.router, prefix="/api")
app.include_router(member_api.router, prefix="/api")
app.include_router(admin_api.router, prefix="/api")


@app.exception_handler(DemonlistError)
def handle_demonlist_error(ex: DemonlistError) -> Response:
    """Answer with the status the error carries."""
    logger.warning(
        "Request rejected",
        extra={
            "error": ex.message,
            "status_code": int(ex.status_code),
            "path": app.current_event.path,
        },
    )
    return json_response({"message": ex.message}, ex.status_code)


@app.exception_handler(ValidationError)
def handle_validation_error(ex: ValidationError) -> Response:
    errors = [
        {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
        for err in ex.errors()
    ]
    logger.warning("Invalid request", extra={"errors": errors})
    return json_response({"message": "Invalid request.", "errors": errors}, 400)


@app.exception_handler(RuntimeError)
def handle_runtime_error(ex: RuntimeError) -> Response:
    logger.exception("Database error", extra={"error": str(ex)})
    return json_response({"message": "Internal server error."}, 500)


@logger.inject_lambda_context(correlation_id_path=correlation_paths.API_GATEWAY_REST)
def lambda_handler(event: dict[str, Any], context: LambdaContext) -> dict[str, Any]:
    """Lambda handler entry point."""
    return app.resolve(event, context)
