"""
Request failure classification.

Maps the SDK's generic ``HttpResponseError`` onto the handful of conditions the
clients react to. Anything else is left unclassified and re-raised by callers.
"""

from enum import Enum
from typing import Optional

from azure.core.exceptions import HttpResponseError

from .exceptions import ArgumentNullError

NOT_DELETED_ERROR_CODE = "ObjectMustBeDeletedPriorToBeingPurged"


class RequestFailureKind(str, Enum):
    """Classified request failure conditions."""
    NOT_FOUND = "NotFound"
    NOT_YET_DELETED = "NotYetDeleted"
    UNCLASSIFIED = "Unclassified"


def _failure_message(error: HttpResponseError) -> str:
    message = getattr(error, "message", None)
    if message:
        return str(message)
    return str(error)


def classify_request_failure(error: Optional[HttpResponseError]) -> RequestFailureKind:
    """
    Classify a failed request.

    Args:
        error: Error raised by the SDK

    Returns:
        NOT_FOUND for a 404, NOT_YET_DELETED for a 400 whose message says the
        object must be deleted before being purged, UNCLASSIFIED otherwise

    Raises:
        ArgumentNullError: If error is None
    """
    if error is None:
        raise ArgumentNullError("error")

    status = error.status_code
    if status == 404:
        return RequestFailureKind.NOT_FOUND
    if status == 400 and NOT_DELETED_ERROR_CODE in _failure_message(error):
        return RequestFailureKind.NOT_YET_DELETED
    return RequestFailureKind.UNCLASSIFIED


def is_not_found(error: Optional[HttpResponseError]) -> bool:
    """Return True if the failure means the entity does not exist."""
    return classify_request_failure(error) is RequestFailureKind.NOT_FOUND


def is_not_deleted(error: Optional[HttpResponseError]) -> bool:
    """Return True if the failure means the entity must be deleted before purging."""
    return classify_request_failure(error) is RequestFailureKind.NOT_YET_DELETED
