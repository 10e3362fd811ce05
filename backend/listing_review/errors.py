"""Error taxonomy for the draft review workflow."""

from __future__ import annotations

from fastapi import HTTPException, status

# purpose: let services raise typed workflow failures that FastAPI renders without translation
# status: active


class ReviewWorkflowError(HTTPException):
    """Base class; subclasses pin the HTTP status for their failure kind."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Draft review request failed"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(status_code=type(self).status_code, detail=detail or self.default_detail)


class ValidationError(ReviewWorkflowError):
    """Missing reason, malformed payload or unknown entity kind."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid draft request"


class AuthorizationError(ReviewWorkflowError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Not authorized"


class NotFoundError(ReviewWorkflowError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class ConflictError(ReviewWorkflowError):
    """Draft state moved since it was read; never retried automatically."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = "Draft was changed by another request; reload it and try again"


class ApplyError(ReviewWorkflowError):
    """Payload breaks live-entity constraints at commit time."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "Draft payload cannot be applied to the live entity"
