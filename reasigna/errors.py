from __future__ import annotations

from fastapi import status


class WorkflowError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadRequest(WorkflowError):
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthorized(WorkflowError):
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(WorkflowError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(WorkflowError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(WorkflowError):
    status_code = status.HTTP_409_CONFLICT
