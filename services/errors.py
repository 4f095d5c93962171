"""
Domain errors raised by the services layer.
Each carries the HTTP status the API layer should answer with; main.py installs one handler for all of them.
"""
from __future__ import annotations


class TrackerError(Exception):
    status_code = 500
    default_message = "Internal error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(TrackerError):
    status_code = 400
    default_message = "Invalid request"


class Unauthorized(TrackerError):
    status_code = 401
    default_message = "Unauthorized: Invalid password"


class NotFound(TrackerError):
    status_code = 404
    default_message = "Record not found"


class SecretNotConfigured(TrackerError):
    status_code = 404
    default_message = "No password configured. Please contact administrator."


class DuplicateSubmission(TrackerError):
    status_code = 409
    default_message = "Duplicate submission detected. Please wait a few seconds before submitting again."


class PrecursorNotApproved(TrackerError):
    status_code = 409
    default_message = "Level 1 approval is required before Level 2 approval"


class InvalidComment(TrackerError):
    status_code = 400
    default_message = "A rejection comment of at least 3 characters is required"


class NoMatchingRecords(TrackerError):
    status_code = 404
    default_message = "No data found"
