"""
Custom exception classes for the summarizer application.
These exceptions provide meaningful error messages and HTTP status codes.
"""
from typing import Optional


class SummarizerException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message, "status_code": self.status_code}


class ValidationError(SummarizerException):
    """Raised when input is malformed or out of bounds. User-correctable."""

    def __init__(self, message: str):
        super().__init__(message=message, status_code=400)


class PrerequisiteMissingError(SummarizerException):
    """Raised when a stage is invoked before the stage it depends on has completed."""

    def __init__(self, job_id: str, activity: str, hint: Optional[str] = None):
        message = f"No {activity} event found for job {job_id}"
        if hint:
            message = f"{message}. {hint}"
        super().__init__(message=message, status_code=409)
        self.job_id = job_id
        self.activity = activity

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["job_id"] = self.job_id
        data["missing_activity"] = self.activity
        return data


class CollaboratorError(SummarizerException):
    """
    Raised when an external collaborator (ffmpeg, transcription or
    moment detection service) fails.

    The collaborator's message is preserved verbatim; `classification`
    carries a machine-readable reason such as "rate_limited".
    """

    def __init__(self, collaborator: str, error: str, classification: Optional[str] = None):
        super().__init__(
            message=f"{collaborator} error: {error}",
            status_code=502  # Bad Gateway
        )
        self.collaborator = collaborator
        self.error = error
        self.classification = classification

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["collaborator"] = self.collaborator
        if self.classification:
            data["classification"] = self.classification
        return data


class ParseError(SummarizerException):
    """Raised when a collaborator response is not in the expected shape."""

    def __init__(self, source: str, error: str):
        super().__init__(
            message=f"Could not parse {source} response: {error}",
            status_code=422
        )
        self.source = source
        self.error = error


class JobNotFoundError(SummarizerException):
    """Raised when a job has no recorded events of the requested kind."""

    def __init__(self, job_id: str, what: str = "job"):
        super().__init__(
            message=f"No {what} found for job: {job_id}",
            status_code=404
        )
        self.job_id = job_id


class FileNotFoundInWorkspaceError(SummarizerException):
    """Raised when a named file is not present in a working directory."""

    def __init__(self, filename: str, directory: str):
        super().__init__(
            message=f"File not found in {directory}: {filename}",
            status_code=404
        )
        self.filename = filename
        self.directory = directory
