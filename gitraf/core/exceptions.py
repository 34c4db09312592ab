from typing import Optional, Dict, Any
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None
    session_id: Optional[str] = None


class GitrafError(Exception):
    def __init__(
        self,
        code: str,
        message: str,
        exit_code: int = 1,
        details: Optional[Dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.exit_code = exit_code
        self.details = details
        super().__init__(message)

    def to_error_response(self, session_id: Optional[str] = None) -> ErrorResponse:
        return ErrorResponse(
            code=self.code,
            message=self.message,
            details=self.details,
            session_id=session_id
        )


class InvalidCommandError(GitrafError):
    def __init__(self, message: str = "Invalid git command", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            code="GRAF-400",
            message=message,
            details=details
        )


class RepositoryPathError(GitrafError):
    def __init__(self, path: str, reason: str):
        super().__init__(
            code="GRAF-403",
            message=f"Invalid repository path '{path}': {reason}",
            details={"path": path, "reason": reason}
        )
        self.path = path
        self.reason = reason


class RepositoryNotFoundError(GitrafError):
    def __init__(self, name: str):
        super().__init__(
            code="GRAF-404",
            message=f"Repository not found: {name}",
            details={"repository": name}
        )
        self.name = name


class LockTimeoutError(GitrafError):
    def __init__(self, resource_id: str, timeout: float):
        super().__init__(
            code="GRAF-409",
            message=f"Failed to acquire lock for {resource_id}: timeout after {timeout}s",
            details={"resource_id": resource_id, "timeout": timeout}
        )
        self.resource_id = resource_id
        self.timeout = timeout


class TransportError(GitrafError):
    def __init__(self, message: str = "Backend transport failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            code="GRAF-502",
            message=message,
            exit_code=127,
            details=details
        )


class PagesError(GitrafError):
    """A deployment stage failed; the live site is left as it was."""

    def __init__(self, stage: str, reason: str):
        super().__init__(
            code="GRAF-PAGES",
            message=f"{stage}: {reason}",
            details={"stage": stage, "reason": reason}
        )
        self.stage = stage
        self.reason = reason

