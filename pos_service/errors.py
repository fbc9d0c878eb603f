"""Error kinds raised by the order service and mapped to JSON responses."""

from typing import Any, Dict, Optional


class AppError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(AppError):
    """Malformed input, illegal transition or unknown menu item."""

    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} #{resource_id} not found" if resource_id is not None else f"{resource} not found"
        super().__init__(message, {"resource": resource, "id": resource_id})


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"
