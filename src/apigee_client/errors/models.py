"""Models for Apigee error payloads."""

from dataclasses import dataclass
from typing import Any

import httpx


@dataclass
class ErrorDetail:
    """Error information extracted from an Apigee response body.

    Apigee reports failures in three shapes, all normalised here:

    * management API: ``{"code": ..., "message": ..., "contexts": [...]}``
    * message-processor faults: ``{"fault": {"faultstring": ..., "detail": {"errorcode": ...}}}``
    * OAuth token endpoint: ``{"error": ..., "error_description": ...}``
    """

    code: str | None = None
    message: str | None = None
    contexts: list[Any] | None = None

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ErrorDetail | None":
        """Parse error details from an HTTP response.

        Args:
            response: HTTP response object

        Returns:
            ErrorDetail object or None if the body is not a recognised error payload
        """
        try:
            data = response.json()
        except (ValueError, TypeError, AttributeError):
            # Empty bodies, XML error pages, etc.
            return None

        if not isinstance(data, dict):
            return None

        if "fault" in data and isinstance(data["fault"], dict):
            fault = data["fault"]
            fault_detail = fault.get("detail") if isinstance(fault.get("detail"), dict) else {}
            return cls(code=fault_detail.get("errorcode"), message=fault.get("faultstring"))

        if "error" in data and isinstance(data["error"], str):
            return cls(code=data["error"], message=data.get("error_description"))

        if "code" in data or "message" in data:
            contexts = data.get("contexts")
            return cls(
                code=data.get("code"),
                message=data.get("message"),
                contexts=contexts if contexts else None,
            )

        return None

    def to_exception_message(self) -> str:
        """Convert error details to exception message."""
        lines = []

        if self.message:
            lines.append(self.message)
        if self.code:
            lines.append(f"Error Code: {self.code}")
        if self.contexts:
            lines.append("Contexts:")
            for context in self.contexts:
                lines.append(f"  - {context}")

        return "\n".join(lines) if lines else "Unknown API error"
