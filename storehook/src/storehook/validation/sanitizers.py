"""Input sanitization for values received from the platform."""

from typing import Any, Optional


def sanitize_text(value: Any) -> Optional[str]:
    """Normalize a scalar into a clean string, or None when it carries nothing."""
    if value is None or isinstance(value, (dict, list)):
        return None
    if isinstance(value, bool):
        return None

    text = str(value)

    # Remove null bytes
    text = text.replace("\x00", "")

    # Collapse whitespace
    text = " ".join(text.split())

    return text or None


def sanitize_external_api_response(data: Any) -> Any:
    """Sanitize data received from external APIs."""
    if isinstance(data, dict):
        return {
            key: sanitize_external_api_response(value) for key, value in data.items()
        }
    elif isinstance(data, list):
        return [sanitize_external_api_response(item) for item in data]
    elif isinstance(data, str):
        return data.replace("\x00", "").strip()
    return data
