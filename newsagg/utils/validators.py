"""
NewsAgg Input Validators
========================

Validation of administrator input for feed sources.
"""

import re
from typing import Optional
from urllib.parse import urlparse

from .exceptions import ValidationError, ErrorCode


class URLValidator:
    """URL validation for feed and website addresses."""

    ALLOWED_SCHEMES = {'http', 'https'}

    SUSPICIOUS_PATTERNS = [
        r'javascript:',
        r'data:',
        r'file:',
        r'\s',
    ]

    @classmethod
    def validate_feed_url(cls, url: str, field_name: str = "feed_url") -> str:
        """Validate a feed URL and return it stripped.

        The URL is otherwise kept verbatim so it matches what the
        administrator entered.

        Raises:
            ValidationError: If URL is invalid
        """
        if not url or not isinstance(url, str) or not url.strip():
            raise ValidationError(
                "URL is required and must be a string",
                error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
                field_name=field_name
            )

        url = url.strip()
        parsed = urlparse(url)

        if parsed.scheme.lower() not in cls.ALLOWED_SCHEMES:
            raise ValidationError(
                "URL scheme must be http or https",
                field_name=field_name
            )

        if not parsed.netloc:
            raise ValidationError(
                "URL must include a hostname",
                field_name=field_name
            )

        url_lower = url.lower()
        if any(re.search(pattern, url_lower) for pattern in cls.SUSPICIOUS_PATTERNS):
            raise ValidationError(
                "URL contains suspicious patterns",
                field_name=field_name
            )

        return url

    @classmethod
    def validate_optional_url(cls, url: Optional[str], field_name: str) -> Optional[str]:
        if url is None or not url.strip():
            return None
        return cls.validate_feed_url(url, field_name=field_name)


def validate_source_name(name: str) -> str:
    """Non-empty display name of at most 255 characters."""
    if not name or not name.strip():
        raise ValidationError(
            "Source name is required",
            error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
            field_name="name"
        )
    name = name.strip()
    if len(name) > 255:
        raise ValidationError(
            "Source name must be at most 255 characters",
            error_code=ErrorCode.VALIDATION_OUT_OF_RANGE,
            field_name="name"
        )
    return name
