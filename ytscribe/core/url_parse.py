"""
Source URL validation.
"""

from ytscribe.core.constants import ALLOWED_SOURCE_DOMAINS, ErrorCode
from ytscribe.core.error_codes import JobError


def is_supported_source_url(url: str) -> bool:
    """Quick check: the URL mentions one of the known video-hosting domains."""
    return any(domain in url for domain in ALLOWED_SOURCE_DOMAINS)


def validate_source_url(url) -> str:
    """
    Validate a submitted source URL and return it trimmed.
    Raises JobError if it is missing or not from a supported host.
    """
    if not isinstance(url, str) or not url.strip():
        raise JobError(ErrorCode.MISSING_URL, "URL is required")
    url = url.strip()
    if not is_supported_source_url(url):
        raise JobError(ErrorCode.INVALID_URL, "Invalid YouTube URL")
    return url
