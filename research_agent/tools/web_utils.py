from __future__ import annotations

import re
from urllib.parse import urlparse


def is_valid_url(url: str) -> bool:
    """Basic URL validation."""
    try:
        result = urlparse(url)
        return all([result.scheme in ("http", "https"), result.netloc])
    except Exception:
        return False


def clean_content(text: str, max_length: int = 6000) -> str:
    """Collapse whitespace and trim to max length."""
    text = re.sub(r"\s+", " ", text).strip()
    return text[:max_length]


def extract_host(url: str) -> str | None:
    """Hostname of ``url``, or None when it cannot be parsed."""
    try:
        return urlparse(url).hostname
    except ValueError:
        return None


def host_label(url: str) -> str:
    """Display label for a source: hostname without a leading ``www.``."""
    host = extract_host(url) or url
    return host.removeprefix("www.")
