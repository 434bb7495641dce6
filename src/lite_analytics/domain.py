"""
Domain normalization for site registration and beacon resolution.

A site is stored under its canonical domain: lowercase, no scheme, no
leading ``www.``, no trailing slash. The same function runs when a site is
registered and when an inbound Origin/Referer header is resolved, otherwise
lookups silently miss.
"""

from urllib.parse import urlsplit


def _looks_like_url(value: str) -> bool:
    return "://" in value or "/" in value


def normalize_domain(raw: str | None) -> str | None:
    """
    Normalize a hostname, URL or Origin header value to a canonical domain.

    Args:
        raw: "example.com", "https://WWW.Example.com/", an Origin header, ...

    Returns:
        The canonical domain, or None if a URL-like value cannot be parsed
        or nothing is left after normalization.

    Examples:
        >>> normalize_domain("https://WWW.Example.com/")
        'example.com'
        >>> normalize_domain("www.example.com/")
        'example.com'
    """
    if raw is None:
        return None

    domain = raw.strip()
    if not domain:
        return None

    if _looks_like_url(domain):
        candidate = domain if "://" in domain else f"https://{domain}"
        try:
            host = urlsplit(candidate).hostname
        except ValueError:
            return None
        if not host or any(ch.isspace() for ch in host):
            return None
        domain = host

    domain = domain.lower()
    if domain.startswith("www."):
        domain = domain[4:]
    if domain.endswith("/"):
        domain = domain[:-1]

    return domain or None
