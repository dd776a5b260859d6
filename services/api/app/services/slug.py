"""URL slugs for store names."""

import re


def slugify(value: str) -> str:
    """Derive a URL-safe slug from a store name.

    - Lowercase
    - Replace spaces/underscores with hyphens
    - Remove special characters
    - Collapse multiple hyphens

    Example:
        >>> slugify("Bob's  Vinyl_Shop!")
        "bobs-vinyl-shop"
    """
    if not value:
        return ""

    result = value.lower().strip()
    result = re.sub(r"[\s_]+", "-", result)
    result = re.sub(r"[^a-z0-9-]", "", result)
    result = re.sub(r"-+", "-", result)
    return result.strip("-")
