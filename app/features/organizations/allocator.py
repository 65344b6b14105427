"""
Slug and join code allocation.

Slugs are URL path segments: lowercase alphanumeric segments joined by single
hyphens, 3 to 50 characters. Join codes are short human-shareable strings drawn
from an alphabet without look-alike characters.
"""
import re
import secrets

from app.core import config


SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
MIN_SLUG_LENGTH = 3
MAX_SLUG_LENGTH = 50

# Top-level paths of the surrounding application; refused on top of the
# format and collision checks
RESERVED_SLUGS = frozenset({
    "api",
    "auth",
    "dashboard",
    "onboarding",
    "settings",
    "admin",
    "new",
    "join",
    "health",
    "docs",
})

# No 0/O or 1/I
JOIN_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def slug_format_error(slug: str) -> str | None:
    """Human-readable reason ``slug`` is not a valid slug, or None."""
    if not (MIN_SLUG_LENGTH <= len(slug) <= MAX_SLUG_LENGTH):
        return f"Slug must be {MIN_SLUG_LENGTH}-{MAX_SLUG_LENGTH} characters long"
    if not SLUG_PATTERN.match(slug):
        return "Use lowercase letters, numbers, and single hyphens only"
    if slug in RESERVED_SLUGS:
        return "This slug is reserved"
    return None


def is_valid_slug(slug: str) -> bool:
    return slug_format_error(slug) is None


def suggest_slug(name: str) -> str:
    """Derive a slug candidate from an organization name."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower().strip())
    return slug.strip("-")[:MAX_SLUG_LENGTH].rstrip("-")


def generate_join_code(length: int | None = None) -> str:
    length = length or config.JOIN_CODE_LENGTH
    return "".join(secrets.choice(JOIN_CODE_ALPHABET) for _ in range(length))


def normalize_join_code(code: str) -> str:
    return code.strip().upper()
