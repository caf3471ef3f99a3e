"""
URL-safe slugs for display names.
"""

from typing import Callable

from django.utils.text import slugify

# Characters NFKD normalisation cannot reduce to ASCII on its own.
_TRANSLITERATIONS = str.maketrans({
    'ı': 'i',
    'ß': 'ss',
    'æ': 'ae',
    'Æ': 'AE',
    'ø': 'o',
    'Ø': 'O',
    'đ': 'd',
    'Đ': 'D',
    'ł': 'l',
    'Ł': 'L',
})

DEFAULT_SLUG = 'item'


def slugify_name(name: str) -> str:
    """
    Map a display name to a lowercase ASCII slug.

    Names that reduce to nothing (only punctuation, emoji, ...) fall back to
    DEFAULT_SLUG so the result is never empty.
    """
    slug = slugify((name or '').translate(_TRANSLITERATIONS))
    return slug or DEFAULT_SLUG


def unique_slug(name: str, exists: Callable[[str], bool], max_length: int = 255) -> str:
    """
    Build a slug for `name` that `exists` does not report as taken.

    The base slug is tried first, then `base-2`, `base-3`, ... The result
    only depends on the name and on which candidates are already taken.

    Args:
        name: Display name
        exists: Callable returning True when a slug is already in use
        max_length: Storage limit; the base is shortened to fit the suffix

    Returns:
        str: Free slug
    """
    base = slugify_name(name)[:max_length].strip('-') or DEFAULT_SLUG
    if not exists(base):
        return base

    counter = 2
    while True:
        suffix = f'-{counter}'
        candidate = base[:max_length - len(suffix)].strip('-') + suffix
        if not exists(candidate):
            return candidate
        counter += 1
