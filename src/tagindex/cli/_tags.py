"""CLI tag argument parser: converts ``name=value`` tokens to a tag map."""

from __future__ import annotations

from tagindex.errors import ValidationError


def parse_tag_args(tokens: list[str] | None) -> dict[str, str]:
    """Parse repeated ``--tag name=value`` tokens.

    Order is preserved; it fixes the comparison order of the intersection.
    """
    tags: dict[str, str] = {}
    for token in tokens or []:
        name, sep, value = token.partition("=")
        name = name.strip()
        if not sep or not name:
            raise ValidationError(f"Invalid tag '{token}': expected NAME=VALUE")
        if name in tags and tags[name] != value:
            raise ValidationError(f"Tag '{name}' given more than once with different values")
        tags[name] = value
    return tags
