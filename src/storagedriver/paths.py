"""Canonical root-relative path handling shared by all drivers."""

import posixpath


SEPARATOR = "/"
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def safepath(path: str | None) -> str:
    """Normalize path to a root-anchored form that can never climb above root.

    Leading separators are stripped before re-anchoring, so "//a", "a" and
    "/./a/" all resolve to "/a", and "/../../a" resolves to "/a".
    """
    if not path:
        return SEPARATOR
    return posixpath.normpath(SEPARATOR + str(path).lstrip(SEPARATOR))


def join(*parts: str) -> str:
    """Join path components and normalize the result."""
    return safepath(SEPARATOR.join(str(p) for p in parts if p))


def dirname(path: str) -> str:
    """Get the parent of a canonical path (root is its own parent)."""
    return posixpath.dirname(safepath(path))


def basename(path: str) -> str:
    """Get the last segment of a canonical path (empty for root)."""
    return posixpath.basename(safepath(path))


def base36(number: int) -> str:
    """Render a non-negative integer in base 36."""
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))
