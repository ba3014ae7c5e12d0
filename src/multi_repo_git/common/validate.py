"""Input validation for ref names and remotes before touching any repository."""

from __future__ import annotations

import re


class ValidationError(Exception):
    """Raised when input validation fails."""

    pass


def validate_branch_name(branch: str) -> str:
    """Validate git branch name per git-check-ref-format rules.

    Returns the branch name or raises ValidationError.
    """
    if not branch:
        raise ValidationError("Branch name cannot be empty")

    # Common dangerous patterns
    forbidden = ["..", "~", "^", ":", "\\", " ", "\t", "\n", "?", "*", "[", "@{"]
    for char in forbidden:
        if char in branch:
            raise ValidationError(f"Invalid branch name: contains {char!r}")

    # Must not start/end with slash or dot
    if branch.startswith("/") or branch.endswith("/"):
        raise ValidationError("Branch name cannot start or end with /")
    if branch.startswith(".") or branch.endswith("."):
        raise ValidationError("Branch name cannot start or end with .")
    if branch.startswith("-"):
        raise ValidationError("Branch name cannot start with -")
    if branch.endswith(".lock"):
        raise ValidationError("Branch name cannot end with .lock")

    # No consecutive slashes
    if "//" in branch:
        raise ValidationError("Branch name cannot contain consecutive slashes")

    return branch


def validate_tag_name(tag: str) -> str:
    """Validate a tag name. Tags follow the same ref rules as branches."""
    if not tag:
        raise ValidationError("Tag name cannot be empty")
    try:
        return validate_branch_name(tag)
    except ValidationError as e:
        raise ValidationError(str(e).replace("Branch", "Tag").replace("branch", "tag")) from e


def validate_remote_name(name: str) -> str:
    """Validate a remote name: alphanumeric, dots, hyphens, underscores.

    Returns validated name or raises ValidationError.
    """
    if not name:
        raise ValidationError("Remote name cannot be empty")

    if not re.match(r"^[a-zA-Z0-9][a-zA-Z0-9._-]*$", name):
        raise ValidationError(f"Invalid remote name: {name!r}")

    if name.endswith(".lock") or ".." in name:
        raise ValidationError(f"Invalid remote name: {name!r}")

    return name


def validate_remote_url(url: str) -> str:
    """Validate a remote URL is non-empty and cannot be read as an option."""
    if not url or not url.strip():
        raise ValidationError("Remote URL cannot be empty")
    if url.startswith("-"):
        raise ValidationError(f"Invalid remote URL: {url!r}")
    if any(c in url for c in ("\n", "\r", "\t", " ")):
        raise ValidationError(f"Invalid remote URL: {url!r} (contains whitespace)")
    return url
