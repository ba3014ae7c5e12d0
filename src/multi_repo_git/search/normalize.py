"""Branch-name normalization shared by search results and checkout."""

from __future__ import annotations

KNOWN_REMOTES = ("origin", "upstream")


def normalize_branch_name(label: str) -> str:
    """Strip one remote-tracking prefix from a branch label.

    ``remotes/<remote>/<name>`` and ``origin/<name>`` / ``upstream/<name>``
    become ``<name>``. Anything else is returned unchanged, so the function
    never fails and is idempotent on names without a recognized prefix.
    """
    if label.startswith("remotes/"):
        parts = label.split("/", 2)
        if len(parts) == 3 and parts[1] and parts[2]:
            return parts[2]
        return label

    remote, sep, name = label.partition("/")
    if sep and name and remote in KNOWN_REMOTES:
        return name
    return label

