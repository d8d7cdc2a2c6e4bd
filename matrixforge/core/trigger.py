"""Release trigger — decides whether a pushed ref starts a release run."""

from __future__ import annotations

import re

# ASCII digits only; matched with fullmatch so no trailing newline slips through.
RELEASE_TAG_PATTERN = re.compile(r"v[0-9]+\.[0-9]+\.[0-9]+")

_TAG_REF_PREFIX = "refs/tags/"


def is_release_tag(tag: str) -> bool:
    """Return True if *tag* is exactly ``v<major>.<minor>.<patch>``."""
    return RELEASE_TAG_PATTERN.fullmatch(tag) is not None


def release_tag_from_ref(ref: str) -> str | None:
    """Extract the release tag from a pushed ref, or None if it is not one.

    Accepts fully qualified tag refs (``refs/tags/v1.2.3``) and bare tag
    names (``v1.2.3``).  Branch refs never trigger a release, even when the
    branch name looks like a version.
    """
    if ref.startswith("refs/"):
        if not ref.startswith(_TAG_REF_PREFIX):
            return None
        ref = ref[len(_TAG_REF_PREFIX):]
    return ref if is_release_tag(ref) else None
