from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Identity:
    """A user as seen by the chat core: stable id plus display name."""

    id: str
    username: str
    profile_picture: str | None = None
