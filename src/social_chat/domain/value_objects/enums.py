from __future__ import annotations

from enum import StrEnum


class ChatType(StrEnum):
    INDIVIDUAL = "individual"
    GROUP = "group"


class ConnectionState(StrEnum):
    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"
    JOINED = "joined"
    CLOSED = "closed"
