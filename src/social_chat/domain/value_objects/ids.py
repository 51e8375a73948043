from __future__ import annotations


def pair_key(user_a: str, user_b: str) -> str:
    """Order-independent key for an individual conversation between two users."""
    low, high = sorted((str(user_a), str(user_b)))
    return f"{low}:{high}"
