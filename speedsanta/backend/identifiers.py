"""Identifier helpers for rooms and gifts."""

from __future__ import annotations

import secrets

# No 0/O or 1/I so codes survive being read aloud.
ROOM_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ROOM_CODE_LENGTH = 6


def generate_room_id() -> str:
    """Generate a short human-shareable room code.

    Uniqueness is not checked here; the store regenerates on collision.
    """
    return "".join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))


def generate_gift_id(timestamp_ms: int, sequence: int) -> str:
    """Build a gift id that sorts in settlement order."""
    return f"{timestamp_ms:013d}-{sequence:06d}"
