"""Configuration helpers for backend runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass

BUDGET_POLICIES = ("lenient", "strict")


@dataclass(frozen=True)
class BackendSettings:
    database_url: str | None
    host: str
    port: int
    min_participants: int = 3
    budget_policy: str = "lenient"
    max_retries: int = 3


def load_settings() -> BackendSettings:
    port_raw = os.getenv("SPEEDSANTA_PORT", "8000")
    min_participants = int(os.getenv("SPEEDSANTA_MIN_PARTICIPANTS", "3"))
    if min_participants < 2:
        raise ValueError(f"SPEEDSANTA_MIN_PARTICIPANTS must be at least 2, got {min_participants}")

    budget_policy = os.getenv("SPEEDSANTA_BUDGET_POLICY", "lenient").lower()
    if budget_policy not in BUDGET_POLICIES:
        raise ValueError(f"SPEEDSANTA_BUDGET_POLICY must be one of {BUDGET_POLICIES}, got {budget_policy!r}")

    return BackendSettings(
        database_url=os.getenv("SPEEDSANTA_DATABASE_URL"),
        host=os.getenv("SPEEDSANTA_HOST", "127.0.0.1"),
        port=int(port_raw),
        min_participants=min_participants,
        budget_policy=budget_policy,
        max_retries=int(os.getenv("SPEEDSANTA_MAX_RETRIES", "3")),
    )
