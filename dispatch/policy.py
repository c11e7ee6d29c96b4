"""
Purpose: Central configuration for the dispatch and tracking engine.
What it does:

Stores all tunable thresholds/intervals:

WALKING_SPEED_MPS = 1.4

DETOUR_FACTOR = 1.20

STALE_LOCATION_SECONDS = 120

POLL_INTERVAL_SECONDS = 10 (1 in fast test mode)

SIMULATION_TICK_SECONDS = 2

Optionally loads overrides from the environment (.env) so deployments can
tune without touching code.

Rule: No logic here. Parameters only, so tuning never means rewriting code.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Optional

from dotenv import load_dotenv


@dataclass(frozen=True)
class EnginePolicy:
    """
    Central configuration for the dispatch engine.
    """

    # --- ETA ---
    # Average walking pace on campus paths.
    walking_speed_mps: float = 1.4

    # Straight lines are shorter than real paths; inflate by 20%.
    detour_factor: float = 1.20

    # --- Staleness ---
    # A partner whose last report is older than this is surfaced as stuck.
    stale_location_seconds: int = 120

    # --- Broadcast ---
    # Poll fallback interval for every subscription.
    poll_interval_seconds: float = 10.0

    # --- Simulated route ---
    # How often the simulated partner moves to the next waypoint.
    simulation_tick_seconds: float = 2.0

    # --- Optional integrations ---
    # OSRM walking routes. None keeps the waypoint estimate only.
    osrm_base_url: Optional[str] = None
    osrm_timeout_seconds: float = 5.0

    # Realtime gateway that receives snapshot pushes. None keeps pushes in-process.
    push_webhook_url: Optional[str] = None
    push_timeout_seconds: float = 3.0

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        if self.walking_speed_mps <= 0:
            raise ValueError("walking_speed_mps must be > 0")

        if self.detour_factor < 1.0:
            raise ValueError("detour_factor must be >= 1.0")

        if self.stale_location_seconds <= 0:
            raise ValueError("stale_location_seconds must be > 0")

        if self.poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be > 0")

        if self.simulation_tick_seconds <= 0:
            raise ValueError("simulation_tick_seconds must be > 0")

        if self.osrm_timeout_seconds <= 0 or self.push_timeout_seconds <= 0:
            raise ValueError("timeouts must be > 0")


def default_engine_policy() -> EnginePolicy:
    """
    Convenience factory for the default policy.
    """
    p = EnginePolicy()
    p.validate()
    return p


def fast_test_policy() -> EnginePolicy:
    """
    Demo / on-site testing: the simulated route finishes in about 30 seconds
    and customer views refresh every second.
    """
    p = EnginePolicy(
        poll_interval_seconds=1.0,
        simulation_tick_seconds=2.0,
    )
    p.validate()
    return p


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def policy_from_env() -> EnginePolicy:
    """
    Build a policy from CAMPUS_* environment variables (a .env file is loaded first).
    Unset variables keep their defaults.
    """
    load_dotenv()

    base = fast_test_policy() if os.getenv("CAMPUS_FAST_TEST_MODE", "").lower() in ("1", "true", "yes") \
        else default_engine_policy()

    p = replace(
        base,
        walking_speed_mps=_env_float("CAMPUS_WALKING_SPEED_MPS", base.walking_speed_mps),
        detour_factor=_env_float("CAMPUS_DETOUR_FACTOR", base.detour_factor),
        stale_location_seconds=int(_env_float("CAMPUS_STALE_LOCATION_SECONDS", base.stale_location_seconds)),
        poll_interval_seconds=_env_float("CAMPUS_POLL_INTERVAL_SECONDS", base.poll_interval_seconds),
        simulation_tick_seconds=_env_float("CAMPUS_SIMULATION_TICK_SECONDS", base.simulation_tick_seconds),
        osrm_base_url=os.getenv("OSRM_BASE_URL") or None,
        push_webhook_url=os.getenv("CAMPUS_PUSH_WEBHOOK_URL") or None,
    )
    p.validate()
    return p
