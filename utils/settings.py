"""Environment-driven configuration for the analysis service."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _get_float(env: Mapping[str, str], name: str, default: Optional[float]) -> Optional[float]:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number of seconds, got {raw!r}") from exc
    if value <= 0:
        raise RuntimeError(f"{name} must be greater than zero, got {raw!r}")
    return value


def _get_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from exc
    if value < 0:
        raise RuntimeError(f"{name} must not be negative, got {raw!r}")
    return value


def _get_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None:
        return default
    normalized = raw.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise RuntimeError(f"{name} must be a boolean (true/false), got {raw!r}")


@dataclass(frozen=True)
class AnalysisSettings:
    """Runtime knobs for the orchestrator and its model calls.

    Attributes:
        analysis_model: Vision model used for per-pair anomaly extraction.
        report_model: Model used for energy rating and report synthesis.
        approval_poll_interval: Upper bound in seconds between approval re-checks.
        approval_timeout: Seconds to wait for a decision; None waits forever.
        require_start_approval: Ask for a start_analysis approval before a fresh run.
        expensive_pair_threshold: Ask for an expensive_operation approval when more
            pairs than this are queued; 0 disables the checkpoint.
        database_dir: Directory for the session snapshot database; None keeps
            sessions in memory only.
    """

    analysis_model: str = "gpt-5"
    report_model: str = "gpt-5"
    approval_poll_interval: float = 1.0
    approval_timeout: Optional[float] = None
    require_start_approval: bool = False
    expensive_pair_threshold: int = 0
    database_dir: Optional[Path] = None

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "AnalysisSettings":
        env = os.environ if env is None else env
        database_dir = (env.get("DATABASE_DIR") or "").strip()
        return cls(
            analysis_model=(env.get("THERMAL_ANALYSIS_MODEL") or "").strip() or cls.analysis_model,
            report_model=(env.get("THERMAL_REPORT_MODEL") or "").strip() or cls.report_model,
            approval_poll_interval=_get_float(env, "APPROVAL_POLL_INTERVAL", cls.approval_poll_interval),
            approval_timeout=_get_float(env, "APPROVAL_TIMEOUT_SECONDS", None),
            require_start_approval=_get_bool(env, "REQUIRE_START_APPROVAL", cls.require_start_approval),
            expensive_pair_threshold=_get_int(env, "EXPENSIVE_PAIR_THRESHOLD", cls.expensive_pair_threshold),
            database_dir=Path(database_dir).expanduser() if database_dir else None,
        )
