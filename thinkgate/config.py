"""
Configuration for ThinkGate.

Centralized settings for the evidence store, action gate and
iteration controller:
- Loop budget and convergence threshold
- Pacing delays (cosmetic, default 0)
- Phase auto-advance
- Display truncation limits

Supports environment variable overrides.
"""

import os
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class ThinkGateConfig:
    """
    Configuration for one ThinkGate session.

    All settings are configurable via environment variables.

    Attributes:
        default_max_iterations: Loop budget used when run() gets no explicit cap
        convergence_threshold: Convergence level at which the loop decides
        pacing_delay_seconds: Pause between controller iterations
        reasoning_pause_seconds: Pause between tough-reasoning iterations
        auto_advance_phase: Let the gate advance the store phase after a result
        key_finding_chars: Characters kept per key finding in summaries
        cache_preview_chars: Characters shown when previewing a cached payload
    """

    default_max_iterations: int = 5
    convergence_threshold: float = 0.85

    # Pacing (never affects correctness)
    pacing_delay_seconds: float = 0.0
    reasoning_pause_seconds: float = 0.0

    auto_advance_phase: bool = False

    # Display
    key_finding_chars: int = 100
    cache_preview_chars: int = 100

    @classmethod
    def from_env(cls) -> "ThinkGateConfig":
        """
        Create configuration from environment variables.

        Environment variables:
            THINKGATE_MAX_ITERATIONS: int
            THINKGATE_CONVERGENCE_THRESHOLD: float 0.0-1.0
            THINKGATE_PACING_DELAY: seconds between iterations
            THINKGATE_REASONING_PAUSE: seconds between tough-reasoning passes
            THINKGATE_AUTO_ADVANCE_PHASE: "true" to enable
            THINKGATE_KEY_FINDING_CHARS: int
            THINKGATE_CACHE_PREVIEW_CHARS: int
        """
        def get_bool(key: str, default: bool) -> bool:
            val = os.environ.get(key, "").lower()
            if val in ("true", "1", "yes"):
                return True
            elif val in ("false", "0", "no"):
                return False
            return default

        def get_float(key: str, default: float) -> float:
            try:
                return float(os.environ.get(key, default))
            except (ValueError, TypeError):
                return default

        def get_int(key: str, default: int) -> int:
            try:
                return int(os.environ.get(key, default))
            except (ValueError, TypeError):
                return default

        return cls(
            default_max_iterations=max(1, get_int("THINKGATE_MAX_ITERATIONS", 5)),
            convergence_threshold=get_float("THINKGATE_CONVERGENCE_THRESHOLD", 0.85),
            pacing_delay_seconds=max(0.0, get_float("THINKGATE_PACING_DELAY", 0.0)),
            reasoning_pause_seconds=max(0.0, get_float("THINKGATE_REASONING_PAUSE", 0.0)),
            auto_advance_phase=get_bool("THINKGATE_AUTO_ADVANCE_PHASE", False),
            key_finding_chars=get_int("THINKGATE_KEY_FINDING_CHARS", 100),
            cache_preview_chars=get_int("THINKGATE_CACHE_PREVIEW_CHARS", 100),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "default_max_iterations": self.default_max_iterations,
            "convergence_threshold": self.convergence_threshold,
            "pacing_delay_seconds": self.pacing_delay_seconds,
            "reasoning_pause_seconds": self.reasoning_pause_seconds,
            "auto_advance_phase": self.auto_advance_phase,
            "key_finding_chars": self.key_finding_chars,
            "cache_preview_chars": self.cache_preview_chars,
        }


# Global config instance (lazy-loaded)
_config: Optional[ThinkGateConfig] = None


def get_config(force_reload: bool = False) -> ThinkGateConfig:
    """
    Get the process-wide default configuration.

    Lazy-loads configuration from environment variables. Components
    only use this when no config is passed to their constructor.

    Args:
        force_reload: Force reload from environment

    Returns:
        ThinkGateConfig instance
    """
    global _config

    if _config is None or force_reload:
        _config = ThinkGateConfig.from_env()
        logger.debug(f"[CONFIG] Loaded configuration: {_config.to_dict()}")

    return _config


def reset_config() -> None:
    """Reset global config (mainly for testing)."""
    global _config
    _config = None
