"""Runtime configuration read from environment variables."""

from __future__ import annotations

from dataclasses import dataclass, field
import os

from quiz_ranking.constants.network_constants import DEFAULT_DATABASE_URL, DEFAULT_HOST, DEFAULT_PORT
from quiz_ranking.constants.scoring_constants import (
    BRONZE_SCORE_THRESHOLD,
    GOLD_SCORE_THRESHOLD,
    GOLD_TIME_RATIO,
    PASS_SCORE_THRESHOLD,
    SILVER_SCORE_THRESHOLD,
)
from quiz_ranking.core.errors import ConfigurationError
from quiz_ranking.core.score_calculator import ScoringPolicy

ENV_PREFIX = "QUIZ_RANKING_"


@dataclass(slots=True, frozen=True)
class AppSettings:
    """Everything the entry point needs to wire the service together."""

    database_url: str = DEFAULT_DATABASE_URL
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = "INFO"
    policy: ScoringPolicy = field(default_factory=ScoringPolicy)

    @classmethod
    def from_environment(cls, environ: dict[str, str] | None = None) -> AppSettings:
        env = os.environ if environ is None else environ
        try:
            policy = ScoringPolicy(
                gold_threshold=_read_int(env, "GOLD_THRESHOLD", GOLD_SCORE_THRESHOLD),
                silver_threshold=_read_int(env, "SILVER_THRESHOLD", SILVER_SCORE_THRESHOLD),
                bronze_threshold=_read_int(env, "BRONZE_THRESHOLD", BRONZE_SCORE_THRESHOLD),
                gold_time_ratio=_read_float(env, "GOLD_TIME_RATIO", GOLD_TIME_RATIO),
                pass_threshold=_read_int(env, "PASS_THRESHOLD", PASS_SCORE_THRESHOLD),
            )
        except ConfigurationError:
            raise
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc

        return cls(
            database_url=env.get(f"{ENV_PREFIX}DATABASE_URL", DEFAULT_DATABASE_URL),
            host=env.get(f"{ENV_PREFIX}HOST", DEFAULT_HOST),
            port=_read_int(env, "PORT", DEFAULT_PORT),
            log_level=env.get(f"{ENV_PREFIX}LOG_LEVEL", "INFO").upper(),
            policy=policy,
        )


def _read_int(env, name: str, default: int) -> int:
    raw_value = env.get(f"{ENV_PREFIX}{name}")
    if raw_value is None or raw_value.strip() == "":
        return default
    try:
        return int(raw_value)
    except ValueError as exc:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must be an integer, got {raw_value!r}.") from exc


def _read_float(env, name: str, default: float) -> float:
    raw_value = env.get(f"{ENV_PREFIX}{name}")
    if raw_value is None or raw_value.strip() == "":
        return default
    try:
        return float(raw_value)
    except ValueError as exc:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must be a number, got {raw_value!r}.") from exc
