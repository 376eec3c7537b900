"""Longread configuration and environment setup.

This module provides centralized configuration for longread,
including development mode detection, LangSmith tracing setup,
log handler installation and the tunable analysis settings.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def is_dev_mode() -> bool:
    """Check if running in development mode.

    Returns:
        True if LONGREAD_MODE is set to 'dev', False otherwise.
    """
    return os.getenv("LONGREAD_MODE", "prod").lower() == "dev"


def configure_langsmith() -> None:
    """Configure LangSmith tracing based on LONGREAD_MODE.

    When LONGREAD_MODE=dev:
        - Enables LangSmith tracing
        - Sets project to 'longread-dev'

    When LONGREAD_MODE=prod (or unset):
        - Disables LangSmith tracing

    This function is idempotent and safe to call multiple times.
    """
    if is_dev_mode():
        os.environ.setdefault("LANGSMITH_TRACING", "true")
        os.environ.setdefault("LANGSMITH_PROJECT", "longread-dev")
    else:
        os.environ["LANGSMITH_TRACING"] = "false"


def get_log_dir() -> Path:
    """Directory for module log files (LONGREAD_LOG_DIR, default ./logs)."""
    return Path(os.getenv("LONGREAD_LOG_DIR", "logs"))


def configure_logging(run_name: str, level: int = logging.INFO) -> None:
    """Install module-dispatch log handlers and start a logging run.

    Project modules log to per-module files, everything else goes to
    run-3p.log. Calling this twice does not install duplicate handlers.

    Args:
        run_name: Identifier for the run (triggers rotation of each log file)
        level: Root log level
    """
    from core.logging import ModuleDispatchHandler, ThirdPartyHandler, start_run
    from core.logging.run_manager import is_project_module

    log_dir = get_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(level)

    if not any(isinstance(h, ModuleDispatchHandler) for h in root.handlers):
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

        module_handler = ModuleDispatchHandler(log_dir)
        module_handler.setFormatter(formatter)
        module_handler.addFilter(lambda record: is_project_module(record.name))

        third_party_handler = ThirdPartyHandler(log_dir)
        third_party_handler.setFormatter(formatter)
        third_party_handler.addFilter(
            lambda record: not is_project_module(record.name)
        )

        root.addHandler(module_handler)
        root.addHandler(third_party_handler)

    start_run(run_name)


def _env_int(name: str, default: int) -> int:
    """Read an integer setting from the environment."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.replace("_", ""))
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_str(name: str, default: str) -> str:
    return os.getenv(name, default).strip() or default


@dataclass
class AnalysisSettings:
    """Tunable parameters for chunking, sampling and synthesis.

    All sizes are in characters. Every field defaults to its LONGREAD_*
    environment variable, falling back to the value shown.

    Args:
        chunk_target_chars: Splitter target size T
        chunk_min_chars: Splitter minimum floor M (M <= T)
        boundary_search_window: Splitter boundary search window W
        sample_threshold_chars: Texts longer than this are sampled for style
        sample_part_chars: Size P of each head/middle/tail sample
        sample_look_around: How far sample cuts may move to reach a boundary
        synthesis_max_chars: Accumulated output must be shorter than this for
            the second-pass synthesis to run
        digest_concurrency: Parallel condensation calls (1 = sequential)
        model_tier: Model tier name (haiku, sonnet, opus)
        thinking_budget: Extended thinking tokens for the high reasoning budget
        max_output_tokens: Output tokens per call, excluding thinking
    """

    chunk_target_chars: int = field(
        default_factory=lambda: _env_int("LONGREAD_CHUNK_TARGET_CHARS", 120_000)
    )
    chunk_min_chars: int = field(
        default_factory=lambda: _env_int("LONGREAD_CHUNK_MIN_CHARS", 20_000)
    )
    boundary_search_window: int = field(
        default_factory=lambda: _env_int("LONGREAD_BOUNDARY_WINDOW", 5_000)
    )
    sample_threshold_chars: int = field(
        default_factory=lambda: _env_int("LONGREAD_SAMPLE_THRESHOLD_CHARS", 120_000)
    )
    sample_part_chars: int = field(
        default_factory=lambda: _env_int("LONGREAD_SAMPLE_PART_CHARS", 40_000)
    )
    sample_look_around: int = field(
        default_factory=lambda: _env_int("LONGREAD_SAMPLE_LOOK_AROUND", 2_000)
    )
    synthesis_max_chars: int = field(
        default_factory=lambda: _env_int("LONGREAD_SYNTHESIS_MAX_CHARS", 200_000)
    )
    digest_concurrency: int = field(
        default_factory=lambda: _env_int("LONGREAD_DIGEST_CONCURRENCY", 1)
    )
    model_tier: str = field(
        default_factory=lambda: _env_str("LONGREAD_MODEL_TIER", "sonnet")
    )
    thinking_budget: int = field(
        default_factory=lambda: _env_int("LONGREAD_THINKING_BUDGET", 8_000)
    )
    max_output_tokens: int = field(
        default_factory=lambda: _env_int("LONGREAD_MAX_OUTPUT_TOKENS", 8_192)
    )

    def __post_init__(self) -> None:
        if self.chunk_min_chars <= 0:
            raise ValueError("chunk_min_chars must be positive")
        if self.chunk_target_chars < self.chunk_min_chars:
            raise ValueError(
                f"chunk_target_chars ({self.chunk_target_chars}) must be >= "
                f"chunk_min_chars ({self.chunk_min_chars})"
            )
        if self.boundary_search_window <= 0:
            raise ValueError("boundary_search_window must be positive")
        if self.sample_part_chars <= 0:
            raise ValueError("sample_part_chars must be positive")
        if self.digest_concurrency < 1:
            raise ValueError("digest_concurrency must be at least 1")
