"""Run-based log rotation manager.

Provides run lifecycle management for module-based logging. A "run" is a
logical unit of work (a CLI invocation or a test module) that triggers
log rotation on first write to each module's log file.

Usage:
    from core.logging import start_run, end_run

    start_run("analyze-outline")  # Triggers rotation on first log to each module
    try:
        # ... do work ...
    finally:
        end_run()
"""

from contextvars import ContextVar

# Both must be ContextVars for async safety - prevents state leakage between
# concurrent async runs
_current_run_id: ContextVar[str | None] = ContextVar("current_run_id", default=None)
_rotated_this_run: ContextVar[set[str] | None] = ContextVar("rotated_this_run", default=None)

# Cache module-to-log resolution (populated on first access per module name)
_module_log_cache: dict[str, str] = {}

# Mapping from module path prefixes to log file names
# Uses longest-prefix-match to resolve module paths to log names
# Unmapped project modules go to "misc.log"
MODULE_TO_LOG = {
    # Novel analysis workflow
    "workflows.novel_analysis.digest": "digest",
    "workflows.novel_analysis.cli": "cli",
    "workflows.novel_analysis": "novel-analysis",
    # Shared workflow utilities
    "workflows.shared.llm_utils": "llm",
    "workflows.shared": "workflows-shared",
    # Core modules
    "core.config": "config",
    "core.logging": "logging-internal",
    # Tests
    "testing": "testing",
}

# Top-level packages whose records go through ModuleDispatchHandler
PROJECT_PACKAGES = ("core", "workflows", "testing", "__main__")

# Pre-sorted prefixes by length (longest first) for efficient matching
_SORTED_PREFIXES = sorted(MODULE_TO_LOG.keys(), key=len, reverse=True)


def start_run(run_id: str) -> None:
    """Signal start of new run.

    Triggers log rotation on first log message to each module within this run.
    Safe to call multiple times - subsequent calls reset the rotation tracking.

    Args:
        run_id: Unique identifier for this run (e.g., CLI command, test name)
    """
    _current_run_id.set(run_id)
    _rotated_this_run.set(set())  # Fresh set per async context


def end_run() -> None:
    """Signal end of run.

    Best-effort cleanup - may not be called on crash. Rotation is triggered
    by start_run(), so missing end_run() calls don't affect correctness.
    """
    _current_run_id.set(None)
    _rotated_this_run.set(None)


def get_current_run_id() -> str | None:
    """Get the current run ID, if any."""
    return _current_run_id.get()


def should_rotate(log_name: str) -> bool:
    """Check if rotation is needed for this log file.

    Returns True if:
    1. We're in a run (start_run() was called)
    2. This log file hasn't been rotated yet in this run

    Also marks the log as rotated to prevent duplicate rotations.

    Args:
        log_name: The log file name (without .log extension)

    Returns:
        True if rotation should happen, False otherwise
    """
    run_id = _current_run_id.get()
    rotated = _rotated_this_run.get()

    if run_id is None or rotated is None:
        return False

    if log_name in rotated:
        return False

    rotated.add(log_name)
    return True


def is_project_module(module_name: str) -> bool:
    """Whether a logger name belongs to this project (vs a third-party library)."""
    top_level = module_name.split(".", 1)[0]
    return top_level in PROJECT_PACKAGES


def module_to_log_name(module_name: str) -> str:
    """Resolve module path to log filename.

    Uses longest-prefix-match against MODULE_TO_LOG mapping.
    Results are cached.

    Args:
        module_name: The __name__ of the module (e.g., "workflows.novel_analysis.nodes")

    Returns:
        Log file name without extension (e.g., "novel-analysis")
    """
    if module_name not in _module_log_cache:
        _module_log_cache[module_name] = _compute_log_name(module_name)
    return _module_log_cache[module_name]


def _compute_log_name(module_name: str) -> str:
    """Find longest matching prefix in MODULE_TO_LOG.

    Args:
        module_name: The __name__ of the module

    Returns:
        Log file name, or "misc" if no prefix matches
    """
    for prefix in _SORTED_PREFIXES:
        if module_name.startswith(prefix):
            return MODULE_TO_LOG[prefix]
    return "misc"
