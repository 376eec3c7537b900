"""Module-based logging with run-based rotation.

Per-module log files, rotated at run boundaries (a CLI command or a
test module).

Usage:
    # At run entry points (CLI, tests):
    from core.config import configure_logging
    from core.logging import end_run

    configure_logging("analyze-outline")
    try:
        # ... do work ...
    finally:
        end_run()

    # In modules:
    import logging
    logger = logging.getLogger(__name__)
    logger.info("This goes to the appropriate module log file")

Log files are created in LONGREAD_LOG_DIR (default logs/):
    - logs/novel-analysis.log, logs/digest.log, logs/llm.log, ... (per-module)
    - logs/run-3p.log (all third-party libraries)
    - logs/*.previous.log (previous run's logs)
"""

from core.logging.handlers import ModuleDispatchHandler, ThirdPartyHandler
from core.logging.run_manager import (
    MODULE_TO_LOG,
    end_run,
    get_current_run_id,
    is_project_module,
    module_to_log_name,
    start_run,
)

__all__ = [
    "start_run",
    "end_run",
    "get_current_run_id",
    "is_project_module",
    "module_to_log_name",
    "ModuleDispatchHandler",
    "ThirdPartyHandler",
    "MODULE_TO_LOG",
]
