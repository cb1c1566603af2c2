"""
Logging setup for the viscous hydrodynamics step.

Everything logs below the ``viscous_hydro`` logger. A single console
handler (and optionally a rotating file) is attached there; the solver
sweep, the regulation routines and the step profiler get their own
sub-loggers only when asked for, so that the per-cell messages of a large
grid stay silent by default.

Configuration can also be driven from ``VISCOUS_HYDRO_LOG_*`` environment
variables, which is what happens on package import.
"""

import logging
import logging.config
import os
from pathlib import Path
from typing import Any

PACKAGE_LOGGER = "viscous_hydro"

# Sub-loggers switched on together by the configure_logging flags
SOLVER_LOGGERS = (
    "solvers",
    "solvers.advance",
    "solvers.kt_flux",
    "solvers.signal_speed",
)
REGULATION_LOGGERS = (
    "physics",
    "equations",
    "equations.causality",
    "equations.stability",
)
DEBUG_LOGGERS = ("core", "benchmarks")

_FORMATS = {
    "console": "%(asctime)s | %(name)-32s | %(levelname)-8s | %(message)s",
    # worker threads of the grid sweep are told apart by threadName
    "detailed": (
        "%(asctime)s | %(name)-32s | %(levelname)-8s | %(threadName)s | "
        "%(module)s:%(lineno)d | %(message)s"
    ),
}


class HydroLoggerMixin:
    """Gives a class a ``logger`` named after it."""

    @property
    def logger(self) -> logging.Logger:
        return get_logger(self.__class__.__name__)


def get_logger(name: str) -> logging.Logger:
    """Logger ``viscous_hydro.<name>``."""
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")


def _sub_logger(handlers: list[str], level: str) -> dict[str, Any]:
    return {"level": level, "handlers": list(handlers), "propagate": False}


def configure_logging(
    level: str = "INFO",
    format_type: str = "console",
    log_file: Path | None = None,
    enable_performance: bool = False,
    enable_solver_logging: bool = False,
    enable_physics_validation: bool = False,
    enable_debug_mode: bool = False,
) -> None:
    """
    Configure the ``viscous_hydro`` logger tree with ``dictConfig``.

    Args:
        level: Log level of the package logger and its handlers
        format_type: "console" or "detailed"
        log_file: Optional path of a rotating log file (parents are created)
        enable_performance: Timing records of the step profiler
        enable_solver_logging: Messages from the grid sweep, KT flux and signal speed
        enable_physics_validation: Causality and stability regulation messages
        enable_debug_mode: Everything at DEBUG, including core and benchmarks
    """
    level = level.upper()
    handlers = ["console"]
    handler_config: dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "detailed" if format_type == "detailed" else "console",
            "stream": "ext://sys.stdout",
        },
    }
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler_config["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": "detailed",
            "filename": str(log_file),
            "maxBytes": 10 * 1024 * 1024,
            "backupCount": 5,
        }
        handlers.append("file")

    sub_level = "DEBUG" if enable_debug_mode else "INFO"
    loggers: dict[str, Any] = {
        PACKAGE_LOGGER: _sub_logger(handlers, "DEBUG" if enable_debug_mode else level),
        "scipy": {"level": "WARNING"},
    }
    if enable_performance:
        loggers[f"{PACKAGE_LOGGER}.performance"] = _sub_logger(handlers, "DEBUG")

    selected: list[str] = []
    if enable_solver_logging:
        selected.extend(SOLVER_LOGGERS)
    if enable_physics_validation:
        selected.extend(REGULATION_LOGGERS)
    if enable_debug_mode:
        selected.extend(DEBUG_LOGGERS)
    for name in selected:
        loggers[f"{PACKAGE_LOGGER}.{name}"] = _sub_logger(handlers, sub_level)

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                name: {"format": fmt, "datefmt": "%Y-%m-%d %H:%M:%S"}
                for name, fmt in _FORMATS.items()
            },
            "handlers": handler_config,
            "loggers": loggers,
            "root": {"level": "WARNING", "handlers": ["console"]},
        }
    )


def _env_flag(name: str) -> bool:
    return os.getenv(name, "false").strip().lower() in ("1", "true", "yes", "on")


def setup_from_environment() -> None:
    """
    Configure logging from the environment.

    Environment Variables:
        VISCOUS_HYDRO_LOG_LEVEL: Log level (default: INFO)
        VISCOUS_HYDRO_LOG_FORMAT: "console" (default) or "detailed"
        VISCOUS_HYDRO_LOG_FILE: Optional log file path
        VISCOUS_HYDRO_LOG_PERFORMANCE: Step profiler records
        VISCOUS_HYDRO_LOG_SOLVERS: Grid sweep messages
        VISCOUS_HYDRO_LOG_PHYSICS: Regulation messages
        VISCOUS_HYDRO_LOG_DEBUG: Debug everything
    """
    log_file = os.getenv("VISCOUS_HYDRO_LOG_FILE")
    configure_logging(
        level=os.getenv("VISCOUS_HYDRO_LOG_LEVEL", "INFO"),
        format_type=os.getenv("VISCOUS_HYDRO_LOG_FORMAT", "console"),
        log_file=Path(log_file) if log_file else None,
        enable_performance=_env_flag("VISCOUS_HYDRO_LOG_PERFORMANCE"),
        enable_solver_logging=_env_flag("VISCOUS_HYDRO_LOG_SOLVERS"),
        enable_physics_validation=_env_flag("VISCOUS_HYDRO_LOG_PHYSICS"),
        enable_debug_mode=_env_flag("VISCOUS_HYDRO_LOG_DEBUG"),
    )


class PerformanceLogger:
    """Timing records of profiled operations (advance_step, advance_it, ...)."""

    def __init__(self, name: str = "performance"):
        self.logger = get_logger(name)

    def log_operation(self, operation: str, duration: float, **kwargs: Any) -> None:
        self.logger.info(
            f"{operation} took {duration:.4e} s",
            extra={"operation": operation, "duration_seconds": duration, "metadata": kwargs},
        )


class PhysicsLogger:
    """
    Records of corrections applied to the dissipative currents.

    Reductions are logged at DEBUG since they can happen in every cell of
    every step; fallbacks and failed recoveries are warnings.
    """

    def __init__(self, name: str = "physics"):
        self.logger = get_logger(name)

    def log_regulation(self, algorithm: str, factor: float, energy_density: float, tau: float) -> None:
        self.logger.debug(
            f"{algorithm}: factor={factor:.6e} at e={energy_density:.6e}, tau={tau:.6e}",
            extra={"algorithm": algorithm, "factor": factor, "energy_density": energy_density, "tau": tau},
        )

    def log_physics_fallback(self, operation: str, reason: str, fallback: str) -> None:
        self.logger.warning(
            f"{operation}: {reason}; using {fallback}",
            extra={"operation": operation, "reason": reason, "fallback_method": fallback},
        )

    def log_error_recovery(
        self, operation: str, error: str, recovery_action: str, success: bool
    ) -> None:
        self.logger.log(
            logging.INFO if success else logging.WARNING,
            f"{operation}: {error}; {recovery_action} ({'recovered' if success else 'not recovered'})",
            extra={
                "operation": operation,
                "original_error": error,
                "recovery_action": recovery_action,
                "recovery_success": success,
            },
        )


def _package_loggers() -> list[logging.Logger]:
    return [
        logging.getLogger(name)
        for name in logging.getLogger().manager.loggerDict
        if name.startswith(f"{PACKAGE_LOGGER}.")
    ]


def set_log_level(level: str) -> None:
    """Change the level of the package logger and of every configured sub-logger."""
    numeric = getattr(logging, level.upper())
    logging.getLogger(PACKAGE_LOGGER).setLevel(numeric)
    for logger in _package_loggers():
        if logger.handlers:
            logger.setLevel(numeric)


def enable_performance_logging(enabled: bool = True) -> None:
    """Switch the profiler records on or off without reconfiguring."""
    perf_logger = get_logger("performance")
    if enabled and not perf_logger.handlers:
        perf_logger.setLevel(logging.DEBUG)
        for handler in logging.getLogger(PACKAGE_LOGGER).handlers:
            perf_logger.addHandler(handler)
        perf_logger.propagate = False
    perf_logger.disabled = not enabled


def get_logging_status() -> dict[str, Any]:
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    perf_logger = get_logger("performance")
    return {
        "main_level": logging.getLevelName(package_logger.level),
        "performance_enabled": not perf_logger.disabled and bool(perf_logger.handlers),
        "handlers_count": len(package_logger.handlers),
        "active_loggers": [
            logger.name for logger in _package_loggers() if logger.handlers and not logger.disabled
        ],
    }


performance_logger = PerformanceLogger()
physics_logger = PhysicsLogger()
