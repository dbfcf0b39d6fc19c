# soakgen/log_handler/logging_config.py
import logging
import os
import queue
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from typing import Dict, List, Mapping, Optional, Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

# Logger -> (env var, default level) applied by setup_logging_from_env
ENV_MODULE_LEVELS = {
    "soakgen.worker": ("WORKER_LOG_LEVEL", "INFO"),
    "aiohttp": ("AIOHTTP_LOG_LEVEL", "WARNING"),
}

Level = Union[int, str]

_listener: Optional[QueueListener] = None


def _coerce_level(level: Level) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def _output_handlers(log_file: Optional[str]) -> List[logging.Handler]:
    """Handlers the listener thread writes to: stderr, plus a rotating file if asked."""
    outputs: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        directory = os.path.dirname(log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        outputs.append(
            RotatingFileHandler(
                log_file, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS
            )
        )

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in outputs:
        handler.setFormatter(formatter)
    return outputs


def _route_root_to(log_queue: queue.Queue, level: int) -> None:
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.addHandler(QueueHandler(log_queue))
    root.setLevel(level)


def setup_logging(
    log_level: Level = logging.INFO,
    log_file: Optional[str] = None,
    module_levels: Optional[Dict[str, Level]] = None,
) -> QueueListener:
    """
    Route all records through a queue so workers on the event loop never block on I/O.

    Calling it again while a listener is running returns that listener
    unchanged; call shutdown_logging() first to reconfigure.
    """
    global _listener

    if _listener is not None:
        return _listener

    # Resolve levels before touching the root logger so a bad level changes nothing
    root_level = _coerce_level(log_level)
    overrides = {name: _coerce_level(level) for name, level in (module_levels or {}).items()}

    log_queue: queue.Queue = queue.Queue()
    listener = QueueListener(log_queue, *_output_handlers(log_file), respect_handler_level=True)
    _route_root_to(log_queue, root_level)
    for name, level in overrides.items():
        logging.getLogger(name).setLevel(level)

    listener.start()
    _listener = listener
    return listener


def setup_logging_from_env(environ: Optional[Mapping[str, str]] = None) -> QueueListener:
    """setup_logging driven by LOG_LEVEL, LOG_FILE and the per-module *_LOG_LEVEL variables."""
    env = os.environ if environ is None else environ
    return setup_logging(
        log_level=env.get("LOG_LEVEL", "INFO"),
        log_file=env.get("LOG_FILE") or None,
        module_levels={
            name: env.get(variable, default)
            for name, (variable, default) in ENV_MODULE_LEVELS.items()
        },
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def shutdown_logging() -> None:
    """Drain queued records and stop the listener thread."""
    global _listener

    if _listener is not None:
        _listener.stop()
        _listener = None
