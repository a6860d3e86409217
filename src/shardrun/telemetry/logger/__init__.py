from .base import BASE_LOGGER_NAME, StructLogger, configure_worker_logging, setup_logging

__all__ = ["BASE_LOGGER_NAME", "StructLogger", "configure_worker_logging", "setup_logging"]
