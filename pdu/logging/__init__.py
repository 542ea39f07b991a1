from .logger import get_logger, log_account_event

__all__ = ["get_logger", "log_account_event"]
