from exitnode.observability.logger import BoundLogger, logger

__all__ = ["BoundLogger", "logger"]
