# Conditional edges
from .error_handler import (
    route_after_config,
    route_after_load,
    mark_batch_failed,
)

__all__ = [
    "route_after_config",
    "route_after_load",
    "mark_batch_failed",
]
