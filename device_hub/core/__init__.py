from .hub import Hub, HubConfig, Role
from .logging_config import configure_logging
from .logging_utils import get_module_logger

__all__ = [
    'Hub',
    'HubConfig',
    'Role',
    'configure_logging',
    'get_module_logger',
]
