"""Utility modules for configuration handling."""

from enrichedcover.utils.config import (
    load_config,
    load_cover_params,
    params_to_dict,
)

__all__ = [
    'load_config',
    'load_cover_params',
    'params_to_dict',
]
