"""Core data structures: set collections and their masked views."""

from enrichedcover.core.mosaic import SetMosaic, MaskedSetMosaic

__all__ = ['SetMosaic', 'MaskedSetMosaic']
