"""
Pytest configuration and shared fixtures.

Mosaics here are small enough that every expected score can be worked out by
hand from hypergeometric probabilities.
"""

import numpy as np
import pytest

from enrichedcover.core.mosaic import SetMosaic


class FakeMaskedMosaic:
    """
    Minimal masked-mosaic stand-in with a user supplied set x set matrix.

    Lets tests feed degenerate (non-finite) pairwise scores that a real
    SetMosaic would never produce for small collections.
    """

    def __init__(self, setXset_scores, set_sizes, nmasked_perset, nelements, nmasked):
        self._setXset_scores = np.asarray(setXset_scores, dtype=float)
        self.set_sizes = np.asarray(set_sizes, dtype=int)
        self.nmasked_perset = np.asarray(nmasked_perset, dtype=int).reshape(len(self.set_sizes), -1)
        self.nelements = nelements
        self.nmasked = np.atleast_1d(np.asarray(nmasked, dtype=int))
        self.set_ids = [f"set_{i}" for i in range(len(self.set_sizes))]

    @property
    def setXset_scores(self):
        # shared on purpose, so tests can mutate the source after construction
        return self._setXset_scores

    @property
    def nsets(self):
        return len(self.set_sizes)

    @property
    def nmasks(self):
        return len(self.nmasked)


@pytest.fixture
def fake_mosaic():
    """Factory for FakeMaskedMosaic."""
    return FakeMaskedMosaic


@pytest.fixture
def abcd_mosaic():
    """[a b] [c d] [a b c] over the universe {a, b, c, d}."""
    return SetMosaic([{'a', 'b'}, {'c', 'd'}, {'a', 'b', 'c'}])


@pytest.fixture
def enriched_mosaic():
    """
    Ten genes, mask of four; one set strongly enriched, one not.

    set_0 = {g0, g1, g2, g5}: 3 of 4 elements masked
    set_1 = {g3, g6, g7, g8}: 1 of 4 elements masked
    set_2 = {g9}:             no masked elements
    """
    genes = [f"g{i}" for i in range(10)]
    sets = [{'g0', 'g1', 'g2', 'g5'}, {'g3', 'g6', 'g7', 'g8'}, {'g9'}]
    mosaic = SetMosaic(sets, all_elements=genes, set_ids=['enriched', 'weak', 'unmasked'])
    return mosaic.mask([{'g0', 'g1', 'g2', 'g3'}])
