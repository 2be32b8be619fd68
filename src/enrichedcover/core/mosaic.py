"""
Set collections over a shared element universe.

SetMosaic stores an ordered collection of named sets (e.g. GO terms, pathway
gene sets) together with the element universe and the pairwise statistics the
cover problems consume. MaskedSetMosaic is the view of a mosaic against one or
more masks (elements of interest, e.g. significant genes).

Biological Context:
    - Elements = genes/proteins measured in the experiment
    - Sets = annotation terms (pathways, complexes, GO categories)
    - Mask = hits of an experiment (differentially expressed genes, ...)

Engineering Design:
    - Immutable: masking returns a new view, the mosaic itself never changes
    - Dense numpy matrices: collections handled here are small enough
      (hundreds to a few thousand sets) for dense set x set matrices
    - Pairwise overlap scores are computed once per mosaic and shared by
      every mask

Examples:
    >>> mosaic = SetMosaic([{'a', 'b'}, {'c', 'd'}, {'a', 'b', 'c'}])
    >>> masked = mosaic.mask([{'a', 'b'}])
    >>> masked.nsets   # {'c', 'd'} has no masked elements
    2
    >>> masked.nmasked
    array([2])
"""

from __future__ import annotations

import logging
from typing import Hashable, Iterable, List, Optional, Sequence

import numpy as np
from numpy.typing import NDArray

from enrichedcover.stats.pvalue import exact_logpvalue

__all__ = ['SetMosaic', 'MaskedSetMosaic']

logger = logging.getLogger(__name__)


def _indices(ixs: Iterable[int]) -> NDArray[np.intp]:
    return np.fromiter(ixs, dtype=np.intp)


def _readonly(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


class SetMosaic:
    """
    Immutable collection of sets with precomputed pairwise overlap scores.

    Attributes:
        set_ids: Set identifiers, in collection order
        elements: Universe elements, in a deterministic order
        set_sizes: Number of elements per set (nsets,)
        membership: Element-by-set boolean incidence (nelements x nsets)
        setXset_nisect: Pairwise intersection sizes (nsets x nsets)
        setXset_scores: Pairwise overlap log p-values (nsets x nsets),
            ``exact_logpvalue(size_i, size_j, nelements, nisect_ij)`` off the
            diagonal, ``0.0`` on it. The more the sets overlap beyond chance,
            the more negative the score.
    """

    def __init__(
        self,
        sets: Sequence[Iterable[Hashable]],
        all_elements: Optional[Iterable[Hashable]] = None,
        set_ids: Optional[Sequence[str]] = None,
    ):
        """
        Args:
            sets: Collection of sets, each an iterable of hashable elements
            all_elements: Universe; defaults to the union of ``sets``.
                Set elements missing from it are added.
            set_ids: Unique set identifiers, defaults to ``set_0 .. set_{n-1}``

        Raises:
            ValueError: ``set_ids`` length mismatch or duplicated identifiers
        """
        sets = [frozenset(s) for s in sets]
        if set_ids is None:
            set_ids = [f"set_{i}" for i in range(len(sets))]
        set_ids = list(set_ids)
        if len(set_ids) != len(sets):
            raise ValueError(
                f"set_ids length ({len(set_ids)}) doesn't match number of sets ({len(sets)})"
            )
        if len(set(set_ids)) != len(set_ids):
            raise ValueError("set_ids must be unique")

        universe = set(all_elements) if all_elements is not None else set()
        for s in sets:
            universe.update(s)

        self._sets = sets
        self._set_ids = set_ids
        self._elements = sorted(universe, key=str)
        self._elm2ix = {elm: i for i, elm in enumerate(self._elements)}

        membership = np.zeros((len(self._elements), len(sets)), dtype=bool)
        for j, s in enumerate(sets):
            membership[_indices(self._elm2ix[elm] for elm in s), j] = True
        self._membership = _readonly(membership)
        self._set_sizes = _readonly(membership.sum(axis=0).astype(int))

        counts = membership.astype(np.int64)
        self._setXset_nisect = _readonly(counts.T @ counts)
        self._setXset_scores = _readonly(self._overlap_scores())

    def _overlap_scores(self) -> NDArray[np.float64]:
        n = self.nsets
        nelms = self.nelements
        scores = np.zeros((n, n), dtype=np.float64)
        for i in range(n):
            for j in range(i + 1, n):
                scores[i, j] = scores[j, i] = exact_logpvalue(
                    int(self._set_sizes[i]), int(self._set_sizes[j]),
                    nelms, int(self._setXset_nisect[i, j]))
        return scores

    @property
    def nsets(self) -> int:
        return len(self._sets)

    @property
    def nelements(self) -> int:
        return len(self._elements)

    @property
    def sets(self) -> List[frozenset]:
        return list(self._sets)

    @property
    def set_ids(self) -> List[str]:
        return list(self._set_ids)

    @property
    def elements(self) -> list:
        return list(self._elements)

    @property
    def set_sizes(self) -> NDArray[np.int_]:
        return self._set_sizes

    @property
    def membership(self) -> NDArray[np.bool_]:
        return self._membership

    @property
    def setXset_nisect(self) -> NDArray[np.int64]:
        return self._setXset_nisect

    @property
    def setXset_scores(self) -> NDArray[np.float64]:
        return self._setXset_scores

    def mask(
        self,
        masks: Sequence[Iterable[Hashable]],
        min_nmasked: int = 1,
    ) -> MaskedSetMosaic:
        """
        View the mosaic against one or more masks.

        Args:
            masks: Elements of interest, one iterable per mask
            min_nmasked: Sets with fewer masked elements in every mask are
                left out of the view

        Returns:
            MaskedSetMosaic
        """
        return MaskedSetMosaic(self, masks, min_nmasked=min_nmasked)

    def __repr__(self) -> str:
        return f"SetMosaic(nsets={self.nsets}, nelements={self.nelements})"


class MaskedSetMosaic:
    """
    A SetMosaic restricted to the sets that intersect the masks.

    Attributes:
        original: The underlying SetMosaic
        setixs: Indices (into ``original``) of the retained sets
        nmasked: Number of masked elements per mask (nmasks,)
        nmasked_perset: Masked elements of each retained set (nsets x nmasks)
    """

    def __init__(
        self,
        original: SetMosaic,
        masks: Sequence[Iterable[Hashable]],
        min_nmasked: int = 1,
    ):
        if min_nmasked < 0:
            raise ValueError(f"min_nmasked must be non-negative, got {min_nmasked}")

        masks = [set(m) for m in masks]
        elm2ix = original._elm2ix
        mask_matrix = np.zeros((original.nelements, len(masks)), dtype=bool)
        for k, m in enumerate(masks):
            unknown = [elm for elm in m if elm not in elm2ix]
            if unknown:
                logger.warning(
                    f"Mask[{k}]: {len(unknown)} element(s) not in the universe are ignored"
                )
            mask_matrix[_indices(elm2ix[elm] for elm in m if elm in elm2ix), k] = True

        # sets x masks
        nmasked_all = original.membership.T.astype(np.int64) @ mask_matrix.astype(np.int64)
        keep = (nmasked_all >= min_nmasked).any(axis=1)

        self._original = original
        self._min_nmasked = min_nmasked
        self._setixs = _readonly(np.flatnonzero(keep))
        self._nmasked = _readonly(mask_matrix.sum(axis=0).astype(np.int64))
        self._nmasked_perset = _readonly(nmasked_all[self._setixs, :])

    @property
    def original(self) -> SetMosaic:
        return self._original

    @property
    def setixs(self) -> NDArray[np.int_]:
        return self._setixs

    @property
    def min_nmasked(self) -> int:
        return self._min_nmasked

    @property
    def nsets(self) -> int:
        return len(self._setixs)

    @property
    def nmasks(self) -> int:
        return len(self._nmasked)

    @property
    def nelements(self) -> int:
        return self._original.nelements

    @property
    def nmasked(self) -> NDArray[np.int64]:
        return self._nmasked

    @property
    def nmasked_perset(self) -> NDArray[np.int64]:
        return self._nmasked_perset

    @property
    def set_sizes(self) -> NDArray[np.int_]:
        return self._original.set_sizes[self._setixs]

    @property
    def set_ids(self) -> List[str]:
        ids = self._original.set_ids
        return [ids[i] for i in self._setixs]

    @property
    def setXset_scores(self) -> NDArray[np.float64]:
        """Pairwise scores of the retained sets (a new array)."""
        return self._original.setXset_scores[np.ix_(self._setixs, self._setixs)]

    def __repr__(self) -> str:
        return (f"MaskedSetMosaic(nsets={self.nsets}, nmasks={self.nmasks}, "
                f"nelements={self.nelements})")
