"""
Parameters of the Optimal Enriched-Set Cover problems.

One frozen record carries both parameterizations:

    Probabilistic form (CoverProblem):
        a           prior probability of a covered element to be unmasked
        b           prior probability of an uncovered element to be masked
    Log-tax form (QuadraticCoverProblem):
        sel_tax     cost of selecting a set, ``-log(sel_prob)``
        setXset_factor
                    multiplier of the pairwise set overlap penalty
        max_weight_per_mask
                    optional cap on the total set weight per mask
    Shared:
        reg         regularizing multiplier for w[i]*w[i], penalizes non-zero weights
        min_weight  optimized weights below this are snapped to zero

Examples:
    >>> params = CoverParams(setXset_factor=10.0, sel_tax=0.0)
    >>> params = CoverParams.from_sel_prob(0.5, setXset_factor=1.0)
    >>> stricter = params.replace(reg=0.1)
"""

from __future__ import annotations

import dataclasses
import math
import warnings
from dataclasses import dataclass
from typing import Any, Optional

__all__ = ['CoverParams']


@dataclass(frozen=True)
class CoverParams:
    """
    Validated, immutable parameters for :class:`CoverProblem` and
    :class:`QuadraticCoverProblem`.

    Raises:
        ValueError: Any field outside its valid range.

    Warns:
        UserWarning: Incoherent priors, i.e. a covered element is not more
            likely to be observed than an uncovered one (``1 - a <= b``).
    """
    a: float = 0.5
    b: float = 0.1
    reg: float = 0.01
    min_weight: float = 1E-2
    sel_tax: float = -math.log(0.9)
    setXset_factor: float = 1.0
    max_weight_per_mask: Optional[float] = None

    def __post_init__(self):
        if not (0.0 < self.a < 1.0):
            raise ValueError(f"`a` must be within (0,1) range, got {self.a}")
        if not (0.0 < self.b < 1.0):
            raise ValueError(f"`b` must be within (0,1) range, got {self.b}")
        if not (self.reg >= 0.0):
            raise ValueError(f"`reg` must be non-negative, got {self.reg}")
        if not (0.0 < self.min_weight <= 1.0):
            raise ValueError(f"`min_weight` must be within (0,1] range, got {self.min_weight}")
        if not (0.0 <= self.sel_tax < math.inf):
            raise ValueError(f"`sel_tax` must be non-negative and finite, got {self.sel_tax}")
        if not (0.0 <= self.setXset_factor < math.inf):
            raise ValueError(
                f"`setXset_factor` must be non-negative and finite, got {self.setXset_factor}"
            )
        if self.max_weight_per_mask is not None and not (self.max_weight_per_mask > 0.0):
            raise ValueError(
                f"`max_weight_per_mask` must be positive, got {self.max_weight_per_mask}"
            )
        if not (1.0 - self.a > self.b):
            warnings.warn(
                f"Incoherent parameters: covered element is less likely ({1.0 - self.a}) "
                f"to be observed than uncovered one ({self.b})",
                UserWarning,
                stacklevel=3,
            )

    @classmethod
    def from_sel_prob(cls, sel_prob: float, **kwargs: Any) -> CoverParams:
        """
        Build parameters from the prior probability of selecting a set.

        ``sel_prob=1.0`` means selection is free (``sel_tax=0``).
        """
        if not (0.0 < sel_prob <= 1.0):
            raise ValueError(f"`sel_prob` must be within (0,1] range, got {sel_prob}")
        return cls(sel_tax=-math.log(sel_prob), **kwargs)

    @property
    def sel_prob(self) -> float:
        return math.exp(-self.sel_tax)

    def replace(self, **changes: Any) -> CoverParams:
        """Copy with some fields changed; the copy is validated again."""
        return dataclasses.replace(self, **changes)
