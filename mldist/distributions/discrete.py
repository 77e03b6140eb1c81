"""
Discrete (categorical) distribution over one or more independent dimensions.

Each dimension :math:`k` has a finite support :math:`\\{0, \\ldots, m_k - 1\\}`
and its own probability vector :math:`p^{(k)}`. An observation is a vector of
indices :math:`x = (x_1, \\ldots, x_K)` and

.. math::
    P(x) = \\prod_{k=1}^K p^{(k)}_{x_k}

Maximum-likelihood training counts (optionally weighted) occurrences of each
index per dimension and normalizes the counts.
"""

from typing import List, Optional, Sequence, Union
import numpy as np
from numpy.typing import ArrayLike, NDArray

from mldist.base import Distribution
from mldist.params import DiscreteParams


class DiscreteDistribution(Distribution):
    """
    Product of independent categorical distributions.

    Parameters
    ----------
    num_observations : int or sequence of int, optional
        Support size of a single dimension, or one support size per
        dimension. Every dimension starts uniform.
    probabilities : sequence of array_like, optional
        Explicit initial probability vectors, one per dimension. Each is
        normalized to sum to one. Mutually exclusive with
        ``num_observations``.
    dtype : numpy dtype, optional
        Floating type of the probability vectors.
    random_state : None, int or Generator, optional
        Generator used by :meth:`rvs`.

    Examples
    --------
    >>> d = DiscreteDistribution(5)
    >>> d.pdf(0)
    0.2
    >>> d = DiscreteDistribution([10, 10, 10])
    >>> d.fit(np.array([[0, 0, 0], [1, 0, 0], [2, 1, 2]]))
    >>> d = DiscreteDistribution(probabilities=[[0.1, 0.3, 0.6], [0.5, 0.5]])

    Notes
    -----
    The support sizes are fixed at construction; :meth:`fit` and
    :meth:`set_probabilities` update the vectors in place and never resize
    them. Indices outside a dimension's support raise ``ValueError``.
    """

    def __init__(self, num_observations: Optional[Union[int, Sequence[int]]] = None,
                 probabilities: Optional[Sequence[ArrayLike]] = None, *,
                 dtype=np.float64, random_state=None):
        super().__init__(dtype=dtype, random_state=random_state)
        self._probabilities: List[NDArray] = []

        if num_observations is not None and probabilities is not None:
            raise ValueError("Pass either num_observations or probabilities, not both")
        if probabilities is not None:
            self._set_from_classical(probabilities=probabilities)
        elif num_observations is not None:
            sizes = np.atleast_1d(np.asarray(num_observations))
            if sizes.ndim != 1 or sizes.dtype.kind not in 'iu':
                raise ValueError("num_observations must be an int or a sequence of ints")
            if np.any(sizes <= 0):
                raise ValueError(f"Support sizes must be positive, got {sizes.tolist()}")
            self._probabilities = [
                np.full(int(m), 1.0 / int(m), dtype=self._dtype) for m in sizes
            ]
            self._fitted = True
            self._invalidate_cache()

    @property
    def d(self) -> int:
        """Number of independent dimensions."""
        return len(self._probabilities)

    @property
    def support_sizes(self) -> List[int]:
        """Support size of each dimension."""
        return [len(p) for p in self._probabilities]

    @property
    def probabilities(self) -> List[NDArray]:
        """Copies of the per-dimension probability vectors."""
        return [p.copy() for p in self._probabilities]

    def probabilities_for(self, dim: int = 0) -> NDArray:
        """Copy of the probability vector of dimension ``dim``."""
        return self._probabilities[dim].copy()

    def set_probabilities(self, values: ArrayLike, dim: int = 0) -> 'DiscreteDistribution':
        """
        Assign the probability vector of one dimension.

        The values are stored as given (no normalization), matching direct
        assignment of the vector. Its length must equal the support size.
        """
        self._check_fitted()
        values = np.asarray(values, dtype=self._dtype).ravel()
        expected = len(self._probabilities[dim])
        if len(values) != expected:
            raise ValueError(
                f"Dimension {dim} has support size {expected}, got {len(values)} values"
            )
        if np.any(values < 0):
            raise ValueError("Probabilities must be non-negative")
        self._probabilities[dim] = values.copy()
        self._invalidate_cache()
        return self

    # ============================================================
    # Classical parameters
    # ============================================================

    def _set_from_classical(self, *, probabilities) -> None:
        if len(probabilities) == 0:
            raise ValueError("At least one probability vector is required")

        vectors = []
        for k, p in enumerate(probabilities):
            p = np.asarray(p, dtype=self._dtype).ravel()
            if len(p) == 0:
                raise ValueError(f"Probability vector {k} is empty")
            if np.any(p < 0):
                raise ValueError(f"Probability vector {k} has negative entries")
            total = np.sum(p)
            if total <= 0:
                raise ValueError(f"Probability vector {k} sums to zero")
            vectors.append(p / total)

        self._probabilities = vectors
        self._fitted = True
        self._invalidate_cache()

    def _compute_classical_params(self) -> DiscreteParams:
        return DiscreteParams(probabilities=tuple(self.probabilities))

    # ============================================================
    # Evaluation
    # ============================================================

    def _as_indices(self, x: ArrayLike):
        """Coerce ``x`` to an ``(n, d)`` integer index array and validate it."""
        X = np.asarray(x)
        if X.dtype.kind == 'f':
            # Round to the nearest index.
            X = np.floor(X + 0.5)
        elif X.dtype.kind not in 'iub':
            raise ValueError(f"Discrete observations must be numeric, got dtype {X.dtype}")
        X, single = self._as_observations(X, dtype=np.intp)

        for k, p in enumerate(self._probabilities):
            column = X[:, k]
            if np.any(column < 0) or np.any(column >= len(p)):
                bad = column[(column < 0) | (column >= len(p))][0]
                raise ValueError(
                    f"Observation index {bad} is outside the support "
                    f"[0, {len(p)}) of dimension {k}"
                )
        return X, single

    def logpdf(self, x: ArrayLike) -> Union[float, NDArray[np.floating]]:
        """
        Log probability: :math:`\\sum_k \\log p^{(k)}_{x_k}`.

        Indices with probability zero give ``-inf``.
        """
        self._check_fitted()
        X, single = self._as_indices(x)

        result = np.zeros(X.shape[0], dtype=self._dtype)
        with np.errstate(divide='ignore'):
            for k, p in enumerate(self._probabilities):
                result += np.log(p[X[:, k]])
        return self._format_result(result, single)

    def pdf(self, x: ArrayLike) -> Union[float, NDArray[np.floating]]:
        """Probability: :math:`\\prod_k p^{(k)}_{x_k}`."""
        self._check_fitted()
        X, single = self._as_indices(x)

        result = np.ones(X.shape[0], dtype=self._dtype)
        for k, p in enumerate(self._probabilities):
            result *= p[X[:, k]]
        return self._format_result(result, single)

    # ============================================================
    # Sampling
    # ============================================================

    def rvs(self, size: Optional[int] = None, random_state=None) -> NDArray:
        """
        Draw index vectors by inverse-CDF sampling of each dimension.

        Returns
        -------
        samples : ndarray of int
            Shape ``(d,)`` for ``size=None``, ``(size, d)`` otherwise.
        """
        self._check_fitted()
        rng = self._get_rng(random_state)
        n = 1 if size is None else int(size)

        samples = np.empty((n, self.d), dtype=np.intp)
        for k, p in enumerate(self._probabilities):
            cdf = np.cumsum(p)
            u = rng.random(n) * cdf[-1]
            # Rounding can leave cdf[-1] marginally below u.
            samples[:, k] = np.minimum(
                np.searchsorted(cdf, u, side='right'), len(p) - 1
            )

        if size is None:
            return samples[0]
        return samples

    # ============================================================
    # Fitting
    # ============================================================

    def fit(self, X: ArrayLike, y: Optional[ArrayLike] = None,
            sample_weight: Optional[ArrayLike] = None) -> 'DiscreteDistribution':
        """
        Maximum-likelihood estimate of every probability vector.

        Unweighted, each vector becomes the empirical frequency of each index.
        With ``sample_weight``, each observation contributes its weight to
        the count of its index. Counts are normalized per dimension; indices
        with zero count get probability zero. A dimension whose total count is
        zero (all weights zero) is reset to uniform.

        Parameters
        ----------
        X : array_like of int, shape (n_samples, d)
            Observed index vectors.
        y : ignored
        sample_weight : array_like, shape (n_samples,), optional
            Non-negative responsibilities.

        Returns
        -------
        self : DiscreteDistribution
        """
        self._check_fitted()
        X_arr = np.asarray(X)
        if X_arr.ndim == 1 and self.d == 1:
            X_arr = X_arr.reshape(-1, 1)
        elif X_arr.ndim == 1:
            raise ValueError(f"Expected {self.d}-dimensional input, got {len(X_arr)}")
        indices, _ = self._as_indices(X_arr)

        if sample_weight is None:
            w = None
        else:
            w = np.asarray(sample_weight, dtype=self._dtype).ravel()
            if len(w) != indices.shape[0]:
                raise ValueError(
                    f"sample_weight has {len(w)} entries but data has "
                    f"{indices.shape[0]} samples"
                )
            if np.any(w < 0) or not np.all(np.isfinite(w)):
                raise ValueError("sample_weight must be finite and non-negative")

        for k, p in enumerate(self._probabilities):
            counts = np.bincount(indices[:, k], weights=w, minlength=len(p))
            counts = counts.astype(self._dtype)
            total = np.sum(counts)
            if total > 0:
                self._probabilities[k] = counts / total
            else:
                self._probabilities[k] = np.full(len(p), 1.0 / len(p), dtype=self._dtype)

        self._invalidate_cache()
        return self

    # ============================================================
    # Structural state
    # ============================================================

    def _get_state(self):
        return {'probabilities': self.probabilities}

    def _set_state(self, state) -> None:
        vectors = [np.asarray(p, dtype=self._dtype).ravel() for p in state['probabilities']]
        self._probabilities = [p.copy() for p in vectors]
        self._fitted = len(vectors) > 0
        self._invalidate_cache()

    def __repr__(self) -> str:
        if not self._fitted:
            return "DiscreteDistribution(not fitted)"
        return f"DiscreteDistribution(support_sizes={self.support_sizes})"
