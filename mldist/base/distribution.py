"""
Base class for probability distributions with scipy-like API.

This module provides an abstract base class that defines the standard interface
shared by every distribution in :mod:`mldist`:

- **Density functions**: :meth:`pdf`, :meth:`logpdf`
- **Random sampling**: :meth:`rvs`
- **Fitting**: :meth:`fit` (returns self for method chaining), optionally
  weighted by per-sample responsibilities
- **Structural state**: :meth:`to_dict`, :meth:`from_dict`

Derived quantities (Cholesky factors, log-determinants, inverse variances) are
stored as ``functools.cached_property`` values and cleared through
:meth:`Distribution._invalidate_cache` whenever parameters change.
"""

from abc import ABC, abstractmethod
from functools import cached_property
from typing import Any, Dict, Optional, Tuple, Union
import numpy as np
from numpy.typing import ArrayLike, NDArray


RandomState = Optional[Union[int, np.random.Generator]]


def check_random_state(random_state: RandomState) -> np.random.Generator:
    """
    Turn ``random_state`` into a ``numpy.random.Generator``.

    Parameters
    ----------
    random_state : None, int or Generator
        ``None`` gives a freshly seeded generator, an int seeds a new one,
        a ``Generator`` is returned unchanged.
    """
    if random_state is None:
        return np.random.default_rng()
    if isinstance(random_state, (int, np.integer)):
        return np.random.default_rng(int(random_state))
    if isinstance(random_state, np.random.Generator):
        return random_state
    raise TypeError(
        f"random_state must be None, an int or a numpy Generator, "
        f"got {type(random_state).__name__}"
    )


class Distribution(ABC):
    """
    Abstract base class for probability distributions.

    Concrete distributions store their parameters as named attributes
    (e.g. ``_mean``, ``_cov``) and expose them through read properties.
    Every mutator finishes with ``self._invalidate_cache()`` so that no
    cached derived quantity can outlive the parameters it was built from.

    Parameters
    ----------
    dtype : numpy dtype, optional
        Floating element type of the parameters. Default ``float64``.
    random_state : None, int or Generator, optional
        Generator owned by this instance and used by :meth:`rvs`.

    Attributes
    ----------
    _fitted : bool
        Whether parameters have been set.
    _cached_attrs : tuple of str
        Names of ``cached_property`` attributes cleared on invalidation.
        Subclasses extend it: ``_cached_attrs = Parent._cached_attrs + (...)``.
    """

    _cached_attrs: Tuple[str, ...] = ('classical_params',)

    def __init__(self, *, dtype=np.float64, random_state: RandomState = None):
        self._dtype = np.dtype(dtype)
        if self._dtype.kind != 'f':
            raise ValueError(f"dtype must be a floating type, got {self._dtype}")
        self._rng = check_random_state(random_state)
        self._fitted = False

    # ============================================================
    # Fitted state and cache management
    # ============================================================

    def _check_fitted(self) -> None:
        """Raise ``ValueError`` if parameters have not been set."""
        if not self._fitted:
            raise ValueError(
                f"{self.__class__.__name__}: parameters not set. "
                "Use from_classical_params() or fit()."
            )

    def _invalidate_cache(self) -> None:
        """Drop every cached derived quantity listed in ``_cached_attrs``."""
        for attr in self._cached_attrs:
            self.__dict__.pop(attr, None)

    @property
    def dtype(self) -> np.dtype:
        """Floating element type of the parameters."""
        return self._dtype

    @property
    @abstractmethod
    def d(self) -> int:
        """Dimensionality of one observation (0 when untrained)."""

    @property
    def random_state(self) -> np.random.Generator:
        """Generator used by :meth:`rvs` when no ``random_state`` is passed."""
        return self._rng

    @random_state.setter
    def random_state(self, value: RandomState) -> None:
        self._rng = check_random_state(value)

    def _get_rng(self, random_state: RandomState = None) -> np.random.Generator:
        if random_state is None:
            return self._rng
        return check_random_state(random_state)

    # ============================================================
    # Classical parameters
    # ============================================================

    @classmethod
    def from_classical_params(cls, *, dtype=np.float64, random_state: RandomState = None,
                              **kwargs) -> 'Distribution':
        """
        Create a distribution from its classical parameters.

        Examples
        --------
        >>> g = GaussianDistribution.from_classical_params(mean=[0.0], cov=[[1.0]])
        >>> l = LaplaceDistribution.from_classical_params(mean=[0.0, 1.0], scale=2.5)
        """
        instance = cls(dtype=dtype, random_state=random_state)
        instance.set_classical_params(**kwargs)
        return instance

    def set_classical_params(self, **kwargs) -> 'Distribution':
        """Set parameters from the classical parametrization; returns self."""
        if not kwargs:
            return self
        self._set_from_classical(**kwargs)
        return self

    @abstractmethod
    def _set_from_classical(self, **kwargs) -> None:
        """
        Parse classical parameters, store them as named attributes, set
        ``self._fitted = True`` and call ``self._invalidate_cache()``.
        """

    @abstractmethod
    def _compute_classical_params(self):
        """Build a frozen dataclass (see :mod:`mldist.params`) from state."""

    @cached_property
    def classical_params(self):
        """
        Classical parameters as a frozen dataclass (cached).

        Computed lazily from internal state via ``_compute_classical_params``
        and invalidated when parameters change.
        """
        self._check_fitted()
        return self._compute_classical_params()

    # ============================================================
    # Observation handling
    # ============================================================

    def _as_observations(self, x: ArrayLike, dtype=None) -> Tuple[NDArray, bool]:
        """
        Coerce ``x`` to an ``(n, d)`` array.

        Returns
        -------
        X : ndarray, shape (n, d)
        single : bool
            True when ``x`` was a single observation, in which case callers
            return a scalar.
        """
        d = self.d
        X = np.asarray(x, dtype=self._dtype if dtype is None else dtype)

        if X.ndim == 0:
            if d != 1:
                raise ValueError(f"Expected {d}-dimensional input, got a scalar")
            return X.reshape(1, 1), True
        if X.ndim == 1:
            if len(X) == d:
                return X.reshape(1, d), True
            if d == 1:
                return X.reshape(-1, 1), False
            raise ValueError(f"Expected {d}-dimensional input, got {len(X)}")
        if X.ndim == 2:
            if X.shape[1] != d:
                raise ValueError(f"Expected {d}-dimensional input, got {X.shape[1]}")
            return X, False
        raise ValueError(f"Observations must be at most 2-D, got {X.ndim} dimensions")

    def _as_training_data(self, X: ArrayLike,
                          sample_weight: Optional[ArrayLike] = None
                          ) -> Tuple[NDArray, Optional[NDArray]]:
        """
        Coerce training data to ``(n, d)`` and validate ``sample_weight``.

        A 1-D array is treated as ``n`` scalar observations.
        """
        X = np.asarray(X, dtype=self._dtype)
        if X.ndim == 1:
            X = X.reshape(-1, 1)
        if X.ndim != 2:
            raise ValueError(f"Training data must be 1-D or 2-D, got {X.ndim} dimensions")
        if X.shape[0] == 0:
            raise ValueError("Training data is empty")

        if sample_weight is None:
            return X, None

        w = np.asarray(sample_weight, dtype=self._dtype).ravel()
        if len(w) != X.shape[0]:
            raise ValueError(
                f"sample_weight has {len(w)} entries but data has {X.shape[0]} samples"
            )
        if np.any(w < 0) or not np.all(np.isfinite(w)):
            raise ValueError("sample_weight must be finite and non-negative")
        return X, w

    @staticmethod
    def _format_result(values: NDArray, single: bool):
        if single:
            return float(values[0])
        return values

    # ============================================================
    # Density, sampling, fitting
    # ============================================================

    @abstractmethod
    def logpdf(self, x: ArrayLike) -> Union[float, NDArray[np.floating]]:
        """
        Log probability (density or mass) of ``x``.

        Parameters
        ----------
        x : array_like
            Shape ``(d,)`` for one observation, ``(n, d)`` for ``n``.

        Returns
        -------
        logpdf : float or ndarray
            Scalar for one observation, length-``n`` array otherwise.
            ``-inf`` is a valid value for zero-probability points.
        """

    def pdf(self, x: ArrayLike) -> Union[float, NDArray[np.floating]]:
        """Probability: ``exp(logpdf(x))``."""
        return np.exp(self.logpdf(x))

    @abstractmethod
    def rvs(self, size: Optional[int] = None,
            random_state: RandomState = None) -> NDArray:
        """
        Draw random observations.

        Parameters
        ----------
        size : int, optional
            Number of observations. ``None`` returns one observation of
            shape ``(d,)``; an int returns shape ``(size, d)``.
        random_state : None, int or Generator, optional
            Overrides the instance generator for this call.
        """

    @abstractmethod
    def fit(self, X: ArrayLike, y: Optional[ArrayLike] = None,
            sample_weight: Optional[ArrayLike] = None) -> 'Distribution':
        """
        Fit parameters by maximum likelihood (sklearn-style).

        Parameters
        ----------
        X : array_like, shape (n_samples, d)
            Training observations, one per row.
        y : array_like, optional
            Ignored except by :class:`RegressionDistribution`.
        sample_weight : array_like, shape (n_samples,), optional
            Non-negative responsibilities; need not sum to one.

        Returns
        -------
        self
        """

    def score(self, X: ArrayLike) -> float:
        """Mean log-likelihood of ``X`` (higher is better)."""
        return float(np.mean(self.logpdf(X)))

    # ============================================================
    # Structural state
    # ============================================================

    @abstractmethod
    def _get_state(self) -> Dict[str, Any]:
        """Parameters as a dict of arrays, numbers, lists and nested dicts."""

    @abstractmethod
    def _set_state(self, state: Dict[str, Any]) -> None:
        """Restore parameters produced by :meth:`_get_state`."""

    def to_dict(self) -> Dict[str, Any]:
        """
        Structural form of the distribution, tagged with its class name.

        The arrays are copies; see :mod:`mldist.serialization` for the
        XML, JSON and binary encodings built on top of it.
        """
        return {
            'type': self.__class__.__name__,
            'dtype': self._dtype.name,
            'params': self._get_state(),
        }

    @classmethod
    def from_dict(cls, state: Dict[str, Any]) -> 'Distribution':
        """Rebuild a distribution from :meth:`to_dict` output."""
        if state.get('type') != cls.__name__:
            raise ValueError(
                f"State describes {state.get('type')!r}, not {cls.__name__!r}"
            )
        instance = cls(dtype=np.dtype(state['dtype']))
        instance._set_state(state['params'])
        return instance

    def __repr__(self) -> str:
        if not self._fitted:
            return f"{self.__class__.__name__}(not fitted)"
        return f"{self.__class__.__name__}(d={self.d})"
