"""
Conditional distribution of a response given covariates.

A :class:`~mldist.linear_model.LinearRegression` ``rf`` predicts the mean
response and a univariate :class:`GaussianDistribution` ``err`` models the
residual:

.. math::
    p(y | x) = \\mathcal{N}(y - f(x) \\,|\\, \\mu_e, \\sigma_e^2)

Joint observations are laid out as ``[response, covariate_1, ...,
covariate_p]`` so that :attr:`d` is ``1 + p``.
"""

from typing import Optional, Union
import logging
import numpy as np
from numpy.typing import ArrayLike, NDArray

from mldist.base import Distribution
from mldist.distributions.gaussian import GaussianDistribution
from mldist.linear_model import LinearRegression
from mldist.params import RegressionParams

logger = logging.getLogger(__name__)


class RegressionDistribution(Distribution):
    """
    Linear regression with Gaussian residual error.

    Parameters
    ----------
    lambda_ : float, optional
        Ridge regularization strength of the regression function.
    dtype : numpy dtype, optional
        Floating type of the parameters.
    random_state : None, int or Generator, optional
        Generator used by :meth:`rvs`.

    Examples
    --------
    >>> rng = np.random.default_rng(0)
    >>> X = rng.standard_normal((800, 15))
    >>> y = rng.standard_normal(800)
    >>> rd = RegressionDistribution().fit(X, y)
    >>> rd.d
    16
    >>> rd.err.d
    1
    """

    def __init__(self, lambda_: float = 0.0, *, dtype=np.float64, random_state=None):
        super().__init__(dtype=dtype, random_state=random_state)
        self._rf = LinearRegression(lambda_, dtype=self._dtype)
        self._err = GaussianDistribution(1, dtype=self._dtype)

    @property
    def d(self) -> int:
        """``1 + n_covariates`` once fitted, 0 before."""
        if not self._fitted:
            return 0
        return 1 + self._rf.n_covariates

    @property
    def rf(self) -> LinearRegression:
        """The regression function."""
        return self._rf

    @property
    def err(self) -> GaussianDistribution:
        """Univariate Gaussian of the residuals."""
        return self._err

    def _set_from_classical(self, *, parameters, err_mean=0.0, err_var=1.0,
                            lambda_=None) -> None:
        lambda_ = self._rf.lambda_ if lambda_ is None else lambda_
        self._rf = LinearRegression.from_dict(
            {'parameters': parameters, 'lambda_': lambda_}, dtype=self._dtype
        )
        if len(self._rf.parameters) == 0:
            raise ValueError("parameters must contain at least the intercept")
        self._err = GaussianDistribution.from_classical_params(
            mean=[err_mean], cov=[[err_var]], dtype=self._dtype
        )
        self._fitted = True
        self._invalidate_cache()

    def _compute_classical_params(self) -> RegressionParams:
        return RegressionParams(
            rf=self._rf.params,
            err_mean=float(self._err.mean[0]),
            err_var=float(self._err.cov[0, 0]),
        )

    def _residuals(self, X: NDArray) -> NDArray:
        return X[:, 0] - self._rf.predict(X[:, 1:])

    def logpdf(self, x: ArrayLike) -> Union[float, NDArray[np.floating]]:
        """
        Log density of the response given the covariates.

        Parameters
        ----------
        x : array_like
            Joint observation ``[response, covariates...]`` of shape ``(d,)``,
            or ``(n, d)`` for ``n`` observations.
        """
        self._check_fitted()
        X, single = self._as_observations(x)
        result = self._err.logpdf(self._residuals(X).reshape(-1, 1))
        return self._format_result(np.asarray(result, dtype=self._dtype), single)

    def predict(self, covariates: ArrayLike) -> NDArray:
        """Mean response for each row of ``covariates``."""
        self._check_fitted()
        return self._rf.predict(covariates) + self._err.mean[0]

    def rvs(self, size: Optional[int] = None, random_state=None,
            covariates: Optional[ArrayLike] = None) -> Union[float, NDArray]:
        """
        Draw responses for the given covariates.

        Parameters
        ----------
        size : int, optional
            Must be ``None`` or equal the number of covariate rows.
        random_state : None, int or Generator, optional
        covariates : array_like, shape (n_covariates,) or (n, n_covariates)
            Required. A single row gives a single response.

        Returns
        -------
        responses : float or ndarray, shape (n,)
        """
        self._check_fitted()
        if covariates is None:
            raise ValueError("RegressionDistribution.rvs requires covariates")
        C = np.asarray(covariates, dtype=self._dtype)
        single = C.ndim <= 1 and C.size == self._rf.n_covariates
        C = C.reshape(1, -1) if single else C
        if size is not None and int(size) != C.shape[0]:
            raise ValueError(f"size={size} doesn't match {C.shape[0]} covariate rows")

        rng = self._get_rng(random_state)
        noise = self._err.rvs(C.shape[0], random_state=rng)[:, 0]
        responses = (self._rf.predict(C) + noise).astype(self._dtype, copy=False)
        if single:
            return float(responses[0])
        return responses

    def fit(self, X: ArrayLike, y: Optional[ArrayLike] = None,
            sample_weight: Optional[ArrayLike] = None) -> 'RegressionDistribution':
        """
        Fit the regression function, then the residual Gaussian.

        Parameters
        ----------
        X : array_like, shape (n_samples, n_covariates) or (n_samples, d)
            Covariates. When ``y`` is omitted, the first column is taken as
            the response and the rest as covariates.
        y : array_like, shape (n_samples,), optional
            Responses.
        sample_weight : array_like, shape (n_samples,), optional
            Passed to both the regression and the residual fit.

        Returns
        -------
        self : RegressionDistribution
        """
        X = np.asarray(X, dtype=self._dtype)
        if y is None:
            if X.ndim != 2 or X.shape[1] < 1:
                raise ValueError("Joint observations must be 2-D with the response first")
            y = X[:, 0]
            X = X[:, 1:]

        self._rf.fit(X, y, sample_weight=sample_weight)
        residuals = np.asarray(y, dtype=self._dtype).ravel() - self._rf.predict(X)
        self._err.fit(residuals.reshape(-1, 1), sample_weight=sample_weight)

        logger.debug("Fitted regression on %d samples with %d covariates",
                     len(residuals), self._rf.n_covariates)

        self._fitted = True
        self._invalidate_cache()
        return self

    def _get_state(self):
        return {'rf': self._rf.to_dict(), 'err': self._err._get_state()}

    def _set_state(self, state) -> None:
        self._rf = LinearRegression.from_dict(state['rf'], dtype=self._dtype)
        err = GaussianDistribution(dtype=self._dtype)
        err._set_state(state['err'])
        if err.d != 1:
            raise ValueError(f"Residual distribution must be univariate, got d={err.d}")
        self._err = err
        self._fitted = len(self._rf.parameters) > 0
        self._invalidate_cache()

    def __repr__(self) -> str:
        if not self._fitted:
            return "RegressionDistribution(not fitted)"
        return (f"RegressionDistribution(n_covariates={self._rf.n_covariates}, "
                f"lambda_={self._rf.lambda_})")
