"""
Tests for GammaDistribution (shape ``alpha``, scale ``beta``).
"""

import numpy as np
import pytest
from scipy import stats

from mldist import GammaDistribution, ConvergenceError


class TestDensity:
    def test_univariate(self):
        g = GammaDistribution.from_classical_params(alpha=[2.0], beta=[0.9])
        assert g.pdf(2.0) == pytest.approx(0.267575, rel=1e-5)

        g = GammaDistribution.from_classical_params(alpha=[3.1], beta=[1.4])
        assert g.pdf(2.94) == pytest.approx(0.189043, rel=1e-5)

    def test_multivariate_batch(self):
        g = GammaDistribution.from_classical_params(alpha=[2.0, 3.1], beta=[0.9, 1.4])
        X = np.array([[2.0, 2.0], [2.94, 2.94]])
        np.testing.assert_allclose(g.pdf(X), [0.04408, 0.026165], rtol=1e-4)

    def test_single_dimension_agrees_with_batch(self):
        g = GammaDistribution.from_classical_params(alpha=[2.0, 3.1], beta=[0.9, 1.4])
        assert g.pdf_dim(2.94, 1) == pytest.approx(0.189043, rel=1e-5)
        batch = g.pdf(np.array([[2.94, 2.94]]))
        assert g.pdf_dim(2.94, 0) * g.pdf_dim(2.94, 1) == pytest.approx(batch[0], rel=1e-12)

        values = np.array([0.5, 1.0, 2.94])
        np.testing.assert_allclose(
            g.logpdf_dim(values, 0) + g.logpdf_dim(values, 1),
            g.logpdf(np.column_stack([values, values])),
            rtol=1e-12,
        )

    def test_dim_out_of_range(self):
        g = GammaDistribution(2)
        with pytest.raises(ValueError):
            g.pdf_dim(1.0, 2)

    def test_vs_scipy(self):
        alpha = np.array([0.7, 2.0, 5.5])
        beta = np.array([1.3, 0.4, 2.0])
        g = GammaDistribution.from_classical_params(alpha=alpha, beta=beta)
        X = np.random.default_rng(0).gamma(2.0, 1.0, size=(40, 3))
        expected = stats.gamma(a=alpha, scale=beta).logpdf(X).sum(axis=1)
        np.testing.assert_allclose(g.logpdf(X), expected, rtol=1e-10)

    def test_negative_values_have_zero_density(self):
        g = GammaDistribution.from_classical_params(alpha=[2.0], beta=[1.0])
        assert g.logpdf(-1.0) == -np.inf
        assert g.pdf(-1.0) == 0.0
        assert g.pdf(0.0) == 0.0

    def test_invalid_parameters(self):
        with pytest.raises(ValueError, match="positive"):
            GammaDistribution.from_classical_params(alpha=[0.0], beta=[1.0])
        with pytest.raises(ValueError):
            GammaDistribution.from_classical_params(alpha=[1.0, 2.0], beta=[1.0])


class TestTraining:
    @pytest.mark.parametrize("alpha, beta", [(5.3, 1.5), (7.2, 0.9)])
    def test_recovers_parameters(self, alpha, beta):
        X = np.random.default_rng(0).gamma(alpha, beta, size=(5000, 1))
        g = GammaDistribution().fit(X)
        assert g.d == 1
        assert g.alpha[0] == pytest.approx(alpha, rel=0.1)
        assert g.beta[0] == pytest.approx(beta, rel=0.1)

    def test_one_dimensional_input(self):
        X = np.random.default_rng(1).gamma(2.0, 3.0, size=2000)
        g = GammaDistribution().fit(X)
        assert g.d == 1

    def test_unit_weights_match_unweighted(self):
        X = np.random.default_rng(2).gamma([5.3, 2.0], [1.5, 0.7], size=(5000, 2))
        unweighted = GammaDistribution().fit(X)
        weighted = GammaDistribution().fit(X, sample_weight=np.ones(5000))
        np.testing.assert_allclose(weighted.alpha, unweighted.alpha, rtol=1e-7)
        np.testing.assert_allclose(weighted.beta, unweighted.beta, rtol=1e-7)

    def test_weighted_two_distributions(self):
        rng = np.random.default_rng(3)
        X = np.concatenate([
            rng.gamma(5.4, 6.7, size=5000),
            rng.gamma(1.9, 8.4, size=5000),
        ]).reshape(-1, 1)
        w = np.concatenate([
            rng.uniform(0.98, 1.0, size=5000),
            rng.uniform(0.0, 0.02, size=5000),
        ])
        g = GammaDistribution().fit(X, sample_weight=w)
        assert g.alpha[0] == pytest.approx(5.4, rel=0.1)
        assert g.beta[0] == pytest.approx(6.7, rel=0.1)

    def test_statistics_match_data(self):
        X = np.random.default_rng(4).gamma([2.0, 7.0], [0.5, 3.0], size=(3000, 2))
        from_data = GammaDistribution().fit(X)

        mean_x = X.mean(axis=0)
        from_stats = GammaDistribution().fit_statistics(
            np.log(mean_x), np.log(X).mean(axis=0), mean_x
        )
        np.testing.assert_allclose(from_stats.alpha, from_data.alpha, rtol=1e-7)
        np.testing.assert_allclose(from_stats.beta, from_data.beta, rtol=1e-7)

    def test_refit_changes_dimension(self):
        rng = np.random.default_rng(5)
        g = GammaDistribution().fit(rng.gamma(2.0, 1.0, size=(500, 2)))
        assert g.d == 2
        g.fit(rng.gamma(2.0, 1.0, size=(500, 4)))
        assert g.d == 4
        assert g.alpha.shape == (4,)

    def test_non_positive_data(self):
        with pytest.raises(ValueError, match="strictly positive"):
            GammaDistribution().fit(np.array([1.0, 0.0, 2.0]))

    def test_constant_data(self):
        with pytest.raises(ValueError, match="no spread"):
            GammaDistribution().fit(np.full(10, 3.0))

    def test_convergence_error(self):
        X = np.random.default_rng(6).gamma(3.0, 1.0, size=500)
        with pytest.raises(ConvergenceError) as excinfo:
            GammaDistribution(max_iter=1).fit(X)
        assert excinfo.value.iterations == 1

    def test_invalid_configuration(self):
        with pytest.raises(ValueError):
            GammaDistribution(tol=0.0)
        with pytest.raises(ValueError):
            GammaDistribution(max_iter=0)


class TestSampling:
    def test_refit_recovers_parameters(self):
        alpha = np.array([2.0, 2.5, 3.0])
        beta = np.array([0.4, 0.6, 1.3])
        g = GammaDistribution.from_classical_params(alpha=alpha, beta=beta, random_state=0)
        X = g.rvs(4000)
        assert X.shape == (4000, 3)
        assert np.all(X > 0)

        refit = GammaDistribution().fit(X)
        np.testing.assert_allclose(refit.alpha, alpha, rtol=0.15)
        np.testing.assert_allclose(refit.beta, beta, rtol=0.15)
