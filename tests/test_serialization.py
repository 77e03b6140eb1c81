"""
Round-trip tests for mldist.serialization.

Every distribution is encoded as XML, JSON and binary, decoded again and
compared parameter by parameter and on random points.
"""

import numpy as np
import pytest

from mldist import (
    DiscreteDistribution,
    GaussianDistribution,
    DiagonalGaussianDistribution,
    LaplaceDistribution,
    GammaDistribution,
    RegressionDistribution,
    SerializationError,
)
from mldist import serialization

FORMATS = ['xml', 'json', 'binary']


def _round_trip(dist, format):
    return serialization.loads(serialization.dumps(dist, format), format)


def _check_points(original, loaded, points, tol=1e-10):
    a = original.pdf(points)
    b = loaded.pdf(points)
    np.testing.assert_allclose(b, a, rtol=tol, atol=1e-300)
    # Zero-probability points must stay exactly zero.
    np.testing.assert_array_equal(a == 0, b == 0)


# ============================================================
# Fixtures
# ============================================================

@pytest.fixture
def rng():
    return np.random.default_rng(12345)


class TestDiscrete:
    @pytest.mark.parametrize("format", FORMATS)
    def test_round_trip(self, format, rng):
        d = DiscreteDistribution(12)
        d.set_probabilities(rng.random(12))
        loaded = _round_trip(d, format)
        assert isinstance(loaded, DiscreteDistribution)
        np.testing.assert_array_equal(loaded.probabilities_for(0), d.probabilities_for(0))
        _check_points(d, loaded, rng.integers(0, 12, size=500))

    @pytest.mark.parametrize("format", FORMATS)
    def test_multidimensional_with_zero(self, format):
        d = DiscreteDistribution(probabilities=[[0.2, 0.0, 0.8], [0.5, 0.5]])
        loaded = _round_trip(d, format)
        assert loaded.support_sizes == [3, 2]
        points = np.array([[i, j] for i in range(3) for j in range(2)])
        _check_points(d, loaded, points)


class TestGaussian:
    @pytest.mark.parametrize("format", FORMATS)
    def test_round_trip(self, format, rng):
        X = rng.normal(size=(300, 6)) @ rng.normal(size=(6, 6))
        g = GaussianDistribution().fit(X)
        loaded = _round_trip(g, format)
        np.testing.assert_array_equal(loaded.mean, g.mean)
        np.testing.assert_array_equal(loaded.cov, g.cov)
        _check_points(g, loaded, rng.normal(size=(500, 6)))

    @pytest.mark.parametrize("format", FORMATS)
    def test_float32(self, format, rng):
        g = GaussianDistribution(3, dtype=np.float32).fit(rng.normal(size=(100, 3)))
        loaded = _round_trip(g, format)
        assert loaded.dtype == np.float32
        np.testing.assert_array_equal(loaded.cov, g.cov)
        _check_points(g, loaded, rng.normal(size=(500, 3)), tol=1e-6)

    @pytest.mark.parametrize("format", FORMATS)
    def test_empty(self, format):
        loaded = _round_trip(GaussianDistribution(), format)
        assert loaded.d == 0
        assert loaded._fitted is False


class TestDiagonalGaussian:
    @pytest.mark.parametrize("format", FORMATS)
    def test_round_trip(self, format, rng):
        g = DiagonalGaussianDistribution.from_classical_params(
            mean=rng.normal(size=5), cov=rng.uniform(0.5, 3.0, size=5)
        )
        loaded = _round_trip(g, format)
        np.testing.assert_array_equal(loaded.cov, g.cov)
        _check_points(g, loaded, rng.normal(size=(500, 5)))


class TestLaplace:
    @pytest.mark.parametrize("format", FORMATS)
    def test_round_trip(self, format, rng):
        l = LaplaceDistribution.from_classical_params(mean=rng.random(20), scale=2.5)
        loaded = _round_trip(l, format)
        np.testing.assert_array_equal(loaded.mean, l.mean)
        assert loaded.scale == 2.5
        _check_points(l, loaded, rng.random((500, 20)))


class TestGamma:
    @pytest.mark.parametrize("format", FORMATS)
    def test_round_trip(self, format, rng):
        g = GammaDistribution().fit(rng.gamma([2.0, 5.0, 0.8], [1.0, 0.3, 2.0], size=(1000, 3)))
        loaded = _round_trip(g, format)
        np.testing.assert_array_equal(loaded.alpha, g.alpha)
        np.testing.assert_array_equal(loaded.beta, g.beta)
        points = rng.gamma(2.0, 1.0, size=(500, 3))
        points[:10, 0] = -1.0
        _check_points(g, loaded, points)

    @pytest.mark.parametrize("format", FORMATS)
    def test_iteration_settings_kept(self, format):
        g = GammaDistribution(2, tol=1e-4, max_iter=25)
        loaded = _round_trip(g, format)
        assert loaded.tol == 1e-4
        assert loaded.max_iter == 25
        assert isinstance(loaded.max_iter, int)


class TestRegression:
    @pytest.mark.parametrize("format", FORMATS)
    @pytest.mark.parametrize("lambda_", [0.0, 0.3])
    def test_round_trip(self, format, lambda_, rng):
        X = rng.standard_normal((800, 15))
        y = rng.standard_normal(800)
        rd = RegressionDistribution(lambda_=lambda_).fit(X, y)
        loaded = _round_trip(rd, format)

        np.testing.assert_array_equal(loaded.err.mean, rd.err.mean)
        np.testing.assert_array_equal(loaded.err.cov, rd.err.cov)
        assert loaded.rf.lambda_ == pytest.approx(rd.rf.lambda_, abs=1e-8)
        np.testing.assert_array_equal(loaded.rf.parameters, rd.rf.parameters)
        _check_points(rd, loaded, rng.standard_normal((500, 16)))


# ============================================================
# Files
# ============================================================

class TestFiles:
    @pytest.mark.parametrize("suffix", ['.xml', '.json', '.npz', '.bin'])
    def test_save_load_infers_format(self, suffix, tmp_path):
        g = GaussianDistribution.from_classical_params(mean=[1.0, 2.0], cov=[[2.0, 0.5], [0.5, 1.0]])
        path = tmp_path / f"model{suffix}"
        serialization.save(g, path)
        loaded = serialization.load(path)
        np.testing.assert_array_equal(loaded.cov, g.cov)

    def test_explicit_format(self, tmp_path):
        l = LaplaceDistribution(3)
        path = tmp_path / "model.dat"
        serialization.save(l, path, format='json')
        assert serialization.load(path, format='json').d == 3

    def test_unknown_suffix(self, tmp_path):
        with pytest.raises(ValueError, match="infer format"):
            serialization.save(LaplaceDistribution(1), tmp_path / "model.txt")

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            serialization.load(tmp_path / "missing.json")


# ============================================================
# Failures
# ============================================================

class TestMalformed:
    def test_unknown_format(self):
        with pytest.raises(ValueError, match="Unknown format"):
            serialization.dumps(LaplaceDistribution(1), 'yaml')

    @pytest.mark.parametrize("format", ['xml', 'json'])
    def test_truncated_text(self, format):
        text = serialization.dumps(GaussianDistribution(3), format)
        with pytest.raises(SerializationError) as excinfo:
            serialization.loads(text[: len(text) // 2], format)
        assert excinfo.value.format == format

    def test_truncated_binary(self):
        data = serialization.dumps(GaussianDistribution(3), 'binary')
        with pytest.raises(SerializationError):
            serialization.loads(data[: len(data) // 2], 'binary')

    def test_garbage_binary(self):
        with pytest.raises(SerializationError):
            serialization.loads(b"not an archive", 'binary')

    def test_unknown_type(self):
        text = serialization.dumps(LaplaceDistribution(2), 'json')
        text = text.replace('LaplaceDistribution', 'CauchyDistribution')
        with pytest.raises(SerializationError, match="Unknown distribution type"):
            serialization.loads(text, 'json')

    def test_missing_parameter(self):
        state = serialization.to_dict(LaplaceDistribution(2))
        del state['params']['scale']
        with pytest.raises(SerializationError, match="Invalid parameters"):
            serialization.from_dict(state)

    def test_bad_number_in_xml(self):
        text = serialization.dumps(LaplaceDistribution(1), 'xml')
        text = text.replace('>1.0<', '>one<')
        with pytest.raises(SerializationError):
            serialization.loads(text, 'xml')

    def test_serialization_error_is_value_error(self):
        with pytest.raises(ValueError):
            serialization.loads("{", 'json')

    def test_unregistered_type(self):
        class Custom(LaplaceDistribution):
            pass

        with pytest.raises(TypeError, match="registered"):
            serialization.dumps(Custom(1), 'json')
