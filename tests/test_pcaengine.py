import dataclasses

import numpy as np
import pandas as pd
import polars as pl
import pytest

from proteopca.analysis.errors import (
    DegenerateInputError,
    InsufficientSamplesError,
    InvalidInputError,
)
from proteopca.analysis.pcaengine import PCAEngine, format_variance
from conftest import assert_close_up_to_sign


@pytest.fixture
def engine():
    return PCAEngine()


class TestComponents:
    @pytest.mark.parametrize("shape", [(8, 5), (3, 8), (4, 4), (2, 6)])
    def test_component_count_is_min_of_shape(self, engine, shape):
        X = np.random.default_rng(0).normal(size=shape)
        result = engine.compute(X)
        k = min(shape)
        assert result.n_components == k
        assert result.scores.shape == (shape[0], k)
        assert result.loadings.shape == (shape[1], k)

    def test_percentages_bounded_and_sum_to_100(self, engine, random_matrix):
        pct = engine.compute(random_matrix).variance_explained
        assert np.all(pct >= 0) and np.all(pct <= 100)
        assert abs(pct.sum() - 100.0) < 0.1

    def test_percentages_non_increasing(self, engine, random_matrix):
        pct = engine.compute(random_matrix).variance_explained
        assert np.all(np.diff(pct) <= 1e-12)

    def test_unit_matrix_scenario(self, engine, unit_matrix):
        result = engine.compute(unit_matrix, center=True, scale=False)
        assert result.n_components == 3
        assert result.variance_explained[0] >= result.variance_explained[2]
        np.testing.assert_allclose(result.scores.sum(axis=0), 0.0, atol=1e-12)
        # centered columns are orthonormal here, so variance splits evenly
        np.testing.assert_allclose(result.variance_explained, 100.0 / 3, atol=1e-9)

    def test_eigenvalues_are_score_variances(self, engine, random_matrix):
        result = engine.compute(random_matrix)
        np.testing.assert_allclose(result.scores.var(axis=0, ddof=1), result.eigenvalues, rtol=1e-9)

    def test_scores_reconstruct_centered_matrix(self, engine, random_matrix):
        result = engine.compute(random_matrix)
        centered = random_matrix - random_matrix.mean(axis=0)
        np.testing.assert_allclose(result.scores @ result.loadings.T, centered, atol=1e-9)
        np.testing.assert_allclose(result.center, random_matrix.mean(axis=0))
        assert result.scale is None

    def test_loadings_are_orthonormal(self, engine, random_matrix):
        V = engine.compute(random_matrix).loadings
        np.testing.assert_allclose(V.T @ V, np.eye(V.shape[1]), atol=1e-10)


class TestDeterminism:
    def test_repeat_runs_agree_up_to_sign(self, engine, random_matrix):
        a = engine.compute(random_matrix).scores
        b = PCAEngine().compute(random_matrix.copy()).scores
        assert_close_up_to_sign(a, b)

    def test_matches_numpy_eigendecomposition(self, engine, random_matrix):
        result = engine.compute(random_matrix)
        cov = np.cov(random_matrix, rowvar=False)
        eig = np.sort(np.linalg.eigvalsh(cov))[::-1]
        np.testing.assert_allclose(result.eigenvalues, eig[:result.n_components], rtol=1e-9)


class TestCenterScale:
    def test_uncentered_differs_when_means_nonzero(self, engine, random_matrix):
        centered = engine.compute(random_matrix, center=True).scores
        raw = engine.compute(random_matrix, center=False).scores
        assert not np.allclose(np.abs(centered), np.abs(raw))

    def test_uncentered_scores_not_zero_mean(self, engine, random_matrix):
        result = engine.compute(random_matrix, center=False)
        assert result.center is None
        assert abs(result.scores[:, 0].sum()) > 1.0

    def test_scaling_uses_sample_standard_deviation(self, engine, random_matrix):
        result = engine.compute(random_matrix, center=True, scale=True)
        np.testing.assert_allclose(result.scale, random_matrix.std(axis=0, ddof=1))
        # correlation-matrix PCA: total variance equals the number of features
        assert result.eigenvalues.sum() == pytest.approx(random_matrix.shape[1])

    def test_scaling_is_unit_invariant(self, engine, random_matrix):
        rescaled = random_matrix * np.array([1, 10, 100, 0.1, 3])
        a = engine.compute(random_matrix, scale=True)
        b = engine.compute(rescaled, scale=True)
        np.testing.assert_allclose(a.variance_explained, b.variance_explained, rtol=1e-9)
        assert_close_up_to_sign(a.scores, b.scores, rtol=1e-7, atol=1e-9)

    def test_zero_variance_column_under_scaling(self, engine, random_matrix):
        X = random_matrix.copy()
        X[:, 2] = 4.2
        with pytest.raises(DegenerateInputError):
            engine.compute(X, scale=True)
        assert engine.compute(X, scale=False).n_components == 5

    def test_all_zero_column_uncentered_scaling(self, engine, random_matrix):
        X = random_matrix.copy()
        X[:, 0] = 0.0
        with pytest.raises(DegenerateInputError):
            engine.compute(X, center=False, scale=True)

    def test_constant_matrix_has_no_variance(self, engine):
        with pytest.raises(DegenerateInputError):
            engine.compute([[1.0, 2.0], [1.0, 2.0], [1.0, 2.0]])


class TestValidation:
    @pytest.mark.parametrize("bad", [
        [],
        [[]],
        [[1.0, 2.0], [3.0]],
        [["a", "b"], ["c", "d"]],
        [[[1.0]], [[2.0]]],
    ])
    def test_malformed(self, engine, bad):
        with pytest.raises(InvalidInputError):
            engine.compute(bad)

    @pytest.mark.parametrize("value", [np.nan, np.inf, -np.inf])
    def test_non_finite(self, engine, random_matrix, value):
        X = random_matrix.copy()
        X[3, 1] = value
        with pytest.raises(InvalidInputError):
            engine.compute(X)

    def test_single_sample(self, engine):
        with pytest.raises(InsufficientSamplesError):
            engine.compute([[1.0, 2.0, 3.0]])

    def test_errors_are_value_errors(self, engine):
        with pytest.raises(ValueError):
            engine.compute([[1.0, 2.0]])

    def test_name_length_mismatch(self, engine, random_matrix):
        with pytest.raises(InvalidInputError):
            engine.compute(random_matrix, sample_names=["a", "b"])


class TestResult:
    def test_pandas_input_keeps_names(self, engine, random_matrix):
        df = pd.DataFrame(random_matrix,
                          index=[f"s{i}" for i in range(8)],
                          columns=[f"p{j}" for j in range(5)])
        result = engine.compute(df)
        assert result.sample_names == [f"s{i}" for i in range(8)]
        assert result.feature_names == [f"p{j}" for j in range(5)]
        frame = result.scores_frame()
        assert list(frame.columns) == ["PC1", "PC2", "PC3", "PC4", "PC5"]
        assert list(frame.index) == result.sample_names

    def test_polars_input(self, engine, random_matrix):
        df = pl.DataFrame({f"p{j}": random_matrix[:, j] for j in range(5)})
        result = engine.compute(df)
        assert result.feature_names == [f"p{j}" for j in range(5)]
        assert_close_up_to_sign(result.scores, engine.compute(random_matrix).scores)

    def test_result_is_frozen(self, engine, random_matrix):
        result = engine.compute(random_matrix)
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.scores = None

    def test_variance_frame(self, engine, random_matrix):
        result = engine.compute(random_matrix)
        frame = result.variance_frame()
        assert frame["Component"].tolist()[0] == "PC1"
        np.testing.assert_array_equal(frame["VarianceExplained"].to_numpy(), result.variance_explained)


class TestFormatVariance:
    def test_two_decimals_at_boundary_only(self, engine, random_matrix):
        result = engine.compute(random_matrix)
        labels = format_variance(result)
        assert len(labels) == result.n_components
        assert all(len(s.split(".")[1]) == 2 for s in labels)
        assert labels[0] == f"{result.variance_explained[0]:.2f}"
        # underlying values keep full precision
        assert result.variance_explained[0] != float(labels[0])

    def test_pads_trailing_zeros(self, engine):
        X = np.array([[0.0, 0.0], [2.0, 0.0], [0.0, 1.0], [2.0, 1.0]])
        labels = format_variance(engine.compute(X))
        assert labels == ["80.00", "20.00"]
