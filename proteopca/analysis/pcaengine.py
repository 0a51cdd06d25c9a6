"""Principal Component Analysis of a samples × features abundance matrix.

Provides:
  - PrincipalComponentResult: immutable container for eigenvalues, variance
    explained, scores and loadings (all unrounded).
  - PCAEngine.compute: validation -> centering/scaling -> thin SVD.
  - format_variance: 2-decimal percentage strings for axis labels.

Samples are rows (observations), features are columns (variables). The
eigenvalues are those of the sample covariance matrix, i.e. S**2 / (n - 1),
which is what R's `prcomp` reports as `sdev**2`.

Component signs are fixed with sklearn's `svd_flip` (largest absolute loading
positive) so repeated runs agree, but a sign flip relative to another library
is expected and is not an error.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd
import polars as pl
from sklearn.utils.extmath import svd_flip

from proteopca.analysis.errors import (
    DegenerateInputError,
    InsufficientSamplesError,
    InvalidInputError,
)
from proteopca.utils.utils import log_info


@dataclass(frozen=True)
class PrincipalComponentResult:
    eigenvalues: np.ndarray          # (k,) descending, unrounded
    variance_explained: np.ndarray   # (k,) percentages, unrounded, sum = 100
    scores: np.ndarray               # (n_samples x k)
    loadings: np.ndarray             # (n_features x k)
    center: Optional[np.ndarray] = None   # column means subtracted, if any
    scale: Optional[np.ndarray] = None    # column divisors applied, if any
    sample_names: Optional[List[str]] = None
    feature_names: Optional[List[str]] = None

    @property
    def n_components(self) -> int:
        return int(self.eigenvalues.shape[0])

    @property
    def n_samples(self) -> int:
        return int(self.scores.shape[0])

    @staticmethod
    def component_name(k: int) -> str:
        return f"PC{k}"

    def component_scores(self, k: int) -> np.ndarray:
        """Scores of 1-based component `k`."""
        return self.scores[:, k - 1]

    def scores_frame(self) -> pd.DataFrame:
        """Scores as a (samples × PC1..PCk) DataFrame."""
        return pd.DataFrame(
            self.scores,
            columns=[self.component_name(k) for k in range(1, self.n_components + 1)],
            index=self.sample_names,
        )

    def variance_frame(self) -> pd.DataFrame:
        """One row per component: eigenvalue and variance explained (unrounded)."""
        return pd.DataFrame({
            "Component": [self.component_name(k) for k in range(1, self.n_components + 1)],
            "Eigenvalue": self.eigenvalues,
            "VarianceExplained": self.variance_explained,
        })


def format_variance(result: PrincipalComponentResult, decimals: int = 2) -> List[str]:
    """
    Variance-explained percentages as fixed-decimal strings ("41.27").

    This is the only place percentages get rounded; the result itself keeps
    full precision.
    """
    return [f"{v:.{decimals}f}" for v in result.variance_explained]


def _as_float_matrix(matrix) -> tuple:
    """Coerce supported matrix types to a float64 array, keeping names when available."""
    sample_names = feature_names = None
    try:
        if isinstance(matrix, pl.DataFrame):
            feature_names = list(matrix.columns)
            X = matrix.to_numpy()
        elif isinstance(matrix, pd.DataFrame):
            sample_names = [str(s) for s in matrix.index]
            feature_names = [str(c) for c in matrix.columns]
            X = matrix.to_numpy()
        else:
            X = matrix
        X = np.array(X, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"Matrix is not a rectangular numeric table: {exc}") from exc
    return X, sample_names, feature_names


class PCAEngine:
    """
    Stateless PCA on samples-as-rows matrices.

    Scaling divides by the sample standard deviation (ddof=1). Without
    centering, columns are divided by their root mean square
    sqrt(sum(x**2) / (n - 1)) instead, same as R's `scale(center=FALSE)`.
    """

    def __init__(self, ddof: int = 1):
        self.ddof = ddof

    def _validate(self, X: np.ndarray) -> None:
        if X.ndim != 2:
            raise InvalidInputError(f"Expected a 2D matrix (samples x features), got {X.ndim}D.")
        if X.size == 0 or X.shape[1] == 0:
            raise InvalidInputError(f"Matrix must be non-empty, got shape {X.shape}.")
        if X.shape[0] < 2:
            raise InsufficientSamplesError(
                f"PCA needs at least 2 samples, got {X.shape[0]}."
            )
        if not np.isfinite(X).all():
            n_bad = int((~np.isfinite(X)).sum())
            raise InvalidInputError(
                f"Matrix contains {n_bad} missing or non-finite value(s); impute or drop them first."
            )

    def _prepare(self, X: np.ndarray, center: bool, scale: bool):
        means = X.mean(axis=0) if center else None
        Xp = X - means if center else X.copy()

        divisors = None
        if scale:
            n = X.shape[0]
            if center:
                flat = np.ptp(X, axis=0) == 0
                divisors = X.std(axis=0, ddof=self.ddof)
            else:
                flat = ~X.any(axis=0)
                divisors = np.sqrt((X ** 2).sum(axis=0) / (n - self.ddof))
            if flat.any():
                idx = np.flatnonzero(flat)
                head = ", ".join(map(str, idx[:10])) + (" ..." if len(idx) > 10 else "")
                raise DegenerateInputError(
                    f"{len(idx)} zero-variance column(s) cannot be scaled (indices: {head})."
                )
            Xp = Xp / divisors

        return Xp, means, divisors

    def compute(
        self,
        matrix,
        center: bool = True,
        scale: bool = False,
        sample_names: Optional[Sequence[str]] = None,
        feature_names: Optional[Sequence[str]] = None,
    ) -> PrincipalComponentResult:
        """Run PCA and return min(n_samples, n_features) components."""
        X, inferred_samples, inferred_features = _as_float_matrix(matrix)
        self._validate(X)

        sample_names = list(sample_names) if sample_names is not None else inferred_samples
        feature_names = list(feature_names) if feature_names is not None else inferred_features
        if sample_names is not None and len(sample_names) != X.shape[0]:
            raise InvalidInputError(
                f"Got {len(sample_names)} sample names for {X.shape[0]} rows."
            )
        if feature_names is not None and len(feature_names) != X.shape[1]:
            raise InvalidInputError(
                f"Got {len(feature_names)} feature names for {X.shape[1]} columns."
            )

        Xp, means, divisors = self._prepare(X, center, scale)

        n, m = Xp.shape
        k = min(n, m)
        # thin SVD: U (n x k), S (k,), Vt (k x m); S is already descending
        U, S, Vt = np.linalg.svd(Xp, full_matrices=False)
        U, Vt = svd_flip(U[:, :k], Vt[:k], u_based_decision=False)
        S = S[:k]

        eigenvalues = S ** 2 / (n - 1)
        total = eigenvalues.sum()
        if not total > 0:
            raise DegenerateInputError("Matrix has no variance to decompose.")
        variance_explained = 100.0 * eigenvalues / total

        log_info(f"PCA on {n} samples x {m} features "
                 f"(center={center}, scale={scale}) -> {k} components; "
                 f"PC1={variance_explained[0]:.2f}%")

        return PrincipalComponentResult(
            eigenvalues=eigenvalues,
            variance_explained=variance_explained,
            scores=U * S,
            loadings=Vt.T,
            center=means,
            scale=divisors,
            sample_names=sample_names,
            feature_names=feature_names,
        )
