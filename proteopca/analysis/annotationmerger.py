import numpy as np
import pandas as pd
import polars as pl
from typing import Optional

from proteopca.analysis.errors import (
    AnnotationCountMismatchError,
    AxisOutOfRangeError,
    InvalidInputError,
    SampleIdentityMismatchError,
)
from proteopca.analysis.pcaengine import PrincipalComponentResult
from proteopca.utils.utils import log_info

LABEL_COLUMN = "Label"


def _as_pandas(annotations) -> pd.DataFrame:
    if isinstance(annotations, pl.DataFrame):
        return annotations.to_pandas()
    if isinstance(annotations, pd.DataFrame):
        return annotations.reset_index(drop=True)
    return pd.DataFrame(list(annotations))


def derive_label(condition, replicate) -> str:
    """Condition text for the first replicate, empty otherwise."""
    if isinstance(replicate, (bool, np.bool_)) or pd.isna(condition):
        return ""
    try:
        first = float(replicate) == 1
    except (TypeError, ValueError):
        first = False
    return str(condition) if first else ""


class AnnotationMerger:
    """
    Join PCA scores with per-sample annotations into a plot-ready table.

    The default join is positional: row i of the scores pairs with row i of
    the annotations, so the caller must keep both in the same sample order.
    Passing `sample_key` switches to an identifier join against
    `result.sample_names`.
    """

    def __init__(
        self,
        condition_column: str = "Condition",
        replicate_column: str = "Replicate",
        sample_key: Optional[str] = None,
    ):
        self.condition_column = condition_column
        self.replicate_column = replicate_column
        self.sample_key = sample_key

    def _check_axis(self, axis, n_components: int, name: str) -> int:
        if isinstance(axis, (bool, np.bool_)) or not isinstance(axis, (int, np.integer)):
            raise AxisOutOfRangeError(f"{name} must be an integer component index, got {axis!r}.")
        if not 1 <= axis <= n_components:
            raise AxisOutOfRangeError(
                f"{name}={axis} is out of range; result has {n_components} component(s)."
            )
        return int(axis)

    def _align_by_key(self, ann: pd.DataFrame, result: PrincipalComponentResult) -> pd.DataFrame:
        if self.sample_key not in ann.columns:
            raise InvalidInputError(f"Sample key column '{self.sample_key}' not found in annotations.")
        if result.sample_names is None:
            raise SampleIdentityMismatchError(
                "Identifier join requested but the PCA result carries no sample names."
            )
        keys = ann[self.sample_key].astype(str)
        if keys.duplicated().any():
            dups = keys[keys.duplicated()].unique().tolist()
            raise SampleIdentityMismatchError(f"Duplicated sample keys in annotations: {dups[:10]}")

        expected = [str(s) for s in result.sample_names]
        missing = sorted(set(expected) - set(keys))
        extra = sorted(set(keys) - set(expected))
        if missing or extra:
            raise SampleIdentityMismatchError(
                f"Sample keys differ from matrix samples: missing={missing[:10]} extra={extra[:10]}"
            )
        return ann.set_index(pd.Index(keys.to_numpy())).loc[expected].reset_index(drop=True)

    def merge(
        self,
        result: PrincipalComponentResult,
        annotations,
        axis_x: int = 1,
        axis_y: int = 2,
    ) -> pd.DataFrame:
        """
        Return one row per sample: annotation fields, PC{axis_x}, PC{axis_y}, Label.

        Output order follows the annotations (positional mode) or the result's
        sample order (identifier mode). Nothing is sorted or grouped.
        """
        axis_x = self._check_axis(axis_x, result.n_components, "axis_x")
        axis_y = self._check_axis(axis_y, result.n_components, "axis_y")

        ann = _as_pandas(annotations)
        if len(ann) != result.n_samples:
            raise AnnotationCountMismatchError(
                f"Got {len(ann)} annotation row(s) for {result.n_samples} sample(s)."
            )
        for col in (self.condition_column, self.replicate_column):
            if col not in ann.columns:
                raise InvalidInputError(f"Annotation column '{col}' not found; have {list(ann.columns)}.")
        reserved = {result.component_name(axis_x), result.component_name(axis_y), LABEL_COLUMN}
        taken = sorted(reserved & set(ann.columns))
        if taken:
            raise InvalidInputError(
                f"Annotation column(s) {taken} collide with generated plot columns; rename them."
            )

        if self.sample_key is not None:
            ann = self._align_by_key(ann, result)

        plot_df = ann.copy()
        for k in (axis_x, axis_y):
            plot_df[result.component_name(k)] = result.component_scores(k)
        plot_df[LABEL_COLUMN] = [
            derive_label(c, r)
            for c, r in zip(plot_df[self.condition_column], plot_df[self.replicate_column])
        ]

        n_labels = int((plot_df[LABEL_COLUMN] != "").sum())
        log_info(f"Merged {len(plot_df)} samples on PC{axis_x}/PC{axis_y} ({n_labels} labelled).")
        return plot_df
