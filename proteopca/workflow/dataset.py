import pyarrow.csv as pv_csv
import polars as pl
import pandas as pd
import numpy as np
import anndata as ad
from typing import List
import warnings

from proteopca.analysis.adata_schema import UNS_ID_COLUMNS
from proteopca.analysis.errors import InvalidInputError
from proteopca.utils.utils import polars_matrix_to_numpy, log_time, log_info, log_warning

# Suppress the ImplicitModificationWarning from AnnData
warnings.filterwarnings("ignore", category=UserWarning, message=".*Transforming to str index.*")

DEFAULT_ID_COLUMNS = ["Gene names", "Protein IDs"]


def _delimiter_for(file_path: str) -> str:
    if not str(file_path).endswith((".csv", ".tsv")):
        raise ValueError(f"Only CSV or TSV files are supported, got {file_path!r}.")
    return "\t" if str(file_path).endswith(".tsv") else ","


class Dataset:
    """Load a proteins × samples table plus its sample annotations and expose them as AnnData."""
    def __init__(self, **kwargs):
        """
        Initialize the dataset object.

        Args:
            kwargs: dict with all the config elements
        """
        dataset_cfg = kwargs.get("dataset", {}) or {}
        self.file_path = dataset_cfg.get("input_file", None)
        self.annotation_file = dataset_cfg.get("annotation_file", None)
        self.load_method = dataset_cfg.get("load_method", "polars")
        self.sample_key = dataset_cfg.get("sample_key", None)

        raw_ids = dataset_cfg.get("id_columns", DEFAULT_ID_COLUMNS)
        if isinstance(raw_ids, str):
            raw_ids = [raw_ids]
        self.id_columns: List[str] = [str(c) for c in (raw_ids or [])]

        if not self.file_path:
            raise ValueError("dataset.input_file is required.")
        if not self.annotation_file:
            raise ValueError("dataset.annotation_file is required.")

        self._load_and_process()

    def _load_table(self, file_path: str) -> pl.DataFrame:
        """Load a CSV or TSV file using different libraries."""
        delimiter = _delimiter_for(file_path)

        if self.load_method == "polars":
            return pl.read_csv(file_path,
                               separator=delimiter,
                               infer_schema_length=10000,
                               null_values=["NA", "NaN", "N/A", ""])
        elif self.load_method == "pyarrow":
            parse_options = pv_csv.ParseOptions(delimiter=delimiter)
            arrow_table = pv_csv.read_csv(file_path, parse_options=parse_options)
            return pl.from_arrow(arrow_table)
        elif self.load_method == "pandas":
            df = pd.read_csv(file_path, delimiter=delimiter)
            return pl.from_pandas(df)
        else:
            raise ValueError(f"Unknown load method: {self.load_method}")

    @log_time("Data Loading")
    def _load_and_process(self) -> None:
        raw = self._load_table(self.file_path)
        self.annotations = self._load_table(self.annotation_file).to_pandas()

        present = [c for c in self.id_columns if c in raw.columns]
        absent = [c for c in self.id_columns if c not in raw.columns]
        if absent:
            log_warning(f"Identifier column(s) not found, skipping: {absent}")
        self.protein_meta = raw.select(present).to_pandas()

        numeric = raw.drop(present)
        non_numeric = [c for c, dt in zip(numeric.columns, numeric.dtypes) if not dt.is_numeric()]
        if non_numeric:
            raise InvalidInputError(
                f"Non-numeric sample column(s) {non_numeric}; list them under dataset.id_columns."
            )
        if numeric.width == 0:
            raise InvalidInputError("No numeric sample columns left after removing identifiers.")

        # proteins x samples on disk, samples x proteins for PCA
        mat = polars_matrix_to_numpy(numeric)
        self.matrix = mat.T
        self.sample_names = list(numeric.columns)
        log_info(f"Loaded {len(self.sample_names)} samples x {numeric.height} proteins; "
                 f"{len(self.annotations)} annotation rows.")

    @property
    def n_proteins(self) -> int:
        return int(self.matrix.shape[1])

    def _var_frame(self) -> pd.DataFrame:
        positional = [f"protein_{i}" for i in range(self.n_proteins)]
        if self.protein_meta.shape[1] == 0:
            return pd.DataFrame(index=positional)
        var = self.protein_meta.copy()
        first = var.iloc[:, 0].astype(str)
        var.index = first.to_numpy() if first.is_unique else positional
        return var

    def _obs_frame(self) -> pd.DataFrame:
        """Annotations indexed by sample name, or a bare index when they cannot be aligned."""
        obs = pd.DataFrame(index=pd.Index(self.sample_names))
        if self.sample_key is None:
            if len(self.annotations) == len(self.sample_names):
                ann = self.annotations.copy()
                ann.index = obs.index
                return ann
        elif self.sample_key in self.annotations.columns:
            keys = self.annotations[self.sample_key].astype(str)
            if keys.is_unique and set(keys) == set(self.sample_names):
                ann = self.annotations.set_index(pd.Index(keys.to_numpy()))
                return ann.loc[self.sample_names]
        log_warning("Annotations could not be aligned to samples; AnnData.obs left empty.")
        return obs

    def get_anndata(self) -> ad.AnnData:
        """AnnData with X = samples × proteins, obs = annotations (when aligned), var = identifiers."""
        adata = ad.AnnData(X=np.asarray(self.matrix, dtype=np.float64),
                           obs=self._obs_frame(),
                           var=self._var_frame())
        adata.uns[UNS_ID_COLUMNS] = list(self.protein_meta.columns)
        return adata
