"""Export the plot-ready table, the variance table and the annotated .h5ad."""
import numpy as np
import pandas as pd
from pathlib import Path
from datetime import datetime
from typing import Optional
from anndata import AnnData
from importlib.metadata import version as _pkg_version, PackageNotFoundError

from proteopca.analysis.adata_schema import UNS_PROTEOPCA
from proteopca.analysis.pcaengine import PrincipalComponentResult
from proteopca.utils.utils import log_time, log_info


class PCAExporter:
    def __init__(
        self,
        result: PrincipalComponentResult,
        plot_df: pd.DataFrame,
        adata: Optional[AnnData] = None,
    ):
        """TSV and .h5ad exporter for one PCA run."""
        self.result = result
        self.plot_df = plot_df
        self.adata = adata

    def export_table(self, path) -> Path:
        """Plot-ready table (annotations, selected PCs, Label) as TSV."""
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        self.plot_df.to_csv(out, sep="\t", index=False)
        log_info(f"Plot table written to {out}")
        return out

    def export_variance(self, path) -> Path:
        """Eigenvalues and variance explained per component, unrounded."""
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        self.result.variance_frame().to_csv(out, sep="\t", index=False)
        log_info(f"Variance table written to {out}")
        return out

    @log_time("Exporting .h5ad")
    def export_adata(self, h5ad_path) -> Path:
        """Write the AnnData (with PCA results already stored) with categorical metadata."""
        if self.adata is None:
            raise ValueError("No AnnData attached to the exporter.")

        for col in self.adata.obs.columns:
            if self.adata.obs[col].dtype == object:
                self.adata.obs[col] = self.adata.obs[col].astype(str).astype("category")
        for col in self.adata.var.columns:
            if self.adata.var[col].dtype == object:
                self.adata.var[col] = self.adata.var[col].astype(str)

        try:
            pp_version = _pkg_version("proteopca")
        except PackageNotFoundError:
            pp_version = "0+unknown"
        self.adata.uns[UNS_PROTEOPCA] = {
            "version": pp_version,
            "created_at": datetime.now().isoformat(timespec="seconds"),
            "n_components": np.int64(self.result.n_components),
            "eigenvalues": np.asarray(self.result.eigenvalues),
        }

        out = Path(h5ad_path)
        out.parent.mkdir(parents=True, exist_ok=True)
        self.adata.write(out, compression="gzip")
        return out
