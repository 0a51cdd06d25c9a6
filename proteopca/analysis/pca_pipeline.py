"""PCA step of the pipeline: AnnData in, scores written back in scanpy's layout."""

import numpy as np
from anndata import AnnData
from typing import Dict, Tuple

from proteopca.analysis.adata_schema import (
    OBSM_PCA,
    UNS_PCA,
    UNS_PCA_CENTER,
    UNS_PCA_PARAMS,
    UNS_PCA_SCALE,
    UNS_PCA_VARIANCE,
    UNS_PCA_VARIANCE_RATIO,
    VARM_PCS,
)
from proteopca.analysis.pcaengine import PCAEngine, PrincipalComponentResult
from proteopca.utils.utils import log_time


@log_time("Running PCA")
def run_pca_pipeline(adata: AnnData, config: Dict) -> Tuple[AnnData, PrincipalComponentResult]:
    """
    Compute PCA on `adata.X` (samples × proteins) and store:
      - obsm['X_pca']  : scores (samples × k)
      - varm['PCs']    : loadings (proteins × k)
      - uns['pca']     : variance, variance_ratio (fraction), center/scale flags
    """
    pca_cfg = config.get("pca", {}) or {}
    center = bool(pca_cfg.get("center", True))
    scale = bool(pca_cfg.get("scale", False))

    engine = PCAEngine()
    result = engine.compute(
        adata.X,
        center=center,
        scale=scale,
        sample_names=adata.obs_names.tolist(),
        feature_names=adata.var_names.tolist(),
    )

    adata.obsm[OBSM_PCA] = result.scores
    adata.varm[VARM_PCS] = result.loadings
    adata.uns[UNS_PCA] = {
        UNS_PCA_VARIANCE: np.asarray(result.eigenvalues),
        UNS_PCA_VARIANCE_RATIO: np.asarray(result.variance_explained) / 100.0,
        UNS_PCA_PARAMS: {UNS_PCA_CENTER: np.bool_(center), UNS_PCA_SCALE: np.bool_(scale)},
    }
    return adata, result
