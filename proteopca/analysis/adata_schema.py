"""
Centralized AnnData key schema for ProteoPCA.

This module is intentionally small and declarative: it defines the canonical
keys used in .obs / .obsm / .varm / .uns by the loader and the PCA pipeline.
The PCA layout mirrors scanpy's (`X_pca`, `PCs`, `uns['pca']`).
"""

# -----------------------
# .obs (sample annotations)
# -----------------------
OBS_CONDITION = "Condition"
OBS_REPLICATE = "Replicate"

# -----------------------
# .obsm / .varm (PCA outputs)
# -----------------------
OBSM_PCA = "X_pca"
VARM_PCS = "PCs"

# -----------------------
# .uns (analysis metadata)
# -----------------------
UNS_PCA = "pca"
UNS_PCA_VARIANCE = "variance"
UNS_PCA_VARIANCE_RATIO = "variance_ratio"
UNS_PCA_PARAMS = "params"
UNS_PCA_CENTER = "center"
UNS_PCA_SCALE = "scale"
UNS_ID_COLUMNS = "id_columns"
UNS_PROTEOPCA = "proteopca"
