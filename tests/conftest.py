import numpy as np
import pandas as pd
import pytest


def assert_close_up_to_sign(a: np.ndarray, b: np.ndarray, rtol: float = 1e-9, atol: float = 1e-12):
    """Compare score matrices column by column, allowing one sign flip per component."""
    assert a.shape == b.shape
    for k in range(a.shape[1]):
        sign = 1.0 if np.dot(a[:, k], b[:, k]) >= 0 else -1.0
        np.testing.assert_allclose(a[:, k], sign * b[:, k], rtol=rtol, atol=atol)


@pytest.fixture
def unit_matrix():
    return np.array([[1, 0, 0],
                     [0, 1, 0],
                     [0, 0, 1],
                     [1, 1, 1]], dtype=float)


@pytest.fixture
def random_matrix():
    rng = np.random.default_rng(7)
    return rng.normal(loc=20.0, scale=2.0, size=(8, 5))


@pytest.fixture
def annotations():
    return pd.DataFrame({
        "Condition": ["A", "A", "B", "B"],
        "Replicate": [1, 2, 1, 2],
        "Infected": ["No", "No", "Yes", "Yes"],
        "Time": ["2h", "2h", "24h", "24h"],
    })


@pytest.fixture
def input_files(tmp_path):
    """Proteins x samples TSV + positional annotation CSV."""
    rng = np.random.default_rng(11)
    samples = ["S1", "S2", "S3", "S4"]
    values = rng.normal(loc=25.0, scale=1.5, size=(6, len(samples)))
    data = pd.DataFrame(values, columns=samples)
    data.insert(0, "Protein IDs", [f"P{i:05d}" for i in range(6)])
    data.insert(0, "Gene names", [f"GENE{i}" for i in range(6)])
    data_path = tmp_path / "proteomics.tsv"
    data.to_csv(data_path, sep="\t", index=False)

    ann = pd.DataFrame({
        "Sample": samples,
        "Condition": ["Mock", "Mock", "Virus", "Virus"],
        "Replicate": [1, 2, 1, 2],
        "Infected": ["No", "No", "Yes", "Yes"],
        "Time": ["2h", "24h", "2h", "24h"],
    })
    ann_path = tmp_path / "annotations.csv"
    ann.to_csv(ann_path, index=False)
    return {"data": data_path, "annotations": ann_path, "values": values, "samples": samples}


@pytest.fixture
def pipeline_config(input_files, tmp_path):
    return {
        "dataset": {
            "input_file": str(input_files["data"]),
            "annotation_file": str(input_files["annotations"]),
            "id_columns": ["Gene names", "Protein IDs"],
        },
        "pca": {"center": True, "scale": False, "pc_x_axis": 1, "pc_y_axis": 2},
        "plot": {"path_plot": str(tmp_path / "out" / "PCA.pdf")},
        "exports": {
            "path_table": str(tmp_path / "out" / "table.tsv"),
            "path_variance": str(tmp_path / "out" / "variance.tsv"),
            "path_h5ad": str(tmp_path / "out" / "pca.h5ad"),
        },
    }
