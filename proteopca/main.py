from proteopca.workflow.dataset import Dataset
from proteopca.analysis.adata_schema import OBS_CONDITION, OBS_REPLICATE
from proteopca.analysis.pca_pipeline import run_pca_pipeline
from proteopca.analysis.annotationmerger import AnnotationMerger
from proteopca.analysis.pcaengine import format_variance
from proteopca.export.pca_plotter import PCAPlotter
from proteopca.export.pca_exporter import PCAExporter
from proteopca.utils.utils import log_time


@log_time("ProteoPCA Pipeline")
def run_pipeline(config: dict) -> dict:
    dataset = Dataset(**config)
    adata = dataset.get_anndata()
    adata, result = run_pca_pipeline(adata, config)

    pca_config = config.get("pca", {}) or {}
    axis_x = pca_config.get("pc_x_axis", 1)
    axis_y = pca_config.get("pc_y_axis", 2)

    merger = AnnotationMerger(
        condition_column=pca_config.get("condition_column", OBS_CONDITION),
        replicate_column=pca_config.get("replicate_column", OBS_REPLICATE),
        sample_key=dataset.sample_key,
    )
    plot_df = merger.merge(result, dataset.annotations, axis_x=axis_x, axis_y=axis_y)

    outputs = {"plot_table": plot_df, "result": result}

    plot_config = config.get("plot", {}) or {}
    if plot_config.get("export_plot", True):
        plotter = PCAPlotter(plot_config)
        outputs["path_plot"] = plotter.plot(plot_df,
                                            format_variance(result),
                                            axis_x=axis_x,
                                            axis_y=axis_y,
                                            n_proteins=dataset.n_proteins)

    export_config = config.get("exports", {}) or {}
    exporter = PCAExporter(result, plot_df, adata)
    if export_config.get("path_table"):
        outputs["path_table"] = exporter.export_table(export_config["path_table"])
    if export_config.get("path_variance"):
        outputs["path_variance"] = exporter.export_variance(export_config["path_variance"])
    if export_config.get("path_h5ad"):
        outputs["path_h5ad"] = exporter.export_adata(export_config["path_h5ad"])

    return outputs
