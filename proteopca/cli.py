import typer
from pathlib import Path
import yaml
from importlib.resources import files

from proteopca.analysis.errors import ProteoPCAError
from proteopca.utils.utils import logger

app = typer.Typer(help="ProteoPCA: PCA of proteomics abundance tables")

@app.command()
def init(path: Path = typer.Argument(Path("proteopca_config.yaml"))):
    """
    Generate a config scaffold (basic template) at given path.
    """
    default_yaml = files("proteopca.templates").joinpath("user_template.yaml").read_text()

    path.write_text(default_yaml)
    typer.echo(f"Template written to {path}")

@app.command()
def run(
    config: Path = typer.Option(..., help="Path to YAML config file"),
):
    """
    Run the ProteoPCA pipeline from a YAML config.
    """
    from proteopca.utils.cli_setup import configure_cli_display
    from proteopca.main import run_pipeline

    configure_cli_display()

    try:
        config_data = yaml.safe_load(config.read_text()) or {}
        run_pipeline(config=config_data)
    except (ProteoPCAError, ValueError, FileNotFoundError) as exc:
        logger.error(f"{type(exc).__name__}: {exc}")
        raise typer.Exit(code=1)

if __name__ == "__main__":
    app()
