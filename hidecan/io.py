from pathlib import Path

import altair as alt
import pandas as pd
import yaml

from .figures.base import check_aes_record

_EXAMPLE_DIR = Path(__file__).parent / "example_data"

_EXAMPLE_FILES = {
    "GWAS": "gwas_data.tsv",
    "DE": "de_data.tsv",
    "CAN": "can_data.tsv",
}


def read_table(path: Path) -> pd.DataFrame:
    """Read a CSV, tab-delimited (.tsv/.txt) or Excel file based on extension."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Input file not found: {path}")
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return pd.read_csv(path)
    if suffix in (".tsv", ".txt"):
        return pd.read_csv(path, sep="\t")
    if suffix in (".xlsx", ".xls"):
        return pd.read_excel(path)
    raise ValueError(f"Unsupported file type '{suffix}' for {path.name} (use csv, tsv, txt or xlsx)")


def get_example_data() -> dict:
    """Load the example datasets shipped with the package.

    A small synthetic potato-like genome (chromosomes ST4.03ch01 to
    ST4.03ch12) with GWAS results, DE results and a list of candidate genes.

    Returns a dict with keys "GWAS", "DE" and "CAN", each a raw DataFrame
    ready to be passed to ``hidecan_plot``.
    """
    return {
        key: pd.read_csv(_EXAMPLE_DIR / filename, sep="\t")
        for key, filename in _EXAMPLE_FILES.items()
    }


def load_aes(path: Path) -> dict:
    """Read aesthetic overrides from a YAML file.

    The file maps aes_type tags to (partial) records, e.g.::

        QTL:
          y_label: QTL peaks
          point_shape: triangle-up
          line_colour: "#B3B3B3"
          fill_scale:
            field: score
            title: QTL LOD
            scheme: oranges
        CAN:
          show_name: false

    Records are validated here so that errors point at the file.
    """
    path = Path(path)
    with open(path) as fh:
        try:
            aes = yaml.safe_load(fh)
        except yaml.YAMLError as err:
            raise ValueError(f"{path.name}: invalid YAML ({err})") from err
    if aes is None:
        return {}
    if not isinstance(aes, dict):
        raise ValueError(f"{path.name}: expected a mapping of aes_type -> aesthetics")
    for key, record in aes.items():
        check_aes_record(str(key), record)
    return {str(key): record for key, record in aes.items()}


def save_figure(chart: alt.TopLevelMixin, path: Path):
    """Save an Altair chart. Format is inferred from the file extension.

    HTML is fully self-contained and interactive; JSON is the Vega-Lite spec.
    PNG and SVG require vl-convert-python to be installed.
    """
    chart.save(str(path))
    print(f"  Saved: {Path(path).name}")
