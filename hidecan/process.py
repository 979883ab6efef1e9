import numpy as np
import pandas as pd
from natsort import natsorted

DATA_TYPES = ["GWAS", "DE", "CAN", "CUSTOM"]


def gwas_data(df: pd.DataFrame) -> pd.DataFrame:
    """Validate a table of GWAS results.

    Required columns: chromosome, marker, position, and either score or padj.
    When only padj is given the score is computed as -log10(padj).

    Returns a copy with standardized columns, plus ``name`` (= marker),
    ``data_type`` and ``aes_type`` (both "GWAS").
    """
    df = _check_columns(df, ["chromosome", "marker", "position"], "GWAS")
    df = _add_score(df, "GWAS")
    df["position"] = _to_numeric(df["position"], "position", "GWAS")
    df["name"] = df["marker"].fillna("").astype(str)
    df["data_type"] = "GWAS"
    df["aes_type"] = "GWAS"
    return df


def de_data(df: pd.DataFrame) -> pd.DataFrame:
    """Validate a table of differential expression results.

    Required columns: chromosome, gene, start, end, log2FoldChange, and
    either score or padj. The gene position is the middle of [start, end].
    """
    df = _check_columns(df, ["chromosome", "gene", "start", "end", "log2FoldChange"], "DE")
    df = _add_score(df, "DE")
    df = _add_midpoint(df, "DE")
    df["log2FoldChange"] = _to_numeric(df["log2FoldChange"], "log2FoldChange", "DE")
    df["name"] = df["gene"].fillna("").astype(str)
    df["data_type"] = "DE"
    df["aes_type"] = "DE"
    return df


def can_data(df: pd.DataFrame) -> pd.DataFrame:
    """Validate a table of candidate genes (chromosome, gene, start, end, name)."""
    df = _check_columns(df, ["chromosome", "gene", "start", "end", "name"], "CAN")
    df = _add_midpoint(df, "CAN")
    df["name"] = df["name"].fillna("").astype(str)
    df["data_type"] = "CAN"
    df["aes_type"] = "CAN"
    return df


def custom_data(df: pd.DataFrame, aes_type: str | None = None) -> pd.DataFrame:
    """Validate a custom track (e.g. QTL mapping results, methylated regions).

    Required columns: chromosome, score, and either position or start + end.
    Optional columns: name (feature label), aes_type (aesthetic profile key).

    The aesthetic profile is taken from *aes_type* if given, else from the
    table's own ``aes_type`` column, else defaults to "custom". A table can
    only hold one profile: split it into several tables to style rows
    differently.
    """
    if isinstance(df, pd.DataFrame) and "position" in df.columns:
        df = _check_columns(df, ["chromosome", "position", "score"], "custom")
        df["position"] = _to_numeric(df["position"], "position", "custom")
    else:
        df = _check_columns(df, ["chromosome", "start", "end", "score"], "custom")
        df = _add_midpoint(df, "custom")
    df["score"] = _to_numeric(df["score"], "score", "custom")

    if aes_type is None and "aes_type" in df.columns:
        tags = df["aes_type"].dropna().astype(str).unique().tolist()
        if len(tags) > 1:
            raise ValueError(
                "A custom dataset must use a single aes_type, found: " + ", ".join(tags)
            )
        aes_type = tags[0] if tags else None
    df["aes_type"] = aes_type if aes_type is not None else "custom"

    if "name" in df.columns:
        df["name"] = df["name"].fillna("").astype(str)
    else:
        df["name"] = ""
    df["data_type"] = "CUSTOM"
    return df


def _check_columns(df: pd.DataFrame, required: list, label: str) -> pd.DataFrame:
    """Raise if any required column is missing; return a copy with string chromosomes."""
    if not isinstance(df, pd.DataFrame):
        raise TypeError(f"Input {label} data must be a DataFrame, got {type(df).__name__}")
    if df.empty:
        raise ValueError(f"Input {label} data is empty")
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(
            f"Input {label} data is missing column(s): {', '.join(missing)}"
        )
    df = df.copy()
    df["chromosome"] = df["chromosome"].astype(str)
    return df


def _to_numeric(values: pd.Series, column: str, label: str) -> pd.Series:
    try:
        return pd.to_numeric(values)
    except (ValueError, TypeError) as err:
        raise ValueError(f"Column '{column}' of {label} data must be numeric ({err})") from err


def _add_score(df: pd.DataFrame, label: str) -> pd.DataFrame:
    """Fill the score column from padj (-log10) if it is not already present."""
    if "score" in df.columns:
        df["score"] = _to_numeric(df["score"], "score", label)
        return df
    if "padj" not in df.columns:
        raise ValueError(f"Input {label} data must have either a 'score' or a 'padj' column")
    padj = _to_numeric(df["padj"], "padj", label)
    if ((padj <= 0) | (padj > 1)).any():
        raise ValueError(f"Column 'padj' of {label} data must be in the interval (0, 1]")
    df["score"] = -np.log10(padj)
    return df


def _add_midpoint(df: pd.DataFrame, label: str) -> pd.DataFrame:
    df["start"] = _to_numeric(df["start"], "start", label)
    df["end"] = _to_numeric(df["end"], "end", label)
    df["position"] = (df["start"] + df["end"]) / 2
    return df


def apply_threshold(df: pd.DataFrame, score_thr: float = 0, log2fc_thr: float = 0) -> pd.DataFrame:
    """Keep only the rows considered significant for their data type.

    GWAS and custom tracks: score >= score_thr.
    DE genes: score >= score_thr and |log2FoldChange| >= log2fc_thr.
    Candidate genes are always kept.
    """
    if df.empty:
        return df.copy()
    data_type = _data_type(df)
    if data_type == "CAN":
        return df.copy()
    keep = df["score"] >= score_thr
    if data_type == "DE":
        keep &= df["log2FoldChange"].abs() >= log2fc_thr
    return df.loc[keep].copy()


def _data_type(df: pd.DataFrame) -> str:
    if "data_type" not in df.columns:
        raise ValueError(
            "Data has not been validated: use gwas_data, de_data, can_data or custom_data first"
        )
    types = df["data_type"].unique().tolist()
    if len(types) > 1:
        raise ValueError(f"Data mixes several data types: {', '.join(types)}")
    return types[0]


def compute_chrom_length(dfs: list) -> pd.DataFrame:
    """Length of each chromosome, estimated as the largest coordinate in the data.

    Uses ``end`` as well as ``position`` where present, so that genes reaching
    the end of a chromosome are not clipped.

    Returns a dataframe with columns chromosome, length in natural sort order.
    """
    parts = []
    for df in dfs:
        cols = [c for c in ("position", "end") if c in df.columns]
        parts.append(
            pd.DataFrame({
                "chromosome": df["chromosome"],
                "length": df[cols].max(axis=1),
            })
        )
    if not parts:
        return pd.DataFrame({"chromosome": [], "length": []})

    lengths = pd.concat(parts, ignore_index=True).groupby("chromosome")["length"].max()
    order = natsorted(lengths.index.tolist())
    return pd.DataFrame({"chromosome": order, "length": lengths.loc[order].to_numpy()})


def as_named_list(x) -> list:
    """Normalise a dataset argument into a list of (name, DataFrame) pairs.

    Accepts None, a single DataFrame, a list/tuple of DataFrames, or a dict
    mapping dataset name -> DataFrame. Unnamed datasets get the name "".
    """
    if x is None:
        return []
    if isinstance(x, pd.DataFrame):
        return [("", x)]
    if isinstance(x, dict):
        return [(str(name), df) for name, df in x.items()]
    if isinstance(x, (list, tuple)):
        return [("", df) for df in x]
    raise TypeError(
        f"Expected a DataFrame, a list or a dict of DataFrames, got {type(x).__name__}"
    )


def make_track(df: pd.DataFrame, dataset: str = "") -> dict:
    """Bundle a validated table with the tags that identify its plot track.

    Returns a dict with keys dataset, data_type, aes_type and data. Tags are
    read before any thresholding so that a track emptied by its threshold
    still gets a row on the plot.
    """
    return {
        "dataset": dataset,
        "data_type": _data_type(df),
        "aes_type": str(df["aes_type"].iloc[0]),
        "data": df,
    }
