# Shared constants and aesthetic profiles used by the HIDECAN plot.
# Order of AES_FIELDS controls the order in which records are validated.

import copy

import altair as alt

AES_FIELDS = ["y_label", "fill_scale", "line_colour", "point_shape", "show_name"]

FILL_SCALE_FIELDS = ["field", "title", "scheme", "range", "mid", "reverse"]

POINT_SHAPES = [
    "circle",
    "square",
    "diamond",
    "cross",
    "triangle-up",
    "triangle-down",
    "triangle-left",
    "triangle-right",
]

LEGEND_POSITIONS = ["bottom", "top", "left", "right", "none"]

_DEFAULT_AES = {
    "GWAS": {
        "y_label": "GWAS peaks",
        "fill_scale": {
            "field": "score",
            "title": "GWAS -log10(p-value)",
            "scheme": "viridis",
        },
        "line_colour": "#66C2A5",  # green  – Set2
        "point_shape": "circle",
        "show_name": False,
    },
    "DE": {
        "y_label": "DE genes",
        "fill_scale": {
            "field": "score",
            "title": "DE -log10(p-value)",
            "scheme": "plasma",
        },
        "line_colour": "#FC8D62",  # orange – Set2
        "point_shape": "circle",
        "show_name": False,
    },
    "CAN": {
        "y_label": "Candidate genes",
        "fill_scale": None,
        "line_colour": "#8DA0CB",  # blue   – Set2
        "point_shape": "diamond",
        "show_name": True,
    },
    "custom": {
        "y_label": "Custom track",
        "fill_scale": {
            "field": "score",
            "title": "Score",
            "scheme": "greens",
        },
        "line_colour": "#E78AC3",  # pink   – Set2
        "point_shape": "square",
        "show_name": False,
    },
}

# DE genes coloured by fold-change instead of significance
_DE_LOG2FC_FILL = {
    "field": "log2FoldChange",
    "title": "DE log2(fold-change)",
    "range": ["#0000FF", "#F7F7F7", "#FF0000"],
    "mid": 0,
}


def hidecan_aes(colour_genes_by_score: bool = True) -> dict:
    """Return a fresh copy of the default aesthetic profiles.

    Keys are aes_type tags ("GWAS", "DE", "CAN", "custom"); values are records
    with y_label, fill_scale, line_colour, point_shape and show_name. The copy
    can be edited freely and passed back as ``custom_aes``.
    """
    aes = copy.deepcopy(_DEFAULT_AES)
    if not colour_genes_by_score:
        aes["DE"]["fill_scale"] = copy.deepcopy(_DE_LOG2FC_FILL)
    return aes


def check_aes_record(key: str, record: dict):
    """Validate a (possibly partial) aesthetic record; raise ValueError if invalid."""
    if not isinstance(record, dict):
        raise ValueError(f"Aesthetics for '{key}' must be a dict, got {type(record).__name__}")

    unknown = [f for f in record if f not in AES_FIELDS]
    if unknown:
        raise ValueError(
            f"Unknown aesthetic field(s) for '{key}': {', '.join(unknown)}. "
            f"Valid fields are: {', '.join(AES_FIELDS)}"
        )
    if "y_label" in record and not isinstance(record["y_label"], str):
        raise ValueError(f"y_label for '{key}' must be a string")
    if "line_colour" in record and not isinstance(record["line_colour"], str):
        raise ValueError(f"line_colour for '{key}' must be a colour string")
    if "point_shape" in record and record["point_shape"] not in POINT_SHAPES:
        raise ValueError(
            f"Invalid point_shape '{record['point_shape']}' for '{key}'. "
            f"Valid shapes are: {', '.join(POINT_SHAPES)}"
        )
    if "show_name" in record and not isinstance(record["show_name"], bool):
        raise ValueError(f"show_name for '{key}' must be True or False")
    if "fill_scale" in record:
        _check_fill_scale(key, record["fill_scale"])


def _check_fill_scale(key: str, fill_scale):
    if fill_scale is None:
        return
    if not isinstance(fill_scale, dict):
        raise ValueError(f"fill_scale for '{key}' must be a dict or None")
    unknown = [f for f in fill_scale if f not in FILL_SCALE_FIELDS]
    if unknown:
        raise ValueError(
            f"Unknown fill_scale field(s) for '{key}': {', '.join(unknown)}"
        )
    if not fill_scale.get("field"):
        raise ValueError(f"fill_scale for '{key}' must name the column to colour by ('field')")
    if fill_scale.get("scheme") is not None and fill_scale.get("range") is not None:
        raise ValueError(f"fill_scale for '{key}' cannot set both 'scheme' and 'range'")


def merge_aes(custom_aes: dict | None, base: dict | None = None) -> dict:
    """Merge user overrides over the aesthetic profiles in *base*.

    Overrides for an existing key replace only the fields they name. New keys
    (custom data types) start from the "custom" profile, so an override such
    as ``{"QTL": {"y_label": "QTL"}}`` is enough to declare a new track style.
    """
    aes = copy.deepcopy(base) if base is not None else hidecan_aes()
    if not custom_aes:
        return aes

    for key, record in custom_aes.items():
        check_aes_record(key, record)
        start = aes.get(key, aes.get("custom", _DEFAULT_AES["custom"]))
        merged = copy.deepcopy(start)
        merged.update(copy.deepcopy(record))
        aes[key] = merged
    return aes


def fill_encoding(fill_scale: dict, legend_position: str) -> alt.Fill:
    """Build the Altair fill channel described by a fill_scale record."""
    field = fill_scale["field"]
    scale_kwargs = {}
    if fill_scale.get("scheme") is not None:
        scale_kwargs["scheme"] = fill_scale["scheme"]
    if fill_scale.get("range") is not None:
        scale_kwargs["range"] = list(fill_scale["range"])
    if fill_scale.get("mid") is not None:
        scale_kwargs["domainMid"] = fill_scale["mid"]
    if fill_scale.get("reverse"):
        scale_kwargs["reverse"] = True

    if legend_position == "none":
        legend = None
    else:
        horizontal = legend_position in ("bottom", "top")
        legend = alt.Legend(
            title=fill_scale.get("title") or field,
            orient=legend_position,
            direction="horizontal" if horizontal else "vertical",
            titleFontSize=12,
            labelFontSize=11,
        )
    return alt.Fill(f"{field}:Q", scale=alt.Scale(**scale_kwargs), legend=legend)
