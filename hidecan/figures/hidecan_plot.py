"""HIDECAN genome plot: significant GWAS markers, DE genes, candidate genes
and custom tracks drawn along the chromosomes.

Layout
------
One facet panel per chromosome, each with its own x-axis (position in Mb).
Within a panel every dataset gets a horizontal track on a shared nominal
y-axis, ordered GWAS, DE, candidate genes, custom tracks, then in input
order. A track is made of:

  - a backbone rule spanning the chromosome (or the requested limits),
    coloured with the track's ``line_colour``;
  - one point per feature, using the track's ``point_shape`` and filled
    according to its ``fill_scale`` (or with ``line_colour`` if None);
  - optional feature labels (``show_name``), packed into up to three lanes
    around the track so that neighbouring labels do not overlap.

All rows for all tracks live in a single long dataframe attached to the top
level layer (required for faceting a layer chart); each layer picks its rows
with a filter on the ``layer`` column.

Public functions
----------------
hidecan_plot        – validate, threshold and plot lists of input tables.
create_hidecan_plot – plot tracks that were already validated and thresholded.
"""

from __future__ import annotations

import math

import altair as alt
import pandas as pd
from natsort import natsorted

from .. import process
from .base import LEGEND_POSITIONS, fill_encoding, hidecan_aes, merge_aes

_N_LANES = 3
_CHAR_W = 0.6              # approximate label glyph width, as a fraction of font size
_LABEL_GAP = 4             # px kept free between two labels in the same lane


# ── Track preparation ─────────────────────────────────────────────────────────

def _track_labels(tracks: list[dict], aes: dict) -> list[str]:
    """Y-axis label of every track; repeated labels get a numeric suffix."""
    labels: list[str] = []
    seen: dict[str, int] = {}
    for track in tracks:
        label = aes[track["aes_type"]]["y_label"]
        if track["dataset"]:
            label = f"{label} ({track['dataset']})"
        seen[label] = seen.get(label, 0) + 1
        if seen[label] > 1:
            label = f"{label} #{seen[label]}"
        labels.append(label)
    return labels


def _check_tracks(tracks: list[dict], aes: dict):
    for track in tracks:
        key = track["aes_type"]
        if key not in aes:
            raise ValueError(
                f"No aesthetics defined for aes_type '{key}'. "
                f"Known types: {', '.join(aes)}. Add it through custom_aes."
            )
        fill_scale = aes[key]["fill_scale"]
        if fill_scale is not None and fill_scale["field"] not in track["data"].columns:
            raise ValueError(
                f"fill_scale of '{key}' uses column '{fill_scale['field']}', "
                f"which is missing from the {track['data_type']} data"
                + (f" '{track['dataset']}'" if track["dataset"] else "")
            )


def _sort_tracks(tracks: list[dict]) -> list[dict]:
    """Stable sort by data type (GWAS, DE, CAN, custom)."""
    return sorted(tracks, key=lambda t: process.DATA_TYPES.index(t["data_type"]))


# ── Chromosome selection ──────────────────────────────────────────────────────

def _select_chroms(chrom_length: pd.DataFrame, chroms) -> list[str]:
    known = natsorted(chrom_length["chromosome"].astype(str).tolist())
    if chroms is None:
        return known
    if isinstance(chroms, str):
        chroms = [chroms]
    chroms = list(dict.fromkeys(str(c) for c in chroms))
    if not chroms:
        raise ValueError("chroms must name at least one chromosome")
    unknown = [c for c in chroms if c not in known]
    if unknown:
        raise ValueError(
            f"Unknown chromosome(s) in chroms: {', '.join(unknown)}. "
            f"Available: {', '.join(known)}"
        )
    return chroms


def _resolve_limits(chrom_limits, chrom_order: list[str], lengths: dict) -> dict:
    """Return chromosome -> (start, end) in bp for every plotted chromosome.

    *chrom_limits* is either None (whole chromosomes), a single (start, end)
    pair applied to all chromosomes, or a dict chromosome -> (start, end).
    """
    limits = {chrom: (0, lengths[chrom]) for chrom in chrom_order}
    if chrom_limits is None:
        return limits

    if isinstance(chrom_limits, dict):
        unknown = [str(c) for c in chrom_limits if str(c) not in limits]
        if unknown:
            raise ValueError(
                f"chrom_limits refers to chromosome(s) not plotted: {', '.join(unknown)}"
            )
        requested = {str(c): lim for c, lim in chrom_limits.items()}
    else:
        requested = {chrom: chrom_limits for chrom in chrom_order}

    for chrom, lim in requested.items():
        if len(lim) != 2:
            raise ValueError(f"chrom_limits for {chrom} must be a (start, end) pair")
        start, end = float(lim[0]), float(lim[1])
        if start >= end:
            raise ValueError(
                f"chrom_limits for {chrom} must have start < end, got ({start:g}, {end:g})"
            )
        limits[chrom] = (start, end)
    return limits


# ── Label packing ─────────────────────────────────────────────────────────────

def _assign_label_lanes(centers_px: list[float], widths_px: list[float], n_lanes: int = _N_LANES) -> list[int]:
    """Greedy left-to-right lane packing of labels.

    Each label goes to the first lane whose last label ends before this one
    starts. Labels that fit no lane get -1 (not drawn).
    """
    lanes = [-1] * len(centers_px)
    last_right = [-math.inf] * n_lanes
    for idx in sorted(range(len(centers_px)), key=lambda i: centers_px[i]):
        left = centers_px[idx] - widths_px[idx] / 2
        for lane in range(n_lanes):
            if left >= last_right[lane] + _LABEL_GAP:
                lanes[idx] = lane
                last_right[lane] = centers_px[idx] + widths_px[idx] / 2
                break
    return lanes


def _lane_offsets(point_size: float, label_size: float, label_padding: float) -> list[float]:
    """Vertical pixel offset (dy) of every label lane relative to the track."""
    offset = math.sqrt(point_size) / 2 + label_padding + label_size / 2
    return [-offset, offset, -(offset + label_size + label_padding)]


# ── Plot dataframe ────────────────────────────────────────────────────────────

def _build_plot_df(
    tracks: list[dict],
    labels: list[str],
    aes: dict,
    chrom_order: list[str],
    limits: dict,
    width: int,
    label_size: float,
) -> pd.DataFrame:
    """Long dataframe with one row per backbone, point and label."""
    parts = []
    for idx, (track, label) in enumerate(zip(tracks, labels)):
        track_aes = aes[track["aes_type"]]
        data = track["data"]

        parts.append(pd.DataFrame({
            "layer": f"{idx}-line",
            "track": label,
            "chromosome": chrom_order,
            "start_mb": [limits[c][0] / 1e6 for c in chrom_order],
            "end_mb": [limits[c][1] / 1e6 for c in chrom_order],
        }))

        keep_cols = ["chromosome", "position", "name"]
        for col in ("score", "log2FoldChange"):
            if col in data.columns:
                keep_cols.append(col)
        fill_scale = track_aes["fill_scale"]
        if fill_scale is not None and fill_scale["field"] not in keep_cols:
            keep_cols.append(fill_scale["field"])

        points = data.loc[data["chromosome"].isin(chrom_order), keep_cols].copy()
        in_limits = [
            limits[chrom][0] <= pos <= limits[chrom][1]
            for chrom, pos in zip(points["chromosome"], points["position"])
        ]
        points = points.loc[in_limits].reset_index(drop=True)
        points["layer"] = f"{idx}-point"
        points["track"] = label
        points["position_mb"] = points["position"] / 1e6
        parts.append(points)

        if track_aes["show_name"]:
            named = points.loc[points["name"] != ""].copy()
            named["lane"] = -1
            for chrom, group in named.groupby("chromosome"):
                start, end = limits[chrom]
                centers = ((group["position"] - start) / (end - start) * width).tolist()
                widths = (group["name"].str.len() * label_size * _CHAR_W).tolist()
                named.loc[group.index, "lane"] = _assign_label_lanes(centers, widths)
            named = named.loc[named["lane"] >= 0]
            named["layer"] = [f"{idx}-label-{lane}" for lane in named["lane"]]
            parts.append(named.drop(columns="lane"))

    return pd.concat(parts, ignore_index=True)


# ── Chart assembly ────────────────────────────────────────────────────────────

def _make_track_layers(
    idx: int,
    track: dict,
    track_aes: dict,
    x_axis: dict,
    y: alt.Y,
    point_size: float,
    label_size: float,
    lane_dy: list[float],
    legend_position: str,
) -> list[alt.Chart]:
    """Backbone, points and label layers of one track (data comes from the parent)."""
    layers: list[alt.Chart] = []

    layers.append(
        alt.Chart()
        .mark_rule(color=track_aes["line_colour"], strokeWidth=2)
        .encode(x=alt.X("start_mb:Q", **x_axis), x2="end_mb:Q", y=y)
        .transform_filter(alt.FieldEqualPredicate(field="layer", equal=f"{idx}-line"))
    )

    fill_scale = track_aes["fill_scale"]
    if fill_scale is None:
        fill = alt.value(track_aes["line_colour"])
    else:
        fill = fill_encoding(fill_scale, legend_position)

    tooltip = [
        alt.Tooltip("track:N", title="Track"),
        alt.Tooltip("name:N", title="Name"),
        alt.Tooltip("chromosome:N", title="Chromosome"),
        alt.Tooltip("position:Q", title="Position (bp)", format=",.0f"),
    ]
    if track["data_type"] != "CAN":
        tooltip.append(alt.Tooltip("score:Q", title="Score", format=".2f"))
    if track["data_type"] == "DE":
        tooltip.append(alt.Tooltip("log2FoldChange:Q", title="log2(fold-change)", format=".2f"))

    layers.append(
        alt.Chart()
        .mark_point(
            shape=track_aes["point_shape"],
            filled=True,
            size=point_size,
            opacity=1,
            stroke="black",
            strokeWidth=0.5,
        )
        .encode(
            x=alt.X("position_mb:Q", **x_axis),
            y=y,
            fill=fill,
            tooltip=tooltip,
        )
        .transform_filter(alt.FieldEqualPredicate(field="layer", equal=f"{idx}-point"))
    )

    if track_aes["show_name"]:
        for lane, dy in enumerate(lane_dy):
            layers.append(
                alt.Chart()
                .mark_text(fontSize=label_size, dy=dy, baseline="middle", align="center")
                .encode(x=alt.X("position_mb:Q", **x_axis), y=y, text="name:N")
                .transform_filter(
                    alt.FieldEqualPredicate(field="layer", equal=f"{idx}-label-{lane}")
                )
            )

    return layers


def create_hidecan_plot(
    x: list[dict],
    chrom_length: pd.DataFrame,
    colour_genes_by_score: bool = True,
    remove_empty_chrom: bool = False,
    chroms=None,
    chrom_limits=None,
    title: str | None = None,
    subtitle: str | None = None,
    n_rows: int | None = None,
    n_cols: int = 2,
    legend_position: str = "bottom",
    point_size: float = 60,
    label_size: float = 11,
    label_padding: float = 4,
    custom_aes: dict | None = None,
    width: int = 400,
    track_height: int = 30,
) -> alt.FacetChart:
    """Draw the HIDECAN plot from tracks that are already thresholded.

    Args:
        x: list of tracks as returned by ``process.make_track`` (dicts with
            dataset, data_type, aes_type and data keys), data already
            filtered with ``process.apply_threshold``.
        chrom_length: dataframe with chromosome and length (bp) columns,
            usually ``process.compute_chrom_length`` on the unfiltered data.
        colour_genes_by_score: colour DE genes by score (True) or by
            log2(fold-change) (False). Ignored if custom_aes sets the DE
            fill_scale.
        remove_empty_chrom: drop chromosomes with no point on any track.
        chroms: chromosomes to plot, in panel order (default: all, natural order).
        chrom_limits: (start, end) in bp for all chromosomes, or a dict
            chromosome -> (start, end). Points outside the limits are dropped.
        title / subtitle: plot title and subtitle.
        n_rows / n_cols: facet grid shape; n_rows takes precedence.
        legend_position: one of bottom, top, left, right, none.
        point_size: point area in px².
        label_size: font size of feature labels.
        label_padding: px between a point and its label.
        custom_aes: aesthetic overrides, merged over ``hidecan_aes()``.
        width: width of each chromosome panel in px.
        track_height: height of each track in px.
    """
    alt.data_transformers.disable_max_rows()

    if legend_position not in LEGEND_POSITIONS:
        raise ValueError(
            f"legend_position must be one of {', '.join(LEGEND_POSITIONS)}, got '{legend_position}'"
        )
    if not x:
        raise ValueError("No data to plot: provide at least one dataset")

    aes = merge_aes(custom_aes, hidecan_aes(colour_genes_by_score))
    tracks = _sort_tracks(x)
    _check_tracks(tracks, aes)
    labels = _track_labels(tracks, aes)

    lengths = dict(zip(chrom_length["chromosome"].astype(str), chrom_length["length"]))
    chrom_order = _select_chroms(chrom_length, chroms)
    limits = _resolve_limits(chrom_limits, chrom_order, lengths)

    plot_df = _build_plot_df(tracks, labels, aes, chrom_order, limits, width, label_size)

    if remove_empty_chrom:
        points = plot_df.loc[plot_df["layer"].str.endswith("-point")]
        has_data = set(points["chromosome"])
        chrom_order = [c for c in chrom_order if c in has_data]
        if not chrom_order:
            raise ValueError("No chromosome has any data left to plot")
        plot_df = plot_df.loc[plot_df["chromosome"].isin(chrom_order)].reset_index(drop=True)

    if n_rows is not None:
        if n_rows < 1:
            raise ValueError("n_rows must be a positive integer")
        n_cols = math.ceil(len(chrom_order) / n_rows)
    if n_cols < 1:
        raise ValueError("n_cols must be a positive integer")

    x_axis = {
        "title": "Position (Mb)",
        "scale": alt.Scale(zero=False, nice=False),
        "axis": alt.Axis(titleFontSize=14, labelFontSize=12),
    }
    y = alt.Y(
        "track:N",
        sort=labels,
        title=None,
        axis=alt.Axis(labelFontSize=12, labelLimit=300, ticks=False, domain=False),
    )
    lane_dy = _lane_offsets(point_size, label_size, label_padding)

    layers = []
    for idx, track in enumerate(tracks):
        layers.extend(_make_track_layers(
            idx, track, aes[track["aes_type"]], x_axis, y,
            point_size, label_size, lane_dy, legend_position,
        ))

    chart = (
        alt.layer(*layers, data=plot_df)
        .resolve_scale(fill="independent")
        .properties(width=width, height=track_height * len(tracks))
        .facet(
            facet=alt.Facet(
                "chromosome:N",
                sort=chrom_order,
                title=None,
                header=alt.Header(labelFontSize=14, labelFontWeight="bold"),
            ),
            columns=n_cols,
        )
        .resolve_scale(x="independent")
    )
    if title is not None or subtitle is not None:
        title_kwargs = {"text": title or "", "fontSize": 18}
        if subtitle is not None:
            title_kwargs["subtitle"] = subtitle
        chart = chart.properties(title=alt.TitleParams(**title_kwargs))

    return chart.configure_axis(grid=False).configure_view(stroke=None)


def _custom_thresholds(score_thr_custom, aes_type: str) -> float:
    if isinstance(score_thr_custom, dict):
        return score_thr_custom.get(aes_type, 0)
    return score_thr_custom


def hidecan_plot(
    gwas_list=None,
    de_list=None,
    can_list=None,
    custom_list=None,
    score_thr_gwas: float = 4,
    score_thr_de: float = 2,
    log2fc_thr: float = 1,
    score_thr_custom=0,
    **kwargs,
) -> alt.FacetChart:
    """Create a HIDECAN plot from GWAS, DE, candidate gene and custom tables.

    Each ``*_list`` argument takes a single DataFrame, a list of DataFrames,
    or a dict mapping dataset name -> DataFrame (names appear in the track
    labels). Tables are validated, chromosome lengths are computed from the
    full (unfiltered) data, then significant rows are kept:

      - GWAS markers with score >= score_thr_gwas;
      - DE genes with score >= score_thr_de and |log2FoldChange| >= log2fc_thr;
      - all candidate genes;
      - custom features with score >= score_thr_custom, which is either a
        single number or a dict aes_type -> threshold (missing types: 0).

    Remaining keyword arguments are passed to ``create_hidecan_plot``.
    """
    tracks = []
    for validate, datasets in (
        (process.gwas_data, gwas_list),
        (process.de_data, de_list),
        (process.can_data, can_list),
        (process.custom_data, custom_list),
    ):
        for name, df in process.as_named_list(datasets):
            tracks.append(process.make_track(validate(df), name))

    if not tracks:
        raise ValueError(
            "At least one of gwas_list, de_list, can_list or custom_list must be provided"
        )

    chrom_length = process.compute_chrom_length([t["data"] for t in tracks])

    for track in tracks:
        if track["data_type"] == "GWAS":
            track["data"] = process.apply_threshold(track["data"], score_thr_gwas)
        elif track["data_type"] == "DE":
            track["data"] = process.apply_threshold(track["data"], score_thr_de, log2fc_thr)
        elif track["data_type"] == "CUSTOM":
            thr = _custom_thresholds(score_thr_custom, track["aes_type"])
            track["data"] = process.apply_threshold(track["data"], thr)

    return create_hidecan_plot(tracks, chrom_length, **kwargs)
