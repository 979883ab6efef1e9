"""Tests for the HIDECAN chart construction.

Charts are checked through their Vega-Lite dict (``to_dict`` also validates
it against the Vega-Lite schema).
"""

from __future__ import annotations

import altair as alt
import pandas as pd
import pytest
from natsort import natsorted

from hidecan import io, process
from hidecan.figures import hidecan_plot as hp


def _records(spec: dict) -> pd.DataFrame:
    """The single dataset attached to the chart, as a dataframe."""
    assert len(spec["datasets"]) == 1
    return pd.DataFrame(next(iter(spec["datasets"].values())))


def _layer(spec: dict, layer_id: str) -> dict:
    for layer in spec["spec"]["layer"]:
        if layer["transform"][0]["filter"]["equal"] == layer_id:
            return layer
    raise KeyError(layer_id)


def _track_order(spec: dict) -> list:
    return spec["spec"]["layer"][0]["encoding"]["y"]["sort"]


@pytest.fixture
def example_spec() -> dict:
    data = io.get_example_data()
    chart = hp.hidecan_plot(
        gwas_list=data["GWAS"],
        de_list=data["DE"],
        can_list=data["CAN"],
    )
    return chart.to_dict()


class TestExamplePlot:
    def test_returns_facet_chart(self) -> None:
        data = io.get_example_data()
        chart = hp.hidecan_plot(gwas_list=data["GWAS"])
        assert isinstance(chart, alt.FacetChart)

    def test_one_panel_per_chromosome(self, example_spec: dict) -> None:
        expected = [f"ST4.03ch{i:02d}" for i in range(1, 13)]
        assert example_spec["facet"]["field"] == "chromosome"
        assert example_spec["facet"]["sort"] == expected
        assert example_spec["columns"] == 2
        assert example_spec["resolve"]["scale"]["x"] == "independent"

    def test_track_order(self, example_spec: dict) -> None:
        assert _track_order(example_spec) == ["GWAS peaks", "DE genes", "Candidate genes"]

    def test_default_thresholds(self, example_spec: dict) -> None:
        data = io.get_example_data()
        records = _records(example_spec)

        gwas_points = records.loc[records["layer"] == "0-point"]
        assert (gwas_points["score"] >= 4).all()
        assert len(gwas_points) == int((data["GWAS"]["score"] >= 4).sum())

        de = process.de_data(data["DE"])
        n_de = int(((de["score"] >= 2) & (de["log2FoldChange"].abs() >= 1)).sum())
        assert len(records.loc[records["layer"] == "1-point"]) == n_de

    def test_candidate_genes_labelled(self, example_spec: dict) -> None:
        records = _records(example_spec)
        labels = records.loc[records["layer"].str.startswith("2-label")]
        assert set(labels["name"]) <= set(io.get_example_data()["CAN"]["name"])
        assert not labels.empty
        text_layer = _layer(example_spec, "2-label-0")
        assert text_layer["mark"]["type"] == "text"
        assert text_layer["encoding"]["text"]["field"] == "name"

    def test_point_styles(self, example_spec: dict) -> None:
        gwas = _layer(example_spec, "0-point")
        assert gwas["mark"]["shape"] == "circle"
        assert gwas["encoding"]["fill"]["field"] == "score"
        assert gwas["encoding"]["fill"]["scale"]["scheme"] == "viridis"

        can = _layer(example_spec, "2-point")
        assert can["mark"]["shape"] == "diamond"
        assert can["encoding"]["fill"] == {"value": "#8DA0CB"}

    def test_backbone_spans_chromosome(self, example_spec: dict) -> None:
        records = _records(example_spec)
        lines = records.loc[records["layer"] == "0-line"]
        assert len(lines) == 12
        assert (lines["start_mb"] == 0).all()
        line_layer = _layer(example_spec, "0-line")
        assert line_layer["mark"]["color"] == "#66C2A5"

    def test_independent_fill_legends(self, example_spec: dict) -> None:
        assert example_spec["spec"]["resolve"]["scale"]["fill"] == "independent"


class TestCustomTracks:
    def test_custom_aes_type(self, gwas_df: pd.DataFrame, qtl_df: pd.DataFrame) -> None:
        chart = hp.hidecan_plot(
            gwas_list=gwas_df,
            custom_list={"Flowering": qtl_df},
            custom_aes={
                "QTL": {
                    "y_label": "QTL",
                    "point_shape": "triangle-up",
                    "line_colour": "#B3B3B3",
                    "show_name": True,
                },
            },
        )
        spec = chart.to_dict()
        assert _track_order(spec) == ["GWAS peaks", "QTL (Flowering)"]
        qtl = _layer(spec, "1-point")
        assert qtl["mark"]["shape"] == "triangle-up"
        assert qtl["encoding"]["fill"]["field"] == "score"
        assert _layer(spec, "1-line")["mark"]["color"] == "#B3B3B3"
        records = _records(spec)
        assert set(records.loc[records["layer"].str.startswith("1-label"), "name"]) == {
            "qFlw1", "qFlw2", "qFlw10",
        }

    def test_unknown_aes_type(self, qtl_df: pd.DataFrame) -> None:
        with pytest.raises(ValueError, match="No aesthetics defined for aes_type 'QTL'"):
            hp.hidecan_plot(custom_list=qtl_df)

    def test_default_custom_profile(self, qtl_df: pd.DataFrame) -> None:
        spec = hp.hidecan_plot(custom_list=qtl_df.drop(columns="aes_type")).to_dict()
        assert _track_order(spec) == ["Custom track"]
        assert _layer(spec, "0-point")["mark"]["shape"] == "square"

    def test_fill_column_must_exist(self, qtl_df: pd.DataFrame) -> None:
        aes = {"QTL": {"fill_scale": {"field": "lod", "scheme": "oranges"}}}
        with pytest.raises(ValueError, match="'lod'"):
            hp.hidecan_plot(custom_list=qtl_df, custom_aes=aes)

    def test_fill_by_extra_column(self, qtl_df: pd.DataFrame) -> None:
        aes = {"QTL": {"fill_scale": {"field": "lod", "scheme": "oranges"}}}
        spec = hp.hidecan_plot(
            custom_list=qtl_df.assign(lod=[3.1, 4.2, 5.3]), custom_aes=aes
        ).to_dict()
        records = _records(spec)
        assert records.loc[records["layer"] == "0-point", "lod"].tolist() == [3.1, 4.2, 5.3]
        assert _layer(spec, "0-point")["encoding"]["fill"]["field"] == "lod"

    def test_threshold_per_aes_type(self, qtl_df: pd.DataFrame) -> None:
        methyl = qtl_df.assign(aes_type="custom", score=[0.2, 0.9, 0.5])
        spec = hp.hidecan_plot(
            custom_list=[qtl_df, methyl],
            custom_aes={"QTL": {"y_label": "QTL"}},
            score_thr_custom={"QTL": 10},
        ).to_dict()
        records = _records(spec)
        assert records.loc[records["layer"] == "0-point", "name"].tolist() == ["qFlw1"]
        assert len(records.loc[records["layer"] == "1-point"]) == 3


class TestTracks:
    def test_named_datasets(self, gwas_df: pd.DataFrame) -> None:
        spec = hp.hidecan_plot(gwas_list={"2019": gwas_df, "2020": gwas_df}).to_dict()
        assert _track_order(spec) == ["GWAS peaks (2019)", "GWAS peaks (2020)"]

    def test_unnamed_duplicates_get_suffix(self, gwas_df: pd.DataFrame) -> None:
        spec = hp.hidecan_plot(gwas_list=[gwas_df, gwas_df]).to_dict()
        assert _track_order(spec) == ["GWAS peaks", "GWAS peaks #2"]

    def test_inputs_sorted_by_data_type(self, gwas_df, de_df, can_df, qtl_df) -> None:
        spec = hp.hidecan_plot(
            can_list=can_df,
            custom_list=qtl_df.drop(columns="aes_type"),
            de_list=de_df,
            gwas_list=gwas_df,
        ).to_dict()
        assert _track_order(spec) == ["GWAS peaks", "DE genes", "Candidate genes", "Custom track"]

    def test_track_emptied_by_threshold_is_kept(self, gwas_df, can_df) -> None:
        spec = hp.hidecan_plot(gwas_list=gwas_df, can_list=can_df, score_thr_gwas=100).to_dict()
        records = _records(spec)
        assert "GWAS peaks" in _track_order(spec)
        assert records.loc[records["layer"] == "0-point"].empty
        assert len(records.loc[records["layer"] == "0-line"]) == 3

    def test_repeated_index_labels(self, can_df: pd.DataFrame) -> None:
        more = can_df.assign(chromosome=["chr10", "chr1"], name=["GeneC", "GeneD"])
        can = pd.concat([can_df, more])
        assert can.index.duplicated().any()

        records = _records(hp.hidecan_plot(can_list=can).to_dict())
        labels = records.loc[records["layer"].str.startswith("0-label")]
        assert sorted(labels["name"]) == ["GeneA", "GeneB", "GeneC", "GeneD"]

    def test_no_data(self) -> None:
        with pytest.raises(ValueError, match="At least one"):
            hp.hidecan_plot()


class TestChromosomes:
    def test_chrom_length_from_unfiltered_data(self, gwas_df: pd.DataFrame) -> None:
        spec = hp.hidecan_plot(gwas_list=gwas_df).to_dict()
        records = _records(spec)
        lines = records.loc[records["layer"] == "0-line"].set_index("chromosome")
        assert lines.loc["chr1", "end_mb"] == pytest.approx(5.0)
        assert lines.loc["chr10", "end_mb"] == pytest.approx(8.0)

    def test_select_chroms(self, gwas_df: pd.DataFrame) -> None:
        spec = hp.hidecan_plot(gwas_list=gwas_df, chroms=["chr10", "chr1"]).to_dict()
        assert spec["facet"]["sort"] == ["chr10", "chr1"]
        assert set(_records(spec)["chromosome"]) == {"chr1", "chr10"}

    def test_unknown_chrom(self, gwas_df: pd.DataFrame) -> None:
        with pytest.raises(ValueError, match="chr3"):
            hp.hidecan_plot(gwas_list=gwas_df, chroms=["chr1", "chr3"])

    def test_remove_empty_chrom(self, gwas_df: pd.DataFrame) -> None:
        spec = hp.hidecan_plot(
            gwas_list=gwas_df, score_thr_gwas=5, remove_empty_chrom=True
        ).to_dict()
        assert spec["facet"]["sort"] == ["chr1", "chr2"]

    def test_remove_empty_chrom_nothing_left(self, gwas_df: pd.DataFrame) -> None:
        with pytest.raises(ValueError, match="No chromosome"):
            hp.hidecan_plot(gwas_list=gwas_df, score_thr_gwas=100, remove_empty_chrom=True)

    def test_limits_for_all_chromosomes(self, gwas_df: pd.DataFrame) -> None:
        spec = hp.hidecan_plot(
            gwas_list=gwas_df, score_thr_gwas=0, chrom_limits=(1_500_000, 6_000_000)
        ).to_dict()
        records = _records(spec)
        points = records.loc[records["layer"] == "0-point"]
        assert sorted(points["name"]) == ["m2", "m3"]
        lines = records.loc[records["layer"] == "0-line"]
        assert set(lines["start_mb"]) == {1.5}
        assert set(lines["end_mb"]) == {6.0}

    def test_limits_per_chromosome(self, gwas_df: pd.DataFrame) -> None:
        spec = hp.hidecan_plot(
            gwas_list=gwas_df, score_thr_gwas=0, chrom_limits={"chr1": (0, 2_000_000)}
        ).to_dict()
        records = _records(spec)
        points = records.loc[records["layer"] == "0-point"]
        assert sorted(points["name"]) == ["m1", "m3", "m4"]

    @pytest.mark.parametrize(
        "limits, message",
        [
            ((5, 1), "start < end"),
            ((1, 2, 3), "pair"),
            ({"chr7": (0, 10)}, "chr7"),
        ],
    )
    def test_invalid_limits(self, gwas_df: pd.DataFrame, limits, message: str) -> None:
        with pytest.raises(ValueError, match=message):
            hp.hidecan_plot(gwas_list=gwas_df, chrom_limits=limits)


class TestLayout:
    def test_n_rows_sets_columns(self) -> None:
        data = io.get_example_data()
        spec = hp.hidecan_plot(gwas_list=data["GWAS"], n_rows=4).to_dict()
        assert spec["columns"] == 3

    def test_title_and_subtitle(self, gwas_df: pd.DataFrame) -> None:
        spec = hp.hidecan_plot(gwas_list=gwas_df, title="Tuber shape", subtitle="2021").to_dict()
        assert spec["title"]["text"] == "Tuber shape"
        assert spec["title"]["subtitle"] == "2021"

    def test_panel_size(self, gwas_df: pd.DataFrame, de_df: pd.DataFrame) -> None:
        spec = hp.hidecan_plot(
            gwas_list=gwas_df, de_list=de_df, width=500, track_height=40
        ).to_dict()
        assert spec["spec"]["width"] == 500
        assert spec["spec"]["height"] == 80

    def test_legend_hidden(self, gwas_df: pd.DataFrame) -> None:
        spec = hp.hidecan_plot(gwas_list=gwas_df, legend_position="none").to_dict()
        assert _layer(spec, "0-point")["encoding"]["fill"]["legend"] is None

    def test_invalid_legend_position(self, gwas_df: pd.DataFrame) -> None:
        with pytest.raises(ValueError, match="legend_position"):
            hp.hidecan_plot(gwas_list=gwas_df, legend_position="inside")

    def test_de_coloured_by_fold_change(self, de_df: pd.DataFrame) -> None:
        spec = hp.hidecan_plot(de_list=de_df, colour_genes_by_score=False).to_dict()
        fill = _layer(spec, "0-point")["encoding"]["fill"]
        assert fill["field"] == "log2FoldChange"
        assert fill["scale"]["domainMid"] == 0


class TestLabelLanes:
    def test_separated_labels_share_a_lane(self) -> None:
        assert hp._assign_label_lanes([10, 100, 200], [40, 40, 40]) == [0, 0, 0]

    def test_overlapping_labels_spread(self) -> None:
        lanes = hp._assign_label_lanes([50, 52, 54, 56], [40, 40, 40, 40])
        assert lanes == [0, 1, 2, -1]

    def test_order_independent_of_input(self) -> None:
        assert hp._assign_label_lanes([200, 10], [40, 40]) == [0, 0]

    def test_lane_offsets(self) -> None:
        above, below, further = hp._lane_offsets(point_size=64, label_size=10, label_padding=2)
        assert above == pytest.approx(-11)
        assert below == pytest.approx(11)
        assert further < above


def test_create_from_tracks(gwas_df: pd.DataFrame) -> None:
    track = process.make_track(process.gwas_data(gwas_df), "")
    lengths = process.compute_chrom_length([track["data"]])
    chart = hp.create_hidecan_plot([track], lengths, n_cols=3)
    spec = chart.to_dict()
    assert spec["columns"] == 3
    assert spec["facet"]["sort"] == natsorted(["chr1", "chr2", "chr10"])
