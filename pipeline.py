"""HIDECAN plot pipeline

Usage:
    python pipeline.py <output_dir> [--gwas FILE]... [--de FILE]... [--can FILE]...
                       [--custom FILE]... [--example] [--aes YAML] [--format html|png|svg|json]

Input files (CSV, TSV/TXT or Excel; the file stem is used as dataset name):
    --gwas      GWAS results: chromosome, marker, position, score (or padj)
    --de        DE results: chromosome, gene, start, end, log2FoldChange, score (or padj)
    --can       Candidate genes: chromosome, gene, start, end, name
    --custom    Custom track: chromosome, position (or start + end), score,
                optional name and aes_type (style profile, e.g. QTL)

Aesthetics for custom aes_type tags, or overrides of the defaults, are read
from a YAML file given with --aes (see hidecan.io.load_aes).

Outputs (saved to output_dir):
    {name}.{format}     the HIDECAN plot (default name: hidecan_plot)

PNG and SVG output require vl-convert-python (pip install vl-convert-python).
Excel input requires openpyxl (pip install openpyxl).
"""

import argparse
import sys
from pathlib import Path

from hidecan import io
from hidecan.figures import hidecan_plot


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Draw a HIDECAN plot of GWAS, DE, candidate gene and custom tracks."
    )
    parser.add_argument(
        "output_dir",
        type=Path,
        help="Directory to write the output figure",
    )
    for flag, label in [
        ("--gwas", "GWAS results"),
        ("--de", "differential expression results"),
        ("--can", "candidate genes"),
        ("--custom", "custom track data (e.g. QTL mapping results)"),
    ]:
        parser.add_argument(
            flag,
            type=Path,
            action="append",
            default=[],
            metavar="FILE",
            help=f"File with {label}. Can be given several times.",
        )
    parser.add_argument(
        "--example",
        action="store_true",
        default=False,
        help="Add the example GWAS, DE and candidate gene datasets shipped with the package.",
    )
    parser.add_argument(
        "--aes",
        type=Path,
        default=None,
        metavar="YAML",
        help="YAML file with aesthetic overrides, keyed by aes_type.",
    )
    parser.add_argument(
        "--format",
        choices=["html", "png", "svg", "json"],
        default="html",
        help="Output format for the figure (default: html). "
             "PNG/SVG require vl-convert-python.",
    )
    parser.add_argument(
        "--name",
        type=str,
        default="hidecan_plot",
        help="Output file name, without extension (default: hidecan_plot).",
    )
    parser.add_argument("--score-thr-gwas", type=float, default=4, metavar="X",
                        help="Minimum score of GWAS markers (default: 4).")
    parser.add_argument("--score-thr-de", type=float, default=2, metavar="X",
                        help="Minimum score of DE genes (default: 2).")
    parser.add_argument("--log2fc-thr", type=float, default=1, metavar="X",
                        help="Minimum absolute log2(fold-change) of DE genes (default: 1).")
    parser.add_argument("--score-thr-custom", type=float, default=0, metavar="X",
                        help="Minimum score of custom track features (default: 0).")
    parser.add_argument(
        "--chroms",
        nargs="+",
        default=None,
        metavar="CHROM",
        help="Chromosomes to plot, in panel order (default: all).",
    )
    parser.add_argument(
        "--remove-empty-chrom",
        action="store_true",
        default=False,
        help="Do not draw chromosomes without any significant feature.",
    )
    parser.add_argument(
        "--colour-by-log2fc",
        action="store_true",
        default=False,
        help="Colour DE genes by log2(fold-change) instead of by score.",
    )
    parser.add_argument("--title", type=str, default=None, help="Plot title.")
    parser.add_argument("--subtitle", type=str, default=None, help="Plot subtitle.")
    parser.add_argument(
        "--n-cols",
        type=int,
        default=2,
        metavar="N",
        help="Number of chromosome panels per row (default: 2).",
    )
    parser.add_argument(
        "--legend-position",
        choices=["bottom", "top", "left", "right", "none"],
        default="bottom",
        help="Position of the fill legends (default: bottom).",
    )
    return parser.parse_args(argv)


def _load_datasets(paths: list, label: str) -> dict:
    """Read every file of one data type, keyed by file stem."""
    datasets = {}
    for path in paths:
        datasets[path.stem] = io.read_table(path)
        print(f"  {label} '{path.stem}': {len(datasets[path.stem])} rows")
    return datasets


def main(argv=None):
    args = parse_args(argv)

    if not (args.gwas or args.de or args.can or args.custom or args.example):
        sys.exit("Error: no input data (use --gwas, --de, --can, --custom or --example).")

    print("Loading data...")
    try:
        gwas = _load_datasets(args.gwas, "GWAS")
        de = _load_datasets(args.de, "DE")
        can = _load_datasets(args.can, "CAN")
        custom = _load_datasets(args.custom, "Custom")
        custom_aes = io.load_aes(args.aes) if args.aes is not None else None
    except (FileNotFoundError, ValueError) as err:
        sys.exit(f"Error: {err}")

    if args.example:
        if "example" in gwas or "example" in de or "example" in can:
            sys.exit("Error: dataset name 'example' is used by an input file and by --example.")
        example = io.get_example_data()
        gwas["example"] = example["GWAS"]
        de["example"] = example["DE"]
        can["example"] = example["CAN"]
        print("  Example data added (GWAS, DE, CAN)")

    print("Generating HIDECAN plot...")
    try:
        chart = hidecan_plot.hidecan_plot(
            gwas_list=gwas or None,
            de_list=de or None,
            can_list=can or None,
            custom_list=custom or None,
            score_thr_gwas=args.score_thr_gwas,
            score_thr_de=args.score_thr_de,
            log2fc_thr=args.log2fc_thr,
            score_thr_custom=args.score_thr_custom,
            chroms=args.chroms,
            remove_empty_chrom=args.remove_empty_chrom,
            colour_genes_by_score=not args.colour_by_log2fc,
            title=args.title,
            subtitle=args.subtitle,
            n_cols=args.n_cols,
            legend_position=args.legend_position,
            custom_aes=custom_aes,
        )
    except ValueError as err:
        sys.exit(f"Error: {err}")

    args.output_dir.mkdir(parents=True, exist_ok=True)
    io.save_figure(chart, args.output_dir / f"{args.name}.{args.format}")

    print(f"\nDone. Figure saved to: {args.output_dir}")


if __name__ == "__main__":
    main()
