from __future__ import annotations

import pandas as pd
import pytest


@pytest.fixture
def gwas_df() -> pd.DataFrame:
    return pd.DataFrame({
        "chromosome": ["chr1", "chr1", "chr2", "chr10"],
        "marker": ["m1", "m2", "m3", "m4"],
        "position": [1_000_000, 5_000_000, 2_000_000, 8_000_000],
        "score": [5.2, 1.3, 7.8, 4.0],
    })


@pytest.fixture
def de_df() -> pd.DataFrame:
    return pd.DataFrame({
        "chromosome": ["chr1", "chr2", "chr2", "chr10"],
        "gene": ["g1", "g2", "g3", "g4"],
        "start": [1_500_000, 3_000_000, 6_000_000, 9_000_000],
        "end": [1_502_000, 3_004_000, 6_001_000, 9_500_000],
        "log2FoldChange": [2.5, -0.3, -1.8, 1.1],
        "padj": [1e-4, 1e-5, 0.5, 1e-3],
    })


@pytest.fixture
def can_df() -> pd.DataFrame:
    return pd.DataFrame({
        "chromosome": ["chr1", "chr2"],
        "gene": ["g1", "g7"],
        "start": [1_500_000, 4_000_000],
        "end": [1_502_000, 4_003_000],
        "name": ["GeneA", "GeneB"],
    })


@pytest.fixture
def qtl_df() -> pd.DataFrame:
    return pd.DataFrame({
        "chromosome": ["chr1", "chr2", "chr10"],
        "position": [2_500_000, 1_000_000, 7_000_000],
        "score": [12.0, 3.5, 8.1],
        "name": ["qFlw1", "qFlw2", "qFlw10"],
        "aes_type": ["QTL", "QTL", "QTL"],
    })
