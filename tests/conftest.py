"""
Pytest configuration and shared fixtures.

This module provides synthetic-data generators for in-memory stores and for
tiny GeoMx experiments (DCC + PKC + annotation files) written to tmp_path.
"""

import json
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from geomxset.core.store import AnnotatedMatrixStore


def generate_synthetic_store(
    n_features: int = 20,
    n_samples: int = 6,
    n_negative: int = 3,
    seed: int = 42,
) -> AnnotatedMatrixStore:
    """
    Generate a synthetic GeoMx-like store with realistic annotation.

    Args:
        n_features: Number of probes (the last ``n_negative`` are negatives)
        n_samples: Number of segments
        n_negative: Number of negative-control probes
        seed: Random seed for reproducibility

    Returns:
        Store with a ``raw`` count matrix, probe annotation (TargetName,
        CodeClass, GeneID lists, Negative), segment annotation (segment,
        tissue) and protocol annotation (aoi, DeduplicatedReads)

    Design:
        - Negative-binomial counts with per-segment depth differences
        - Negative probes sit at background (low counts)
        - Segments alternate Tumor / Stroma across two tissues
    """
    rng = np.random.RandomState(seed)

    depth = rng.uniform(0.5, 2.0, size=n_samples)
    mean_expr = rng.lognormal(mean=3, sigma=1, size=n_features)
    mean_expr[-n_negative:] = 3.0
    data = rng.poisson(np.outer(mean_expr, depth)).astype(float) + 1

    feature_ids = pd.Index([f"RTS{i:07d}" for i in range(n_features)])
    sample_ids = pd.Index([f"DSP-1001-A{i:02d}" for i in range(n_samples)])

    endogenous = n_features - n_negative
    feature_annotation = pd.DataFrame({
        'TargetName': [f"GENE{i}" for i in range(endogenous)] + ["NegProbe-WTX"] * n_negative,
        'CodeClass': ["Endogenous"] * endogenous + ["Negative"] * n_negative,
        'GeneID': [[str(1000 + i)] for i in range(endogenous)] + [[] for _ in range(n_negative)],
        'Negative': [False] * endogenous + [True] * n_negative,
    }, index=feature_ids)

    sample_annotation = pd.DataFrame({
        'segment': ["Tumor" if i % 2 == 0 else "Stroma" for i in range(n_samples)],
        'tissue': ["kidney" if i < n_samples // 2 else "lung" for i in range(n_samples)],
    }, index=sample_ids)

    protocol_annotation = pd.DataFrame({
        'aoi': ["Geometric"] * n_samples,
        'DeduplicatedReads': (depth * 1e5).astype(int),
    }, index=sample_ids)

    return AnnotatedMatrixStore(
        assays={'raw': data},
        feature_ids=feature_ids,
        sample_ids=sample_ids,
        feature_annotation=feature_annotation,
        sample_annotation=sample_annotation,
        protocol_annotation=protocol_annotation,
        experiment={'panel': 'Synthetic_WTA'},
    )


@pytest.fixture
def tiny_store():
    """The 3 feature × 2 sample store: raw = [[1, 2], [3, 4], [5, 6]], groups X/Y."""
    feature_ids = pd.Index(["RTS001", "RTS002", "RTS003"])
    sample_ids = pd.Index(["A", "B"])
    return AnnotatedMatrixStore(
        assays={'raw': np.array([[1, 2], [3, 4], [5, 6]])},
        feature_ids=feature_ids,
        sample_ids=sample_ids,
        feature_annotation=pd.DataFrame({
            'TargetName': ["ACTA2", "CD3E", "NegProbe"],
            'CodeClass': ["Endogenous", "Endogenous", "Negative"],
        }, index=feature_ids),
        sample_annotation=pd.DataFrame({'group': ["X", "Y"]}, index=sample_ids),
    )


@pytest.fixture
def synthetic_store():
    """Synthetic store (20 probes × 6 segments) for fast unit tests."""
    return generate_synthetic_store()


# =============================================================================
# GeoMx file generators
# =============================================================================

DCC_COUNTS = {
    'DSP-A01': {'RTS0001': 10, 'RTS0002': 20, 'RTS0003': 30, 'RTS0004': 2, 'RTS0005': 4},
    'DSP-A02': {'RTS0001': 5, 'RTS0002': 40, 'RTS0003': 60, 'RTS0004': 1, 'RTS0005': 3},
    # RTS0003 not listed: zero count
    'DSP-A03': {'RTS0001': 7, 'RTS0002': 1, 'RTS0004': 2, 'RTS0005': 2},
}

PKC_CONFIG = {
    "Name": "Test panel",
    "Version": 0.1,
    "Targets": [
        {"DisplayName": "ACTA2", "CodeClass": "Endogenous", "GeneID": ["59"],
         "Probes": [{"RTS_ID": "RTS0001", "ProbeID": "1", "DisplayName": "ACTA2"}]},
        {"DisplayName": "CD3E", "CodeClass": "Endogenous", "GeneID": ["916"],
         "Probes": [{"RTS_ID": "RTS0002", "ProbeID": "2", "DisplayName": "CD3E"}]},
        {"DisplayName": "GAPDH", "CodeClass": "Endogenous", "GeneID": ["2597", "100042025"],
         "Probes": [{"RTS_ID": "RTS0003", "ProbeID": "3", "DisplayName": "GAPDH"}]},
        {"DisplayName": "NegProbe-WTX", "CodeClass": "Negative", "GeneID": None,
         "Probes": [{"RTS_ID": "RTS0004", "ProbeID": "4"},
                    {"RTS_ID": "RTS0005", "ProbeID": "5"}]},
    ],
}

ANNOTATION_ROWS = [
    # Sample_ID, slide name, segment, class, aoi, roi, panel
    ("DSP-A01.dcc", "slide1", "Tumor", "tumor", "Geometric", 1, "TestPanel"),
    ("DSP-A02.dcc", "slide1", "Stroma", "tumor", "Geometric", 2, "TestPanel"),
    ("DSP-A03", "slide2", "Tumor", "normal", "Segment", 3, "TestPanel"),
]
ANNOTATION_COLUMNS = ["Sample_ID", "slide name", "segment", "class", "aoi", "roi", "panel"]


def write_dcc(path: Path, counts: dict, well: str = "A01", extra_lines: str = "") -> Path:
    """Write a minimal but complete DCC file."""
    code_summary = "\n".join(f"{rts},{count}" for rts, count in counts.items())
    path.write_text(
        "<Header>\n"
        "FileVersion,0.02\n"
        'SoftwareVersion,"GeoMx_NGS_Pipeline_2.0.21"\n'
        "Date,2020-07-14\n"
        "</Header>\n"
        "\n"
        "<Scan_Attributes>\n"
        f"ID,{path.stem}\n"
        "Plate_ID,1001250002642\n"
        f"Well,{well}\n"
        "</Scan_Attributes>\n"
        "\n"
        "<NGS_Processing_Attributes>\n"
        "SeqSetId,VH00121:3:AAAG2YWM5\n"
        "Raw,1000\n"
        "Trimmed,990\n"
        "Aligned,950\n"
        "umiQ30,0.9\n"
        "DeduplicatedReads,400\n"
        "</NGS_Processing_Attributes>\n"
        "\n"
        "<Code_Summary>\n"
        f"{code_summary}\n"
        "</Code_Summary>\n"
        f"{extra_lines}"
    )
    return path


def write_pkc(path: Path, config: dict = PKC_CONFIG) -> Path:
    path.write_text(json.dumps(config, indent=2))
    return path


def annotation_frame() -> pd.DataFrame:
    return pd.DataFrame(ANNOTATION_ROWS, columns=ANNOTATION_COLUMNS)


@pytest.fixture
def geomx_files(tmp_path):
    """
    Tiny GeoMx experiment on disk.

    Returns:
        Dictionary with 'dcc_dir', 'dcc_paths', 'pkc' and 'annotation' paths
    """
    dcc_dir = tmp_path / "dccs"
    dcc_dir.mkdir()
    dcc_paths = [
        write_dcc(dcc_dir / f"{sample_id}.dcc", counts, well=sample_id[-3:])
        for sample_id, counts in DCC_COUNTS.items()
    ]
    pkc = write_pkc(tmp_path / "TestPanel.pkc")

    annotation = tmp_path / "annotations.csv"
    annotation_frame().to_csv(annotation, index=False)

    return {
        'dcc_dir': dcc_dir,
        'dcc_paths': dcc_paths,
        'pkc': pkc,
        'annotation': annotation,
    }
