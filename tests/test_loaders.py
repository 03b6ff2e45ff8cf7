"""
Integration tests for load_store and load_geomx_set.

Uses tiny DCC / PKC / worksheet files written to tmp_path.
"""

import json

import numpy as np
import pandas as pd
import pytest

from geomxset import NotFoundError, SchemaMismatchError, load_geomx_set, load_store
from geomxset.io.annotations import split_annotation_frame
from geomxset.io.formats import AnnotationLayout
from geomxset.io.loaders import read_matrix_csv

from conftest import PKC_CONFIG, annotation_frame, write_dcc, write_pkc


@pytest.fixture
def annotations():
    feature_ids = pd.Index(["f1", "f2", "f3"])
    sample_ids = pd.Index(["s1", "s2"])
    features = pd.DataFrame({'TargetName': ["A", "B", "C"]}, index=feature_ids)
    samples = pd.DataFrame({'group': ["X", "Y"]}, index=sample_ids)
    return features, samples


class TestLoadStore:
    """Test the generic loader."""

    def test_keys_equal_annotation_keys(self, annotations):
        """The loaded matrix is keyed exactly by the annotation tables."""
        features, samples = annotations
        counts = pd.DataFrame(
            [[6, 5], [4, 3], [2, 1]],
            index=["f3", "f2", "f1"],
            columns=["s2", "s1"],
        )
        store = load_store({'raw': counts}, samples, features)

        assert store.feature_ids.equals(features.index)
        assert store.sample_ids.equals(samples.index)
        np.testing.assert_array_equal(store.get_matrix("raw"), [[1, 2], [3, 4], [5, 6]])

    def test_multiple_matrices(self, annotations):
        features, samples = annotations
        raw = np.arange(6, dtype=float).reshape(3, 2)
        store = load_store({'raw': raw, 'log': np.log1p(raw)}, samples, features)
        assert store.assay_names == ['raw', 'log']

    def test_sample_mismatch(self, annotations):
        """Matrix columns that differ from the sample annotation are rejected."""
        features, samples = annotations
        counts = pd.DataFrame(np.ones((3, 2)), index=features.index, columns=["s1", "s9"])
        with pytest.raises(SchemaMismatchError, match="columns keys disagree"):
            load_store({'raw': counts}, samples, features)

    def test_feature_mismatch(self, annotations):
        features, samples = annotations
        counts = pd.DataFrame(np.ones((2, 2)), index=["f1", "f2"], columns=samples.index)
        with pytest.raises(SchemaMismatchError, match="rows"):
            load_store({'raw': counts}, samples, features)

    def test_duplicate_matrix_keys(self, annotations):
        features, samples = annotations
        counts = pd.DataFrame(np.ones((3, 2)), index=["f1", "f1", "f2"], columns=samples.index)
        with pytest.raises(SchemaMismatchError, match="duplicate"):
            load_store({'raw': counts}, samples, features)

    def test_protocol_reordered(self, annotations):
        features, samples = annotations
        protocol = pd.DataFrame({'aoi': ["b", "a"]}, index=["s2", "s1"])
        store = load_store({'raw': np.zeros((3, 2))}, samples, features, protocol_annotation=protocol)
        assert store.protocol_annotation['aoi'].tolist() == ["a", "b"]

    def test_annotation_tables_input(self):
        """AnnotationTables carry protocol and experiment parts along."""
        tables = split_annotation_frame(annotation_frame())
        features = pd.DataFrame(index=pd.Index(["f1"]))
        counts = pd.DataFrame([[1.0, 2.0, 3.0]], index=["f1"], columns=tables.sample_ids)

        store = load_store({'raw': counts}, tables, features)
        assert list(store.protocol_annotation.columns) == ['aoi', 'roi']
        assert store.experiment == {'panel': 'TestPanel'}

    def test_nan_warns(self, annotations):
        features, samples = annotations
        raw = np.ones((3, 2))
        raw[0, 0] = np.nan
        with pytest.warns(UserWarning, match="NaN"):
            load_store({'raw': raw}, samples, features)

    def test_csv_source(self, annotations, tmp_path):
        features, samples = annotations
        path = tmp_path / "raw.csv"
        pd.DataFrame(np.ones((3, 2)), index=features.index, columns=samples.index).to_csv(path)
        store = load_store({'raw': path}, samples, features)
        assert store.get_matrix().sum() == 6.0

    def test_no_matrices(self, annotations):
        features, samples = annotations
        with pytest.raises(ValueError, match="At least one matrix"):
            load_store({}, samples, features)


class TestReadMatrixCsv:
    """Test delimited matrix files."""

    def test_non_numeric(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("id,s1,s2\nf1,1,2\nf2,3,oops\n")
        with pytest.raises(ValueError, match="non-numeric"):
            read_matrix_csv(path)

    def test_infinite(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("id,s1,s2\nf1,1,inf\nf2,3,4\n")
        with pytest.raises(ValueError, match="infinite"):
            read_matrix_csv(path)


class TestLoadGeomxSet:
    """Test the DCC + PKC + worksheet loader."""

    def test_full_load(self, geomx_files):
        store = load_geomx_set(
            geomx_files['dcc_dir'],
            geomx_files['pkc'],
            geomx_files['annotation'],
        )

        assert store.shape == (5, 3)
        assert store.assay_names == ['raw']
        assert list(store.feature_ids) == ['RTS0001', 'RTS0002', 'RTS0003', 'RTS0004', 'RTS0005']
        assert list(store.sample_ids) == ['DSP-A01', 'DSP-A02', 'DSP-A03']

        raw = store.get_frame('raw')
        assert raw.loc['RTS0002', 'DSP-A02'] == 40
        assert raw.loc['RTS0003', 'DSP-A03'] == 0

    def test_annotation_parts(self, geomx_files):
        store = load_geomx_set(geomx_files['dcc_dir'], geomx_files['pkc'], geomx_files['annotation'])

        assert list(store.sample_annotation.columns) == ['slide name', 'segment', 'class']
        protocol = store.protocol_annotation
        assert {'SoftwareVersion', 'DeduplicatedReads', 'Well', 'aoi', 'roi'} <= set(protocol.columns)
        assert protocol.loc['DSP-A03', 'aoi'] == 'Segment'
        assert store.get_annotation('features', 'TargetName')['RTS0001'] == 'ACTA2'
        assert store.experiment == {
            'panel': 'TestPanel',
            'PKCModule': ['TestPanel'],
            'PKCFileVersion': [0.1],
        }

    def test_dcc_paths_and_frame_annotation(self, geomx_files):
        store = load_geomx_set(
            geomx_files['dcc_paths'],
            [geomx_files['pkc']],
            annotation_frame(),
        )
        assert store.n_samples == 3

    def test_missing_dcc_for_annotated_sample(self, geomx_files):
        with pytest.raises(SchemaMismatchError, match="missing"):
            load_geomx_set(geomx_files['dcc_paths'][:2], geomx_files['pkc'], geomx_files['annotation'])

    def test_probe_not_in_pkc(self, geomx_files):
        write_dcc(geomx_files['dcc_dir'] / "DSP-A03.dcc", {'RTS0001': 1, 'RTS9999': 5})
        with pytest.raises(SchemaMismatchError, match="not in the PKC"):
            load_geomx_set(geomx_files['dcc_dir'], geomx_files['pkc'], geomx_files['annotation'])

    def test_worksheet_overrides_dcc_field(self, geomx_files):
        frame = annotation_frame()
        frame['Well'] = ['W1', 'W2', 'W3']
        store = load_geomx_set(geomx_files['dcc_dir'], geomx_files['pkc'], frame)
        assert store.get_annotation('samples', 'Well').tolist() == ['W1', 'W2', 'W3']
        assert 'Well' not in store.protocol_annotation.columns

    def test_custom_layout(self, geomx_files):
        layout = AnnotationLayout(protocol_columns=['aoi'], experiment_columns=[])
        store = load_geomx_set(geomx_files['dcc_dir'], geomx_files['pkc'], geomx_files['annotation'], layout)
        assert 'roi' in store.sample_annotation.columns
        assert 'panel' in store.sample_annotation.columns
        assert 'panel' not in store.experiment

    def test_multi_module(self, geomx_files, tmp_path):
        config = json.loads(json.dumps(PKC_CONFIG))
        config["Targets"] = [
            {"DisplayName": "CD68", "CodeClass": "Endogenous", "GeneID": ["968"],
             "Probes": [{"RTS_ID": "RTS0100", "ProbeID": "100"}]},
        ]
        extra = write_pkc(tmp_path / "Extra.pkc", config)
        store = load_geomx_set(geomx_files['dcc_dir'], [geomx_files['pkc'], extra], geomx_files['annotation'])

        assert store.n_features == 6
        assert store.get_matrix()[-1].tolist() == [0.0, 0.0, 0.0]
        assert store.experiment['PKCModule'] == ['TestPanel', 'Extra']

    def test_missing_field_lookup(self, geomx_files):
        store = load_geomx_set(geomx_files['dcc_dir'], geomx_files['pkc'], geomx_files['annotation'])
        with pytest.raises(NotFoundError):
            store.get_annotation('samples', 'tissue')
