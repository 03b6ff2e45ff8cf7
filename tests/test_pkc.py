"""
Tests for the PKC probe configuration reader.
"""

import copy

import pytest

from geomxset.io.pkc import FEATURE_COLUMNS, read_pkc, read_pkcs
from geomxset import SchemaMismatchError

from conftest import PKC_CONFIG, write_pkc


class TestReadPkc:
    """Test parsing of one PKC module."""

    def test_one_row_per_probe(self, tmp_path):
        module = read_pkc(write_pkc(tmp_path / "TestPanel.pkc"))

        assert module.name == "TestPanel"
        assert module.version == 0.1
        assert module.n_probes == 5
        assert list(module.features.index) == ['RTS0001', 'RTS0002', 'RTS0003', 'RTS0004', 'RTS0005']
        assert list(module.features.columns) == FEATURE_COLUMNS

    def test_target_annotation(self, tmp_path):
        features = read_pkc(write_pkc(tmp_path / "TestPanel.pkc")).features

        assert features.loc['RTS0001', 'TargetName'] == 'ACTA2'
        assert features.loc['RTS0004', 'TargetName'] == 'NegProbe-WTX'
        assert features.loc['RTS0005', 'CodeClass'] == 'Negative'
        assert features['Negative'].tolist() == [False, False, False, True, True]
        assert set(features['Module']) == {'TestPanel'}

    def test_gene_ids_are_lists(self, tmp_path):
        """GeneID is list-valued; negatives have an empty list."""
        features = read_pkc(write_pkc(tmp_path / "TestPanel.pkc")).features

        assert features.loc['RTS0001', 'GeneID'] == ['59']
        assert features.loc['RTS0003', 'GeneID'] == ['2597', '100042025']
        assert features.loc['RTS0004', 'GeneID'] == []

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.pkc"
        path.write_text("{not json")
        with pytest.raises(ValueError, match="Invalid JSON"):
            read_pkc(path)

    def test_no_targets(self, tmp_path):
        path = write_pkc(tmp_path / "empty.pkc", {"Name": "empty"})
        with pytest.raises(ValueError, match="no 'Targets'"):
            read_pkc(path)

    def test_probe_without_rts_id(self, tmp_path):
        config = copy.deepcopy(PKC_CONFIG)
        del config["Targets"][0]["Probes"][0]["RTS_ID"]
        with pytest.raises(ValueError, match="no RTS_ID"):
            read_pkc(write_pkc(tmp_path / "bad.pkc", config))

    def test_duplicate_rts_id(self, tmp_path):
        config = copy.deepcopy(PKC_CONFIG)
        config["Targets"][1]["Probes"][0]["RTS_ID"] = "RTS0001"
        with pytest.raises(SchemaMismatchError, match="listed twice"):
            read_pkc(write_pkc(tmp_path / "bad.pkc", config))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_pkc(tmp_path / "absent.pkc")


class TestReadPkcs:
    """Test combining multi-module panels."""

    def test_two_modules(self, tmp_path):
        first = write_pkc(tmp_path / "ModuleA.pkc")
        config = copy.deepcopy(PKC_CONFIG)
        config["Version"] = 0.2
        config["Targets"] = [
            {"DisplayName": "CD68", "CodeClass": "Endogenous", "GeneID": ["968"],
             "Probes": [{"RTS_ID": "RTS0100", "ProbeID": "100"}]},
        ]
        second = write_pkc(tmp_path / "ModuleB.pkc", config)

        features, experiment = read_pkcs([first, second])
        assert len(features) == 6
        assert features.loc['RTS0100', 'Module'] == 'ModuleB'
        assert experiment == {'PKCModule': ['ModuleA', 'ModuleB'], 'PKCFileVersion': [0.1, 0.2]}

    def test_single_path(self, tmp_path):
        features, experiment = read_pkcs(write_pkc(tmp_path / "TestPanel.pkc"))
        assert experiment['PKCModule'] == ['TestPanel']
        assert len(features) == 5

    def test_probe_in_two_modules(self, tmp_path):
        first = write_pkc(tmp_path / "ModuleA.pkc")
        second = write_pkc(tmp_path / "ModuleB.pkc")
        with pytest.raises(SchemaMismatchError, match="several PKC modules"):
            read_pkcs([first, second])
