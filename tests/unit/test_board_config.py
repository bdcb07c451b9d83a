"""
Tests for board configuration, tracking-number extraction and YAML loading.
"""

import pytest
from pydantic import ValidationError

from shipwatch.core import ConfigurationException
from shipwatch.tracking.domain import BoardConfig, MonitorConfig, extract_tracking_number
from shipwatch.tracking.infrastructure import BoardConfigManager


@pytest.mark.parametrize("text,expected", [
    ("https://www.dhl.com/gb-en/home/tracking.html?tracking-id=1234567890&submit=1", "1234567890"),
    ("https://www.ups.com/track?loc=en_GB&tracknum=1Z999AA10123456784", "1Z999AA10123456784"),
    ("https://www.fedex.com/fedextrack/?trknbr=771234567890", "771234567890"),
    ("https://carrier.example/status?trk=AB12345678", "AB12345678"),
    ("1z999aa10123456784", "1Z999AA10123456784"),
])
def test_extracts_tracking_numbers(text, expected):
    assert extract_tracking_number(text) == expected


@pytest.mark.parametrize("text", [
    None,
    "",
    "Delivered",
    "Shipment held by customs",
    "https://www.dhl.com/gb-en/home.html",
    "ABC123",
])
def test_no_tracking_number(text):
    assert extract_tracking_number(text) is None


class TestMonitorConfig:

    def test_default_boards(self):
        config = MonitorConfig()

        assert [b.name for b in config.boards] == ["Main Board", "China Board", "India Board"]
        assert config.board("9371038978").tracking_field == "text_mkvcce8m"
        assert config.board(162479257).coordinator is None
        assert config.board("42") is None

    def test_coordinator_for_route(self):
        config = MonitorConfig()

        assert config.coordinator_for_route("China-UK") == "D08MAQ61878"
        assert config.coordinator_for_route("India-UK") == "D08HQ5GQCAW"
        assert config.coordinator_for_route("US-UK") is None
        assert config.coordinator_for_route(None) is None

    def test_status_phrases_are_lowercased(self):
        config = MonitorConfig(ambiguous_statuses={"On Hold": 6})

        assert config.ambiguous_statuses == {"on hold": 6}

    def test_non_positive_timeout_rejected(self):
        with pytest.raises(ValidationError):
            MonitorConfig(ambiguous_statuses={"on hold": 0})

    def test_numeric_board_id_coerced(self):
        assert BoardConfig(board_id=123, name="Test").board_id == "123"

    @pytest.mark.parametrize("column_id,ignored", [
        (None, False),
        ("text_updates", False),
        ("text_mkvcdqrw", True),
        ("text5__1", True),
        ("text3", True),
    ])
    def test_detail_columns_ignored_without_status_field(self, column_id, ignored):
        assert BoardConfig(board_id="1", name="Test").ignores_column(column_id) is ignored

    def test_status_field_restricts_columns(self):
        board = BoardConfig(board_id="1", name="Test", status_field="status")

        assert not board.ignores_column("status")
        assert board.ignores_column("text_updates")


class TestBoardConfigManager:

    def test_missing_file_uses_builtin_boards(self, tmp_path):
        manager = BoardConfigManager()

        config = manager.load(tmp_path / "boards.yaml")

        assert len(config.boards) == 3
        assert manager.config is config

    def test_loads_yaml(self, tmp_path):
        path = tmp_path / "boards.yaml"
        path.write_text(
            "boards:\n"
            "  - board_id: 555\n"
            "    name: EU Board\n"
            "    region: China\n"
            "    status_field: status\n"
            "ambiguous_statuses:\n"
            "  awaiting pickup: 4\n"
        )

        config = BoardConfigManager().load(path)

        assert config.board("555").name == "EU Board"
        assert config.board("555").status_field == "status"
        assert config.ambiguous_statuses == {"awaiting pickup": 4}

    def test_invalid_file_is_fatal_on_first_load(self, tmp_path):
        path = tmp_path / "boards.yaml"
        path.write_text("boards:\n  - name: missing id\n")

        with pytest.raises(ConfigurationException):
            BoardConfigManager().load(path)

    def test_bad_reload_keeps_previous_config(self, tmp_path):
        path = tmp_path / "boards.yaml"
        path.write_text("boards:\n  - board_id: 1\n    name: One\n")
        manager = BoardConfigManager()
        manager.load(path)

        path.write_text("boards: [unclosed\n")

        assert manager.reload() is False
        assert manager.config.board("1").name == "One"

    def test_config_before_load_raises(self):
        with pytest.raises(RuntimeError):
            BoardConfigManager().config
