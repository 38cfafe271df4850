"""
Report helpers and configuration parsing
"""

from sportcamp.config import _env_bool
from sportcamp.reports import EXPORT_HEADER, clamp, to_csv
from sportcamp.util.case import camelize


class TestCsv:
    def test_quotes_every_field(self):
        out = to_csv(["a", "b"], [[1, 'say "hi"'], [None, "x,y"]])
        assert out == '"a","b"\n"1","say ""hi"""\n"","x,y"'

    def test_header_only(self):
        assert to_csv(EXPORT_HEADER, []) == (
            '"Session ID","Title","Sport","Club","Coach","Starts At","Attendance Count"'
        )


class TestClamp:
    def test_bounds_and_default(self):
        assert clamp("3", 7, 365, 30) == 7
        assert clamp("1000", 7, 365, 30) == 365
        assert clamp("90", 7, 365, 30) == 90
        assert clamp(None, 5, 100, 25) == 25
        assert clamp("lots", 5, 100, 25) == 25


class TestConfig:
    def test_env_bool(self, monkeypatch):
        monkeypatch.setenv("SPORTCAMP_FLAG", "Yes")
        assert _env_bool("SPORTCAMP_FLAG") is True
        monkeypatch.setenv("SPORTCAMP_FLAG", "off")
        assert _env_bool("SPORTCAMP_FLAG") is False
        monkeypatch.setenv("SPORTCAMP_FLAG", "maybe")
        assert _env_bool("SPORTCAMP_FLAG", True) is True
        monkeypatch.delenv("SPORTCAMP_FLAG")
        assert _env_bool("SPORTCAMP_FLAG") is None


class TestCamelize:
    def test_row_keys(self):
        assert camelize({"club_id": 1, "sport_name": "Judo", "name": "A"}) == {
            "clubId": 1,
            "sportName": "Judo",
            "name": "A",
        }
