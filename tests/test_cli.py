"""Tests for the command-line entry point."""
import json

import pytest

from soil_sense.chat import TOMATO_GUIDE
from soil_sense.cli import main


@pytest.fixture
def store_path(tmp_path):
    return str(tmp_path / "store.json")


class TestCli:
    def test_seed_then_history(self, store_path, capsys):
        assert main(["--store", store_path, "seed"]) == 0
        assert "Seeded 121 readings" in capsys.readouterr().out
        main(["--store", store_path, "--json", "history", "--range", "all"])
        assert len(json.loads(capsys.readouterr().out)) == 121

    def test_seed_skipped_when_populated(self, store_path, capsys):
        main(["--store", store_path, "seed"])
        capsys.readouterr()
        main(["--store", store_path, "seed"])
        assert "nothing seeded" in capsys.readouterr().out

    def test_crop_set_and_show(self, store_path, capsys):
        main(["--store", store_path, "crop", "cotton"])
        assert capsys.readouterr().out.strip() == "cotton"
        main(["--store", store_path, "crop"])
        assert capsys.readouterr().out.strip() == "cotton"

    def test_unknown_crop_exits(self, store_path):
        with pytest.raises(SystemExit):
            main(["--store", store_path, "crop", "banana"])

    def test_reading_json(self, store_path, capsys):
        main(["--store", store_path, "--json", "reading"])
        data = json.loads(capsys.readouterr().out)
        assert data["crop"] == "rice"
        assert data["moisture"] == 58.0

    def test_recommend(self, store_path, capsys):
        main(["--store", store_path, "--json", "recommend", "--crop", "wheat"])
        recs = json.loads(capsys.readouterr().out)
        assert {r["category"] for r in recs} >= {"Irrigation", "Soil pH", "Temperature"}

    def test_live_stops_after_ticks(self, store_path, capsys):
        main(["--store", store_path, "live", "--interval-ms", "20", "--ticks", "3"])
        main(["--store", store_path, "--json", "history", "--range", "all"])
        out = capsys.readouterr().out
        history = json.loads(out[out.index("["):])
        assert len(history) >= 3

    def test_ask_demo(self, store_path, capsys):
        main(["--store", store_path, "ask", "--demo", "tomato tips"])
        assert capsys.readouterr().out.strip() == TOMATO_GUIDE.strip()
