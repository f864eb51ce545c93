import pytest
import requests

from stormimpact import loader
from stormimpact.loader import (
    DatasetFetchError, DatasetParseError, fetch_dataset, load_events,
    load_storm_csv, parse_storm_frame,
)


class FakeResponse:
    def __init__(self, chunks, status=200):
        self.chunks = chunks
        self.status = status

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} Error")

    def iter_content(self, chunk_size=1):
        yield from self.chunks


# ---------------- Parsing ----------------
def test_parse_frame_converts_required_columns(storm_frame):
    events = parse_storm_frame(storm_frame)
    assert len(events) == 5

    first = events[0]
    assert (first.event_type, first.fatalities, first.injuries) == ("TORNADO", 5, 10)
    assert first.prop_dmg_exp == ""

    flood = events[1]
    assert flood.prop_dmg == 25.0
    assert flood.prop_dmg_exp == "M"

    # labels kept verbatim, codes stripped but not case-folded
    assert events[4].event_type == "tornado "
    assert events[4].crop_dmg_exp == "?"
    assert [e.event_id for e in events] == [0, 1, 2, 3, 4]


def test_parse_frame_matches_column_names_loosely(storm_frame):
    renamed = storm_frame.rename(columns={"EVTYPE": "evtype", "PROPDMGEXP": " PropDmgExp "})
    events = parse_storm_frame(renamed)
    assert events[1].prop_dmg_exp == "M"


def test_missing_column_is_a_parse_error(storm_frame):
    with pytest.raises(DatasetParseError, match="CROPDMG"):
        parse_storm_frame(storm_frame.drop(columns=["CROPDMG"]))


@pytest.mark.parametrize("column,bad", [
    ("FATALITIES", "lots"),
    ("FATALITIES", "-3"),
    ("FATALITIES", "1e400"),
    ("FATALITIES", "2.7"),
    ("INJURIES", "inf"),
    ("INJURIES", "0.5"),
    ("PROPDMG", "1e400"),
    ("CROPDMG", "-1"),
])
def test_malformed_numeric_is_a_parse_error(storm_frame, column, bad):
    storm_frame.loc[2, column] = bad
    with pytest.raises(DatasetParseError, match="row 2"):
        parse_storm_frame(storm_frame)


def test_whole_float_counts_and_fractional_amounts_are_accepted(storm_frame):
    storm_frame.loc[0, "FATALITIES"] = "5.0"
    storm_frame.loc[1, "PROPDMG"] = "2.75"
    events = parse_storm_frame(storm_frame)
    assert events[0].fatalities == 5
    assert events[1].prop_dmg == 2.75


def test_blank_numeric_counts_as_zero(storm_frame):
    storm_frame.loc[0, "INJURIES"] = None
    storm_frame.loc[1, "CROPDMG"] = "  "
    events = parse_storm_frame(storm_frame)
    assert events[0].injuries == 0
    assert events[1].crop_dmg == 0.0


def test_load_compressed_csv(tmp_path, storm_frame):
    path = tmp_path / "StormData.csv.bz2"
    storm_frame.to_csv(path, index=False)
    events = load_storm_csv(path)
    assert len(events) == 5
    assert events[1].prop_dmg_exp == "M"


def test_na_like_labels_are_kept_verbatim(tmp_path, storm_frame):
    storm_frame["EVTYPE"] = ["NULL", "None", "NA", "N/A", "nan"]
    storm_frame.loc[3, "INJURIES"] = None
    path = tmp_path / "StormData.csv"
    storm_frame.to_csv(path, index=False)

    events = load_storm_csv(path)

    assert [e.event_type for e in events] == ["NULL", "None", "NA", "N/A", "nan"]
    # an empty numeric cell still counts as zero
    assert events[3].injuries == 0


def test_unreadable_file_is_a_parse_error(tmp_path):
    with pytest.raises(DatasetParseError):
        load_storm_csv(tmp_path / "missing.csv")


# ---------------- Fetch + cache ----------------
def test_cached_file_is_reused_without_network(tmp_path, monkeypatch):
    cache = tmp_path / "data.csv"
    cache.write_text("cached")

    def no_network(*a, **kw):
        raise AssertionError("network used")

    monkeypatch.setattr(loader.requests, "get", no_network)
    assert fetch_dataset("http://example.invalid/x", cache) == cache
    assert cache.read_text() == "cached"


def test_download_writes_cache(tmp_path, monkeypatch):
    cache = tmp_path / "nested" / "data.csv"
    calls = []

    def fake_get(url, stream, timeout):
        calls.append(url)
        return FakeResponse([b"EVTYPE,", b"FATALITIES\n"])

    monkeypatch.setattr(loader.requests, "get", fake_get)
    assert fetch_dataset("http://example.invalid/x", cache) == cache
    assert cache.read_bytes() == b"EVTYPE,FATALITIES\n"
    assert not (tmp_path / "nested" / "data.csv.part").exists()

    fetch_dataset("http://example.invalid/x", cache)
    assert len(calls) == 1


@pytest.mark.parametrize("failure", [
    requests.ConnectionError("unreachable"),
    None,
])
def test_fetch_failure_without_cache(tmp_path, monkeypatch, failure):
    cache = tmp_path / "data.csv"

    def fake_get(url, stream, timeout):
        if failure is not None:
            raise failure
        return FakeResponse([], status=404)

    monkeypatch.setattr(loader.requests, "get", fake_get)
    with pytest.raises(DatasetFetchError):
        fetch_dataset("http://example.invalid/x", cache)
    assert not cache.exists()
    assert not (tmp_path / "data.csv.part").exists()


def test_load_events_fetches_then_parses(tmp_path, monkeypatch, storm_frame):
    body = storm_frame.to_csv(index=False).encode("utf-8")
    monkeypatch.setattr(loader.requests, "get",
                        lambda url, stream, timeout: FakeResponse([body]))
    events = load_events("http://example.invalid/x", tmp_path / "StormData.csv")
    assert [e.event_type for e in events][:2] == ["TORNADO", "FLOOD"]
