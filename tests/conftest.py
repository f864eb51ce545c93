import os

# charts are rendered without a display
os.environ.setdefault("MPLBACKEND", "Agg")

import pandas as pd
import pytest

from stormimpact.models import StormEvent

_next_id = iter(range(1_000_000))


def make_event(event_type="TORNADO", fatalities=0, injuries=0,
               prop_dmg=0.0, prop_dmg_exp="", crop_dmg=0.0, crop_dmg_exp=""):
    return StormEvent(
        event_id=next(_next_id),
        event_type=event_type,
        fatalities=fatalities,
        injuries=injuries,
        prop_dmg=prop_dmg,
        prop_dmg_exp=prop_dmg_exp,
        crop_dmg=crop_dmg,
        crop_dmg_exp=crop_dmg_exp,
    )


@pytest.fixture
def scenario_events():
    """Three records: two TORNADO casualties and one costly FLOOD."""
    return [
        make_event("TORNADO", fatalities=5, injuries=10),
        make_event("FLOOD", prop_dmg=25, prop_dmg_exp="M"),
        make_event("TORNADO", fatalities=1),
    ]


@pytest.fixture
def storm_frame():
    return pd.DataFrame({
        "STATE__": ["1", "1", "2", "2", "3"],
        "EVTYPE": ["TORNADO", "FLOOD", "TORNADO", "HAIL", "tornado "],
        "FATALITIES": ["5", "0", "1", "0", "0"],
        "INJURIES": ["10", "0", "0", "0", "2"],
        "PROPDMG": ["0", "25", "0", "0", "2.5"],
        "PROPDMGEXP": [None, "M", None, None, "K"],
        "CROPDMG": ["0", "0", "0", "0", "1"],
        "CROPDMGEXP": [None, None, None, None, "?"],
    })
