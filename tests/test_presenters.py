from __future__ import annotations

from rich.console import Console

from jamrotation.core.models import Instrument
from jamrotation.core.stats import summarize_session
from jamrotation.features.session.schemas import TimerPayload
from jamrotation.ui.presenters import RichPresenter, format_clock


def _presenter() -> RichPresenter:
    return RichPresenter(console=Console(record=True, width=100, color_system=None))


def test_format_clock() -> None:
    assert format_clock(0) == "00:00"
    assert format_clock(359) == "05:59"
    assert format_clock(-5) == "00:00"


def test_queue_shows_band_on_stage_with_timer(make_musician, make_band) -> None:
    percussion = make_musician("perc", Instrument.OTHER, custom_instrument="CAJON")
    band = make_band("b1", (percussion, Instrument.OTHER), name="Cajon Club")
    ui = _presenter()

    ui.show_queue([band], TimerPayload(seconds_left=125, running=True))

    text = ui.console.export_text()
    assert "ON STAGE: Cajon Club" in text
    assert "CAJON" in text
    assert "02:05 running" in text


def test_stats_panel_lists_highlights(make_musician, make_band) -> None:
    drummer = make_musician("dana", Instrument.DRUMS, Instrument.VOICE)
    band = make_band("b1", (drummer, Instrument.DRUMS))
    ui = _presenter()

    ui.show_stats(summarize_session([drummer], [], [band]))

    text = ui.console.export_text()
    assert "Hall of Fame" in text
    assert "Dana Test" in text
