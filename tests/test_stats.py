from __future__ import annotations

from jamrotation.core.models import Instrument
from jamrotation.core.stats import summarize_session

D, B, G, V = Instrument.DRUMS, Instrument.BASS, Instrument.GUITAR, Instrument.VOICE


def test_summary_counts_history_and_queue(make_musician, make_band) -> None:
    ann = make_musician("ann", D, V)
    bob = make_musician("bob", B)
    cat = make_musician("cat", G)
    played = make_band("b1", (ann, D), (bob, B), (cat, G))
    played.duration_minutes = 10
    queued = make_band("b2", (ann, V), (bob, B))

    stats = summarize_session([ann, bob, cat], [queued], [played])

    assert stats.total_jams == 2
    assert stats.archived_jams == 1
    by_id = {entry.musician_id: entry for entry in stats.per_musician}
    assert by_id["ann"].appearances == 2
    assert by_id["ann"].minutes_played == 16
    assert by_id["ann"].instruments_played == (D, V)
    assert stats.marathon.musician_id in {"ann", "bob"}
    assert stats.all_rounder.musician_id == "ann"
    assert dict(stats.role_totals)[B] == 2
    assert [entry.musician_id for entry in stats.top_musicians][:2] in (["ann", "bob"], ["bob", "ann"])


def test_empty_session_has_no_highlights() -> None:
    stats = summarize_session([], [], [])

    assert stats.total_jams == 0
    assert stats.marathon is None
    assert stats.all_rounder is None
    assert stats.top_musicians == ()


def test_top_list_is_capped_at_five(make_musician, make_band) -> None:
    musicians = [make_musician(f"m{index}", V) for index in range(8)]
    band = make_band("big", *((musician, V) for musician in musicians))

    stats = summarize_session(musicians, [], [band])

    assert len(stats.top_musicians) == 5
