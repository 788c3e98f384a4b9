from __future__ import annotations

import random

import pytest

from jamrotation.core.models import MULTI_SLOT_ROLES, Instrument, MusicianStatus
from jamrotation.lineup.assembler import (
    MAX_RANDOM_SIZE,
    MIN_RANDOM_SIZE,
    diagnose_roster,
    generate_next_band,
    priority_shuffle,
)

D, B, G, K, V = Instrument.DRUMS, Instrument.BASS, Instrument.GUITAR, Instrument.KEYS, Instrument.VOICE

POOL = [f"Name {index}" for index in range(40)]


class _MaxSizeRandom(random.Random):
    """Always draws the largest random band size."""

    def randint(self, a: int, b: int) -> int:
        return b


@pytest.fixture
def roster(make_musician):
    return [
        make_musician("drum1", D),
        make_musician("bass1", B),
        make_musician("gtr1", G),
        make_musician("keys1", K),
        make_musician("voc1", V),
        make_musician("multi", G, K, V),
        make_musician("drum2", D, V),
        make_musician("bass2", B, G),
    ]


@pytest.fixture
def ghost(make_musician, make_band):
    """A band of musicians outside the roster, used to clear the cooldown set."""

    singer = make_musician("ghost", V)
    return make_band("ghost-band", (singer, V), name="Ghosts")


def _assert_valid_band(band) -> None:
    roles = band.roles()
    assert roles.count(D) == 1
    assert roles.count(B) == 1
    assert G in roles or K in roles
    single_slot = [role for role in roles if role not in MULTI_SLOT_ROLES]
    assert len(single_slot) == len(set(single_slot))
    assert len(band.member_ids()) == len(set(band.member_ids()))
    for member in band.members:
        assert member.musician.plays(member.role)


def test_generated_bands_respect_role_invariants(roster) -> None:
    rng = random.Random(1234)
    history = []
    for _ in range(40):
        band = generate_next_band(roster, [], history, rng=rng, name_pool=POOL)
        assert band is not None
        _assert_valid_band(band)
        assert MIN_RANDOM_SIZE <= len(band.members) <= MAX_RANDOM_SIZE
        assert band.id.startswith("band-auto-")
        assert band.is_manual is False
        history.append(band)


def test_fixed_size_is_honoured_when_roles_allow(roster) -> None:
    rng = random.Random(5)
    queue = []
    for _ in range(10):
        band = generate_next_band(roster, queue, [], fixed_size=5, rng=rng, name_pool=POOL)
        assert band is not None
        _assert_valid_band(band)
        assert len(band.members) == 5
        queue.append(band)


def test_band_names_are_unique_across_queue_and_history(roster) -> None:
    rng = random.Random(9)
    history, queue = [], []
    for index in range(12):
        band = generate_next_band(roster, queue, history, rng=rng, name_pool=POOL)
        (history if index % 2 else queue).append(band)
    names = [band.name for band in history + queue]
    assert len(names) == len(set(names))


def test_last_band_members_are_skipped_when_alternatives_exist(roster, make_band) -> None:
    drum1, bass1, gtr1 = roster[0], roster[1], roster[2]
    last = make_band("last", (drum1, D), (bass1, B), (gtr1, G))

    for seed in range(20):
        band = generate_next_band(roster, [], [last], fixed_size=3, rng=random.Random(seed), name_pool=POOL)
        assert band is not None
        assert not set(band.member_ids()) & {"drum1", "bass1", "gtr1"}


def test_tail_of_queue_defines_cooldown_over_history(roster, make_band) -> None:
    drum1, bass1, gtr1 = roster[0], roster[1], roster[2]
    drum2, bass2, keys1 = roster[6], roster[7], roster[3]
    archived = make_band("old", (drum2, D), (bass2, B), (keys1, K))
    queued = make_band("queued", (drum1, D), (bass1, B), (gtr1, G))

    band = generate_next_band(roster, [queued], [archived], fixed_size=3, rng=random.Random(3), name_pool=POOL)

    assert band is not None
    assert not set(band.member_ids()) & {"drum1", "bass1", "gtr1"}


def test_cooldown_musician_fills_role_nobody_else_can(make_musician, make_band) -> None:
    drummer = make_musician("drummer", D)
    roster = [
        drummer,
        make_musician("bass1", B),
        make_musician("gtr1", G),
        make_musician("bass2", B),
        make_musician("gtr2", G),
    ]
    last = make_band("last", (drummer, D), (roster[1], B), (roster[2], G))

    band = generate_next_band(roster, [], [last], fixed_size=3, rng=random.Random(0), name_pool=POOL)

    assert band is not None
    assignments = {member.musician_id: member.role for member in band.members}
    assert assignments == {"drummer": D, "bass2": B, "gtr2": G}


def test_least_played_musician_wins_core_role(make_musician, make_band, ghost) -> None:
    veteran = make_musician("veteran", D)
    rookie = make_musician("rookie", D)
    bassist = make_musician("bassist", B)
    guitarist = make_musician("guitarist", G)
    history = [make_band(f"h{index}", (veteran, D)) for index in range(3)] + [ghost]

    for seed in range(10):
        band = generate_next_band(
            [veteran, rookie, bassist, guitarist], [], history, fixed_size=3, rng=random.Random(seed), name_pool=POOL
        )
        assert band is not None
        assert "rookie" in band.member_ids()
        assert "veteran" not in band.member_ids()


def test_remainder_prefers_fewer_plays(make_musician, make_band, ghost) -> None:
    core = [make_musician("drums", D), make_musician("bass", B), make_musician("gtr", G)]
    fresh = make_musician("fresh", V)
    veteran = make_musician("veteran", V)
    history = [make_band("h1", (veteran, V)), make_band("h2", (veteran, V)), ghost]

    band = generate_next_band([*core, veteran, fresh], [], history, fixed_size=4, rng=random.Random(2), name_pool=POOL)

    assert band is not None
    assert "fresh" in band.member_ids()
    assert "veteran" not in band.member_ids()


def test_remainder_breaks_ties_by_pair_history(make_musician, make_band, ghost) -> None:
    drums = make_musician("drums", D)
    core = [drums, make_musician("bass", B), make_musician("gtr", G)]
    familiar = make_musician("familiar", V)
    stranger = make_musician("stranger", V)
    outsider = make_musician("outsider", K)
    history = [
        make_band("h1", (drums, D), (familiar, V)),
        make_band("h2", (outsider, K), (stranger, V)),
        ghost,
    ]

    for seed in range(10):
        band = generate_next_band(
            [*core, familiar, stranger], [], history, fixed_size=4, rng=random.Random(seed), name_pool=POOL
        )
        assert band is not None
        assert "stranger" in band.member_ids()
        assert "familiar" not in band.member_ids()


def test_insufficient_active_roster_returns_none(make_musician) -> None:
    roster = [
        make_musician("drums", D),
        make_musician("bass", B),
        make_musician("gtr", G, status=MusicianStatus.PAUSED),
        make_musician("keys", K, status=MusicianStatus.PAUSED),
    ]

    assert generate_next_band(roster, [], [], rng=random.Random(0), name_pool=POOL) is None
    assert generate_next_band(roster[:2], [], [], rng=random.Random(0), name_pool=POOL) is None


def test_missing_core_role_returns_none(make_musician) -> None:
    roster = [make_musician("drums", D), make_musician("gtr", G), make_musician("voc", V)]

    assert generate_next_band(roster, [], [], rng=random.Random(0), name_pool=POOL) is None


def test_minimal_roster_scenario_fills_every_role(make_musician) -> None:
    roster = [make_musician("a", D), make_musician("b", B), make_musician("c", G), make_musician("d", V)]

    band = generate_next_band(roster, [], [], rng=_MaxSizeRandom(0), name_pool=POOL)

    assert band is not None
    assignments = {member.musician_id: member.role for member in band.members}
    assert assignments == {"a": D, "b": B, "c": G, "d": V}
    assert band.name in POOL


def test_harmonic_slot_rotates_between_guitar_and_keys(make_musician, make_band, ghost) -> None:
    multi = make_musician("multi", G, K)
    roster = [make_musician("drums", D), make_musician("bass", B), multi]
    history = [make_band("h1", (multi, G)), ghost]

    band = generate_next_band(roster, [], history, fixed_size=3, rng=random.Random(0), name_pool=POOL)

    assert band is not None
    assert {member.musician_id: member.role for member in band.members}["multi"] is K


def test_harmonic_slot_falls_back_to_guitar_when_rotation_lands_elsewhere(make_musician, make_band, ghost) -> None:
    multi = make_musician("multi", G, V, K)
    roster = [make_musician("drums", D), make_musician("bass", B), multi]
    history = [make_band("h1", (multi, G)), ghost]

    band = generate_next_band(roster, [], history, fixed_size=3, rng=random.Random(0), name_pool=POOL)

    assert band is not None
    assert {member.musician_id: member.role for member in band.members}["multi"] is G


def test_several_singers_share_the_voice_slot(make_musician) -> None:
    roster = [
        make_musician("drums", D),
        make_musician("bass", B),
        make_musician("gtr", G),
        make_musician("voc1", V),
        make_musician("voc2", V),
    ]

    band = generate_next_band(roster, [], [], fixed_size=5, rng=random.Random(4), name_pool=POOL)

    assert band is not None
    assert band.roles().count(V) == 2


def test_priority_shuffle_orders_by_play_count(make_musician) -> None:
    musicians = [make_musician(name, V) for name in ("a", "b", "c", "d")]
    counts = {"a": 2, "b": 0, "c": 1, "d": 0}

    ordered = priority_shuffle(musicians, counts, random.Random(11))

    assert {m.id for m in ordered[:2]} == {"b", "d"}
    assert [m.id for m in ordered[2:]] == ["c", "a"]


def test_diagnose_roster_lists_unmet_constraints(make_musician) -> None:
    full = [make_musician("drums", D), make_musician("bass", B), make_musician("keys", K)]
    no_bass = [make_musician("drums", D), make_musician("voc1", V), make_musician("voc2", V)]

    assert diagnose_roster(full) == []
    assert diagnose_roster(no_bass) == ["bassist", "harmonic player (guitar or keys)"]
    assert diagnose_roster(full[:2]) == ["at least 3 active musicians"]
