import sys
from pathlib import Path

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from models.runner import Snapshot
from odds_factories import T0, runner, snapshot
from services.ledger import Ledger, odds_delta


def _history():
    return [
        snapshot(0, runner(1, 3.0), runner(2, 5.0)),
        snapshot(2, runner(1, 2.8), runner(3, 7.0)),
        snapshot(4, runner(1, 2.8), runner(2, 4.5)),
        snapshot(6, runner(3, None)),
    ]


def test_odds_delta_uses_decimal_arithmetic():
    assert odds_delta(2.3, 2.1) == 0.2
    assert odds_delta(2.8, 3.0) == -0.2


def test_replay_of_nothing_is_empty():
    ledger = Ledger.replay([])

    assert ledger.initial_odds == {}
    assert ledger.last_known_odds == {}
    assert ledger.last_recorded_movement == {}
    assert ledger.snapshots_applied == 0


def test_initial_odds_is_first_snapshot_only():
    ledger = Ledger.replay(_history())

    assert set(ledger.initial_odds) == {1, 2}
    assert ledger.initial_odds[1].odds == 3.0
    assert ledger.initial_odds[2].odds == 5.0
    # Runner 3 first appears later and never joins the baseline.
    assert 3 not in ledger.initial_odds


def test_last_known_is_last_write_wins():
    ledger = Ledger.replay(_history())

    assert ledger.last_known_odds[1].odds == 2.8
    assert ledger.last_known_odds[2].odds == 4.5
    # Absent odds overwrite too: runner 3 was withdrawn in the last snapshot.
    assert ledger.last_known_odds[3].odds is None
    assert ledger.last_timestamp == _history()[-1].timestamp


def test_runner_missing_from_later_snapshots_keeps_its_last_entry():
    ledger = Ledger.replay([
        snapshot(0, runner(1, 3.0), runner(2, 5.0)),
        snapshot(2, runner(1, 2.5)),
    ])

    assert ledger.last_known_odds[2].odds == 5.0


def test_applying_in_chunks_matches_full_replay():
    history = _history()
    full = Ledger.replay(history)

    chunked = Ledger.replay(history[:2])
    for snap in history[2:]:
        chunked.apply(snap)

    assert chunked.copy_maps() == full.copy_maps()
    assert chunked.snapshots_applied == full.snapshots_applied


def test_recorded_movement_keeps_last_nonzero_delta():
    ledger = Ledger.replay([
        snapshot(0, runner(1, 3.0)),
        snapshot(2, runner(1, 2.8)),
        snapshot(4, runner(1, 2.8)),
        snapshot(6, runner(1, 2.8)),
    ])

    assert ledger.last_recorded_movement == {1: -0.2}


def test_recorded_movement_compares_against_runner_last_seen_entry():
    ledger = Ledger.replay([
        snapshot(0, runner(1, 3.0), runner(2, 6.0)),
        snapshot(2, runner(1, 3.5)),
        snapshot(4, runner(2, 5.0)),
    ])

    assert ledger.last_recorded_movement[1] == 0.5
    assert ledger.last_recorded_movement[2] == -1.0


def test_no_movement_recorded_across_missing_odds():
    ledger = Ledger.replay([
        snapshot(0, runner(1, 3.0)),
        snapshot(2, runner(1, None)),
        snapshot(4, runner(1, 4.0)),
    ])

    assert 1 not in ledger.last_recorded_movement


def test_empty_first_snapshot_is_still_the_baseline():
    ledger = Ledger.replay([
        Snapshot(timestamp=T0, runners={}),
        snapshot(2, runner(1, 3.0)),
        snapshot(4, runner(1, 2.5)),
    ])

    assert ledger.initial_odds == {}
    assert ledger.last_known_odds[1].odds == 2.5
    assert ledger.last_recorded_movement == {1: -0.5}
    assert ledger.snapshots_applied == 3


def test_corrupt_first_file_yields_empty_baseline(store, snapshot_dir):
    snapshot_dir.mkdir(parents=True)
    (snapshot_dir / "odds_20240501_085900.snapshot").write_text("{not json")
    store.append(snapshot(0, runner(1, 3.0)))
    store.append(snapshot(2, runner(1, 2.8)))

    ledger = Ledger.replay(snap for _ref, snap in store.iter_snapshots())

    assert ledger.initial_odds == {}
    assert ledger.last_known_odds[1].odds == 2.8
    assert ledger.snapshots_applied == 3


def test_first_applied_snapshot_sets_baseline_once():
    ledger = Ledger()
    ledger.apply(snapshot(0, runner(1, 3.0)))
    ledger.apply(snapshot(2, runner(1, 2.0), runner(2, 9.0)))

    assert set(ledger.initial_odds) == {1}
    assert ledger.initial_odds[1].odds == 3.0


def test_copy_maps_are_detached_from_ledger():
    ledger = Ledger.replay([snapshot(0, runner(1, 3.0))])
    initial, last_known, movements = ledger.copy_maps()

    ledger.apply(snapshot(2, runner(1, 2.0), runner(2, 9.0)))

    assert 2 not in last_known
    assert last_known[1].odds == 3.0
    assert movements == {}
    assert initial == ledger.initial_odds
