"""
test_events.py - Unit tests for the event log
"""

import logging

from vesting import ClaimEvent, DepositEvent, EventLog


def _deposit(amount=10):
    return DepositEvent("TKN", "alice", amount, 100)


def test_emit_is_not_visible_until_publish():
    log = EventLog()
    seen = []
    log.subscribe(seen.append)
    log.emit(_deposit())
    assert log.history == []
    assert seen == []

    log.publish()
    assert log.history == [_deposit()]
    assert seen == [_deposit()]


def test_discard_drops_events_after_mark():
    log = EventLog()
    log.emit(_deposit(1))
    mark = log.mark()
    log.emit(_deposit(2))
    log.emit(_deposit(3))
    log.discard(mark)
    log.publish()
    assert [e.amount for e in log.history] == [1]


def test_unsubscribe():
    log = EventLog()
    seen = []
    log.subscribe(seen.append)
    log.unsubscribe(seen.append)
    log.emit(_deposit())
    log.publish()
    assert seen == []


def test_event_ids():
    assert _deposit().event_id == "deposit:TKN:alice:10:100"
    assert ClaimEvent("TKN", "bob", 5, 7).event_id == "claim:TKN:bob:5:7"


def test_failing_listener_is_isolated(caplog):
    log = EventLog()
    seen = []

    def broken(event):
        raise RuntimeError("boom")

    log.subscribe(broken)
    log.subscribe(seen.append)
    log.emit(_deposit(1))
    log.emit(_deposit(2))

    with caplog.at_level(logging.ERROR, logger="vesting.events"):
        log.publish()

    assert [e.amount for e in log.history] == [1, 2]
    assert [e.amount for e in seen] == [1, 2]
    failures = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(failures) == 2
    assert failures[0].exc_info[0] is RuntimeError


def test_history_complete_before_listeners_run():
    log = EventLog()
    lengths = []
    log.subscribe(lambda event: lengths.append(len(log.history)))
    log.emit(_deposit(1))
    log.emit(_deposit(2))
    log.publish()
    assert lengths == [2, 2]
