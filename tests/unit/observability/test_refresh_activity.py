"""Tests for RefreshActivity accounting."""

from presigned_media.observability.refresh_activity import RefreshActivity, RefreshObserver


def test_is_a_refresh_observer():
    assert isinstance(RefreshActivity(), RefreshObserver)


def test_loading_edges_only():
    activity = RefreshActivity()
    edges = []
    activity.subscribe(edges.append)

    activity.refresh_started("a")
    activity.refresh_started("b")
    assert activity.loading
    activity.refresh_finished("a", True)
    assert activity.loading
    activity.refresh_finished("b", False)

    assert not activity.loading
    assert edges == [True, False]


def test_snapshot_counts():
    activity = RefreshActivity()
    activity.refresh_started("a")

    snap = activity.snapshot()
    assert snap.status == "refreshing"
    assert snap.inflight == 1
    assert snap.last_key == "a"

    activity.refresh_finished("a", False)
    snap = activity.snapshot()
    assert snap.status == "idle"
    assert snap.failed == 1
    assert snap.succeeded == 0
    assert snap.to_dict(by_alias=True)["lastKey"] == "a"


def test_unsubscribe():
    activity = RefreshActivity()
    edges = []
    unsubscribe = activity.subscribe(edges.append)
    unsubscribe()
    unsubscribe()

    activity.refresh_started("a")
    assert edges == []


def test_failing_subscriber_does_not_block_others(caplog):
    activity = RefreshActivity()
    edges = []

    def broken(_loading):
        raise RuntimeError("boom")

    activity.subscribe(broken)
    activity.subscribe(edges.append)
    activity.refresh_started("a")

    assert edges == [True]
    assert "Loading subscriber failed" in caplog.text


def test_finish_without_start_never_goes_negative():
    activity = RefreshActivity()
    activity.refresh_finished("a", True)
    assert activity.snapshot().inflight == 0
