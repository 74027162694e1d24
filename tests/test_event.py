from datetime import timedelta
from ipaddress import IPv4Address

import pytest

from netbench.event import (
    NetworkEvent,
    NetworkEventPayload,
    NetworkEvents,
    UpdateLinkStatus,
    initial_link_statuses,
)
from netbench.spec import NetworkLinkSpec


def _link(link_id: str) -> NetworkLinkSpec:
    return NetworkLinkSpec(
        id=link_id,
        source=IPv4Address("1.1.1.1"),
        target=IPv4Address("2.2.2.2"),
        delay=timedelta(milliseconds=10),
        bandwidth_bps=1000,
    )


def _event(seconds: int, link_id: str, status=None, **kwargs) -> NetworkEvent:
    return NetworkEvent(
        timedelta(seconds=seconds), NetworkEventPayload(link_id, status=status, **kwargs)
    )


def test_initial_status_is_opposite_of_first_event():
    events = [
        _event(0, "router2-router1", UpdateLinkStatus.DOWN),
        _event(10, "router2-router1", UpdateLinkStatus.UP),
        _event(5, "other", UpdateLinkStatus.UP),
    ]
    result = NetworkEvents(events, [_link("router2-router1"), _link("other"), _link("idle")])
    assert [e.relative_time for e in result.sorted_events] == sorted(
        e.relative_time for e in events
    )
    statuses = {p.link_id: p.status for p in result.initial_events}
    assert statuses == {
        "router2-router1": UpdateLinkStatus.UP,
        "other": UpdateLinkStatus.DOWN,
        "idle": UpdateLinkStatus.UP,
    }


def test_events_without_status_are_ignored_for_initial_status():
    events = [
        _event(0, "a", bandwidth_bps=5),
        _event(1, "a", UpdateLinkStatus.UP),
    ]
    initial = initial_link_statuses(events, [_link("a")])
    assert len(initial) == 1
    assert initial[0].status is UpdateLinkStatus.DOWN
    assert initial[0].bandwidth_bps is None


def test_links_without_events_are_up_in_link_order():
    initial = initial_link_statuses([], [_link("x"), _link("y")])
    assert [(p.link_id, p.status) for p in initial] == [
        ("x", UpdateLinkStatus.UP),
        ("y", UpdateLinkStatus.UP),
    ]


def test_sort_is_stable():
    first = _event(3, "a", UpdateLinkStatus.DOWN)
    second = _event(3, "b", UpdateLinkStatus.DOWN)
    result = NetworkEvents([first, second], [])
    assert result.sorted_events == [first, second]


def test_updated_status():
    assert _event(0, "a", UpdateLinkStatus.DOWN).updated_status() is UpdateLinkStatus.DOWN
    assert _event(0, "a").updated_status() is None


def test_to_dict_omits_unset_fields():
    assert NetworkEventPayload("a").to_dict() == {"linkId": "a"}


def test_to_dict_uses_camel_case_and_lowercase_status():
    payload = NetworkEventPayload("a", status=UpdateLinkStatus.DOWN, packet_loss_ratio=0.5)
    data = payload.to_dict()
    assert data["status"] == "down"
    assert data["packetLossRatio"] == 0.5


def test_round_trip():
    payload = NetworkEventPayload(
        "link",
        status=UpdateLinkStatus.UP,
        bandwidth_bps=8000,
        delay=timedelta(milliseconds=1500),
        extra_delay=timedelta(microseconds=7),
        extra_delay_ratio=0.1,
        packet_duplication_ratio=0.2,
        packet_loss_ratio=0.3,
        congestion_event_ratio=0.4,
    )
    assert NetworkEventPayload.from_dict(payload.to_dict()) == payload


def test_duration_serialized_as_secs_and_nanos():
    data = NetworkEventPayload("a", delay=timedelta(seconds=2)).to_dict()
    assert data["delay"] == {"secs": 2, "nanos": 0}


@pytest.mark.parametrize(
    "data",
    [
        {},
        {"linkId": 3},
        {"linkId": "a", "status": "sideways"},
        {"linkId": "a", "delay": 5},
        {"linkId": "a", "bandwidthBps": -1},
    ],
)
def test_from_dict_rejects_invalid(data):
    with pytest.raises(ValueError):
        NetworkEventPayload.from_dict(data)