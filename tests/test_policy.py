"""Routing rules for every mode and the engine's state transitions."""

import random

import pytest

from oscbridge.policy import PolicyEngine, RoutingMode
from oscbridge.protocol import Number, OscMessage, Text
from oscbridge.session import SessionRegistry


def args(*values):
    return OscMessage.of("/unused", *values).args


def connect_many(engine, n):
    ids = []
    for _ in range(n):
        session = engine.registry.add()
        engine.on_connect(session.user_id)
        ids.append(session.user_id)
    return ids


def disconnect(engine, user_id):
    engine.registry.remove(user_id)
    return engine.on_disconnect(user_id)


# =============================================================================
# separate
# =============================================================================


def test_separate_prefixes_and_reports_count(engine, emitter):
    (user,) = connect_many(engine, 1)

    engine.dispatch(user, "/press", args(1))

    assert emitter.sent() == [("/user/1/press", [1.0]), ("/users/count", [1.0])]


def test_separate_round_trip_for_user_five(engine, emitter):
    ids = connect_many(engine, 5)
    for user_id in ids[:4]:
        disconnect(engine, user_id)

    engine.dispatch(5, "/mouse/x", args(0.7))

    assert emitter.sent() == [("/user/5/mouse/x", [0.7]), ("/users/count", [1.0])]


def test_separate_forwards_unknown_addresses_and_strings(engine, emitter):
    connect_many(engine, 2)

    engine.dispatch(2, "/custom/label", (Text("hello"),))

    assert emitter.sent() == [("/user/2/custom/label", ["hello"]), ("/users/count", [2.0])]


def test_xy_updates_last_position_in_any_mode(engine):
    (user,) = connect_many(engine, 1)

    engine.dispatch(user, "/mouse/xy", args(0.1, 0.3))

    assert engine.registry.get(user).last_position == (0.1, 0.3)


# =============================================================================
# single
# =============================================================================


def test_single_forwards_only_the_active_user(engine, emitter):
    a, b = connect_many(engine, 2)
    engine.set_mode("single")

    engine.dispatch(b, "/mouse/x", args(0.2))
    assert emitter.sent() == []

    engine.dispatch(a, "/mouse/x", args(0.2))
    assert emitter.sent() == [("/mouse/x", [0.2]), ("/active/user", [float(a)])]


def test_single_late_joiner_is_not_active(engine, emitter):
    engine.set_mode("single")
    (a,) = connect_many(engine, 1)
    (b,) = connect_many(engine, 1)

    assert engine.active_user == a
    assert engine.dispatch(b, "/mouse/x", args(0.2)) == []
    assert emitter.sent() == []


def test_request_active_only_in_single_mode(engine):
    a, b = connect_many(engine, 2)

    assert engine.request_active(b) is False

    engine.set_mode("single")
    assert engine.active_user == a
    assert engine.request_active(b) is True
    assert engine.active_user == b
    assert engine.is_active(a) is False
    assert engine.is_active(b) is True


def test_request_active_from_unknown_session_is_refused(engine):
    connect_many(engine, 1)
    engine.set_mode("single")

    assert engine.request_active(99) is False
    assert engine.active_user == 1


def test_active_user_disconnect_reassigns_lowest_remaining(engine):
    a, b, c = connect_many(engine, 3)
    engine.set_mode("single")
    engine.request_active(b)

    assert disconnect(engine, b) is True
    assert engine.active_user == a

    assert disconnect(engine, c) is False
    assert engine.active_user == a

    assert disconnect(engine, a) is True
    assert engine.active_user is None


def test_single_mode_active_user_is_never_dangling():
    rng = random.Random(1234)
    engine = PolicyEngine(SessionRegistry(zone_count=4), initial_mode=RoutingMode.SINGLE)

    for _ in range(300):
        registry = engine.registry
        roll = rng.random()
        if registry.count and roll < 0.35:
            disconnect(engine, rng.choice(registry.ids()))
        elif registry.count and roll < 0.5:
            engine.request_active(rng.choice(registry.ids()))
        else:
            connect_many(engine, 1)

        if registry.count:
            assert engine.active_user in registry
        else:
            assert engine.active_user is None


# =============================================================================
# blended
# =============================================================================


def test_blended_emits_mean_of_all_clients(engine, emitter):
    a, b = connect_many(engine, 2)
    engine.set_mode("blended")

    engine.dispatch(a, "/mouse/xy", args(0.0, 0.0))
    emitter.clear()
    engine.dispatch(b, "/mouse/xy", args(1.0, 1.0))

    assert emitter.sent() == [
        ("/mouse/x", [pytest.approx(0.5)]),
        ("/mouse/y", [pytest.approx(0.5)]),
        ("/mouse/xy", [pytest.approx(0.5), pytest.approx(0.5)]),
        ("/users/count", [2.0]),
    ]


def test_blended_single_axis_seeds_other_axis(engine):
    a, b = connect_many(engine, 2)
    engine.set_mode("blended")

    messages = engine.dispatch(a, "/mouse/x", args(0.1))

    assert engine.registry.get(a).last_position == (0.1, 0.5)
    xy = next(m for m in messages if m.address == "/mouse/xy")
    assert xy.values() == [pytest.approx(0.3), pytest.approx(0.5)]

    engine.dispatch(b, "/mouse/y", args(0.9))
    assert engine.registry.get(b).last_position == (0.5, 0.9)


def test_blended_press_passes_through_without_aggregation(engine, emitter):
    (a,) = connect_many(engine, 1)
    engine.set_mode("blended")

    engine.dispatch(a, "/press", args(1))

    assert emitter.sent() == [("/press", [1.0])]


def test_blended_drops_departed_client_from_average(engine):
    a, b, c = connect_many(engine, 3)
    engine.set_mode("blended")
    engine.dispatch(a, "/mouse/xy", args(0.0, 0.0))
    engine.dispatch(b, "/mouse/xy", args(1.0, 1.0))
    engine.dispatch(c, "/mouse/xy", args(1.0, 0.0))

    disconnect(engine, c)
    messages = engine.dispatch(a, "/mouse/xy", args(0.0, 0.0))

    xy = next(m for m in messages if m.address == "/mouse/xy")
    count = next(m for m in messages if m.address == "/users/count")
    assert xy.values() == [pytest.approx(0.5), pytest.approx(0.5)]
    assert count.values() == [2.0]


def test_blended_ignores_position_without_numbers(engine, emitter):
    (a,) = connect_many(engine, 1)
    engine.set_mode("blended")

    engine.dispatch(a, "/mouse/xy", args(0.2))
    engine.dispatch(a, "/mouse/x", (Text("left"),))

    assert emitter.sent() == []
    assert engine.registry.get(a).last_position == (0.5, 0.5)


# =============================================================================
# zones
# =============================================================================


def test_switching_to_zones_assigns_and_shares(engine):
    connect_many(engine, 5)

    engine.set_mode("zones")

    zones = {s.user_id: s.zone for s in engine.registry.all()}
    assert zones == {1: 1, 2: 2, 3: 3, 4: 4, 5: 1}


def test_connect_in_zones_mode_assigns_free_zone(engine):
    engine.set_mode("zones")
    a, b = connect_many(engine, 2)

    assert engine.zone_for(a) == 1
    assert engine.zone_for(b) == 2


def test_zones_prefixes_and_reports_inside_own_zone(engine, emitter):
    a, b = connect_many(engine, 2)
    engine.set_mode("zones")

    engine.dispatch(b, "/mouse/xy", args(0.75, 0.25))
    assert emitter.sent() == [
        ("/zone/2/mouse/xy", [0.75, 0.25]),
        ("/zone/2/active", [1.0]),
    ]

    emitter.clear()
    engine.dispatch(a, "/mouse/xy", args(0.75, 0.75))
    assert emitter.sent() == [
        ("/zone/1/mouse/xy", [0.75, 0.75]),
        ("/zone/1/active", [0.0]),
    ]


def test_zones_press_and_other_addresses(engine, emitter):
    (a,) = connect_many(engine, 1)
    engine.set_mode("zones")

    engine.dispatch(a, "/press", args(0))
    engine.dispatch(a, "/mouse/x", args(0.3))

    assert emitter.sent() == [("/zone/1/press", [0.0]), ("/zone/1/mouse/x", [0.3])]


def test_zone_is_reported_only_in_zones_mode(engine):
    (a,) = connect_many(engine, 1)
    engine.set_mode("zones")
    assert engine.zone_for(a) == 1

    engine.set_mode("separate")
    assert engine.zone_for(a) is None


def test_set_mode_zones_twice_is_idempotent(engine):
    connect_many(engine, 3)

    engine.set_mode("zones")
    first = {s.user_id: s.zone for s in engine.registry.all()}
    engine.set_mode("zones")
    second = {s.user_id: s.zone for s in engine.registry.all()}

    assert first == second


# =============================================================================
# engine
# =============================================================================


def test_unknown_mode_is_rejected(engine):
    assert engine.set_mode("chaos") is False
    assert engine.mode == RoutingMode.SEPARATE


def test_every_mode_has_a_policy(engine):
    for mode in RoutingMode:
        assert engine.set_mode(mode) is True
        assert engine.mode == mode


def test_is_active_outside_single_mode(engine):
    a, b = connect_many(engine, 2)

    for mode in ("separate", "blended", "zones"):
        engine.set_mode(mode)
        assert engine.is_active(a) and engine.is_active(b)


def test_route_does_not_send(engine, emitter):
    (a,) = connect_many(engine, 1)

    messages = engine.route(a, "/press", (Number(1.0),))

    assert [m.address for m in messages] == ["/user/1/press", "/users/count"]
    assert emitter.sent() == []


def test_initial_zones_mode_with_existing_sessions():
    registry = SessionRegistry(zone_count=9)
    registry.add()
    registry.add()
    engine = PolicyEngine(registry, initial_mode=RoutingMode.ZONES)

    assert [s.zone for s in registry.all()] == [1, 2]
    assert engine.mode == RoutingMode.ZONES
