from shared.events import EventBus, Topic


def test_publish_reaches_every_listener(bus):
    seen = []
    bus.subscribe("order", lambda p: seen.append(("a", p)))
    bus.subscribe("order", lambda p: seen.append(("b", p)))

    bus.publish("order", 42)

    assert sorted(seen) == [("a", 42), ("b", 42)]


def test_same_callback_is_registered_once(bus):
    calls = []

    def listener(payload):
        calls.append(payload)

    bus.subscribe("order", listener)
    bus.subscribe("order", listener)
    bus.publish("order", "x")

    assert calls == ["x"]
    assert bus.listener_count("order") == 1


def test_unsubscribe_unknown_callback_is_a_noop(bus):
    bus.unsubscribe("never-registered", print)
    bus.subscribe("order", print)
    bus.unsubscribe("order", len)

    assert bus.listener_count("order") == 1


def test_unsubscribed_listener_is_not_called(bus):
    calls = []
    listener = bus.subscribe("order", calls.append)
    bus.unsubscribe("order", listener)

    bus.publish("order", 1)

    assert calls == []


def test_publish_without_payload_passes_none(bus):
    calls = []
    bus.subscribe(Topic.CONNECTION_ESTABLISHED, calls.append)

    bus.publish(Topic.CONNECTION_ESTABLISHED)

    assert calls == [None]


def test_topic_and_plain_string_name_the_same_listeners(bus):
    calls = []
    bus.subscribe(Topic.PONG, calls.append)

    bus.publish("pong", "via-string")

    assert calls == ["via-string"]


def test_failing_listener_is_isolated_and_logged(bus, log_messages):
    calls = []

    def broken(_payload):
        raise RuntimeError("boom")

    bus.subscribe("order", broken)
    bus.subscribe("order", calls.append)

    bus.publish("order", "still delivered")

    assert calls == ["still delivered"]
    errors = [r for r in log_messages if r["level"].name == "ERROR"]
    assert errors and "listener_error" in errors[0]["message"]


def test_listener_may_unsubscribe_itself_during_publish(bus):
    calls = []

    def once(payload):
        calls.append(payload)
        bus.unsubscribe("order", once)

    bus.subscribe("order", once)
    bus.publish("order", 1)
    bus.publish("order", 2)

    assert calls == [1]


def test_clear_drops_every_topic():
    bus = EventBus()
    bus.subscribe("a", print)
    bus.subscribe("b", print)

    bus.clear()

    assert bus.listener_count("a") == 0
    assert bus.listener_count("b") == 0
