from io import StringIO

from rich.console import Console

from client.feed_controller import LiveFeedController
from client.visualizer import Visualizer
from shared.events import Topic
from shared.wire import parse_payload


def render(visualizer):
    console = Console(file=StringIO(), width=140, height=48, record=True)
    console.print(visualizer.generate_layout())
    return console.export_text()


def test_local_mode_renders_controller_state(simulator, scheduler, bus):
    controller = LiveFeedController(simulator=simulator, scheduler=scheduler, bus=bus)
    visualizer = Visualizer(controller=controller, title="Test Feed")
    visualizer.attach(bus)

    text = render(visualizer)

    assert "Test Feed" in text
    assert "ORD-101" in text
    assert "4,567.89" in text
    assert "Kitchen Equipment Alert" in text
    # Acknowledged alerts stay off the board
    assert "Wagyu beef stock" not in text


def test_lifecycle_topics_drive_the_status(bus):
    visualizer = Visualizer()
    visualizer.attach(bus)

    bus.publish(Topic.CONNECTION_ESTABLISHED)
    assert visualizer.status == "CONNECTED"

    bus.publish(Topic.MAX_RECONNECT_ATTEMPTS_REACHED)
    assert visualizer.status == "GAVE UP"
    assert len(visualizer.timeline) == 2


def test_remote_mode_renders_pushed_feed(bus):
    visualizer = Visualizer(title="Remote")
    visualizer.attach(bus)
    topic, payload = parse_payload("live-feed-data", {
        "feedType": "metrics",
        "data": {
            "currentRevenue": 1200.5,
            "ordersToday": 12,
            "avgWaitTime": 18,
            "tableOccupancy": 60,
            "kitchenEfficiency": 90,
            "customerSatisfaction": 4.5,
            "staffPerformance": 85,
        },
        "timestamp": "2024-05-17T18:45:00Z",
    })

    bus.publish(topic, payload)
    text = render(visualizer)

    assert visualizer.remote_feed["metrics"]["ordersToday"] == 12
    assert "1,200.50" in text
    assert "live_feed_data" in text


def test_remote_mode_waits_for_data():
    text = render(Visualizer())

    assert "Waiting for data" in text
    assert "No open alerts" in text
