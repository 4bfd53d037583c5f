"""
CLI entrypoint for the restaurant live feed.
"""
import asyncio
import random
from typing import Optional

import typer

from client.feed_controller import LiveFeedController
from client.transport import ReconnectingTransport
from client.visualizer import Visualizer
from shared.client_utils import configure_logging, http_base_url
from shared.config import settings
from shared.events import Topic
from simulator.engine import LiveOpsSimulator

app = typer.Typer(help="Restaurant live feed: hub, local simulation and remote dashboard")


@app.callback()
def main(log_level: str = typer.Option(settings.LOG_LEVEL, help="loguru level")):
    configure_logging(log_level)


@app.command()
def server():
    """Start the real-time hub using Uvicorn."""
    import uvicorn
    typer.echo(f"Starting hub on port {settings.PORT}...")
    uvicorn.run("server.main:app", host="0.0.0.0", port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


@app.command()
def feed(
    duration: float = typer.Option(60.0, help="How long to run, in seconds"),
    interval: int = typer.Option(settings.LIVE_FEED_TICK_MS, help="Tick period in milliseconds"),
    seed: Optional[int] = typer.Option(None, help="Seed for a reproducible run"),
):
    """Run the live operations simulation locally with the dashboard."""
    async def run():
        controller = LiveFeedController(
            simulator=LiveOpsSimulator(rng=random.Random(seed)),
            tick_interval_ms=interval,
        )
        await Visualizer(controller=controller, title="Live Operations (local)").run(duration)

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


@app.command()
def connect(
    restaurant: str = typer.Option(..., help="Restaurant id to join"),
    user: Optional[str] = typer.Option(None, help="User id sent with the handshake"),
    token: Optional[str] = typer.Option(None, envvar="LIVE_FEED_TOKEN", help="Bearer token"),
    url: str = typer.Option(settings.SOCKET_URL, help="Hub WebSocket URL"),
    duration: float = typer.Option(60.0, help="How long to stay connected, in seconds"),
):
    """Connect to a hub and watch the restaurant's live feed."""
    async def run():
        transport = ReconnectingTransport(url=url)
        visualizer = Visualizer(transport=transport, title=f"Restaurant {restaurant}")

        def on_connected(_payload):
            transport.subscribe_to_live_feed(restaurant, list(settings.HUB_FEED_TYPES))

        transport.on(Topic.CONNECTION_ESTABLISHED, on_connected)
        transport.connect(restaurant, user_id=user, token=token)
        await visualizer.run(duration)

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


@app.command()
def stats(url: str = typer.Option(settings.SOCKET_URL, help="Hub WebSocket URL")):
    """Query the hub for live connection stats."""
    import httpx
    resp = httpx.get(f"{http_base_url(url)}/stats")
    typer.echo(resp.json())


if __name__ == "__main__":
    app()
