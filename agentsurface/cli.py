"""CLI for AgentSurface - coordinator, worker agents, and stream tools."""

from __future__ import annotations

import asyncio
import json

import click

from agentsurface import config


@click.group()
@click.version_option(version="0.1.0", prog_name="agentsurface")
def main() -> None:
    """AgentSurface - delegate tasks to agents and stream UI state.

    Run the coordinator, run a worker agent, or talk to either from the
    command line.
    """
    pass


@main.command()
@click.option("--port", default=config.MAIN_PORT, help="Port to run the coordinator on")
@click.option("--host", default=config.MAIN_HOST, help="Host to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
def serve(port: int, host: str, reload: bool) -> None:
    """Start the coordinator HTTP server."""
    import uvicorn

    click.echo(f"Starting AgentSurface coordinator on {host}:{port}")
    uvicorn.run(
        "agentsurface.broker:app",
        host=host,
        port=port,
        reload=reload,
    )


@main.command()
@click.option("--name", default="echo-agent", help="Agent name published in its card")
@click.option("--kind", default="echo", help="Artifact kind of every result")
@click.option("--port", default=3001, help="Port to run the agent on")
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option(
    "--public-url",
    default=None,
    help="Base URL advertised in the card (defaults to http://localhost:PORT)",
)
def agent(name: str, kind: str, port: int, host: str, public_url: str | None) -> None:
    """Run a worker agent that echoes its task input.

    \b
    Example:
        agentsurface agent --name weather-agent --kind weather --port 3001
    """
    import uvicorn

    from agentsurface.agent_server import create_agent_app, echo_handler

    url = public_url or f"http://localhost:{port}"
    app = create_agent_app(name=name, kind=kind, handler=echo_handler, public_url=url)

    click.echo(f"Starting agent '{name}' on {host}:{port}")
    uvicorn.run(app, host=host, port=port)


@main.command()
@click.argument("base_url")
def card(base_url: str) -> None:
    """Fetch and print an agent's card.

    \b
    Example:
        agentsurface card http://localhost:3001
    """
    from agentsurface.discovery import DiscoveryError
    from agentsurface.rpc import AgentClient

    async def fetch() -> dict:
        async with AgentClient() as client:
            descriptor = await client.discovery.get_descriptor(base_url)
            return descriptor.to_wire()

    try:
        result = asyncio.run(fetch())
    except DiscoveryError as e:
        raise click.ClickException(str(e)) from e

    click.echo(json.dumps(result, indent=2))


@main.command()
@click.argument("base_url")
@click.option("--query", "-q", default=None, help="Shorthand for --input '{\"query\": ...}'")
@click.option("--input", "input_json", default=None, help="Task input as JSON")
@click.option("--timeout", "-t", default=config.AGENT_TIMEOUT, help="Seconds to wait for the result")
def call(base_url: str, query: str | None, input_json: str | None, timeout: float) -> None:
    """Send one task to an agent and print its artifact.

    \b
    Example:
        agentsurface call http://localhost:3001 -q "Shanghai tomorrow"
    """
    from agentsurface.discovery import DiscoveryError
    from agentsurface.rpc import AgentClient, RpcError

    if input_json is not None:
        try:
            task_input = json.loads(input_json)
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"not valid JSON: {e}", param_hint="--input") from e
    else:
        task_input = {"query": query or ""}

    async def run() -> dict:
        async with AgentClient() as client:
            artifact = await client.call_agent(base_url, task_input, timeout=timeout)
            return artifact.to_wire()

    try:
        result = asyncio.run(run())
    except RpcError as e:
        raise click.ClickException(f"{e.kind.value}: {e}") from e
    except DiscoveryError as e:
        raise click.ClickException(str(e)) from e

    click.echo(json.dumps(result, indent=2, ensure_ascii=False))


@main.command()
@click.option(
    "--url",
    default=f"http://localhost:{config.MAIN_PORT}",
    help="Coordinator base URL",
)
@click.option("--surface", "-s", default=config.DEFAULT_SURFACE_ID, help="Surface id")
@click.option("--frames", "-n", default=None, type=int, help="Stop after this many frames")
def watch(url: str, surface: str, frames: int | None) -> None:
    """Attach to a surface stream and print the rendered surface.

    \b
    Example:
        agentsurface watch --surface main
    """
    from agentsurface.client import SurfaceClient, render_text

    def show(tree) -> None:
        click.echo(f"\n{'=' * 60}")
        for line in render_text(tree):
            click.echo(line)

    async def run() -> None:
        async with SurfaceClient(url, surface_id=surface, on_render=show) as client:
            await client.run(max_frames=frames)

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
