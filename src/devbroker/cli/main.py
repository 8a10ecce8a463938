import time
import typer
from pathlib import Path

from devbroker.config.loader import DEFAULT_CONFIG_FILE
from devbroker.config.properties import PropertySource
from devbroker.core.errors import ConfigurationError, ProvisionError
from devbroker.core.models import DevServicesSettings, LaunchMode
from devbroker.cli.formatter import OutputFormatter, configure_logging
from devbroker.infrastructure.docker_runtime import DockerContainerRuntime
from devbroker.runtime import DevServicesController, InMemoryConfigPublisher
from devbroker.runtime.container import ContainerRuntime
from devbroker.runtime.decision import DecisionEngine
from devbroker.runtime.publisher import (
    clear_connection_metadata,
    read_connection_metadata,
    write_connection_metadata,
)
from devbroker.runtime.registry import RegistryState

app = typer.Typer(name="devbroker", help="AMQP Dev Services CLI", rich_markup_mode=None)

_MODES = {
    "dev": LaunchMode.DEVELOPMENT,
    "test": LaunchMode.TEST,
}


def _create_runtime() -> ContainerRuntime:
    return DockerContainerRuntime()


def _read_option_value(tokens: list[str], index: int, option_name: str) -> tuple[str, int]:
    if index + 1 >= len(tokens):
        raise typer.BadParameter(f"Option {option_name} requires a value.")
    return tokens[index + 1], index + 2


def _parse_options(tokens: list[str], flags: set[str]) -> tuple[Path, LaunchMode, set[str]]:
    root_dir = Path(".")
    mode = LaunchMode.DEVELOPMENT
    enabled_flags: set[str] = set()
    extras: list[str] = []

    index = 0
    while index < len(tokens):
        token = tokens[index]
        if token in ("--root", "-r"):
            root_value, index = _read_option_value(tokens, index, token)
            root_dir = Path(root_value)
            continue
        if token.startswith("--root="):
            root_dir = Path(token.split("=", 1)[1])
            index += 1
            continue
        if token in ("--mode", "-m") or token.startswith("--mode="):
            if token.startswith("--mode="):
                mode_value = token.split("=", 1)[1]
                index += 1
            else:
                mode_value, index = _read_option_value(tokens, index, token)
            if mode_value not in _MODES:
                raise typer.BadParameter("Option --mode must be one of: dev, test")
            mode = _MODES[mode_value]
            continue
        if token in flags:
            enabled_flags.add(token)
            index += 1
            continue
        if token.startswith("-"):
            raise typer.BadParameter(f"Unknown option: {token}")
        extras.append(token)
        index += 1

    if extras and root_dir == Path("."):
        root_dir = Path(extras.pop(0))
    if extras:
        raise typer.BadParameter(f"Unexpected arguments: {' '.join(extras)}")

    return root_dir, mode, enabled_flags


def _load_properties(root_dir: Path) -> PropertySource:
    try:
        return PropertySource.from_file(root_dir / DEFAULT_CONFIG_FILE)
    except ConfigurationError as e:
        OutputFormatter.log(f"Configuration Error: {e}", severity="error")
        raise typer.Exit(code=1)


def _load_settings(properties: PropertySource) -> DevServicesSettings:
    try:
        return DevServicesSettings.from_properties(properties)
    except ConfigurationError as e:
        OutputFormatter.log(f"Configuration Error: {e}", severity="error")
        raise typer.Exit(code=1)


@app.command(context_settings={"allow_extra_args": True, "ignore_unknown_options": True})
def check(
    ctx: typer.Context,
):
    """
    Show what the next cycle would do and why, without starting anything.
    """
    root_dir, mode, _ = _parse_options(list(ctx.args), flags=set())
    configure_logging("DEBUG")

    properties = _load_properties(root_dir)
    settings = _load_settings(properties)
    outcome = DecisionEngine(_create_runtime()).evaluate(
        settings,
        properties,
        RegistryState(),
        full_reset=mode == LaunchMode.TEST,
    )

    OutputFormatter.log(f"Image: {settings.image_name}", severity="info")
    OutputFormatter.log(f"Reason: {outcome.reason}", severity="info")
    typer.echo(outcome.decision.value)


@app.command(context_settings={"allow_extra_args": True, "ignore_unknown_options": True})
def up(
    ctx: typer.Context,
):
    """
    Start the AMQP dev service if the configuration needs one, and keep it until Ctrl-C.
    """
    root_dir, mode, flags = _parse_options(list(ctx.args), flags={"--json", "--once"})
    configure_logging("INFO")

    properties = _load_properties(root_dir)
    controller = DevServicesController(
        runtime=_create_runtime(),
        publisher=InMemoryConfigPublisher(),
        launch_mode=mode,
    )

    metadata_written = False
    try:
        try:
            result = controller.run_cycle(properties)
        except ConfigurationError as e:
            OutputFormatter.log(f"Configuration Error: {e}", severity="error")
            raise typer.Exit(code=1)
        except ProvisionError as e:
            OutputFormatter.log(f"Provisioning Error: {e}", severity="error")
            raise typer.Exit(code=1)

        if result.connection is None:
            OutputFormatter.log(
                f"No AMQP dev service needed (decision={result.decision.value}).",
                severity="info",
            )
            return

        write_connection_metadata(root_dir, result.connection)
        metadata_written = True
        OutputFormatter.print_connection(result.connection, as_json="--json" in flags)

        if "--once" not in flags:
            OutputFormatter.log("AMQP dev service running. Press Ctrl-C to stop.", severity="success")
            while True:
                time.sleep(1)
    except KeyboardInterrupt:
        OutputFormatter.log("\nStopping AMQP dev service...", severity="info")
    finally:
        controller.close()
        if metadata_written:
            clear_connection_metadata(root_dir)


@app.command(context_settings={"allow_extra_args": True, "ignore_unknown_options": True})
def status(
    ctx: typer.Context,
):
    """
    Show the connection of the dev service started by `devbroker up`, if any.
    """
    root_dir, _, flags = _parse_options(list(ctx.args), flags={"--json"})

    connection = read_connection_metadata(root_dir)
    if connection is None:
        OutputFormatter.log("No AMQP dev service metadata found.", severity="info")
        raise typer.Exit(code=1)

    OutputFormatter.print_connection(connection, as_json="--json" in flags)

if __name__ == "__main__":
    app()
