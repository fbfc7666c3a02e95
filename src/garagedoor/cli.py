# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""CLI for the garage door service.

This module runs the door behind an interactive console and a line-based
control port that garagedoor-ctl (or any TCP client) can talk to.
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import Optional

from prompt_toolkit.patch_stdout import patch_stdout

from .commands import CommandHandler
from .const import DEFAULT_CONTROL_HOST, DEFAULT_CONTROL_PORT, DEFAULT_GPIO_CHIP, DEFAULT_GPIO_PIN
from .door import GarageDoor
from .pin import GpioPin, PinDriver, SimulatedPin
from .prompt_common import CLI_HISTORY_FILE as HISTORY_FILE
from .prompt_common import InteractiveSession
from .timing import DoorTimingConfig, load_timing_config

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def escape_message(message: str) -> str:
    """Escape a reply so it fits on one protocol line (ctl unescapes)."""
    return message.replace("\\", "\\\\").replace("\n", "\\n")


class ControlClientLogHandler(logging.Handler):
    """Logging handler that broadcasts to control clients."""

    def __init__(self, clients: set[asyncio.StreamWriter]):
        super().__init__()
        self._clients = clients

    def emit(self, record):
        try:
            data = f"LOG: {escape_message(self.format(record))}\n".encode()
            for writer in list(self._clients):
                if writer.is_closing():
                    continue
                # No drain here; it would block the logging call
                writer.write(data)
        except Exception:
            self.handleError(record)


class ControlServer:
    """Line-based TCP control port in front of a CommandHandler.

    Each line received is one command. The reply is a single line,
    ``OK: <message>`` or ``ERROR: <message>``. Log records are streamed to
    every connected client as ``LOG: <record>`` lines.
    """

    def __init__(
        self,
        cmd_handler: CommandHandler,
        host: str = DEFAULT_CONTROL_HOST,
        port: int = DEFAULT_CONTROL_PORT,
        stop_event: Optional[asyncio.Event] = None,
    ):
        self.cmd_handler = cmd_handler
        self.host = host
        self.port = port
        self.stop_event = stop_event or asyncio.Event()
        self.clients: set[asyncio.StreamWriter] = set()
        self._server: Optional[asyncio.AbstractServer] = None
        self._log_handler: Optional[ControlClientLogHandler] = None

    @property
    def bound_port(self) -> int:
        """Actual listening port (useful when started on port 0)."""
        if self._server is None or not self._server.sockets:
            return self.port
        return self._server.sockets[0].getsockname()[1]

    async def start(self) -> None:
        self._server = await asyncio.start_server(
            self._handle_client, self.host, self.port
        )
        logger.info(f"Control server listening on {self.host}:{self.bound_port}")

        self._log_handler = ControlClientLogHandler(self.clients)
        self._log_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(self._log_handler)

    async def stop(self) -> None:
        if self._log_handler:
            logging.getLogger().removeHandler(self._log_handler)
            self._log_handler = None
        for writer in list(self.clients):
            writer.close()
        if self._server:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

    async def _handle_client(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ):
        """Handle a control connection."""
        addr = writer.get_extra_info("peername")
        logger.info(f"Control connection from {addr}")
        self.clients.add(writer)
        try:
            while True:
                line = await reader.readline()
                if not line:
                    break
                cmd = line.decode().strip()
                if not cmd:
                    continue

                result = await self.cmd_handler.execute(cmd)
                prefix = "OK" if result.success else "ERROR"
                writer.write(f"{prefix}: {escape_message(result.message)}\n".encode())
                await writer.drain()

                if self.stop_event.is_set():
                    break
        except (ConnectionError, asyncio.IncompleteReadError) as e:
            logger.debug(f"Control client {addr} dropped: {e}")
        except Exception as e:
            logger.error(f"Control client error: {e}")
        finally:
            self.clients.discard(writer)
            writer.close()
            try:
                await writer.wait_closed()
            except ConnectionError:
                pass
            logger.info(f"Control connection closed from {addr}")


def _stdin_available() -> bool:
    try:
        if sys.stdin and sys.stdin.fileno() >= 0:
            os.fstat(sys.stdin.fileno())
            return True
    except (OSError, ValueError, AttributeError):
        pass
    return False


def _reinstall_log_handler() -> None:
    """Point the root stream handler at the (patched) stderr."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        if type(handler) is logging.StreamHandler:
            root_logger.removeHandler(handler)
    new_handler = logging.StreamHandler(sys.stderr)
    new_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(new_handler)


async def run_door(
    pin: PinDriver,
    timing: Optional[DoorTimingConfig] = None,
    initial_height: float = 0.0,
    host: str = DEFAULT_CONTROL_HOST,
    port: int = DEFAULT_CONTROL_PORT,
    daemon: bool = False,
    history_file: Optional[str] = None,
) -> None:
    """Run the garage door service until shutdown.

    Args:
        pin: Actuation pin driver
        timing: Door timing configuration
        initial_height: Height to assume at startup, in feet
        host: Address to bind the control port
        port: Control port (0 to disable)
        daemon: If True, run without the interactive console
        history_file: Console history file, or "none" to disable
    """
    door = GarageDoor(pin, timing, initial_height)
    door.on_complete(lambda where: logger.info(f"Door is {where}"))

    stop_event = asyncio.Event()
    cmd_handler = CommandHandler(door=door, stop_callback=stop_event.set)

    interactive = not daemon and _stdin_available()
    if not daemon and not interactive:
        logger.warning("stdin not available, running in daemon mode")

    # Set modes before printing help so exit/q/quit show as shutdown aliases
    if interactive:
        cmd_handler.set_interactive_mode(True)
        cmd_handler.set_cli_mode(True)

    control: Optional[ControlServer] = None
    if port:
        control = ControlServer(cmd_handler, host, port, stop_event)
        await control.start()

    print(f"Garage door {door.describe_height()}")
    if control:
        print(f"Control port: {control.bound_port}")
    if interactive:
        print("=" * 65)
        print(cmd_handler.get_help())
        print("=" * 65)
    print()

    input_task: Optional[asyncio.Task] = None
    stdout_ctx = None

    if interactive:
        session = InteractiveSession.create(
            host=host,
            port=control.bound_port if control else 0,
            history_file=history_file if history_file else str(HISTORY_FILE),
            is_connected=lambda: bool(control and control.clients),
        )

        async def interactive_input_loop():
            try:
                async for line in session.input_loop(stop_check=stop_event.is_set):
                    result = await cmd_handler.execute(line)
                    if result.message:
                        print(session.format_output(result.message))
                    if stop_event.is_set():
                        break
            except asyncio.CancelledError:
                pass
            finally:
                # EOF ends the service
                stop_event.set()

        # All output for the rest of the run goes above the prompt
        stdout_ctx = patch_stdout()
        stdout_ctx.__enter__()
        _reinstall_log_handler()

        input_task = asyncio.create_task(interactive_input_loop())

    try:
        await stop_event.wait()
    except asyncio.CancelledError:
        pass
    finally:
        if input_task:
            input_task.cancel()
            try:
                await input_task
            except asyncio.CancelledError:
                pass
        if stdout_ctx:
            stdout_ctx.__exit__(None, None, None)
        if control:
            await control.stop()
        if door.busy:
            await door.stop()
        door.close()


def build_pin(args: argparse.Namespace) -> PinDriver:
    """Pick the simulated pin or the real GPIO line."""
    if args.simulate:
        logger.info("Using simulated pin")
        return SimulatedPin()
    return GpioPin(pin=args.pin, chip=args.chip)


def main():
    """CLI entry point for the garage door service."""
    parser = argparse.ArgumentParser(
        description="Garage door controller - position a single-button opener by timing"
    )
    parser.add_argument(
        "--host", "-H",
        default=DEFAULT_CONTROL_HOST,
        help=f"Address to bind the control port (default: {DEFAULT_CONTROL_HOST})"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=DEFAULT_CONTROL_PORT,
        help=f"Control port, 0 to disable (default: {DEFAULT_CONTROL_PORT})"
    )
    parser.add_argument(
        "--daemon", "-D",
        action="store_true",
        help="Run without the interactive console"
    )
    parser.add_argument(
        "--timing", "-t",
        metavar="FILE",
        help="JSON file overriding door timing values"
    )
    parser.add_argument(
        "--pin",
        type=int,
        default=DEFAULT_GPIO_PIN,
        help=f"GPIO line driving the opener (default: {DEFAULT_GPIO_PIN})"
    )
    parser.add_argument(
        "--chip",
        default=DEFAULT_GPIO_CHIP,
        metavar="PATH",
        help=f"GPIO chip device (default: {DEFAULT_GPIO_CHIP})"
    )
    parser.add_argument(
        "--simulate", "-s",
        action="store_true",
        help="Use a simulated pin instead of GPIO"
    )
    parser.add_argument(
        "--initial-height",
        type=float,
        default=0.0,
        metavar="FEET",
        help="Door height at startup (default: 0, closed)"
    )
    parser.add_argument(
        "--history",
        metavar="FILE",
        default=str(HISTORY_FILE),
        help=f"History file path, or 'none' to disable (default: {HISTORY_FILE})"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format=LOG_FORMAT,
    )

    try:
        timing = load_timing_config(args.timing) if args.timing else DoorTimingConfig()
    except (OSError, ValueError) as e:
        parser.error(f"Invalid timing file {args.timing}: {e}")

    try:
        pin = build_pin(args)
    except ImportError:
        parser.error("gpiod is not installed; install garagedoor[gpio] or use --simulate")
    except OSError as e:
        parser.error(f"Cannot open GPIO pin {args.pin} on {args.chip}: {e}")

    try:
        asyncio.run(run_door(
            pin=pin,
            timing=timing,
            initial_height=args.initial_height,
            host=args.host,
            port=args.port,
            daemon=args.daemon,
            history_file=args.history,
        ))
    except KeyboardInterrupt:
        print("\nGarage door service stopped.")


if __name__ == "__main__":
    main()
