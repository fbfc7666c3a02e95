# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Control client for the garage door service.

This module provides a command-line tool to send commands to a running
service's control port. It uses the same prompt infrastructure as the
main CLI for consistent syntax highlighting and tab completion.
"""

import argparse
import asyncio
import sys
from typing import Optional

from prompt_toolkit.patch_stdout import patch_stdout

from .commands.base import CommandResult, get_command_registry
from .commands.control import ControlCommandsMixin
from .commands.info import InfoCommandsMixin
from .const import DEFAULT_CONTROL_HOST, DEFAULT_CONTROL_PORT
from .prompt_common import CTL_HISTORY_FILE as HISTORY_FILE
from .prompt_common import InteractiveSession


def unescape_message(message: str) -> str:
    """Undo the newline escaping of the control protocol."""
    out = []
    i = 0
    while i < len(message):
        ch = message[i]
        if ch == "\\" and i + 1 < len(message):
            nxt = message[i + 1]
            out.append("\n" if nxt == "n" else nxt)
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def parse_reply(line: str) -> Optional[tuple[bool, str]]:
    """Parse an OK:/ERROR: reply line; None for anything else (LOG: lines)."""
    if line.startswith("OK:"):
        return True, unescape_message(line[3:].lstrip(" "))
    if line.startswith("ERROR:"):
        return False, unescape_message(line[6:].lstrip(" "))
    return None


class LocalCommandResult:
    """Result of executing a local command."""

    def __init__(self, success: bool, message: str, exit_ctl: bool = False):
        self.success = success
        self.message = message
        self.exit_ctl = exit_ctl  # If True, ctl should exit


class LocalCommandHandler(InfoCommandsMixin, ControlCommandsMixin):
    """Handles ctl-side commands (help, exit, clear) using the command registry."""

    def __init__(self):
        self._interactive_mode = True
        self._cli_mode = False  # exit is its own command in ctl
        self.stop_callback = lambda: None

    def exit_ctl(self) -> CommandResult:
        return CommandResult(True, "__EXIT_CTL__")

    def is_local_command(self, line: str) -> bool:
        """Whether a line is handled here instead of by the service.

        Help is always local so ctl can list its own commands.
        """
        parts = line.split()
        if not parts:
            return False
        cmd = parts[0].lower()
        if cmd in ("help", "?"):
            return True
        info = get_command_registry().get(cmd)
        return info is not None and info.local_only

    def execute(self, line: str) -> LocalCommandResult:
        parts = line.split()
        if not parts:
            return LocalCommandResult(False, "Empty command")

        info = get_command_registry().get(parts[0].lower())
        if info is None or info.handler is None:
            return LocalCommandResult(False, f"Unknown command: {parts[0]}")

        try:
            result = getattr(self, info.handler.__name__)()
        except Exception as e:
            return LocalCommandResult(False, f"Error: {e}")

        if result.message == "__EXIT_CTL__":
            return LocalCommandResult(True, "", exit_ctl=True)
        return LocalCommandResult(result.success, result.message)


async def send_command_async(
    host: str,
    port: int,
    command: str,
    timeout: float = 5.0,
) -> tuple[bool, str]:
    """Send one command to the control port and wait for its reply.

    LOG: lines streamed before the reply are skipped.

    Returns:
        Tuple of (success, message)
    """
    try:
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port), timeout=timeout
        )
    except ConnectionRefusedError:
        return False, f"Connection refused to {host}:{port}"
    except (asyncio.TimeoutError, OSError) as e:
        return False, f"Cannot connect to {host}:{port}: {e or 'timed out'}"

    try:
        writer.write(f"{command}\n".encode())
        await writer.drain()
        while True:
            line = await asyncio.wait_for(reader.readline(), timeout=timeout)
            if not line:
                return False, "Connection closed before reply"
            reply = parse_reply(line.decode().rstrip("\r\n"))
            if reply is not None:
                return reply
    except asyncio.TimeoutError:
        return False, "Response timeout"
    except ConnectionError as e:
        return False, f"Error: {e}"
    finally:
        writer.close()
        try:
            await writer.wait_closed()
        except ConnectionError:
            pass


async def interactive_mode_async(
    host: str, port: int, timeout: float, history_file: Optional[str]
):
    """Run in interactive mode with log streaming."""
    try:
        reader, writer = await asyncio.open_connection(host, port)
    except OSError as e:
        print(f"Error: cannot connect to {host}:{port}: {e}")
        sys.exit(1)

    print(f"Connected to garage door control port at {host}:{port}")
    print("Type 'help' for commands, 'exit' to quit, 'shutdown' to stop the service")
    print()

    stop_event = asyncio.Event()
    response_queue: asyncio.Queue[tuple[bool, str]] = asyncio.Queue()
    session = InteractiveSession.create(
        host=host,
        port=port,
        history_file=history_file,
        is_connected=lambda: not stop_event.is_set(),
    )
    local_handler = LocalCommandHandler()

    async def socket_reader():
        """Print LOG: lines and route replies to the response queue."""
        try:
            while not stop_event.is_set():
                line = await reader.readline()
                if not line:
                    print("\n>>> Garage door service disconnected.")
                    break
                decoded = line.decode().rstrip("\r\n")
                if decoded.startswith("LOG:"):
                    print(unescape_message(decoded[5:]))
                    continue
                reply = parse_reply(decoded)
                if reply is not None:
                    await response_queue.put(reply)
        except asyncio.CancelledError:
            pass
        except ConnectionError as e:
            print(f"\n>>> Connection error: {e}")
        finally:
            stop_event.set()

    async def send(cmd: str) -> tuple[bool, str]:
        while not response_queue.empty():
            response_queue.get_nowait()
        writer.write(f"{cmd}\n".encode())
        await writer.drain()
        try:
            return await asyncio.wait_for(response_queue.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return False, "Response timeout"

    reader_task = asyncio.create_task(socket_reader())
    stdout_ctx = patch_stdout()
    stdout_ctx.__enter__()

    try:
        while not stop_event.is_set():
            # Race the prompt against a disconnect
            prompt_task = asyncio.create_task(session.prompt_async())
            stop_task = asyncio.create_task(stop_event.wait())
            done, pending = await asyncio.wait(
                [prompt_task, stop_task], return_when=asyncio.FIRST_COMPLETED
            )
            for task in pending:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
            if stop_task in done:
                break

            line = prompt_task.result()
            if line is None:
                break
            if not line:
                continue

            if local_handler.is_local_command(line):
                result = local_handler.execute(line)
                if result.exit_ctl:
                    break
                if result.message:
                    print(session.format_output(result.message))
                continue

            try:
                success, response = await send(line)
            except ConnectionError as e:
                print(f">>> Error: {e}")
                break
            if response:
                print(session.format_output(response))
    except KeyboardInterrupt:
        print("\nExiting.")
    finally:
        stop_event.set()
        reader_task.cancel()
        try:
            await reader_task
        except asyncio.CancelledError:
            pass
        stdout_ctx.__exit__(None, None, None)
        writer.close()
        try:
            await writer.wait_closed()
        except ConnectionError:
            pass


def main():
    """CLI entry point for garage door control."""
    parser = argparse.ArgumentParser(
        description="Control a running garage door service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s status                  # Show door state
  %(prog)s up                      # Open fully
  %(prog)s to 3.5                  # Move to 3.5 feet
  %(prog)s stop                    # Emergency stop
  %(prog)s -i                      # Interactive mode
  %(prog)s shutdown                # Stop the service
""",
    )
    parser.add_argument(
        "--host", "-H",
        default=DEFAULT_CONTROL_HOST,
        help=f"Service host (default: {DEFAULT_CONTROL_HOST})",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=DEFAULT_CONTROL_PORT,
        help=f"Control port (default: {DEFAULT_CONTROL_PORT})",
    )
    parser.add_argument(
        "--interactive", "-i", action="store_true", help="Run in interactive mode"
    )
    parser.add_argument(
        "--timeout", "-t",
        type=float,
        default=5.0,
        help="Command timeout in seconds (default: 5)",
    )
    parser.add_argument(
        "--history",
        metavar="FILE",
        default=str(HISTORY_FILE),
        help=f"History file path, or 'none' to disable (default: {HISTORY_FILE})",
    )
    parser.add_argument(
        "command", nargs="*", help="Command to send (or use -i for interactive mode)"
    )

    args = parser.parse_args()

    if args.interactive:
        asyncio.run(interactive_mode_async(args.host, args.port, args.timeout, args.history))
    elif args.command:
        command = " ".join(args.command)
        success, response = asyncio.run(
            send_command_async(args.host, args.port, command, args.timeout)
        )
        print(f"{'OK' if success else 'ERROR'}: {response}")
        sys.exit(0 if success else 1)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
