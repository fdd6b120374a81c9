"""
Command line interface.

    fastshare send -m "hello"          # prints the code to give the receiver
    fastshare send -f photo.jpg -c     # prompts for a share code
    fastshare receive -c CODE -f out.jpg
"""

import argparse
import asyncio
import getpass
import logging
import sys
from typing import List, Optional

from .config import TransferConfig
from .sharephrase import generate_share_code
from .streams import BufferSink, BytesSource, FileSink, FileSource
from .transfer import receive, send
from .types import FastShareError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fastshare",
        description="End-to-end encrypted one-shot transfers through a relay.",
    )
    parser.add_argument(
        "--relay",
        help="Relay websocket URL (default: $FASTSHARE_RELAY_URL or the built-in default).",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    send_parser = commands.add_parser(
        "send", aliases=["s"], help="Send a message or file to the receiver."
    )
    payload = send_parser.add_mutually_exclusive_group(required=True)
    payload.add_argument("-m", "--message", help="Message to send.")
    payload.add_argument("-f", "--file", help="File to send.")
    send_parser.add_argument(
        "-c", "--code",
        action="store_true",
        help="Enter the share code manually instead of generating one.",
    )
    send_parser.set_defaults(handler=run_send)

    receive_parser = commands.add_parser(
        "receive", aliases=["r"], help="Receive a share from the sender."
    )
    receive_parser.add_argument(
        "-c", "--code",
        help="Code given by the sender. Prompted for if omitted.",
    )
    receive_parser.add_argument(
        "-f", "--file",
        help="File to write the payload to. Printed to stdout if omitted.",
    )
    receive_parser.set_defaults(handler=run_receive)

    return parser


def prompt_code() -> str:
    return getpass.getpass("Enter share code: ").strip()


async def run_send(args: argparse.Namespace, config: TransferConfig) -> None:
    if args.code:
        share_code = prompt_code()
        print("Waiting for receiver...")
    else:
        share_code = generate_share_code()

    def announce(display_code: str) -> None:
        print("Share code:", display_code, flush=True)

    if args.message is not None:
        data = args.message.encode("utf-8")
        await send(share_code, BytesSource(data), len(data), config, on_pair_code=announce)
    else:
        size = FileSource.size_of(args.file)
        with open(args.file, "rb") as f:
            await send(share_code, FileSource(f), size, config, on_pair_code=announce)

    print("Sent. Exiting.")


async def run_receive(args: argparse.Namespace, config: TransferConfig) -> None:
    code = args.code
    if not code:
        code = prompt_code()
        print("Waiting for sender...", file=sys.stderr)

    if args.file:
        await receive(code, FileSink(args.file), config)
        print(f"Saved to {args.file}", file=sys.stderr)
        return

    sink = BufferSink()
    await receive(code, sink, config)
    sys.stdout.buffer.write(sink.data)
    sys.stdout.buffer.flush()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = TransferConfig.from_env()
        if args.relay:
            config.relay_url = args.relay
        asyncio.run(args.handler(args, config))
    except (FastShareError, ValueError, OSError) as e:
        logger.debug("Transfer failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
