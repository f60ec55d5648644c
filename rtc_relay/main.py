import argparse
import asyncio

from rtc_relay import config
from rtc_relay.network.media import AiortcMediaSession
from rtc_relay.network.transport import TransportLayer
from rtc_relay.ui.cli import CallCLI, console, setup_logging


def build_parser():
    parser = argparse.ArgumentParser(description="Join a room on the signaling relay and start a call")
    parser.add_argument("room", nargs="?", help="Room key (prompted for if omitted)")
    parser.add_argument("--relay", default=config.DEFAULT_URI, help="Relay websocket URI")
    parser.add_argument("--source", help="Local media for ffmpeg, e.g. /dev/video0 or a file")
    parser.add_argument("--source-format", help="ffmpeg input format for --source, e.g. v4l2")
    parser.add_argument("--record", help="Write the remote media to this file")
    parser.add_argument("--stun", default=config.STUN_URL, help="STUN server URL")
    parser.add_argument("--log-level", default=config.LOG_LEVEL)
    return parser


def main():
    args = build_parser().parse_args()
    setup_logging(args.log_level.upper())

    media = AiortcMediaSession(
        source=args.source,
        source_format=args.source_format,
        record_to=args.record,
        stun_url=args.stun,
    )
    cli = CallCLI(media, transport=TransportLayer(args.relay), room_key=args.room)
    media.on_state_change = cli.session_manager.on_media_state

    try:
        asyncio.run(cli.run())
    except KeyboardInterrupt:
        pass
    except Exception as e:
        console.print(f"[danger]Fatal Error: {e}[/danger]")


if __name__ == "__main__":
    main()
