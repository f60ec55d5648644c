import logging

from prompt_toolkit import PromptSession
from prompt_toolkit.patch_stdout import patch_stdout
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.theme import Theme

from rtc_relay.core.session_manager import SessionManager
from rtc_relay.utils.error_codes import SignalingError
from rtc_relay.utils.validators import validate_room_key

custom_theme = Theme({
    "info": "dim cyan",
    "warning": "magenta",
    "danger": "bold red",
    "success": "bold green",
    "chat_peer": "green",
    "chat_self": "cyan",
})

console = Console(theme=custom_theme)


def setup_logging(level="INFO"):
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


class CallCLI:
    def __init__(self, media, transport=None, room_key=None):
        self.media = media
        self.session_manager = SessionManager(media, transport=transport, ui_callback=self.ui_callback)
        self.session = PromptSession()
        self.room_key = room_key
        self.running = True

    def ui_callback(self, event_type, data=None):
        # Called from the asyncio loop when signaling or media state changes
        if event_type == "SEARCHING":
            console.print("[info]Connecting to relay...[/info]")
        elif event_type == "JOINED":
            console.print(f"[success]{data}[/success]")
            console.print("[info]Waiting for a peer to join...[/info]")
        elif event_type == "PEER_JOINED":
            console.print(f"[success]{data}[/success]")
        elif event_type == "NEGOTIATING":
            console.print("[info]Establishing peer connection...[/info]")
        elif event_type == "CONNECTED":
            console.print(Panel("[bold green]CALL CONNECTED[/bold green]\n[dim]Type to chat, /end to hang up.[/dim]", expand=False))
        elif event_type == "MESSAGE":
            sender, text = data
            console.print(f"[chat_peer]{sender}:[/chat_peer] {text}")
        elif event_type == "PEER_LEFT":
            console.print(f"[warning]{data}[/warning]")
        elif event_type == "DESTROYED":
            console.print("[danger]Call ended. Exiting...[/danger]")
            self.running = False
        elif event_type == "ERROR":
            console.print(f"[danger]Error: {data}[/danger]")

    async def run(self):
        console.print(Panel.fit("[bold white]RTC CALL[/bold white]\n[dim]Peer-to-peer audio/video over a signaling relay.[/dim]", style="blue"))

        # 1. Get Room Key
        room_key = self.room_key
        while not validate_room_key(room_key):
            if room_key is not None:
                console.print("[warning]Please enter a valid room key.[/warning]")
            room_key = await self.session.prompt_async("Room key: ")

        # 2. Start Session
        try:
            await self.session_manager.start_session(room_key)
        except SignalingError as e:
            console.print(f"[danger]Failed to start: {e.message}[/danger]")
            await self.session_manager.destroy_session()
            return

        # 3. Chat Loop
        with patch_stdout():
            while self.running:
                try:
                    text = (await self.session.prompt_async("You: ")).strip()
                except (EOFError, KeyboardInterrupt):
                    await self.session_manager.destroy_session()
                    break

                if not text:
                    continue
                if text.lower() in ("/end", "/quit"):
                    await self.session_manager.destroy_session()
                    break
                if await self.session_manager.send_message(text):
                    console.print(f"[chat_self]You:[/chat_self] {text}")
