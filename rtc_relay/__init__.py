"""WebRTC signaling relay and headless call client."""

__version__ = "0.1.0"
