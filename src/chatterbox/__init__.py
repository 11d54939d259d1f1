"""Chatterbox: relay between Slack workspaces and the Chat & Slash game engine"""

__version__ = "0.1.0"
