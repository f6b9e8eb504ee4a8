"""Rocket.Chat REST adapter."""

from rocketfeed.adapters.rocketchat.client import RocketChatClient

__all__ = ["RocketChatClient"]
