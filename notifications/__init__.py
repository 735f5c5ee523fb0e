"""Notification collaborators."""

from notifications.discord import DiscordNotifier

__all__ = ["DiscordNotifier"]
