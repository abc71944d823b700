"""Bot chat commands: message purge, player help and admin debugging.

Besides the DiscordApi operations and those listed in the handlers module,
these commands expect the api object to provide:

- ``reply(channel_id, message_id, content)``, answering a message
- ``get_channel(channel_id)``, giving the channel name, or None for a private channel
- ``get_messages(channel_id, before, limit)``, giving the ids of the latest
  messages posted before the message ``before``
- ``delete_message(channel_id, message_id)``
- ``delete_messages(channel_id, message_ids)``
- ``has_role(guild_id, user_id, role_id)``, giving a bool
- ``get_member(guild_id, user_id)``, failing when the user is not a member
- ``list_members(guild_id)``, giving (user id, role ids) pairs
- ``move_channel(channel_id, category_id)``

Each of them raises DiscordError when the request fails.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Optional

from . import command
from .data import SITE_URL, DiscordApi, DiscordError, Group, LeagueCordData
from .handlers import ChatMessage, module_command

logger = logging.getLogger(__name__)

CONFIRMATION_DELAY_S = 5.0
HELP_COLOR = (36, 219, 144)
FALLBACK_COLOR = (153, 170, 187)
HELP_TITLE = "Leaguecord, a voice chat for league"

_U8_MAX = 255
_U64_MAX = 2**64 - 1
_UNSIGNED_PATTERN = re.compile(r"\+?[0-9]+")

HelpField = tuple[str, str, bool]

_BASE_HELP_FIELDS: tuple[HelpField, ...] = (
    (
        "Groups",
        "Groups are temporary, when your activity is done, please leave the server and "
        "create a new group with your new teammates !",
        False,
    ),
    (
        "Creating a group",
        f"To create a group please use the website at <{SITE_URL}/>.",
        False,
    ),
    (
        "Joining a group",
        "To join a group, simply join any Leaguecord link with an id at the end "
        f"(like `{SITE_URL}/group/12345678901234567890`).",
        False,
    ),
    ("Leaving a group", "To leave a group, simply leave the server.", False),
    (
        "Group Permissions",
        "Each member of a group only has the ability to see and interact with it's own group. "
        "This way, you can enjoy a focused and private environment for your team without "
        "distractions from other groups.",
        False,
    ),
    (
        "Secure groups (TODO)",
        "Secure groups offer the possiblity to filter who can and cannot join your group.",
        False,
    ),
    (
        "Deleting a group",
        "To delete a group, simply leave the server, the group will be automatically cleaned up.",
        False,
    ),
    (
        "Help and support",
        "I havn't done anything specific for this (yet), so just send me a dm !",
        False,
    ),
)

_CHANNEL_SPECIFIC_FIELD: HelpField = (
    "Channel specific",
    "This channel is a group channel, it will stay up until every member of it's group has left.",
    False,
)


def _parse_unsigned(text: str, limit: int) -> Optional[int]:
    if not _UNSIGNED_PATTERN.fullmatch(text):
        return None
    value = int(text)
    return value if value <= limit else None


async def _reply(api: DiscordApi, message: ChatMessage, content: str) -> None:
    try:
        await api.reply(message.channel_id, message.id, content)
    except DiscordError as e:
        logger.error("Could not send error message due to: %s", e)


def help_fields(channel_name: Optional[str]) -> list[HelpField]:
    """The (name, value, inline) fields of the help embed for a channel."""
    fields = list(_BASE_HELP_FIELDS)
    if channel_name is not None and Group.id_for_name(channel_name) is not None:
        fields.append(_CHANNEL_SPECIFIC_FIELD)
    return fields


class Purge:
    """``!purge <count>``: deletes the latest messages of a guild channel."""

    def __init__(self, confirmation_delay_s: float = CONFIRMATION_DELAY_S) -> None:
        self.confirmation_delay_s = confirmation_delay_s
        self._tasks: set[asyncio.Task] = set()

    async def on_message(self, api: DiscordApi, message: ChatMessage) -> Optional[list[int]]:
        """Run the command; returns the ids of the purged messages, None when nothing was purged."""
        await module_command(api, "Purge", message)

        args = command.parse(message.content, "purge", command.Case.INSENSITIVE, command.Prefix.YES)
        if args is None:
            return None

        if len(args) != 1:
            await _reply(
                api, message, "Expected 1 argument, please specify a number of message to purge"
            )
            return None

        count = _parse_unsigned(args[0], _U8_MAX)
        if count is None:
            await _reply(
                api,
                message,
                "Could not parse count argument, make sure it's a positive integer and less than 100",
            )
            return None

        try:
            channel_name = await api.get_channel(message.channel_id)
        except DiscordError:
            try:
                await api.send_message(message.channel_id, content="Error")
            except DiscordError as e:
                logger.error("Could not send error message due to: %s", e)
            return None

        if channel_name is None:
            await _reply(api, message, "Private channels are not supported yet")
            return None

        try:
            message_ids = list(
                await api.get_messages(message.channel_id, before=message.id, limit=count)
            )
        except DiscordError:
            await _reply(api, message, "Failed to fetch the recent messages for this channel")
            return None

        try:
            await api.delete_message(message.channel_id, message.id)
        except DiscordError as e:
            logger.error("Failed to delete purge request message due to: %s", e)
            return None

        try:
            await api.delete_messages(message.channel_id, message_ids)
        except DiscordError as e:
            logger.error("Failed to delete messages due to: %s", e)
            return None

        try:
            confirmation = await api.send_message(
                message.channel_id, content=f"Deleted {count} messages"
            )
        except DiscordError as e:
            logger.error("Failed to send confirmation message due to: %s", e)
            return None

        task = asyncio.create_task(
            self._delete_later(api, message.channel_id, confirmation)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return message_ids

    async def _delete_later(self, api: DiscordApi, channel_id: int, message_id: int) -> None:
        await asyncio.sleep(self.confirmation_delay_s)
        try:
            await api.delete_message(channel_id, message_id)
        except DiscordError as e:
            logger.error("Failed to delete confimation message due to: %s", e)


class PlayerHelper:
    """``!help``: explains how groups work."""

    async def on_message(
        self, api: DiscordApi, data: Optional[LeagueCordData], message: ChatMessage
    ) -> Optional[dict[str, Any]]:
        """Answer ``!help``; returns the embed sent, None when no embed was sent."""
        await module_command(api, "PlayerHelper", message)

        if command.parse(message.content, "help", command.Case.INSENSITIVE, command.Prefix.YES) is None:
            return None

        if data is None:
            logger.error("Could not get tracked invites from data")
            try:
                await api.reply(
                    message.channel_id, message.id, "An error has occured, please contact an admin"
                )
            except DiscordError as e:
                logger.error("Player helper failed to send error message to user due to: %s", e)
            return None

        try:
            await api.get_member(data.ids.guild, message.author_id)
        except DiscordError:
            fallback = {
                "author": "Leaguecord",
                "color": FALLBACK_COLOR,
                "title": HELP_TITLE,
                "description": (
                    "Hi and welcome to leaguecord.\nAn internal error occured during the "
                    "well-being check of your account, for more information, contact an admin"
                ),
            }
            await api.send_message(message.channel_id, embed=fallback)
            return fallback

        try:
            channel_name = await api.get_channel(message.channel_id)
        except DiscordError:
            channel_name = None

        embed = {
            "color": HELP_COLOR,
            "title": HELP_TITLE,
            "description": "Hi and welcome to leaguecord.\n",
            "fields": [
                {"name": name, "value": value, "inline": inline}
                for name, value, inline in help_fields(channel_name)
            ],
        }
        await api.send_message(message.channel_id, embed=embed)
        return embed


class Debug:
    """Admin commands: ``!cg`` creates a group, ``!cleanup`` removes every group artefact."""

    async def on_message(
        self, api: DiscordApi, data: Optional[LeagueCordData], message: ChatMessage
    ) -> None:
        await module_command(api, "Debug", message)

        if data is None:
            logger.error("Could not get tracked invites from data")
            return

        if not await api.has_role(data.ids.guild, message.author_id, data.ids.admin_role):
            return

        await self._create_group(api, data, message)
        await self._cleanup(api, data, message)

    async def _create_group(
        self, api: DiscordApi, data: LeagueCordData, message: ChatMessage
    ) -> None:
        if command.parse(message.content, "cg", command.Case.INSENSITIVE, command.Prefix.YES) is None:
            return

        group = await Group.create_new(api, data.ids)
        async with data.lock:
            data.groups.append(group)
            await data.invites.update(api, data.ids)

        try:
            await api.reply(
                message.channel_id, message.id, f"Group created, invite code: {group.invite_code}"
            )
        except DiscordError:
            pass

    async def _cleanup(self, api: DiscordApi, data: LeagueCordData, message: ChatMessage) -> None:
        if command.parse(message.content, "cleanup", command.Case.INSENSITIVE, command.Prefix.YES) is None:
            return

        ids = data.ids
        async with data.lock:
            for group in data.groups:
                await group.cleanup_for_deletion(api, ids)
                data.invites.rm(group.invite_code)

            # Leftovers that no tracked group owns, e.g. after a restart.
            roles = list(await api.list_roles(ids.guild))

            for channel_id, name in list(await api.list_channels(ids.guild)):
                is_group_like = name.startswith("g") or _parse_unsigned(name, _U64_MAX) is not None
                if not is_group_like or channel_id == ids.graveyard_category:
                    continue
                logger.debug("Deleting channel '%s'(%s)", name, channel_id)
                try:
                    await api.delete_channel(channel_id)
                except DiscordError as e:
                    logger.error("Failed due to: %s", e)
                    await api.move_channel(channel_id, ids.graveyard_category)

            role_names = dict(roles)
            for user_id, role_ids in list(await api.list_members(ids.guild)):
                if not any(role_names.get(role_id, "").startswith("group") for role_id in role_ids):
                    continue
                try:
                    await api.kick_member(ids.guild, user_id)
                except DiscordError as e:
                    logger.error("Failed to kick user '%s' due to: %s", user_id, e)

            for role_id, name in roles:
                if not name.startswith("g"):
                    continue
                logger.debug("Deleting role '%s'(%s)", name, role_id)
                try:
                    await api.delete_role(ids.guild, role_id)
                except DiscordError as e:
                    logger.error("Failed due to: %s", e)

            data.groups.clear()