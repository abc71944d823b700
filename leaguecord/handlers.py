"""Bot event handlers: start-up, module listing and the member door.

Besides the DiscordApi operations, the handlers expect the api object to provide:

- ``add_role(guild_id, user_id, role_id)``
- ``send_dm(user_id, content)``
- ``list_channels(guild_id)``, giving (id, name) pairs
- ``list_roles(guild_id)``, giving (id, name) pairs
- ``create_command(guild_id, name, description)``

Each of them raises DiscordError when the request fails.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Optional

from . import command
from .data import DiscordApi, DiscordError, Group, IdCache, InviteTracker, LeagueCordData

logger = logging.getLogger(__name__)

ADMIN_ROLE_NAME = "-"
GRAVEYARD_NAME = "graveyard"
BOT_LOG_NAME = "bot_logs"


@dataclass(frozen=True)
class ChatMessage:
    """A message posted in a guild channel."""

    content: str
    channel_id: int
    author_id: int
    id: int = 0


@dataclass(frozen=True)
class Member:
    """A guild member."""

    user_id: int
    name: str
    guild_id: int
    nick: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.nick or self.name

    @property
    def mention(self) -> str:
        return f"<@{self.user_id}>"


async def log_error(api: DiscordApi, ids: IdCache, message: str) -> None:
    """Log an error and repeat it in the bot log channel."""
    logger.error("%s", message)
    try:
        await api.send_message(ids.bot_log_channel, content=message)
    except DiscordError as e:
        logger.error("Failed to send error message to log channel due to: %s", e)


async def module_command(api: DiscordApi, module_name: str, message: ChatMessage) -> bool:
    """Answer ``!modules`` with this module's name; True when it answered."""
    if command.parse(message.content, "modules", command.Case.INSENSITIVE, command.Prefix.YES) is None:
        return False
    await api.send_message(message.channel_id, content=f"{module_name} module is loaded !")
    return True


async def _kick(api: DiscordApi, ids: IdCache, member: Member, reason: str, failure: str) -> None:
    try:
        await api.kick_member(member.guild_id, member.user_id, reason)
    except DiscordError as e:
        await log_error(api, ids, f"{failure} due to {e}")


class Door:
    """Places new members in the group whose invite they used."""

    async def on_message(self, api: DiscordApi, message: ChatMessage) -> None:
        await module_command(api, "Door", message)

    async def on_member_join(
        self, api: DiscordApi, data: LeagueCordData, member: Member
    ) -> Optional[Group]:
        """Give the member their group's role; kick them when no group matches.

        Returns the group joined, or None when the member was turned away.
        """
        async with data.lock:
            server_invites = list(await api.get_guild_invites(member.guild_id))

            used_invites = []
            for code, uses in server_invites:
                saved = data.invites.get(code)
                if saved is None:
                    logger.debug("New invite: %s (%s uses)", code, uses)
                    continue
                if uses != saved:
                    used_invites.append((code, uses))

            if len(used_invites) == 1:
                code, uses = used_invites[0]
                group = next((g for g in data.groups if g.invite_code == code), None)
                if group is None:
                    logger.warning(
                        "User %s tried to join with an invite that did not correspond to any group.",
                        member.name,
                    )
                    await _kick(
                        api,
                        data.ids,
                        member,
                        "Not appart of a valid group",
                        f"Failed to kick new member '{member.display_name}'({member.user_id})",
                    )
                    return None

                try:
                    await api.add_role(member.guild_id, member.user_id, group.role)
                except DiscordError as e:
                    await log_error(
                        api,
                        data.ids,
                        f"Failed to set group role for new member: "
                        f"'{member.display_name}'({member.user_id}) due to: {e}",
                    )
                group.users.append(member.user_id)
                logger.debug(
                    "Successfully moved new member (%s) to group: %s",
                    member.user_id,
                    group.invite_code,
                )

                try:
                    await api.send_message(
                        group.text_channel,
                        content=(
                            f"New player joined: {member.mention}\n"
                            "Make sure to use `!help` if you have any question"
                        ),
                    )
                except DiscordError as e:
                    logger.error("Failed to send welcome message due to: %s", e)

                data.invites.set(code, uses)
                return group

            logger.warning(
                "Failed to find what invite user %s(%s) used to join the server",
                member.name,
                member.user_id,
            )
            await _kick(
                api,
                data.ids,
                member,
                "Could not find the invite the user joined with",
                f"Failed to kick {member.name}({member.user_id})",
            )
            try:
                await api.send_dm(
                    member.user_id,
                    f"Hi user {member.user_id}\n"
                    "I was not able to find what group you joined, please retry to join the "
                    "server using the appropriate invite link\n"
                    "If this issue persists, please contact an admin",
                )
            except DiscordError as e:
                await log_error(
                    api, data.ids, f"Failed dm {member.name}({member.user_id}) due to {e}"
                )

            await data.invites.update(api, data.ids)
            return None

    async def on_member_removal(
        self, api: DiscordApi, data: LeagueCordData, user_id: int
    ) -> list[Group]:
        """Drop the user from their group, then delete every empty group.

        Returns the groups that were deleted.
        """
        async with data.lock:
            group = next((g for g in data.groups if user_id in g.users), None)
            if group is not None:
                group.users = [uid for uid in group.users if uid != user_id]

            removed = [g for g in data.groups if not g.users]
            for empty in removed:
                await empty.cleanup_for_deletion(api, data.ids)
                logger.debug("Removing empty group: %s", empty.invite_code)
                data.invites.rm(empty.invite_code)
            data.groups = [g for g in data.groups if g.users]
            return removed


async def _find_or_create_channel(api, guild_id: int, name: str, kind: str) -> int:
    found = next(
        (channel_id for channel_id, channel_name in await api.list_channels(guild_id)
         if channel_name == name),
        None,
    )
    if found is not None:
        return found
    return await api.create_channel(guild_id, name, kind)


class LeagueCord:
    """Loads the shared state once the bot is connected."""

    def __init__(self) -> None:
        self.data: Optional[LeagueCordData] = None

    async def on_ready(self, api: DiscordApi, guild_ids: Iterable[int]) -> LeagueCordData:
        """Resolve the guild's ids, load its invites and keep the resulting state.

        Exits when the bot is in any number of guilds other than one.
        """
        guilds = list(guild_ids)
        if len(guilds) != 1:
            logger.error("Expected to live in only one server")
            raise SystemExit(1)
        guild = guilds[0]

        await api.create_command(guild, "test", "Test command")

        graveyard_category = await _find_or_create_channel(api, guild, GRAVEYARD_NAME, "category")
        bot_log_channel = await _find_or_create_channel(api, guild, BOT_LOG_NAME, "text")

        admin_role = next(
            (role_id for role_id, role_name in await api.list_roles(guild)
             if role_name == ADMIN_ROLE_NAME),
            None,
        )
        if admin_role is None:
            raise LookupError(f"guild {guild} has no admin role named {ADMIN_ROLE_NAME!r}")

        ids = IdCache(
            guild=guild,
            admin_role=admin_role,
            graveyard_category=graveyard_category,
            bot_log_channel=bot_log_channel,
        )
        invites = await InviteTracker.create(api, ids)
        self.data = LeagueCordData(ids=ids, invites=invites)
        logger.debug("Bot is loaded")
        return self.data

    async def on_message(self, api: DiscordApi, message: ChatMessage) -> None:
        await module_command(api, "LeagueCord(main)", message)