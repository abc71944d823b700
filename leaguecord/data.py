"""Server-side state: groups, tracked invites and group creation throttling."""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import random
import re
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Union

from .shared import GroupData

logger = logging.getLogger(__name__)

GroupId = int
InviteCode = str
InviteUseCount = int
IpLike = Union[str, ipaddress.IPv4Address, ipaddress.IPv6Address]

_U64_MAX = 2**64 - 1
_U64_PATTERN = re.compile(r"\+?[0-9]+")

SITE_URL = "https://leaguecord.example"
INVITE_MAX_AGE_S = 900
TRACKER_DURATION_S = 60 * 5
EMBED_COLOR = (36, 219, 144)

GROUP_USER_PERMISSIONS = frozenset(
    {
        "VIEW_CHANNEL",
        "CONNECT",
        "SEND_MESSAGES",
        "MANAGE_MESSAGES",
        "READ_MESSAGE_HISTORY",
        "ADD_REACTIONS",
        "SPEAK",
        "USE_VAD",
    }
)
ADMIN_PERMISSIONS = GROUP_USER_PERMISSIONS | {"MANAGE_CHANNELS", "PRIORITY_SPEAKER"}


class DiscordError(Exception):
    """A request to the chat service failed."""


class DiscordApi(ABC):
    """The chat-service operations the server relies on.

    Every method raises DiscordError when the request fails.
    """

    @abstractmethod
    async def create_channel(
        self,
        guild_id: int,
        name: str,
        kind: str,
        category: int | None = None,
        overwrites: Mapping[int, frozenset[str]] | None = None,
    ) -> int:
        """Create a channel of ``kind`` ("category", "text" or "voice").

        ``overwrites`` maps a role id to the permissions it is allowed; every
        other permission is denied to that role. Returns the channel id.
        """

    @abstractmethod
    async def delete_channel(self, channel_id: int) -> None:
        """Delete a channel."""

    @abstractmethod
    async def create_role(self, guild_id: int, name: str) -> int:
        """Create a role and return its id."""

    @abstractmethod
    async def delete_role(self, guild_id: int, role_id: int) -> None:
        """Delete a role."""

    @abstractmethod
    async def create_invite(
        self, channel_id: int, *, max_age: int, max_uses: int, unique: bool, reason: str
    ) -> InviteCode:
        """Create an invite to a channel and return its code."""

    @abstractmethod
    async def send_message(
        self, channel_id: int, content: str | None = None, embed: Mapping[str, Any] | None = None
    ) -> int:
        """Post a message and return its id."""

    @abstractmethod
    async def kick_member(self, guild_id: int, user_id: int, reason: str | None = None) -> None:
        """Remove a member from the guild."""

    @abstractmethod
    async def get_guild_invites(self, guild_id: int) -> Iterable[tuple[InviteCode, InviteUseCount]]:
        """List the guild's invites as (code, use count) pairs."""


@dataclass(frozen=True)
class IdCache:
    """Identifiers of the guild objects the bot works with."""

    guild: int
    admin_role: int
    graveyard_category: int
    bot_log_channel: int


def _split(result: object) -> tuple[object, DiscordError | None]:
    if isinstance(result, DiscordError):
        return None, result
    if isinstance(result, BaseException):
        raise result
    return result, None


async def _delete_channel_quietly(api: DiscordApi, channel_id: int) -> None:
    try:
        await api.delete_channel(channel_id)
    except DiscordError as e:
        logger.error("Failed to cleanup channel %s due to %s", channel_id, e)


@dataclass
class Group:
    """A temporary voice group: its channels, role, invite and members."""

    id: GroupId
    creation_time: datetime
    invite_code: InviteCode
    text_channel: int
    voice_channel: int
    category: int
    role: int
    users: list[int] = field(default_factory=list)

    @staticmethod
    def name_for_id(group_id: GroupId) -> str:
        return f"g{group_id}"

    @staticmethod
    def id_for_name(name: str) -> GroupId | None:
        """The group id encoded in a channel or role name, if any."""
        if not name.startswith("g"):
            return None
        rest = name[1:]
        if not _U64_PATTERN.fullmatch(rest):
            return None
        value = int(rest)
        return value if value <= _U64_MAX else None

    @classmethod
    async def create_new(cls, api: DiscordApi, ids: IdCache) -> Group:
        """Create the category, role, channels and invite of a new group.

        Whatever was created is removed again when a later step fails.
        """
        group_id = random.randint(0, _U64_MAX)
        name = cls.name_for_id(group_id)

        category_result, role_result = await asyncio.gather(
            api.create_channel(ids.guild, name, "category"),
            api.create_role(ids.guild, name),
            return_exceptions=True,
        )
        category, category_error = _split(category_result)
        role, role_error = _split(role_result)
        if category_error and role_error:
            raise DiscordError(f"{category_error} AND {role_error}")
        if role_error:
            await _delete_channel_quietly(api, category)
            raise role_error
        if category_error:
            try:
                await api.delete_role(ids.guild, role)
            except DiscordError as e:
                logger.error("Failed to cleanup role due to %s", e)
            raise category_error

        overwrites = {ids.admin_role: ADMIN_PERMISSIONS, role: GROUP_USER_PERMISSIONS}
        text_result, voice_result = await asyncio.gather(
            api.create_channel(ids.guild, name, "text", category, overwrites),
            api.create_channel(ids.guild, name, "voice", category, overwrites),
            return_exceptions=True,
        )
        text_channel, text_error = _split(text_result)
        voice_channel, voice_error = _split(voice_result)
        if text_error and voice_error:
            raise DiscordError(f"{text_error} AND {voice_error}")
        if text_error or voice_error:
            created = voice_channel if text_error else text_channel
            await _delete_channel_quietly(api, created)
            raise text_error or voice_error

        invite_code = await api.create_invite(
            text_channel,
            max_age=INVITE_MAX_AGE_S,
            max_uses=0,
            unique=True,
            reason="group channel invite",
        )

        now = datetime.now(timezone.utc)
        description = (
            f"- Id: {group_id}\n"
            f"- Role: <@&{role}>\n"
            f"- Join link: <{SITE_URL}/group/{group_id}>\n"
            f"- Created <t:{int(now.timestamp())}:R>"
        )
        try:
            await api.send_message(
                text_channel,
                embed={"color": EMBED_COLOR, "title": "Group infos", "description": description},
            )
        except DiscordError as e:
            logger.error("Failed to send info embed in channel %s due to: %s", group_id, e)

        logger.debug("Created group %s", group_id)
        return cls(
            id=group_id,
            creation_time=now,
            invite_code=invite_code,
            text_channel=text_channel,
            voice_channel=voice_channel,
            category=category,
            role=role,
        )

    async def cleanup_for_deletion(self, api: DiscordApi, ids: IdCache) -> None:
        """Kick the members and delete the channels and role; failures are logged."""
        for user_id in self.users:
            try:
                await api.kick_member(ids.guild, user_id, "Group cleanup")
            except DiscordError as e:
                logger.error("Failed to kick user %s due to %s", user_id, e)

        results = await asyncio.gather(
            api.delete_channel(self.voice_channel),
            api.delete_channel(self.text_channel),
            api.delete_channel(self.category),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, DiscordError):
                logger.error("Failed to delete a channel of group %s due to %s", self.id, result)
            elif isinstance(result, BaseException):
                logger.error("Failed to join group channel deletion due to: %s", result)

        try:
            await api.delete_role(ids.guild, self.role)
        except DiscordError as e:
            logger.error("Failed to delete role for group %s due to %s", self.id, e)

    def to_data(self) -> GroupData:
        return GroupData.create(self.id, self.creation_time, len(self.users), self.invite_code)


class InviteTracker:
    """Last known use count of every guild invite."""

    def __init__(self, storage: Mapping[InviteCode, InviteUseCount] | None = None) -> None:
        self._storage: dict[InviteCode, InviteUseCount] = dict(storage or {})
        self.last_update = time.monotonic()

    @classmethod
    async def create(cls, api: DiscordApi, ids: IdCache) -> InviteTracker:
        tracker = cls()
        await tracker.update(api, ids)
        return tracker

    async def update(self, api: DiscordApi, ids: IdCache) -> None:
        """Reload every invite from the guild."""
        try:
            invites = await api.get_guild_invites(ids.guild)
        except DiscordError as e:
            raise DiscordError(f"Could not get the invite list for guild: {ids.guild}") from e
        self._storage = dict(invites)
        self.last_update = time.monotonic()

    def get(self, code: InviteCode) -> InviteUseCount | None:
        return self._storage.get(code)

    def set(self, code: InviteCode, uses: InviteUseCount) -> None:
        self._storage[code] = uses
        self.last_update = time.monotonic()

    def rm(self, code: InviteCode) -> None:
        self._storage.pop(code, None)
        self.last_update = time.monotonic()

    def __len__(self) -> int:
        return len(self._storage)


class GroupCreationSpamTracker:
    """Remembers which address created a group during the last five minutes."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[ipaddress.IPv4Address | ipaddress.IPv6Address, tuple[float, GroupId]] = {}

    def update(self) -> None:
        """Forget registrations older than the tracking duration."""
        now = self._clock()
        self._entries = {
            ip: entry for ip, entry in self._entries.items() if now - entry[0] < TRACKER_DURATION_S
        }

    def register(self, ip: IpLike, group_id: GroupId) -> None:
        address = ipaddress.ip_address(ip)
        old = self._entries.get(address)
        self._entries[address] = (self._clock(), group_id)
        if old is not None:
            logger.warning(
                "SpamTracker registered a new group, but this ip already had a recent one: %s",
                old,
            )

    def __contains__(self, ip: object) -> bool:
        try:
            return ipaddress.ip_address(ip) in self._entries
        except ValueError:
            return False

    def __len__(self) -> int:
        return len(self._entries)


@dataclass
class LeagueCordData:
    """State shared by the bot and the web server."""

    ids: IdCache
    invites: InviteTracker
    groups: list[Group] = field(default_factory=list)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)