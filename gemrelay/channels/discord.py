"""Discord channel adapter."""

import logging
import os
from typing import Optional, TYPE_CHECKING

import discord
from discord import app_commands

from ..attachments import Attachment
from .base import IncomingMessage, MessageChannel

if TYPE_CHECKING:
    from ..commands import CommandDispatcher
    from ..relay import RelayController

logger = logging.getLogger("gemrelay.discord")


def to_incoming(message: discord.Message) -> IncomingMessage:
    """Convert a discord.py message into the relay's transport-free form."""
    return IncomingMessage(
        author_id=str(message.author.id),
        channel_id=str(message.channel.id),
        content=message.content or "",
        attachments=[
            Attachment(url=a.url, content_type=a.content_type, filename=a.filename)
            for a in message.attachments
        ],
    )


class _RelayClient(discord.Client):
    """discord.Client wired to a DiscordChannel."""

    def __init__(self, channel: "DiscordChannel"):
        intents = discord.Intents.default()
        intents.message_content = True
        super().__init__(intents=intents)
        self.channel = channel
        self.tree = app_commands.CommandTree(self)

    async def setup_hook(self):
        # Runs before the gateway connects; an exception here aborts startup.
        await self.channel.register_commands(self.tree)

    async def on_ready(self):
        logger.info(f"Logged in as {self.user} ({self.user.id})")
        await self.channel.apply_profile()

    async def on_message(self, message: discord.Message):
        await self.channel.on_message(message)


class DiscordChannel(MessageChannel):
    """Discord bot adapter for the relay."""

    def __init__(
        self,
        bot_token: str,
        avatar_path: Optional[str] = None,
        username: Optional[str] = None,
    ):
        self.bot_token = bot_token
        self.avatar_path = avatar_path
        self.username = username
        self.relay: Optional["RelayController"] = None
        self.dispatcher: Optional["CommandDispatcher"] = None
        self._profile_applied = False
        self.client = _RelayClient(self)

    def attach(self, relay: "RelayController", dispatcher: "CommandDispatcher") -> None:
        self.relay = relay
        self.dispatcher = dispatcher

    @property
    def bot_user_id(self) -> Optional[str]:
        user = self.client.user
        return str(user.id) if user is not None else None

    async def start(self):
        """Connect and run until the client is closed."""
        async with self.client:
            await self.client.start(self.bot_token)

    async def stop(self):
        if not self.client.is_closed():
            await self.client.close()
            logger.info("Discord connection closed.")

    # ── Inbound ──

    async def on_message(self, message: discord.Message):
        if self.relay is None:
            return
        await self.relay.handle(to_incoming(message))

    def _make_command_callback(self, name: str):
        async def callback(interaction: discord.Interaction) -> None:
            async def respond(text: str) -> None:
                await interaction.response.send_message(text)

            await self.dispatcher.dispatch(name, respond)

        return callback

    async def register_commands(self, tree: app_commands.CommandTree):
        if self.dispatcher is None:
            return
        for name, description in self.dispatcher.commands.items():
            tree.add_command(app_commands.Command(
                name=name,
                description=description,
                callback=self._make_command_callback(name),
            ))
        synced = await tree.sync()
        logger.info(f"Registered {len(synced)} slash command(s): {', '.join(c.name for c in synced)}")

    async def apply_profile(self):
        """Set avatar and username from settings, once per process.

        on_ready fires again after every gateway reconnect; only the first
        call touches the profile. Failures are not fatal.
        """
        if self._profile_applied:
            return
        self._profile_applied = True
        if not self.avatar_path or not os.path.isfile(self.avatar_path):
            return
        try:
            with open(self.avatar_path, "rb") as f:
                avatar = f.read()
            await self.client.user.edit(username=self.username or self.client.user.name, avatar=avatar)
            logger.info(f"Bot avatar set from {self.avatar_path}")
        except (OSError, discord.HTTPException, ValueError) as e:
            logger.warning(f"Could not set bot avatar: {e}")

    # ── Outbound ──

    async def _resolve(self, channel_id: str) -> discord.abc.Messageable:
        channel = self.client.get_channel(int(channel_id))
        if channel is None:
            channel = await self.client.fetch_channel(int(channel_id))
        return channel

    async def send(self, channel_id: str, text: str) -> None:
        channel = await self._resolve(channel_id)
        await channel.send(text)

    async def trigger_typing(self, channel_id: str) -> None:
        channel = await self._resolve(channel_id)
        await channel.typing()
