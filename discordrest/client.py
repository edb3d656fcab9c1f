"""Async client exposing one method per Discord REST operation."""

from __future__ import annotations

from typing import Any, Mapping

import httpx

from discordrest import __version__
from discordrest.config import settings
from discordrest.dispatcher import Dispatcher, RetryPolicy
from discordrest.errors import ConfigurationError, NotFoundError
from discordrest.ratelimit import BucketTable, Clock
from discordrest.schemas import (
    Application,
    ApplicationCommand,
    AutoModerationRule,
    Ban,
    Channel,
    CreateAutoModRuleParams,
    CreateBanParams,
    CreateChannelParams,
    CreateCommandParams,
    CreateEmojiParams,
    CreateGuildParams,
    CreateInviteParams,
    CreateMessageParams,
    CreateRoleParams,
    CreateScheduledEventParams,
    CreateSoundboardSoundParams,
    CreateStageInstanceParams,
    CreateStickerParams,
    CreateTemplateParams,
    CreateWebhookParams,
    EditApplicationParams,
    EditCommandParams,
    EditMessageParams,
    EditPermissionsParams,
    Emoji,
    Guild,
    GuildOnboarding,
    GuildTemplate,
    GuildWidgetSettings,
    Invite,
    Member,
    Message,
    ModifyAutoModRuleParams,
    ModifyChannelParams,
    ModifyEmojiParams,
    ModifyGuildParams,
    ModifyMemberParams,
    ModifyOnboardingParams,
    ModifyRoleParams,
    ModifyScheduledEventParams,
    ModifySoundboardSoundParams,
    ModifyStageInstanceParams,
    ModifyStickerParams,
    ModifyTemplateParams,
    ModifyWebhookParams,
    ModifyWelcomeScreenParams,
    ModifyWidgetParams,
    Params,
    Role,
    RolePosition,
    ScheduledEvent,
    SoundboardSound,
    StageInstance,
    Sticker,
    User,
    VoiceRegion,
    Webhook,
    WelcomeScreen,
)
from discordrest.services.metrics import MetricsCollector
from discordrest.snowflake import Snowflake, SnowflakeLike


def _payload(params: Params | None) -> dict[str, Any] | None:
    return params.to_payload() if params is not None else None


class AsyncDiscordClient:
    """Async client for the Discord REST API (backed by ``httpx.AsyncClient``).

    One instance owns one bucket table; share the instance between concurrent
    tasks so they pace against the same quota.  Every method accepts a
    ``timeout`` bounding the whole operation, rate-limit waits included.
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        version: str = __version__,
        retry_policy: RetryPolicy | None = None,
        buckets: BucketTable | None = None,
        clock: Clock | None = None,
        metrics: MetricsCollector | None = None,
        application_id: SnowflakeLike | None = None,
        _transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        token = token if token is not None else settings.token
        if not token:
            raise ConfigurationError(
                "A bot token is required: pass token= or set DISCORD_TOKEN."
            )
        headers = {
            "Authorization": f"Bot {token}",
            "User-Agent": f"DiscordBot (discordrest, {version})",
        }
        kwargs: dict[str, Any] = {
            "base_url": base_url or settings.base_url,
            "headers": headers,
            "timeout": timeout if timeout is not None else settings.timeout,
        }
        if _transport is not None:
            kwargs["transport"] = _transport
        self._client = httpx.AsyncClient(**kwargs)
        self._application_id = application_id or settings.application_id or None

        if buckets is None:
            buckets = BucketTable(
                clock=clock,
                global_limit=settings.global_rate_limit,
                global_window=settings.global_rate_window,
            )
        self._dispatcher = Dispatcher(
            self._client,
            buckets,
            retry_policy or RetryPolicy.from_settings(settings),
            metrics,
        )

    # -- context manager -----------------------------------------------------

    async def __aenter__(self) -> AsyncDiscordClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    @property
    def buckets(self) -> BucketTable:
        return self._dispatcher.buckets

    @property
    def metrics(self) -> MetricsCollector:
        return self._dispatcher.metrics

    @property
    def application_id(self) -> SnowflakeLike | None:
        return self._application_id

    # -- internal ------------------------------------------------------------

    async def _request(
        self,
        method: str,
        template: str,
        path_params: Mapping[str, Any] | None = None,
        *,
        body: Any = None,
        files: Mapping[str, Any] | None = None,
        params: Mapping[str, Any] | None = None,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> Any:
        return await self._dispatcher.request(
            method,
            template,
            path_params=path_params,
            json_body=body,
            files=files,
            params=params,
            reason=reason,
            timeout=timeout,
        )

    def _app_id(self, application_id: SnowflakeLike | None) -> SnowflakeLike:
        resolved = application_id if application_id is not None else self._application_id
        if resolved is None:
            raise ConfigurationError(
                "An application id is required: pass application_id= or set DISCORD_APPLICATION_ID."
            )
        return resolved

    # -- users ---------------------------------------------------------------

    async def get_current_user(self, *, timeout: float | None = None) -> User:
        data = await self._request("GET", "/users/@me", timeout=timeout)
        return User.model_validate(data)

    async def get_user(self, user_id: SnowflakeLike, *, timeout: float | None = None) -> User:
        data = await self._request(
            "GET", "/users/{user_id}", {"user_id": user_id}, timeout=timeout
        )
        return User.model_validate(data)

    # -- guilds --------------------------------------------------------------

    async def create_guild(
        self, params: CreateGuildParams, *, timeout: float | None = None
    ) -> Guild:
        data = await self._request("POST", "/guilds", body=_payload(params), timeout=timeout)
        return Guild.model_validate(data)

    async def get_guild(
        self,
        guild_id: SnowflakeLike,
        *,
        with_counts: bool = False,
        timeout: float | None = None,
    ) -> Guild:
        query = {"with_counts": "true"} if with_counts else None
        data = await self._request(
            "GET", "/guilds/{guild_id}", {"guild_id": guild_id}, params=query, timeout=timeout
        )
        return Guild.model_validate(data)

    async def modify_guild(
        self,
        guild_id: SnowflakeLike,
        params: ModifyGuildParams,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> Guild:
        data = await self._request(
            "PATCH",
            "/guilds/{guild_id}",
            {"guild_id": guild_id},
            body=_payload(params),
            reason=reason,
            timeout=timeout,
        )
        return Guild.model_validate(data)

    async def delete_guild(self, guild_id: SnowflakeLike, *, timeout: float | None = None) -> None:
        """Delete a guild permanently.  The bot must own it."""
        await self._request("DELETE", "/guilds/{guild_id}", {"guild_id": guild_id}, timeout=timeout)

    # -- channels ------------------------------------------------------------

    async def create_guild_channel(
        self,
        guild_id: SnowflakeLike,
        params: CreateChannelParams,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> Channel:
        data = await self._request(
            "POST",
            "/guilds/{guild_id}/channels",
            {"guild_id": guild_id},
            body=_payload(params),
            reason=reason,
            timeout=timeout,
        )
        return Channel.model_validate(data)

    async def get_channel(
        self, channel_id: SnowflakeLike, *, timeout: float | None = None
    ) -> Channel:
        data = await self._request(
            "GET", "/channels/{channel_id}", {"channel_id": channel_id}, timeout=timeout
        )
        return Channel.model_validate(data)

    async def modify_channel(
        self,
        channel_id: SnowflakeLike,
        params: ModifyChannelParams,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> Channel:
        data = await self._request(
            "PATCH",
            "/channels/{channel_id}",
            {"channel_id": channel_id},
            body=_payload(params),
            reason=reason,
            timeout=timeout,
        )
        return Channel.model_validate(data)

    async def delete_channel(
        self,
        channel_id: SnowflakeLike,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> None:
        await self._request(
            "DELETE",
            "/channels/{channel_id}",
            {"channel_id": channel_id},
            reason=reason,
            timeout=timeout,
        )

    async def edit_channel_permissions(
        self,
        channel_id: SnowflakeLike,
        overwrite_id: SnowflakeLike,
        params: EditPermissionsParams,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> None:
        await self._request(
            "PUT",
            "/channels/{channel_id}/permissions/{overwrite_id}",
            {"channel_id": channel_id, "overwrite_id": overwrite_id},
            body=_payload(params),
            reason=reason,
            timeout=timeout,
        )

    async def delete_channel_permission(
        self,
        channel_id: SnowflakeLike,
        overwrite_id: SnowflakeLike,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> None:
        await self._request(
            "DELETE",
            "/channels/{channel_id}/permissions/{overwrite_id}",
            {"channel_id": channel_id, "overwrite_id": overwrite_id},
            reason=reason,
            timeout=timeout,
        )

    # -- roles ---------------------------------------------------------------

    async def create_guild_role(
        self,
        guild_id: SnowflakeLike,
        params: CreateRoleParams | None = None,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> Role:
        data = await self._request(
            "POST",
            "/guilds/{guild_id}/roles",
            {"guild_id": guild_id},
            body=_payload(params) or {},
            reason=reason,
            timeout=timeout,
        )
        return Role.model_validate(data)

    async def get_guild_roles(
        self, guild_id: SnowflakeLike, *, timeout: float | None = None
    ) -> list[Role]:
        data = await self._request(
            "GET", "/guilds/{guild_id}/roles", {"guild_id": guild_id}, timeout=timeout
        )
        return [Role.model_validate(item) for item in data or []]

    async def get_guild_role(
        self,
        guild_id: SnowflakeLike,
        role_id: SnowflakeLike,
        *,
        timeout: float | None = None,
    ) -> Role:
        """Fetch one role by reading the guild's role list.

        Raises ``NotFoundError`` when the role is not in the list.
        """
        wanted = Snowflake.parse(role_id)
        for role in await self.get_guild_roles(guild_id, timeout=timeout):
            if role.id == wanted:
                return role
        raise NotFoundError(f"role {wanted} not found in guild {Snowflake.format(guild_id)}")

    async def modify_guild_role(
        self,
        guild_id: SnowflakeLike,
        role_id: SnowflakeLike,
        params: ModifyRoleParams,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> Role:
        data = await self._request(
            "PATCH",
            "/guilds/{guild_id}/roles/{role_id}",
            {"guild_id": guild_id, "role_id": role_id},
            body=_payload(params),
            reason=reason,
            timeout=timeout,
        )
        return Role.model_validate(data)

    async def delete_guild_role(
        self,
        guild_id: SnowflakeLike,
        role_id: SnowflakeLike,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> None:
        await self._request(
            "DELETE",
            "/guilds/{guild_id}/roles/{role_id}",
            {"guild_id": guild_id, "role_id": role_id},
            reason=reason,
            timeout=timeout,
        )

    async def modify_guild_role_positions(
        self,
        guild_id: SnowflakeLike,
        positions: list[RolePosition],
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> list[Role]:
        data = await self._request(
            "PATCH",
            "/guilds/{guild_id}/roles",
            {"guild_id": guild_id},
            body=[position.to_payload() for position in positions],
            reason=reason,
            timeout=timeout,
        )
        return [Role.model_validate(item) for item in data or []]

    # -- members -------------------------------------------------------------

    async def get_guild_member(
        self,
        guild_id: SnowflakeLike,
        user_id: SnowflakeLike,
        *,
        timeout: float | None = None,
    ) -> Member:
        data = await self._request(
            "GET",
            "/guilds/{guild_id}/members/{user_id}",
            {"guild_id": guild_id, "user_id": user_id},
            timeout=timeout,
        )
        return Member.model_validate(data)

    async def modify_guild_member(
        self,
        guild_id: SnowflakeLike,
        user_id: SnowflakeLike,
        params: ModifyMemberParams,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> Member | None:
        data = await self._request(
            "PATCH",
            "/guilds/{guild_id}/members/{user_id}",
            {"guild_id": guild_id, "user_id": user_id},
            body=_payload(params),
            reason=reason,
            timeout=timeout,
        )
        # Discord answers 204 when nothing changed.
        return Member.model_validate(data) if data is not None else None

    async def remove_guild_member(
        self,
        guild_id: SnowflakeLike,
        user_id: SnowflakeLike,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> None:
        await self._request(
            "DELETE",
            "/guilds/{guild_id}/members/{user_id}",
            {"guild_id": guild_id, "user_id": user_id},
            reason=reason,
            timeout=timeout,
        )

    async def add_guild_member_role(
        self,
        guild_id: SnowflakeLike,
        user_id: SnowflakeLike,
        role_id: SnowflakeLike,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> None:
        await self._request(
            "PUT",
            "/guilds/{guild_id}/members/{user_id}/roles/{role_id}",
            {"guild_id": guild_id, "user_id": user_id, "role_id": role_id},
            reason=reason,
            timeout=timeout,
        )

    async def remove_guild_member_role(
        self,
        guild_id: SnowflakeLike,
        user_id: SnowflakeLike,
        role_id: SnowflakeLike,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> None:
        await self._request(
            "DELETE",
            "/guilds/{guild_id}/members/{user_id}/roles/{role_id}",
            {"guild_id": guild_id, "user_id": user_id, "role_id": role_id},
            reason=reason,
            timeout=timeout,
        )

    # -- bans ----------------------------------------------------------------

    async def get_guild_bans(
        self, guild_id: SnowflakeLike, *, timeout: float | None = None
    ) -> list[Ban]:
        data = await self._request(
            "GET", "/guilds/{guild_id}/bans", {"guild_id": guild_id}, timeout=timeout
        )
        return [Ban.model_validate(item) for item in data or []]

    async def get_guild_ban(
        self,
        guild_id: SnowflakeLike,
        user_id: SnowflakeLike,
        *,
        timeout: float | None = None,
    ) -> Ban:
        data = await self._request(
            "GET",
            "/guilds/{guild_id}/bans/{user_id}",
            {"guild_id": guild_id, "user_id": user_id},
            timeout=timeout,
        )
        return Ban.model_validate(data)

    async def create_guild_ban(
        self,
        guild_id: SnowflakeLike,
        user_id: SnowflakeLike,
        params: CreateBanParams | None = None,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> None:
        await self._request(
            "PUT",
            "/guilds/{guild_id}/bans/{user_id}",
            {"guild_id": guild_id, "user_id": user_id},
            body=_payload(params),
            reason=reason,
            timeout=timeout,
        )

    async def remove_guild_ban(
        self,
        guild_id: SnowflakeLike,
        user_id: SnowflakeLike,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> None:
        await self._request(
            "DELETE",
            "/guilds/{guild_id}/bans/{user_id}",
            {"guild_id": guild_id, "user_id": user_id},
            reason=reason,
            timeout=timeout,
        )

    # -- emojis --------------------------------------------------------------

    async def get_guild_emoji(
        self,
        guild_id: SnowflakeLike,
        emoji_id: SnowflakeLike,
        *,
        timeout: float | None = None,
    ) -> Emoji:
        data = await self._request(
            "GET",
            "/guilds/{guild_id}/emojis/{emoji_id}",
            {"guild_id": guild_id, "emoji_id": emoji_id},
            timeout=timeout,
        )
        return Emoji.model_validate(data)

    async def create_guild_emoji(
        self,
        guild_id: SnowflakeLike,
        params: CreateEmojiParams,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> Emoji:
        data = await self._request(
            "POST",
            "/guilds/{guild_id}/emojis",
            {"guild_id": guild_id},
            body=_payload(params),
            reason=reason,
            timeout=timeout,
        )
        return Emoji.model_validate(data)

    async def modify_guild_emoji(
        self,
        guild_id: SnowflakeLike,
        emoji_id: SnowflakeLike,
        params: ModifyEmojiParams,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> Emoji:
        data = await self._request(
            "PATCH",
            "/guilds/{guild_id}/emojis/{emoji_id}",
            {"guild_id": guild_id, "emoji_id": emoji_id},
            body=_payload(params),
            reason=reason,
            timeout=timeout,
        )
        return Emoji.model_validate(data)

    async def delete_guild_emoji(
        self,
        guild_id: SnowflakeLike,
        emoji_id: SnowflakeLike,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> None:
        await self._request(
            "DELETE",
            "/guilds/{guild_id}/emojis/{emoji_id}",
            {"guild_id": guild_id, "emoji_id": emoji_id},
            reason=reason,
            timeout=timeout,
        )

    # -- invites -------------------------------------------------------------

    async def create_channel_invite(
        self,
        channel_id: SnowflakeLike,
        params: CreateInviteParams | None = None,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> Invite:
        data = await self._request(
            "POST",
            "/channels/{channel_id}/invites",
            {"channel_id": channel_id},
            body=_payload(params) or {},
            reason=reason,
            timeout=timeout,
        )
        return Invite.model_validate(data)

    async def get_invite(self, code: str, *, timeout: float | None = None) -> Invite:
        data = await self._request("GET", "/invites/{code}", {"code": code}, timeout=timeout)
        return Invite.model_validate(data)

    async def delete_invite(
        self,
        code: str,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> Invite:
        data = await self._request(
            "DELETE", "/invites/{code}", {"code": code}, reason=reason, timeout=timeout
        )
        return Invite.model_validate(data)

    async def get_guild_invites(
        self, guild_id: SnowflakeLike, *, timeout: float | None = None
    ) -> list[Invite]:
        data = await self._request(
            "GET", "/guilds/{guild_id}/invites", {"guild_id": guild_id}, timeout=timeout
        )
        return [Invite.model_validate(item) for item in data or []]

    # -- messages ------------------------------------------------------------

    async def create_message(
        self,
        channel_id: SnowflakeLike,
        params: CreateMessageParams,
        *,
        timeout: float | None = None,
    ) -> Message:
        data = await self._request(
            "POST",
            "/channels/{channel_id}/messages",
            {"channel_id": channel_id},
            body=_payload(params),
            timeout=timeout,
        )
        return Message.model_validate(data)

    async def get_channel_message(
        self,
        channel_id: SnowflakeLike,
        message_id: SnowflakeLike,
        *,
        timeout: float | None = None,
    ) -> Message:
        data = await self._request(
            "GET",
            "/channels/{channel_id}/messages/{message_id}",
            {"channel_id": channel_id, "message_id": message_id},
            timeout=timeout,
        )
        return Message.model_validate(data)

    async def edit_message(
        self,
        channel_id: SnowflakeLike,
        message_id: SnowflakeLike,
        params: EditMessageParams,
        *,
        timeout: float | None = None,
    ) -> Message:
        data = await self._request(
            "PATCH",
            "/channels/{channel_id}/messages/{message_id}",
            {"channel_id": channel_id, "message_id": message_id},
            body=_payload(params),
            timeout=timeout,
        )
        return Message.model_validate(data)

    async def delete_message(
        self,
        channel_id: SnowflakeLike,
        message_id: SnowflakeLike,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> None:
        await self._request(
            "DELETE",
            "/channels/{channel_id}/messages/{message_id}",
            {"channel_id": channel_id, "message_id": message_id},
            reason=reason,
            timeout=timeout,
        )

    # -- webhooks ------------------------------------------------------------

    async def create_webhook(
        self,
        channel_id: SnowflakeLike,
        params: CreateWebhookParams,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> Webhook:
        data = await self._request(
            "POST",
            "/channels/{channel_id}/webhooks",
            {"channel_id": channel_id},
            body=_payload(params),
            reason=reason,
            timeout=timeout,
        )
        return Webhook.model_validate(data)

    async def get_webhook(
        self, webhook_id: SnowflakeLike, *, timeout: float | None = None
    ) -> Webhook:
        data = await self._request(
            "GET", "/webhooks/{webhook_id}", {"webhook_id": webhook_id}, timeout=timeout
        )
        return Webhook.model_validate(data)

    async def modify_webhook(
        self,
        webhook_id: SnowflakeLike,
        params: ModifyWebhookParams,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> Webhook:
        data = await self._request(
            "PATCH",
            "/webhooks/{webhook_id}",
            {"webhook_id": webhook_id},
            body=_payload(params),
            reason=reason,
            timeout=timeout,
        )
        return Webhook.model_validate(data)

    async def delete_webhook(
        self,
        webhook_id: SnowflakeLike,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> None:
        await self._request(
            "DELETE",
            "/webhooks/{webhook_id}",
            {"webhook_id": webhook_id},
            reason=reason,
            timeout=timeout,
        )

    # -- application ---------------------------------------------------------

    async def get_current_application(self, *, timeout: float | None = None) -> Application:
        data = await self._request("GET", "/applications/@me", timeout=timeout)
        return Application.model_validate(data)

    async def edit_current_application(
        self, params: EditApplicationParams, *, timeout: float | None = None
    ) -> Application:
        data = await self._request(
            "PATCH", "/applications/@me", body=_payload(params), timeout=timeout
        )
        return Application.model_validate(data)

    # -- application commands ------------------------------------------------
    #
    # ``application_id`` defaults to the one given to the client or to
    # DISCORD_APPLICATION_ID.

    async def create_global_application_command(
        self,
        params: CreateCommandParams,
        *,
        application_id: SnowflakeLike | None = None,
        timeout: float | None = None,
    ) -> ApplicationCommand:
        """Create a global command.  Creating one with an existing name replaces it."""
        data = await self._request(
            "POST",
            "/applications/{application_id}/commands",
            {"application_id": self._app_id(application_id)},
            body=_payload(params),
            timeout=timeout,
        )
        return ApplicationCommand.model_validate(data)

    async def get_global_application_command(
        self,
        command_id: SnowflakeLike,
        *,
        application_id: SnowflakeLike | None = None,
        timeout: float | None = None,
    ) -> ApplicationCommand:
        data = await self._request(
            "GET",
            "/applications/{application_id}/commands/{command_id}",
            {"application_id": self._app_id(application_id), "command_id": command_id},
            timeout=timeout,
        )
        return ApplicationCommand.model_validate(data)

    async def edit_global_application_command(
        self,
        command_id: SnowflakeLike,
        params: EditCommandParams,
        *,
        application_id: SnowflakeLike | None = None,
        timeout: float | None = None,
    ) -> ApplicationCommand:
        data = await self._request(
            "PATCH",
            "/applications/{application_id}/commands/{command_id}",
            {"application_id": self._app_id(application_id), "command_id": command_id},
            body=_payload(params),
            timeout=timeout,
        )
        return ApplicationCommand.model_validate(data)

    async def delete_global_application_command(
        self,
        command_id: SnowflakeLike,
        *,
        application_id: SnowflakeLike | None = None,
        timeout: float | None = None,
    ) -> None:
        await self._request(
            "DELETE",
            "/applications/{application_id}/commands/{command_id}",
            {"application_id": self._app_id(application_id), "command_id": command_id},
            timeout=timeout,
        )

    async def create_guild_application_command(
        self,
        guild_id: SnowflakeLike,
        params: CreateCommandParams,
        *,
        application_id: SnowflakeLike | None = None,
        timeout: float | None = None,
    ) -> ApplicationCommand:
        data = await self._request(
            "POST",
            "/applications/{application_id}/guilds/{guild_id}/commands",
            {"application_id": self._app_id(application_id), "guild_id": guild_id},
            body=_payload(params),
            timeout=timeout,
        )
        return ApplicationCommand.model_validate(data)

    async def get_guild_application_command(
        self,
        guild_id: SnowflakeLike,
        command_id: SnowflakeLike,
        *,
        application_id: SnowflakeLike | None = None,
        timeout: float | None = None,
    ) -> ApplicationCommand:
        data = await self._request(
            "GET",
            "/applications/{application_id}/guilds/{guild_id}/commands/{command_id}",
            {
                "application_id": self._app_id(application_id),
                "guild_id": guild_id,
                "command_id": command_id,
            },
            timeout=timeout,
        )
        return ApplicationCommand.model_validate(data)

    async def edit_guild_application_command(
        self,
        guild_id: SnowflakeLike,
        command_id: SnowflakeLike,
        params: EditCommandParams,
        *,
        application_id: SnowflakeLike | None = None,
        timeout: float | None = None,
    ) -> ApplicationCommand:
        data = await self._request(
            "PATCH",
            "/applications/{application_id}/guilds/{guild_id}/commands/{command_id}",
            {
                "application_id": self._app_id(application_id),
                "guild_id": guild_id,
                "command_id": command_id,
            },
            body=_payload(params),
            timeout=timeout,
        )
        return ApplicationCommand.model_validate(data)

    async def delete_guild_application_command(
        self,
        guild_id: SnowflakeLike,
        command_id: SnowflakeLike,
        *,
        application_id: SnowflakeLike | None = None,
        timeout: float | None = None,
    ) -> None:
        await self._request(
            "DELETE",
            "/applications/{application_id}/guilds/{guild_id}/commands/{command_id}",
            {
                "application_id": self._app_id(application_id),
                "guild_id": guild_id,
                "command_id": command_id,
            },
            timeout=timeout,
        )

    # -- auto moderation -----------------------------------------------------

    async def get_auto_moderation_rule(
        self,
        guild_id: SnowflakeLike,
        rule_id: SnowflakeLike,
        *,
        timeout: float | None = None,
    ) -> AutoModerationRule:
        data = await self._request(
            "GET",
            "/guilds/{guild_id}/auto-moderation/rules/{rule_id}",
            {"guild_id": guild_id, "rule_id": rule_id},
            timeout=timeout,
        )
        return AutoModerationRule.model_validate(data)

    async def create_auto_moderation_rule(
        self,
        guild_id: SnowflakeLike,
        params: CreateAutoModRuleParams,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> AutoModerationRule:
        data = await self._request(
            "POST",
            "/guilds/{guild_id}/auto-moderation/rules",
            {"guild_id": guild_id},
            body=_payload(params),
            reason=reason,
            timeout=timeout,
        )
        return AutoModerationRule.model_validate(data)

    async def modify_auto_moderation_rule(
        self,
        guild_id: SnowflakeLike,
        rule_id: SnowflakeLike,
        params: ModifyAutoModRuleParams,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> AutoModerationRule:
        data = await self._request(
            "PATCH",
            "/guilds/{guild_id}/auto-moderation/rules/{rule_id}",
            {"guild_id": guild_id, "rule_id": rule_id},
            body=_payload(params),
            reason=reason,
            timeout=timeout,
        )
        return AutoModerationRule.model_validate(data)

    async def delete_auto_moderation_rule(
        self,
        guild_id: SnowflakeLike,
        rule_id: SnowflakeLike,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> None:
        await self._request(
            "DELETE",
            "/guilds/{guild_id}/auto-moderation/rules/{rule_id}",
            {"guild_id": guild_id, "rule_id": rule_id},
            reason=reason,
            timeout=timeout,
        )

    # -- scheduled events ----------------------------------------------------

    async def get_guild_scheduled_event(
        self,
        guild_id: SnowflakeLike,
        event_id: SnowflakeLike,
        *,
        with_user_count: bool = False,
        timeout: float | None = None,
    ) -> ScheduledEvent:
        query = {"with_user_count": "true"} if with_user_count else None
        data = await self._request(
            "GET",
            "/guilds/{guild_id}/scheduled-events/{event_id}",
            {"guild_id": guild_id, "event_id": event_id},
            params=query,
            timeout=timeout,
        )
        return ScheduledEvent.model_validate(data)

    async def create_guild_scheduled_event(
        self,
        guild_id: SnowflakeLike,
        params: CreateScheduledEventParams,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> ScheduledEvent:
        data = await self._request(
            "POST",
            "/guilds/{guild_id}/scheduled-events",
            {"guild_id": guild_id},
            body=_payload(params),
            reason=reason,
            timeout=timeout,
        )
        return ScheduledEvent.model_validate(data)

    async def modify_guild_scheduled_event(
        self,
        guild_id: SnowflakeLike,
        event_id: SnowflakeLike,
        params: ModifyScheduledEventParams,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> ScheduledEvent:
        data = await self._request(
            "PATCH",
            "/guilds/{guild_id}/scheduled-events/{event_id}",
            {"guild_id": guild_id, "event_id": event_id},
            body=_payload(params),
            reason=reason,
            timeout=timeout,
        )
        return ScheduledEvent.model_validate(data)

    async def delete_guild_scheduled_event(
        self,
        guild_id: SnowflakeLike,
        event_id: SnowflakeLike,
        *,
        timeout: float | None = None,
    ) -> None:
        await self._request(
            "DELETE",
            "/guilds/{guild_id}/scheduled-events/{event_id}",
            {"guild_id": guild_id, "event_id": event_id},
            timeout=timeout,
        )

    # -- soundboard ----------------------------------------------------------

    async def list_guild_soundboard_sounds(
        self, guild_id: SnowflakeLike, *, timeout: float | None = None
    ) -> list[SoundboardSound]:
        data = await self._request(
            "GET", "/guilds/{guild_id}/soundboard-sounds", {"guild_id": guild_id}, timeout=timeout
        )
        # This list comes wrapped: {"items": [...]}.
        items = data.get("items") if isinstance(data, dict) else data
        return [SoundboardSound.model_validate(item) for item in items or []]

    async def create_guild_soundboard_sound(
        self,
        guild_id: SnowflakeLike,
        params: CreateSoundboardSoundParams,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> SoundboardSound:
        data = await self._request(
            "POST",
            "/guilds/{guild_id}/soundboard-sounds",
            {"guild_id": guild_id},
            body=_payload(params),
            reason=reason,
            timeout=timeout,
        )
        return SoundboardSound.model_validate(data)

    async def modify_guild_soundboard_sound(
        self,
        guild_id: SnowflakeLike,
        sound_id: SnowflakeLike,
        params: ModifySoundboardSoundParams,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> SoundboardSound:
        data = await self._request(
            "PATCH",
            "/guilds/{guild_id}/soundboard-sounds/{sound_id}",
            {"guild_id": guild_id, "sound_id": sound_id},
            body=_payload(params),
            reason=reason,
            timeout=timeout,
        )
        return SoundboardSound.model_validate(data)

    async def delete_guild_soundboard_sound(
        self,
        guild_id: SnowflakeLike,
        sound_id: SnowflakeLike,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> None:
        await self._request(
            "DELETE",
            "/guilds/{guild_id}/soundboard-sounds/{sound_id}",
            {"guild_id": guild_id, "sound_id": sound_id},
            reason=reason,
            timeout=timeout,
        )

    # -- stage instances -----------------------------------------------------

    async def create_stage_instance(
        self,
        params: CreateStageInstanceParams,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> StageInstance:
        data = await self._request(
            "POST", "/stage-instances", body=_payload(params), reason=reason, timeout=timeout
        )
        return StageInstance.model_validate(data)

    async def get_stage_instance(
        self, channel_id: SnowflakeLike, *, timeout: float | None = None
    ) -> StageInstance:
        data = await self._request(
            "GET", "/stage-instances/{channel_id}", {"channel_id": channel_id}, timeout=timeout
        )
        return StageInstance.model_validate(data)

    async def modify_stage_instance(
        self,
        channel_id: SnowflakeLike,
        params: ModifyStageInstanceParams,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> StageInstance:
        data = await self._request(
            "PATCH",
            "/stage-instances/{channel_id}",
            {"channel_id": channel_id},
            body=_payload(params),
            reason=reason,
            timeout=timeout,
        )
        return StageInstance.model_validate(data)

    async def delete_stage_instance(
        self,
        channel_id: SnowflakeLike,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> None:
        await self._request(
            "DELETE",
            "/stage-instances/{channel_id}",
            {"channel_id": channel_id},
            reason=reason,
            timeout=timeout,
        )

    # -- stickers ------------------------------------------------------------

    async def get_guild_sticker(
        self,
        guild_id: SnowflakeLike,
        sticker_id: SnowflakeLike,
        *,
        timeout: float | None = None,
    ) -> Sticker:
        data = await self._request(
            "GET",
            "/guilds/{guild_id}/stickers/{sticker_id}",
            {"guild_id": guild_id, "sticker_id": sticker_id},
            timeout=timeout,
        )
        return Sticker.model_validate(data)

    async def create_guild_sticker(
        self,
        guild_id: SnowflakeLike,
        params: CreateStickerParams,
        file: bytes,
        *,
        filename: str = "sticker.png",
        content_type: str = "image/png",
        reason: str | None = None,
        timeout: float | None = None,
    ) -> Sticker:
        """Upload a sticker.  Discord only accepts this one as multipart form data."""
        data = await self._request(
            "POST",
            "/guilds/{guild_id}/stickers",
            {"guild_id": guild_id},
            body=_payload(params),
            files={"file": (filename, file, content_type)},
            reason=reason,
            timeout=timeout,
        )
        return Sticker.model_validate(data)

    async def modify_guild_sticker(
        self,
        guild_id: SnowflakeLike,
        sticker_id: SnowflakeLike,
        params: ModifyStickerParams,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> Sticker:
        data = await self._request(
            "PATCH",
            "/guilds/{guild_id}/stickers/{sticker_id}",
            {"guild_id": guild_id, "sticker_id": sticker_id},
            body=_payload(params),
            reason=reason,
            timeout=timeout,
        )
        return Sticker.model_validate(data)

    async def delete_guild_sticker(
        self,
        guild_id: SnowflakeLike,
        sticker_id: SnowflakeLike,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> None:
        await self._request(
            "DELETE",
            "/guilds/{guild_id}/stickers/{sticker_id}",
            {"guild_id": guild_id, "sticker_id": sticker_id},
            reason=reason,
            timeout=timeout,
        )

    # -- guild templates -----------------------------------------------------

    async def get_guild_templates(
        self, guild_id: SnowflakeLike, *, timeout: float | None = None
    ) -> list[GuildTemplate]:
        data = await self._request(
            "GET", "/guilds/{guild_id}/templates", {"guild_id": guild_id}, timeout=timeout
        )
        return [GuildTemplate.model_validate(item) for item in data or []]

    async def create_guild_template(
        self,
        guild_id: SnowflakeLike,
        params: CreateTemplateParams,
        *,
        timeout: float | None = None,
    ) -> GuildTemplate:
        data = await self._request(
            "POST",
            "/guilds/{guild_id}/templates",
            {"guild_id": guild_id},
            body=_payload(params),
            timeout=timeout,
        )
        return GuildTemplate.model_validate(data)

    async def modify_guild_template(
        self,
        guild_id: SnowflakeLike,
        code: str,
        params: ModifyTemplateParams,
        *,
        timeout: float | None = None,
    ) -> GuildTemplate:
        data = await self._request(
            "PATCH",
            "/guilds/{guild_id}/templates/{code}",
            {"guild_id": guild_id, "code": code},
            body=_payload(params),
            timeout=timeout,
        )
        return GuildTemplate.model_validate(data)

    async def delete_guild_template(
        self, guild_id: SnowflakeLike, code: str, *, timeout: float | None = None
    ) -> GuildTemplate | None:
        data = await self._request(
            "DELETE",
            "/guilds/{guild_id}/templates/{code}",
            {"guild_id": guild_id, "code": code},
            timeout=timeout,
        )
        return GuildTemplate.model_validate(data) if data is not None else None

    # -- onboarding, welcome screen, widget ----------------------------------

    async def get_guild_onboarding(
        self, guild_id: SnowflakeLike, *, timeout: float | None = None
    ) -> GuildOnboarding:
        data = await self._request(
            "GET", "/guilds/{guild_id}/onboarding", {"guild_id": guild_id}, timeout=timeout
        )
        return GuildOnboarding.model_validate(data)

    async def modify_guild_onboarding(
        self,
        guild_id: SnowflakeLike,
        params: ModifyOnboardingParams,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> GuildOnboarding:
        # Discord takes PUT here, not PATCH.
        data = await self._request(
            "PUT",
            "/guilds/{guild_id}/onboarding",
            {"guild_id": guild_id},
            body=_payload(params),
            reason=reason,
            timeout=timeout,
        )
        return GuildOnboarding.model_validate(data)

    async def get_guild_welcome_screen(
        self, guild_id: SnowflakeLike, *, timeout: float | None = None
    ) -> WelcomeScreen:
        data = await self._request(
            "GET", "/guilds/{guild_id}/welcome-screen", {"guild_id": guild_id}, timeout=timeout
        )
        return WelcomeScreen.model_validate(data)

    async def modify_guild_welcome_screen(
        self,
        guild_id: SnowflakeLike,
        params: ModifyWelcomeScreenParams,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> WelcomeScreen:
        data = await self._request(
            "PATCH",
            "/guilds/{guild_id}/welcome-screen",
            {"guild_id": guild_id},
            body=_payload(params),
            reason=reason,
            timeout=timeout,
        )
        return WelcomeScreen.model_validate(data)

    async def get_guild_widget_settings(
        self, guild_id: SnowflakeLike, *, timeout: float | None = None
    ) -> GuildWidgetSettings:
        data = await self._request(
            "GET", "/guilds/{guild_id}/widget", {"guild_id": guild_id}, timeout=timeout
        )
        return GuildWidgetSettings.model_validate(data)

    async def modify_guild_widget(
        self,
        guild_id: SnowflakeLike,
        params: ModifyWidgetParams,
        *,
        reason: str | None = None,
        timeout: float | None = None,
    ) -> GuildWidgetSettings:
        data = await self._request(
            "PATCH",
            "/guilds/{guild_id}/widget",
            {"guild_id": guild_id},
            body=_payload(params),
            reason=reason,
            timeout=timeout,
        )
        return GuildWidgetSettings.model_validate(data)

    # -- voice ---------------------------------------------------------------

    async def list_voice_regions(self, *, timeout: float | None = None) -> list[VoiceRegion]:
        data = await self._request("GET", "/voice/regions", timeout=timeout)
        return [VoiceRegion.model_validate(item) for item in data or []]
