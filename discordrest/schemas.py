"""Pydantic models for Discord entities and request parameters.

Parameter models are tri-state per optional field: a field that was never
assigned is left out of the request, a field explicitly set to ``None`` is
sent as JSON ``null`` (which clears it on the server), and anything else is
sent as given.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from discordrest.snowflake import Snowflake


class DiscordModel(BaseModel):
    """Base for objects returned by the API.  Unknown fields are kept."""

    model_config = ConfigDict(extra="allow")


class Params(BaseModel):
    """Base for request bodies."""

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict holding only the fields the caller set."""
        return self.model_dump(mode="json", exclude_unset=True)


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------


class User(DiscordModel):
    id: Snowflake
    username: str
    discriminator: str = "0"
    global_name: str | None = None
    avatar: str | None = None
    bot: bool = False
    system: bool = False
    banner: str | None = None
    accent_color: int | None = None
    locale: str | None = None
    flags: int = 0
    public_flags: int = 0


class PermissionOverwrite(Params):
    """Allow/deny bitsets for a role (type 0) or member (type 1)."""

    id: Snowflake
    type: int = Field(..., description="0 for a role, 1 for a member")
    allow: str | None = None
    deny: str | None = None


class ForumTag(Params):
    id: Snowflake | None = None
    name: str
    moderated: bool | None = None
    emoji_id: Snowflake | None = None
    emoji_name: str | None = None


class DefaultReaction(Params):
    emoji_id: Snowflake | None = None
    emoji_name: str | None = None


class Embed(Params):
    title: str | None = None
    type: str | None = None
    description: str | None = None
    url: str | None = None
    timestamp: datetime | None = None
    color: int | None = None


# ---------------------------------------------------------------------------
# Guilds
# ---------------------------------------------------------------------------


class Guild(DiscordModel):
    id: Snowflake
    name: str
    icon: str | None = None
    splash: str | None = None
    discovery_splash: str | None = None
    owner_id: Snowflake | None = None
    afk_channel_id: Snowflake | None = None
    afk_timeout: int = 0
    widget_enabled: bool = False
    widget_channel_id: Snowflake | None = None
    verification_level: int = 0
    default_message_notifications: int = 0
    explicit_content_filter: int = 0
    roles: list[Role] = Field(default_factory=list)
    emojis: list[Emoji] = Field(default_factory=list)
    features: list[str] = Field(default_factory=list)
    mfa_level: int = 0
    application_id: Snowflake | None = None
    system_channel_id: Snowflake | None = None
    system_channel_flags: int = 0
    rules_channel_id: Snowflake | None = None
    vanity_url_code: str | None = None
    description: str | None = None
    banner: str | None = None
    premium_tier: int = 0
    preferred_locale: str = "en-US"
    public_updates_channel_id: Snowflake | None = None
    nsfw_level: int = 0
    premium_progress_bar_enabled: bool = False
    safety_alerts_channel_id: Snowflake | None = None
    approximate_member_count: int | None = None
    approximate_presence_count: int | None = None


class CreateGuildParams(Params):
    name: str
    icon: str | None = None
    verification_level: int | None = None
    default_message_notifications: int | None = None
    explicit_content_filter: int | None = None
    afk_channel_id: Snowflake | None = None
    afk_timeout: int | None = None
    system_channel_id: Snowflake | None = None
    system_channel_flags: int | None = None


class ModifyGuildParams(Params):
    name: str | None = None
    verification_level: int | None = None
    default_message_notifications: int | None = None
    explicit_content_filter: int | None = None
    afk_channel_id: Snowflake | None = None
    afk_timeout: int | None = None
    icon: str | None = None
    owner_id: Snowflake | None = None
    splash: str | None = None
    discovery_splash: str | None = None
    banner: str | None = None
    system_channel_id: Snowflake | None = None
    system_channel_flags: int | None = None
    rules_channel_id: Snowflake | None = None
    public_updates_channel_id: Snowflake | None = None
    preferred_locale: str | None = None
    features: list[str] | None = None
    description: str | None = None
    premium_progress_bar_enabled: bool | None = None
    safety_alerts_channel_id: Snowflake | None = None


# ---------------------------------------------------------------------------
# Channels
# ---------------------------------------------------------------------------


class Channel(DiscordModel):
    id: Snowflake
    type: int
    guild_id: Snowflake | None = None
    position: int | None = None
    permission_overwrites: list[PermissionOverwrite] = Field(default_factory=list)
    name: str | None = None
    topic: str | None = None
    nsfw: bool = False
    last_message_id: Snowflake | None = None
    bitrate: int | None = None
    user_limit: int | None = None
    rate_limit_per_user: int | None = None
    parent_id: Snowflake | None = None
    rtc_region: str | None = None
    video_quality_mode: int | None = None
    default_auto_archive_duration: int | None = None
    flags: int | None = None
    available_tags: list[ForumTag] = Field(default_factory=list)
    default_reaction_emoji: DefaultReaction | None = None
    default_thread_rate_limit_per_user: int | None = None
    default_sort_order: int | None = None
    default_forum_layout: int | None = None


class CreateChannelParams(Params):
    name: str
    type: int | None = None
    topic: str | None = None
    bitrate: int | None = None
    user_limit: int | None = None
    rate_limit_per_user: int | None = None
    position: int | None = None
    permission_overwrites: list[PermissionOverwrite] | None = None
    parent_id: Snowflake | None = None
    nsfw: bool | None = None
    rtc_region: str | None = None
    video_quality_mode: int | None = None
    default_auto_archive_duration: int | None = None
    default_reaction_emoji: DefaultReaction | None = None
    available_tags: list[ForumTag] | None = None
    default_sort_order: int | None = None
    default_forum_layout: int | None = None
    default_thread_rate_limit_per_user: int | None = None


class ModifyChannelParams(Params):
    name: str | None = None
    type: int | None = None
    position: int | None = None
    topic: str | None = None
    nsfw: bool | None = None
    rate_limit_per_user: int | None = None
    bitrate: int | None = None
    user_limit: int | None = None
    permission_overwrites: list[PermissionOverwrite] | None = None
    parent_id: Snowflake | None = None
    rtc_region: str | None = None
    video_quality_mode: int | None = None
    default_auto_archive_duration: int | None = None
    flags: int | None = None
    available_tags: list[ForumTag] | None = None
    default_reaction_emoji: DefaultReaction | None = None
    default_thread_rate_limit_per_user: int | None = None
    default_sort_order: int | None = None
    default_forum_layout: int | None = None


class EditPermissionsParams(Params):
    type: int = Field(..., description="0 for a role, 1 for a member")
    allow: str | None = None
    deny: str | None = None


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------


class RoleTags(DiscordModel):
    bot_id: Snowflake | None = None
    integration_id: Snowflake | None = None
    subscription_listing_id: Snowflake | None = None


class Role(DiscordModel):
    id: Snowflake
    name: str
    color: int = 0
    hoist: bool = False
    icon: str | None = None
    unicode_emoji: str | None = None
    position: int = 0
    permissions: str = "0"
    managed: bool = False
    mentionable: bool = False
    tags: RoleTags | None = None
    flags: int = 0


class CreateRoleParams(Params):
    name: str | None = None
    permissions: str | None = None
    color: int | None = None
    hoist: bool | None = None
    icon: str | None = None
    unicode_emoji: str | None = None
    mentionable: bool | None = None


class ModifyRoleParams(CreateRoleParams):
    pass


class RolePosition(Params):
    id: Snowflake
    position: int | None = None


# ---------------------------------------------------------------------------
# Members and bans
# ---------------------------------------------------------------------------


class Member(DiscordModel):
    user: User | None = None
    nick: str | None = None
    avatar: str | None = None
    roles: list[Snowflake] = Field(default_factory=list)
    joined_at: datetime | None = None
    premium_since: datetime | None = None
    deaf: bool = False
    mute: bool = False
    flags: int = 0
    pending: bool = False
    communication_disabled_until: datetime | None = None


class ModifyMemberParams(Params):
    nick: str | None = None
    roles: list[Snowflake] | None = None
    mute: bool | None = None
    deaf: bool | None = None
    channel_id: Snowflake | None = None
    communication_disabled_until: datetime | None = None
    flags: int | None = None


class Ban(DiscordModel):
    reason: str | None = None
    user: User


class CreateBanParams(Params):
    delete_message_seconds: int | None = Field(
        None, description="Seconds of message history to delete (max 7 days)"
    )


# ---------------------------------------------------------------------------
# Emojis
# ---------------------------------------------------------------------------


class Emoji(DiscordModel):
    id: Snowflake | None = None
    name: str | None = None
    roles: list[Snowflake] = Field(default_factory=list)
    user: User | None = None
    require_colons: bool = False
    managed: bool = False
    animated: bool = False
    available: bool = True


class CreateEmojiParams(Params):
    name: str
    image: str = Field(..., description="Data URI, e.g. data:image/png;base64,...")
    roles: list[Snowflake] | None = None


class ModifyEmojiParams(Params):
    name: str | None = None
    roles: list[Snowflake] | None = None


# ---------------------------------------------------------------------------
# Invites
# ---------------------------------------------------------------------------


class InviteGuild(DiscordModel):
    id: Snowflake
    name: str | None = None


class InviteChannel(DiscordModel):
    id: Snowflake
    name: str | None = None
    type: int | None = None


class Invite(DiscordModel):
    code: str
    guild: InviteGuild | None = None
    channel: InviteChannel | None = None
    inviter: User | None = None
    target_type: int | None = None
    target_user: User | None = None
    approximate_presence_count: int | None = None
    approximate_member_count: int | None = None
    expires_at: datetime | None = None
    uses: int = 0
    max_uses: int = 0
    max_age: int = 0
    temporary: bool = False
    created_at: datetime | None = None


class CreateInviteParams(Params):
    max_age: int | None = Field(None, description="Seconds until expiry, 0 for never")
    max_uses: int | None = Field(None, description="0 for unlimited")
    temporary: bool | None = None
    unique: bool | None = None
    target_type: int | None = None
    target_user_id: Snowflake | None = None
    target_application_id: Snowflake | None = None


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


class Message(DiscordModel):
    id: Snowflake
    channel_id: Snowflake
    author: User | None = None
    content: str = ""
    timestamp: datetime | None = None
    edited_timestamp: datetime | None = None
    tts: bool = False
    pinned: bool = False
    type: int = 0
    flags: int = 0
    embeds: list[dict[str, Any]] = Field(default_factory=list)


class CreateMessageParams(Params):
    content: str | None = None
    tts: bool | None = None
    embeds: list[Embed] | None = None
    flags: int | None = None


class EditMessageParams(Params):
    content: str | None = None
    embeds: list[Embed] | None = None
    flags: int | None = None


# ---------------------------------------------------------------------------
# Webhooks
# ---------------------------------------------------------------------------


class Webhook(DiscordModel):
    id: Snowflake
    type: int
    guild_id: Snowflake | None = None
    channel_id: Snowflake | None = None
    user: User | None = None
    name: str | None = None
    avatar: str | None = None
    token: str | None = None
    application_id: Snowflake | None = None
    url: str | None = None


class CreateWebhookParams(Params):
    name: str
    avatar: str | None = None


class ModifyWebhookParams(Params):
    name: str | None = None
    avatar: str | None = None
    channel_id: Snowflake | None = None


# ---------------------------------------------------------------------------
# Applications and commands
# ---------------------------------------------------------------------------


class Application(DiscordModel):
    id: Snowflake
    name: str
    icon: str | None = None
    description: str = ""
    rpc_origins: list[str] = Field(default_factory=list)
    bot_public: bool = False
    bot_require_code_grant: bool = False
    bot: User | None = None
    terms_of_service_url: str | None = None
    privacy_policy_url: str | None = None
    owner: User | None = None
    verify_key: str = ""
    guild_id: Snowflake | None = None
    primary_sku_id: Snowflake | None = None
    slug: str | None = None
    cover_image: str | None = None
    flags: int = 0
    approximate_guild_count: int | None = None
    approximate_user_install_count: int | None = None
    redirect_uris: list[str] = Field(default_factory=list)
    interactions_endpoint_url: str | None = None
    role_connections_verification_url: str | None = None
    tags: list[str] = Field(default_factory=list)
    custom_install_url: str | None = None


class EditApplicationParams(Params):
    custom_install_url: str | None = None
    description: str | None = None
    role_connections_verification_url: str | None = None
    interactions_endpoint_url: str | None = None
    flags: int | None = None
    icon: str | None = Field(None, description="Image data URI")
    cover_image: str | None = Field(None, description="Image data URI")
    tags: list[str] | None = Field(None, description="Up to 5 tags")


class CommandOptionChoice(Params):
    name: str
    name_localizations: dict[str, str] | None = None
    value: str | int | float


class CommandOption(Params):
    type: int
    name: str
    name_localizations: dict[str, str] | None = None
    description: str
    description_localizations: dict[str, str] | None = None
    required: bool | None = None
    choices: list[CommandOptionChoice] | None = None
    options: list[CommandOption] | None = None
    channel_types: list[int] | None = None
    min_value: float | None = None
    max_value: float | None = None
    min_length: int | None = None
    max_length: int | None = None
    autocomplete: bool | None = None


class ApplicationCommand(DiscordModel):
    id: Snowflake
    type: int = 1
    application_id: Snowflake
    guild_id: Snowflake | None = None
    name: str
    name_localizations: dict[str, str] | None = None
    description: str = ""
    description_localizations: dict[str, str] | None = None
    options: list[CommandOption] = Field(default_factory=list)
    default_member_permissions: str | None = None
    dm_permission: bool | None = None
    nsfw: bool = False
    version: Snowflake | None = None


class CreateCommandParams(Params):
    name: str
    name_localizations: dict[str, str] | None = None
    description: str | None = None
    description_localizations: dict[str, str] | None = None
    options: list[CommandOption] | None = None
    default_member_permissions: str | None = Field(None, description="Permission bitset as a string")
    dm_permission: bool | None = None
    type: int | None = Field(None, description="1 chat input, 2 user, 3 message")
    nsfw: bool | None = None


class EditCommandParams(Params):
    name: str | None = None
    name_localizations: dict[str, str] | None = None
    description: str | None = None
    description_localizations: dict[str, str] | None = None
    options: list[CommandOption] | None = None
    default_member_permissions: str | None = None
    dm_permission: bool | None = None
    nsfw: bool | None = None


# ---------------------------------------------------------------------------
# Auto moderation
# ---------------------------------------------------------------------------


class TriggerMetadata(Params):
    keyword_filter: list[str] | None = None
    regex_patterns: list[str] | None = None
    presets: list[int] | None = None
    allow_list: list[str] | None = None
    mention_total_limit: int | None = None
    mention_raid_protection_enabled: bool | None = None


class AutoModActionMetadata(Params):
    channel_id: Snowflake | None = None
    duration_seconds: int | None = None
    custom_message: str | None = None


class AutoModAction(Params):
    type: int = Field(..., description="1 block message, 2 send alert, 3 timeout")
    metadata: AutoModActionMetadata | None = None


class AutoModerationRule(DiscordModel):
    id: Snowflake
    guild_id: Snowflake
    name: str
    creator_id: Snowflake | None = None
    event_type: int
    trigger_type: int
    trigger_metadata: TriggerMetadata | None = None
    actions: list[AutoModAction] = Field(default_factory=list)
    enabled: bool = False
    exempt_roles: list[Snowflake] = Field(default_factory=list)
    exempt_channels: list[Snowflake] = Field(default_factory=list)


class CreateAutoModRuleParams(Params):
    name: str
    event_type: int
    trigger_type: int
    trigger_metadata: TriggerMetadata | None = None
    actions: list[AutoModAction]
    enabled: bool | None = None
    exempt_roles: list[Snowflake] | None = None
    exempt_channels: list[Snowflake] | None = None


class ModifyAutoModRuleParams(Params):
    name: str | None = None
    event_type: int | None = None
    trigger_metadata: TriggerMetadata | None = None
    actions: list[AutoModAction] | None = None
    enabled: bool | None = None
    exempt_roles: list[Snowflake] | None = None
    exempt_channels: list[Snowflake] | None = None


# ---------------------------------------------------------------------------
# Scheduled events
# ---------------------------------------------------------------------------


class EntityMetadata(Params):
    location: str | None = None


class ScheduledEvent(DiscordModel):
    id: Snowflake
    guild_id: Snowflake
    channel_id: Snowflake | None = None
    creator_id: Snowflake | None = None
    name: str
    description: str | None = None
    scheduled_start_time: datetime
    scheduled_end_time: datetime | None = None
    privacy_level: int = 2
    status: int = 1
    entity_type: int
    entity_id: Snowflake | None = None
    entity_metadata: EntityMetadata | None = None
    creator: User | None = None
    user_count: int | None = None
    image: str | None = None


class CreateScheduledEventParams(Params):
    channel_id: Snowflake | None = Field(None, description="Omit for external events")
    entity_metadata: EntityMetadata | None = None
    name: str
    privacy_level: int = Field(..., description="2 (guild only) is the only level")
    scheduled_start_time: datetime
    scheduled_end_time: datetime | None = None
    description: str | None = None
    entity_type: int = Field(..., description="1 stage, 2 voice, 3 external")
    image: str | None = None


class ModifyScheduledEventParams(Params):
    channel_id: Snowflake | None = None
    entity_metadata: EntityMetadata | None = None
    name: str | None = None
    privacy_level: int | None = None
    scheduled_start_time: datetime | None = None
    scheduled_end_time: datetime | None = None
    description: str | None = None
    entity_type: int | None = None
    status: int | None = Field(None, description="2 active, 3 completed, 4 canceled")
    image: str | None = None


# ---------------------------------------------------------------------------
# Soundboard
# ---------------------------------------------------------------------------


class SoundboardSound(DiscordModel):
    name: str
    sound_id: Snowflake
    volume: float = 1.0
    emoji_id: Snowflake | None = None
    emoji_name: str | None = None
    guild_id: Snowflake | None = None
    available: bool = True
    user: User | None = None


class CreateSoundboardSoundParams(Params):
    name: str
    sound: str = Field(..., description="MP3 or OGG data URI")
    volume: float | None = Field(None, ge=0.0, le=1.0)
    emoji_id: Snowflake | None = None
    emoji_name: str | None = None


class ModifySoundboardSoundParams(Params):
    name: str | None = None
    volume: float | None = Field(None, ge=0.0, le=1.0)
    emoji_id: Snowflake | None = None
    emoji_name: str | None = None


# ---------------------------------------------------------------------------
# Stage instances
# ---------------------------------------------------------------------------


class StageInstance(DiscordModel):
    id: Snowflake
    guild_id: Snowflake
    channel_id: Snowflake
    topic: str
    privacy_level: int = 2
    discoverable_disabled: bool = False
    guild_scheduled_event_id: Snowflake | None = None


class CreateStageInstanceParams(Params):
    channel_id: Snowflake
    topic: str
    privacy_level: int | None = None
    send_start_notification: bool | None = None
    guild_scheduled_event_id: Snowflake | None = None


class ModifyStageInstanceParams(Params):
    topic: str | None = None
    privacy_level: int | None = None


# ---------------------------------------------------------------------------
# Stickers
# ---------------------------------------------------------------------------


class Sticker(DiscordModel):
    id: Snowflake
    pack_id: Snowflake | None = None
    name: str
    description: str | None = None
    tags: str = ""
    type: int = 2
    format_type: int = 1
    available: bool = True
    guild_id: Snowflake | None = None
    user: User | None = None
    sort_value: int | None = None


class CreateStickerParams(Params):
    name: str
    description: str | None = None
    tags: str = Field(..., description="Autocomplete keywords, comma separated")


class ModifyStickerParams(Params):
    name: str | None = None
    description: str | None = None
    tags: str | None = None


# ---------------------------------------------------------------------------
# Guild templates
# ---------------------------------------------------------------------------


class GuildTemplate(DiscordModel):
    code: str
    name: str
    description: str | None = None
    usage_count: int = 0
    creator_id: Snowflake | None = None
    creator: User | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    source_guild_id: Snowflake | None = None
    serialized_source_guild: dict[str, Any] | None = None
    is_dirty: bool | None = None


class CreateTemplateParams(Params):
    name: str
    description: str | None = None


class ModifyTemplateParams(Params):
    name: str | None = None
    description: str | None = None


# ---------------------------------------------------------------------------
# Onboarding, welcome screen, widget
# ---------------------------------------------------------------------------


class OnboardingPromptOption(Params):
    id: Snowflake | None = None
    channel_ids: list[Snowflake] | None = None
    role_ids: list[Snowflake] | None = None
    emoji_id: Snowflake | None = None
    emoji_name: str | None = None
    emoji_animated: bool | None = None
    title: str
    description: str | None = None


class OnboardingPrompt(Params):
    id: Snowflake | None = None
    type: int = Field(..., description="0 multiple choice, 1 dropdown")
    options: list[OnboardingPromptOption]
    title: str
    single_select: bool | None = None
    required: bool | None = None
    in_onboarding: bool | None = None


class GuildOnboarding(DiscordModel):
    guild_id: Snowflake
    prompts: list[OnboardingPrompt] = Field(default_factory=list)
    default_channel_ids: list[Snowflake] = Field(default_factory=list)
    enabled: bool = False
    mode: int = 0


class ModifyOnboardingParams(Params):
    prompts: list[OnboardingPrompt] | None = None
    default_channel_ids: list[Snowflake] | None = None
    enabled: bool | None = None
    mode: int | None = None


class WelcomeScreenChannel(Params):
    channel_id: Snowflake
    description: str
    emoji_id: Snowflake | None = None
    emoji_name: str | None = None


class WelcomeScreen(DiscordModel):
    description: str | None = None
    welcome_channels: list[WelcomeScreenChannel] = Field(default_factory=list)


class ModifyWelcomeScreenParams(Params):
    enabled: bool | None = None
    welcome_channels: list[WelcomeScreenChannel] | None = None
    description: str | None = None


class GuildWidgetSettings(DiscordModel):
    enabled: bool = False
    channel_id: Snowflake | None = None


class ModifyWidgetParams(Params):
    enabled: bool | None = None
    channel_id: Snowflake | None = None


# ---------------------------------------------------------------------------
# Voice
# ---------------------------------------------------------------------------


class VoiceRegion(DiscordModel):
    id: str
    name: str
    optimal: bool = False
    deprecated: bool = False
    custom: bool = False


Guild.model_rebuild()
CommandOption.model_rebuild()
