"""
Discord notification channel.

Approval requests are posted to a text channel through the Discord REST API
as an embed with Approve / Edit / Deny / Deny with reason buttons. Button
clicks and modal submissions reach us through Discord's HTTP interactions
webhook (``POST /discord/interactions``), signed with the application's
Ed25519 key.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any

import httpx
from nacl.exceptions import BadSignatureError
from nacl.signing import VerifyKey

from config.settings import DiscordSettings
from core.approval import (
    BaseChannel,
    approve,
    build_edited_input,
    deny,
    editable_value,
)
from core.exceptions import ChannelDeliveryError
from core.permissions import (
    ApprovalDecision,
    ApprovalRequest,
    Decision,
    dangerous_command_warning,
)

from .logging_config import log_timing

logger = logging.getLogger(__name__)

DISCORD_API_BASE = "https://discord.com/api/v10"
REQUEST_TIMEOUT_SECONDS = 10.0

# Interaction types
PING = 1
MESSAGE_COMPONENT = 3
MODAL_SUBMIT = 5

# Interaction callback types
PONG = 1
CHANNEL_MESSAGE_WITH_SOURCE = 4
UPDATE_MESSAGE = 7
MODAL = 9

# Component types and styles
ACTION_ROW = 1
BUTTON = 2
TEXT_INPUT = 4
STYLE_PRIMARY = 1
STYLE_SECONDARY = 2
STYLE_SUCCESS = 3
STYLE_DANGER = 4
TEXT_INPUT_PARAGRAPH = 2
EPHEMERAL = 64

COLOR_PENDING = 0x0099FF
COLOR_ALLOWED = 0x00FF00
COLOR_DENIED = 0xFF0000
COLOR_CLOSED = 0x808080

# Discord field values max out at 1024 chars; leave room for code fences
CODE_BLOCK_MAX_LEN = 900
DIFF_MAX_LEN = 400
MODAL_VALUE_MAX_LEN = 4000
TRUNCATED = "...(truncated)"

EDITED_INPUT_ID = "edited_input"
REASON_ID = "reason"


def escape_code_block(content: str) -> str:
    """Break up ``` so user content can't close our code fence."""
    return content.replace("```", "`\u200b`\u200b`")


def truncate(content: str, limit: int = CODE_BLOCK_MAX_LEN, suffix: str = TRUNCATED) -> str:
    if len(content) <= limit:
        return content
    return content[:limit] + suffix


def code_block(content: str, lang: str = "") -> str:
    return f"```{lang}\n{escape_code_block(content)}\n```"


def _field(name: str, value: str, inline: bool = False) -> dict[str, Any]:
    return {"name": name, "value": value, "inline": inline}


def tool_fields(tool_name: str, tool_input: dict[str, Any]) -> list[dict[str, Any]]:
    """Embed fields describing one tool call."""

    def text(key: str, default: str) -> str:
        value = tool_input.get(key)
        return str(value) if value else default

    if tool_name == "Bash":
        command = text("command", "(empty)")
        fields = [_field("Command", code_block(truncate(command)))]
        warning = dangerous_command_warning(command)
        if warning:
            fields.append(_field("Warning", warning))
        return fields

    if tool_name == "Edit":
        fields = [_field("File", f"`{text('file_path', '(unknown)')}`")]
        old = str(tool_input.get("old_string") or "")
        new = str(tool_input.get("new_string") or "")
        if old or new:
            removed = "\n".join(f"- {line}" for line in old.split("\n"))
            added = "\n".join(f"+ {line}" for line in new.split("\n"))
            removed = truncate(removed, DIFF_MAX_LEN, "\n" + TRUNCATED)
            added = truncate(added, DIFF_MAX_LEN, "\n" + TRUNCATED)
            fields.append(_field("Changes", code_block(f"{removed}\n{added}", "diff")))
        return fields

    if tool_name == "Write":
        fields = [_field("File", f"`{text('file_path', '(unknown)')}`")]
        content = str(tool_input.get("content") or "")
        if content:
            fields.append(_field("Content", code_block(truncate(content))))
        return fields

    if tool_name == "Read":
        return [_field("File", f"`{text('file_path', '(unknown)')}`")]

    if tool_name == "WebFetch":
        return [_field("URL", f"`{text('url', '(unknown)')}`")]

    if tool_name == "Task":
        return [_field("Description", text("description", "(no description)"))]

    if tool_name in ("Grep", "Glob"):
        return [
            _field("Pattern", f"`{text('pattern', '(unknown)')}`", inline=True),
            _field("Path", f"`{text('path', '(cwd)')}`", inline=True),
        ]

    return [_field("Input", code_block(truncate(json.dumps(tool_input)), "json"))]


def build_request_embed(request: ApprovalRequest) -> dict[str, Any]:
    """The embed posted for a new approval request."""
    invocation = request.invocation
    fields = [_field("Tool", f"`{invocation.tool_name}`")]
    fields.extend(tool_fields(invocation.tool_name, invocation.tool_input))
    fields.append(_field("Working Directory", f"`{invocation.cwd}`", inline=True))
    fields.append(_field("Session", invocation.session_id[:8] or "(none)", inline=True))

    timestamp = datetime.fromtimestamp(request.created_at / 1000, tz=timezone.utc)
    return {
        "title": "Permission Request",
        "color": COLOR_PENDING,
        "fields": fields,
        "timestamp": timestamp.isoformat(),
    }


def button_row(request_id: str, disabled: bool = False) -> dict[str, Any]:
    """Approve / Edit / Deny / Deny with reason buttons for one request."""
    suffix = "disabled" if disabled else request_id
    buttons = [
        ("approve", "Approve", STYLE_SUCCESS),
        ("edit", "Edit", STYLE_PRIMARY),
        ("deny", "Deny", STYLE_DANGER),
        ("reason", "Deny with reason", STYLE_SECONDARY),
    ]
    return {
        "type": ACTION_ROW,
        "components": [
            {
                "type": BUTTON,
                "custom_id": f"{action}:{suffix}",
                "label": label,
                "style": style,
                "disabled": disabled,
            }
            for action, label, style in buttons
        ],
    }


def ephemeral(content: str) -> dict[str, Any]:
    return {"type": CHANNEL_MESSAGE_WITH_SOURCE, "data": {"content": content, "flags": EPHEMERAL}}


def text_input_modal(
    custom_id: str, title: str, input_id: str, label: str, value: str, required: bool
) -> dict[str, Any]:
    text_input: dict[str, Any] = {
        "type": TEXT_INPUT,
        "custom_id": input_id,
        "label": label,
        "style": TEXT_INPUT_PARAGRAPH,
        "required": required,
        "max_length": MODAL_VALUE_MAX_LEN,
    }
    if value:
        text_input["value"] = value[:MODAL_VALUE_MAX_LEN]
    return {
        "type": MODAL,
        "data": {
            "custom_id": custom_id,
            "title": title,
            "components": [{"type": ACTION_ROW, "components": [text_input]}],
        },
    }


def modal_value(interaction: dict[str, Any], input_id: str) -> str:
    """Value of a text input in a modal submission ('' if absent)."""
    for row in interaction.get("data", {}).get("components", []):
        for component in row.get("components", []):
            if component.get("custom_id") == input_id:
                return component.get("value") or ""
    return ""


def interaction_user(interaction: dict[str, Any]) -> str:
    user = (interaction.get("member") or {}).get("user") or interaction.get("user") or {}
    return user.get("global_name") or user.get("username") or "unknown"


class DiscordChannel(BaseChannel):
    """NotificationChannel that asks a Discord text channel."""

    name = "discord"

    def __init__(
        self,
        settings: DiscordSettings,
        api_base: str = DISCORD_API_BASE,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the channel.

        Args:
            settings: Bot token, channel id and application public key
            api_base: Discord REST API base URL
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        super().__init__()
        self.settings = settings
        self._verify_key = VerifyKey(bytes.fromhex(settings.public_key))
        self._api_base = api_base
        self._transport = transport
        self._client = self._build_client()
        self.channel_name: str | None = None

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._api_base,
            headers={"Authorization": f"Bot {self.settings.bot_token}"},
            timeout=REQUEST_TIMEOUT_SECONDS,
            transport=self._transport,
        )

    async def start(self) -> None:
        """Check that the bot can see the configured channel."""
        if self._client.is_closed:
            self._client = self._build_client()
        try:
            response = await self._client.get(f"/channels/{self.settings.channel_id}")
        except httpx.HTTPError as e:
            raise ChannelDeliveryError(f"Cannot reach Discord: {e}") from e
        if response.status_code != 200:
            raise ChannelDeliveryError(
                f"Channel {self.settings.channel_id} not found or not accessible "
                f"(HTTP {response.status_code})"
            )
        self.channel_name = response.json().get("name")
        logger.info("[Discord] Connected to channel: #%s", self.channel_name)

    async def notify(self, request: ApprovalRequest) -> None:
        payload = {
            "embeds": [build_request_embed(request)],
            "components": [button_row(request.request_id)],
        }
        # Track first so a very fast click still finds the request
        self.track(request)
        try:
            with log_timing(logger, "Discord send"):
                response = await self._client.post(
                    f"/channels/{self.settings.channel_id}/messages", json=payload
                )
        except httpx.HTTPError as e:
            self.dismiss(request.request_id)
            raise ChannelDeliveryError(f"Failed to send Discord message: {e}") from e

        if response.is_error:
            self.dismiss(request.request_id)
            raise ChannelDeliveryError(
                f"Discord API returned {response.status_code}: {response.text[:200]}"
            )
        logger.info("[Discord] Sent approval request: %s", request.request_id)

    async def aclose(self) -> None:
        await super().aclose()
        await self._client.aclose()
        logger.info("[Discord] Channel closed")

    def verify_signature(self, body: bytes, signature: str, timestamp: str) -> bool:
        """Check an interaction's ``X-Signature-Ed25519`` header."""
        try:
            self._verify_key.verify(timestamp.encode() + body, bytes.fromhex(signature))
        except (BadSignatureError, ValueError):
            return False
        return True

    def handle_interaction(self, interaction: dict[str, Any]) -> dict[str, Any]:
        """
        Handle a verified interaction payload.

        Returns:
            The interaction callback to send back to Discord
        """
        kind = interaction.get("type")
        if kind == PING:
            return {"type": PONG}

        custom_id = str(interaction.get("data", {}).get("custom_id", ""))
        action, _, request_id = custom_id.partition(":")
        if not request_id or request_id == "disabled":
            return ephemeral("This request is no longer active")

        if kind == MESSAGE_COMPONENT:
            return self._handle_button(interaction, action, request_id)
        if kind == MODAL_SUBMIT:
            return self._handle_modal(interaction, action, request_id)

        logger.warning("[Discord] Unsupported interaction type: %s", kind)
        return ephemeral("Unsupported interaction")

    def _handle_button(
        self, interaction: dict[str, Any], action: str, request_id: str
    ) -> dict[str, Any]:
        logger.info("[Discord] Button clicked: %s for request %s", action, request_id)
        request = self.get_request(request_id)
        if request is None:
            return ephemeral("Request data not found")

        if action == "approve":
            return self._process_decision(interaction, request_id, approve(request_id), "Approved")
        if action == "deny":
            return self._process_decision(interaction, request_id, deny(request_id), "Denied")
        if action == "edit":
            invocation = request.invocation
            label, value = editable_value(invocation.tool_name, invocation.tool_input)
            return text_input_modal(
                f"edit_modal:{request_id}", "Edit & Approve", EDITED_INPUT_ID, label, value, True
            )
        if action == "reason":
            return text_input_modal(
                f"deny_modal:{request_id}", "Deny", REASON_ID, "Reason (optional)", "", False
            )

        logger.warning("[Discord] Unknown button action: %s", action)
        return ephemeral("Unknown action")

    def _handle_modal(
        self, interaction: dict[str, Any], action: str, request_id: str
    ) -> dict[str, Any]:
        request = self.get_request(request_id)
        if request is None:
            return ephemeral("Request data not found")

        if action == "edit_modal":
            logger.info("[Discord] Edit modal submitted for %s", request_id)
            invocation = request.invocation
            updated_input = build_edited_input(
                invocation.tool_name,
                invocation.tool_input,
                modal_value(interaction, EDITED_INPUT_ID),
            )
            return self._process_decision(
                interaction, request_id, approve(request_id, updated_input), "Edited & Approved"
            )
        if action == "deny_modal":
            reason = modal_value(interaction, REASON_ID).strip()
            return self._process_decision(
                interaction, request_id, deny(request_id, reason or None), "Denied"
            )

        logger.warning("[Discord] Unknown modal: %s", action)
        return ephemeral("Unknown action")

    def _process_decision(
        self, interaction: dict[str, Any], request_id: str, decision: ApprovalDecision, label: str
    ) -> dict[str, Any]:
        accepted = self.decide(request_id, decision)

        message = interaction.get("message") or {}
        embeds = message.get("embeds") or [{}]
        embed = dict(embeds[0])
        user = interaction_user(interaction)
        if accepted:
            embed["color"] = COLOR_ALLOWED if decision.decision == Decision.ALLOW else COLOR_DENIED
            footer = f"{label} by {user}"
            if decision.message:
                footer += f": {decision.message}"
        else:
            # The broker no longer knows this request; nothing was applied
            embed["color"] = COLOR_CLOSED
            footer = f"Request already closed, {label.lower()} by {user} ignored"
        embed["footer"] = {"text": footer[:2048]}

        if not message:
            return ephemeral(f"{label}!" if accepted else "Request already closed")
        return {
            "type": UPDATE_MESSAGE,
            "data": {"embeds": [embed], "components": [button_row(request_id, disabled=True)]},
        }
