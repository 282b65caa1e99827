"""Tests for the Discord notification channel."""

import asyncio
import json

import httpx
import pytest
from fastapi.testclient import TestClient
from nacl.signing import SigningKey

from config.settings import DiscordSettings
from core.approval import ApprovalBroker
from core.exceptions import ChannelDeliveryError
from core.permissions import ApprovalRequest, Decision, ToolInvocation
from server import SSEEventBus, create_app
from server.discord import (
    COLOR_ALLOWED,
    COLOR_CLOSED,
    COLOR_DENIED,
    MODAL,
    PONG,
    UPDATE_MESSAGE,
    DiscordChannel,
    build_request_embed,
    button_row,
    code_block,
    truncate,
)

CHANNEL_ID = "123456"


class FakeDiscord:
    """Records REST calls and answers them like Discord would."""

    def __init__(self, fail_send: bool = False, channel_status: int = 200):
        self.fail_send = fail_send
        self.channel_status = channel_status
        self.calls: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        if request.method == "GET" and request.url.path.endswith(f"/channels/{CHANNEL_ID}"):
            return httpx.Response(self.channel_status, json={"id": CHANNEL_ID, "name": "approvals"})
        if request.method == "POST" and request.url.path.endswith("/messages"):
            if self.fail_send:
                return httpx.Response(500, text="internal error")
            return httpx.Response(200, json={"id": "message-1"})
        return httpx.Response(404)

    def sent_payloads(self) -> list[dict]:
        return [json.loads(r.content) for r in self.calls if r.method == "POST"]


@pytest.fixture
def signing_key() -> SigningKey:
    return SigningKey.generate()


@pytest.fixture
def fake_discord() -> FakeDiscord:
    return FakeDiscord()


@pytest.fixture
def discord_channel(signing_key, fake_discord) -> DiscordChannel:
    settings = DiscordSettings(
        bot_token="bot-token",
        channel_id=CHANNEL_ID,
        public_key=signing_key.verify_key.encode().hex(),
    )
    return DiscordChannel(
        settings, api_base="https://discord.test/api", transport=httpx.MockTransport(fake_discord)
    )


def make_request(tool_name: str = "Bash", tool_input: dict | None = None) -> ApprovalRequest:
    return ApprovalRequest(
        request_id="apr_test",
        invocation=ToolInvocation(
            tool_name=tool_name,
            tool_input={"command": "git status"} if tool_input is None else tool_input,
            cwd="/home/user/project",
            session_id="abcdef123456",
        ),
    )


def button_click(action: str, request_id: str, with_message: bool = True) -> dict:
    interaction = {
        "type": 3,
        "data": {"custom_id": f"{action}:{request_id}"},
        "member": {"user": {"username": "alice"}},
    }
    if with_message:
        interaction["message"] = {"embeds": [{"title": "Permission Request"}]}
    return interaction


def modal_submit(custom_id: str, input_id: str, value: str) -> dict:
    return {
        "type": 5,
        "data": {
            "custom_id": custom_id,
            "components": [{"type": 1, "components": [{"type": 4, "custom_id": input_id, "value": value}]}],
        },
        "user": {"username": "bob", "global_name": "Bob"},
        "message": {"embeds": [{"title": "Permission Request"}]},
    }


class TestFormatting:
    """Test embed and component construction."""

    def test_bash_embed(self):
        embed = build_request_embed(make_request())
        fields = {f["name"]: f["value"] for f in embed["fields"]}

        assert embed["title"] == "Permission Request"
        assert fields["Tool"] == "`Bash`"
        assert "git status" in fields["Command"]
        assert fields["Working Directory"] == "`/home/user/project`"
        assert fields["Session"] == "abcdef12"
        assert "Warning" not in fields

    def test_dangerous_command_warning(self):
        embed = build_request_embed(make_request(tool_input={"command": "rm -rf /"}))
        names = [f["name"] for f in embed["fields"]]
        assert "Warning" in names

    def test_edit_diff(self):
        embed = build_request_embed(
            make_request("Edit", {"file_path": "/a.py", "old_string": "x = 1", "new_string": "x = 2"})
        )
        changes = next(f["value"] for f in embed["fields"] if f["name"] == "Changes")
        assert "- x = 1" in changes
        assert "+ x = 2" in changes
        assert changes.startswith("```diff")

    def test_code_block_cannot_be_closed(self):
        block = code_block("```evil```")
        assert block.count("```") == 2

    def test_truncate(self):
        assert truncate("short") == "short"
        assert truncate("x" * 1000).endswith("...(truncated)")
        assert len(truncate("x" * 1000)) == 900 + len("...(truncated)")

    def test_button_row(self):
        row = button_row("apr_1")
        assert [b["custom_id"] for b in row["components"]] == [
            "approve:apr_1",
            "edit:apr_1",
            "deny:apr_1",
            "reason:apr_1",
        ]
        assert not any(b["disabled"] for b in row["components"])

        disabled = button_row("apr_1", disabled=True)
        assert all(b["disabled"] for b in disabled["components"])
        assert all(b["custom_id"].endswith(":disabled") for b in disabled["components"])


class TestRestCalls:
    """Test messages sent through the REST API."""

    @pytest.mark.asyncio
    async def test_start(self, discord_channel, fake_discord):
        await discord_channel.start()
        assert discord_channel.channel_name == "approvals"
        assert fake_discord.calls[0].headers["Authorization"] == "Bot bot-token"
        await discord_channel.aclose()

    @pytest.mark.asyncio
    async def test_start_after_close(self, discord_channel, fake_discord):
        """Test the channel reconnects when the server is restarted."""
        await discord_channel.start()
        await discord_channel.aclose()

        await discord_channel.start()
        await discord_channel.notify(make_request())

        assert len(fake_discord.sent_payloads()) == 1
        await discord_channel.aclose()

    @pytest.mark.asyncio
    async def test_start_inaccessible_channel(self, discord_channel, fake_discord):
        fake_discord.channel_status = 403
        with pytest.raises(ChannelDeliveryError):
            await discord_channel.start()
        await discord_channel.aclose()

    @pytest.mark.asyncio
    async def test_notify_posts_embed_and_buttons(self, discord_channel, fake_discord):
        request = make_request()
        await discord_channel.notify(request)

        payload = fake_discord.sent_payloads()[0]
        assert payload["embeds"][0]["title"] == "Permission Request"
        assert payload["components"][0]["components"][0]["custom_id"] == "approve:apr_test"
        assert discord_channel.get_request("apr_test") == request
        await discord_channel.aclose()

    @pytest.mark.asyncio
    async def test_notify_failure(self, discord_channel, fake_discord):
        fake_discord.fail_send = True
        with pytest.raises(ChannelDeliveryError):
            await discord_channel.notify(make_request())
        assert discord_channel.get_request("apr_test") is None
        await discord_channel.aclose()

    @pytest.mark.asyncio
    async def test_broker_turns_failure_into_ask(self, discord_channel, fake_discord):
        fake_discord.fail_send = True
        broker = ApprovalBroker(discord_channel, timeout=5.0)

        decision = await broker.submit(make_request().invocation)

        assert decision.decision == Decision.ASK
        assert "Discord API returned 500" in decision.message
        await discord_channel.aclose()


class TestInteractions:
    """Test button clicks and modal submissions."""

    @pytest.fixture
    def broker(self, discord_channel):
        return ApprovalBroker(discord_channel, timeout=5.0)

    async def submit(self, broker, fake_discord, invocation):
        task = asyncio.create_task(broker.submit(invocation))
        while not fake_discord.sent_payloads():
            await asyncio.sleep(0.005)
        request_id = broker.pending_requests()[0].request_id
        return task, request_id

    def test_ping(self, discord_channel):
        assert discord_channel.handle_interaction({"type": 1}) == {"type": PONG}

    @pytest.mark.asyncio
    async def test_approve_button(self, broker, discord_channel, fake_discord):
        task, request_id = await self.submit(broker, fake_discord, make_request().invocation)

        callback = discord_channel.handle_interaction(button_click("approve", request_id))
        decision = await task

        assert decision.decision == Decision.ALLOW
        assert callback["type"] == UPDATE_MESSAGE
        embed = callback["data"]["embeds"][0]
        assert embed["color"] == COLOR_ALLOWED
        assert embed["footer"]["text"] == "Approved by alice"
        assert all(b["disabled"] for b in callback["data"]["components"][0]["components"])
        await discord_channel.aclose()

    @pytest.mark.asyncio
    async def test_deny_button(self, broker, discord_channel, fake_discord):
        task, request_id = await self.submit(broker, fake_discord, make_request().invocation)

        callback = discord_channel.handle_interaction(button_click("deny", request_id))

        assert (await task).decision == Decision.DENY
        assert callback["data"]["embeds"][0]["color"] == COLOR_DENIED
        await discord_channel.aclose()

    @pytest.mark.asyncio
    async def test_edit_then_approve(self, broker, discord_channel, fake_discord):
        invocation = make_request(tool_input={"command": "rm -rf build", "timeout": 30}).invocation
        task, request_id = await self.submit(broker, fake_discord, invocation)

        modal = discord_channel.handle_interaction(button_click("edit", request_id))
        assert modal["type"] == MODAL
        text_input = modal["data"]["components"][0]["components"][0]
        assert text_input["label"] == "Command"
        assert text_input["value"] == "rm -rf build"
        assert not task.done()

        callback = discord_channel.handle_interaction(
            modal_submit(f"edit_modal:{request_id}", "edited_input", "rm -r build")
        )
        decision = await task

        assert decision.decision == Decision.ALLOW
        assert decision.updated_input == {"command": "rm -r build", "timeout": 30}
        assert callback["data"]["embeds"][0]["footer"]["text"] == "Edited & Approved by Bob"
        await discord_channel.aclose()

    @pytest.mark.asyncio
    async def test_deny_with_reason(self, broker, discord_channel, fake_discord):
        task, request_id = await self.submit(broker, fake_discord, make_request().invocation)

        modal = discord_channel.handle_interaction(button_click("reason", request_id))
        assert modal["data"]["custom_id"] == f"deny_modal:{request_id}"

        callback = discord_channel.handle_interaction(
            modal_submit(f"deny_modal:{request_id}", "reason", "  use git diff instead ")
        )
        decision = await task

        assert decision.decision == Decision.DENY
        assert decision.message == "use git diff instead"
        assert callback["data"]["embeds"][0]["footer"]["text"] == "Denied by Bob: use git diff instead"
        await discord_channel.aclose()

    @pytest.mark.asyncio
    async def test_second_click_is_ignored(self, broker, discord_channel, fake_discord):
        task, request_id = await self.submit(broker, fake_discord, make_request().invocation)

        discord_channel.handle_interaction(button_click("approve", request_id))
        callback = discord_channel.handle_interaction(button_click("deny", request_id))

        assert callback["data"]["content"] == "Request data not found"
        assert (await task).decision == Decision.ALLOW
        await discord_channel.aclose()

    @pytest.mark.asyncio
    async def test_click_after_timeout(self, discord_channel, fake_discord):
        broker = ApprovalBroker(discord_channel, timeout=0.02)
        decision = await broker.submit(make_request().invocation)
        assert decision.decision == Decision.ASK

        request_id = fake_discord.sent_payloads()[0]["components"][0]["components"][0]["custom_id"].split(":")[1]
        callback = discord_channel.handle_interaction(button_click("approve", request_id))

        assert callback["data"]["content"] == "Request data not found"
        await discord_channel.aclose()

    def test_disabled_button(self, discord_channel):
        callback = discord_channel.handle_interaction(button_click("approve", "disabled"))
        assert callback["data"]["content"] == "This request is no longer active"

    @pytest.mark.asyncio
    async def test_ephemeral_reply_without_message(self, broker, discord_channel, fake_discord):
        task, request_id = await self.submit(broker, fake_discord, make_request().invocation)

        callback = discord_channel.handle_interaction(button_click("approve", request_id, with_message=False))

        assert callback["data"]["content"] == "Approved!"
        assert (await task).decision == Decision.ALLOW
        await discord_channel.aclose()


    def test_decision_for_closed_request_is_neutral(self, broker, discord_channel):
        """Test a click the broker rejects is not shown as approved."""
        request = make_request()
        discord_channel.track(request)

        callback = discord_channel.handle_interaction(button_click("approve", request.request_id))

        embed = callback["data"]["embeds"][0]
        assert embed["color"] == COLOR_CLOSED
        assert embed["footer"]["text"] == "Request already closed, approved by alice ignored"
        assert all(b["disabled"] for b in callback["data"]["components"][0]["components"])

    def test_closed_request_without_message(self, broker, discord_channel):
        request = make_request()
        discord_channel.track(request)

        callback = discord_channel.handle_interaction(
            button_click("deny", request.request_id, with_message=False)
        )

        assert callback["data"]["content"] == "Request already closed"

class TestInteractionsWebhook:
    """Test the signed HTTP webhook."""

    @pytest.fixture
    def client(self, discord_channel):
        broker = ApprovalBroker(discord_channel, timeout=5.0)
        with TestClient(create_app(broker, SSEEventBus())) as client:
            yield client

    def post_signed(self, client, signing_key, payload: dict, tamper: bool = False):
        body = json.dumps(payload).encode()
        timestamp = "1700000000"
        signature = signing_key.sign(timestamp.encode() + body).signature.hex()
        if tamper:
            body = body.replace(b"1", b"2")
        return client.post(
            "/discord/interactions",
            content=body,
            headers={
                "X-Signature-Ed25519": signature,
                "X-Signature-Timestamp": timestamp,
                "Content-Type": "application/json",
            },
        )

    def test_ping(self, client, signing_key):
        response = self.post_signed(client, signing_key, {"type": 1})
        assert response.status_code == 200
        assert response.json() == {"type": PONG}

    def test_bad_signature(self, client, signing_key):
        response = self.post_signed(client, signing_key, {"type": 1}, tamper=True)
        assert response.status_code == 401

    def test_missing_signature(self, client):
        response = client.post("/discord/interactions", content=b'{"type": 1}')
        assert response.status_code == 401

    def test_wrong_key(self, client):
        response = self.post_signed(client, SigningKey.generate(), {"type": 1})
        assert response.status_code == 401

    def test_unknown_request(self, client, signing_key):
        response = self.post_signed(client, signing_key, button_click("approve", "apr_gone"))
        assert response.status_code == 200
        assert response.json()["data"]["content"] == "Request data not found"
