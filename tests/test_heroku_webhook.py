"""Tests for Heroku webhook payload decoding, event formatting and forwarding."""

import json

import pytest

from conftest import OK, list_response, slack_error
from mercury.heroku.platform import SlackPlatform
from mercury.heroku.webhook import (
    Delivered,
    DynoCrash,
    DynoPayload,
    EnvVarsChange,
    IgnoredAction,
    ReleasePayload,
    Rollback,
    UnsupportedEvent,
    WebhookDecodeError,
    decode_event,
    decode_release_description,
    format_event,
    forward,
    parse_payload,
    to_message,
)
from mercury.slack import APIResponseError

RELEASE_EXAMPLE = {
    "id": "66a9e685-e1f3-4f9f-9177-a024fb5f0902",
    "data": {
        "id": "38821f7c-e1a1-41d9-a34b-c41e2fa6d82d",
        "app": {
            "id": "59d151db-c38e-4e9c-a854-faead7e8d6cc",
            "name": "my-app",
            "process_tier": "production",
        },
        "slug": {"id": "507af0a6-a83b-4a16-9a9f-bf55b5864848", "commit": "69eec518969cc409e116940aa5304ab6ab237a4d"},
        "user": {"id": "71def50e-da83-453a-bba3-46b4e26911b0", "email": "hodor@example.com"},
        "stack": "heroku-20",
        "status": "succeeded",
        "current": True,
        "version": 6644,
        "description": "Deploy 69eec518",
        "addon_plan_names": [],
        "output_stream_url": None,
    },
    "actor": {"id": "71def50e-da83-453a-bba3-46b4e26911b0", "email": "hello@example.com"},
    "action": "update",
    "version": "application/vnd.heroku+json; version=3",
    "resource": "release",
    "sequence": None,
    "previous_data": {},
    "webhook_metadata": {"event": {"include": "api:release"}},
}

DYNO_EXAMPLE = {
    "id": "292a769d-53d8-4edd-ace4-017a967653e1",
    "data": {
        "id": "ab9fece7-41cc-4f22-8b73-de8c1a7a52b5",
        "app": {"id": "b3e4c9d6-3d05-4f2d-98d1-458c358269df", "name": "my-app"},
        "release": {"id": "3a7a5c18-b1ac-4830-9efb-5b68551e85f0", "version": 7634},
        "command": "/bin/cowsay moo",
        "size": "Standard-1X",
        "exit_status": 137,
        "management": "run:detached",
        "state": "crashed",
        "type": "scheduler",
        "name": "scheduler.8375",
    },
    "previous_data": {},
    "published_at": None,
    "resource": "dyno",
    "action": "destroy",
    "version": "application/vnd.heroku+json; version=3",
}


def encode(payload: dict) -> bytes:
    return json.dumps(payload).encode()


def release(description: str, action: str = "update", app: str = "my-app") -> dict:
    return {
        "resource": "release",
        "action": action,
        "data": {"app": {"name": app}, "description": description},
    }


def dyno(**data) -> dict:
    base = {"app": {"name": "my-app"}, "name": "web.1", "type": "web", "state": "crashed", "exit_status": 1}
    base.update(data)
    return {"resource": "dyno", "action": "update", "data": base}


class TestDecodeReleaseDescription:
    def test_rollback(self):
        assert decode_release_description("Rollback to v1234") == Rollback(version="v1234")

    def test_rollback_version_may_contain_spaces(self):
        assert decode_release_description("Rollback to v12 (hotfix)") == Rollback(version="v12 (hotfix)")

    def test_env_vars_change(self):
        assert decode_release_description("Set FOO, BAR config vars") == EnvVarsChange(raw_change="Set FOO, BAR")

    def test_env_vars_removed(self):
        assert decode_release_description("Remove FOO config vars") == EnvVarsChange(raw_change="Remove FOO")

    def test_rollback_tried_first(self):
        assert decode_release_description("Rollback to v1 config vars") == Rollback(version="v1 config vars")

    def test_deploy_is_unsupported(self):
        assert decode_release_description("Deploy 69eec518") == UnsupportedEvent("Deploy 69eec518")

    @pytest.mark.parametrize(
        "description",
        ["", "any", "Rollback to ", "rollback to v1", " config vars", "Set FOO config vars now"],
    )
    def test_unstructured_descriptions_are_unsupported(self, description):
        assert decode_release_description(description) == UnsupportedEvent(description)


class TestParsePayload:
    def test_real_release_example(self):
        payload = parse_payload(encode(RELEASE_EXAMPLE))
        assert isinstance(payload, ReleasePayload)
        assert payload.action == "update"
        assert payload.data.app.name == "my-app"
        assert payload.data.description == "Deploy 69eec518"
        assert payload.data.user.email == "hodor@example.com"

    def test_real_dyno_example(self):
        payload = parse_payload(encode(DYNO_EXAMPLE))
        assert isinstance(payload, DynoPayload)
        assert payload.data.name == "scheduler.8375"
        assert payload.data.type == "scheduler"
        assert payload.data.state == "crashed"
        assert payload.data.exit_status == 137

    def test_dyno_without_exit_status(self):
        example = json.loads(json.dumps(DYNO_EXAMPLE))
        del example["data"]["exit_status"]
        assert parse_payload(encode(example)).data.exit_status is None

    def test_dyno_null_exit_status(self):
        assert parse_payload(encode(dyno(exit_status=None))).data.exit_status is None

    def test_missing_resource_is_release(self):
        payload = {"action": "update", "data": {"app": {"name": "any"}, "description": "any"}}
        assert isinstance(parse_payload(encode(payload)), ReleasePayload)

    def test_release_without_user(self):
        assert parse_payload(encode(release("any"))).data.user is None

    def test_unknown_resource(self):
        assert parse_payload(encode({"resource": "formation", "data": {}})) is None

    def test_invalid_json(self):
        with pytest.raises(WebhookDecodeError) as exc_info:
            parse_payload(b"{ not json")
        assert exc_info.value.status_code == 400

    def test_deeply_nested_json(self):
        body = b"[" * 100_000 + b"]" * 100_000
        with pytest.raises(WebhookDecodeError) as exc_info:
            parse_payload(body)
        assert exc_info.value.status_code == 400

    def test_non_object(self):
        with pytest.raises(WebhookDecodeError) as exc_info:
            parse_payload(b"[1, 2, 3]")
        assert exc_info.value.status_code == 422

    def test_wrong_field_type(self):
        payload = {"data": {"app": {"name": False}, "description": "any"}}
        with pytest.raises(WebhookDecodeError) as exc_info:
            parse_payload(encode(payload))
        assert exc_info.value.status_code == 422
        assert "data.app.name" in exc_info.value.message

    def test_missing_description(self):
        payload = {"action": "update", "data": {"app": {"name": "any"}}}
        with pytest.raises(WebhookDecodeError) as exc_info:
            parse_payload(encode(payload))
        assert exc_info.value.status_code == 422

    def test_non_string_resource(self):
        with pytest.raises(WebhookDecodeError) as exc_info:
            parse_payload(encode({"resource": 5}))
        assert exc_info.value.status_code == 422

    def test_out_of_range_exit_status(self):
        with pytest.raises(WebhookDecodeError):
            parse_payload(encode(dyno(exit_status=256)))


class TestDecodeEvent:
    def test_release_update(self):
        assert decode_event(parse_payload(encode(release("Rollback to v1234")))) == Rollback("v1234")

    @pytest.mark.parametrize("action", ["create", "destroy", None])
    def test_release_non_update_ignored(self, action):
        payload = release("Rollback to v1234")
        payload["action"] = action
        assert isinstance(decode_event(parse_payload(encode(payload))), IgnoredAction)

    def test_release_update_unsupported(self):
        assert decode_event(parse_payload(encode(RELEASE_EXAMPLE))) == UnsupportedEvent("Deploy 69eec518")

    def test_unknown_resource_ignored(self):
        assert isinstance(decode_event(None), IgnoredAction)

    def test_dyno_crash(self):
        assert decode_event(parse_payload(encode(DYNO_EXAMPLE))) == DynoCrash(name="scheduler.8375", status_code=137)

    @pytest.mark.parametrize(
        "data",
        [
            {"type": "run"},
            {"state": "up"},
            {"exit_status": 0},
            {"exit_status": None},
        ],
    )
    def test_dyno_non_crash_ignored(self, data):
        assert isinstance(decode_event(parse_payload(encode(dyno(**data)))), IgnoredAction)


class TestFormatting:
    def test_rollback(self):
        assert format_event(Rollback("v1234"), "my-app") == ("🏳️ my-app", "Rollback to v1234")

    def test_env_vars_change(self):
        assert format_event(EnvVarsChange("Set FOO"), "my-app") == (
            "⚙️  my-app",
            "Environment variables changed: Set FOO",
        )

    def test_dyno_crash(self):
        assert format_event(DynoCrash("web.1", 137), "my-app") == (
            "☢️  my-app",
            "Dyno web.1 crashed with status code 137",
        )

    def test_message_links_to_activity_page(self):
        msg = to_message(Rollback("v1234"), "my-app", "#deploys")
        assert msg.channel == "#deploys"
        assert msg.link == "https://dashboard.heroku.com/apps/my-app/activity"
        assert msg.mention is None
        assert msg.avatar is None
        assert msg.title_as_username is False


class TestForward:
    PLATFORM = SlackPlatform(platform="slack", channel="channel-name")

    @pytest.mark.asyncio
    async def test_delivers_supported_event(self, slack_client, fake_slack, token):
        fake_slack.queue("conversations.list", list_response(("channel-name", "C1")))
        fake_slack.queue("chat.postMessage", OK)

        payload = parse_payload(encode(release("Rollback to v1234")))
        result = await forward(slack_client, token, self.PLATFORM, payload)

        assert result == Delivered(Rollback("v1234"))
        [body] = fake_slack.json_calls("chat.postMessage")
        assert body["channel"] == "C1"
        assert body["blocks"][0]["text"] == {"type": "plain_text", "text": "🏳️ my-app: Rollback to v1234"}
        assert "username" not in body

    @pytest.mark.asyncio
    async def test_unsupported_event_makes_no_calls(self, slack_client, fake_slack, token):
        result = await forward(slack_client, token, self.PLATFORM, parse_payload(encode(RELEASE_EXAMPLE)))

        assert result == UnsupportedEvent("Deploy 69eec518")
        assert fake_slack.requests == []

    @pytest.mark.asyncio
    async def test_ignored_action_makes_no_calls(self, slack_client, fake_slack, token):
        payload = parse_payload(encode(release("Rollback to v1", action="create")))
        result = await forward(slack_client, token, self.PLATFORM, payload)

        assert isinstance(result, IgnoredAction)
        assert fake_slack.requests == []

    @pytest.mark.asyncio
    async def test_slack_failure_propagates(self, slack_client, fake_slack, token):
        fake_slack.queue("conversations.list", slack_error("invalid_auth"))

        with pytest.raises(APIResponseError):
            await forward(slack_client, token, self.PLATFORM, parse_payload(encode(DYNO_EXAMPLE)))
