"""
Tests for the Mailchimp subscribe webhook trigger.
"""

import json

import httpx
import pytest
import respx

from pieces.auth import OAuth2PropertyValue, get_access_token_or_throw
from pieces.base import TriggerContext
from pieces.exceptions import AuthenticationError
from pieces.mailchimp.common import MailchimpSubscribeProps, parse_webhook_form
from pieces.mailchimp.triggers import WEBHOOK_DATA_STORE_KEY, mailchimp_subscribe
from pieces.store import InMemoryStore

_METADATA_URL = "https://login.mailchimp.com/oauth2/metadata"
_WEBHOOKS_URL = "https://us19.api.mailchimp.com/3.0/lists/list123/webhooks"
_HOOK_URL = "https://hooks.example.test/api/v1/webhooks/inst-1"


def _context(
    store: InMemoryStore | None = None,
    token: str | None = "tok-abc",
    payload=None,
) -> TriggerContext:
    auth = {"access_token": token} if token is not None else {"token_type": "bearer"}
    props = MailchimpSubscribeProps.model_validate({"authentication": auth, "listId": "list123"})
    return TriggerContext(
        props_value=props,
        store=store or InMemoryStore(),
        webhook_url=_HOOK_URL,
        payload=payload,
    )


class TestEnable:
    @pytest.mark.asyncio
    async def test_registers_webhook_and_stores_subscription(self):
        store = InMemoryStore()
        with respx.mock() as mock:
            metadata = mock.get(_METADATA_URL).respond(200, json={"dc": "us19"})
            create = mock.post(_WEBHOOKS_URL).respond(
                200, json={"id": "wh-1", "url": _HOOK_URL, "list_id": "list123"}
            )
            await mailchimp_subscribe.on_enable(_context(store))

        assert metadata.calls.last.request.headers["Authorization"] == "OAuth tok-abc"
        request = create.calls.last.request
        assert request.headers["Authorization"] == "Bearer tok-abc"
        assert json.loads(request.content) == {
            "url": _HOOK_URL,
            "events": {"subscribe": True},
            "sources": {"user": True, "admin": True, "api": True},
        }
        assert await store.get(WEBHOOK_DATA_STORE_KEY) == {"id": "wh-1", "listId": "list123"}

    @pytest.mark.asyncio
    async def test_missing_access_token_raises_before_any_http_call(self):
        store = InMemoryStore()
        with respx.mock() as mock:
            with pytest.raises(AuthenticationError, match="Invalid bearer token"):
                await mailchimp_subscribe.on_enable(_context(store, token=None))
            assert len(mock.calls) == 0
        assert await store.get(WEBHOOK_DATA_STORE_KEY) is None

    @pytest.mark.asyncio
    async def test_vendor_error_propagates_and_nothing_is_stored(self):
        store = InMemoryStore()
        with respx.mock() as mock:
            mock.get(_METADATA_URL).respond(200, json={"dc": "us19"})
            mock.post(_WEBHOOKS_URL).respond(400, json={"title": "Invalid Resource"})
            with pytest.raises(httpx.HTTPStatusError):
                await mailchimp_subscribe.on_enable(_context(store))
        assert await store.get(WEBHOOK_DATA_STORE_KEY) is None


class TestDisable:
    @pytest.mark.asyncio
    async def test_without_stored_subscription_is_a_noop(self):
        with respx.mock() as mock:
            await mailchimp_subscribe.on_disable(_context(InMemoryStore(), token=None))
            assert len(mock.calls) == 0

    @pytest.mark.asyncio
    async def test_deletes_webhook_and_clears_store(self):
        store = InMemoryStore({WEBHOOK_DATA_STORE_KEY: {"id": "wh-1", "listId": "list123"}})
        with respx.mock() as mock:
            mock.get(_METADATA_URL).respond(200, json={"dc": "us19"})
            delete = mock.delete(f"{_WEBHOOKS_URL}/wh-1").respond(204)
            await mailchimp_subscribe.on_disable(_context(store))

        assert delete.call_count == 1
        assert await store.get(WEBHOOK_DATA_STORE_KEY) is None

    @pytest.mark.asyncio
    async def test_second_disable_makes_no_calls(self):
        store = InMemoryStore({WEBHOOK_DATA_STORE_KEY: {"id": "wh-1", "listId": "list123"}})
        with respx.mock() as mock:
            mock.get(_METADATA_URL).respond(200, json={"dc": "us19"})
            mock.delete(f"{_WEBHOOKS_URL}/wh-1").respond(204)
            await mailchimp_subscribe.on_disable(_context(store))
            calls_after_first = len(mock.calls)
            await mailchimp_subscribe.on_disable(_context(store))
            assert len(mock.calls) == calls_after_first

    @pytest.mark.asyncio
    async def test_delete_failure_keeps_subscription(self):
        data = {"id": "wh-1", "listId": "list123"}
        store = InMemoryStore({WEBHOOK_DATA_STORE_KEY: data})
        with respx.mock() as mock:
            mock.get(_METADATA_URL).respond(200, json={"dc": "us19"})
            mock.delete(f"{_WEBHOOKS_URL}/wh-1").respond(500)
            with pytest.raises(httpx.HTTPStatusError):
                await mailchimp_subscribe.on_disable(_context(store))
        assert await store.get(WEBHOOK_DATA_STORE_KEY) == data


class TestRun:
    @pytest.mark.asyncio
    async def test_absent_payload_gives_empty_batch(self):
        assert await mailchimp_subscribe.run(_context(payload=None)) == []

    @pytest.mark.asyncio
    async def test_payload_is_passed_through_unchanged(self):
        payload = dict(mailchimp_subscribe.sample_data)
        batch = await mailchimp_subscribe.run(_context(payload=payload))
        assert batch == [payload]
        assert batch[0] is payload


class TestAccessToken:
    def test_none_auth_raises(self):
        with pytest.raises(AuthenticationError):
            get_access_token_or_throw(None)

    def test_extra_fields_are_kept(self):
        auth = OAuth2PropertyValue.model_validate({"access_token": "t", "data": {"dc": "us1"}})
        assert get_access_token_or_throw(auth) == "t"
        assert auth.model_extra == {"data": {"dc": "us1"}}


class TestParseWebhookForm:
    def test_nested_brackets(self):
        pairs = [
            ("type", "subscribe"),
            ("fired_at", "2009-03-26 21:35:57"),
            ("data[email]", "api@mailchimp.com"),
            ("data[merges][EMAIL]", "api@mailchimp.com"),
            ("data[merges][FNAME]", "Mailchimp"),
        ]
        assert parse_webhook_form(pairs) == {
            "type": "subscribe",
            "fired_at": "2009-03-26 21:35:57",
            "data": {
                "email": "api@mailchimp.com",
                "merges": {"EMAIL": "api@mailchimp.com", "FNAME": "Mailchimp"},
            },
        }

    def test_empty_form(self):
        assert parse_webhook_form([]) == {}

    def test_malformed_keys_are_kept_verbatim(self):
        pairs = [("a]b[c", "1"), ("data[open", "2"), ("[x]", "3"), ("ok[k]", "4")]
        assert parse_webhook_form(pairs) == {
            "a]b[c": "1",
            "data[open": "2",
            "[x]": "3",
            "ok": {"k": "4"},
        }
