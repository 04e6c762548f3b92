"""Tests for submission handling."""

import pytest

from liaison_inquiry.models.credentials import CredentialSet
from liaison_inquiry.services.nonce import NONCE_FIELD_NAME
from liaison_inquiry.services.submission_handler import NONCE_ERROR_MESSAGE, SubmissionHandler

from conftest import FakeVendorClient


@pytest.fixture
def clients():
    return []


@pytest.fixture
def handler(options, nonces, clients):
    def factory(credentials: CredentialSet):
        client = FakeVendorClient(credentials)
        clients.append(client)
        return client

    return SubmissionHandler(options, factory, nonces)


def make_payload(nonces, **fields):
    payload = {NONCE_FIELD_NAME: nonces.create()}
    payload.update(fields)
    return payload


class TestVerifyNonce:

    def test_valid_nonce_is_accepted_once(self, handler, nonces):
        payload = make_payload(nonces, **{"1": "Ada"})

        assert handler.verify_nonce(payload) is True
        assert NONCE_FIELD_NAME not in payload
        assert handler.verify_nonce(payload) is False

    def test_missing_nonce(self, handler):
        assert handler.verify_nonce({"1": "Ada"}) is False

    def test_invalid_nonce_is_removed_too(self, handler):
        payload = {NONCE_FIELD_NAME: "nope", "1": "Ada"}

        assert handler.verify_nonce(payload) is False
        assert payload == {"1": "Ada"}


class TestPrepareFormPost:

    def test_field_types(self, handler):
        """Sanitized text, ticked opt-in and a formatted phone number."""
        post_vars = handler.prepare_form_post({
            "1": "some text <",
            "2-text-opt-in": "on",
            "3": "999-999-9999",
            "phone_fields": "3",
        })

        assert post_vars == {
            "1": "some text &lt;",
            "2-text-opt-in": "1",
            "3": "%2B19999999999",
        }

    def test_phone_prefix_is_added_once(self, handler):
        post_vars = handler.prepare_form_post({"3": "+1 (617) 555-0100", "phone_fields": "3"})

        assert post_vars["3"] == "%2B116175550100"
        assert post_vars["3"].count("%2B1") == 1

    def test_empty_phone_stays_empty(self, handler):
        post_vars = handler.prepare_form_post({"3": "", "4": "n/a", "phone_fields": "3,4"})

        assert post_vars == {"3": "", "4": ""}

    def test_phone_fields_is_never_forwarded(self, handler):
        assert "phone_fields" not in handler.prepare_form_post({"1": "x", "phone_fields": ""})
        assert "phone_fields" not in handler.prepare_form_post({"1": "x"})

    def test_input_is_not_modified(self, handler):
        payload = {"1": " a ", "phone_fields": ""}
        handler.prepare_form_post(payload)

        assert payload == {"1": " a ", "phone_fields": ""}


class TestHandle:

    async def test_bad_nonce_short_circuits(self, handler, clients):
        result = await handler.handle({"1": "Ada", NONCE_FIELD_NAME: "nope"})

        assert result.status == 0
        assert result.response == NONCE_ERROR_MESSAGE
        assert clients == []

    async def test_posts_prepared_fields(self, handler, nonces, clients):
        result = await handler.handle(make_payload(
            nonces,
            **{
                "1": "<b>Ada</b>",
                "4": "617 555 0100",
                "phone_fields": "4",
                "org": "law",
                "referring_page": "https://example.edu/apply",
            }
        ))

        assert result.status == 1
        client = clients[0]
        assert client.posts == [{"1": "Ada", "4": "%2B16175550100"}]
        assert client.referring_pages == ["https://example.edu/apply"]

    async def test_known_org_uses_alternate_credentials(self, handler, nonces, clients):
        await handler.handle(make_payload(nonces, org="Law"))

        assert clients[0].api_key == "law-key"
        assert clients[0].client_id == "200"

    async def test_unknown_org_uses_default_credentials(self, handler, nonces, clients):
        await handler.handle(make_payload(nonces, org="unknown_key"))

        assert clients[0].api_key == "default-key"

    async def test_no_org_uses_default_credentials(self, handler, nonces, clients):
        await handler.handle(make_payload(nonces, **{"1": "Ada"}))

        assert clients[0].api_key == "default-key"
        assert "org" not in clients[0].posts[0]
