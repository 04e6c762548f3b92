"""Endpoint tests against the FastAPI app with stubbed collaborators."""

import pytest
from bs4 import BeautifulSoup
from fastapi.testclient import TestClient

from liaison_inquiry.dependencies import get_nonce_service, get_settings_store, get_vendor_factory
from liaison_inquiry.main import app
from liaison_inquiry.middleware.auth import get_current_admin
from liaison_inquiry.models.credentials import CredentialSet, PluginOptions
from liaison_inquiry.models.forms import FormDefinition
from liaison_inquiry.services.fixture_client import FixtureVendorClient
from liaison_inquiry.services.nonce import NONCE_FIELD_NAME
from liaison_inquiry.services.settings_store import InMemorySettingsStore
from liaison_inquiry.services.submission_handler import NONCE_ERROR_MESSAGE
from liaison_inquiry.services.vendor_client import ApiBadResponseError

from conftest import FakeVendorClient


@pytest.fixture
def store(options):
    return InMemorySettingsStore(options)


@pytest.fixture
def clients():
    return []


@pytest.fixture
def vendor():
    """Factory settings for the vendor stub: "fixture" or a FakeVendorClient keyword set"""
    return {"kind": "fixture", "outcome": "success", "fake": {}}


@pytest.fixture
def client(store, nonces, vendor, clients):
    def factory(credentials: CredentialSet):
        if vendor["kind"] == "fixture":
            api = FixtureVendorClient(credentials, outcome=vendor["outcome"])
        else:
            api = FakeVendorClient(credentials, **vendor["fake"])
        clients.append(api)
        return api

    app.dependency_overrides[get_settings_store] = lambda: store
    app.dependency_overrides[get_vendor_factory] = lambda: factory
    app.dependency_overrides[get_nonce_service] = lambda: nonces
    app.dependency_overrides[get_current_admin] = lambda: {"user_id": "u1", "email": "admin@example.edu"}
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestInquiryRoutes:

    def test_render_form(self, client, clients):
        response = client.get(
            "/api/inquiry/form",
            params={"fields": "1,3", "source": "web", "org": "law", "page_url": "https://example.edu/grad"},
        )
        soup = BeautifulSoup(response.text, "html.parser")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert soup.find("input", attrs={"name": "SOURCE"})["value"] == "web"
        assert soup.find("input", attrs={"name": "org"})["value"] == "law"
        assert soup.find("input", id="referring_page")["value"] == "https://example.edu/grad"
        assert clients[0].api_key == "law-key"

    def test_referer_header_is_the_fallback_page_url(self, client):
        response = client.get("/api/inquiry/form", headers={"referer": "https://example.edu/from-header"})
        soup = BeautifulSoup(response.text, "html.parser")

        assert soup.find("input", id="referring_page")["value"] == "https://example.edu/from-header"

    def test_render_vendor_error(self, client, vendor):
        vendor.update(kind="fake", fake={"error": ApiBadResponseError("bad key")})
        response = client.get("/api/inquiry/form")

        assert response.status_code == 200
        assert response.text == "Error: bad key"

    def test_submit_success(self, client, nonces, clients):
        response = client.post("/api/inquiry/submit", data={
            NONCE_FIELD_NAME: nonces.create(),
            "1": "Ada",
            "4": "(617) 555-0100",
            "phone_fields": "4",
            "referring_page": "https://example.edu/grad",
        })

        assert response.status_code == 200
        assert response.json()["status"] == 1
        assert response.json()["data"] == "https://www.spectrumemp.com/pages/welcome"
        assert clients[0].submissions == [{"1": "Ada", "4": "%2B16175550100"}]

    def test_submit_validation_failure(self, client, nonces, vendor):
        vendor["outcome"] = "failure"
        response = client.post("/api/inquiry/submit", data={NONCE_FIELD_NAME: nonces.create(), "1": "Ada"})
        body = response.json()

        assert response.status_code == 200
        assert body["status"] == 0
        assert "incomplete or invalid" in body["response"]
        assert body["data"] == [{"id": "3", "displayName": "Email Address"}]

    def test_mixed_case_org_uses_one_account_for_render_and_submit(self, client, clients):
        """The rendered form and its submission resolve the same credentials."""
        page = client.get("/api/inquiry/form", params={"org": "Law", "fields": "1,3"})
        soup = BeautifulSoup(page.text, "html.parser")
        payload = {
            field["name"]: field.get("value", "")
            for field in soup.find("form", id="form_example").find_all("input")
            if field.get("name") and field.get("type") != "checkbox"
        }
        payload.update({"1": "Ada", "3": "ada@example.edu"})

        response = client.post("/api/inquiry/submit", data=payload)

        assert response.json()["status"] == 1
        assert payload["org"] == "law"
        assert [api.api_key for api in clients] == ["law-key", "law-key"]

    def test_submit_bad_nonce(self, client, clients):
        response = client.post("/api/inquiry/submit", data={NONCE_FIELD_NAME: "nope", "1": "Ada"})

        assert response.status_code == 200
        assert response.json() == {"status": 0, "response": NONCE_ERROR_MESSAGE, "data": ""}
        assert clients == []


class TestCredentialRoutes:

    def test_get(self, client):
        body = client.get("/api/admin/credentials").json()

        assert body["APIKey"] == "default-key"
        assert body["alternate_credentials"]["law"]["ClientID"] == "200"

    def test_replace_drops_incomplete_alternates(self, client, store):
        response = client.post("/api/admin/credentials", json={
            "APIKey": "new-key",
            "ClientID": "101",
            "alternate_credentials": {
                "med": {"APIKey": "med-key", "ClientID": "300"},
                "dent": {"APIKey": "", "ClientID": "400"},
            },
        })

        assert response.status_code == 200
        assert store.load().api_key == "new-key"
        assert list(store.load().alternate_credentials) == ["med"]

    def test_put_alternate(self, client, store):
        response = client.put(
            "/api/admin/credentials/alternates/Med",
            json={"APIKey": "med-key", "ClientID": "300"},
        )

        assert response.status_code == 200
        assert store.load().credentials_for_org("med").api_key == "med-key"
        assert "law" in store.load().alternate_credentials

    def test_put_incomplete_alternate(self, client):
        response = client.put("/api/admin/credentials/alternates/med", json={"APIKey": "med-key"})

        assert response.status_code == 400

    def test_delete_alternate(self, client, store):
        assert client.delete("/api/admin/credentials/alternates/law").status_code == 200
        assert store.load().alternate_credentials == {}
        assert client.delete("/api/admin/credentials/alternates/law").status_code == 404

    def test_requires_authentication(self, client):
        app.dependency_overrides.pop(get_current_admin)

        assert client.get("/api/admin/credentials").status_code == 401


class TestFormRoutes:

    def test_list_forms(self, client):
        body = client.get("/api/admin/forms").json()

        assert list(body) == ["Inquiry Form", "Graduate Inquiry", "Event Registration"]
        assert body["Inquiry Form"] is None

    def test_default_form_fields(self, client, vendor, clients):
        vendor.update(kind="fake", fake={"form": FormDefinition()})
        client.get("/api/admin/forms/default/fields")

        assert clients[0].requirement_calls == [None]

    def test_form_fields(self, client):
        body = client.get("/api/admin/forms/44/fields").json()
        fields = body["sections"][0]["fields"]

        assert fields[0]["id"] == "1"
        assert "hidden" not in fields[0]

    def test_invalid_form_id(self, client):
        assert client.get("/api/admin/forms/bad_id!/fields").status_code in (404, 422)

    def test_org_fields_use_alternate_credentials(self, client, clients):
        client.get("/api/admin/forms/44/fields", params={"org_key": "law"})

        assert clients[0].api_key == "law-key"

    def test_missing_api_key(self, client, store):
        store.save(PluginOptions())
        response = client.get("/api/admin/forms")

        assert response.status_code == 400
        assert response.json()["detail"] == "API Key is required."

    def test_missing_org_api_key(self, client, store):
        store.save(PluginOptions(api_key="key").with_alternate("law", CredentialSet(client_id="2", api_key="")))
        response = client.get("/api/admin/forms", params={"org_key": "law"})

        assert response.status_code == 400
        assert response.json()["detail"] == "API Key is required for organization: law"

    def test_vendor_error_is_500(self, client, vendor):
        vendor.update(kind="fake", fake={"error": ApiBadResponseError("bad key")})
        response = client.get("/api/admin/forms/44/fields")

        assert response.status_code == 500
        assert response.json()["detail"] == "Error: bad key"
