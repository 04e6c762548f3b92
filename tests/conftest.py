"""Shared fixtures for the inquiry form tests."""

import os

os.environ.setdefault("SETTINGS_BACKEND", "memory")
os.environ.setdefault("NONCE_SECRET", "test-secret")

from typing import Dict, List, Mapping, Optional

import pytest

from liaison_inquiry.models.credentials import CredentialSet, PluginOptions
from liaison_inquiry.models.forms import FormDefinition
from liaison_inquiry.models.submission import SubmissionResult
from liaison_inquiry.services.nonce import NonceService
from liaison_inquiry.services.vendor_client import VendorClient


class FakeVendorClient(VendorClient):
    """Records calls and answers with canned values."""

    def __init__(
        self,
        credentials: CredentialSet,
        form: Optional[FormDefinition] = None,
        error: Optional[Exception] = None,
        result: Optional[SubmissionResult] = None,
    ):
        super().__init__(credentials)
        self.form = form
        self.error = error
        self.result = result or SubmissionResult(status=1, response="ok", data="https://example.edu/next")
        self.requirement_calls: List[Optional[str]] = []
        self.posts: List[Dict[str, str]] = []
        self.referring_pages: List[str] = []

    async def list_forms(self):
        if self.error:
            raise self.error
        return {"Inquiry Form": None}

    async def get_requirements(self, form_id=None):
        self.requirement_calls.append(form_id)
        if self.error:
            raise self.error
        return self.form

    async def post_form(self, fields: Mapping[str, str], attempt: int = 0, referring_page: str = ""):
        self.posts.append(dict(fields))
        self.referring_pages.append(referring_page)
        return self.result


def make_field(field_id, required=True, **extra):
    field = {
        "id": field_id,
        "displayName": f"Field {field_id}",
        "htmlElement": "input-text",
        "required": "1" if required else "0",
        "description": "",
        "helpText": "",
    }
    field.update(extra)
    return field


@pytest.fixture
def mini_form():
    """Fields 1, 3 and 4 required, 2 optional."""
    return FormDefinition.model_validate({
        "sections": [{
            "name": "Contact",
            "fields": [
                make_field(1),
                make_field(2, required=False),
                make_field(3),
                make_field(4),
            ],
        }]
    })


@pytest.fixture
def options():
    return PluginOptions(
        api_key="default-key",
        client_id="100",
        utm_source="21",
        page_title="22",
        alternate_credentials={
            "law": CredentialSet(client_id="200", api_key="law-key"),
        },
    )


@pytest.fixture
def nonces():
    return NonceService("test-secret", lifetime=86400, clock=lambda: 1_700_000_000)
