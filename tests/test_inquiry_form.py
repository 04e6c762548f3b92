"""Tests for the form rendering entry point."""

from bs4 import BeautifulSoup

from liaison_inquiry.models.forms import FormDefinition, ShortcodeAttributes
from liaison_inquiry.services.form_renderer import FormRenderer
from liaison_inquiry.services.inquiry_form import RENDER_FAILED_MESSAGE, InquiryForm, RenderContext
from liaison_inquiry.services.vendor_client import ApiBadResponseError, ApiTransportError

from conftest import FakeVendorClient, make_field


def make_form():
    return FormDefinition.model_validate({
        "sections": [{
            "name": "Contact",
            "fields": [make_field(1), make_field(2, required=False), make_field(21), make_field(22)],
        }]
    })


class BrokenRenderer(FormRenderer):
    def render(self, form, **kwargs):
        raise RuntimeError("template exploded")


class TestInquiryForm:

    async def test_vendor_error_is_shown_in_place_of_form(self, options, nonces):
        api = FakeVendorClient(options.default_credentials, error=ApiBadResponseError("bad key"))
        html = await InquiryForm(api, options, nonces, FormRenderer()).get_html(
            ShortcodeAttributes(), RenderContext()
        )

        assert html == "Error: bad key"

    async def test_transport_error_message(self, options, nonces):
        api = FakeVendorClient(
            options.default_credentials,
            error=ApiTransportError("Operation timed out after 10 seconds", code="http_request_timeout"),
        )
        html = await InquiryForm(api, options, nonces, FormRenderer()).get_html(
            ShortcodeAttributes(), RenderContext()
        )

        assert html.startswith("Error: Operation timed out")

    async def test_render_failure_returns_message(self, options, nonces):
        api = FakeVendorClient(options.default_credentials, form=make_form())
        html = await InquiryForm(api, options, nonces, BrokenRenderer()).get_html(
            ShortcodeAttributes(), RenderContext()
        )

        assert html == RENDER_FAILED_MESSAGE

    async def test_form_id_is_requested(self, options, nonces):
        api = FakeVendorClient(options.default_credentials, form=make_form())
        await InquiryForm(api, options, nonces, FormRenderer()).get_html(
            ShortcodeAttributes.parse({"form_id": "44"}), RenderContext()
        )

        assert api.requirement_calls == ["44"]

    async def test_autofill_and_nonce(self, options, nonces):
        api = FakeVendorClient(options.default_credentials, form=make_form())
        html = await InquiryForm(api, options, nonces, FormRenderer()).get_html(
            ShortcodeAttributes.parse({"fields": "1"}),
            RenderContext(
                query_params={"utm_source": "newsletter"},
                page_title="Graduate Admissions",
                page_url="https://example.edu/grad",
            ),
        )
        soup = BeautifulSoup(html, "html.parser")

        assert soup.find("input", attrs={"name": "21"})["value"] == "newsletter"
        assert soup.find("input", attrs={"name": "22"})["value"] == "Graduate Admissions"
        assert soup.find("input", attrs={"name": "2"}) is None
        assert soup.find("input", id="referring_page")["value"] == "https://example.edu/grad"
        assert nonces.verify(soup.find("input", attrs={"name": "liaison_inquiry_nonce"})["value"])

    async def test_cached_definition_is_not_modified(self, options, nonces):
        form = make_form()
        api = FakeVendorClient(options.default_credentials, form=form)
        await InquiryForm(api, options, nonces, FormRenderer()).get_html(
            ShortcodeAttributes.parse({"fields": "1"}), RenderContext()
        )

        assert not any(field.hidden for field in form.iter_fields())
