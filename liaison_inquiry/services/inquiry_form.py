"""Inquiry form rendering entry point"""
import logging
from typing import Dict

from pydantic import BaseModel, Field

from liaison_inquiry.models.credentials import PluginOptions
from liaison_inquiry.models.forms import FormDefinition, ShortcodeAttributes
from liaison_inquiry.services.form_renderer import FormRenderer
from liaison_inquiry.services.form_transformer import autofill_parameters, minify_form_definition
from liaison_inquiry.services.nonce import NonceService
from liaison_inquiry.services.vendor_client import VendorClient, VendorError

logger = logging.getLogger(__name__)

RENDER_FAILED_MESSAGE = "Error: The inquiry form could not be displayed."


class RenderContext(BaseModel):
    """What the embedding page knows about the current visit"""
    query_params: Dict[str, str] = Field(default_factory=dict)
    page_title: str = ""
    page_url: str = ""


class InquiryForm:
    """Fetches a form definition, shapes it for one embed, and renders it"""

    def __init__(
        self,
        api: VendorClient,
        options: PluginOptions,
        nonces: NonceService,
        renderer: FormRenderer,
    ):
        self.api = api
        self.options = options
        self.nonces = nonces
        self.renderer = renderer

    def prepare_form(
        self,
        form: FormDefinition,
        attributes: ShortcodeAttributes,
        context: RenderContext,
    ) -> FormDefinition:
        form = minify_form_definition(form, attributes.fields, attributes.presets)
        form = autofill_parameters(
            form,
            self.options.utm_field_ids(),
            lambda parameter_name: context.query_params.get(parameter_name, ""),
        )
        form = autofill_parameters(
            form,
            self.options.page_title_field_ids(),
            lambda parameter_name: context.page_title,
        )
        return form

    async def get_html(self, attributes: ShortcodeAttributes, context: RenderContext) -> str:
        """
        Form markup, or a plain error message when the form can't be built.

        Never raises: a broken vendor integration shows an error in place of
        the form instead of breaking the whole page.
        """
        try:
            form = await self.api.get_requirements(attributes.form_id)
        except VendorError as e:
            return str(e)

        try:
            form = self.prepare_form(form, attributes, context)
            return self.renderer.render(
                form,
                nonce=self.nonces.create(),
                form_id=attributes.form_id,
                org=attributes.org,
                referring_page=context.page_url,
                client_id=self.api.client_id,
                client_rules_url=self.api.client_rules_url,
                field_options_url=self.api.field_options_url,
            )
        except Exception as e:
            logger.exception(f"Inquiry form rendering failed: {e}")
            return RENDER_FAILED_MESSAGE
