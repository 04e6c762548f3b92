"""Public inquiry form endpoints (embed + submit)"""
from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
import logging

from liaison_inquiry.dependencies import (
    VendorFactory,
    get_form_renderer,
    get_nonce_service,
    get_options,
    get_settings_store,
    get_vendor_factory,
)
from liaison_inquiry.models.credentials import PluginOptions
from liaison_inquiry.models.forms import ShortcodeAttributes
from liaison_inquiry.models.submission import SubmissionResult
from liaison_inquiry.services.form_renderer import FormRenderer
from liaison_inquiry.services.inquiry_form import InquiryForm, RenderContext
from liaison_inquiry.services.nonce import NonceService
from liaison_inquiry.services.settings_store import SettingsStore
from liaison_inquiry.services.submission_handler import SubmissionHandler
from liaison_inquiry.services.vendor_client import GENERIC_SUBMIT_FAILURE

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/form", response_class=HTMLResponse)
async def render_inquiry_form(
    request: Request,
    options: PluginOptions = Depends(get_options),
    vendor_factory: VendorFactory = Depends(get_vendor_factory),
    nonces: NonceService = Depends(get_nonce_service),
    renderer: FormRenderer = Depends(get_form_renderer),
):
    """
    Render the inquiry form (PUBLIC endpoint)

    Query parameters are the embed attributes (org, form_id, fields, source
    and numeric field presets). utm_* parameters feed the UTM autofill;
    page_title and page_url describe the embedding page.
    """
    query_params = dict(request.query_params)
    attributes = ShortcodeAttributes.parse(query_params)
    context = RenderContext(
        query_params=query_params,
        page_title=query_params.get("page_title", ""),
        page_url=query_params.get("page_url") or request.headers.get("referer", ""),
    )

    api = vendor_factory(options.credentials_for_org(attributes.org))
    form = InquiryForm(api, options, nonces, renderer)
    return HTMLResponse(await form.get_html(attributes, context))


@router.post("/submit")
async def submit_inquiry_form(
    request: Request,
    store: SettingsStore = Depends(get_settings_store),
    vendor_factory: VendorFactory = Depends(get_vendor_factory),
    nonces: NonceService = Depends(get_nonce_service),
):
    """Handle form submission (PUBLIC endpoint); always answers 200 with a result body"""
    try:
        form_data = await request.form()
        payload = {key: value for key, value in form_data.items() if isinstance(value, str)}

        handler = SubmissionHandler(store.load(), vendor_factory, nonces)
        result = await handler.handle(payload)
    except Exception as e:
        logger.exception(f"Inquiry form submission error: {e}")
        result = SubmissionResult.failure(GENERIC_SUBMIT_FAILURE)

    return result.model_dump()
