"""Handle incoming inquiry form submissions"""
import logging
import re
from typing import Callable, Dict, Mapping, MutableMapping

from liaison_inquiry.models.credentials import CredentialSet, PluginOptions
from liaison_inquiry.models.submission import SubmissionResult
from liaison_inquiry.services.nonce import NONCE_ACTION, NONCE_FIELD_NAME, NonceService
from liaison_inquiry.services.vendor_client import VendorClient
from liaison_inquiry.utils.sanitize import sanitize_key, sanitize_text_field

logger = logging.getLogger(__name__)

NONCE_ERROR_MESSAGE = "There was a problem with the form nonce, please reload the page"

PHONE_FIELDS_KEY = "phone_fields"
OPT_IN_MARKER = "-text-opt-in"
# Used by this service only, never sent to the vendor
INTERNAL_FIELDS = ("org", "referring_page")

_NON_DIGITS = re.compile(r"[^0-9]")


class SubmissionHandler:
    """Verify, clean up and forward one form submission"""

    def __init__(
        self,
        options: PluginOptions,
        vendor_factory: Callable[[CredentialSet], VendorClient],
        nonces: NonceService,
    ):
        self.options = options
        self.vendor_factory = vendor_factory
        self.nonces = nonces

    def verify_nonce(self, payload: MutableMapping[str, str]) -> bool:
        """
        Check the form nonce.

        The nonce field is removed from ``payload`` whatever the outcome, so
        a second check of the same payload always fails.
        """
        token = payload.pop(NONCE_FIELD_NAME, None)
        if not token:
            return False
        return self.nonces.verify(sanitize_key(token), NONCE_ACTION)

    def prepare_form_post(self, post_parameters: Mapping[str, str]) -> Dict[str, str]:
        """
        Sanitize and format post data for submission.

        Phone fields (listed in the ``phone_fields`` control field) keep only
        their digits and get a URL-encoded +1 prefix. Opt-in checkboxes only
        show up when ticked, so their presence means "1". Everything else gets
        the plain text sanitizer.
        """
        post_parameters = dict(post_parameters)

        raw_phone_fields = post_parameters.pop(PHONE_FIELDS_KEY, "")
        phone_fields = [
            field_id for field_id in sanitize_text_field(raw_phone_fields).split(",") if field_id
        ]

        post_vars = {}
        for key, value in post_parameters.items():
            value = "" if value is None else str(value)

            if key in phone_fields:
                digits = _NON_DIGITS.sub("", value)
                # + has to be sent as %2B
                value = "%2B1" + digits if digits else ""
            elif OPT_IN_MARKER in key.lower():
                value = "1"
            else:
                value = sanitize_text_field(value)

            post_vars[key] = value
        return post_vars

    async def handle(self, payload: MutableMapping[str, str]) -> SubmissionResult:
        """Process a raw submission into the JSON result the browser expects"""
        if not self.verify_nonce(payload):
            return SubmissionResult.failure(NONCE_ERROR_MESSAGE)

        org_key = sanitize_key(payload.get("org"))
        credentials = self.options.credentials_for_org(org_key)
        if org_key and org_key not in self.options.alternate_credentials:
            logger.info(f"Unknown org {org_key!r} in submission, using default credentials")

        post_vars = self.prepare_form_post(payload)
        referring_page = post_vars.get("referring_page", "")
        for field_name in INTERNAL_FIELDS:
            post_vars.pop(field_name, None)

        api = self.vendor_factory(credentials)
        return await api.post_form(post_vars, referring_page=referring_page)
