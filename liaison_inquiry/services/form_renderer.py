"""Render a transformed form definition to HTML"""
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup, escape

from liaison_inquiry.models.forms import FieldOption, FormDefinition, FormField
from liaison_inquiry.services import retry_controller
from liaison_inquiry.services.nonce import NONCE_FIELD_NAME

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parents[1] / "templates"

PHONE_CLASS = "iqs-form-phone-number"
EMAIL_CLASS = "iqs-form-email"
TEXT_CLASS = "iqs-form-text"
SELECT_CLASS = "iqs-form-single-select"

# Vendor field ids with presentation tweaks
ADDRESS_LINE_1_ID = "6"
ADDRESS_LINE_2_ID = "7"
STATE_FIELD_ID = "9"
OUTSIDE_US_OPTION = "Outside US & Canada"

_OPT_IN_POLICY = re.compile(r"opt-in policy", re.IGNORECASE)
OPT_IN_LINK = '<a href="#text-message-opt-in-modal" id="opt-in-trigger">opt-in policy</a>'


def field_label(field: FormField) -> str:
    if field.id == ADDRESS_LINE_1_ID:
        return "Address"
    if field.id == ADDRESS_LINE_2_ID:
        return ""
    return field.displayName


def text_input_class(field: FormField) -> str:
    description = field.description.lower()
    if "phone number" in description:
        return PHONE_CLASS
    if "valid email" in description:
        return EMAIL_CLASS
    return TEXT_CLASS


def is_paired_field(field: FormField, next_field: FormField) -> bool:
    """An opt-in field sits at exactly order + 0.1 after its phone field"""
    if field.order is None or next_field.order is None or next_field.hidden:
        return False
    return round(field.order + 0.1, 6) == round(next_field.order, 6)


def opt_in_label(text: str) -> Markup:
    escaped = str(escape(text.strip()))
    return Markup(_OPT_IN_POLICY.sub(OPT_IN_LINK, escaped))


def _option_view(option: FieldOption) -> Dict[str, Any]:
    if option.is_group:
        return {
            "label": option.label or "",
            "options": [_option_view(sub_option) for sub_option in option.options],
        }
    return {
        "value": "" if option.id is None else str(option.id),
        "text": "" if option.value is None else str(option.value),
    }


def build_form_view(form: FormDefinition) -> Dict[str, Any]:
    """
    Flatten a form definition into what the template loops over.

    Returns a dict with ``sections`` (each holding ``rows``), the ids of the
    phone fields, and the help text of every opt-in modal.
    """
    phone_fields: List[str] = []
    modals: List[Markup] = []
    sections = []

    for section in form.sections:
        rows = []
        fields = section.fields
        paired = set()

        for index, field in enumerate(fields):
            if index in paired:
                continue

            if field.hidden:
                rows.append({
                    "kind": "hidden",
                    "id": field.id,
                    "value": field.hidden_value or "",
                })
                continue

            base = {
                "id": field.id,
                "label": field_label(field),
                "placeholder": field.displayName,
                "required": field.required,
                "help_text": Markup(field.helpText) if field.helpText else "",
            }

            if field.htmlElement == "input-text":
                css_class = text_input_class(field)
                opt_in = None
                if css_class == PHONE_CLASS:
                    phone_fields.append(field.id)
                    if index + 1 < len(fields) and is_paired_field(field, fields[index + 1]):
                        next_field = fields[index + 1]
                        paired.add(index + 1)
                        opt_in = {"id": next_field.id, "label": opt_in_label(next_field.displayName)}
                        modals.append(Markup(next_field.helpText))
                rows.append(dict(base, kind="text", css_class=css_class, opt_in=opt_in))

            elif field.htmlElement == "select":
                rows.append(dict(
                    base,
                    kind="select",
                    css_class=SELECT_CLASS,
                    outside_us=field.id == STATE_FIELD_ID,
                    options=[_option_view(option) for option in field.options],
                ))

            else:
                logger.debug(f"Skipping field {field.id} with unsupported element {field.htmlElement!r}")

        sections.append({
            "name": section.name,
            "description": section.description,
            "rows": rows,
        })

    return {"sections": sections, "phone_fields": phone_fields, "modals": modals}


class FormRenderer:
    """Jinja2 front end for the inquiry form template"""

    def __init__(
        self,
        template_dir: Path = TEMPLATE_DIR,
        submit_url: str = "/api/inquiry/submit",
        static_url: str = "/static",
    ):
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(["html", "xml"]),
        )
        self.submit_url = submit_url
        self.static_url = static_url.rstrip("/")

    def render(
        self,
        form: FormDefinition,
        *,
        nonce: str,
        form_id: Optional[str] = None,
        org: Optional[str] = None,
        referring_page: str = "",
        client_id: str = "",
        client_rules_url: str = "",
        field_options_url: str = "",
    ) -> str:
        view = build_form_view(form)
        template = self.env.get_template("inquiry_form.html")
        return template.render(
            form=form,
            sections=view["sections"],
            phone_fields=",".join(view["phone_fields"]),
            modals=view["modals"],
            form_id=form_id,
            org=org,
            referring_page=referring_page,
            nonce=nonce,
            nonce_field_name=NONCE_FIELD_NAME,
            submit_url=self.submit_url,
            static_url=self.static_url,
            site_data={
                "client_rules_url": client_rules_url,
                "field_options_url": field_options_url,
                "client_id": client_id,
            },
            retry_config=retry_controller.client_config(),
        )
