"""
Form definition transforms.

Both passes return a new FormDefinition and leave the input untouched, so a
cached vendor response can be transformed differently for every embed.
"""
import logging
from typing import Callable, Iterable, Mapping, Optional

from liaison_inquiry.models.forms import FormDefinition, FormField, FormSection

logger = logging.getLogger(__name__)

# Value for required fields that are left out of a mini form
MINI_DUMMY_VALUE = "mini-form"


def minify_form_definition(
    form: FormDefinition,
    field_ids: Iterable[str],
    presets: Optional[Mapping[str, str]] = None,
) -> FormDefinition:
    """
    Strip out fields that aren't in ``field_ids`` and preset hidden values.

    With an allow-list, unlisted optional fields are dropped and unlisted
    required fields become hidden, taking their preset value if there is one
    and the dummy value otherwise. Presets that don't end up on an existing
    field are prepended to the first section as new hidden fields.

    Args:
        form: Form definition as returned by the API
        field_ids: Field ids to keep visible; empty keeps the whole form
        presets: Field id -> value pairs from the embed attributes

    Returns:
        A new, transformed form definition
    """
    allowed = {str(field_id) for field_id in field_ids}
    remaining = {str(key): value for key, value in (presets or {}).items()}

    sections = []
    for section in form.sections:
        fields = []
        for field in section.fields:
            if not allowed or field.id in allowed:
                fields.append(field.model_copy(deep=True))
            elif not field.required:
                continue
            else:
                # Pop so the same preset can't also become a new hidden field
                value = remaining.pop(field.id, MINI_DUMMY_VALUE)
                fields.append(field.model_copy(update={"hidden": True, "hidden_value": value}, deep=True))
        sections.append(section.model_copy(update={"fields": fields}))

    minified = form.model_copy(update={"sections": sections})

    for preset_key, preset_value in remaining.items():
        if minified.has_field(preset_key):
            logger.warning(
                f"Field key {preset_key} was found in a shortcode, "
                f"but it already exists in the liaison form. Dropping preset value."
            )
            continue

        hidden_field = FormField(id=preset_key, hidden=True, hidden_value=preset_value)
        if not minified.sections:
            minified.sections.append(FormSection())
        minified.sections[0].fields.insert(0, hidden_field)

    return minified


def autofill_parameters(
    form: FormDefinition,
    auto_list: Mapping[str, str],
    resolve: Callable[[str], str],
) -> FormDefinition:
    """
    Hide fields configured for autofill and give them a computed value.

    Args:
        form: Form definition
        auto_list: Parameter name -> field id, e.g. {"utm_source": "21"}
        resolve: Returns the value for a parameter name

    Returns:
        A new form definition
    """
    by_field_id = {str(field_id): name for name, field_id in auto_list.items() if field_id}
    if not by_field_id:
        return form

    sections = []
    for section in form.sections:
        fields = []
        for field in section.fields:
            name = by_field_id.get(field.id)
            if name is None:
                fields.append(field)
            else:
                value = resolve(name)
                fields.append(field.model_copy(update={
                    "hidden": True,
                    "hidden_value": "" if value is None else str(value),
                }))
        sections.append(section.model_copy(update={"fields": fields}))

    return form.model_copy(update={"sections": sections})
