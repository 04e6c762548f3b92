"""Form definition Pydantic models"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Dict, List, Mapping, Optional

from liaison_inquiry.utils.sanitize import sanitize_key


class FieldOption(BaseModel):
    """A select option, or an optgroup when it carries nested options"""
    model_config = ConfigDict(extra="allow")

    id: Optional[Any] = None
    value: Optional[Any] = None
    label: Optional[str] = None
    options: Optional[List["FieldOption"]] = None

    @property
    def is_group(self) -> bool:
        return self.options is not None


class FormField(BaseModel):
    """One field of a vendor form definition"""
    model_config = ConfigDict(extra="allow")

    id: str
    displayName: str = ""
    htmlElement: str = ""
    required: bool = False
    description: str = ""
    helpText: str = ""
    options: List[FieldOption] = Field(default_factory=list)
    order: Optional[float] = None

    # Set by the transformer, never by the vendor
    hidden: bool = False
    hidden_value: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value):
        return str(value)

    @field_validator("required", mode="before")
    @classmethod
    def coerce_required(cls, value):
        # The API sends "1"/"0", 1/0 or booleans
        if isinstance(value, str):
            return value.strip() == "1" or value.strip().lower() == "true"
        return bool(value)

    @field_validator("order", mode="before")
    @classmethod
    def blank_order(cls, value):
        return None if value == "" else value

    @field_validator("displayName", "description", "helpText", "htmlElement", mode="before")
    @classmethod
    def none_to_empty(cls, value):
        return "" if value is None else value


class FormSection(BaseModel):
    """Named, ordered group of fields"""
    model_config = ConfigDict(extra="allow")

    name: str = ""
    description: str = ""
    fields: List[FormField] = Field(default_factory=list)

    @field_validator("name", "description", mode="before")
    @classmethod
    def none_to_empty(cls, value):
        return "" if value is None else value

    @field_validator("fields", mode="before")
    @classmethod
    def fields_from_mapping(cls, value):
        # PHP-encoded arrays with gaps in their keys come through as objects
        if isinstance(value, dict):
            return list(value.values())
        return value


class FormDefinition(BaseModel):
    """The "data" payload of a requirements response"""
    model_config = ConfigDict(extra="allow")

    header: Optional[str] = None
    subheader: Optional[str] = None
    sections: List[FormSection] = Field(default_factory=list)

    def iter_fields(self):
        for section in self.sections:
            for field in section.fields:
                yield field

    def has_field(self, field_id: str) -> bool:
        return any(field.id == str(field_id) for field in self.iter_fields())


def _is_field_id(value: str) -> bool:
    # str.isdigit alone also accepts characters like "\u00b2"
    return value.isascii() and value.isdigit()


class ShortcodeAttributes(BaseModel):
    """Attributes of one form embed, parsed once at the boundary"""
    org: Optional[str] = None
    form_id: Optional[str] = None
    fields: List[str] = Field(default_factory=list)
    source: Optional[str] = None
    presets: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def parse(cls, attrs: Optional[Mapping[str, Any]]) -> "ShortcodeAttributes":
        """
        Split raw attributes into control values and field presets

        Numeric keys are field ids and become presets. The lower-case
        ``source`` attribute presets the vendor's upper-case ``SOURCE`` field.
        ``fields`` is a comma separated allow-list; non-numeric entries are ignored.
        ``org`` is normalized the same way submissions normalize it.
        """
        attrs = dict(attrs or {})

        presets: Dict[str, str] = {}
        for key, value in attrs.items():
            key = str(key)
            if _is_field_id(key):
                presets[key] = "" if value is None else str(value)
            elif key == "source":
                presets["SOURCE"] = "" if value is None else str(value)

        field_ids = []
        raw_fields = attrs.get("fields")
        if raw_fields:
            for field_id in str(raw_fields).split(","):
                field_id = field_id.strip()
                if _is_field_id(field_id):
                    field_ids.append(field_id)

        return cls(
            org=sanitize_key(attrs.get("org")) or None,
            form_id=attrs.get("form_id") or None,
            fields=field_ids,
            source=attrs.get("source"),
            presets=presets,
        )


FieldOption.model_rebuild()
