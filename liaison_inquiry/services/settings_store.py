"""Persistence for the plugin option blob"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional

from liaison_inquiry.models.credentials import (
    PAGE_TITLE_SETTING,
    UTM_SETTINGS,
    CredentialSet,
    PluginOptions,
)
from liaison_inquiry.utils.retry import retry_supabase_query
from liaison_inquiry.utils.sanitize import sanitize_key, sanitize_text_field

logger = logging.getLogger(__name__)

TEXT_SETTINGS = ("APIKey", "ClientID") + UTM_SETTINGS + (PAGE_TITLE_SETTING,)


def sanitize_options(raw: Optional[Mapping[str, Any]]) -> PluginOptions:
    """
    Build options from an untrusted blob.

    Known text settings are sanitized and unknown keys are ignored.
    Alternate credential entries missing an APIKey or ClientID are dropped.
    """
    raw = raw or {}
    values = {}
    for name in TEXT_SETTINGS:
        if name in raw:
            values[name] = sanitize_text_field(raw[name])

    alternates = {}
    raw_alternates = raw.get("alternate_credentials")
    if isinstance(raw_alternates, Mapping):
        for org_key, credentials in raw_alternates.items():
            if not isinstance(credentials, Mapping):
                continue
            org_key = sanitize_key(org_key)
            api_key = sanitize_text_field(credentials.get("APIKey"))
            client_id = sanitize_text_field(credentials.get("ClientID"))
            if not org_key or not api_key or not client_id:
                continue
            alternates[org_key] = CredentialSet(client_id=client_id, api_key=api_key)
    values["alternate_credentials"] = alternates

    return PluginOptions.model_validate(values)


class SettingsStore(ABC):
    """Reads and writes the single named option blob"""

    @abstractmethod
    def load(self) -> PluginOptions:
        """Snapshot of the current options; empty options when nothing is stored"""

    @abstractmethod
    def save(self, options: PluginOptions) -> PluginOptions:
        """Replace the stored blob"""


class InMemorySettingsStore(SettingsStore):
    def __init__(self, options: Optional[PluginOptions] = None):
        self._options = options or PluginOptions()

    def load(self) -> PluginOptions:
        return self._options

    def save(self, options: PluginOptions) -> PluginOptions:
        self._options = options
        return options


class SupabaseSettingsStore(SettingsStore):
    """Keeps the blob as a jsonb ``value`` row keyed by ``name``"""

    def __init__(self, client, name: str, table: str = "plugin_options"):
        self.client = client
        self.name = name
        self.table = table

    def load(self) -> PluginOptions:
        result = retry_supabase_query(
            lambda: self.client.table(self.table).select("value").eq(
                "name", self.name
            ).limit(1).execute()
        )
        if not result.data:
            return PluginOptions()
        return sanitize_options(result.data[0].get("value"))

    def save(self, options: PluginOptions) -> PluginOptions:
        retry_supabase_query(
            lambda: self.client.table(self.table).upsert({
                "name": self.name,
                "value": options.to_blob()
            }, on_conflict="name").execute()
        )
        logger.info(f"Saved options {self.name} ({len(options.alternate_credentials)} alternate credential sets)")
        return options
