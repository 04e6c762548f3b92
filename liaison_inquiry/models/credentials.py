"""Credential and plugin option Pydantic models"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, Optional

UTM_SETTINGS = ("utm_source", "utm_campaign", "utm_content", "utm_medium", "utm_term")
PAGE_TITLE_SETTING = "page_title"


class CredentialSet(BaseModel):
    """Client ID / API key pair for one organization"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    client_id: str = Field("", alias="ClientID")
    api_key: str = Field("", alias="APIKey")


class PluginOptions(BaseModel):
    """
    The single named option blob

    Frozen: a request reads it once and works from that snapshot. Changes
    go through the ``with_*`` helpers, which return a new instance.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    api_key: str = Field("", alias="APIKey")
    client_id: str = Field("", alias="ClientID")
    utm_source: str = ""
    utm_campaign: str = ""
    utm_content: str = ""
    utm_medium: str = ""
    utm_term: str = ""
    page_title: str = ""
    alternate_credentials: Dict[str, CredentialSet] = Field(default_factory=dict)

    @property
    def default_credentials(self) -> CredentialSet:
        return CredentialSet(client_id=self.client_id, api_key=self.api_key)

    def credentials_for_org(self, org_key: Optional[str] = None) -> CredentialSet:
        """Credentials for ``org_key``; unknown or incomplete orgs fall back to the default set"""
        if org_key:
            alternate = self.alternate_credentials.get(org_key)
            if alternate and alternate.client_id and alternate.api_key:
                return alternate
        return self.default_credentials

    def utm_field_ids(self) -> Dict[str, str]:
        """Configured UTM parameter name -> vendor field id, skipping blanks"""
        result = {}
        for setting_name in UTM_SETTINGS:
            value = getattr(self, setting_name)
            if value:
                result[setting_name] = value
        return result

    def page_title_field_ids(self) -> Dict[str, str]:
        if not self.page_title:
            return {}
        return {PAGE_TITLE_SETTING: self.page_title}

    def with_alternate(self, org_key: str, credentials: CredentialSet) -> "PluginOptions":
        alternates = dict(self.alternate_credentials)
        alternates[org_key] = credentials
        return self.model_copy(update={"alternate_credentials": alternates})

    def without_alternate(self, org_key: str) -> "PluginOptions":
        alternates = dict(self.alternate_credentials)
        alternates.pop(org_key, None)
        return self.model_copy(update={"alternate_credentials": alternates})

    def to_blob(self) -> dict:
        return self.model_dump(by_alias=True)
