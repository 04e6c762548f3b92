"""Request-scoped collaborators, overridable through app.dependency_overrides"""
from functools import lru_cache
from typing import Callable

from fastapi import Depends

from liaison_inquiry.config import Settings, get_settings
from liaison_inquiry.models.credentials import CredentialSet, PluginOptions
from liaison_inquiry.services.fixture_client import FixtureVendorClient
from liaison_inquiry.services.form_renderer import FormRenderer
from liaison_inquiry.services.nonce import NonceService
from liaison_inquiry.services.requirements_cache import get_requirements_cache
from liaison_inquiry.services.settings_store import (
    InMemorySettingsStore,
    SettingsStore,
    SupabaseSettingsStore,
)
from liaison_inquiry.services.vendor_client import SpectrumClient, VendorClient

VendorFactory = Callable[[CredentialSet], VendorClient]


@lru_cache()
def get_settings_store() -> SettingsStore:
    settings = get_settings()
    if settings.settings_backend == "memory":
        return InMemorySettingsStore()

    from liaison_inquiry.database import get_supabase_admin
    return SupabaseSettingsStore(
        get_supabase_admin(),
        name=settings.options_name,
        table=settings.options_table,
    )


def get_options(store: SettingsStore = Depends(get_settings_store)) -> PluginOptions:
    """One frozen read of the options per request"""
    return store.load()


def get_vendor_factory(settings: Settings = Depends(get_settings)) -> VendorFactory:
    """Build vendor clients for the configured backend"""
    if settings.vendor_backend == "fixture":
        def factory(credentials: CredentialSet) -> VendorClient:
            return FixtureVendorClient(
                credentials,
                outcome=settings.vendor_fixture_outcome,
                base_url=settings.vendor_api_url,
            )
        return factory

    cache = get_requirements_cache()

    def factory(credentials: CredentialSet) -> VendorClient:
        return SpectrumClient(credentials, base_url=settings.vendor_api_url, cache=cache)
    return factory


@lru_cache()
def get_nonce_service() -> NonceService:
    settings = get_settings()
    return NonceService(settings.nonce_secret, lifetime=settings.nonce_lifetime)


@lru_cache()
def get_form_renderer() -> FormRenderer:
    return FormRenderer()
