"""Credential management endpoints (admin)"""
from fastapi import APIRouter, Body, Depends, HTTPException
from typing import Any, Dict
import logging

from liaison_inquiry.dependencies import get_settings_store
from liaison_inquiry.middleware.auth import get_current_admin
from liaison_inquiry.models.credentials import CredentialSet
from liaison_inquiry.services.settings_store import SettingsStore, sanitize_options
from liaison_inquiry.utils.sanitize import sanitize_key, sanitize_text_field

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("")
async def get_credentials(
    store: SettingsStore = Depends(get_settings_store),
    auth_data: Dict = Depends(get_current_admin),
):
    """Get the full option blob, alternate credentials included"""
    return store.load().to_blob()


@router.post("")
async def replace_credentials(
    params: Dict[str, Any] = Body(...),
    store: SettingsStore = Depends(get_settings_store),
    auth_data: Dict = Depends(get_current_admin),
):
    """Replace the option blob; incomplete alternate credential entries are dropped"""
    options = store.save(sanitize_options(params))
    logger.info(f"Options replaced by {auth_data.get('email') or auth_data.get('user_id')}")
    return options.to_blob()


@router.put("/alternates/{org_key}")
async def put_alternate_credential(
    org_key: str,
    params: Dict[str, Any] = Body(...),
    store: SettingsStore = Depends(get_settings_store),
    auth_data: Dict = Depends(get_current_admin),
):
    """Add or update one organization's credentials"""
    org_key = sanitize_key(org_key)
    client_id = sanitize_text_field(params.get("ClientID"))
    api_key = sanitize_text_field(params.get("APIKey"))
    if not org_key:
        raise HTTPException(status_code=400, detail="A valid organization key is required.")
    if not client_id or not api_key:
        raise HTTPException(status_code=400, detail="Both APIKey and ClientID are required.")

    options = store.load().with_alternate(org_key, CredentialSet(client_id=client_id, api_key=api_key))
    return store.save(options).to_blob()


@router.delete("/alternates/{org_key}")
async def delete_alternate_credential(
    org_key: str,
    store: SettingsStore = Depends(get_settings_store),
    auth_data: Dict = Depends(get_current_admin),
):
    """Remove one organization's credentials"""
    org_key = sanitize_key(org_key)
    options = store.load()
    if org_key not in options.alternate_credentials:
        raise HTTPException(status_code=404, detail="Organization not found")

    return store.save(options.without_alternate(org_key)).to_blob()
