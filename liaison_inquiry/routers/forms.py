"""Form browsing endpoints (admin)"""
from fastapi import APIRouter, HTTPException, Depends, Path
from typing import Dict, Optional
import logging

from liaison_inquiry.dependencies import VendorFactory, get_options, get_vendor_factory
from liaison_inquiry.middleware.auth import get_current_admin
from liaison_inquiry.models.credentials import CredentialSet, PluginOptions
from liaison_inquiry.services.vendor_client import ConfigError, VendorError

logger = logging.getLogger(__name__)
router = APIRouter()

DEFAULT_FORM_ID = "default"


def resolve_credentials(options: PluginOptions, org_key: Optional[str] = None) -> CredentialSet:
    """
    Credentials for the admin form browser

    Unlike form rendering, a known org with no API key is an error rather
    than a silent fallback, so the admin sees what is misconfigured.
    """
    if org_key and org_key in options.alternate_credentials:
        credentials = options.alternate_credentials[org_key]
        if not credentials.api_key:
            raise HTTPException(
                status_code=400,
                detail=f"API Key is required for organization: {org_key}"
            )
        return credentials

    if not options.api_key:
        raise HTTPException(status_code=400, detail="API Key is required.")
    return options.default_credentials


@router.get("")
async def get_forms(
    org_key: Optional[str] = None,
    options: PluginOptions = Depends(get_options),
    vendor_factory: VendorFactory = Depends(get_vendor_factory),
    auth_data: Dict = Depends(get_current_admin),
):
    """List the forms available to an organization"""
    api = vendor_factory(resolve_credentials(options, org_key))
    try:
        return await api.list_forms()
    except ConfigError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except VendorError as e:
        logger.error(f"Form list error: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{form_id}/fields")
async def get_form_fields(
    form_id: str = Path(..., pattern=r"^[a-zA-Z0-9-]+$"),
    org_key: Optional[str] = None,
    options: PluginOptions = Depends(get_options),
    vendor_factory: VendorFactory = Depends(get_vendor_factory),
    auth_data: Dict = Depends(get_current_admin),
):
    """Field inventory of one form; "default" is the default inquiry form"""
    api = vendor_factory(resolve_credentials(options, org_key))
    try:
        form = await api.get_requirements(None if form_id == DEFAULT_FORM_ID else form_id)
    except ConfigError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except VendorError as e:
        logger.error(f"Form fields error: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return form.model_dump(exclude={"sections": {"__all__": {"fields": {"__all__": {"hidden", "hidden_value"}}}}})
