"""Authentication middleware and dependencies"""
from fastapi import HTTPException, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional, Dict
from liaison_inquiry.config import get_settings
import httpx
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

MANAGE_OPTIONS = "manage_options"


async def verify_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[Dict]:
    """
    Verify Supabase JWT token via Supabase Auth API
    """
    if not credentials:
        return None

    token = credentials.credentials
    settings = get_settings()

    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.get(
                f"{settings.supabase_url}/auth/v1/user",
                headers={
                    "Authorization": f"Bearer {token}",
                    "apikey": settings.supabase_anon_key
                }
            )

        if response.status_code != 200:
            logger.warning(f"Supabase auth failed: {response.status_code} - {response.text}")
            raise HTTPException(status_code=401, detail="Invalid authentication token")

        user_data = response.json()
        app_metadata = user_data.get("app_metadata") or {}
        user_metadata = user_data.get("user_metadata") or {}
        capabilities = set(app_metadata.get("capabilities") or []) | set(user_metadata.get("capabilities") or [])

        return {
            "user_id": user_data.get("id"),
            "email": user_data.get("email"),
            "can_manage_options": MANAGE_OPTIONS in capabilities,
        }
    except httpx.RequestError:
        raise HTTPException(status_code=401, detail="Authentication service unavailable")
    except HTTPException:
        raise
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid authentication token")


async def get_current_admin(
    auth_data: Optional[Dict] = Depends(verify_token)
) -> Dict:
    """
    Get current user, who must be allowed to manage the plugin options

    Raises:
        HTTPException: If not authenticated or missing the capability
    """
    if not auth_data:
        raise HTTPException(status_code=401, detail="Not authenticated")

    if not auth_data.get("can_manage_options"):
        raise HTTPException(
            status_code=403,
            detail="You are not allowed to manage the inquiry form settings"
        )

    return auth_data
