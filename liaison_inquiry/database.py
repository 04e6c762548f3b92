"""Database connection and utilities"""
from functools import lru_cache

from supabase import create_client, Client
from liaison_inquiry.config import get_settings


@lru_cache()
def get_supabase_admin() -> Client:
    """
    Service role client (bypasses RLS - use carefully)

    Created on first use so the app can boot with the in-memory settings
    backend and no Supabase project configured.
    """
    settings = get_settings()
    return create_client(
        settings.supabase_url,
        settings.supabase_service_role_key
    )
