"""
Supabase Client
===============
Provides a configured Supabase client for the repository and the
notification service.

Uses the service_role key (not the anon key): webhook handlers write
analysis results and read other users' FCM tokens, which RLS would
otherwise block. RLS still protects direct access from the mobile app.
"""

from functools import lru_cache

from supabase import Client, create_client

from app.config import get_settings


@lru_cache
def get_supabase_client() -> Client:
    settings = get_settings()
    return create_client(settings.supabase_url, settings.supabase_service_key)
