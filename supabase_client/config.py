# supabase_client/config.py
import os

from supabase import Client, create_client


def get_supabase_client(url: str | None = None, key: str | None = None) -> Client:
    """Return an authenticated Supabase client if credentials are set."""
    url = url or os.getenv("SUPABASE_URL")
    key = key or os.getenv("SUPABASE_ANON_KEY")
    if not url or not key:
        raise RuntimeError("Supabase credentials not set in environment variables.")
    return create_client(url, key)
