"""Database module."""

from .supabase import get_supabase_client, DatabaseService

__all__ = ["get_supabase_client", "DatabaseService"]
