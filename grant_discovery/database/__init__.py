"""Supabase persistence gateway."""

from .client import SupabaseClient

__all__ = ["SupabaseClient"]
