"""
FastAPI dependencies.

The repository is chosen from settings. Tests replace `get_sale_repository`
through `app.dependency_overrides`.
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from api.settings import Settings, get_settings
from repositories.memory_sale_repository import InMemorySaleRepository
from repositories.sale_repository import SaleRepository


@lru_cache(maxsize=1)
def _memory_repository() -> InMemorySaleRepository:
    return InMemorySaleRepository()


def get_sale_repository(settings: Settings = Depends(get_settings)) -> SaleRepository:
    if settings.repository_backend == "memory":
        return _memory_repository()

    # Imported here so the memory backend never needs Supabase credentials.
    from repositories.client import get_supabase_client
    from repositories.supabase_sale_repository import SupabaseSaleRepository

    return SupabaseSaleRepository(get_supabase_client())


__all__ = ["get_sale_repository"]
