"""Schemas for Dapic passthrough API."""

from typing import Any, Dict, List

from pydantic import BaseModel, Field


class StoresResponse(BaseModel):
    """Stores available for ERP calls."""

    stores: List[str] = Field(..., description="Lojas com credenciais configuradas")
    all_stores_key: str = Field(..., description="Identificador para consultar todas as lojas")


class AllStoresResponse(BaseModel):
    """Result of a request made with store_id="todas"."""

    stores: Dict[str, Any] = Field(default_factory=dict, description="Dados por loja")
    errors: Dict[str, str] = Field(default_factory=dict, description="Erros por loja")
