from typing import Any, Dict, Optional
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field

MAX_CART_ROWS = 50


class CartRow(BaseModel):
    """
    Ligne de panier invité (tenue côté client).
    - product_id: id produit catalogue, ou id réservé 'custom-...' pour une création.
    - price/title: instantané informatif; le serveur reprice toujours un panier invité.
    - configuration: instantané de la configuration pour les créations.
    """
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = Field(default=None, max_length=100)
    product_id: str = Field(min_length=1, max_length=100)
    quantity: int = Field(ge=1, le=100)
    price: Optional[Decimal] = None
    title: Optional[str] = Field(default=None, max_length=200)
    configuration: Optional[Dict[str, Any]] = None
