"""
Payload de checkout: union étiquetée par 'type' (custom | built | cart),
validée à la frontière avant d'atteindre la logique de prix.
"""
from typing import Annotated, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from storefront.cart.schemas import CartRow, MAX_CART_ROWS
from storefront.configurator.schemas import ConfigurationPayload


class _CheckoutBase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    currency: str = Field(default="CAD", max_length=3)
    locale: str = Field(default="en", max_length=10)

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, v: str) -> str:
        return (v or "CAD").strip().upper()


class CustomCheckout(_CheckoutBase):
    type: Literal["custom"]
    configuration: ConfigurationPayload
    user_id: Optional[str] = Field(default=None, max_length=100)


class BuiltCheckout(_CheckoutBase):
    type: Literal["built"]
    product_id: str = Field(min_length=1, max_length=100)
    user_id: Optional[str] = Field(default=None, max_length=100)


class CartCheckout(_CheckoutBase):
    """
    Panier d'un utilisateur connecté (user_id) ou panier invité (items).
    """
    type: Literal["cart"]
    user_id: Optional[str] = Field(default=None, max_length=100)
    items: Optional[List[CartRow]] = Field(default=None, max_length=MAX_CART_ROWS)

    @model_validator(mode="after")
    def _user_or_items(self):
        if not self.user_id and not self.items:
            raise ValueError("cart checkout requires user_id or items")
        return self


CheckoutRequest = Annotated[Union[CustomCheckout, BuiltCheckout, CartCheckout], Field(discriminator="type")]

checkout_request_adapter = TypeAdapter(CheckoutRequest)
