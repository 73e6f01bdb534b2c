"""Pydantic schemas for the Telegram updates this bot reacts to.

Only the fields the handlers read are declared; Telegram's other fields
are ignored. See https://core.telegram.org/bots/api#update.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from apps.orders.domain import ShippingAddress, ShippingInfo


class TelegramModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class UserDTO(TelegramModel):
    id: int
    username: Optional[str] = None
    first_name: str = ""


class ChatDTO(TelegramModel):
    id: int


class ShippingAddressDTO(TelegramModel):
    country_code: str = ""
    state: str = ""
    city: str = ""
    street_line1: str = ""
    street_line2: str = ""
    post_code: str = ""

    def to_domain(self) -> ShippingAddress:
        return ShippingAddress(
            street_line1=self.street_line1.strip(),
            street_line2=self.street_line2.strip(),
            city=self.city.strip(),
            state=self.state.strip(),
            country_code=self.country_code.strip().upper(),
            post_code=self.post_code.strip(),
        )


class OrderInfoDTO(TelegramModel):
    """Data Telegram collected from the user during the invoice flow."""

    name: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    shipping_address: Optional[ShippingAddressDTO] = None

    def to_shipping_info(self) -> ShippingInfo:
        address = self.shipping_address or ShippingAddressDTO()
        return ShippingInfo(
            name=(self.name or "").strip(),
            email=(self.email or "").strip(),
            phone=(self.phone_number or "").strip(),
            address=address.to_domain(),
        )


class ShippingQueryDTO(TelegramModel):
    id: str
    from_user: UserDTO = Field(alias="from")
    invoice_payload: str
    shipping_address: ShippingAddressDTO


class PreCheckoutQueryDTO(TelegramModel):
    id: str
    from_user: UserDTO = Field(alias="from")
    currency: str
    total_amount: int
    invoice_payload: str
    shipping_option_id: Optional[str] = None
    order_info: Optional[OrderInfoDTO] = None


class SuccessfulPaymentDTO(TelegramModel):
    currency: str
    total_amount: int
    invoice_payload: str
    telegram_payment_charge_id: str
    provider_payment_charge_id: str
    shipping_option_id: Optional[str] = None
    order_info: Optional[OrderInfoDTO] = None


class MessageDTO(TelegramModel):
    message_id: int
    chat: ChatDTO
    from_user: Optional[UserDTO] = Field(default=None, alias="from")
    text: Optional[str] = None
    successful_payment: Optional[SuccessfulPaymentDTO] = None


class UpdateDTO(TelegramModel):
    """A webhook update; at most one of the optional fields is set."""

    update_id: int
    message: Optional[MessageDTO] = None
    shipping_query: Optional[ShippingQueryDTO] = None
    pre_checkout_query: Optional[PreCheckoutQueryDTO] = None
