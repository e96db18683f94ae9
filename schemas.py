from pydantic import BaseModel, ConfigDict, Field
from typing import Annotated, Optional, Literal, List, Tuple, Union
from datetime import datetime
from decimal import Decimal
from enum import Enum


# Catalog
class ProductCategory(str, Enum):
    GAMES = "GAMES"
    CLICKER_GAMES = "CLICKER_GAMES"
    BUNDLES = "BUNDLES"
    UTILITIES = "UTILITIES"
    TOKENS = "TOKENS"
    DONATIONS = "DONATIONS"


class Platform(str, Enum):
    ANDROID = "ANDROID"
    WINDOWS = "WINDOWS"
    LINUX = "LINUX"
    ALL = "ALL"


class CatalogItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique product id")
    title: str = Field(..., description="Product title")
    description: str = Field("", description="Product description")
    price: Decimal = Field(..., ge=0, description="Unit price in the store currency")
    currency: str = Field("USD", description="Pricing currency code")
    category: ProductCategory = Field(..., description="Catalog category")
    platform: Platform = Field(..., description="Target platform")
    image_url: Optional[str] = Field(None, description="Product image URL")
    purchase_url: Optional[str] = Field(None, description="External purchase page")
    features: Tuple[str, ...] = Field((), description="Feature bullet points")


# Cart line, also used as the order line snapshot
class CartEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    item: CatalogItem
    quantity: int = Field(..., ge=1, description="Units of the item")

    @property
    def line_total(self) -> Decimal:
        return self.item.price * self.quantity


# Orders
class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class Order(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Order id")
    items: Tuple[CartEntry, ...] = Field(..., description="Cart snapshot at checkout time")
    total_amount: Decimal = Field(..., ge=0, description="Sum of price x quantity, 2 decimals")
    currency: str = Field(..., description="Pricing currency of the order")
    status: OrderStatus = Field(OrderStatus.PENDING, description="Order status")
    created_at: datetime = Field(..., description="Creation timestamp")
    customer_email: str = Field(..., description="Buyer email")
    payment_id: Optional[str] = Field(None, description="Payment that settled the order")


# Payments
class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"
    EXPIRED = "EXPIRED"


class PaymentSession(BaseModel):
    model_config = ConfigDict(frozen=True)

    payment_id: str = Field(..., description="Payment session id")
    order_id: str = Field(..., description="Order being paid")
    amount: Decimal = Field(..., gt=0, description="Amount to collect in the store currency")
    currency: str = Field(..., description="Cryptocurrency to pay with")
    amount_crypto: Decimal = Field(..., ge=0, description="Amount to send in crypto units")
    wallet_address: str = Field(..., description="Destination wallet address")
    merchant_id: str = Field(..., description="Merchant receiving the payment")
    customer_email: str = Field(..., description="Buyer email")
    description: str = Field("", description="Human readable payment description")
    payment_url: Optional[str] = Field(None, description="Hosted payment page")
    expires_at: datetime = Field(..., description="Expiration timestamp for this session")
    status: PaymentStatus = Field(PaymentStatus.PENDING, description="Status at creation time")


class PaymentResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    payment_id: str
    status: PaymentStatus
    transaction_id: Optional[str] = Field(None, description="Present only when COMPLETED")
    amount: Decimal
    currency: str
    processed_at: datetime
    error_message: Optional[str] = Field(None, description="Present unless COMPLETED")


# External wallets
class ExternalWalletApp(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Wallet app display name")
    package_name: str = Field(..., description="Package / bundle identifier")
    supported_coins: Tuple[str, ...] = Field(..., description="Coin codes the app can pay with")
    icon_url: Optional[str] = Field(None, description="Icon reference")
    is_installed: bool = Field(False, description="Whether the platform reports the app installed")


class PaymentRequestWithWalletSelection(BaseModel):
    payment_session: PaymentSession
    available_wallets: List[ExternalWalletApp]


# Checkout outcome, tagged by `kind`
class CheckoutSuccess(BaseModel):
    kind: Literal["success"] = "success"
    order: Order
    payment_result: PaymentResult


class PaymentFailed(BaseModel):
    kind: Literal["payment_failed"] = "payment_failed"
    order: Order
    error_message: str


class PaymentPending(BaseModel):
    kind: Literal["payment_pending"] = "payment_pending"
    order: Order
    payment_session: PaymentSession


CheckoutResult = Annotated[
    Union[CheckoutSuccess, PaymentFailed, PaymentPending],
    Field(discriminator="kind"),
]
