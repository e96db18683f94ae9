import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from cart import money
from checkout import describe
from config import Settings
from errors import ShopError
from schemas import CatalogItem, ExternalWalletApp, Order, OrderStatus, Platform, ProductCategory
from shop import Shop, shop_from_settings

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


# ---------- Schemas for requests ----------

class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = Field(1, ge=1)


class UpdateQuantityRequest(BaseModel):
    quantity: int  # <= 0 removes the line


class CheckoutRequest(BaseModel):
    customer_email: str = ""
    currency: Optional[str] = None  # defaults to DEFAULT_PAYMENT_CURRENCY


class RefundRequest(BaseModel):
    amount: Optional[Decimal] = None


class WalletAddressRequest(BaseModel):
    address: str


# ---------- Utility helpers ----------

def get_shop(request: Request) -> Shop:
    return request.app.state.shop


def cart_view(shop: Shop) -> dict:
    return {
        "items": [e.model_dump(mode="json") for e in shop.cart.entries()],
        "count": shop.cart.item_count(),
        "total": str(shop.cart.get_cart_total()),
    }


def create_app(shop: Optional[Shop] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = getattr(app.state, "shop", None) is None
        if owned:
            settings = Settings.from_env()
            configure_logging(settings.log_level)
            app.state.shop = shop_from_settings(settings)
        yield
        if owned:
            app.state.shop.close()

    app = FastAPI(title="Crypto Storefront API", lifespan=lifespan)
    app.state.shop = shop

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ShopError)
    async def shop_error_handler(request: Request, exc: ShopError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    # ---------- Health ----------

    @app.get("/")
    def root():
        return {"status": "ok", "service": "crypto-storefront"}

    # ---------- Products ----------

    @app.get("/products", response_model=List[CatalogItem])
    def list_products(category: Optional[ProductCategory] = None,
                      platform: Optional[Platform] = None,
                      shop: Shop = Depends(get_shop)):
        return shop.catalog.search(category=category, platform=platform)

    @app.get("/products/{product_id}", response_model=CatalogItem)
    def get_product(product_id: str, shop: Shop = Depends(get_shop)):
        return shop.catalog.get_item(product_id)

    # ---------- Cart ----------

    @app.get("/cart")
    def get_cart(shop: Shop = Depends(get_shop)):
        return cart_view(shop)

    @app.post("/cart/items")
    def add_to_cart(req: AddToCartRequest, shop: Shop = Depends(get_shop)):
        shop.cart.add_to_cart(shop.catalog.get_item(req.product_id), req.quantity)
        return cart_view(shop)

    @app.patch("/cart/items/{product_id}")
    def update_quantity(product_id: str, req: UpdateQuantityRequest, shop: Shop = Depends(get_shop)):
        shop.cart.update_quantity(product_id, req.quantity)
        return cart_view(shop)

    @app.delete("/cart/items/{product_id}")
    def remove_from_cart(product_id: str, shop: Shop = Depends(get_shop)):
        shop.cart.remove_from_cart(product_id)
        return cart_view(shop)

    @app.delete("/cart")
    def clear_cart(shop: Shop = Depends(get_shop)):
        shop.cart.clear_cart()
        return cart_view(shop)

    # ---------- Checkout & Payments ----------

    @app.post("/checkout")
    async def create_checkout(req: CheckoutRequest, shop: Shop = Depends(get_shop)):
        result = await shop.checkout.checkout(req.customer_email, req.currency)
        return {"message": describe(result), **result.model_dump(mode="json")}

    @app.get("/orders", response_model=List[Order])
    def order_history(shop: Shop = Depends(get_shop)):
        return shop.orders.get_order_history()

    @app.get("/orders/summary")
    def orders_summary(shop: Shop = Depends(get_shop)):
        history = shop.orders.get_order_history()
        paid = [o for o in history if o.status == OrderStatus.PAID]
        revenue = money(sum((o.total_amount for o in paid), Decimal("0")))
        return {
            "total_orders": len(history),
            "paid_orders": len(paid),
            "total_revenue": str(revenue),
            "recent_orders": [o.model_dump(mode="json") for o in history[:5]],
        }

    @app.get("/payments/{payment_id}")
    def get_payment_status(payment_id: str, shop: Shop = Depends(get_shop)):
        status = shop.payments.current_status(payment_id)
        session = shop.payments.get_session(payment_id)
        return {
            "payment_id": payment_id,
            "status": status.value,
            "session": session.model_dump(mode="json"),
        }

    @app.post("/payments/{payment_id}/cancel")
    async def cancel_payment(payment_id: str, shop: Shop = Depends(get_shop)):
        await shop.payments.cancel_payment(payment_id)
        return {"payment_id": payment_id, "status": shop.payments.current_status(payment_id).value}

    @app.post("/payments/{payment_id}/refund")
    async def refund_payment(payment_id: str, req: RefundRequest, shop: Shop = Depends(get_shop)):
        refunded = await shop.payments.refund_payment(payment_id, req.amount)
        return {
            "payment_id": payment_id,
            "status": shop.payments.current_status(payment_id).value,
            "refunded": str(refunded),
        }

    @app.get("/payments/{payment_id}/deeplink")
    async def payment_deep_link(payment_id: str, package: str, shop: Shop = Depends(get_shop)):
        session = shop.payments.get_session(payment_id)
        wallet = shop.wallets.wallet_by_package(package)
        link = await shop.payments.generate_payment_deep_link(wallet, session)
        return {"payment_id": payment_id, "wallet": wallet.name, "deep_link": link}

    # ---------- Wallets ----------

    @app.get("/currencies")
    def supported_currencies(shop: Shop = Depends(get_shop)):
        return {"currencies": shop.payments.supported_currencies()}

    @app.get("/wallets/apps", response_model=List[ExternalWalletApp])
    def wallet_apps(currency: Optional[str] = None, shop: Shop = Depends(get_shop)):
        if currency:
            return shop.payments.wallets_for_currency(currency)
        return shop.payments.available_wallet_apps()

    @app.get("/wallets")
    def configured_wallets(shop: Shop = Depends(get_shop)):
        return shop.payments.configured_wallets()

    @app.put("/wallets/{currency}")
    def set_wallet_address(currency: str, req: WalletAddressRequest, shop: Shop = Depends(get_shop)):
        shop.address_book.set_address(currency, req.address)
        return {"currency": currency.upper(), "address": shop.address_book.resolve(currency)}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
