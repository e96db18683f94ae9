import logging
import random
from dataclasses import dataclass
from typing import Optional

from pymongo.database import Database

from cart import CartStore
from catalog import CatalogStore
from checkout import Checkout
from config import Settings
from database import connect
from orders import OrderStore
from payments import PaymentManager
from storage import InMemoryKeyValueStore, KeyValueStore, MongoKeyValueStore
from wallets import WalletAddressBook, WalletDirectory, installed_packages_query

logger = logging.getLogger(__name__)

KV_COLLECTION = "kv_store"


@dataclass
class Shop:
    """Every store of one running storefront, created once at startup."""

    settings: Settings
    storage: KeyValueStore
    catalog: CatalogStore
    cart: CartStore
    orders: OrderStore
    wallets: WalletDirectory
    address_book: WalletAddressBook
    payments: PaymentManager
    checkout: Checkout
    db: Optional[Database] = None

    def close(self) -> None:
        if self.db is not None:
            self.db.client.close()
            logger.info("database connection closed")


def build_shop(settings: Settings, storage: Optional[KeyValueStore] = None,
               db: Optional[Database] = None, rng: Optional[random.Random] = None,
               wallets: Optional[WalletDirectory] = None) -> Shop:
    if storage is None:
        if db is not None:
            storage = MongoKeyValueStore(db[KV_COLLECTION])
        else:
            logger.warning("no database configured, wallet config and payment records kept in memory")
            storage = InMemoryKeyValueStore()

    wallets = wallets or WalletDirectory(installed_packages_query(settings.installed_wallet_packages))
    address_book = WalletAddressBook(storage.namespace("wallet_config"), settings.merchant_id)
    cart = CartStore()
    orders = OrderStore(cart, db=db)
    orders.restore()
    payments = PaymentManager(
        directory=wallets,
        address_book=address_book,
        storage=storage.namespace("payments"),
        settings=settings,
        rng=rng,
    )
    return Shop(
        settings=settings,
        storage=storage,
        catalog=CatalogStore(),
        cart=cart,
        orders=orders,
        wallets=wallets,
        address_book=address_book,
        payments=payments,
        checkout=Checkout(cart, orders, payments, default_currency=settings.default_payment_currency),
        db=db,
    )


def shop_from_settings(settings: Settings) -> Shop:
    return build_shop(settings, db=connect(settings))
