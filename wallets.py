"""Wallet side of the payment flow.

- ``WalletDirectory``: the external wallet apps customers can pay with and
  the coins they support. Supported currencies are derived from it.
- ``WalletAddressBook``: merchant receiving addresses per coin, custom ones
  persisted in key-value storage, falling back to built-in defaults.
- ``payment_deep_link``: URI handed to a wallet app to prefill a transfer.
- ``quote_crypto_amount``: mock spot-price conversion of a USD amount.
"""

from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Dict, Iterable, List, Optional, Set

from errors import GatewayError, NotFoundError, UnsupportedCurrencyError, ValidationError
from schemas import ExternalWalletApp
from storage import KeyValueStore

logger = logging.getLogger(__name__)

PackageQuery = Callable[[str], bool]


# Built-in merchant wallets
DEFAULT_WALLET_ADDRESSES: Dict[str, str] = {
    "BTC": "1DsCAVrzvGokrzXpe6YR33QuTo5EppiKRE",
    "ETH": "0x3d3eee5b542975839d2dccbf2f97139debc711bc",
    "LTC": "LU2ERRXKTeKnzpuieQcpsBteViEY7ff5Wg",
    "BCH": "qz5klapp9c4kq97psu5rg7sq9quu3vcv7qan8dn6ts",
    "DOGE": "DFZtQ1SedQFGijrR7LJ55RFBNFVQpbGULn",
    "SOL": "6K6gpBF9nyrSL2vzSaFDZgAJQurkoEzPGtK67WAg6FjX",
    "MATIC": "0x3d3eee5b542975839d2dccbf2f97139debc711bc",
    "BNB": "0x3d3eee5b542975839d2dccbf2f97139debc711bc",
    "TRX": "TKUNwoQMyLuJzUzWPKwA7yw4qujz2Pz6gS",
}

# Mock spot prices in USD
SPOT_PRICES_USD: Dict[str, Decimal] = {
    "BTC": Decimal("60000"),
    "ETH": Decimal("3000"),
    "LTC": Decimal("80"),
    "BCH": Decimal("400"),
    "DOGE": Decimal("0.15"),
    "SOL": Decimal("150"),
    "MATIC": Decimal("0.70"),
    "BNB": Decimal("550"),
    "TRX": Decimal("0.12"),
    "USDT": Decimal("1"),
    "USDC": Decimal("1"),
}

STABLECOINS = {"USDT", "USDC"}

COIN_URI_SCHEMES: Dict[str, str] = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "LTC": "litecoin",
    "BCH": "bitcoincash",
    "DOGE": "dogecoin",
    "SOL": "solana",
    "MATIC": "polygon",
    "BNB": "bnb",
    "TRX": "tron",
    "USDT": "tether",
    "USDC": "usdc",
}

KNOWN_WALLET_APPS: List[Dict[str, object]] = [
    {
        "name": "Trust Wallet",
        "package_name": "com.wallet.crypto.trustapp",
        "supported_coins": ("BTC", "ETH", "LTC", "BCH", "DOGE", "SOL", "MATIC", "BNB", "TRX", "USDT", "USDC"),
        "icon_url": "https://trustwallet.com/assets/images/favicon.png",
    },
    {
        "name": "MetaMask",
        "package_name": "io.metamask",
        "supported_coins": ("ETH", "MATIC", "BNB", "USDT", "USDC"),
        "icon_url": "https://metamask.io/images/metamask-logo.png",
    },
    {
        "name": "Exodus",
        "package_name": "exodusmovement.exodus",
        "supported_coins": ("BTC", "ETH", "LTC", "BCH", "DOGE", "SOL", "TRX", "USDT"),
        "icon_url": "https://www.exodus.com/favicon.ico",
    },
    {
        "name": "Coinbase Wallet",
        "package_name": "org.toshi",
        "supported_coins": ("BTC", "ETH", "LTC", "DOGE", "SOL", "MATIC", "USDC"),
        "icon_url": "https://www.coinbase.com/favicon.ico",
    },
    {
        "name": "Phantom",
        "package_name": "app.phantom",
        "supported_coins": ("SOL", "ETH", "MATIC", "USDC"),
        "icon_url": "https://phantom.app/favicon.ico",
    },
    {
        "name": "TronLink",
        "package_name": "com.tronlinkpro.wallet",
        "supported_coins": ("TRX", "USDT"),
        "icon_url": "https://www.tronlink.org/favicon.ico",
    },
]


def normalize_code(currency: str) -> str:
    return currency.strip().upper()


def quote_crypto_amount(amount_usd: Decimal, currency: str) -> Decimal:
    code = normalize_code(currency)
    price = SPOT_PRICES_USD.get(code)
    if price is None:
        return Decimal(amount_usd)
    places = Decimal("0.01") if code in STABLECOINS else Decimal("0.00000001")
    return (Decimal(amount_usd) / price).quantize(places, rounding=ROUND_HALF_UP)


def installed_packages_query(packages: Iterable[str]) -> PackageQuery:
    """Package query answering from a fixed set of installed package ids."""
    installed = frozenset(packages)
    return lambda package_name: package_name in installed


class WalletDirectory:
    """Registry of external wallet apps and the coins they can pay with."""

    def __init__(self, package_query: Optional[PackageQuery] = None,
                 apps: Optional[Iterable[Dict[str, object]]] = None) -> None:
        self.package_query = package_query or installed_packages_query(())
        self._apps = list(KNOWN_WALLET_APPS if apps is None else apps)

    def _is_installed(self, package_name: str) -> bool:
        try:
            return bool(self.package_query(package_name))
        except Exception as e:
            raise GatewayError(f"Package query failed for {package_name}: {e}") from e

    def _to_app(self, raw: Dict[str, object]) -> ExternalWalletApp:
        return ExternalWalletApp(
            name=raw["name"],
            package_name=raw["package_name"],
            supported_coins=tuple(raw["supported_coins"]),
            icon_url=raw.get("icon_url"),
            is_installed=self._is_installed(raw["package_name"]),
        )

    def all_wallet_apps(self) -> List[ExternalWalletApp]:
        return [self._to_app(raw) for raw in self._apps]

    def supported_currencies(self) -> Set[str]:
        coins: Set[str] = set()
        for raw in self._apps:
            coins.update(raw["supported_coins"])
        return coins

    def is_supported(self, currency: str) -> bool:
        return normalize_code(currency) in self.supported_currencies()

    def require_supported(self, currency: str) -> str:
        code = normalize_code(currency)
        if code not in self.supported_currencies():
            raise UnsupportedCurrencyError(currency, self.supported_currencies())
        return code

    def wallets_for_currency(self, currency: str) -> List[ExternalWalletApp]:
        code = self.require_supported(currency)
        return [self._to_app(raw) for raw in self._apps if code in raw["supported_coins"]]

    def wallet_by_package(self, package_name: str) -> ExternalWalletApp:
        for raw in self._apps:
            if raw["package_name"] == package_name:
                return self._to_app(raw)
        raise NotFoundError("Wallet app not found")


class WalletAddressBook:
    """Merchant receiving addresses, keyed by uppercase coin code.

    Custom addresses live in key-value storage under ``wallet_<CODE>``.
    """

    def __init__(self, storage: KeyValueStore, merchant_id: str) -> None:
        self.storage = storage
        self.merchant_id = merchant_id

    def set_address(self, currency: str, address: str) -> None:
        if not address or not address.strip():
            raise ValidationError("Wallet address must not be empty")
        code = normalize_code(currency)
        self.storage.set(f"wallet_{code}", address.strip())
        logger.info("wallet address for %s updated", code)

    def get_address(self, currency: str) -> Optional[str]:
        return self.storage.get(f"wallet_{normalize_code(currency)}")

    def fallback_address(self, currency: str) -> str:
        return f"{self.merchant_id}_{currency.strip().lower()}_wallet"

    def resolve(self, currency: str) -> str:
        code = normalize_code(currency)
        return (
            self.get_address(code)
            or DEFAULT_WALLET_ADDRESSES.get(code)
            or self.fallback_address(code)
        )

    def configured_wallets(self, currencies: Iterable[str] = ()) -> Dict[str, str]:
        wallets = dict(DEFAULT_WALLET_ADDRESSES)
        for key, value in self.storage.items():
            if key.startswith("wallet_") and value:
                wallets[key[len("wallet_"):]] = value
        for code in currencies:
            wallets.setdefault(normalize_code(code), self.resolve(code))
        return dict(sorted(wallets.items()))


def payment_deep_link(wallet: ExternalWalletApp, address: str, amount: Decimal, currency: str) -> str:
    """Build the payment URI for ``wallet``, e.g. ``bitcoin:<address>?amount=0.001``."""
    code = normalize_code(currency)
    if code not in wallet.supported_coins:
        raise ValidationError(f"{wallet.name} does not support {code}")
    scheme = COIN_URI_SCHEMES.get(code, code.lower())
    return f"{scheme}:{address}?amount={format(Decimal(amount).normalize(), 'f')}"
