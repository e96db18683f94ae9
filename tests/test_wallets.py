from decimal import Decimal

import pytest

from errors import GatewayError, NotFoundError, UnsupportedCurrencyError, ValidationError
from storage import InMemoryKeyValueStore
from wallets import (
    DEFAULT_WALLET_ADDRESSES,
    WalletAddressBook,
    WalletDirectory,
    installed_packages_query,
    payment_deep_link,
    quote_crypto_amount,
)


@pytest.fixture
def address_book():
    return WalletAddressBook(InMemoryKeyValueStore().namespace("wallet_config"), "test_shop")


def test_supported_currencies_come_from_wallet_apps():
    directory = WalletDirectory()
    assert directory.supported_currencies() == {
        "BTC", "ETH", "LTC", "BCH", "DOGE", "SOL", "MATIC", "BNB", "TRX", "USDT", "USDC",
    }
    assert directory.is_supported("btc")
    assert not directory.is_supported("XYZ")


def test_unsupported_currency_lists_supported_ones():
    apps = [{"name": "Tiny", "package_name": "tiny.wallet", "supported_coins": ("ETH", "BTC")}]
    directory = WalletDirectory(apps=apps)
    with pytest.raises(UnsupportedCurrencyError) as exc:
        directory.require_supported("XYZ")
    assert exc.value.message == "Unsupported cryptocurrency: XYZ. Supported: BTC, ETH"


def test_installed_flag_uses_package_query():
    directory = WalletDirectory(installed_packages_query(["io.metamask"]))
    installed = {w.package_name: w.is_installed for w in directory.all_wallet_apps()}
    assert installed["io.metamask"] is True
    assert installed["com.wallet.crypto.trustapp"] is False


def test_package_query_fault_is_gateway_error():
    def broken(package_name):
        raise OSError("package manager unavailable")

    directory = WalletDirectory(broken)
    with pytest.raises(GatewayError):
        directory.all_wallet_apps()


def test_wallets_for_currency():
    directory = WalletDirectory()
    names = {w.name for w in directory.wallets_for_currency("trx")}
    assert names == {"Trust Wallet", "Exodus", "TronLink"}
    with pytest.raises(UnsupportedCurrencyError):
        directory.wallets_for_currency("XYZ")


def test_wallet_by_package():
    directory = WalletDirectory()
    assert directory.wallet_by_package("app.phantom").name == "Phantom"
    with pytest.raises(NotFoundError) as exc:
        directory.wallet_by_package("com.unknown")
    assert exc.value.message == "Wallet app not found"


def test_address_resolution_order(address_book):
    # built-in default
    assert address_book.resolve("btc") == DEFAULT_WALLET_ADDRESSES["BTC"]
    # no default: deterministic fallback
    assert address_book.resolve("USDT") == "test_shop_usdt_wallet"

    address_book.set_address("btc", "bc1custom")
    assert address_book.get_address("BTC") == "bc1custom"
    assert address_book.resolve("BTC") == "bc1custom"
    assert address_book.get_address("ETH") is None


def test_custom_address_persists_across_instances():
    storage = InMemoryKeyValueStore()
    WalletAddressBook(storage.namespace("wallet_config"), "shop").set_address("sol", "SoLaddr")

    reloaded = WalletAddressBook(storage.namespace("wallet_config"), "shop")
    assert reloaded.resolve("SOL") == "SoLaddr"
    assert storage.get("wallet_config:wallet_SOL") == "SoLaddr"


def test_blank_address_rejected(address_book):
    with pytest.raises(ValidationError):
        address_book.set_address("BTC", "   ")


def test_configured_wallets(address_book):
    address_book.set_address("eth", "0xabc")
    wallets = address_book.configured_wallets(["USDC"])
    assert wallets["ETH"] == "0xabc"
    assert wallets["BTC"] == DEFAULT_WALLET_ADDRESSES["BTC"]
    assert wallets["USDC"] == "test_shop_usdc_wallet"


def test_quote_crypto_amount():
    assert quote_crypto_amount(Decimal("60"), "BTC") == Decimal("0.00100000")
    assert quote_crypto_amount(Decimal("40.00"), "usdt") == Decimal("40.00")
    assert quote_crypto_amount(Decimal("10"), "DOGE") == Decimal("66.66666667")


def test_payment_deep_link():
    directory = WalletDirectory()
    trust = directory.wallet_by_package("com.wallet.crypto.trustapp")
    link = payment_deep_link(trust, "1abc", Decimal("0.00100000"), "btc")
    assert link == "bitcoin:1abc?amount=0.001"

    metamask = directory.wallet_by_package("io.metamask")
    with pytest.raises(ValidationError):
        payment_deep_link(metamask, "1abc", Decimal("1"), "BTC")
