from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from errors import NotFoundError
from schemas import CatalogItem, Platform, ProductCategory

SHOP_URL = "https://shop.example.com"


def _item(id: str, title: str, description: str, price: str, category: ProductCategory,
          platform: Platform, page: str, features: Iterable[str]) -> CatalogItem:
    return CatalogItem(
        id=id,
        title=title,
        description=description,
        price=Decimal(price),
        category=category,
        platform=platform,
        purchase_url=f"{SHOP_URL}/buy.{page}.html",
        features=tuple(features),
    )


SEED_PRODUCTS: List[CatalogItem] = [
    _item("platformer_android", "2D Platformer", "Classic 2D platformer game for Android", "20.00",
          ProductCategory.GAMES, Platform.ANDROID, "platformer.android",
          ["Classic gameplay", "Multiple levels", "Android optimized"]),
    _item("plc_android", "Programming Language Clicker", "Learn programming languages while clicking", "22.00",
          ProductCategory.CLICKER_GAMES, Platform.ANDROID, "plc.android",
          ["Educational", "Addictive gameplay", "Learn programming"]),
    _item("plc_windows", "Programming Language Clicker", "Learn programming languages while clicking", "22.00",
          ProductCategory.CLICKER_GAMES, Platform.WINDOWS, "plc.windows",
          ["Educational", "Addictive gameplay", "Learn programming"]),
    _item("plc2_android", "Programming Language Clicker 2.0", "Enhanced version with more features", "25.00",
          ProductCategory.CLICKER_GAMES, Platform.ANDROID, "plc2.android",
          ["Enhanced graphics", "More languages", "Improved gameplay"]),
    _item("plcb_android", "PLC Bundle", "Complete Programming Language Clicker Bundle", "30.00",
          ProductCategory.BUNDLES, Platform.ANDROID, "plcb.android",
          ["All PLC versions", "Best value", "Complete collection"]),
    _item("cat_clicker_android", "Cat Clicker", "Adorable cat clicking game", "25.00",
          ProductCategory.CLICKER_GAMES, Platform.ANDROID, "cat.android",
          ["Cute cats", "Relaxing gameplay", "Collect different cats"]),
    _item("os_clicker_android", "OS Clicker", "Operating System themed clicker", "25.00",
          ProductCategory.CLICKER_GAMES, Platform.ANDROID, "os.android",
          ["OS themes", "Educational", "Tech focused"]),
    _item("crypto_clicker_android", "Crypto Clicker", "Cryptocurrency themed clicking game", "25.00",
          ProductCategory.CLICKER_GAMES, Platform.ANDROID, "cc.android",
          ["Crypto themes", "Learn about crypto", "Trading simulation"]),
    _item("clicker_bundle_android", "Clicker Bundle", "All clicker games in one bundle", "55.00",
          ProductCategory.BUNDLES, Platform.ANDROID, "clicker.bundle.android",
          ["All clicker games", "Huge savings", "Complete collection"]),
    _item("geoweather_android", "GeoWeather", "Weather and geography app", "15.00",
          ProductCategory.UTILITIES, Platform.ANDROID, "gw.android",
          ["Weather data", "Geographic info", "Location based"]),
]


class CatalogStore:
    """Read-only product catalog built once from a seed list."""

    def __init__(self, items: Optional[Iterable[CatalogItem]] = None) -> None:
        self._items: Dict[str, CatalogItem] = {}
        for item in SEED_PRODUCTS if items is None else items:
            if item.id in self._items:
                raise ValueError(f"duplicate catalog id: {item.id}")
            self._items[item.id] = item

    def list_items(self) -> List[CatalogItem]:
        return list(self._items.values())

    def get_item(self, item_id: str) -> CatalogItem:
        item = self._items.get(item_id)
        if item is None:
            raise NotFoundError(f"Product not found: {item_id}")
        return item

    def by_category(self, category: ProductCategory) -> List[CatalogItem]:
        return [i for i in self._items.values() if i.category == category]

    def by_platform(self, platform: Platform) -> List[CatalogItem]:
        # ALL-platform items run everywhere
        return [
            i for i in self._items.values()
            if i.platform == platform or i.platform == Platform.ALL
        ]

    def search(self, category: Optional[ProductCategory] = None,
               platform: Optional[Platform] = None) -> List[CatalogItem]:
        items = self.list_items()
        if category is not None:
            items = [i for i in items if i.category == category]
        if platform is not None:
            items = [i for i in items if i.platform in (platform, Platform.ALL)]
        return items
