from importlib import import_module

__all__ = [
    "polymarket_client",
    "PolymarketClient",
    "MarketCache",
    "MarketCacheEmptyError",
    "reconcile",
    "summarize",
    "classify",
    "analyze_wallet",
    "InsufficientDataError",
    "WalletDiscoveryEngine",
    "ScanState",
    "ArbitrageScanner",
    "scan_arbitrage",
]

_LAZY_EXPORTS = {
    "polymarket_client": ("services.polymarket", "polymarket_client"),
    "PolymarketClient": ("services.polymarket", "PolymarketClient"),
    "MarketCache": ("services.market_cache", "MarketCache"),
    "MarketCacheEmptyError": ("services.market_cache", "MarketCacheEmptyError"),
    "reconcile": ("services.position_reconciler", "reconcile"),
    "summarize": ("services.performance", "summarize"),
    "classify": ("services.anomaly_classifier", "classify"),
    "analyze_wallet": ("services.wallet_analyzer", "analyze_wallet"),
    "InsufficientDataError": ("services.wallet_analyzer", "InsufficientDataError"),
    "WalletDiscoveryEngine": ("services.wallet_discovery", "WalletDiscoveryEngine"),
    "ScanState": ("services.wallet_discovery", "ScanState"),
    "ArbitrageScanner": ("services.arbitrage_scanner", "ArbitrageScanner"),
    "scan_arbitrage": ("services.arbitrage_scanner", "scan_arbitrage"),
}


def __getattr__(name):
    if name not in _LAZY_EXPORTS:
        raise AttributeError(f"module 'services' has no attribute {name!r}")

    module_name, attr_name = _LAZY_EXPORTS[name]
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value
