# inventario/utils/stock_status.py
"""Stock status thresholds.

Single place where CRÍTICO / BAJO / NORMAL are defined, both as a pure
function for loaded rows and as SQL predicates for filtering queries.
"""
CRITICAL = "CRÍTICO"
LOW = "BAJO"
NORMAL = "NORMAL"

DEFAULT_LOW_FACTOR = 1.5


def stock_status(stock_actual: int, stock_minimo: int, low_factor: float = DEFAULT_LOW_FACTOR) -> str:
    if stock_actual <= stock_minimo:
        return CRITICAL
    if stock_actual <= stock_minimo * low_factor:
        return LOW
    return NORMAL


def is_critical(stock_actual: int, stock_minimo: int) -> bool:
    return stock_actual <= stock_minimo


def critical_clause(product_model):
    return product_model.stock_actual <= product_model.stock_minimo


def low_clause(product_model, low_factor: float = DEFAULT_LOW_FACTOR):
    """Products needing reorder: critical ones included."""
    return product_model.stock_actual <= product_model.stock_minimo * low_factor
