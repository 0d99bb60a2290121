"""
Domain constants used across services/routers.
"""

# Gateway order id prefixes
SINGLE_ORDER_PREFIX = "ORDER"
BATCH_ORDER_PREFIX = "BATCH"

# Midtrans create-transaction error text for a reused order id
ORDER_ID_UTILIZED_MARKER = "Order ID has been utilized previously"

# Fallbacks used when the caller has no profile data
DEFAULT_CUSTOMER_NAME = "Customer"
DEFAULT_CUSTOMER_EMAIL = "customer@example.com"
DEFAULT_CUSTOMER_PHONE = "08123456789"
UNKNOWN_ITEM_NAME = "Unknown Item"

RECOVERED_SESSION_MESSAGE = "Using existing payment session"

# Daily menu population
DAILY_MENU_DAYS = 7
DAILY_MENU_MAX_QUANTITY = 100
