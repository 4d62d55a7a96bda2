"""
Module tree and role catalogue.

Every permission check is keyed by a module key from `PERMISSION_MODULES`
(group keys included). Adding a module here is enough for every role to
receive a default grant for it on the next config load.
"""

USER_ROLES: list[str] = ["ADMIN", "MANAGER", "INSPECTOR", "USER", "TRADER", "DRIVER", "BRANCH"]

ADMIN_ROLE = "ADMIN"

APP_MODULES: list[dict] = [
    {"key": "DASHBOARD", "label": "Dashboard"},
    {"key": "AI_ASSISTANT", "label": "AI Assistant"},
    {"key": "TASK_MANAGER", "label": "My Tasks"},
    {
        "key": "ORDER_MGMT_GROUP",
        "label": "Order Management",
        "children": [
            {"key": "OM_TASK_MANAGEMENT", "label": "Task Management"},
            {"key": "OM_DISTRIBUTION_ORDER", "label": "Distribution Order"},
            {"key": "INVENTORY_DISCREPANCY", "label": "Discrepancy Check"},
            {"key": "DISTRIBUTION_METHOD", "label": "Distribution Method"},
        ],
    },
    {
        "key": "WAREHOUSE_MGMT_GROUP",
        "label": "Warehouse Management",
        "children": [
            {"key": "WAREHOUSE_CONFIG", "label": "Warehouse Configuration"},
            {"key": "SHELF_ARRANGEMENT", "label": "Shelf Arrangement"},
        ],
    },
    {
        "key": "DELIVERY_MGMT_GROUP",
        "label": "Delivery Management",
        "children": [
            {"key": "DM_DISTRIBUTION_CENTER", "label": "Distribution Center"},
            {"key": "DM_TRANSFER_OUT_ORDER", "label": "Transfer Out Order"},
            {"key": "DM_DELIVERY_TRACKING", "label": "Delivery Tracking"},
            {"key": "MOBILE_DRIVER", "label": "Driver Mobile App"},
        ],
    },
    {
        "key": "PURCHASING_GROUP",
        "label": "Purchasing",
        "children": [
            {"key": "PURCHASING", "label": "Purchase Orders"},
            {"key": "RECEIVING_ORDERS", "label": "Receiving Orders"},
            {"key": "INBOUND", "label": "Inbound Operations"},
        ],
    },
    {
        "key": "PRODUCT_MGMT_GROUP",
        "label": "Product Management",
        "children": [
            {"key": "INVENTORY_PRODUCT", "label": "Product File"},
            {"key": "INVENTORY_EXPIRE", "label": "Product Expire Logs"},
        ],
    },
    {
        "key": "INVENTORY_GROUP",
        "label": "Inventory Operations",
        "children": [
            {"key": "INVENTORY_QUERY", "label": "Inventory Query"},
            {"key": "INVENTORY_ADJUSTMENT", "label": "Inventory Adjustment"},
            {"key": "INVENTORY_TRANSFER", "label": "Stock Transfer"},
        ],
    },
    {
        "key": "SCAN_OPS_GROUP",
        "label": "Scan Operations",
        "children": [
            {"key": "SCAN_TO_SHELF", "label": "Scan to Shelf"},
            {"key": "SKU_LOOKUP", "label": "SKU Lookup"},
            {"key": "SHELF_LOGS", "label": "Shelf Logs"},
        ],
    },
    {"key": "ACCOUNT_MANAGEMENT", "label": "Account Management"},
    {"key": "SETTINGS", "label": "Settings"},
    {"key": "MOBILE_BRANCH", "label": "Branch Mobile App"},
    {"key": "MOBILE_USER", "label": "General User Mobile App"},
]


def _flatten(modules: list[dict]) -> list[dict]:
    flat: list[dict] = []
    for mod in modules:
        flat.append({"key": mod["key"], "label": mod["label"]})
        for child in mod.get("children", []):
            flat.append({"key": child["key"], "label": child["label"]})
    return flat


PERMISSION_MODULES: list[dict] = _flatten(APP_MODULES)

MODULE_KEYS: list[str] = [m["key"] for m in PERMISSION_MODULES]

# Every routable view, including views that reuse another module's grant.
VIEWS: set[str] = set(MODULE_KEYS) - {
    "ORDER_MGMT_GROUP",
    "WAREHOUSE_MGMT_GROUP",
    "DELIVERY_MGMT_GROUP",
    "PURCHASING_GROUP",
    "PRODUCT_MGMT_GROUP",
    "INVENTORY_GROUP",
    "SCAN_OPS_GROUP",
} | {
    "OM_ARRIVAL_MANAGEMENT",
    "PARCEL_MANAGEMENT",
    "PARCEL_HISTORY",
    "PICKING_PLAN",
    "PTL_USE",
    "DM_BRANCH_REPLENISHMENT",
    "DM_PRODUCTS_IN_TRANSIT",
    "STOCK_ADJUSTMENT",
    "DELIVERY",
}
