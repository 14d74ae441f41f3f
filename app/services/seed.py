"""
Built-in menu used when neither the remote service nor the local mirror
has anything to show (first run, offline).
"""

from datetime import datetime, timezone
from typing import Any

PLACEHOLDER_IMAGE = "/placeholder.svg?height=200&width=200"

DEFAULT_MENU = [
    (1, "Nasi Goreng Spesial", 25000, "Makanan Utama"),
    (2, "Ayam Bakar", 30000, "Makanan Utama"),
    (3, "Gado-Gado", 20000, "Makanan Utama"),
    (4, "Es Teh Manis", 5000, "Minuman"),
    (5, "Jus Jeruk", 8000, "Minuman"),
    (6, "Es Campur", 12000, "Dessert"),
]


def default_menu_items() -> list[dict[str, Any]]:
    """Fresh copy of the seed rows, stamped with the current time."""
    created_at = datetime.now(timezone.utc).isoformat()
    return [
        {
            "id": item_id,
            "name": name,
            "price": price,
            "category": category,
            "image_url": PLACEHOLDER_IMAGE,
            "created_at": created_at,
        }
        for item_id, name, price, category in DEFAULT_MENU
    ]
