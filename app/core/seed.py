import logging
from typing import TYPE_CHECKING

from app.config import settings

if TYPE_CHECKING:
    from app.services.auth import AuthService

logger = logging.getLogger(__name__)

# Seeded for every new user. "Other" doubles as the fallback and reassignment target.
DEFAULT_CATEGORIES = [
    {
        "name": "Food & Beverage",
        "description": "Restaurants, cafes, coffee shops, bubble tea, hawker centres, "
                       "food delivery (GrabFood, Foodpanda, Deliveroo)",
        "icon": "🍔",
        "color": "#ef4444",
    },
    {
        "name": "Transportation",
        "description": "Public transit (MRT, bus), ride-hailing (Grab, Gojek), fuel, parking, ERP charges",
        "icon": "🚗",
        "color": "#f97316",
    },
    {
        "name": "Shopping",
        "description": "Retail purchases, clothing, electronics, online shopping (Shopee, Lazada, Amazon)",
        "icon": "🛍️",
        "color": "#eab308",
    },
    {
        "name": "Entertainment",
        "description": "Movies, concerts, streaming subscriptions (Netflix, Spotify), games, nightlife",
        "icon": "🎬",
        "color": "#22c55e",
    },
    {
        "name": "Bills & Utilities",
        "description": "Electricity, water, gas, internet, phone bill, insurance premiums, loan repayments",
        "icon": "💡",
        "color": "#3b82f6",
    },
    {
        "name": "Travel",
        "description": "Flights, hotels, travel insurance, overseas purchases, airport transfers",
        "icon": "✈️",
        "color": "#8b5cf6",
    },
    {
        "name": "Investment",
        "description": "Stocks, crypto, ETFs, robo-advisors (StashAway, Syfe, Endowus), fixed deposits, bonds",
        "icon": "📈",
        "color": "#a78bfa",
    },
    {
        "name": "Other",
        "description": "Anything that doesn't fit, miscellaneous or one-off expenses",
        "icon": "📦",
        "color": "#6b7280",
    },
]

DEV_USER = {
    "id": "dev-user-001",
    "email": "dev@aura.local",
    "name": "Dev User",
}


async def seed_data(auth: "AuthService"):
    """Provision the dev user and its default categories outside production."""
    if not settings.is_dev:
        return

    user = await auth.get_or_create_dev_user()
    logger.info("Dev user %s ready (inbound address %s)", user.id, user.inbound_email)
