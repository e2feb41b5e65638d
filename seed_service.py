"""
Demo data for local development.

Creates five template sellers scattered around a centre point (default:
San Francisco) with three products each. Run directly to seed the database
configured by DATABASE_URL.
"""

import logging
import random
import time
from typing import List, Optional

from sqlalchemy.orm import Session

from geo import GeoLocation
from product_service import ProductService
from seller_service import SellerService

logger = logging.getLogger(__name__)

DEFAULT_CENTER = GeoLocation(
    latitude=37.7749,
    longitude=-122.4194,
    address="San Francisco, CA",
    city="San Francisco",
    state="CA",
    zip_code="94103",
)

JITTER_DEGREES = 0.05

SELLER_TEMPLATES = [
    {
        "business_name": "Cozy Knits",
        "description": "Handmade scarves, hats, and cozy winter wear.",
        "categories": ["Knitting", "Winter"],
        "products": [
            {"name": "Wool Scarf", "category": "Scarf", "price": 25, "emoji": "🧣"},
            {"name": "Beanie Hat", "category": "Hat", "price": 18, "emoji": "🧢"},
            {"name": "Mittens", "category": "Gloves", "price": 15, "emoji": "🧤"},
        ],
    },
    {
        "business_name": "Clay & Kiln",
        "description": "Small-batch pottery and ceramic mugs.",
        "categories": ["Pottery", "Home"],
        "products": [
            {"name": "Ceramic Mug", "category": "Mug", "price": 20, "emoji": "☕"},
            {"name": "Plant Pot", "category": "Planter", "price": 22, "emoji": "🪴"},
            {"name": "Serving Bowl", "category": "Bowl", "price": 28, "emoji": "🍲"},
        ],
    },
    {
        "business_name": "Woodland Works",
        "description": "Handcrafted wooden décor and boards.",
        "categories": ["Woodworking", "Home"],
        "products": [
            {"name": "Charcuterie Board", "category": "Kitchen", "price": 35, "emoji": "🧀"},
            {"name": "Candle Holder", "category": "Décor", "price": 16, "emoji": "🕯️"},
            {"name": "Coasters (Set of 4)", "category": "Kitchen", "price": 14, "emoji": "🧩"},
        ],
    },
    {
        "business_name": "Garden & Dye",
        "description": "Naturally dyed textiles and totes.",
        "categories": ["Textiles", "Eco"],
        "products": [
            {"name": "Dyed Tote Bag", "category": "Bag", "price": 24, "emoji": "👜"},
            {"name": "Tea Towel", "category": "Kitchen", "price": 12, "emoji": "🧻"},
            {"name": "Bandana", "category": "Accessory", "price": 10, "emoji": "🎗️"},
        ],
    },
    {
        "business_name": "Paper Petals",
        "description": "Paper flowers and handmade cards.",
        "categories": ["Paper", "Gifts"],
        "products": [
            {"name": "Rose Bouquet", "category": "Flowers", "price": 30, "emoji": "🌹"},
            {"name": "Greeting Card", "category": "Card", "price": 6, "emoji": "💌"},
            {"name": "Gift Tag Set", "category": "Stationery", "price": 8, "emoji": "🏷️"},
        ],
    },
]


def seed_demo_data(
    session: Session,
    center: Optional[GeoLocation] = None,
    rng: Optional[random.Random] = None,
) -> List[str]:
    """
    Seed template sellers and their products.

    Args:
        session: SQLAlchemy session
        center: Location to scatter sellers around (default San Francisco)
        rng: Random source, injectable for reproducible seeds

    Returns:
        Ids of the created sellers
    """
    base = center or DEFAULT_CENTER
    rng = rng or random.Random()
    stamp = int(time.time() * 1000)

    sellers = SellerService(session)
    products = ProductService(session)
    created_seller_ids = []

    for i, template in enumerate(SELLER_TEMPLATES):
        location = GeoLocation(
            latitude=base.latitude + (rng.random() - 0.5) * JITTER_DEGREES,
            longitude=base.longitude + (rng.random() - 0.5) * JITTER_DEGREES,
            address=base.address,
            city=base.city,
            state=base.state,
            zip_code=base.zip_code,
        )

        seller = sellers.create_seller(
            user_id=f"seed_user_{stamp}_{i + 1}",
            business_name=template["business_name"],
            description=template["description"],
            location=location,
            categories=template["categories"],
            seller_id=f"seed_seller_{stamp}_{i}",
        )
        created_seller_ids.append(seller.id)

        for item in template["products"]:
            products.create_product(
                seller_id=seller.id,
                name=item["name"],
                description=f"{template['business_name']} • {item['category']}",
                price=item["price"],
                category=item["category"],
                quantity=rng.randint(3, 20),
                emoji=item["emoji"],
                tags=template["categories"],
            )

    logger.info(f"✓ Seeded {len(created_seller_ids)} sellers around ({base.latitude}, {base.longitude})")
    return created_seller_ids


if __name__ == "__main__":
    from database import get_db_manager

    logging.basicConfig(level=logging.INFO)

    db = get_db_manager()
    db.init_db()
    with db.session_scope() as session:
        seller_ids = seed_demo_data(session)
    print(f"✓ Created sellers: {', '.join(seller_ids)}")
    db.close()
