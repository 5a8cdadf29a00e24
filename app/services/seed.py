from sqlmodel import Session, select
from app.core.logging import get_logger
from app.models.product import Product

logger = get_logger(__name__)

INITIAL_PRODUCTS = [
    {
        "name": "Pro Performance Jacket",
        "price": 129.99,
        "original_price": 179.99,
        "image_url": "/images/product-jacket.jpg",
        "category": "Apparel",
        "description": "Professional skating jacket with moisture-wicking fabric and thermal insulation. Perfect for training sessions and casual skating.",
        "stock_quantity": 50,
        "sku": "JACKET-001",
    },
    {
        "name": "Elite Figure Skates",
        "price": 349.99,
        "original_price": 449.99,
        "image_url": "/images/product-skates.jpg",
        "category": "Ice Skates",
        "description": "Professional-grade figure skates with premium leather boots and precision-ground blades. Designed for optimal performance and comfort.",
        "stock_quantity": 30,
        "sku": "SKATES-001",
    },
    {
        "name": "Training Blade Guards",
        "price": 49.99,
        "original_price": 69.99,
        "image_url": "/images/product-guards.jpg",
        "category": "Accessories",
        "description": "High-quality blade guards to protect your skate blades when walking off the ice. Essential for maintaining blade sharpness.",
        "stock_quantity": 100,
        "sku": "GUARDS-001",
    },
    {
        "name": "Pro Skating Gloves",
        "price": 39.99,
        "original_price": 59.99,
        "image_url": "/images/product-gloves.jpg",
        "category": "Protective Gear",
        "description": "Insulated skating gloves with grip enhancement. Keep your hands warm while maintaining dexterity for spins and jumps.",
        "stock_quantity": 75,
        "sku": "GLOVES-001",
    },
]

def seed_initial_products(session: Session) -> int:
    """Insert demo products into an empty catalogue. Never raises."""
    try:
        existing = session.exec(select(Product)).first()
        if existing:
            logger.info("Products already exist in database. Skipping seed.")
            return 0

        logger.info("Seeding initial products...")
        for data in INITIAL_PRODUCTS:
            session.add(Product(**data))
        session.commit()
        logger.info("Seeded %d products", len(INITIAL_PRODUCTS))
        return len(INITIAL_PRODUCTS)
    except Exception as e:
        session.rollback()
        logger.warning("Error seeding products (non-blocking): %s", e)
        return 0
