"""Demo data for local development and previews."""

from datetime import timedelta
from decimal import Decimal

from sqlalchemy.orm import Session

from farmmarket.auth.security import get_password_hash
from farmmarket.core.logging_config import get_logger
from farmmarket.models.auth import PasswordResetToken
from farmmarket.models.base import utcnow
from farmmarket.models.farmer import Farmer
from farmmarket.models.like import Like
from farmmarket.models.notification import Notification
from farmmarket.models.order import Order, OrderItem
from farmmarket.models.product import Product
from farmmarket.models.user import User

logger = get_logger(__name__)

SEED_USERS = [
    {"key": "john", "name": "John Doe", "email": "john@example.com", "password": "password123", "role": "customer",
     "address": "123 Main St, Anytown, USA", "phone": "(555) 123-4567"},
    {"key": "jane", "name": "Jane Smith", "email": "jane@example.com", "password": "password123", "role": "customer",
     "address": "456 Oak Ave, Somewhere, USA", "phone": "(555) 987-6543"},
    {"key": "bob", "name": "Bob Johnson", "email": "bob@example.com", "password": "farmer123", "role": "farmer",
     "address": "789 Farm Rd, Countryside, USA", "phone": "(555) 456-7890"},
    {"key": "sarah", "name": "Sarah Williams", "email": "sarah@example.com", "password": "farmer123", "role": "farmer",
     "address": "321 Country Ln, Rural, USA", "phone": "(555) 234-5678"},
    {"key": "admin", "name": "Admin User", "email": "admin@example.com", "password": "admin123", "role": "admin",
     "address": "999 Admin St, Capital, USA", "phone": "(555) 111-2222"},
]

SEED_FARMS = [
    {"owner": "bob", "farm_name": "Green Acres Farm",
     "description": "A family-owned farm specializing in organic vegetables and free-range eggs.",
     "address": "789 Farm Rd", "city": "Countryside", "state": "USA", "zip_code": "12345"},
    {"owner": "sarah", "farm_name": "Sunshine Orchard",
     "description": "Specializing in fresh fruits, berries, and homemade jams.",
     "address": "321 Country Ln", "city": "Rural", "state": "USA", "zip_code": "67890"},
]

# (farm owner, name, description, price, quantity, unit, category, image, organic)
SEED_PRODUCTS = [
    ("bob", "Organic Tomatoes", "Fresh, juicy organic tomatoes grown without pesticides.",
     "3.99", 100, "lb", "vegetables", "/images/tomatoes.jpg", True),
    ("bob", "Free-Range Eggs", "Fresh eggs from free-range chickens fed organic feed.",
     "5.99", 50, "dozen", "dairy", "/images/eggs.jpg", True),
    ("sarah", "Fresh Strawberries", "Sweet, juicy strawberries picked at peak ripeness.",
     "4.49", 75, "lb", "fruits", "/images/strawberries.jpg", True),
    ("sarah", "Whole Wheat Bread", "Freshly baked whole wheat bread with no preservatives.",
     "3.49", 40, "piece", "bakery", "/images/bread.jpg", False),
    ("bob", "Organic Lettuce", "Crisp, fresh organic lettuce perfect for salads.",
     "2.99", 60, "piece", "vegetables", "/images/lettuce.jpg", True),
    ("bob", "Grass-Fed Beef", "High-quality grass-fed beef from humanely raised cattle.",
     "12.99", 30, "lb", "meat", "/images/beef.jpg", False),
    ("sarah", "Blueberries", "Plump, sweet blueberries packed with antioxidants.",
     "5.99", 45, "lb", "fruits", "/images/blueberries.jpg", True),
    ("sarah", "Raw Honey", "Pure, unfiltered raw honey from local bees.",
     "8.99", 25, "piece", "other", "/images/honey.jpg", True),
]

# (customer, farm owner, [(product name, quantity)], status, days until delivery, instructions, address)
SEED_ORDERS = [
    ("john", "bob", [("Organic Tomatoes", 5), ("Free-Range Eggs", 2)], "pending", 3, "Leave at front door",
     {"address": "123 Main St", "city": "Anytown", "state": "USA", "zip_code": "12345"}),
    ("jane", "sarah", [("Fresh Strawberries", 3), ("Blueberries", 2)], "pending", 5, "Ring doorbell twice",
     {"address": "456 Oak Ave", "city": "Somewhere", "state": "USA", "zip_code": "67890"}),
    ("john", "bob", [("Organic Lettuce", 4), ("Grass-Fed Beef", 1)], "preparing", 2, "Call upon arrival",
     {"address": "123 Main St", "city": "Anytown", "state": "USA", "zip_code": "12345"}),
]


def clear_database(db: Session) -> None:
    for model in (Notification, Like, OrderItem, Order, PasswordResetToken, Product, Farmer, User):
        db.query(model).delete(synchronize_session=False)
    db.flush()


def seed_database(db: Session) -> dict:
    """Replace marketplace data with the demo dataset and return a summary. Commits."""
    logger.info("Seed operation started")
    clear_database(db)

    users = {}
    for entry in SEED_USERS:
        user = User(
            name=entry["name"],
            email=entry["email"],
            hashed_password=get_password_hash(entry["password"]),
            role=entry["role"],
            address=entry["address"],
            phone=entry["phone"],
        )
        db.add(user)
        users[entry["key"]] = user
    db.flush()

    farms = {}
    for entry in SEED_FARMS:
        owner = users[entry["owner"]]
        farm = Farmer(
            user_id=owner.id,
            farm_name=entry["farm_name"],
            description=entry["description"],
            address=entry["address"],
            city=entry["city"],
            state=entry["state"],
            zip_code=entry["zip_code"],
            phone=owner.phone,
            verified=False,
        )
        db.add(farm)
        farms[entry["owner"]] = farm
    db.flush()

    products = {}
    for owner, name, description, price, quantity, unit, category, image, organic in SEED_PRODUCTS:
        product = Product(
            farmer_id=farms[owner].id,
            name=name,
            description=description,
            price=Decimal(price),
            quantity=quantity,
            unit=unit,
            category=category,
            images=[image],
            organic=organic,
            available=True,
        )
        db.add(product)
        products[name] = product
    db.flush()

    for customer, owner, lines, status, days, instructions, address in SEED_ORDERS:
        items = [
            OrderItem(product_id=products[name].id, quantity=quantity, price=products[name].price)
            for name, quantity in lines
        ]
        db.add(
            Order(
                customer_id=users[customer].id,
                farmer_id=farms[owner].id,
                status=status,
                payment_status="paid",
                total_amount=sum((item.price * item.quantity for item in items), Decimal("0")),
                delivery_address=address,
                delivery_date=utcnow() + timedelta(days=days),
                notes=instructions,
                items=items,
            )
        )
    db.commit()

    summary = {
        "message": "Database seeded successfully!",
        "users": {"customers": 2, "farmers": 2, "admin": 1},
        "products": len(SEED_PRODUCTS),
        "orders": len(SEED_ORDERS),
    }
    logger.info("Seed operation completed", extra={"products": summary["products"], "orders": summary["orders"]})
    return summary
