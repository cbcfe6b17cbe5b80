from farmmarket.models.user import User
from farmmarket.models.farmer import Farmer
from farmmarket.models.product import Product
from farmmarket.models.like import Like
from farmmarket.models.order import Order, OrderItem
from farmmarket.models.notification import Notification
from farmmarket.models.auth import PasswordResetToken
from farmmarket.models.outreach import ContactMessage, NewsletterSubscriber
from farmmarket.db.session import engine, Base


def init_db(bind=None):
    # Create all tables
    Base.metadata.create_all(bind=bind or engine)
