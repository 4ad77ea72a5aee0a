from app.db.base_class import Base


# IMPORT ALL MODELS HERE (THIS REGISTERS THEM WITH Base.metadata)
from app.models.user import User
from app.models.brand import Brand
from app.models.category import Category
from app.models.product import Product
from app.models.cart import Cart, CartItem
from app.models.order import Order
from app.models.review import Review
from app.models.wishlist import Wishlist
