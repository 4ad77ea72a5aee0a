from app.models.user import User, UserRole
from app.models.brand import Brand
from app.models.category import Category
from app.models.product import Product
from app.models.cart import Cart, CartItem, CartItemStatus
from app.models.order import Order
from app.models.review import Review, ReviewStatus
from app.models.wishlist import Wishlist
