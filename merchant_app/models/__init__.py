from .session import ShopSession
from .product import Product, ProductVariant
from .wishlist import Wishlist, Keyword, SuggestedKeyword, wishlist_keywords
from .notification import NotificationResult
from .email_sent import EmailSent
from .job import Job
from .store_value import StoreValueSnapshot
from .lot import Lot, LotProduct, LotProductVariant, DebtPayment

# This ensures all models are registered with SQLAlchemy
__all__ = [
    'ShopSession',
    'Product',
    'ProductVariant',
    'Wishlist',
    'Keyword',
    'SuggestedKeyword',
    'wishlist_keywords',
    'NotificationResult',
    'EmailSent',
    'Job',
    'StoreValueSnapshot',
    'Lot',
    'LotProduct',
    'LotProductVariant',
    'DebtPayment',
]
