from thriftshop.models.user import User
from thriftshop.models.profile import Profile
from thriftshop.models.listing import Listing
from thriftshop.models.order import Order
from thriftshop.models.favorite import Favorite
from thriftshop.models.webhook_event import WebhookEvent

__all__ = [
    "User",
    "Profile",
    "Listing",
    "Order",
    "Favorite",
    "WebhookEvent",
]
