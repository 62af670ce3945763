from marketplace.models.base import Base  # noqa: F401

from marketplace.models.user import User, UserRole  # noqa: F401
from marketplace.models.shop import Shop  # noqa: F401
from marketplace.models.category import Category  # noqa: F401
from marketplace.models.listing import Listing, ListingImage  # noqa: F401
from marketplace.models.moderation import ModerationSnapshot  # noqa: F401
from marketplace.models.review import ReviewRecord  # noqa: F401
