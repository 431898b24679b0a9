from wayfarer.models.user import User
from wayfarer.models.trip import Trip
from wayfarer.models.itinerary import Itinerary
from wayfarer.models.email_box import EmailBox

__all__ = [
    "EmailBox",
    "Itinerary",
    "Trip",
    "User",
]
