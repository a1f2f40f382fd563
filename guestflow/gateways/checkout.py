"""Role-based check-out routing.

Hosts and tour guides confirm departures against different endpoints;
the controller asks the router and never branches on role itself.
"""

from abc import ABC, abstractmethod

from guestflow.api import endpoints
from guestflow.core.exceptions import ValidationError
from guestflow.domain.checkin_state import UserRole


class CheckoutRoute(ABC):
    """Endpoint strategy for one role."""

    @property
    @abstractmethod
    def role(self) -> UserRole:
        pass

    @abstractmethod
    def checkout_path(self, booking_id: str) -> str:
        pass


class HostCheckoutRoute(CheckoutRoute):
    @property
    def role(self) -> UserRole:
        return UserRole.HOST

    def checkout_path(self, booking_id: str) -> str:
        return endpoints.host_checkout(booking_id)


class TourGuideCheckoutRoute(CheckoutRoute):
    @property
    def role(self) -> UserRole:
        return UserRole.TOUR_GUIDE

    def checkout_path(self, booking_id: str) -> str:
        return endpoints.tour_guide_checkout(booking_id)


class CheckoutRouter:
    """Resolve the check-out route for a role."""

    def __init__(self) -> None:
        self._routes: dict[UserRole, CheckoutRoute] = {}

    def resolve(self, role: str | UserRole) -> CheckoutRoute:
        """Get or create the route for ``role``.

        Raises:
            ValidationError: If the role is not host or tour guide
        """
        try:
            role = UserRole(role)
        except ValueError:
            raise ValidationError(f"Unknown role: {role}")
        if role not in self._routes:
            if role == UserRole.HOST:
                self._routes[role] = HostCheckoutRoute()
            else:
                self._routes[role] = TourGuideCheckoutRoute()
        return self._routes[role]


# Singleton instance
checkout_router = CheckoutRouter()
