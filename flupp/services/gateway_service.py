"""Payment gateway selection.

Picks the adapter for the current environment.
No business logic here - only gateway coordination.
"""

import logging

from flupp.config import Settings, settings as default_settings
from flupp.core.exceptions import PaymentsNotConfigured
from flupp.gateways.base import GatewayType, PaymentGateway
from flupp.gateways.simulated import SimulatedGateway
from flupp.gateways.stripe_gateway import StripeGateway

logger = logging.getLogger(__name__)


class GatewayService:
    """Service for managing the active payment gateway."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or default_settings
        self._gateways: dict[GatewayType, PaymentGateway] = {}

    def _resolve_type(self) -> GatewayType:
        if self.settings.stripe_secret_key:
            return GatewayType.STRIPE
        # Never simulate card payments in production
        if self.settings.environment == "production":
            raise PaymentsNotConfigured()
        return GatewayType.SIMULATED

    def get_gateway(self) -> PaymentGateway:
        """Get or create gateway instance."""
        gateway_type = self._resolve_type()
        if gateway_type not in self._gateways:
            if gateway_type == GatewayType.STRIPE:
                self._gateways[gateway_type] = StripeGateway(
                    secret_key=self.settings.stripe_secret_key,
                    webhook_secret=self.settings.stripe_webhook_secret,
                    timeout=self.settings.stripe_timeout_seconds,
                )
            else:
                logger.warning(
                    "Stripe is not configured; using the simulated gateway (%s)",
                    self.settings.environment,
                )
                self._gateways[gateway_type] = SimulatedGateway(
                    webhook_secret=self.settings.simulated_webhook_secret,
                )
        return self._gateways[gateway_type]


# Singleton instance
gateway_service = GatewayService()
