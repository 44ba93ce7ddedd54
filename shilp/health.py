"""Health check endpoint."""

from .models import HealthResponse
from .transport import ResourceGroup, ShilpError


class HealthAPI(ResourceGroup):

    def health_check(self) -> HealthResponse:
        """Check liveness and report the server version."""
        return HealthResponse.from_dict(self._transport.request("GET", "/health"))

    def ping(self) -> bool:
        """True if the server answers the health check successfully."""
        try:
            return self.health_check().success
        except ShilpError:
            return False
