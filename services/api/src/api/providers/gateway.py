"""Provider gateway: routes generation requests to the configured provider."""

from shared.config import get_settings
from shared.logging import get_logger

from ..errors import ProviderError
from .base import BaseProvider, ProviderName, ProviderRequest, ProviderResult
from .elevenlabs import ElevenLabsProvider
from .minimax import MinimaxProvider
from .noiz import NoizProvider

logger = get_logger(__name__)


class ProviderGateway:
    """Single entry point for provider calls.

    The provider set is closed; a request naming an unknown or
    unconfigured provider fails before any network traffic.
    """

    def __init__(
        self,
        providers: dict[ProviderName, BaseProvider],
        default: ProviderName = ProviderName.ELEVENLABS,
    ):
        self.providers = providers
        self.default = default

    def resolve(self, provider: ProviderName | str | None = None) -> BaseProvider:
        """Look up a provider client by name.

        Raises:
            ProviderError: If the name is not a known provider.
        """
        if provider is None:
            name = self.default
        else:
            try:
                name = ProviderName(provider)
            except ValueError as e:
                raise ProviderError(
                    str(provider), f"Unknown provider: {provider}", upstream_status=400
                ) from e

        client = self.providers.get(name)
        if client is None:
            raise ProviderError(
                name.value, f"Provider not configured: {name.value}", upstream_status=400
            )
        return client

    async def invoke(
        self,
        request: ProviderRequest,
        provider: ProviderName | str | None = None,
    ) -> ProviderResult:
        """Send a request to a provider and return its raw result.

        Args:
            request: Feature request payload.
            provider: Provider name; the gateway default when omitted.

        Returns:
            The provider's bytes and metadata.

        Raises:
            ProviderError: On unknown providers, unsupported operations
                or any upstream failure.
        """
        client = self.resolve(provider)
        logger.info(
            "Invoking provider",
            provider=client.name.value,
            operation=type(request).__name__,
        )
        result = await client.invoke(request)
        logger.info(
            "Provider call succeeded",
            provider=client.name.value,
            operation=type(request).__name__,
            content_bytes=len(result.content),
        )
        return result

    async def close(self) -> None:
        for client in self.providers.values():
            await client.close()


def create_provider_gateway() -> ProviderGateway:
    """Build a gateway from settings."""
    settings = get_settings()
    timeout = settings.providers.timeout_seconds
    return ProviderGateway(
        providers={
            ProviderName.ELEVENLABS: ElevenLabsProvider(
                settings.elevenlabs.api_key, settings.elevenlabs.base_url, timeout
            ),
            ProviderName.MINIMAX: MinimaxProvider(
                settings.minimax.api_key, settings.minimax.base_url, timeout
            ),
            ProviderName.NOIZ: NoizProvider(
                settings.noiz.api_key, settings.noiz.base_url, timeout
            ),
        },
        default=ProviderName(settings.providers.default),
    )


_gateway: ProviderGateway | None = None


def get_provider_gateway() -> ProviderGateway:
    """Get the process-wide provider gateway."""
    global _gateway
    if _gateway is None:
        _gateway = create_provider_gateway()
    return _gateway


async def close_provider_gateway() -> None:
    global _gateway
    if _gateway is not None:
        await _gateway.close()
        _gateway = None
