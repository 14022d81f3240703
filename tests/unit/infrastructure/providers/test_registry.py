from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from domain.exceptions.rates import InvalidCacheSpanError
from domain.models.rates import SupportedExchange
from infrastructure.cache.memory_cache import MemoryRateCache
from infrastructure.providers.background import BackgroundFetcherRateProvider
from infrastructure.providers.cached import CachedRateProvider
from infrastructure.providers.registry import RateProviderRegistry

SPAN = timedelta(minutes=15)


@pytest.fixture
def registry(clock):
    return RateProviderRegistry(cache_span=SPAN, primary_source='coinaverage', clock=clock)


class TestRegistration:

    def test_get_unknown_name_returns_none(self, registry):
        assert registry.get('nope') is None
        assert 'nope' not in registry

    def test_last_registration_wins(self, registry, provider_factory):
        raw = provider_factory()
        registry.register('kraken', raw)

        decorated = registry.add_background('kraken', raw, timedelta(minutes=1), timedelta(minutes=5))

        assert registry.get('kraken') is decorated
        assert isinstance(decorated, BackgroundFetcherRateProvider)
        assert len(registry) == 1

    def test_add_cached_uses_shared_store_and_span(self, registry, provider_factory):
        first = registry.add_cached('bylls', provider_factory())
        second = registry.add_cached('ndax', provider_factory())

        assert isinstance(first, CachedRateProvider)
        assert first.cache_store is second.cache_store is registry.cache_store
        assert first.cache_span == SPAN

    def test_supported_exchanges_keep_metadata(self, registry, provider_factory):
        registry.add_cached(
            'bitbank', provider_factory(),
            SupportedExchange('bitbank', 'Bitbank', 'https://public.bitbank.cc/prices'),
        )
        registry.register('kraken', provider_factory())

        exchanges = {e.name: e for e in registry.supported_exchanges()}

        assert exchanges['bitbank'].display_name == 'Bitbank'
        assert exchanges['kraken'] == SupportedExchange('kraken', 'kraken')
        assert registry.names() == ['bitbank', 'kraken']

    def test_non_positive_cache_span_rejected(self):
        with pytest.raises(InvalidCacheSpanError):
            RateProviderRegistry(cache_span=timedelta(0))


class TestInvalidateAll:

    @pytest.mark.asyncio
    async def test_cached_providers_get_new_store_and_span(self, registry, stub_provider):
        cached = registry.add_cached('bylls', stub_provider)
        await cached.get_rates()
        old_store = registry.cache_store

        registry.invalidate_all(timedelta(minutes=5))

        assert registry.cache_store is not old_store
        assert cached.cache_store is registry.cache_store
        assert cached.cache_span == timedelta(minutes=5)
        await cached.get_rates()
        assert stub_provider.calls == 2

    @pytest.mark.asyncio
    async def test_primary_background_follows_span(self, registry, stub_provider):
        primary = registry.add_background(
            'coinaverage', stub_provider, *registry.primary_refresh_policy()
        )
        await primary.get_rates()

        registry.cache_span = timedelta(minutes=30)

        assert primary.refresh_rate == timedelta(minutes=30)
        assert primary.validity_time == timedelta(minutes=31)
        assert primary.next_update is None
        await primary.get_rates()
        assert stub_provider.calls == 2

    def test_other_background_providers_untouched(self, registry, provider_factory):
        kraken = registry.add_background(
            'kraken', provider_factory(), timedelta(minutes=1), timedelta(minutes=5)
        )

        registry.invalidate_all(timedelta(minutes=30))

        assert kraken.refresh_rate == timedelta(minutes=1)
        assert kraken.validity_time == timedelta(minutes=5)

    def test_names_unchanged(self, registry, provider_factory):
        registry.add_cached('bylls', provider_factory())
        registry.add_background('kraken', provider_factory(), timedelta(minutes=1), timedelta(minutes=5))

        registry.invalidate_all()

        assert registry.names() == ['bylls', 'kraken']
        assert registry.cache_span == SPAN

    def test_invalid_span_rejected(self, registry):
        with pytest.raises(InvalidCacheSpanError):
            registry.invalidate_all(timedelta(seconds=-1))
        assert registry.cache_span == SPAN

    def test_uses_cache_factory_for_every_swap(self, provider_factory):
        factory = MagicMock(side_effect=MemoryRateCache)
        registry = RateProviderRegistry(cache_span=SPAN, cache_factory=factory)
        registry.add_cached('bylls', provider_factory())

        registry.invalidate_all()
        registry.invalidate_all()

        assert factory.call_count == 3


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_start_and_close_background_loops(self, registry, provider_factory):
        kraken = registry.add_background(
            'kraken', provider_factory(), timedelta(minutes=1), timedelta(minutes=5)
        )
        registry.add_cached('bylls', provider_factory())

        registry.start()
        assert kraken._loop_task is not None

        await registry.aclose()
        assert kraken._loop_task is None
