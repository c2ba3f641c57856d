# tests/unit/cep/test_orchestrator.py - v1
"""Tests for cep/orchestrator.py: cache-aside, cascade, aggregation."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import httpx
import pytest

from cepgateway.cache.base_cache_store import BaseCacheStore
from cepgateway.cep.orchestrator import (
    SUCCESS_TTL_SECONDS,
    CepService,
    aggregate_failures,
    build_service,
    cache_key,
)
from cepgateway.config.settings import Settings
from cepgateway.core.errors import CepLookupError, ConfigurationError, ErrorCode, LookupFailure
from cepgateway.core.models import AttemptResult
from cepgateway.providers.selector import ProviderSelector

FIXED_NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def cache() -> AsyncMock:
    mock = AsyncMock(spec=BaseCacheStore)
    mock.get.return_value = None
    return mock


@pytest.fixture
def pair(make_provider):
    return make_provider("ViaCEP"), make_provider("BrasilAPI")


@pytest.fixture
def service(pair, cache, descriptors_for, primary_first_selector):
    return CepService(
        descriptors=descriptors_for(pair, [70, 30]),
        cache_store=cache,
        selector=primary_first_selector,
        clock=lambda: FIXED_NOW,
    )


class TestCacheAside:
    @pytest.mark.asyncio
    async def test_cache_hit_short_circuits(self, service, cache, pair, sample_address):
        cache.get.return_value = sample_address
        result = await service.find_address("01310100")

        assert result == sample_address
        cache.get.assert_awaited_once_with("cep:01310100")
        assert pair[0].calls == []
        assert pair[1].calls == []
        cache.set.assert_not_awaited()
        assert service.selector.get_stats()["total_requests"] == 0

    @pytest.mark.asyncio
    async def test_primary_success_writes_cache(self, service, cache, pair, sample_address):
        pair[0].outcome = sample_address
        result = await service.find_address("01310100")

        assert result.content() == sample_address.content()
        assert result.source == "ViaCEP"
        assert result.timestamp == FIXED_NOW
        cache.set.assert_awaited_once_with("cep:01310100", result, SUCCESS_TTL_SECONDS)
        assert SUCCESS_TTL_SECONDS == 86400
        assert pair[0].calls == ["01310100"]
        assert pair[1].calls == []

    @pytest.mark.asyncio
    async def test_custom_success_ttl(self, pair, cache, descriptors_for, sample_address):
        pair[0].outcome = sample_address
        svc = CepService(
            descriptors_for(pair, [70, 30]), cache,
            selector=ProviderSelector(random_source=lambda: 0.0), success_ttl=60,
        )
        await svc.find_address("01310100")
        assert cache.set.await_args.args[2] == 60

    def test_cache_key(self):
        assert cache_key("01310100") == "cep:01310100"


class TestCascade:
    @pytest.mark.asyncio
    async def test_not_found_then_success(self, service, cache, pair, sample_address):
        pair[0].outcome = ErrorCode.CEP_NOT_FOUND
        pair[1].outcome = sample_address

        result = await service.find_address("01310100")

        assert result.content() == sample_address.content()
        assert result.source == "BrasilAPI"
        assert pair[0].calls == ["01310100"]
        assert pair[1].calls == ["01310100"]
        cache.set.assert_awaited_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "first_failure",
        [ErrorCode.UPSTREAM_UNAVAILABLE, ErrorCode.GATEWAY_TIMEOUT, ErrorCode.INVALID_CEP],
    )
    async def test_every_failure_kind_falls_back(self, service, pair, sample_address, first_failure):
        pair[0].outcome = first_failure
        pair[1].outcome = sample_address
        result = await service.find_address("01310100")
        assert result.source == "BrasilAPI"

    @pytest.mark.asyncio
    async def test_unclassified_exception_falls_back(self, service, pair, sample_address):
        pair[0].outcome = RuntimeError("boom")
        pair[1].outcome = sample_address
        result = await service.find_address("01310100")
        assert result.source == "BrasilAPI"

    @pytest.mark.asyncio
    async def test_follows_selection_order(self, pair, cache, descriptors_for, sample_address):
        pair[0].outcome = ErrorCode.UPSTREAM_UNAVAILABLE
        pair[1].outcome = sample_address
        order: list[str] = []
        for p in pair:
            original = p.find_by_cep

            async def record(cep, _p=p, _orig=original):
                order.append(_p.name)
                return await _orig(cep)

            p.find_by_cep = record  # type: ignore[method-assign]

        svc = CepService(
            descriptors_for(pair, [70, 30]), cache,
            selector=ProviderSelector(random_source=lambda: 0.9),
        )
        result = await svc.find_address("01310100")
        assert order == ["BrasilAPI"]
        assert result.source == "BrasilAPI"

    @pytest.mark.asyncio
    async def test_three_providers_stop_at_first_success(
        self, make_provider, descriptors_for, cache, sample_address
    ):
        a = make_provider("A", ErrorCode.GATEWAY_TIMEOUT)
        b = make_provider("B", sample_address)
        c = make_provider("C", sample_address)
        svc = CepService(
            descriptors_for([a, b, c], [50, 30, 20]), cache,
            selector=ProviderSelector(random_source=lambda: 0.0),
        )
        result = await svc.find_address("01310100")
        assert result.source == "B"
        assert c.calls == []

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, service, pair, cache):
        pair[0].outcome = asyncio.CancelledError()
        with pytest.raises(asyncio.CancelledError):
            await service.find_address("01310100")
        assert pair[1].calls == []
        cache.set.assert_not_awaited()


class TestTotalFailure:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("first", "second", "expected"),
        [
            (ErrorCode.CEP_NOT_FOUND, ErrorCode.CEP_NOT_FOUND, ErrorCode.CEP_NOT_FOUND),
            (ErrorCode.GATEWAY_TIMEOUT, ErrorCode.GATEWAY_TIMEOUT, ErrorCode.GATEWAY_TIMEOUT),
            (ErrorCode.GATEWAY_TIMEOUT, ErrorCode.UPSTREAM_UNAVAILABLE, ErrorCode.GATEWAY_TIMEOUT),
            (ErrorCode.UPSTREAM_UNAVAILABLE, ErrorCode.GATEWAY_TIMEOUT, ErrorCode.GATEWAY_TIMEOUT),
            (ErrorCode.CEP_NOT_FOUND, ErrorCode.GATEWAY_TIMEOUT, ErrorCode.GATEWAY_TIMEOUT),
            (ErrorCode.CEP_NOT_FOUND, ErrorCode.UPSTREAM_UNAVAILABLE, ErrorCode.UPSTREAM_UNAVAILABLE),
            (ErrorCode.UPSTREAM_UNAVAILABLE, ErrorCode.UPSTREAM_UNAVAILABLE, ErrorCode.UPSTREAM_UNAVAILABLE),
        ],
    )
    async def test_aggregated_code(self, service, cache, pair, first, second, expected):
        pair[0].outcome = first
        pair[1].outcome = second

        with pytest.raises(CepLookupError) as exc_info:
            await service.find_address("99999999")

        assert exc_info.value.code == expected
        assert exc_info.value.details["attempts"] == 2
        cache.set.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_details_bag(self, service, pair):
        pair[0].outcome = ErrorCode.CEP_NOT_FOUND
        pair[1].outcome = RuntimeError("socket closed")

        with pytest.raises(CepLookupError) as exc_info:
            await service.find_address("99999999")

        details = exc_info.value.details
        assert exc_info.value.code == ErrorCode.UPSTREAM_UNAVAILABLE
        assert details["cep"] == "99999999"
        assert details["providers"] == ["ViaCEP", "BrasilAPI"]
        assert [e["provider"] for e in details["errors"]] == ["ViaCEP", "BrasilAPI"]
        assert [e["code"] for e in details["errors"]] == [
            "CEP_NOT_FOUND",
            "UPSTREAM_UNAVAILABLE",
        ]
        assert all(e["message"] for e in details["errors"])


class TestAggregateFailures:
    def _attempts(self, *codes: ErrorCode) -> list[AttemptResult]:
        return [
            AttemptResult(
                provider=f"p{i}",
                failure=LookupFailure(code=code, message=code.value),
            )
            for i, code in enumerate(codes)
        ]

    def test_single_not_found(self):
        failure = aggregate_failures("1", self._attempts(ErrorCode.CEP_NOT_FOUND))
        assert failure.code == ErrorCode.CEP_NOT_FOUND
        assert failure.http_status == 404

    def test_all_invalid_surfaces_unavailable(self):
        failure = aggregate_failures(
            "1", self._attempts(ErrorCode.INVALID_CEP, ErrorCode.INVALID_CEP)
        )
        assert failure.code == ErrorCode.UPSTREAM_UNAVAILABLE

    def test_timeout_outranks_everything_mixed(self):
        failure = aggregate_failures(
            "1",
            self._attempts(
                ErrorCode.CEP_NOT_FOUND, ErrorCode.UPSTREAM_UNAVAILABLE, ErrorCode.GATEWAY_TIMEOUT
            ),
        )
        assert failure.code == ErrorCode.GATEWAY_TIMEOUT
        assert failure.details["attempts"] == 3

    def test_no_attempts(self):
        assert aggregate_failures("1", []).code == ErrorCode.UPSTREAM_UNAVAILABLE


class TestIdempotence:
    @pytest.mark.asyncio
    async def test_fresh_and_cached_content_match(
        self, pair, memory_cache, descriptors_for, primary_first_selector, sample_address
    ):
        pair[0].outcome = sample_address
        svc = CepService(
            descriptors_for(pair, [70, 30]), memory_cache, selector=primary_first_selector,
        )
        fresh = await svc.find_address("01310100")
        cached = await svc.find_address("01310100")

        assert fresh.content() == cached.content() == sample_address.content()
        assert pair[0].calls == ["01310100"]

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(
        self, pair, memory_cache, descriptors_for, primary_first_selector, sample_address
    ):
        pair[0].outcome = ErrorCode.UPSTREAM_UNAVAILABLE
        pair[1].outcome = ErrorCode.UPSTREAM_UNAVAILABLE
        svc = CepService(
            descriptors_for(pair, [70, 30]), memory_cache, selector=primary_first_selector,
        )
        with pytest.raises(CepLookupError):
            await svc.find_address("01310100")
        assert await memory_cache.get("cep:01310100") is None

        pair[0].outcome = sample_address
        result = await svc.find_address("01310100")
        assert result.source == "ViaCEP"


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_lookups_keep_private_failures(
        self, make_provider, descriptors_for, memory_cache, sample_address
    ):
        slow_fail = make_provider("Slow", ErrorCode.GATEWAY_TIMEOUT)
        ok = make_provider("Ok", sample_address)
        svc = CepService(
            descriptors_for([slow_fail, ok], [50, 50]), memory_cache,
            selector=ProviderSelector(random_source=lambda: 0.0),
        )
        results = await asyncio.gather(
            *(svc.find_address(f"0131010{i}") for i in range(1, 6))
        )
        assert all(r.source == "Ok" for r in results)
        assert len(slow_fail.calls) == 5
        assert svc.selector.get_stats()["total_requests"] == 5


class TestServiceLifecycle:
    def test_rejects_empty_descriptors(self, cache):
        with pytest.raises(ConfigurationError):
            CepService([], cache)

    def test_rejects_duplicate_providers(self, make_provider, cache, descriptors_for):
        viacep = make_provider("ViaCEP")
        with pytest.raises(ConfigurationError, match="Duplicate providers"):
            CepService(descriptors_for([viacep, make_provider("ViaCEP")], [70, 30]), cache)

    def test_repeated_provider_config_never_wires_a_service(self):
        hits: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            hits.append(str(request.url))
            return httpx.Response(503)

        with pytest.raises(ConfigurationError, match="duplicate"):
            build_service(
                Settings(_env_file=None, enabled_providers="viacep,viacep"),
                transport=httpx.MockTransport(handler),
            )
        assert hits == []

    def test_rejects_zero_total_weight(self, pair, cache, descriptors_for):
        with pytest.raises(ConfigurationError):
            CepService(descriptors_for(pair, [0, 0]), cache)

    @pytest.mark.asyncio
    async def test_provider_status(self, service, pair):
        pair[1].available = False
        assert await service.provider_status() == {"ViaCEP": True, "BrasilAPI": False}

    @pytest.mark.asyncio
    async def test_invalidate(self, service, cache):
        await service.invalidate("01310100")
        cache.delete.assert_awaited_once_with("cep:01310100")

    @pytest.mark.asyncio
    async def test_aclose(self, service, pair, cache):
        await service.aclose()
        assert all(p.closed for p in pair)
        cache.close.assert_awaited_once()

    def test_build_service_from_settings(self):
        s = Settings(_env_file=None, cache_ttl_seconds=120)
        svc = build_service(s)
        assert [d.name for d in svc.descriptors] == ["ViaCEP", "BrasilAPI"]
        assert svc._success_ttl == 120
