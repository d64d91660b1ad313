"""Unit tests for best-effort click recording."""

from unittest.mock import AsyncMock

import pytest

from golinks.recorder import ClickMetadata, ClickRecorder, extract_client_ip


def test_extract_client_ip_prefers_first_forwarded_hop() -> None:
    headers = {"x-forwarded-for": "203.0.113.7, 10.0.0.1", "x-real-ip": "10.0.0.2"}
    assert extract_client_ip(headers) == "203.0.113.7"


def test_extract_client_ip_falls_back_to_real_ip() -> None:
    assert extract_client_ip({"x-real-ip": "198.51.100.4"}) == "198.51.100.4"


def test_extract_client_ip_absent() -> None:
    assert extract_client_ip({}) is None
    assert extract_client_ip({"x-forwarded-for": " "}) is None


def test_click_metadata_from_headers() -> None:
    metadata = ClickMetadata.from_headers(
        {"x-forwarded-for": "203.0.113.7", "user-agent": "Mozilla/5.0", "referer": "https://instagram.com/"}
    )
    assert metadata == ClickMetadata(
        ip_address="203.0.113.7", user_agent="Mozilla/5.0", referrer="https://instagram.com/"
    )


@pytest.mark.asyncio
async def test_record_increments_and_inserts(recorder, registry, mock_redis, settings) -> None:
    link = registry.links["johnatlanta"]
    recorder.record(link, ClickMetadata(ip_address="203.0.113.7", user_agent="pytest", referrer=None))
    await recorder.drain()

    assert link.click_count == 1
    assert link.unique_click_count == 1
    assert len(registry.clicks) == 1
    click = registry.clicks[0]
    assert click.link_id == link.id
    assert click.ip_address == "203.0.113.7"
    assert click.user_agent == "pytest"
    assert click.referrer is None
    assert click.clicked_at.tzinfo is not None
    mock_redis.set.assert_awaited_once_with(
        f"{settings.UNIQUE_CLICK_KEY_PREFIX}:{link.id}:203.0.113.7",
        "1",
        ex=settings.UNIQUE_CLICK_WINDOW_SECONDS,
        nx=True,
    )


@pytest.mark.asyncio
async def test_record_returns_before_writes_complete(recorder, registry) -> None:
    link = registry.links["johnatlanta"]
    recorder.record(link, ClickMetadata())

    assert recorder.pending == 2
    assert link.click_count == 0

    await recorder.drain()
    assert recorder.pending == 0
    assert link.click_count == 1


@pytest.mark.asyncio
async def test_repeat_visitor_is_not_unique(recorder, registry, mock_redis) -> None:
    mock_redis.set = AsyncMock(side_effect=[True, None])
    link = registry.links["johnatlanta"]

    recorder.record(link, ClickMetadata(ip_address="203.0.113.7"))
    await recorder.drain()
    recorder.record(link, ClickMetadata(ip_address="203.0.113.7"))
    await recorder.drain()

    assert link.click_count == 2
    assert link.unique_click_count == 1


@pytest.mark.asyncio
async def test_click_without_ip_counts_as_unique(recorder, registry, mock_redis) -> None:
    link = registry.links["johnatlanta"]
    recorder.record(link, ClickMetadata())
    await recorder.drain()

    assert link.unique_click_count == 1
    mock_redis.set.assert_not_awaited()


@pytest.mark.asyncio
async def test_redis_failure_still_counts_click(recorder, registry, mock_redis) -> None:
    mock_redis.set = AsyncMock(side_effect=ConnectionError("redis down"))
    link = registry.links["johnatlanta"]

    recorder.record(link, ClickMetadata(ip_address="203.0.113.7"))
    await recorder.drain()

    assert link.click_count == 1
    assert link.unique_click_count == 0


@pytest.mark.asyncio
async def test_recorder_without_cache_counts_known_ip_as_repeat(registry, logger, settings) -> None:
    recorder = ClickRecorder(registry=registry, cache=None, logger=logger, settings=settings)
    link = registry.links["johnatlanta"]

    recorder.record(link, ClickMetadata(ip_address="203.0.113.7"))
    await recorder.drain()

    assert link.click_count == 1
    assert link.unique_click_count == 0


@pytest.mark.asyncio
async def test_increment_failure_does_not_block_insert(recorder, registry) -> None:
    registry.fail_increment = True
    link = registry.links["johnatlanta"]

    recorder.record(link, ClickMetadata(user_agent="pytest"))
    await recorder.drain()

    assert link.click_count == 0
    assert len(registry.clicks) == 1


@pytest.mark.asyncio
async def test_insert_failure_does_not_block_increment(recorder, registry) -> None:
    registry.fail_insert = True
    link = registry.links["johnatlanta"]

    recorder.record(link, ClickMetadata())
    await recorder.drain()

    assert link.click_count == 1
    assert registry.clicks == []


@pytest.mark.asyncio
async def test_recording_failures_are_logged(recorder, registry, caplog) -> None:
    registry.fail_increment = True
    registry.fail_insert = True

    with caplog.at_level("ERROR", logger="golinks.tests"):
        recorder.record(registry.links["johnatlanta"], ClickMetadata())
        await recorder.drain()

    messages = [record.getMessage() for record in caplog.records]
    assert any("increment failed" in message for message in messages)
    assert any("insert failed" in message for message in messages)
