"""
Test the producer state machine and its append/notify pairing.
"""

import json

import pytest

from resumable_stream.schemas.message import (
    ChunkMessage,
    MetadataMessage,
    StreamStatus,
)
from resumable_stream.stream.errors import ProducerStateError
from resumable_stream.stream.producer import ProducerState, StreamProducer

pytestmark = pytest.mark.asyncio

KEY = "llm:stream:s1"


@pytest.fixture
def producer(store, notifier) -> StreamProducer:
    return StreamProducer(store, notifier, "s1")


async def _log(store) -> list:
    return [entry.message for entry in await store.history(KEY)]


async def test_full_lifecycle_appends_expected_messages(producer, store):
    await producer.start()
    await producer.write_chunk("Hel")
    await producer.write_chunk("lo")
    await producer.complete()

    log = await _log(store)
    assert len(log) == 4
    assert log[0].status == StreamStatus.STARTED
    assert log[0].total_chunks == 0
    assert log[0].full_content == ""
    assert log[1:3] == [ChunkMessage(content="Hel"), ChunkMessage(content="lo")]
    assert isinstance(log[3], MetadataMessage)
    assert log[3].status == StreamStatus.COMPLETED
    assert log[3].total_chunks == 2
    assert log[3].full_content == "Hello"
    assert log[3].completed_at is not None
    assert producer.state == ProducerState.COMPLETED


async def test_every_append_publishes_a_notification(producer, fake_redis):
    await producer.start()
    await producer.write_chunk("a")
    await producer.complete()

    assert [channel for channel, _ in fake_redis.published] == [KEY, KEY, KEY]
    assert [json.loads(payload)["type"] for _, payload in fake_redis.published] == [
        "metadata",
        "chunk",
        "metadata",
    ]


async def test_empty_chunks_are_skipped(producer, store):
    await producer.start()
    assert await producer.write_chunk("") is None
    await producer.write_chunk("x")

    assert producer.total_chunks == 1
    assert producer.state == ProducerState.STREAMING
    assert len(await _log(store)) == 2


async def test_result_reports_running_totals(producer):
    await producer.start()
    await producer.write_chunk("Hel")
    await producer.write_chunk("lo")

    result = producer.result()
    assert result.session_id == "s1"
    assert result.total_chunks == 2
    assert result.full_content == "Hello"


async def test_chunk_before_start_is_rejected(producer, store):
    with pytest.raises(ProducerStateError):
        await producer.write_chunk("x")
    assert await store.exists(KEY) is False


async def test_nothing_after_completion(producer, store):
    await producer.start()
    await producer.complete()

    with pytest.raises(ProducerStateError):
        await producer.write_chunk("late")
    with pytest.raises(ProducerStateError):
        await producer.complete()
    with pytest.raises(ProducerStateError):
        await producer.fail("late")
    assert len(await _log(store)) == 2


async def test_start_twice_is_rejected(producer):
    await producer.start()
    with pytest.raises(ProducerStateError):
        await producer.start()


async def test_fail_appends_error_summary(producer, store):
    await producer.start()
    await producer.write_chunk("partial")
    await producer.fail("upstream timeout")

    last = (await _log(store))[-1]
    assert last.status == StreamStatus.ERROR
    assert last.error == "upstream timeout"
    assert last.total_chunks == 1
    assert last.full_content == "partial"
    assert producer.state == ProducerState.ERROR
