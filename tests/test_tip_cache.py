import threading
from datetime import datetime, timedelta, timezone

import pytest

from expense_dashboard.models import CachedTips, Tip, TipImpact, TipType
from expense_dashboard.tip_cache import CacheState, TipCache, should_regenerate

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


def _tips(label='t'):
    return [Tip(id=label, type=TipType.INSIGHT, title=label, message=label,
                impact=TipImpact.LOW, actionable=False)]


def _entry(count=100, generated_at=NOW):
    return CachedTips(tuple(_tips()), generated_at, count)


def test_should_regenerate_without_cache():
    assert should_regenerate(None, 0, NOW, 'UTC') is True


def test_should_regenerate_drift_threshold():
    entry = _entry(count=100)

    assert should_regenerate(entry, 100, NOW, 'UTC') is False
    assert should_regenerate(entry, 105, NOW, 'UTC') is False
    assert should_regenerate(entry, 95, NOW, 'UTC') is False
    assert should_regenerate(entry, 106, NOW, 'UTC') is True
    assert should_regenerate(entry, 94, NOW, 'UTC') is True


def test_should_regenerate_on_new_day():
    entry = _entry()
    assert should_regenerate(entry, 100, NOW + timedelta(hours=11), 'UTC') is False
    assert should_regenerate(entry, 100, NOW + timedelta(hours=12), 'UTC') is True


def test_should_regenerate_uses_configured_zone():
    # 03:00 UTC is still the previous evening in Los Angeles
    entry = _entry(generated_at=datetime(2024, 3, 15, 3, 0, tzinfo=timezone.utc))
    later = datetime(2024, 3, 15, 9, 0, tzinfo=timezone.utc)
    assert should_regenerate(entry, 100, later, 'UTC') is False
    assert should_regenerate(entry, 100, later, 'America/Los_Angeles') is True


def test_get_or_generate_caches_until_stale():
    cache = TipCache('UTC')
    calls = []

    def generate():
        calls.append(1)
        return _tips(f'gen-{len(calls)}'), 'heuristic'

    entry, cached = cache.get_or_generate(10, NOW, generate)
    assert cached is False
    assert entry.tips[0].id == 'gen-1'
    assert entry.generated_at == NOW
    assert entry.expense_count == 10

    entry, cached = cache.get_or_generate(12, NOW + timedelta(minutes=5), generate)
    assert cached is True
    assert entry.tips[0].id == 'gen-1'
    assert entry.expense_count == 10

    entry, cached = cache.get_or_generate(20, NOW + timedelta(minutes=10), generate)
    assert cached is False
    assert entry.tips[0].id == 'gen-2'
    assert len(calls) == 2


def test_state_transitions():
    cache = TipCache('UTC')
    assert cache.state(0, NOW) is CacheState.EMPTY

    cache.store(_tips(), NOW, 3, 'ai')
    assert cache.peek().source == 'ai'
    assert cache.state(3, NOW) is CacheState.FRESH
    assert cache.state(3, NOW + timedelta(days=1)) is CacheState.STALE

    cache.clear()
    assert cache.peek() is None


def test_failed_generation_leaves_cache_untouched():
    cache = TipCache('UTC')
    cache.store(_tips('old'), NOW - timedelta(days=1), 5)

    def explode():
        raise RuntimeError('boom')

    with pytest.raises(RuntimeError):
        cache.get_or_generate(5, NOW, explode)
    assert cache.peek().tips[0].id == 'old'


def test_concurrent_requests_generate_once():
    cache = TipCache('UTC')
    calls = []
    barrier = threading.Barrier(8)
    results = []

    def generate():
        calls.append(1)
        return _tips(), 'heuristic'

    def worker():
        barrier.wait()
        results.append(cache.get_or_generate(50, NOW, generate)[1])

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(calls) == 1
    assert sorted(results) == [False] + [True] * 7
