"""
ArticleService tests against in-memory fakes of the store and cache ports.

The fakes record every call, so each test can assert both the result and
exactly which collaborators were (or were not) touched.  Failing caches
raise CacheError the way the real adapters do.
"""
import asyncio

import pytest

from content_api.cache import MemoryCache
from content_api.entities import Article, ArticlePage
from content_api.errors import CacheError, NotFoundError, StoreError, ValidationError
from content_api.schemas import ArticleCreate, ArticleUpdate
from content_api.services.article_cache import ArticleEntityCache, ArticleListCache
from content_api.services.article_service import ArticleService, normalize_pagination


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeStore:
    def __init__(self) -> None:
        self.rows: dict[int, Article] = {}
        self.calls: list[str] = []
        self.fail: set[str] = set()
        self._next_id = 1

    def _enter(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail:
            raise StoreError(f"{name} failed")

    async def create(self, article: Article) -> Article:
        self._enter("create")
        created = article.model_copy(update={"id": self._next_id})
        self.rows[created.id] = created
        self._next_id += 1
        return created

    async def get_by_id(self, article_id: int) -> Article:
        self._enter("get_by_id")
        if article_id not in self.rows:
            raise NotFoundError("article not found")
        return self.rows[article_id]

    async def update(self, article: Article) -> Article:
        self._enter("update")
        self.rows[article.id] = article
        return article

    async def delete(self, article_id: int) -> None:
        self._enter("delete")
        if article_id not in self.rows:
            raise NotFoundError("article not found")
        del self.rows[article_id]

    async def list(self, limit: int, offset: int) -> list[Article]:
        self._enter("list")
        ordered = sorted(self.rows.values(), key=lambda a: a.id, reverse=True)
        return ordered[offset:offset + limit]

    async def count(self) -> int:
        self._enter("count")
        return len(self.rows)


class FakeEntityCache:
    def __init__(self) -> None:
        self.entries: dict[int, Article] = {}
        self.calls: list[tuple] = []
        self.fail: set[str] = set()

    def _enter(self, *call) -> None:
        self.calls.append(call)
        if call[0] in self.fail:
            raise CacheError(f"{call[0]} failed")

    async def get(self, article_id: int) -> Article | None:
        self._enter("get", article_id)
        return self.entries.get(article_id)

    async def set(self, article_id: int, article: Article, ttl: int) -> None:
        self._enter("set", article_id, ttl)
        self.entries[article_id] = article

    async def delete(self, article_id: int) -> None:
        self._enter("delete", article_id)
        self.entries.pop(article_id, None)


class FakeListCache:
    def __init__(self) -> None:
        self.pages: dict[tuple[int, int], ArticlePage] = {}
        self.calls: list[tuple] = []
        self.fail: set[str] = set()

    def _enter(self, *call) -> None:
        self.calls.append(call)
        if call[0] in self.fail:
            raise CacheError(f"{call[0]} failed")

    async def get(self, limit: int, offset: int) -> ArticlePage | None:
        self._enter("get", limit, offset)
        return self.pages.get((limit, offset))

    async def set(self, limit: int, offset: int, page: ArticlePage, ttl: int) -> None:
        self._enter("set", limit, offset, ttl)
        self.pages[(limit, offset)] = page

    async def invalidate_all(self) -> None:
        self._enter("invalidate_all")
        self.pages.clear()


def _names(calls) -> list[str]:
    return [c[0] for c in calls]


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def entity_cache() -> FakeEntityCache:
    return FakeEntityCache()


@pytest.fixture
def list_cache() -> FakeListCache:
    return FakeListCache()


@pytest.fixture
def service(store, entity_cache, list_cache) -> ArticleService:
    return ArticleService(store, entity_cache=entity_cache, list_cache=list_cache, ttl=300)


def _new(title="A", content="B", author_id=1) -> ArticleCreate:
    return ArticleCreate(title=title, content=content, author_id=author_id)


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload, message",
    [
        ({"title": "", "content": "B", "author_id": 1}, "title is required"),
        ({"title": "A", "content": "", "author_id": 1}, "content is required"),
        ({"title": "A", "content": "B", "author_id": 0}, "author id is required"),
        ({"title": "A", "content": "B", "author_id": -3}, "author id is required"),
        ({"title": "", "content": "", "author_id": 0}, "title is required"),
    ],
)
async def test_create_validation_touches_nothing(service, store, entity_cache, list_cache, payload, message):
    with pytest.raises(ValidationError) as exc_info:
        await service.create(ArticleCreate(**payload))
    assert exc_info.value.message == message
    assert store.calls == []
    assert entity_cache.calls == []
    assert list_cache.calls == []


@pytest.mark.asyncio
async def test_create_invalidates_lists_but_does_not_fill_entity_cache(service, store, entity_cache, list_cache):
    created = await service.create(_new())
    assert created.id == 1
    assert created.created_at is not None
    assert created.updated_at == created.created_at
    assert store.calls == ["create"]
    assert _names(list_cache.calls) == ["invalidate_all"]
    assert entity_cache.calls == []


@pytest.mark.asyncio
async def test_create_store_failure_propagates_without_cache_calls(service, store, entity_cache, list_cache):
    store.fail.add("create")
    with pytest.raises(StoreError):
        await service.create(_new())
    assert list_cache.calls == []
    assert entity_cache.calls == []


@pytest.mark.asyncio
async def test_create_succeeds_when_list_invalidation_fails(service, list_cache):
    list_cache.fail.add("invalidate_all")
    created = await service.create(_new())
    assert created.title == "A"


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_hit_short_circuits_the_store(service, store, entity_cache):
    cached = Article(id=7, title="cached", content="C", author_id=1)
    entity_cache.entries[7] = cached
    assert await service.get(7) == cached
    assert store.calls == []


@pytest.mark.asyncio
async def test_get_miss_reads_store_and_populates_cache(service, store, entity_cache):
    created = await service.create(_new())
    store.calls.clear()

    article = await service.get(created.id)
    assert article == created
    assert store.calls == ["get_by_id"]
    assert ("set", created.id, 300) in entity_cache.calls
    assert entity_cache.entries[created.id] == created


@pytest.mark.asyncio
async def test_get_falls_back_to_store_when_cache_read_fails(service, store, entity_cache):
    created = await service.create(_new())
    entity_cache.entries[created.id] = created.model_copy(update={"title": "never served"})
    entity_cache.fail.add("get")

    article = await service.get(created.id)
    assert article.title == "A"
    assert "get_by_id" in store.calls


@pytest.mark.asyncio
async def test_get_returns_result_when_cache_write_fails(service, entity_cache):
    created = await service.create(_new())
    entity_cache.fail.add("set")
    assert await service.get(created.id) == created
    assert entity_cache.entries == {}


@pytest.mark.asyncio
async def test_get_not_found_is_never_cached(service, entity_cache):
    with pytest.raises(NotFoundError):
        await service.get(42)
    assert _names(entity_cache.calls) == ["get"]
    assert entity_cache.entries == {}


@pytest.mark.asyncio
async def test_get_store_failure_propagates(service, store, entity_cache):
    store.fail.add("get_by_id")
    with pytest.raises(StoreError):
        await service.get(1)
    assert "set" not in _names(entity_cache.calls)


@pytest.mark.asyncio
async def test_cancelled_read_does_not_populate_cache(service, store, entity_cache):
    async def cancelled(article_id):
        raise asyncio.CancelledError()

    store.get_by_id = cancelled
    with pytest.raises(asyncio.CancelledError):
        await service.get(1)
    assert "set" not in _names(entity_cache.calls)


@pytest.mark.asyncio
async def test_cache_is_transparent_for_reads(store):
    cached_service = ArticleService(store, FakeEntityCache(), FakeListCache())
    plain_service = ArticleService(store)
    created = await plain_service.create(_new())

    first = await cached_service.get(created.id)   # miss, populates
    second = await cached_service.get(created.id)  # hit
    direct = await plain_service.get(created.id)
    assert first == second == direct


# ---------------------------------------------------------------------------
# List
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "given, expected",
    [((0, 0), (10, 0)), ((-5, -1), (10, 0)), ((25, 50), (25, 50)), ((1, -9), (1, 0))],
)
def test_normalize_pagination(given, expected):
    assert normalize_pagination(*given) == expected


@pytest.mark.asyncio
async def test_list_normalizes_before_touching_cache(service, list_cache):
    page = await service.list(0, -4)
    assert (page.limit, page.offset) == (10, 0)
    assert list_cache.calls[0] == ("get", 10, 0)


@pytest.mark.asyncio
async def test_list_miss_builds_page_from_list_and_count(service, store, list_cache):
    for i in range(3):
        await service.create(_new(title=f"T{i}"))
    store.calls.clear()

    page = await service.list(2, 0)
    assert page.total == 3
    assert [a.title for a in page.articles] == ["T2", "T1"]
    assert store.calls == ["list", "count"]
    assert ("set", 2, 0, 300) in list_cache.calls


@pytest.mark.asyncio
async def test_list_hit_short_circuits_the_store(service, store, list_cache):
    list_cache.pages[(10, 0)] = ArticlePage(articles=[], total=99, limit=10, offset=0)
    page = await service.list(10, 0)
    assert page.total == 99
    assert store.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("failing", ["list", "count"])
async def test_list_store_failure_caches_nothing(service, store, list_cache, failing):
    store.fail.add(failing)
    with pytest.raises(StoreError):
        await service.list(10, 0)
    assert "set" not in _names(list_cache.calls)
    assert list_cache.pages == {}


@pytest.mark.asyncio
async def test_list_falls_back_when_cache_unavailable(service, list_cache):
    await service.create(_new())
    list_cache.fail.update({"get", "set"})
    page = await service.list(10, 0)
    assert page.total == 1


@pytest.mark.asyncio
async def test_list_total_never_predates_a_mutation(service):
    await service.create(_new(title="one"))
    assert (await service.list(10, 0)).total == 1   # now cached

    second = await service.create(_new(title="two"))
    assert (await service.list(10, 0)).total == 2

    await service.update(second.id, ArticleUpdate(title="two!"))
    page = await service.list(10, 0)
    assert page.articles[0].title == "two!"

    await service.delete(second.id)
    assert (await service.list(10, 0)).total == 1


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_update_reads_store_not_cache_and_invalidates(service, store, entity_cache, list_cache):
    created = await service.create(_new())
    # A stale copy sitting in the cache must neither feed the update nor survive it.
    entity_cache.entries[created.id] = created.model_copy(update={"content": "stale"})
    entity_cache.calls.clear()
    list_cache.calls.clear()

    updated = await service.update(created.id, ArticleUpdate(title="A2"))
    assert updated.title == "A2"
    assert updated.content == "B"
    assert updated.author_id == 1
    assert updated.updated_at >= created.updated_at
    assert entity_cache.calls == [("delete", created.id)]
    assert _names(list_cache.calls) == ["invalidate_all"]

    assert (await service.get(created.id)).title == "A2"


@pytest.mark.asyncio
async def test_update_not_found(service, store, entity_cache, list_cache):
    with pytest.raises(NotFoundError):
        await service.update(5, ArticleUpdate(title="x"))
    assert "update" not in store.calls
    assert entity_cache.calls == []
    assert list_cache.calls == []


@pytest.mark.asyncio
async def test_update_validation_failure_aborts_before_persisting(service, store, entity_cache, list_cache):
    created = await service.create(_new())
    list_cache.calls.clear()
    with pytest.raises(ValidationError):
        await service.update(created.id, ArticleUpdate(content=""))
    assert "update" not in store.calls
    assert entity_cache.calls == []
    assert list_cache.calls == []
    assert store.rows[created.id].content == "B"


@pytest.mark.asyncio
async def test_update_store_failure_skips_invalidation(service, store, entity_cache, list_cache):
    created = await service.create(_new())
    list_cache.calls.clear()
    store.fail.add("update")
    with pytest.raises(StoreError):
        await service.update(created.id, ArticleUpdate(title="A2"))
    assert entity_cache.calls == []
    assert list_cache.calls == []


@pytest.mark.asyncio
async def test_update_entity_invalidation_failure_does_not_block_list_invalidation(
    service, entity_cache, list_cache
):
    created = await service.create(_new())
    list_cache.calls.clear()
    entity_cache.fail.add("delete")

    updated = await service.update(created.id, ArticleUpdate(title="A2"))
    assert updated.title == "A2"
    assert _names(list_cache.calls) == ["invalidate_all"]


@pytest.mark.asyncio
@pytest.mark.parametrize("mutation", ["update", "delete"])
async def test_list_invalidation_failure_does_not_block_entity_invalidation(
    service, entity_cache, list_cache, mutation
):
    created = await service.create(_new())
    await service.get(created.id)
    assert created.id in entity_cache.entries
    list_cache.fail.add("invalidate_all")

    if mutation == "update":
        updated = await service.update(created.id, ArticleUpdate(title="A2"))
        assert updated.title == "A2"
    else:
        await service.delete(created.id)

    assert ("delete", created.id) in entity_cache.calls
    assert created.id not in entity_cache.entries


@pytest.mark.asyncio
async def test_update_ignores_explicit_nulls(service):
    created = await service.create(_new())
    updated = await service.update(created.id, ArticleUpdate(title=None, content="B2"))
    assert updated.title == "A"
    assert updated.content == "B2"


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_delete_invalidates_both_caches(service, store, entity_cache, list_cache):
    created = await service.create(_new())
    await service.get(created.id)
    list_cache.calls.clear()

    await service.delete(created.id)
    assert store.calls[-2:] == ["get_by_id", "delete"]
    assert created.id not in entity_cache.entries
    assert _names(list_cache.calls) == ["invalidate_all"]


@pytest.mark.asyncio
async def test_delete_missing_article_takes_no_action(service, store, entity_cache, list_cache):
    with pytest.raises(NotFoundError):
        await service.delete(3)
    assert store.calls == ["get_by_id"]
    assert entity_cache.calls == []
    assert list_cache.calls == []


@pytest.mark.asyncio
async def test_delete_twice_reports_not_found(service, entity_cache, list_cache):
    created = await service.create(_new())
    entity_cache.fail.add("delete")
    list_cache.fail.add("invalidate_all")

    await service.delete(created.id)
    with pytest.raises(NotFoundError):
        await service.delete(created.id)


@pytest.mark.asyncio
async def test_delete_store_failure_skips_invalidation(service, store, entity_cache, list_cache):
    created = await service.create(_new())
    list_cache.calls.clear()
    store.fail.add("delete")
    with pytest.raises(StoreError):
        await service.delete(created.id)
    assert entity_cache.calls == []
    assert list_cache.calls == []


# ---------------------------------------------------------------------------
# No caches configured
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_service_without_caches_is_fully_functional(store):
    service = ArticleService(store)
    created = await service.create(_new())
    assert (await service.get(created.id)).title == "A"
    assert (await service.list(10, 0)).total == 1
    await service.update(created.id, ArticleUpdate(title="A2"))
    assert (await service.get(created.id)).title == "A2"
    await service.delete(created.id)
    with pytest.raises(NotFoundError):
        await service.get(created.id)


# ---------------------------------------------------------------------------
# End-to-end scenario over the real cache adapters
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_scenario_with_memory_backed_caches(store):
    backend = MemoryCache()
    service = ArticleService(store, ArticleEntityCache(backend), ArticleListCache(backend))

    created = await service.create(ArticleCreate(title="A", content="B", author_id=1))
    assert created.id == 1

    fetched = await service.get(1)
    assert (fetched.title, fetched.content, fetched.author_id) == ("A", "B", 1)
    assert await service.get(1) == fetched  # served from cache this time

    await service.update(1, ArticleUpdate(title="A2"))
    assert (await service.get(1)).title == "A2"

    assert (await service.list(10, 0)).total == 1

    await service.delete(1)
    with pytest.raises(NotFoundError):
        await service.get(1)
    assert backend.stats["hits"] >= 1
