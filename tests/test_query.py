"""
Tests for listing query construction and execution.
"""

import pytest

from mnews.core.errors import InvalidArgument
from mnews.services.query import (
    DEFAULT_SORT,
    MAX_PAGE_SIZE,
    build_listing,
    build_page_query,
    build_status_filter,
    contains,
    parse_int,
    run_listing,
)
from mnews.storage import Collections, InMemoryDocumentStorage

from conftest import make_article


# =============================================================================
# Predicates
# =============================================================================


class TestBuildListing:
    def test_no_params_is_published_only(self):
        query = build_listing({})

        assert query.predicate == {"status": "published"}
        assert query.skip == 0
        assert query.limit == 10
        assert query.sort == DEFAULT_SORT

    def test_search_is_case_insensitive_title_match(self):
        query = build_listing({"search": "Climate"})

        assert query.predicate == {
            "$and": [
                {"status": "published"},
                {"title": {"$regex": "Climate", "$options": "i"}},
            ]
        }

    def test_filters_combine_conjunctively(self):
        query = build_listing({"search": "ai", "publisher": "Daily", "tag": "tech"})
        clauses = query.predicate["$and"]

        assert {"status": "published"} in clauses
        assert {"title": contains("ai")} in clauses
        assert {"publisher.name": contains("Daily")} in clauses
        assert {"tags": "tech"} in clauses
        assert len(clauses) == 4

    def test_blank_params_are_ignored(self):
        query = build_listing({"search": "  ", "tag": ""})

        assert query.predicate == {"status": "published"}

    def test_premium_only(self):
        query = build_listing({}, premium_only=True)

        assert query.predicate == {"$and": [{"status": "published"}, {"isPremium": True}]}

    def test_base_without_status(self):
        query = build_listing({}, base={"author.email": "a@x.com"}, published_only=False)

        assert query.predicate == {"author.email": "a@x.com"}

    def test_regex_metacharacters_are_literal(self):
        assert contains("c++(intro)")["$regex"] == r"c\+\+\(intro\)"

    def test_tag_matches_stored_lowercase(self):
        query = build_listing({"tag": "Tech"})

        assert query.predicate == {"$and": [{"status": "published"}, {"tags": "tech"}]}

    def test_pagination(self):
        query = build_listing({"page": "2", "size": "5"})

        assert query.skip == 10
        assert query.limit == 5
        assert query.page.index == 2


class TestPaginationParams:
    @pytest.mark.parametrize("params", [
        {"page": "abc"},
        {"page": "-1"},
        {"size": "0"},
        {"size": "-5"},
        {"size": "ten"},
        {"size": str(MAX_PAGE_SIZE + 1)},
        {"page": "1.5"},
    ])
    def test_bad_values_rejected(self, params):
        with pytest.raises(InvalidArgument):
            build_listing(params)

    def test_parse_int_defaults(self):
        assert parse_int(None, "page", default=0) == 0
        assert parse_int("", "page", default=3) == 3
        assert parse_int(" 7 ", "page", default=0) == 7

    def test_page_query_has_no_status(self):
        query = build_page_query({"size": "20"})

        assert query.predicate == {}
        assert query.limit == 20


class TestStatusFilter:
    def test_absent(self):
        assert build_status_filter({}) == {}

    def test_known_status(self):
        assert build_status_filter({"status": "draft"}) == {"status": "draft"}

    def test_unknown_status(self):
        with pytest.raises(InvalidArgument):
            build_status_filter({"status": "archived"})


# =============================================================================
# Execution
# =============================================================================


@pytest.fixture
def store():
    return InMemoryDocumentStorage()


async def seed(store, docs):
    for doc in docs:
        await store.insert_one(Collections.ARTICLES, doc)


class TestRunListing:
    @pytest.mark.asyncio
    async def test_only_published_matching_articles(self, store):
        await seed(store, [
            make_article("Tech one", tags=["tech"]),
            make_article("Tech draft", tags=["tech"], status="draft"),
            make_article("Sports", tags=["sports"]),
        ])

        result = await run_listing(store, Collections.ARTICLES, build_listing({"tag": "tech"}))

        assert result["total"] == 1
        assert [a["title"] for a in result["items"]] == ["Tech one"]

    @pytest.mark.asyncio
    async def test_newest_first(self, store):
        await seed(store, [
            make_article("Old", age_minutes=30),
            make_article("New", age_minutes=1),
            make_article("Middle", age_minutes=10),
        ])

        result = await run_listing(store, Collections.ARTICLES, build_listing({}))

        assert [a["title"] for a in result["items"]] == ["New", "Middle", "Old"]

    @pytest.mark.asyncio
    async def test_pages_partition_the_full_listing(self, store):
        await seed(store, [make_article(f"A{i}", age_minutes=i % 4) for i in range(23)])

        full = await run_listing(store, Collections.ARTICLES, build_listing({"size": "100"}))
        pages = []
        for index in range(5):
            page = await run_listing(store, Collections.ARTICLES, build_listing({"page": index, "size": 5}))
            assert page["total"] == 23
            pages.extend(page["items"])

        assert [a["_id"] for a in pages] == [a["_id"] for a in full["items"]]

    @pytest.mark.asyncio
    async def test_page_past_the_end_is_empty(self, store):
        await seed(store, [make_article("Only")])

        result = await run_listing(store, Collections.ARTICLES, build_listing({"page": "3"}))

        assert result == {"items": [], "total": 1, "page": 3, "size": 10}
