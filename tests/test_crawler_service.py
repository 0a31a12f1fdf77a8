import unittest
from unittest.mock import AsyncMock, patch

from fakes import FakeGitHubClient, FakeRepository, metadata
from src.application.crawler_service import INTER_ITEM_DELAY, CrawlerService, build_search_query
from src.application.repository_upserter import RepositoryUpserter


class TestBuildSearchQuery(unittest.TestCase):
    def test_appends_language_clauses(self) -> None:
        self.assertEqual(
            build_search_query("stars:>5000", ["go", "rust"]),
            "stars:>5000+language:go+language:rust",
        )

    def test_trims_and_skips_blank_filters(self) -> None:
        self.assertEqual(
            build_search_query("stars:>5000", [" java ", "", "  ", "kotlin"]),
            "stars:>5000+language:java+language:kotlin",
        )

    def test_no_filters_leaves_query_alone(self) -> None:
        self.assertEqual(build_search_query("stars:>5000", []), "stars:>5000")
        self.assertEqual(build_search_query("stars:>5000", None), "stars:>5000")


class _FailingUpserter:
    """Delegates to a real upserter but fails for selected identifiers."""

    def __init__(self, inner: RepositoryUpserter, failing) -> None:
        self.inner = inner
        self.failing = set(failing)
        self.calls = []

    async def upsert(self, session, full_name):
        self.calls.append(full_name)
        if full_name in self.failing:
            raise RuntimeError(f"boom: {full_name}")
        return await self.inner.upsert(session, full_name)


def _client_with(names) -> FakeGitHubClient:
    repos = {name: metadata(index + 1, name) for index, name in enumerate(names)}
    return FakeGitHubClient(repos=repos, readmes={name: f"# {name}" for name in names})


@patch("src.application.crawler_service.asyncio.sleep", new_callable=AsyncMock)
class TestCrawlerService(unittest.IsolatedAsyncioTestCase):
    async def test_sends_search_parameters_per_page(self, mock_sleep) -> None:
        client = _client_with(["a/one", "a/two"])
        client.pages = [["a/one"], ["a/two"]]
        service = CrawlerService(client, RepositoryUpserter(client, FakeRepository()))

        await service.run("stars:>5000", ["go", "rust"], page_size=25, max_pages=2)

        self.assertEqual(
            client.search_calls,
            [
                ("stars:>5000+language:go+language:rust", 1, 25),
                ("stars:>5000+language:go+language:rust", 2, 25),
            ],
        )

    async def test_stops_after_max_pages(self, mock_sleep) -> None:
        client = _client_with(["a/one", "a/two", "a/three"])
        client.pages = [["a/one"], ["a/two"], ["a/three"]]
        repository = FakeRepository()
        service = CrawlerService(client, RepositoryUpserter(client, repository))

        summary = await service.run("stars:>1", page_size=1, max_pages=2)

        self.assertEqual(len(client.search_calls), 2)
        self.assertEqual(summary.pages, 2)
        self.assertEqual(sorted(repository.records), [1, 2])

    async def test_empty_page_terminates_pagination(self, mock_sleep) -> None:
        client = _client_with(["a/one", "a/two"])
        client.pages = [["a/one", "a/two"], []]
        repository = FakeRepository()
        service = CrawlerService(client, RepositoryUpserter(client, repository))

        await service.run("stars:>1", page_size=2, max_pages=5)

        self.assertEqual([call[1] for call in client.search_calls], [1, 2])
        self.assertEqual(sorted(repository.records), [1, 2])

    async def test_missing_search_response_terminates_pagination(self, mock_sleep) -> None:
        client = _client_with(["a/one"])
        client.pages = [None, ["a/one"]]
        repository = FakeRepository()
        service = CrawlerService(client, RepositoryUpserter(client, repository))

        summary = await service.run("stars:>1", max_pages=3)

        self.assertEqual(len(client.search_calls), 1)
        self.assertEqual(summary.pages, 0)
        self.assertEqual(repository.upsert_calls, 0)

    async def test_item_failure_does_not_abort_run(self, mock_sleep) -> None:
        names = ["a/one", "a/two", "a/three", "a/four", "a/five"]
        client = _client_with(names)
        client.pages = [names]
        repository = FakeRepository()
        upserter = _FailingUpserter(RepositoryUpserter(client, repository), failing=["a/three"])
        service = CrawlerService(client, upserter)

        summary = await service.run("stars:>1", page_size=5, max_pages=1)

        self.assertEqual(upserter.calls, names)
        self.assertEqual(sorted(repository.records), [1, 2, 4, 5])
        self.assertEqual(summary.processed, 4)
        self.assertEqual(summary.failed, 1)

    async def test_invalid_identifier_in_results_is_skipped(self, mock_sleep) -> None:
        client = _client_with(["a/one"])
        client.pages = [["not-a-full-name", "a/one"]]
        repository = FakeRepository()
        service = CrawlerService(client, RepositoryUpserter(client, repository))

        summary = await service.run("stars:>1", max_pages=1)

        self.assertEqual(sorted(repository.records), [1])
        self.assertEqual(summary.failed, 1)

    async def test_pauses_between_items_not_pages(self, mock_sleep) -> None:
        client = _client_with(["a/one", "a/two", "a/three"])
        client.pages = [["a/one", "a/two"], ["a/three"]]
        service = CrawlerService(client, RepositoryUpserter(client, FakeRepository()))

        await service.run("stars:>1", page_size=2, max_pages=2)

        pauses = [call for call in mock_sleep.await_args_list if call.args == (INTER_ITEM_DELAY,)]
        self.assertEqual(len(pauses), 2)

    async def test_no_pause_after_final_item(self, mock_sleep) -> None:
        client = _client_with(["a/one"])
        client.pages = [["a/one"]]
        service = CrawlerService(client, RepositoryUpserter(client, FakeRepository()))

        await service.run("stars:>1", max_pages=1)

        pauses = [call for call in mock_sleep.await_args_list if call.args == (INTER_ITEM_DELAY,)]
        self.assertEqual(pauses, [])
