"""
test_github_api.py

Unit tests for github_api.py.

requests.get is patched with mock responses, so these tests never touch the
network. Caching is switched off (use_cache=False) unless a test is about
the cache itself.
"""

import tempfile
import unittest
from unittest import mock

import requests

import github_api
from github_api import (
    INVALID_TOKEN,
    NETWORK_ERROR,
    NOT_FOUND,
    PRIVATE_REPO,
    RATE_LIMIT,
    fetch_commits,
    fetch_repository,
    parse_repo_input,
)


def _resp(status=200, body=None, headers=None):
    r = mock.Mock()
    r.status_code = status
    r.headers = headers or {}
    r.json.return_value = body if body is not None else {}
    return r


def _list_item(sha, message="feat: add x", parents=1):
    return {
        "sha": sha,
        "commit": {"message": message, "author": {"name": "Ann", "email": "ann@x.com", "date": "2024-01-02T10:00:00Z"}},
        "author": {"login": "ann"},
        "parents": [{"sha": f"p{i}"} for i in range(parents)],
    }


def _detail(additions, deletions, files):
    return {
        "stats": {"additions": additions, "deletions": deletions, "total": additions + deletions},
        "files": [{"filename": f} for f in files],
    }


class TestParseRepoInput(unittest.TestCase):

    def test_accepted_forms(self):
        for text in ("octocat/hello-world", "https://github.com/octocat/hello-world",
                     "http://github.com/octocat/hello-world/tree/main", "github.com/octocat/hello-world",
                     "https://github.com/octocat/hello-world.git", "  octocat/hello-world/  "):
            with self.subTest(text=text):
                self.assertEqual(parse_repo_input(text), (("octocat", "hello-world"), None))

    def test_rejected_forms(self):
        for text in ("", "   ", "octocat", "-bad/repo", "a/b/c", "https://gitlab.com/a/b", "owner/re po"):
            with self.subTest(text=text):
                parsed, err = parse_repo_input(text)
                self.assertIsNone(parsed)
                self.assertTrue(err)


class TestErrors(unittest.TestCase):

    def _error_for(self, response):
        with mock.patch.object(github_api.requests, "get", return_value=response):
            repo, err = fetch_repository("o", "r", use_cache=False)
        self.assertIsNone(repo)
        return err

    def test_not_found(self):
        self.assertEqual(self._error_for(_resp(404, {"message": "Not Found"})).kind, NOT_FOUND)

    def test_rate_limit_by_header(self):
        err = self._error_for(_resp(403, {"message": "Forbidden"}, {"X-RateLimit-Remaining": "0"}))
        self.assertEqual(err.kind, RATE_LIMIT)

    def test_rate_limit_by_message(self):
        err = self._error_for(_resp(403, {"message": "API rate limit exceeded for 1.2.3.4"}))
        self.assertEqual(err.kind, RATE_LIMIT)

    def test_too_many_requests(self):
        self.assertEqual(self._error_for(_resp(429)).kind, RATE_LIMIT)

    def test_forbidden_is_private(self):
        err = self._error_for(_resp(403, {"message": "Resource not accessible"}, {"X-RateLimit-Remaining": "42"}))
        self.assertEqual(err.kind, PRIVATE_REPO)

    def test_unauthorized(self):
        err = self._error_for(_resp(401, {"message": "Bad credentials"}))
        self.assertEqual(err.kind, INVALID_TOKEN)
        self.assertEqual(err.status, 401)

    def test_network_error(self):
        with mock.patch.object(github_api.requests, "get", side_effect=requests.ConnectionError("offline")):
            repo, err = fetch_repository("o", "r", use_cache=False)
        self.assertIsNone(repo)
        self.assertEqual(err.kind, NETWORK_ERROR)


class TestFetch(unittest.TestCase):

    def test_fetch_repository(self):
        body = {"name": "demo", "full_name": "octo/demo", "owner": {"login": "octo"},
                "html_url": "https://github.com/octo/demo", "stargazers_count": 7,
                "default_branch": "trunk", "created_at": "2020-05-01T00:00:00Z"}
        with mock.patch.object(github_api.requests, "get", return_value=_resp(200, body)):
            repo, err = fetch_repository("octo", "demo", use_cache=False)
        self.assertIsNone(err)
        self.assertEqual(repo.full_name, "octo/demo")
        self.assertEqual(repo.stars, 7)
        self.assertEqual(repo.default_branch, "trunk")
        self.assertEqual(repo.created_at.year, 2020)

    def test_fetch_commits_with_details(self):
        responses = {
            "https://api.github.com/repos/o/r/commits": _resp(200, [_list_item("a" * 40), _list_item("b" * 40, parents=2)]),
            "https://api.github.com/repos/o/r/commits/" + "a" * 40: _resp(200, _detail(30, 10, ["src/a.py", "README.md"])),
            "https://api.github.com/repos/o/r/commits/" + "b" * 40: _resp(500, {"message": "boom"}),
        }

        def fake_get(url, **kwargs):
            return responses[url]

        with mock.patch.object(github_api.requests, "get", side_effect=fake_get):
            commits, err = fetch_commits("o", "r", limit=10, use_cache=False)

        self.assertIsNone(err)
        self.assertEqual([c.sha for c in commits], ["a" * 40, "b" * 40])

        first = commits[0]
        self.assertEqual(first.author.email, "ann@x.com")
        self.assertEqual(first.author.username, "ann")
        self.assertEqual((first.stats.additions, first.stats.deletions, first.stats.total), (30, 10, 40))
        self.assertEqual(first.stats.files_changed, 2)
        self.assertEqual(first.files, ("src/a.py", "README.md"))
        self.assertEqual(first.timestamp.hour, 10)

        # failed detail call keeps the commit with zero stats
        second = commits[1]
        self.assertEqual(second.stats.total, 0)
        self.assertTrue(second.is_merge)

    def test_limit_and_pagination(self):
        calls = []

        def fake_get(url, params=None, **kwargs):
            calls.append(params)
            page = params["page"]
            items = [_list_item(f"{page}{i:039d}") for i in range(params["per_page"])]
            return _resp(200, items)

        with mock.patch.object(github_api.requests, "get", side_effect=fake_get):
            commits, err = fetch_commits("o", "r", limit=5, with_details=False, use_cache=False)

        self.assertIsNone(err)
        self.assertEqual(len(commits), 5)
        self.assertEqual(calls, [{"per_page": 5, "page": 1}])

    def test_list_error_is_returned(self):
        with mock.patch.object(github_api.requests, "get", return_value=_resp(404)):
            commits, err = fetch_commits("o", "missing", use_cache=False)
        self.assertEqual(commits, [])
        self.assertEqual(err.kind, NOT_FOUND)

    def test_cached_response_skips_network(self):
        body = {"name": "demo", "full_name": "octo/demo"}
        with tempfile.TemporaryDirectory() as tmp:
            with mock.patch.object(github_api.requests, "get", return_value=_resp(200, body)) as get:
                fetch_repository("octo", "demo", cache_dir=tmp)
                repo, err = fetch_repository("octo", "demo", cache_dir=tmp)
        self.assertIsNone(err)
        self.assertEqual(repo.full_name, "octo/demo")
        self.assertEqual(get.call_count, 1)


if __name__ == "__main__":
    unittest.main()
