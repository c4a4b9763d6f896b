import pytest
import requests

import github_helpers
from github_helpers import (
    GitHubError,
    github_add_comment,
    github_assign_issue_to_copilot,
    github_assign_users,
    github_create_branch,
    github_create_issue,
    github_create_or_update_file,
    github_create_pull_request,
    github_get_repository,
    github_graphql,
    github_request_review,
    github_update_issue,
    parse_repo_identifier,
)

API = "https://api.github.test"


@pytest.fixture(autouse=True)
def github_env(monkeypatch):
    monkeypatch.setattr(github_helpers, "GITHUB_API_URL", API)
    monkeypatch.setattr(github_helpers, "GITHUB_TOKEN", "tkn")


class TestParseRepoIdentifier:

    def test_valid(self):
        assert parse_repo_identifier("acme/web") == ("acme", "web")

    @pytest.mark.parametrize("bad", ["", "acme", "acme/", "/web", "a/b/c", None])
    def test_invalid(self, bad):
        with pytest.raises(ValueError):
            parse_repo_identifier(bad)


def test_create_issue(monkeypatch, fake_response, recorder):
    post = recorder(fake_response({"number": 42, "html_url": "https://github.com/acme/web/issues/42"}))
    monkeypatch.setattr(github_helpers.requests, "post", post)

    created = github_create_issue("acme", "web", "[P-1] Title", body="b", labels=["x"])

    url, kwargs = post.calls[0]
    assert url == f"{API}/repos/acme/web/issues"
    assert kwargs["json"] == {"title": "[P-1] Title", "body": "b", "labels": ["x"]}
    assert kwargs["headers"]["Authorization"] == "Bearer tkn"
    assert created["number"] == 42


def test_update_issue_sends_only_given_fields(monkeypatch, fake_response, recorder):
    patch = recorder(fake_response({"number": 42}))
    monkeypatch.setattr(github_helpers.requests, "patch", patch)

    github_update_issue("acme", "web", 42, state="closed")

    assert patch.calls[0][0] == f"{API}/repos/acme/web/issues/42"
    assert patch.calls[0][1]["json"] == {"state": "closed"}


def test_comment_and_assignees(monkeypatch, fake_response, recorder):
    post = recorder(fake_response({}), fake_response({}))
    monkeypatch.setattr(github_helpers.requests, "post", post)

    github_add_comment("acme", "web", 42, "hello")
    github_assign_users("acme", "web", 42, ("octocat",))

    assert post.calls[0][0].endswith("/issues/42/comments")
    assert post.calls[0][1]["json"] == {"body": "hello"}
    assert post.calls[1][1]["json"] == {"assignees": ["octocat"]}


def test_create_branch_from_base_sha(monkeypatch, fake_response, recorder):
    get = recorder(fake_response({"object": {"sha": "abc123"}}))
    post = recorder(fake_response({"ref": "refs/heads/feature/P-1"}))
    monkeypatch.setattr(github_helpers.requests, "get", get)
    monkeypatch.setattr(github_helpers.requests, "post", post)

    github_create_branch("acme", "web", "feature/P-1", "develop")

    assert get.calls[0][0] == f"{API}/repos/acme/web/git/ref/heads/develop"
    assert post.calls[0][1]["json"] == {"ref": "refs/heads/feature/P-1", "sha": "abc123"}


def test_pull_request_and_repository(monkeypatch, fake_response, recorder):
    post = recorder(fake_response({"number": 7}))
    get = recorder(fake_response({"full_name": "acme/web"}))
    monkeypatch.setattr(github_helpers.requests, "post", post)
    monkeypatch.setattr(github_helpers.requests, "get", get)

    assert github_create_pull_request("acme", "web", "T", "feature/P-1", "main")["number"] == 7
    assert post.calls[0][1]["json"] == {"title": "T", "head": "feature/P-1", "base": "main", "draft": False}
    assert github_get_repository("acme", "web")["full_name"] == "acme/web"


def test_request_review(monkeypatch, fake_response, recorder):
    post = recorder(fake_response({"number": 7}))
    monkeypatch.setattr(github_helpers.requests, "post", post)

    github_request_review("acme", "web", 7, ("octocat", "hubot"))

    assert post.calls[0][0] == f"{API}/repos/acme/web/pulls/7/requested_reviewers"
    assert post.calls[0][1]["json"] == {"reviewers": ["octocat", "hubot"]}


class TestCreateOrUpdateFile:

    def test_new_file_has_no_sha(self, monkeypatch, fake_response, recorder):
        get = recorder(fake_response(status_code=404))
        put = recorder(fake_response({"content": {"path": "docs/AC.md"}}))
        monkeypatch.setattr(github_helpers.requests, "get", get)
        monkeypatch.setattr(github_helpers.requests, "put", put)

        github_create_or_update_file("acme", "web", "docs/AC.md", "hi", "Add AC", branch="feature/P-1")

        assert get.calls[0][1]["params"] == {"ref": "feature/P-1"}
        url, kwargs = put.calls[0]
        assert url == f"{API}/repos/acme/web/contents/docs/AC.md"
        assert kwargs["json"] == {"message": "Add AC", "content": "aGk=", "branch": "feature/P-1"}

    def test_existing_file_sends_sha(self, monkeypatch, fake_response, recorder):
        monkeypatch.setattr(github_helpers.requests, "get", recorder(fake_response({"sha": "blob1"})))
        put = recorder(fake_response({}))
        monkeypatch.setattr(github_helpers.requests, "put", put)

        github_create_or_update_file("acme", "web", "README.md", "hi", "Update")

        assert put.calls[0][1]["json"]["sha"] == "blob1"
        assert "branch" not in put.calls[0][1]["json"]

    def test_lookup_failure_raises(self, monkeypatch, fake_response, recorder):
        monkeypatch.setattr(github_helpers.requests, "get", recorder(fake_response(status_code=403)))
        put = recorder()
        monkeypatch.setattr(github_helpers.requests, "put", put)

        with pytest.raises(requests.HTTPError):
            github_create_or_update_file("acme", "web", "README.md", "hi", "Update")
        assert put.calls == []


def test_graphql_errors_raise(monkeypatch, fake_response, recorder):
    monkeypatch.setattr(github_helpers.requests, "post",
                        recorder(fake_response({"errors": [{"message": "Bad query"}]})))
    with pytest.raises(GitHubError, match="Bad query"):
        github_graphql("query { viewer { login } }")


class TestAssignCopilot:

    def actors(self, fake_response, *nodes):
        return fake_response({"data": {"repository": {"suggestedActors": {"nodes": list(nodes)}}}})

    def test_assigns_copilot_bot(self, monkeypatch, fake_response, recorder):
        post = recorder(
            self.actors(fake_response, {"login": "octocat", "__typename": "User"},
                        {"login": "copilot-swe-agent", "__typename": "Bot", "id": "BOT_1"}),
            fake_response({"data": {"repository": {"issue": {"id": "ISSUE_42"}}}}),
            fake_response({"data": {"replaceActorsForAssignable": {}}}),
        )
        monkeypatch.setattr(github_helpers.requests, "post", post)

        github_assign_issue_to_copilot("acme", "web", 42)

        assert post.calls[1][1]["json"]["variables"] == {"owner": "acme", "name": "web", "number": 42}
        assert post.calls[2][1]["json"]["variables"] == {"issueId": "ISSUE_42", "actorIds": ["BOT_1"]}

    def test_no_copilot_available(self, monkeypatch, fake_response, recorder):
        monkeypatch.setattr(github_helpers.requests, "post",
                            recorder(self.actors(fake_response, {"login": "octocat", "__typename": "User"})))
        with pytest.raises(GitHubError, match="not available"):
            github_assign_issue_to_copilot("acme", "web", 42)

    def test_issue_missing(self, monkeypatch, fake_response, recorder):
        post = recorder(
            self.actors(fake_response, {"login": "copilot-swe-agent", "__typename": "Bot", "id": "BOT_1"}),
            fake_response({"data": {"repository": {"issue": None}}}),
        )
        monkeypatch.setattr(github_helpers.requests, "post", post)
        with pytest.raises(GitHubError, match="not found"):
            github_assign_issue_to_copilot("acme", "web", 42)
