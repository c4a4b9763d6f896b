import base64
import logging

import requests

from config import GITHUB_API_URL, GITHUB_TOKEN, HTTP_TIMEOUT

logger = logging.getLogger(__name__)

COPILOT_LOGINS = ("copilot-swe-agent", "Copilot")

SUGGESTED_ACTORS_QUERY = """
query($owner: String!, $name: String!) {
  repository(owner: $owner, name: $name) {
    suggestedActors(capabilities: [CAN_BE_ASSIGNED], first: 100) {
      nodes { login __typename ... on Bot { id } }
    }
  }
}
"""

ISSUE_ID_QUERY = """
query($owner: String!, $name: String!, $number: Int!) {
  repository(owner: $owner, name: $name) { issue(number: $number) { id } }
}
"""

REPLACE_ACTORS_MUTATION = """
mutation($issueId: ID!, $actorIds: [ID!]!) {
  replaceActorsForAssignable(input: {assignableId: $issueId, actorIds: $actorIds}) {
    assignable { ... on Issue { id assignees(first: 10) { nodes { login } } } }
  }
}
"""


class GitHubError(Exception):
    pass


def parse_repo_identifier(identifier):
    owner, _, repo = (identifier or "").strip().partition("/")
    if not owner or not repo or "/" in repo:
        raise ValueError('Repository identifier must be in format "owner/repo"')
    return owner, repo


def _headers():
    return {
        "Accept": "application/vnd.github+json",
        "Authorization": f"Bearer {GITHUB_TOKEN}",
        "X-GitHub-Api-Version": "2022-11-28",
    }


def _repo_url(owner, repo, path=""):
    return f"{GITHUB_API_URL}/repos/{owner}/{repo}{path}"


def _compact(data):
    return {k: v for k, v in data.items() if v is not None}


def github_get_repository(owner, repo):
    r = requests.get(_repo_url(owner, repo), headers=_headers(), timeout=HTTP_TIMEOUT)
    r.raise_for_status()
    return r.json()


def github_create_issue(owner, repo, title, body=None, labels=None, assignees=None, milestone=None):
    data = _compact({"title": title, "body": body, "labels": labels,
                     "assignees": assignees, "milestone": milestone})
    r = requests.post(_repo_url(owner, repo, "/issues"), headers=_headers(), json=data, timeout=HTTP_TIMEOUT)
    r.raise_for_status()
    return r.json()


def github_update_issue(owner, repo, issue_number, title=None, body=None, state=None, labels=None):
    data = _compact({"title": title, "body": body, "state": state, "labels": labels})
    r = requests.patch(_repo_url(owner, repo, f"/issues/{issue_number}"), headers=_headers(),
                       json=data, timeout=HTTP_TIMEOUT)
    r.raise_for_status()
    return r.json()


def github_add_comment(owner, repo, issue_number, comment):
    r = requests.post(_repo_url(owner, repo, f"/issues/{issue_number}/comments"), headers=_headers(),
                      json={"body": comment}, timeout=HTTP_TIMEOUT)
    r.raise_for_status()
    return r.json()


def github_assign_users(owner, repo, issue_number, assignees):
    r = requests.post(_repo_url(owner, repo, f"/issues/{issue_number}/assignees"), headers=_headers(),
                      json={"assignees": list(assignees)}, timeout=HTTP_TIMEOUT)
    r.raise_for_status()
    return r.json()


def github_create_branch(owner, repo, branch_name, base_branch="main"):
    r = requests.get(_repo_url(owner, repo, f"/git/ref/heads/{base_branch}"), headers=_headers(),
                     timeout=HTTP_TIMEOUT)
    r.raise_for_status()
    sha = r.json()["object"]["sha"]
    r = requests.post(_repo_url(owner, repo, "/git/refs"), headers=_headers(),
                      json={"ref": f"refs/heads/{branch_name}", "sha": sha}, timeout=HTTP_TIMEOUT)
    r.raise_for_status()
    return r.json()


def github_create_pull_request(owner, repo, title, head, base, body=None, draft=False):
    data = _compact({"title": title, "head": head, "base": base, "body": body, "draft": draft})
    r = requests.post(_repo_url(owner, repo, "/pulls"), headers=_headers(), json=data, timeout=HTTP_TIMEOUT)
    r.raise_for_status()
    return r.json()


def github_request_review(owner, repo, pull_number, reviewers):
    r = requests.post(_repo_url(owner, repo, f"/pulls/{pull_number}/requested_reviewers"), headers=_headers(),
                      json={"reviewers": list(reviewers)}, timeout=HTTP_TIMEOUT)
    r.raise_for_status()
    return r.json()


def github_create_or_update_file(owner, repo, path, content, message, branch=None):
    url = _repo_url(owner, repo, f"/contents/{path}")
    # existing files need their blob sha to be overwritten
    r = requests.get(url, headers=_headers(), params=_compact({"ref": branch}), timeout=HTTP_TIMEOUT)
    sha = None
    if r.status_code != 404:
        r.raise_for_status()
        sha = r.json().get("sha")
    data = _compact({
        "message": message,
        "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
        "branch": branch,
        "sha": sha,
    })
    r = requests.put(url, headers=_headers(), json=data, timeout=HTTP_TIMEOUT)
    r.raise_for_status()
    return r.json()


def github_graphql(query, variables=None):
    r = requests.post(f"{GITHUB_API_URL}/graphql", headers=_headers(),
                      json={"query": query, "variables": variables or {}}, timeout=HTTP_TIMEOUT)
    r.raise_for_status()
    payload = r.json()
    if payload.get("errors"):
        messages = "; ".join(e.get("message", "unknown error") for e in payload["errors"])
        raise GitHubError(f"GraphQL request failed: {messages}")
    return payload.get("data") or {}


def github_assign_issue_to_copilot(owner, repo, issue_number):
    data = github_graphql(SUGGESTED_ACTORS_QUERY, {"owner": owner, "name": repo})
    nodes = (((data.get("repository") or {}).get("suggestedActors") or {}).get("nodes")) or []
    bot = next((n for n in nodes if n.get("login") in COPILOT_LOGINS and n.get("id")), None)
    if bot is None:
        raise GitHubError(f"Copilot coding agent is not available in {owner}/{repo}")

    data = github_graphql(ISSUE_ID_QUERY, {"owner": owner, "name": repo, "number": int(issue_number)})
    issue = (data.get("repository") or {}).get("issue")
    if not issue:
        raise GitHubError(f"Issue #{issue_number} not found in {owner}/{repo}")

    data = github_graphql(REPLACE_ACTORS_MUTATION, {"issueId": issue["id"], "actorIds": [bot["id"]]})
    logger.info("Assigned %s/%s#%s to %s", owner, repo, issue_number, bot["login"])
    return data
