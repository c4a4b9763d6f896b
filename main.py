import argparse
import hmac
import logging
import re
import sys
import webbrowser
from typing import Optional

import requests
import uvicorn
from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool

from ac_parser import extract_criteria
from ai_generator import apply_suggestions, suggest_test_cases
from config import GITHUB_REPO, LOG_LEVEL, WEBHOOK_SECRET
from github_helpers import (
    GitHubError,
    github_assign_issue_to_copilot,
    github_create_branch,
    github_create_issue,
    parse_repo_identifier,
)
from issue_body import generate_issue_body, issue_labels, issue_title
from jira_helpers import jira_add_comment, jira_get_acceptance_criteria, jira_get_issue, jira_update_issue

logger = logging.getLogger(__name__)

app = FastAPI(title="jira-to-github")


def setup_logging(level=LOG_LEVEL):
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def branch_name_for(issue):
    slug = re.sub(r"[^a-z0-9]+", "-", issue.summary.lower()).strip("-")[:40].rstrip("-")
    return f"feature/{issue.key}-{slug}" if slug else f"feature/{issue.key}"


# --- Core: Jira ticket -> GitHub issue ---
def process_ticket(ticket_key, repo_identifier, ai_test_cases=False, branch_from=None, assign_copilot=True):
    owner, repo = parse_repo_identifier(repo_identifier)

    print("[Step 1]: Fetching Jira ticket...")
    issue = jira_get_issue(ticket_key)
    print(f"Found ticket: \"{issue.key} - {issue.summary}\" ({issue.issue_type}, {issue.status})")

    print("[Step 2]: Extracting acceptance criteria...")
    criteria = jira_get_acceptance_criteria(issue)
    if not criteria:
        print("⚠️  No acceptance criteria found.")
    for ac in criteria:
        print(f"   {ac.id}: {ac.criterion[:60]}")
    if ai_test_cases and criteria:
        criteria = apply_suggestions(criteria, suggest_test_cases(issue, criteria))

    print("[Step 3]: Generating Copilot-optimized GitHub issue...")
    title = issue_title(issue)
    labels = issue_labels(issue)
    body = generate_issue_body(issue, criteria)

    print("[Step 4]: Creating GitHub issue...")
    created = github_create_issue(owner, repo, title, body=body, labels=labels)
    issue_number = created["number"]
    issue_url = created.get("html_url") or f"https://github.com/{owner}/{repo}/issues/{issue_number}"
    print(f"✅ GitHub issue created: {issue_url}")

    print("[Step 5]: Moving Jira ticket to \"In Progress\"...")
    try:
        jira_update_issue(
            ticket_key,
            status="In Progress",
            comment="Development started - GitHub issue created and ready for implementation.",
        )
    except requests.RequestException as e:
        logger.error("Failed to update Jira ticket %s: %s", ticket_key, e)
        print("You may need to manually transition the ticket to \"In Progress\"")

    print("[Step 6]: Linking Jira ticket to GitHub issue...")
    try:
        jira_add_comment(ticket_key, f"GitHub Issue Created: [Issue #{issue_number}]({issue_url})")
    except requests.RequestException as e:
        logger.warning("Could not add comment to Jira: %s", e)

    branch = None
    if branch_from:
        branch = branch_name_for(issue)
        print(f"[Step 7]: Creating branch {branch} from {branch_from}...")
        github_create_branch(owner, repo, branch, branch_from)

    if assign_copilot:
        print("[Step 8]: Assigning issue to \"Copilot Agent\"...")
        github_assign_issue_to_copilot(owner, repo, issue_number)
        print("✅ Issue assigned to Copilot")

    return {
        "jira_key": issue.key,
        "issue_number": issue_number,
        "issue_url": issue_url,
        "branch": branch,
        "criteria": [ac.to_dict() for ac in criteria],
    }


def show_ticket(ticket_key, repo_identifier, open_browser=False):
    owner, repo = parse_repo_identifier(repo_identifier)
    issue = jira_get_issue(ticket_key)
    criteria = jira_get_acceptance_criteria(issue)

    print("🎫 JIRA TICKET INFORMATION")
    print("================================")
    print(f"Key: {issue.key}")
    print(f"Summary: {issue.summary}")
    print(f"Status: {issue.status}")
    print(f"Type: {issue.issue_type}")
    print(f"Priority: {issue.priority}")
    print(f"Assignee: {issue.assignee or 'Unassigned'}")
    print(f"Reporter: {issue.reporter or 'Unknown'}")
    print(f"Labels: {', '.join(issue.labels) or 'None'}")
    print()
    print("📝 DESCRIPTION")
    print("================================")
    print(issue.description or "No description provided")
    print()
    print("✅ ACCEPTANCE CRITERIA")
    print("================================")
    if not criteria:
        print("No acceptance criteria found")
    for i, ac in enumerate(criteria, start=1):
        print(f"{i}. {ac.id}: {ac.criterion}")
        for test in ac.test_cases or ():
            print(f"   - {test}")
    print()
    if issue.attachments:
        print("📎 ATTACHMENTS")
        print("================================")
        for i, att in enumerate(issue.attachments, start=1):
            print(f"{i}. {att.filename} ({att.mime_type})")
            print(f"   Size: {round(att.size / 1024)}KB")
            print(f"   Design file: {'Yes' if att.is_design else 'No'}")
        print()

    repo_url = f"https://github.com/{owner}/{repo}"
    print("🚀 SUMMARY")
    print("================================")
    print(f"Ticket: {issue.key} - {issue.summary}")
    print(f"Repository: {owner}/{repo} ({repo_url})")
    print(f"Acceptance Criteria: {len(criteria)} items")
    print(f"Attachments: {len(issue.attachments)} files")
    print(f"Design files: {len(issue.design_files)}")
    if open_browser:
        webbrowser.open(repo_url)
    return criteria


# --- Web surface ---
@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/criteria")
async def criteria_endpoint(request: Request):
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Body must be JSON")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Body must be a JSON object")
    criteria = extract_criteria(body.get("document"), body.get("acceptance_criteria"), body.get("key") or "")
    return {"criteria": [ac.to_dict() for ac in criteria]}


@app.post("/webhook/jira")
async def jira_webhook(request: Request, repo: Optional[str] = None,
                       x_webhook_secret: Optional[str] = Header(default=None)):
    if not x_webhook_secret or not hmac.compare_digest(x_webhook_secret.encode(), WEBHOOK_SECRET.encode()):
        raise HTTPException(status_code=401, detail="Invalid webhook secret")
    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Body must be JSON")

    issue = payload.get("issue") if isinstance(payload, dict) else None
    issue_key = issue.get("key") if isinstance(issue, dict) else None
    repo = repo or GITHUB_REPO
    if not issue_key:
        raise HTTPException(status_code=400, detail="Payload has no issue key")
    if not repo:
        raise HTTPException(status_code=400, detail="No target repository configured")

    logger.info("Webhook received for %s -> %s", issue_key, repo)
    try:
        return await run_in_threadpool(process_ticket, issue_key, repo)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (requests.RequestException, GitHubError) as e:
        logger.error("Failed to process %s: %s", issue_key, e)
        raise HTTPException(status_code=502, detail=str(e))


# --- CLI ---
def create_parser():
    parser = argparse.ArgumentParser(description="Turn Jira tickets into Copilot-ready GitHub issues")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("get-ticket", help="Show a Jira ticket and its acceptance criteria")
    p.add_argument("ticket")
    p.add_argument("repo", help="owner/repo")
    p.add_argument("--open", action="store_true", help="Open the repository in a browser")

    p = sub.add_parser("jira-to-issue", help="Create a GitHub issue from a Jira ticket")
    p.add_argument("ticket")
    p.add_argument("repo", help="owner/repo")
    p.add_argument("--ai-test-cases", action="store_true", help="Ask OpenAI for missing test cases")
    p.add_argument("--branch-from", metavar="BASE", help="Also create a feature branch from BASE")
    p.add_argument("--no-copilot", action="store_true", help="Do not assign the issue to Copilot")

    p = sub.add_parser("serve", help="Run the webhook server")
    p.add_argument("--host", default="0.0.0.0")
    p.add_argument("--port", type=int, default=8000)
    return parser


def print_hints(message):
    if "certificate" in message.lower():
        print("\n💡 SSL certificate issue detected. Check JIRA_BASE / JIRA_DOMAIN in your .env file.")
    elif "401" in message or "authentication" in message.lower():
        print("\n💡 Authentication issue detected. Check JIRA_EMAIL, JIRA_API_TOKEN and GITHUB_TOKEN.")


def main(argv=None):
    args = create_parser().parse_args(argv)
    setup_logging("DEBUG" if args.debug else LOG_LEVEL)

    if args.command == "serve":
        uvicorn.run(app, host=args.host, port=args.port)
        return 0

    try:
        if args.command == "get-ticket":
            show_ticket(args.ticket, args.repo, open_browser=args.open)
        else:
            process_ticket(
                args.ticket,
                args.repo,
                ai_test_cases=args.ai_test_cases,
                branch_from=args.branch_from,
                assign_copilot=not args.no_copilot,
            )
    except (requests.RequestException, GitHubError, ValueError) as e:
        print(f"❌ Failed: {e}", file=sys.stderr)
        print_hints(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
