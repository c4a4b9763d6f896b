import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from ac_parser import Criterion, extract_criteria
from adf_renderer import render_adf
from config import HTTP_TIMEOUT, JIRA_AC_FIELD, JIRA_BASE, jira_auth

logger = logging.getLogger(__name__)

DESIGN_EXTENSIONS = (".fig", ".sketch", ".psd", ".ai", ".xd", ".png", ".jpg", ".jpeg", ".svg")
HEADERS = {"Accept": "application/json", "Content-Type": "application/json"}


@dataclass
class JiraAttachment:
    id: str
    filename: str
    mime_type: str
    size: int
    content: str  # download URL
    is_design: bool = False


@dataclass
class JiraIssue:
    key: str
    id: str
    summary: str
    status: str
    issue_type: str
    description: str = ""
    description_doc: Optional[Dict[str, Any]] = None  # raw ADF, when Jira sent one
    acceptance_criteria: Optional[List[str]] = None
    assignee: Optional[str] = None
    reporter: Optional[str] = None
    priority: str = "Medium"
    labels: List[str] = field(default_factory=list)
    attachments: List[JiraAttachment] = field(default_factory=list)
    custom_fields: Dict[str, Any] = field(default_factory=dict)

    @property
    def design_files(self):
        return [a for a in self.attachments if a.is_design]


def _api(path):
    return f"{JIRA_BASE}/rest/api/3{path}"


def _name(value, attr="name"):
    return value.get(attr) if isinstance(value, dict) else None


def read_ac_field(value) -> Optional[List[str]]:
    """Normalize the custom AC field: list of strings, multi-line text or ADF."""
    if value is None:
        return None
    if isinstance(value, dict):
        value = render_adf(value)
    if isinstance(value, str):
        lines = [ln.strip().lstrip("-*• ").strip() for ln in value.splitlines()]
        return [ln for ln in lines if ln]
    if isinstance(value, list):
        return [v if isinstance(v, str) else str(_name(v, "value") or "") for v in value]
    return None


def map_jira_issue(payload) -> JiraIssue:
    fields = payload.get("fields") or {}
    raw_desc = fields.get("description")
    if isinstance(raw_desc, dict):
        description, description_doc = render_adf(raw_desc), raw_desc
    else:
        description, description_doc = (raw_desc or "").strip(), None

    return JiraIssue(
        key=payload.get("key", ""),
        id=str(payload.get("id", "")),
        summary=fields.get("summary") or "",
        status=_name(fields.get("status")) or "Unknown",
        issue_type=_name(fields.get("issuetype")) or "Unknown",
        description=description,
        description_doc=description_doc,
        acceptance_criteria=read_ac_field(fields.get(JIRA_AC_FIELD)) if JIRA_AC_FIELD else None,
        assignee=_name(fields.get("assignee"), "displayName"),
        reporter=_name(fields.get("reporter"), "displayName"),
        priority=_name(fields.get("priority")) or "Medium",
        labels=fields.get("labels") or [],
        custom_fields=fields,
    )


def jira_get_issue(issue_key) -> JiraIssue:
    r = requests.get(_api(f"/issue/{issue_key}"), auth=jira_auth, headers=HEADERS, timeout=HTTP_TIMEOUT)
    r.raise_for_status()
    issue = map_jira_issue(r.json())
    issue.attachments = jira_get_issue_attachments(issue_key)

    logger.info("Retrieved Jira issue %s", issue_key)
    logger.info("- Description: %s", "Present" if issue.description else "Missing")
    logger.info("- Attachments: %d files", len(issue.attachments))
    logger.info("- Design files: %d", len(issue.design_files))
    return issue


def jira_get_issue_attachments(issue_key) -> List[JiraAttachment]:
    try:
        r = requests.get(_api(f"/issue/{issue_key}"), auth=jira_auth, headers=HEADERS,
                         params={"fields": "attachment"}, timeout=HTTP_TIMEOUT)
        r.raise_for_status()
        raw = (r.json().get("fields") or {}).get("attachment") or []
    except requests.RequestException as e:
        logger.error("Failed to get attachments for %s: %s", issue_key, e)
        return []

    attachments = []
    for att in raw:
        filename = att.get("filename", "")
        mime = att.get("mimeType", "")
        attachments.append(JiraAttachment(
            id=str(att.get("id", "")),
            filename=filename,
            mime_type=mime,
            size=att.get("size") or 0,
            content=att.get("content", ""),
            is_design=filename.lower().endswith(DESIGN_EXTENSIONS) or mime.startswith("image/"),
        ))
    return attachments


def jira_get_acceptance_criteria(issue: JiraIssue) -> List[Criterion]:
    document = issue.description_doc if issue.description_doc is not None else issue.description
    criteria = extract_criteria(document, issue.acceptance_criteria, issue.key)
    if not criteria:
        logger.warning("No acceptance criteria could be derived for %s", issue.key)
    return criteria


def jira_transition_issue(issue_key, status) -> bool:
    url = _api(f"/issue/{issue_key}/transitions")
    r = requests.get(url, auth=jira_auth, headers=HEADERS, timeout=HTTP_TIMEOUT)
    r.raise_for_status()
    for t in r.json().get("transitions", []):
        if (_name(t.get("to")) or "").lower() == status.lower():
            r = requests.post(url, auth=jira_auth, headers=HEADERS,
                              json={"transition": {"id": t["id"]}}, timeout=HTTP_TIMEOUT)
            r.raise_for_status()
            return True
    logger.warning("No transition to '%s' available for %s", status, issue_key)
    return False


def jira_add_comment(issue_key, comment):
    body = {
        "body": {
            "type": "doc",
            "version": 1,
            "content": [{"type": "paragraph", "content": [{"type": "text", "text": comment}]}],
        }
    }
    r = requests.post(_api(f"/issue/{issue_key}/comment"), auth=jira_auth, headers=HEADERS,
                      json=body, timeout=HTTP_TIMEOUT)
    r.raise_for_status()
    return r.json()


def jira_update_issue(issue_key, status=None, comment=None, custom_fields=None):
    if status:
        jira_transition_issue(issue_key, status)
    if comment:
        jira_add_comment(issue_key, comment)
    if custom_fields:
        r = requests.put(_api(f"/issue/{issue_key}"), auth=jira_auth, headers=HEADERS,
                         json={"fields": custom_fields}, timeout=HTTP_TIMEOUT)
        r.raise_for_status()
