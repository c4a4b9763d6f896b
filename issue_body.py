import re

from config import JIRA_BASE

BASE_LABELS = ["jira-integration", "copilot-optimized"]


def issue_title(issue):
    return f"[{issue.key}] {issue.summary}"


def issue_labels(issue):
    issue_type = re.sub(r"\s+", "-", (issue.issue_type or "").strip().lower()) or "story"
    labels = BASE_LABELS + [issue_type]
    if issue.priority:
        labels.append(f"priority-{issue.priority.lower()}")
    return labels


def _criterion_checklist(ac):
    lines = [
        f"### {ac.id}: {ac.criterion}",
        "- [ ] Implementation completed",
        "- [ ] Tests written and passing",
        "- [ ] Code reviewed",
    ]
    lines += [f"- [ ] Test case: {t}" for t in ac.test_cases or ()]
    return "\n".join(lines)


def _verification(i, ac):
    return (f"**AC{i}**: {ac.criterion}\n"
            "- Use Copilot to generate implementation\n"
            "- Write tests to verify the criterion\n"
            "- Document how the code satisfies this AC")


def generate_issue_body(issue, criteria):
    description = issue.description or "No description provided"
    if criteria:
        checklist = "\n\n".join(_criterion_checklist(ac) for ac in criteria)
        requirements = "\n".join(f"- {ac.criterion}" for ac in criteria)
        verification = "\n\n".join(_verification(i, ac) for i, ac in enumerate(criteria, start=1))
    else:
        checklist = "> No acceptance criteria could be derived from the Jira ticket. Please clarify them before starting."
        requirements = "- See the description above"
        verification = "_No acceptance criteria to verify._"

    browse = f"{JIRA_BASE}/browse/{issue.key}" if JIRA_BASE else issue.key

    return f"""## User Story
{issue.summary}

## 📝 Description
{description}

## Acceptance Criteria
{checklist}

## GitHub Copilot Instructions

**This issue is optimized for GitHub Copilot code generation. Follow these steps:**

```
@workspace Implement the following user story with all acceptance criteria:

**User Story:** {issue.summary}

**Requirements:**
{requirements}

**Technical Requirements:**
- Follow the conventions already used in the repository
- Include comprehensive error handling
- Follow clean architecture principles
- Implement proper validation

Please generate:
1. Main implementation files
2. Type definitions/interfaces
3. Unit tests (if needed)
4. Integration tests (if needed)
5. Documentation

Focus on production-ready, maintainable code that fully satisfies each acceptance criterion.
```

### 3. Verify Each Acceptance Criterion
{verification}

### 4. Create Pull Request
When implementation is complete:
- Create PR with title: `[{issue.key}] {issue.summary}`
- Use `Closes #<issue-number>` to auto-close this issue
- Include test results and AC verification

## 🔗 Links
- **Jira Ticket:** [{issue.key}]({browse})
- **Priority:** {issue.priority or 'Not set'}
- **Issue Type:** {issue.issue_type or 'Unknown'}

## 📋 Definition of Done
- [ ] All acceptance criteria implemented
- [ ] Code reviewed and approved
- [ ] No breaking changes introduced

---
*This issue was automatically generated from Jira ticket {issue.key}*
*Use GitHub Copilot to implement the requirements above*"""
