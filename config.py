import os
from dotenv import load_dotenv
from requests.auth import HTTPBasicAuth

load_dotenv()

# --- Jira ---
JIRA_DOMAIN = os.getenv("JIRA_DOMAIN")  # e.g. your-domain.atlassian.net
JIRA_BASE = os.getenv("JIRA_BASE") or (f"https://{JIRA_DOMAIN}" if JIRA_DOMAIN else None)
JIRA_EMAIL = os.getenv("JIRA_EMAIL")
JIRA_API_TOKEN = os.getenv("JIRA_API_TOKEN")
JIRA_AC_FIELD = os.getenv("JIRA_AC_FIELD")  # e.g. customfield_10035
jira_auth = HTTPBasicAuth(JIRA_EMAIL, JIRA_API_TOKEN)

# --- GitHub ---
GITHUB_TOKEN = os.getenv("GITHUB_TOKEN")
GITHUB_API_URL = os.getenv("GITHUB_API_URL", "https://api.github.com").rstrip("/")
GITHUB_REPO = os.getenv("GITHUB_REPO")  # default owner/repo for the webhook

# --- OpenAI ---
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-5")

# --- Service ---
WEBHOOK_SECRET = os.getenv("WEBHOOK_SECRET", "change-me")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
HTTP_TIMEOUT = int(os.getenv("HTTP_TIMEOUT", "30"))
