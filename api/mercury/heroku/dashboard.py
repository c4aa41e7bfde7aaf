"""Links into the Heroku web dashboard."""

from urllib.parse import quote

DASHBOARD_BASE = "https://dashboard.heroku.com"


def activity_page_url(app_name: str) -> str:
    return f"{DASHBOARD_BASE}/apps/{quote(app_name, safe='')}/activity"
