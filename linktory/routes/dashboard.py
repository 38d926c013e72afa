"""Server-rendered moderation dashboard."""

from html import escape

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse
from sqlalchemy.ext.asyncio import AsyncSession

from linktory.database import get_db
from linktory.logging_config import get_logger
from linktory.services import link_service, user_service

logger = get_logger(__name__)
router = APIRouter(tags=["dashboard"])

_STYLE = """
body { font-family: sans-serif; padding: 20px; background: #fafafa; }
h1 { color: #e91e63; }
h2 { color: #333; margin-top: 30px; }
ul, ol { background: #fff; padding: 15px 35px; border-radius: 10px; box-shadow: 0 2px 5px rgba(0,0,0,0.1); }
li { margin-bottom: 6px; }
.status { font-size: 0.85em; color: #666; }
"""


def _items(rows: list[str]) -> str:
    if not rows:
        return "<li><em>Nothing yet</em></li>"
    return "".join(f"<li>{row}</li>" for row in rows)


@router.get("/dashboard", response_class=HTMLResponse)
async def dashboard(db: AsyncSession = Depends(get_db)):
    links = await link_service.recent_links(db, limit=20)
    reports = await link_service.recent_reports(db, limit=20)
    leaders = await user_service.top_by_points(db, 10)

    link_rows = [
        f"{escape(link.url)} <span class='status'>[{escape(link.status)}] "
        f"by {escape(str(link.submitted_by or 'unknown'))}</span>"
        for link in links
    ]
    report_rows = [
        f"{escape(url)} <span class='status'>reported by {report.reported_by}: "
        f"{escape(report.reason)}</span>"
        for report, url in reports
    ]
    leader_rows = [f"{escape(user.username)} ({user.points} pts)" for user in leaders]

    return HTMLResponse(
        f"""<!doctype html>
<html>
  <head>
    <meta charset="utf-8">
    <title>Linktory Dashboard</title>
    <style>{_STYLE}</style>
  </head>
  <body>
    <h1>📊 Linktory Dashboard</h1>
    <h2>Recent Links</h2>
    <ul>{_items(link_rows)}</ul>
    <h2>Recent Reports</h2>
    <ul>{_items(report_rows)}</ul>
    <h2>Leaderboard</h2>
    <ol>{_items(leader_rows)}</ol>
  </body>
</html>"""
    )
