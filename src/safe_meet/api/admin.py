"""Operator API endpoints with simple token auth."""

from __future__ import annotations

from datetime import date  # noqa: TC003
from typing import TYPE_CHECKING, Literal

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.responses import HTMLResponse

from safe_meet.api.schemas import (
    RejectRequest,
    serialize_admin_session,
    serialize_overview,
    serialize_review_item,
    serialize_revenue,
    serialize_utilization,
)
from safe_meet.domain.sessions import SessionStatus

if TYPE_CHECKING:
    from safe_meet.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])

SessionFilter = Literal["all", "pending", "confirmed", "completed"]


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


async def operator_name(x_operator: str | None = Header(default=None)) -> str:
    """Return the operator recorded in the audit trail."""
    return x_operator or "admin"


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/reviews", dependencies=[Depends(require_admin)])
async def list_reviews(request: Request, limit: int = 50) -> dict[str, object]:
    """Return verification photos awaiting a decision."""
    container: AppContainer = request.app.state.container
    items = container.review_service.list_pending(limit)
    return {"reviews": [serialize_review_item(item) for item in items]}


@router.post("/reviews/{session_id}/approve", dependencies=[Depends(require_admin)])
async def approve_review(
    session_id: str, request: Request, operator: str = Depends(operator_name)
) -> dict[str, object]:
    """Approve a submitted verification."""
    container: AppContainer = request.app.state.container
    session = container.review_service.approve(session_id, reviewer=operator)
    return serialize_admin_session(session)


@router.post("/reviews/{session_id}/reject", dependencies=[Depends(require_admin)])
async def reject_review(
    session_id: str,
    payload: RejectRequest,
    request: Request,
    operator: str = Depends(operator_name),
) -> dict[str, object]:
    """Reject a submitted verification so the buyer can retry."""
    container: AppContainer = request.app.state.container
    session = container.review_service.reject(
        session_id, reason=payload.reason, reviewer=operator
    )
    return serialize_admin_session(session)


@router.post("/sessions/{session_id}/complete", dependencies=[Depends(require_admin)])
async def complete_session(
    session_id: str, request: Request, operator: str = Depends(operator_name)
) -> dict[str, object]:
    """Record a completed cash handover."""
    container: AppContainer = request.app.state.container
    session = container.session_service.mark_completed(session_id, operator=operator)
    return serialize_admin_session(session)


@router.post("/sessions/{session_id}/cancel", dependencies=[Depends(require_admin)])
async def cancel_session(
    session_id: str, request: Request, operator: str = Depends(operator_name)
) -> dict[str, object]:
    """Cancel a session on behalf of the buyer or staff."""
    container: AppContainer = request.app.state.container
    before = container.session_service.get_session(session_id)
    session = container.session_service.cancel(session_id, actor=operator)
    if before.status == SessionStatus.CONFIRMED:
        await container.notification_service.notify_booking_cancelled(session)
    return serialize_admin_session(session)


@router.get("/sessions", dependencies=[Depends(require_admin)])
async def list_sessions(
    request: Request, filter: SessionFilter = "all", limit: int = 50  # noqa: A002
) -> dict[str, object]:
    """Return recent sessions for a dashboard filter."""
    container: AppContainer = request.app.state.container
    sessions = container.directory_service.list_sessions(filter, limit)
    return {"sessions": [serialize_admin_session(session) for session in sessions]}


@router.get("/sessions/{session_id}/audit", dependencies=[Depends(require_admin)])
async def session_audit(
    session_id: str, request: Request, limit: int = 50
) -> dict[str, object]:
    """Return the transition history of a session."""
    container: AppContainer = request.app.state.container
    container.session_service.get_session(session_id)
    return {"events": container.audit_service.history(session_id, limit)}


@router.get("/codes/{code}", dependencies=[Depends(require_admin)])
async def lookup_code(code: str, request: Request) -> dict[str, object]:
    """Resolve a confirmation code shown by a buyer at the meetup."""
    container: AppContainer = request.app.state.container
    session = container.session_service.lookup_confirmation_code(code)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return serialize_admin_session(session)


@router.get("/stats", dependencies=[Depends(require_admin)])
async def stats(request: Request) -> dict[str, object]:
    """Return dashboard headline numbers."""
    container: AppContainer = request.app.state.container
    directory = container.directory_service
    return {
        "overview": serialize_overview(directory.overview()),
        "status_counts": directory.status_counts(),
        "revenue": [serialize_revenue(row) for row in directory.revenue_summary()],
    }


@router.get("/utilization", dependencies=[Depends(require_admin)])
async def utilization(day: date, request: Request) -> dict[str, object]:
    """Return per-location bookings against capacity for a date."""
    container: AppContainer = request.app.state.container
    rows = container.directory_service.location_utilization(day)
    return {
        "day": day.isoformat(),
        "locations": [serialize_utilization(row) for row in rows],
    }


@router.get("/ui", response_class=HTMLResponse)
async def admin_ui() -> HTMLResponse:
    """Minimal operator UI that consumes the admin API."""
    return HTMLResponse(_ADMIN_UI_HTML)


_ADMIN_UI_HTML = """<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>Safe-Meet Cash Payments</title>
    <style>
      body { font-family: ui-sans-serif, system-ui, sans-serif; margin: 2rem; }
      .row { margin-bottom: 1rem; }
      input, select { padding: 0.4rem 0.6rem; }
      button { padding: 0.4rem 0.8rem; margin-right: 0.5rem; }
      pre { background: #f6f6f6; padding: 1rem; overflow: auto; }
    </style>
  </head>
  <body>
    <h1>Safe-Meet Cash Payments</h1>
    <div class="row">
      <label>Admin token</label><br />
      <input id="token" type="password" placeholder="X-Admin-Token" />
    </div>
    <div class="row">
      <select id="filter">
        <option value="all">All</option>
        <option value="pending">Pending</option>
        <option value="confirmed">Confirmed</option>
        <option value="completed">Completed</option>
      </select>
      <button onclick="loadSessions()">Sessions</button>
      <button onclick="loadEndpoint('/admin/reviews')">Reviews</button>
      <button onclick="loadEndpoint('/admin/stats')">Stats</button>
    </div>
    <div class="row">
      <input id="code" placeholder="Confirmation code" />
      <button onclick="lookupCode()">Look up code</button>
    </div>
    <pre id="output">Ready.</pre>
    <script>
      function loadSessions() {
        const filter = document.getElementById('filter').value;
        loadEndpoint('/admin/sessions?filter=' + filter);
      }
      function lookupCode() {
        const code = document.getElementById('code').value.trim();
        loadEndpoint('/admin/codes/' + encodeURIComponent(code));
      }
      async function loadEndpoint(path) {
        const token = document.getElementById('token').value;
        const output = document.getElementById('output');
        output.textContent = 'Loading...';
        const res = await fetch(path, {
          headers: { 'X-Admin-Token': token }
        });
        if (!res.ok) {
          output.textContent = 'Error: ' + res.status;
          return;
        }
        const data = await res.json();
        output.textContent = JSON.stringify(data, null, 2);
      }
    </script>
  </body>
</html>
"""
