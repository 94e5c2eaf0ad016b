import html
from typing import Any, Dict, Optional, Tuple

from app.config.settings import settings

_WRAPPER = '<div style="font-family: sans-serif; max-width: 600px; margin: 0 auto;">{body}</div>'
_BUTTON = (
    '<a href="{href}" style="display: inline-block; padding: 12px 24px; background: {color}; '
    'color: white; text-decoration: none; border-radius: 6px; margin-top: 20px;">{label}</a>'
)
_BOX = '<div style="background: #f3f4f6; padding: 20px; border-radius: 8px; margin: 20px 0;">{rows}</div>'


def _esc(value: Any, default: str = "") -> str:
    if value is None or value == "":
        return html.escape(default)
    return html.escape(str(value))


def _rows(pairs) -> str:
    return "".join(f"<p><strong>{label}:</strong> {_esc(value)}</p>" for label, value in pairs)


def _welcome(v: Dict[str, Any]) -> Tuple[str, str]:
    body = (
        f"<h1>Welcome, {_esc(v.get('name'), 'Player')}!</h1>"
        "<p>Thanks for joining PadelGraph, the social network for padel players.</p>"
        "<p>Get started by completing your profile and finding other players in your area.</p>"
        + _BUTTON.format(href=_esc(v.get("app_url"), settings.app_url), color="#22c55e", label="Complete Profile")
    )
    return "Welcome to PadelGraph!", _WRAPPER.format(body=body)


def _booking_confirmation(v: Dict[str, Any]) -> Tuple[str, str]:
    body = (
        "<h1>Booking Confirmed</h1>"
        f"<p>Hi {_esc(v.get('user_name'), 'Player')},</p>"
        "<p>Your booking has been confirmed:</p>"
        + _BOX.format(rows=_rows([
            ("Court", v.get("court_name")),
            ("Date", v.get("date")),
            ("Time", v.get("time")),
            ("Price", v.get("price")),
        ]))
        + "<p>See you on the court!</p>"
    )
    return f"Booking Confirmed - {v.get('court_name', '')}", _WRAPPER.format(body=body)


def _tournament_published(v: Dict[str, Any]) -> Tuple[str, str]:
    body = (
        "<h1>New Tournament Published</h1>"
        f"<p>A new tournament is available at {_esc(v.get('org_name'), 'your club')}:</p>"
        + _BOX.format(rows=_rows([
            ("Name", v.get("tournament_name")),
            ("Format", v.get("tournament_type")),
            ("Date", v.get("starts_at")),
        ]))
        + _BUTTON.format(href=_esc(v.get("tournament_url")), color="#4f46e5", label="View Details")
    )
    return f"New Tournament Published: {v.get('tournament_name', '')}", _WRAPPER.format(body=body)


def _registration_confirmed(v: Dict[str, Any]) -> Tuple[str, str]:
    body = (
        "<h1>Registration Confirmed</h1>"
        f"<p>Hi {_esc(v.get('name'), 'Player')},</p>"
        "<p>Your registration has been confirmed:</p>"
        + _BOX.format(rows=_rows([
            ("Tournament", v.get("tournament_name")),
            ("Format", v.get("tournament_type")),
            ("Date", v.get("starts_at")),
        ]))
        + "<p><strong>Important:</strong> remember to check in before the tournament starts.</p>"
        + _BUTTON.format(href=_esc(v.get("tournament_url")), color="#22c55e", label="View Tournament")
    )
    return f"Registration Confirmed - {v.get('tournament_name', '')}", _WRAPPER.format(body=body)


def _checkin_reminder(v: Dict[str, Any]) -> Tuple[str, str]:
    body = (
        "<h2>Check-In Reminder</h2>"
        f"<p>Hi {_esc(v.get('name'), 'Player')},</p>"
        f"<p>{_esc(v.get('message'))}</p>"
        "<p>See you there!</p>"
    )
    return f"Reminder: Check-In for {v.get('tournament_name', '')}", _WRAPPER.format(body=body)


def _tournament_started(v: Dict[str, Any]) -> Tuple[str, str]:
    body = (
        "<h1>The Tournament Has Started</h1>"
        f"<p>{_esc(v.get('tournament_name'))} is under way. Check the rotation board for your court.</p>"
        + _BUTTON.format(href=_esc(v.get("tournament_url")), color="#4f46e5", label="Rotation Board")
    )
    return f"{v.get('tournament_name', '')} has started", _WRAPPER.format(body=body)


def _tournament_completed(v: Dict[str, Any]) -> Tuple[str, str]:
    podium = v.get("podium") or []
    rows = _rows([(f"#{entry.get('rank')}", entry.get("name") or entry.get("user_id")) for entry in podium])
    body = (
        "<h1>Final Standings</h1>"
        f"<p>{_esc(v.get('tournament_name'))} is over. Thanks for playing!</p>"
        + _BOX.format(rows=rows)
        + _BUTTON.format(href=_esc(v.get("tournament_url")), color="#4f46e5", label="Full Standings")
    )
    return f"Results: {v.get('tournament_name', '')}", _WRAPPER.format(body=body)


TEMPLATES = {
    "welcome": _welcome,
    "booking-confirmation": _booking_confirmation,
    "tournament-published": _tournament_published,
    "registration-confirmed": _registration_confirmed,
    "checkin-reminder": _checkin_reminder,
    "tournament-started": _tournament_started,
    "tournament-completed": _tournament_completed,
}


def render_template(template_id: str, variables: Dict[str, Any]) -> Optional[Tuple[str, str]]:
    """Return (subject, html) or None when the template does not exist"""
    template = TEMPLATES.get(template_id)
    if template is None:
        return None
    return template(variables or {})
