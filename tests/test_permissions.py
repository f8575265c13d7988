from datetime import datetime, timezone

from loveblog.auth.roles import RequiredRole, Role
from loveblog.auth.session import ClientInfo, Session
from loveblog.permissions import DenyReason, authorize

T0 = datetime(2026, 10, 18, 9, 0, 0, tzinfo=timezone.utc)


def _session(role):
    return Session(id="sid-1", role=role, login_time=T0)


def test_no_session_requires_authentication_even_for_couple_only():
    d = authorize(None, RequiredRole.COUPLE_ONLY)
    assert d.allowed is False
    assert d.reason is DenyReason.AUTHENTICATION_REQUIRED


def test_unauthenticated_session_is_denied():
    s = Session(id="sid-1", role=Role.VISITOR, login_time=T0, authenticated=False)
    assert authorize(s, RequiredRole.ANY_AUTHENTICATED).reason is DenyReason.AUTHENTICATION_REQUIRED


def test_visitor_allowed_for_any_authenticated():
    assert authorize(_session(Role.VISITOR), RequiredRole.ANY_AUTHENTICATED).allowed


def test_visitor_denied_couple_only(caplog):
    with caplog.at_level("WARNING"):
        d = authorize(_session(Role.VISITOR), RequiredRole.COUPLE_ONLY, resource="GET /password/status")
    assert d.reason is DenyReason.INSUFFICIENT_PERMISSIONS
    assert "sid-1" in caplog.text
    assert "visitor" in caplog.text
    assert "/password/status" in caplog.text


def test_couple_allowed_everywhere():
    s = _session(Role.COUPLE)
    assert authorize(s, RequiredRole.ANY_AUTHENTICATED).allowed
    assert authorize(s, RequiredRole.COUPLE_ONLY).allowed


def test_authentication_required_logs_request_metadata(caplog):
    with caplog.at_level("WARNING"):
        authorize(None, RequiredRole.ANY_AUTHENTICATED, resource="GET /settings", client=ClientInfo(ip="1.2.3.4"))
    assert "1.2.3.4" in caplog.text
    assert "GET /settings" in caplog.text
