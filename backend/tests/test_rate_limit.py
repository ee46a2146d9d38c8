"""Tests for login / delete-account email throttling."""
from datetime import timedelta

from eventhub.models.log import LogKind
from eventhub.services.rate_limit import RateLimiter
from tests.conftest import NOW, emails


def _request_login(client, email, seconds):
    return emails(client.send({"type": "get_login_token", "email": email}, NOW + timedelta(seconds=seconds)))


class TestLoginRateLimit:
    def test_session_cooldown(self, backend, connect):
        tab = connect()
        assert len(_request_login(tab, "ada@example.com", 0)) == 1
        assert _request_login(tab, "bob@example.com", 9) == []
        assert backend.logs[-1].kind == LogKind.login_email_rate_limited
        assert len(_request_login(tab, "bob@example.com", 11)) == 1

    def test_session_cooldown_boundary(self, connect):
        tab = connect()
        assert len(_request_login(tab, "ada@example.com", 0)) == 1
        assert len(_request_login(tab, "bob@example.com", 10)) == 1

    def test_same_email_from_other_session(self, backend, connect):
        first, second = connect(), connect()
        assert len(_request_login(first, "ada@example.com", 0)) == 1
        assert _request_login(second, "ada@example.com", 30) == []
        assert len(_request_login(second, "ada@example.com", 60)) == 1

    def test_rejected_attempt_not_recorded(self, backend, connect):
        tab = connect()
        _request_login(tab, "ada@example.com", 0)
        _request_login(tab, "bob@example.com", 5)
        assert backend.rate_limiter.login_attempts(tab.session_id) == [NOW]

    def test_logged_in_session_cannot_request_token(self, backend, login_as):
        ada = login_as("ada@example.com")
        assert _request_login(ada, "other@example.com", 120) == []
        assert backend.logs[-1].kind == LogKind.unauthorized_request


class TestDeleteRateLimit:
    def test_cooldown(self, backend, login_as):
        ada = login_as("ada@example.com")
        ask = {"type": "get_delete_user_token"}
        assert len(emails(ada.send(ask, NOW))) == 1
        assert emails(ada.send(ask, NOW + timedelta(seconds=5))) == []
        assert backend.logs[-1].kind == LogKind.delete_account_email_rate_limited
        assert len(emails(ada.send(ask, NOW + timedelta(seconds=10)))) == 1


class TestPrune:
    def test_old_attempts_dropped(self):
        limiter = RateLimiter()
        limiter.record_login_attempt("s1", NOW)
        limiter.prune(NOW + timedelta(seconds=30))
        assert limiter.login_attempts("s1") == [NOW]
        limiter.prune(NOW + timedelta(seconds=31))
        assert limiter.login_attempts("s1") == []
