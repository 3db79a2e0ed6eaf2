"""
Tests for role guards
"""
import logging
from types import SimpleNamespace

import pytest

from siteback.middleware.error_handler import ApiError
from siteback.middleware.rbac import RoleGuard, admin_only, any_role, log_admin_operation, player_only
from siteback.services.auth_service import Principal, Role

PLAYER = Principal(user_name="Maria", role=Role.PLAYER)
ADMIN = Principal(user_name="admin", role=Role.ADMIN)


def _request(principal=None):
    state = SimpleNamespace()
    if principal is not None:
        state.auth = principal
    return SimpleNamespace(state=state, method="POST", url=SimpleNamespace(path="/api/sessions"))


class TestRoleGuard:
    """Test RoleGuard"""

    def test_any_role_accepts_both(self):
        """Guards without a role accept any authenticated principal"""
        assert any_role(_request(PLAYER)) == PLAYER
        assert any_role(_request(ADMIN)) == ADMIN

    def test_missing_principal(self):
        """No principal means 401"""
        with pytest.raises(ApiError) as excinfo:
            RoleGuard()(_request())
        assert excinfo.value.status_code == 401
        assert excinfo.value.code == "unauthorized"

    def test_wrong_role(self):
        """A mismatched role means 403"""
        with pytest.raises(ApiError) as excinfo:
            admin_only(_request(PLAYER))
        assert excinfo.value.status_code == 403
        assert excinfo.value.code == "forbidden"
        with pytest.raises(ApiError):
            player_only(_request(ADMIN))

    def test_matching_role(self):
        """A matching role returns the principal"""
        assert admin_only(_request(ADMIN)) == ADMIN
        assert player_only(_request(PLAYER)) == PLAYER


class TestLogAdminOperation:
    """Test audit logging"""

    def test_audit_line(self, caplog):
        """Admin operations produce an audit line"""
        with caplog.at_level(logging.INFO, logger="siteback.middleware.rbac"):
            log_admin_operation("delete_session", ADMIN, {"session_id": 5})
        assert "ADMIN_OPERATION" in caplog.text
        assert "delete_session" in caplog.text
        assert "'session_id': 5" in caplog.text
