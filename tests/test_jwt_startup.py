"""
tests/test_jwt_startup — JWT Secret Validation at Startup
===========================================================
The API must refuse to start when JWT_SECRET is missing, blank, too
short, or a known weak default.

``_load_jwt_secret`` reads the environment on every call, so it is
exercised directly.  Reloading ``commonweal.api.deps`` would rebind
``get_engine`` behind the app's back and leak a real engine into every
later test.
"""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest

from commonweal.api import deps


class TestJWTSecretValidation:
    """Prove that _load_jwt_secret() rejects bad secrets and accepts good ones."""

    def test_rejects_missing_secret(self):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("JWT_SECRET", None)
            with pytest.raises(RuntimeError, match="JWT_SECRET environment variable is not set"):
                deps._load_jwt_secret()

    def test_rejects_blank_secret(self):
        with patch.dict(os.environ, {"JWT_SECRET": "   "}):
            with pytest.raises(RuntimeError, match="JWT_SECRET environment variable is not set"):
                deps._load_jwt_secret()

    def test_rejects_known_weak_default(self):
        with patch.dict(os.environ, {"JWT_SECRET": "commonweal-dev-secret-change-me"}):
            with pytest.raises(RuntimeError, match="known weak default"):
                deps._load_jwt_secret()

    def test_rejects_short_secret(self):
        with patch.dict(os.environ, {"JWT_SECRET": "tooshort"}):
            with pytest.raises(RuntimeError, match="too short"):
                deps._load_jwt_secret()

    def test_accepts_strong_secret(self):
        good_secret = "a" * 64
        with patch.dict(os.environ, {"JWT_SECRET": good_secret}):
            assert deps._load_jwt_secret() == good_secret

    def test_surrounding_whitespace_is_stripped(self):
        with patch.dict(os.environ, {"JWT_SECRET": "  " + "b" * 40 + "\n"}):
            assert deps._load_jwt_secret() == "b" * 40

    def test_module_secret_untouched_by_validation(self):
        loaded = deps.JWT_SECRET
        with patch.dict(os.environ, {"JWT_SECRET": "c" * 48}):
            deps._load_jwt_secret()
        assert deps.JWT_SECRET == loaded


def test_app_still_uses_overridden_engine_after_validation(client, make_user, headers):
    with patch.dict(os.environ, {"JWT_SECRET": "d" * 48}):
        deps._load_jwt_secret()
    user = make_user()
    resp = client.get("/api/auth/me", headers=headers(user))
    assert resp.status_code == 200
    assert resp.json()["id"] == user.id
