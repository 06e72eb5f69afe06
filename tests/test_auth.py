"""
Tests for authentication flow.

Tests the Supabase identity provider, sign-up/login form validation,
the page guard, and configuration lookup.
"""

import asyncio
import pytest
from unittest.mock import MagicMock, patch
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.auth.supabase_identity import SupabaseIdentityProvider
from src.auth.middleware import require_auth, get_current_profile, is_authenticated
from src.auth.session import SessionManager
from src.auth.validation import (
    validate_login,
    validate_signup,
    login_error_message,
    signup_error_message,
)
from src.auth.errors import (
    AuthError,
    InvalidCredentials,
    EmailInUse,
    NetworkError,
    StoreWriteFailure,
)
from src.models import Identity, Profile, Role, SignupData
from src import config


def make_user(user_id="user-123", email="test@example.com", full_name=None):
    metadata = {"full_name": full_name} if full_name else {}
    return MagicMock(id=user_id, email=email, user_metadata=metadata)


class TestSupabaseIdentityProvider:
    """Tests for SupabaseIdentityProvider class."""

    @pytest.fixture
    def mock_supabase(self):
        """Create a mock Supabase client."""
        mock = MagicMock()
        mock.auth = MagicMock()
        return mock

    @patch('src.auth.supabase_identity.create_client')
    def test_client_created_lazily(self, mock_create_client, mock_supabase):
        """The client is created on first use."""
        mock_create_client.return_value = mock_supabase
        mock_supabase.auth.sign_in_with_password.return_value = MagicMock(user=make_user())

        provider = SupabaseIdentityProvider(
            supabase_url="https://test.supabase.co",
            supabase_key="test-key"
        )
        mock_create_client.assert_not_called()

        provider.sign_in_with_credentials("test@example.com", "password123")
        mock_create_client.assert_called_once_with("https://test.supabase.co", "test-key")

    def test_requires_credentials(self):
        with pytest.raises(ValueError):
            SupabaseIdentityProvider()

    def test_sign_in_success(self, mock_supabase):
        """Successful sign-in returns the identity."""
        mock_supabase.auth.sign_in_with_password.return_value = MagicMock(
            user=make_user(full_name="Test User"),
            session=MagicMock(access_token="token-123")
        )
        provider = SupabaseIdentityProvider(client=mock_supabase)

        identity = provider.sign_in_with_credentials("test@example.com", "password123")

        assert identity == Identity(id="user-123", email="test@example.com", display_name="Test User")
        mock_supabase.auth.sign_in_with_password.assert_called_once_with({
            "email": "test@example.com",
            "password": "password123"
        })

    def test_sign_in_failure(self, mock_supabase):
        """Provider errors are classified."""
        error = Exception("Invalid login credentials")
        error.code = "invalid_credentials"
        mock_supabase.auth.sign_in_with_password.side_effect = error
        provider = SupabaseIdentityProvider(client=mock_supabase)

        with pytest.raises(InvalidCredentials):
            provider.sign_in_with_credentials("test@example.com", "wrongpassword")

    def test_sign_in_without_user(self, mock_supabase):
        mock_supabase.auth.sign_in_with_password.return_value = MagicMock(user=None)
        provider = SupabaseIdentityProvider(client=mock_supabase)

        with pytest.raises(InvalidCredentials):
            provider.sign_in_with_credentials("test@example.com", "password123")

    def test_create_account(self, mock_supabase):
        """Sign-up passes the display name as metadata."""
        mock_supabase.auth.sign_up.return_value = MagicMock(
            user=make_user("new-user-123", "new@example.com", "New Nurse"),
            session=None
        )
        provider = SupabaseIdentityProvider(client=mock_supabase)

        identity = provider.create_account("new@example.com", "password123", "New Nurse")

        assert identity.id == "new-user-123"
        mock_supabase.auth.sign_up.assert_called_once_with({
            "email": "new@example.com",
            "password": "password123",
            "options": {"data": {"full_name": "New Nurse"}}
        })

    def test_create_account_email_in_use(self, mock_supabase):
        mock_supabase.auth.sign_up.side_effect = Exception("User already registered")
        provider = SupabaseIdentityProvider(client=mock_supabase)

        with pytest.raises(EmailInUse):
            provider.create_account("taken@example.com", "password123")

    def test_create_account_without_user(self, mock_supabase):
        mock_supabase.auth.sign_up.return_value = MagicMock(user=None)
        provider = SupabaseIdentityProvider(client=mock_supabase)

        with pytest.raises(AuthError):
            provider.create_account("new@example.com", "password123")

    def test_sign_out(self, mock_supabase):
        provider = SupabaseIdentityProvider(client=mock_supabase)

        provider.sign_out()

        mock_supabase.auth.sign_out.assert_called_once()

    def test_sign_out_failure(self, mock_supabase):
        mock_supabase.auth.sign_out.side_effect = ConnectionError("offline")
        provider = SupabaseIdentityProvider(client=mock_supabase)

        with pytest.raises(NetworkError):
            provider.sign_out()

    def test_subscribe_reports_current_session(self, mock_supabase):
        """subscribe() reports the persisted session right away."""
        mock_supabase.auth.get_session.return_value = MagicMock(user=make_user())
        provider = SupabaseIdentityProvider(client=mock_supabase)
        seen = []

        provider.subscribe(seen.append)

        assert seen == [Identity(id="user-123", email="test@example.com")]

    def test_subscribe_maps_events(self, mock_supabase):
        """Auth events become Identity or None."""
        mock_supabase.auth.get_session.return_value = None
        provider = SupabaseIdentityProvider(client=mock_supabase)
        seen = []

        provider.subscribe(seen.append)
        handler = mock_supabase.auth.on_auth_state_change.call_args[0][0]
        handler("SIGNED_IN", MagicMock(user=make_user("user-7")))
        handler("SIGNED_OUT", None)

        assert seen == [None, Identity(id="user-7", email="test@example.com"), None]

    def test_unsubscribe_once(self, mock_supabase):
        """The disposer cancels the Supabase subscription exactly once."""
        mock_supabase.auth.get_session.return_value = None
        subscription = MagicMock()
        mock_supabase.auth.on_auth_state_change.return_value = subscription
        provider = SupabaseIdentityProvider(client=mock_supabase)

        unsubscribe = provider.subscribe(lambda identity: None)
        unsubscribe()
        unsubscribe()

        subscription.unsubscribe.assert_called_once()


class TestSignupValidation:
    """Tests for the sign-up form rules."""

    def _form(self, **overrides):
        data = SignupData(
            full_name="Nina Nurse",
            email="nina@example.com",
            password="secret1",
            confirm_password="secret1",
            role="Nurse",
        )
        for key, value in overrides.items():
            setattr(data, key, value)
        return data

    def test_valid_nurse_without_cpso(self):
        assert validate_signup(self._form()) == (True, "")

    def test_missing_fields(self):
        assert validate_signup(self._form(full_name="")) == (False, "Please fill in all required fields")
        assert validate_signup(self._form(role=None))[0] is False

    def test_password_mismatch(self):
        assert validate_signup(self._form(confirm_password="other1")) == (False, "Passwords do not match")

    def test_short_password(self):
        result = validate_signup(self._form(password="abc", confirm_password="abc"))
        assert result == (False, "Password must be at least 6 characters")

    def test_physician_requires_cpso(self):
        result = validate_signup(self._form(role="Physician"))
        assert result == (False, "CPSO Number is required for Physicians and Surgeons")

    def test_surgeon_with_cpso(self):
        assert validate_signup(self._form(role="Surgeon", cpso_number="12345"))[0] is True

    def test_unknown_role(self):
        assert validate_signup(self._form(role="Pharmacist"))[0] is False

    def test_login_requires_both_fields(self):
        assert validate_login("", "secret1") == (False, "Please enter email and password")
        assert validate_login("a@example.com", "")[0] is False
        assert validate_login("a@example.com", "secret1") == (True, "")


class TestErrorMessages:
    """Tests for user-facing failure messages."""

    def test_login_messages(self):
        assert login_error_message(InvalidCredentials()) == "Invalid email or password."
        assert "connection" in login_error_message(ConnectionError("x")).lower()

    def test_signup_messages(self):
        assert signup_error_message(EmailInUse()) == "This email is already registered."
        assert signup_error_message(AuthError()) == "Failed to create account. Please try again."
        assert "profile could not be saved" in signup_error_message(StoreWriteFailure())


class TestRequireAuth:
    """Tests for the require_auth page guard."""

    def _session(self, profile):
        provider = MagicMock()
        provider.sign_in_with_credentials.return_value = Identity(id="user-123")
        store = MagicMock()
        store.get.return_value = profile
        return SessionManager(provider, store)

    def test_decorator_wraps_function(self):
        session = self._session(None)

        @require_auth(session)
        async def protected_route():
            return "secret data"

        assert callable(protected_route)
        assert protected_route.__name__ == "protected_route"

    @patch('src.auth.middleware.ui')
    def test_redirects_when_signed_out(self, mock_ui):
        session = self._session(None)

        @require_auth(session, redirect_to="/login")
        def protected_route():
            return "secret data"

        async def scenario():
            await session.sign_out()
            return await protected_route()

        assert asyncio.run(scenario()) is None
        mock_ui.navigate.to.assert_called_once_with("/login")

    @patch('src.auth.middleware.ui')
    def test_runs_page_when_signed_in(self, mock_ui):
        profile = Profile(id="user-123", email="a@example.com", full_name="A", role=Role.NURSE)
        session = self._session(profile)

        @require_auth(session)
        async def protected_route():
            return "secret data"

        async def scenario():
            await session.sign_in("a@example.com", "secret1")
            return await protected_route()

        assert asyncio.run(scenario()) == "secret data"
        mock_ui.navigate.to.assert_not_called()
        assert get_current_profile(session) == profile
        assert is_authenticated(session) is True

    def test_helpers_while_resolving(self):
        """Nothing counts as signed in until resolution settles."""
        session = self._session(None)

        assert get_current_profile(session) is None
        assert is_authenticated(session) is False


class TestConfig:
    """Tests for configuration lookup."""

    def test_env_overrides_file(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://env.supabase.co")
        monkeypatch.setenv("SUPABASE_KEY", "env-key")
        with patch("src.config.load_config", return_value={"supabase_url": "https://file.supabase.co"}):
            assert config.get_supabase_credentials() == ("https://env.supabase.co", "env-key")

    def test_file_values(self, monkeypatch):
        monkeypatch.delenv("SUPABASE_URL", raising=False)
        monkeypatch.delenv("SUPABASE_KEY", raising=False)
        file_config = {"supabase_url": "https://file.supabase.co", "supabase_key": "file-key"}
        with patch("src.config.load_config", return_value=file_config):
            assert config.get_supabase_credentials() == ("https://file.supabase.co", "file-key")

    def test_store_backend_default(self, monkeypatch):
        monkeypatch.delenv("SHIFTCOVER_PROFILE_STORE", raising=False)
        monkeypatch.delenv("SUPABASE_URL", raising=False)
        monkeypatch.delenv("SUPABASE_KEY", raising=False)
        with patch("src.config.load_config", return_value={}):
            assert config.get_profile_store_backend() == "local"

    def test_store_backend_explicit(self, monkeypatch):
        monkeypatch.setenv("SHIFTCOVER_PROFILE_STORE", "Supabase")
        assert config.get_profile_store_backend() == "supabase"

    def test_save_and_load(self, tmp_path):
        with patch("src.config.get_config_path", return_value=tmp_path / "config.json"):
            config.set_supabase_credentials("https://x.supabase.co", "k")
            assert config.load_config() == {"supabase_url": "https://x.supabase.co", "supabase_key": "k"}

    def test_unreadable_config(self, tmp_path):
        (tmp_path / "config.json").write_text("{broken")
        with patch("src.config.get_config_path", return_value=tmp_path / "config.json"):
            assert config.load_config() == {}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
