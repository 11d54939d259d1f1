# ABOUTME: Unit tests for WorkspaceInstaller OAuth code exchange and credential storage.
# ABOUTME: Tests success, user cancel, reused codes and unexpected exchange failures.

from unittest.mock import AsyncMock, MagicMock

import pytest
from slack_sdk.errors import SlackApiError

from chatterbox.relay.exceptions import OAuthFailed
from chatterbox.relay.installer import WorkspaceInstaller

OAUTH_RESPONSE = {
    "ok": True,
    "access_token": "xoxb-bot",
    "bot_user_id": "UBOT",
    "team": {"id": "T1", "name": "Test Team"},
    "authed_user": {"id": "U1", "access_token": "xoxp-app"},
}


def slack_error(error: str) -> SlackApiError:
    response = MagicMock()
    response.data = {"ok": False, "error": error}
    return SlackApiError(error, response)


@pytest.fixture
def slack_client():
    client = MagicMock()
    client.oauth_v2_access = AsyncMock(return_value=MagicMock(data=OAUTH_RESPONSE))
    return client


@pytest.fixture
def credential_store():
    store = MagicMock()
    store.store_credentials = AsyncMock()
    return store


@pytest.fixture
def inbound():
    relay = MagicMock()
    relay.enqueue_event = AsyncMock()
    return relay


@pytest.fixture
def installer(settings, credential_store, inbound, mock_reporter, slack_client):
    return WorkspaceInstaller(
        settings,
        credential_store,
        inbound,
        mock_reporter,
        client_factory=lambda: slack_client,
    )


@pytest.mark.asyncio
async def test_install_stores_credentials(installer, settings, slack_client, credential_store):
    url = await installer.install("code-1")

    assert url == settings.oauth_success_url
    slack_client.oauth_v2_access.assert_awaited_once_with(
        client_id="client-1",
        client_secret="secret-1",
        code="code-1",
    )
    credential_store.store_credentials.assert_awaited_once_with({
        "teamid": "T1",
        "team_name": "Test Team",
        "app_token": "xoxp-app",
        "bot_token": "xoxb-bot",
        "bot_id": "UBOT",
    })


@pytest.mark.asyncio
async def test_install_emits_telemetry_event(installer, inbound):
    await installer.install("code-1")

    inbound.enqueue_event.assert_awaited_once_with("Workspace Install", 0, {"name": "Test Team"})


@pytest.mark.asyncio
async def test_user_cancel_redirects_without_exchange(installer, settings, slack_client):
    url = await installer.install(None, error="access_denied")

    assert url == settings.oauth_cancel_url
    slack_client.oauth_v2_access.assert_not_called()


@pytest.mark.asyncio
async def test_reused_code_is_not_reported(installer, settings, slack_client, mock_reporter, credential_store):
    slack_client.oauth_v2_access.side_effect = slack_error("code_already_used")

    url = await installer.install("code-1")

    assert url == settings.oauth_error_url
    mock_reporter.report.assert_not_called()
    credential_store.store_credentials.assert_not_called()


@pytest.mark.asyncio
async def test_refused_exchange_is_reported(installer, settings, slack_client, mock_reporter):
    slack_client.oauth_v2_access.side_effect = slack_error("invalid_code")

    url = await installer.install("code-1")

    assert url == settings.oauth_error_url
    mock_reporter.report.assert_called_once()
    info = mock_reporter.report.call_args[0][1]
    assert info["query"] == {"code": "code-1"}


@pytest.mark.asyncio
async def test_store_failure_reported_without_tokens(installer, settings, credential_store, mock_reporter):
    credential_store.store_credentials.side_effect = ConnectionError("redis down")

    url = await installer.install("code-1")

    assert url == settings.oauth_error_url
    info = mock_reporter.report.call_args[0][1]
    assert "xoxb-bot" not in repr(info)
    assert "xoxp-app" not in repr(info)
    assert info["body"]["team"] == {"id": "T1", "name": "Test Team"}


@pytest.mark.asyncio
async def test_response_without_user_token_is_not_stored(
    installer, settings, slack_client, credential_store, inbound, mock_reporter
):
    slack_client.oauth_v2_access.return_value = MagicMock(data={
        "ok": True,
        "access_token": "xoxb-bot",
        "bot_user_id": "UBOT",
        "team": {"id": "T9", "name": "N"},
    })

    url = await installer.install("code-1")

    assert url == settings.oauth_error_url
    credential_store.store_credentials.assert_not_called()
    inbound.enqueue_event.assert_not_called()
    error = mock_reporter.report.call_args[0][0]
    assert error.data == {"error": "incomplete_response", "missing": ["app_token"]}


@pytest.mark.parametrize("field", ["access_token", "bot_user_id", "team"])
def test_credential_fields_require_bot_identity(field):
    body = {key: value for key, value in OAUTH_RESPONSE.items() if key != field}

    with pytest.raises(OAuthFailed):
        WorkspaceInstaller.credential_fields(body)
