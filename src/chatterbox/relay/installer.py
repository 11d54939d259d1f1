# ABOUTME: Slack OAuth installation: exchanges an authorization code and stores workspace credentials.
# ABOUTME: Returns the install result page the browser is redirected to.

from collections.abc import Callable

from loguru import logger
from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from chatterbox.config.settings import Settings
from chatterbox.platform.exceptions import ERROR_CODE_ALREADY_USED
from chatterbox.relay.error_reporter import ErrorReporter
from chatterbox.relay.exceptions import OAuthFailed
from chatterbox.relay.inbound import InboundRelay
from chatterbox.storage.stores import CredentialStore

ERROR_USER_CANCEL = "access_denied"
EVENT_WORKSPACE_INSTALL = "Workspace Install"

# Without these the stored workspace can't open a session
REQUIRED_FIELDS = ("teamid", "app_token", "bot_token", "bot_id")


class WorkspaceInstaller:
    """Completes the OAuth flow for a workspace adding the app"""

    def __init__(
        self,
        settings: Settings,
        credential_store: CredentialStore,
        inbound: InboundRelay,
        reporter: ErrorReporter,
        client_factory: Callable[[], AsyncWebClient] = AsyncWebClient,
    ):
        self.settings = settings
        self.credential_store = credential_store
        self.inbound = inbound
        self.reporter = reporter
        self.client_factory = client_factory

    async def install(self, code: str | None, error: str | None = None) -> str:
        """
        Handle the OAuth redirect from Slack.

        Args:
            code: Authorization code
            error: Error Slack passed instead of a code, if any

        Returns:
            URL of the success, cancel or problem page
        """
        if error == ERROR_USER_CANCEL:
            return self.settings.oauth_cancel_url

        body: dict = {}
        try:
            logger.info(f"Incoming oAuth request: {code}")
            body = await self.exchange_code(code)

            fields = self.credential_fields(body)
            await self.credential_store.store_credentials(fields)

            await self.inbound.enqueue_event(EVENT_WORKSPACE_INSTALL, 0, {"name": fields["team_name"]})
            logger.info(f"Installed Chat & Slash on {fields['team_name']} ({fields['teamid']}).")

            return self.settings.oauth_success_url
        except OAuthFailed as e:
            if e.data.get("error") == ERROR_CODE_ALREADY_USED:
                return self.settings.oauth_error_url
            self._report(e, code, body)
        except Exception as e:
            self._report(e, code, body)

        return self.settings.oauth_error_url

    async def exchange_code(self, code: str | None) -> dict:
        """
        Trade an authorization code for tokens.

        Raises:
            OAuthFailed: When Slack refuses the exchange
        """
        client = self.client_factory()
        try:
            response = await client.oauth_v2_access(
                client_id=self.settings.client_id,
                client_secret=self.settings.client_secret,
                code=code,
            )
        except SlackApiError as e:
            data = e.response.data if e.response is not None else {}
            reason = data.get("error", "Unknown error") if isinstance(data, dict) else "Unknown error"
            raise OAuthFailed(f"Could not validate OAuth request: '{reason}'.", {"error": reason}) from e

        return response.data

    @staticmethod
    def credential_fields(body: dict) -> dict:
        """
        Pick the workspace record out of an OAuth exchange response.

        Raises:
            OAuthFailed: When the team, either token or the bot user is missing
        """
        team = body.get("team") or {}
        fields = {
            "teamid": team.get("id"),
            "team_name": team.get("name"),
            "app_token": (body.get("authed_user") or {}).get("access_token"),
            "bot_token": body.get("access_token"),
            "bot_id": body.get("bot_user_id"),
        }

        missing = [key for key in REQUIRED_FIELDS if not fields[key]]
        if missing:
            raise OAuthFailed(
                f"OAuth response is missing {', '.join(missing)}.",
                {"error": "incomplete_response", "missing": missing},
            )
        return fields

    def _report(self, error: Exception, code: str | None, body: dict) -> None:
        logger.error(f"OAuth install failed: {error}")
        # Tokens never leave the process
        summary = {"team": body.get("team"), "ok": body.get("ok"), "error": body.get("error")}
        self.reporter.report(error, {"body": summary, "query": {"code": code}})
