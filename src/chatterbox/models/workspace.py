# ABOUTME: Pydantic models for workspace credentials and incoming Slack slash commands.
# ABOUTME: Credentials are keyed by workspace ID; slash commands keep unknown fields for forwarding.

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class WorkspaceCredentials(BaseModel):
    """Tokens and flags stored for one installed workspace"""

    team_id: str = Field(description="Workspace ID")
    team_name: str | None = None
    bot_token: str = Field(description="Bot user OAuth token")
    app_token: str = Field(description="Installing user's OAuth token")
    bot_id: str = Field(description="User ID of the bot identity")
    auto_start: bool = Field(
        default=False,
        description="Start a game automatically when someone joins the workspace"
    )


class SlashCommand(BaseModel):
    """Form fields Slack posts for a slash command"""

    model_config = ConfigDict(extra="allow")

    token: str | None = None
    command: str = ""
    text: str = ""
    team_id: str
    channel_id: str
    channel_name: str = ""
    user_id: str
    trigger_id: str | None = None

    def as_payload(self) -> dict[str, Any]:
        """Original form fields, for forwarding to the game engine"""
        return self.model_dump(exclude_none=True)
