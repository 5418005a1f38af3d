"""
SlackService - Approval channel over the Slack Web API.

Sends notifications, approval requests (Block Kit with approve / reject /
revise buttons) and revision requests with chat.postMessage, and parses
inbound reactions, replies and button clicks into a normalized decision.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

import httpx

from ..core.config import Config
from ..core.models import Approval, ApprovalDecision, utc_now
from .http_retry import http_retry

logger = logging.getLogger(__name__)

SLACK_API_URL = "https://slack.com/api"

APPROVE_REACTIONS = {"white_check_mark", "heavy_check_mark", "thumbsup", "+1"}
REJECT_REACTIONS = {"x", "no_entry", "thumbsdown", "-1"}

APPROVE_PHRASES = ("approve", "looks good", "lgtm")
REJECT_PHRASES = ("reject", "needs changes")
REVISE_PHRASE = "revise"


@dataclass
class SlackResult:
    """Result of a Slack message send operation."""
    success: bool
    ts: Optional[str] = None
    channel: Optional[str] = None
    error: Optional[str] = None


@dataclass
class SlackMessageRef:
    """Channel + timestamp identifying a posted message."""
    channel: str
    ts: str


@dataclass
class ApprovalResponse:
    """A normalized human decision parsed from an inbound Slack event."""
    decision: ApprovalDecision
    timestamp: datetime
    feedback: Optional[str] = None
    user_id: Optional[str] = None

    @property
    def approved(self) -> bool:
        return self.decision == ApprovalDecision.APPROVE


def parse_approval_response(
    message_ref: Optional[str],
    user_id: Optional[str],
    reaction: Optional[str] = None,
    reply_text: Optional[str] = None,
    decision: Optional[Union[ApprovalDecision, str]] = None,
) -> Optional[ApprovalResponse]:
    """
    Map an inbound Slack event onto an approval decision.

    A structured decision (from an interactive button) wins. Otherwise the
    reaction is checked, then the reply text: any mention of "revise" is a
    revision request; approve/looks good/lgtm approve; reject/needs changes
    reject. Anything else returns None, meaning the event is ignored.

    Args:
        message_ref: Slack ts of the approval message (None is never an approval)
        user_id: Responding Slack user
        reaction: Reaction name without colons (e.g., "white_check_mark")
        reply_text: Threaded reply text
        decision: Structured decision from a button payload

    Returns:
        ApprovalResponse, or None if the event is not an approval signal
    """
    if not message_ref:
        return None

    feedback = reply_text.strip() if reply_text and reply_text.strip() else None
    parsed: Optional[ApprovalDecision] = None

    if decision is not None:
        try:
            parsed = ApprovalDecision(decision)
        except ValueError:
            logger.warning(f"Ignoring unknown structured decision '{decision}'")
            return None
    elif reaction:
        name = reaction.strip(":").lower()
        if name in APPROVE_REACTIONS:
            parsed = ApprovalDecision.APPROVE
        elif name in REJECT_REACTIONS:
            parsed = ApprovalDecision.REJECT
    if parsed is None and decision is None and feedback:
        text = feedback.lower()
        if REVISE_PHRASE in text:
            parsed = ApprovalDecision.REQUEST_REVISION
        elif any(phrase in text for phrase in APPROVE_PHRASES):
            parsed = ApprovalDecision.APPROVE
        elif any(phrase in text for phrase in REJECT_PHRASES):
            parsed = ApprovalDecision.REJECT

    if parsed is None:
        return None

    return ApprovalResponse(
        decision=parsed,
        timestamp=utc_now(),
        feedback=feedback,
        user_id=user_id,
    )


class SlackService:
    """
    Service for the human approval channel.

    Example:
        >>> slack = SlackService()
        >>> ref = await slack.send_approval_request(approval, run_id="...")
        >>> ref.ts
        '1718000000.000100'
    """

    def __init__(
        self,
        bot_token: Optional[str] = None,
        channel_id: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize SlackService.

        Args:
            bot_token: Bot token (defaults to Config.SLACK_BOT_TOKEN)
            channel_id: Approval channel (defaults to Config.SLACK_APPROVAL_CHANNEL_ID)
            http_client: Optional preconfigured client
        """
        self.bot_token = bot_token or Config.SLACK_BOT_TOKEN
        self.channel_id = channel_id or Config.SLACK_APPROVAL_CHANNEL_ID
        self._client = http_client

        self._enabled = bool(self.bot_token and self.channel_id)
        if not self._enabled:
            logger.warning("SLACK_BOT_TOKEN or SLACK_APPROVAL_CHANNEL_ID not found - SlackService will be disabled")

        logger.info(f"SlackService initialized (enabled={self._enabled})")

    @property
    def enabled(self) -> bool:
        """Check if Slack service is enabled (has token and channel)."""
        return self._enabled

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"Authorization": f"Bearer {self.bot_token}"},
                timeout=30.0,
            )
        return self._client

    @http_retry
    async def _post_message(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        client = await self._get_client()
        response = await client.post(f"{SLACK_API_URL}/chat.postMessage", json=payload)
        response.raise_for_status()
        return response.json()

    async def send_message(
        self,
        text: str,
        blocks: Optional[List[dict]] = None,
        thread_ts: Optional[str] = None,
    ) -> SlackResult:
        """
        Send a message to the approval channel.

        Args:
            text: Fallback text for notifications
            blocks: Optional Block Kit blocks for rich formatting
            thread_ts: Reply in this thread

        Returns:
            SlackResult with the posted message's ts, or an error
        """
        if not self._enabled:
            return SlackResult(success=False, error="SlackService is disabled - no bot token configured")

        payload: Dict[str, Any] = {"channel": self.channel_id, "text": text}
        if blocks:
            payload["blocks"] = blocks
        if thread_ts:
            payload["thread_ts"] = thread_ts

        try:
            data = await self._post_message(payload)
        except httpx.HTTPError as e:
            logger.error(f"Slack request failed: {e}")
            return SlackResult(success=False, error=str(e))

        if not data.get("ok"):
            error = data.get("error", "unknown_error")
            logger.error(f"Slack API error: {error}")
            return SlackResult(success=False, error=error)

        return SlackResult(success=True, ts=data.get("ts"), channel=data.get("channel"))

    async def send_notification(self, title: str, body: str, run_id: Optional[str] = None) -> SlackResult:
        """Post an informational message about a run."""
        text = f"*{title}*\n{body}"
        if run_id:
            text += f"\n_Run: {run_id}_"
        return await self.send_message(text)

    async def send_approval_request(self, approval: Approval, run_id: str) -> SlackMessageRef:
        """
        Post an approval request and return the message reference.

        Raises:
            RuntimeError: Slack rejected the message (the run cannot wait on it)
        """
        title = approval.related_title or approval.related_id or "Untitled"
        details = "\n".join(f"*{k}:* {v}" for k, v in approval.details.items())
        blocks = [
            {
                "type": "header",
                "text": {"type": "plain_text", "text": f"Approval needed: {approval.type.value.replace('_', ' ')}"},
            },
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": f"*{title}*\n{details}".strip()},
            },
            {
                "type": "context",
                "elements": [{
                    "type": "mrkdwn",
                    "text": f"Run `{run_id}` | React :white_check_mark: to approve, :x: to reject, or reply with what to revise",
                }],
            },
            {
                "type": "actions",
                "block_id": f"approval:{approval.id}",
                "elements": [
                    _button("Approve", ApprovalDecision.APPROVE, approval.id, "primary"),
                    _button("Request revision", ApprovalDecision.REQUEST_REVISION, approval.id),
                    _button("Reject", ApprovalDecision.REJECT, approval.id, "danger"),
                ],
            },
        ]

        result = await self.send_message(f"Approval needed: {title}", blocks=blocks)
        if not result.success:
            raise RuntimeError(f"Failed to send approval request: {result.error}")

        logger.info(f"Sent approval request {approval.id} for run {run_id} (ts={result.ts})")
        return SlackMessageRef(channel=result.channel or self.channel_id, ts=result.ts)

    async def send_revision_request(self, approval: Approval, feedback: str, run_id: str) -> SlackResult:
        """Acknowledge a revision request in the approval's thread."""
        text = f":pencil2: Revision requested for *{approval.related_title or approval.id}*\n> {feedback}\n_Run: {run_id}_"
        return await self.send_message(text, thread_ts=approval.slack_message_ts)

    def parse_approval_response(
        self,
        message_ref: Optional[str],
        user_id: Optional[str],
        reaction: Optional[str] = None,
        reply_text: Optional[str] = None,
        decision: Optional[Union[ApprovalDecision, str]] = None,
    ) -> Optional[ApprovalResponse]:
        return parse_approval_response(message_ref, user_id, reaction, reply_text, decision)


def _button(label: str, decision: ApprovalDecision, approval_id: str, style: Optional[str] = None) -> Dict[str, Any]:
    button: Dict[str, Any] = {
        "type": "button",
        "text": {"type": "plain_text", "text": label},
        "action_id": decision.value,
        "value": approval_id,
    }
    if style:
        button["style"] = style
    return button
