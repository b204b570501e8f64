"""Signal transport for cocbot.

Connects to the signal-cli REST API via WebSocket, turns each incoming
data message into a "message received" event, runs it through the
command dispatcher on its own task and sends back at most one reply to
the originating group or sender.

Key classes:
    CocBot: Owns the HTTP session, the command registry and the
        message processing pipeline.

Key functions:
    truncate_reply: Enforce the platform's reply length ceiling.
    group_recipient: Convert an incoming group id to a send recipient.
"""

import asyncio
import base64
import hashlib
import json
import time as _time
from collections import OrderedDict
from typing import Mapping, Optional, Set

import aiohttp
import structlog

from .alias_store import AliasStore
from .commands import BotContext, CoreCommandHandler, HandlerRegistry, dispatch
from .config import Config, get_config
from .logging_config import mask
from .models import IncomingMessage
from .security import RateLimiter, sanitize_input
from .tokenizer import tokenize

logger = structlog.get_logger("cocbot.bot")

DEDUP_WINDOW_SECONDS = 60
_ELLIPSIS = "..."


def truncate_reply(text: str, limit: int) -> str:
    """Cut text down to limit characters, marking the cut with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[: max(limit - len(_ELLIPSIS), 0)] + _ELLIPSIS


def group_recipient(internal_id: str) -> str:
    """Build the ``group.<id>`` recipient the send endpoint expects."""
    return "group." + base64.b64encode(internal_id.encode()).decode()


def log_task_exception(task: asyncio.Task):
    """Log exceptions from fire-and-forget tasks instead of silently swallowing them."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc:
        logger.error("background_task_failed", error=str(exc), exc_type=type(exc).__name__)


class CocBot:
    """Signal bot answering prefix commands.

    Args:
        dictionary: Read-only term -> definition mapping.
        alias_store: Alias store; opened in start(), closed in stop().
        config: Configuration, defaults to the global instance.
    """

    def __init__(
        self,
        dictionary: Mapping[str, str],
        alias_store: AliasStore,
        config: Optional[Config] = None,
    ):
        self.config = config or get_config()
        self.alias_store = alias_store
        self.session: Optional[aiohttp.ClientSession] = None
        self.running = False
        self.account: Optional[str] = None
        self._processed_messages = OrderedDict()  # Dedup: msg_hash -> timestamp
        self._tasks: Set[asyncio.Task] = set()
        self.rate_limiter = RateLimiter(
            max_requests=self.config.rate_limit_max_requests,
            window=self.config.rate_limit_window_seconds,
        )

        self._bot_context = BotContext(
            dictionary=dictionary,
            alias_store=alias_store,
        )
        self.registry = HandlerRegistry()
        self.registry.register(CoreCommandHandler(self._bot_context).get_commands())

    async def start(self):
        """Open the alias store and the HTTP session, resolve the account."""
        await asyncio.to_thread(self.alias_store.open)
        self.session = aiohttp.ClientSession()
        self.running = True
        await self._get_account()
        logger.info(
            "bot_started",
            account=mask(self.account or ""),
            prefix=self.config.command_prefix,
            terms=len(self._bot_context.dictionary),
        )

    async def stop(self):
        """Wait for in-flight replies, then release the session and store."""
        if not self.running:
            return
        self.running = False
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        if self.session:
            await self.session.close()
        await asyncio.to_thread(self.alias_store.close)
        logger.info("bot_stopped")

    async def _get_account(self):
        """Use the configured account, or the first registered one (with retry)."""
        if self.config.signal_account:
            self.account = self.config.signal_account
            return

        max_attempts = 12
        base_delay = 5
        max_delay = 15

        for attempt in range(1, max_attempts + 1):
            try:
                url = f"{self.config.signal_api_url}/v1/accounts"
                async with self.session.get(url, timeout=aiohttp.ClientTimeout(total=10)) as resp:
                    if resp.status == 200:
                        accounts = await resp.json()
                        if accounts:
                            acct = accounts[0]
                            self.account = acct if isinstance(acct, str) else acct.get("number")
                            logger.info("account_found", account=mask(self.account))
                        else:
                            logger.warning("no_accounts_registered")
                        return
                    logger.warning("account_request_failed", status=resp.status)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                delay = min(base_delay * attempt, max_delay)
                logger.warning(
                    "account_request_error", error=str(e),
                    attempt=attempt, retry_delay=delay,
                )
                if attempt < max_attempts:
                    await asyncio.sleep(delay)

        logger.error("account_request_failed_all_attempts", attempts=max_attempts)

    async def send_reply(self, channel: str, text: str):
        """Send one reply to a group or a single recipient."""
        limit = self.config.max_message_length
        if len(text) > limit:
            logger.warning("reply_truncated", length=len(text), limit=limit)
            text = truncate_reply(text, limit)

        payload = {
            "message": text,
            "number": self.account,
            "recipients": [channel],
        }
        try:
            url = f"{self.config.signal_api_url}/v2/send"
            async with self.session.post(url, json=payload) as resp:
                if resp.status != 201:
                    body = await resp.text()
                    logger.warning("send_failed", status=resp.status, body=body[:200])
        except aiohttp.ClientError as e:
            logger.error("send_error", channel=mask(channel), error=str(e))

    async def handle_message(self, message: IncomingMessage) -> Optional[str]:
        """Turn one inbound event into a reply, or None for no reply.

        Messages that don't start with the command prefix are not for
        us. Rate-limited senders are dropped without an answer.
        """
        text = sanitize_input(message.text.strip())
        tokens = tokenize(text)
        if not tokens or tokens[0] != self.config.command_prefix:
            return None

        if not self.rate_limiter.allow(message.sender):
            return None

        logger.info(
            "command_received",
            sender=mask(message.sender),
            channel=mask(message.channel),
            length=len(text),
        )
        return await dispatch(self.registry, text, sender=message.sender)

    async def _process_message(self, message: IncomingMessage):
        response = await self.handle_message(message)
        if response is None:
            return
        await self.send_reply(message.channel, response)

    def parse_envelope(self, msg: dict) -> Optional[IncomingMessage]:
        """Extract a message event from a Signal receive payload.

        Returns None for receipts, typing notices, empty messages and
        anything else that isn't user text.
        """
        if not isinstance(msg, dict):
            return None
        envelope = msg.get("envelope")
        if not isinstance(envelope, dict):
            return None

        source = (
            envelope.get("source")
            or envelope.get("sourceNumber")
            or envelope.get("sourceUuid")
        )
        data_message = envelope.get("dataMessage")
        if not isinstance(data_message, dict) or not isinstance(source, str) or not source:
            return None

        text = data_message.get("message")
        if not isinstance(text, str) or not text.strip():
            return None

        timestamp = envelope.get("timestamp", 0)
        if not isinstance(timestamp, int) or isinstance(timestamp, bool):
            return None

        # A group message we can't route back to its group gets no reply at all
        group_info = data_message.get("groupInfo")
        if group_info is None:
            channel = source
        elif isinstance(group_info, dict) and isinstance(group_info.get("groupId"), str):
            channel = group_recipient(group_info["groupId"])
        else:
            return None

        return IncomingMessage(
            sender=source,
            channel=channel,
            text=text,
            timestamp=timestamp,
        )

    def _is_duplicate(self, message: IncomingMessage) -> bool:
        msg_hash = hashlib.sha256(
            f"{message.timestamp}:{message.text.strip()}".encode()
        ).hexdigest()
        if msg_hash in self._processed_messages:
            return True
        now = _time.time()
        self._processed_messages[msg_hash] = now

        cutoff = now - DEDUP_WINDOW_SECONDS
        while self._processed_messages:
            oldest_key, oldest_time = next(iter(self._processed_messages.items()))
            if oldest_time < cutoff:
                self._processed_messages.pop(oldest_key)
            else:
                break
        return False

    async def _handle_signal_message(self, msg: dict):
        """Handle a payload from the Signal API on its own task.

        Never raises: a payload that can't be handled is logged and
        dropped so the receive loop keeps running.
        """
        try:
            message = self.parse_envelope(msg)
            if message is None:
                return
            if self._is_duplicate(message):
                logger.debug("duplicate_message_skipped", timestamp=message.timestamp)
                return
        except Exception as e:
            logger.error(
                "message_handling_error", error=str(e), msg=str(msg)[:200]
            )
            return

        task = asyncio.create_task(self._process_message(message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        task.add_done_callback(log_task_exception)

    async def poll_messages(self):
        """Connect via WebSocket to receive messages (json-rpc mode)."""
        if not self.account:
            logger.error("no_account_for_polling")
            return

        ws_base = self.config.signal_api_url.replace(
            "http://", "ws://"
        ).replace("https://", "wss://")
        ws_url = f"{ws_base}/v1/receive/{self.account}"

        reconnect_delay = 5
        MAX_RECONNECT_DELAY = 300

        while self.running:
            try:
                logger.info("websocket_connecting", url=ws_url)
                async with self.session.ws_connect(ws_url, heartbeat=30) as ws:
                    logger.info("websocket_connected")
                    reconnect_delay = 5
                    async for msg in ws:
                        if msg.type == aiohttp.WSMsgType.TEXT:
                            try:
                                data = json.loads(msg.data)
                            except json.JSONDecodeError:
                                logger.warning("invalid_json", data=msg.data[:100])
                                continue
                            await self._handle_signal_message(data)
                        elif msg.type == aiohttp.WSMsgType.ERROR:
                            logger.error("websocket_error", error=str(ws.exception()))
                            break
                        elif msg.type == aiohttp.WSMsgType.CLOSED:
                            logger.info("websocket_closed")
                            break

            except asyncio.CancelledError:
                break
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.error("websocket_exception", error=str(e))
                await asyncio.sleep(reconnect_delay)
                reconnect_delay = min(reconnect_delay * 2, MAX_RECONNECT_DELAY)

    async def run(self):
        """Main run loop: start, poll messages, stop on exit."""
        await self.start()

        try:
            await self.poll_messages()
        finally:
            await self.stop()
