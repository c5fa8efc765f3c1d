# src/task_reminder/notify/channels.py

"""
Concrete notification channels.

Each channel is switched on independently via settings and raises on failure;
the dispatcher turns exceptions into per-channel outcomes.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
import ssl
from datetime import datetime
from email.mime.text import MIMEText

import httpx
from nio import AsyncClient, LoginResponse, RoomSendResponse

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"
TELEGRAM_MAX_CHARS = 4096


class TelegramChannel:
    """Telegram Bot API sendMessage. Tries Markdown first, falls back to plain text."""

    name = "telegram"

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        bot_token: str | None,
        chat_id: str | None,
        enabled: bool = True,
        api_base: str = TELEGRAM_API_BASE,
    ) -> None:
        self._http = http
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._enabled = enabled
        self._api_base = api_base.rstrip("/")

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def send(self, subject: str, body: str) -> str:
        if not self._bot_token:
            raise ValueError("Telegram bot token is not configured")
        if not self._chat_id:
            raise ValueError("Telegram chat ID is not configured")

        url = f"{self._api_base}/bot{self._bot_token}/sendMessage"
        text = body[:TELEGRAM_MAX_CHARS]

        for parse_mode in ("Markdown", None):
            payload: dict[str, str] = {"chat_id": self._chat_id, "text": text}
            if parse_mode:
                payload["parse_mode"] = parse_mode

            resp = await self._http.post(url, json=payload)
            if resp.status_code == 400 and parse_mode:
                # Unbalanced markdown in task text; retry as plain text.
                logger.debug("Telegram markdown rejected, retrying as plain text")
                continue
            if resp.is_success:
                return "Telegram message sent successfully"
            raise RuntimeError(f"Telegram API error: {resp.status_code}")

        raise RuntimeError("Telegram API rejected the message")


class EmailChannel:
    """SMTP delivery. STARTTLS on port 587, implicit SSL on any other port."""

    name = "email"

    def __init__(
        self,
        *,
        smtp_host: str | None,
        smtp_port: int,
        username: str | None,
        password: str | None,
        from_addr: str | None,
        to_addr: str | None,
        enabled: bool = True,
        timeout: float = 30.0,
    ) -> None:
        self._smtp_host = smtp_host
        self._smtp_port = smtp_port
        self._username = username
        self._password = password
        self._from = from_addr
        self._to = to_addr
        self._enabled = enabled
        self._timeout = timeout

    @property
    def enabled(self) -> bool:
        return self._enabled

    def _require_config(self) -> None:
        missing = [
            label
            for label, value in (
                ("SMTP host", self._smtp_host),
                ("username", self._username),
                ("password", self._password),
                ("from address", self._from),
                ("to address", self._to),
            )
            if not value
        ]
        if missing:
            raise ValueError(f"Email {', '.join(missing)} is not configured")

    def _build_message(self, subject: str, body: str) -> MIMEText:
        msg = MIMEText(body, "plain", "utf-8")
        msg["Subject"] = subject or f"Reminders - {datetime.now().strftime('%Y-%m-%d %H:%M')}"
        msg["From"] = str(self._from)
        msg["To"] = str(self._to)
        return msg

    def _send_blocking(self, msg: MIMEText) -> None:
        host = str(self._smtp_host)
        context = ssl.create_default_context()
        if self._smtp_port == 587:
            with smtplib.SMTP(host, self._smtp_port, timeout=self._timeout) as server:
                server.starttls(context=context)
                server.login(str(self._username), str(self._password))
                server.sendmail(str(self._from), [str(self._to)], msg.as_string())
        else:
            with smtplib.SMTP_SSL(host, self._smtp_port, timeout=self._timeout, context=context) as server:
                server.login(str(self._username), str(self._password))
                server.sendmail(str(self._from), [str(self._to)], msg.as_string())

    async def send(self, subject: str, body: str) -> str:
        self._require_config()
        msg = self._build_message(subject, body)
        await asyncio.to_thread(self._send_blocking, msg)
        return "Email sent successfully"


class MatrixChannel:
    """
    Post the message into one Matrix room.

    Logs in with a password for every send and closes the session right after;
    digests and reminders are rare enough that a persistent sync loop is not needed.
    Encrypted rooms are not supported.
    """

    name = "matrix"

    def __init__(
        self,
        *,
        homeserver: str,
        user_id: str,
        password: str,
        room_id: str,
        enabled: bool = True,
        device_name: str = "task-reminder",
    ) -> None:
        self._homeserver = homeserver
        self._user_id = user_id
        self._password = password
        self._room_id = room_id
        self._enabled = enabled
        self._device_name = device_name

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def send(self, subject: str, body: str) -> str:
        if not (self._homeserver and self._user_id and self._password and self._room_id):
            raise ValueError("Matrix homeserver/user/password/room is not configured")

        client = AsyncClient(self._homeserver, self._user_id)
        try:
            login = await client.login(self._password, device_name=self._device_name)
            if not isinstance(login, LoginResponse):
                raise RuntimeError(f"Matrix login failed: {login}")

            resp = await client.room_send(
                room_id=self._room_id,
                message_type="m.room.message",
                content={"msgtype": "m.text", "body": body},
            )
            if not isinstance(resp, RoomSendResponse):
                raise RuntimeError(f"Matrix send failed: {resp}")
            return "Matrix message sent successfully"
        finally:
            await client.close()


class ConsoleChannel:
    """Print to stdout. Useful for local runs without any external service."""

    name = "console"

    def __init__(self, *, enabled: bool = True) -> None:
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def send(self, subject: str, body: str) -> str:
        stamp = datetime.now().strftime("%H:%M:%S")
        print(f"[{stamp}] NOTIFICATION: {subject}\n{body}", flush=True)
        return "Printed to console"
