"""
Alerts External Service Integrations
=====================================

External services used to deliver alerts:
- Slack Web API (chat.postMessage) with circuit breaker and retries
- SMTP for customer e-mails
- HubSpot CRM contact search
"""

import asyncio
import smtplib
import time
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid
from typing import List, Optional, Tuple

import httpx

from shipwatch.alerts.application import IChatClient, IContactLookup, IMailer
from shipwatch.alerts.domain import Contact, OutgoingEmail
from shipwatch.core import ContactLookupException, MailException
from shipwatch.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class CircuitState:
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Circuit breaker for preventing cascade failures.

    States:
    - CLOSED: Normal operation, requests pass through
    - OPEN: After N failures, reject all requests for M seconds
    - HALF_OPEN: After timeout, allow one test request
    """

    def __init__(self, failure_threshold: int = 5, recovery_timeout: float = 60.0):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None

    @property
    def state(self) -> str:
        if self._state == CircuitState.OPEN and self._last_failure_time:
            if time.time() - self._last_failure_time >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
        return self._state

    def allow_request(self) -> bool:
        return self.state in (CircuitState.CLOSED, CircuitState.HALF_OPEN)

    def record_success(self) -> None:
        self._failure_count = 0
        self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = time.time()

        if self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            logger.warning(
                "Circuit breaker opened",
                extra={
                    "failure_count": self._failure_count,
                    "recovery_timeout": self.recovery_timeout
                }
            )


class SlackClient(IChatClient):
    """
    Slack Web API client.

    Transport errors, 5xx and rate-limit responses are retried with
    exponential backoff; a 429 waits for its ``Retry-After`` instead.
    A well-formed ``ok: false`` answer is not retried.
    Never raises; returns None when the message was not delivered.
    """

    def __init__(
        self,
        bot_token: str,
        api_url: str = "https://slack.com/api/chat.postMessage",
        timeout_seconds: float = 5.0,
        max_retries: int = 3,
        backoff_base: float = 1.0
    ):
        self._bot_token = bot_token
        self._api_url = api_url
        self._timeout = timeout_seconds
        self._max_retries = max_retries
        self._backoff_base = backoff_base
        self._circuit_breaker = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        self._http_client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    async def post_message(self, channel_id: str, text: str, blocks: List[dict]) -> Optional[str]:
        if not self._circuit_breaker.allow_request():
            logger.warning("Circuit breaker open, skipping Slack message", extra={"channel": channel_id})
            return None

        headers = {
            "Authorization": f"Bearer {self._bot_token}",
            "Content-Type": "application/json; charset=utf-8",
        }
        payload = {"channel": channel_id, "text": text, "blocks": blocks}

        for attempt in range(self._max_retries):
            delay = self._backoff_base * (2 ** attempt)
            try:
                client = await self._get_client()
                response = await client.post(self._api_url, headers=headers, json=payload)

                if response.status_code == 200:
                    body = response.json()
                    if body.get("ok"):
                        self._circuit_breaker.record_success()
                        return body.get("ts")

                    logger.error(
                        "Slack rejected message",
                        extra={"error": body.get("error"), "channel": channel_id}
                    )
                    self._circuit_breaker.record_failure()
                    return None

                if response.status_code == 429:
                    delay = self._retry_after(response, delay)

                logger.warning(
                    "Slack API returned non-200",
                    extra={"status_code": response.status_code, "attempt": attempt + 1}
                )
            except (httpx.HTTPError, ValueError) as e:
                logger.error(
                    "Slack request failed",
                    extra={"error": str(e), "attempt": attempt + 1}
                )

            if attempt < self._max_retries - 1:
                await asyncio.sleep(delay)

        self._circuit_breaker.record_failure()
        return None

    @staticmethod
    def _retry_after(response: httpx.Response, default: float) -> float:
        try:
            return float(response.headers["Retry-After"])
        except (KeyError, ValueError):
            return default

    async def close(self) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


class SMTPMailer(IMailer):
    """
    Plain-text e-mail over SMTP.

    ``secure`` selects implicit TLS (SMTP_SSL, usually port 465);
    otherwise STARTTLS is used when the server offers it. smtplib is
    blocking, so sends run in a worker thread.
    """

    def __init__(
        self,
        host: Optional[str],
        port: int = 465,
        secure: bool = True,
        user: Optional[str] = None,
        password: Optional[str] = None,
        timeout_seconds: float = 20.0
    ):
        self.host = host
        self.port = port
        self.secure = secure
        self.user = user
        self._password = password
        self._timeout = timeout_seconds

        if not self.enabled:
            logger.warning("SMTP not fully configured, customer e-mails disabled")
        else:
            logger.info("SMTP delivery configured", extra={"smtp_host": self.host, "smtp_port": self.port})

    @property
    def enabled(self) -> bool:
        return bool(self.host and self.user and self._password)

    async def send_mail(self, email: OutgoingEmail) -> str:
        if not self.enabled:
            raise MailException("SMTP delivery not enabled")
        return await asyncio.to_thread(self._send, email)

    def _build_message(self, email: OutgoingEmail) -> Tuple[MIMEText, List[str]]:
        msg = MIMEText(email.body, "plain", "utf-8")
        msg["Subject"] = email.subject
        msg["From"] = formataddr((email.from_name, email.from_address))
        msg["To"] = formataddr((email.to_name, email.to_address))
        msg["Message-ID"] = make_msgid()
        if email.reply_to:
            msg["Reply-To"] = email.reply_to

        recipients = [email.to_address]
        if email.bcc:
            recipients.append(email.bcc)
        return msg, recipients

    def _send(self, email: OutgoingEmail) -> str:
        msg, recipients = self._build_message(email)

        try:
            if self.secure:
                server = smtplib.SMTP_SSL(self.host, self.port, timeout=self._timeout)
            else:
                server = smtplib.SMTP(self.host, self.port, timeout=self._timeout)

            with server:
                if not self.secure:
                    server.ehlo()
                    if server.has_extn("starttls"):
                        server.starttls()
                        server.ehlo()
                server.login(self.user, self._password)
                server.sendmail(email.from_address, recipients, msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            raise MailException(f"Failed to send e-mail: {e}")

        return msg["Message-ID"]


class HubSpotContactLookup(IContactLookup):
    """
    HubSpot CRM contact search.

    Tries company token, first-name token, last-name token and email
    local-part token in that order; the first search returning contacts
    wins. A failing strategy is logged and the next one is tried.
    """

    PROPERTIES = ["email", "firstname", "lastname", "company"]

    def __init__(
        self,
        api_key: str,
        api_url: str = "https://api.hubapi.com",
        timeout_seconds: float = 10.0
    ):
        self._api_key = api_key
        self._search_url = f"{api_url.rstrip('/')}/crm/v3/objects/contacts/search"
        self._timeout = timeout_seconds

    @staticmethod
    def strategies(company: str, customer_name: Optional[str] = None) -> List[Tuple[str, str]]:
        """
        (property, token) pairs in search order.

        The e-mail search is a prefix match, so it only hits the local part:
        the customer's first name when known, otherwise the company token.
        """
        company_token = company.strip().split()[0] if company.strip() else ""
        name_parts = (customer_name or "").split()

        pairs = [("company", company_token)]
        if name_parts:
            pairs.append(("firstname", name_parts[0]))
            pairs.append(("lastname", name_parts[-1]))
        local_part = name_parts[0] if name_parts else company_token
        if local_part:
            pairs.append(("email", f"{local_part.lower()}*"))
        return [(prop, token) for prop, token in pairs if token]

    async def _search(self, client: httpx.AsyncClient, prop: str, token: str) -> List[dict]:
        body = {
            "filterGroups": [
                {"filters": [{"propertyName": prop, "operator": "CONTAINS_TOKEN", "value": token}]}
            ],
            "properties": self.PROPERTIES,
            "limit": 10,
        }
        try:
            response = await client.post(
                self._search_url,
                headers={"Authorization": f"Bearer {self._api_key}"},
                json=body
            )
            response.raise_for_status()
            return response.json().get("results", [])
        except (httpx.HTTPError, ValueError) as e:
            raise ContactLookupException(f"Search by {prop} failed: {e}")

    async def find_contact(self, company: str, customer_name: Optional[str] = None) -> Optional[Contact]:
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            for prop, token in self.strategies(company, customer_name):
                try:
                    results = await self._search(client, prop, token)
                except ContactLookupException as e:
                    logger.warning("Contact search strategy failed", extra={"strategy": prop, "error": e.message})
                    continue

                records = [r.get("properties", {}) for r in results if r.get("properties", {}).get("email")]
                if records:
                    first = records[0]
                    logger.info("Contact found", extra={"strategy": prop, "matches": len(records)})
                    return Contact(
                        email=first["email"],
                        first_name=first.get("firstname") or "",
                        last_name=first.get("lastname") or "",
                        company=first.get("company")
                    )
        return None
