"""Mailbox capability -- Gmail API operations returning Result.

The Google client is blocking; every request runs in a worker thread.
Authentication happens once, lazily, on the first operation.
"""

from __future__ import annotations

import asyncio
import base64
from collections.abc import Callable
from datetime import datetime, timezone
from email.message import EmailMessage
from email.utils import parsedate_to_datetime
from typing import Any

from google.auth.exceptions import GoogleAuthError
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from codeagent.config import GmailConfig
from codeagent.log import logger
from codeagent.tools.google_oauth import get_creds
from codeagent.types import (
    MailboxDraft,
    MailboxListResult,
    MailboxMessage,
    Result,
    ThreadAnalysis,
)

_REMOTE_ERRORS = (HttpError, GoogleAuthError, OSError)


def _headers(payload: dict[str, Any]) -> dict[str, str]:
    out: dict[str, str] = {}
    for h in payload.get("headers", []) or []:
        name = (h.get("name") or "").lower()
        if name:
            out[name] = h.get("value") or ""
    return out


def _addresses(raw: str) -> list[str]:
    return [a.strip() for a in raw.split(",") if a.strip()]


def _parse_date(raw: str) -> datetime | None:
    if not raw:
        return None
    try:
        parsed = parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _decode(data: str) -> str:
    return base64.urlsafe_b64decode(data.encode("ascii")).decode("utf-8", errors="replace")


def extract_body(payload: dict[str, Any]) -> str:
    """Plain-text body: the payload's own data, else the first text/plain part."""
    if not payload:
        return ""
    data = (payload.get("body") or {}).get("data")
    if data and payload.get("mimeType", "text/plain").startswith("text/plain"):
        return _decode(data)
    for part in payload.get("parts", []) or []:
        if part.get("mimeType") == "text/plain" and (part.get("body") or {}).get("data"):
            return _decode(part["body"]["data"])
        if part.get("parts"):
            nested = extract_body(part)
            if nested:
                return nested
    if data:
        return _decode(data)
    return ""


def has_attachments(payload: dict[str, Any]) -> bool:
    for part in (payload or {}).get("parts", []) or []:
        if part.get("filename"):
            return True
        if part.get("parts") and has_attachments(part):
            return True
    return False


def parse_message(msg: dict[str, Any]) -> MailboxMessage:
    payload = msg.get("payload", {}) or {}
    headers = _headers(payload)
    return MailboxMessage(
        id=msg["id"],
        thread_id=msg.get("threadId", msg["id"]),
        subject=headers.get("subject", ""),
        sender=headers.get("from", ""),
        to=_addresses(headers.get("to", "")),
        cc=_addresses(headers.get("cc", "")),
        bcc=_addresses(headers.get("bcc", "")),
        body=extract_body(payload),
        snippet=msg.get("snippet", "") or "",
        date=_parse_date(headers.get("date", "")),
        is_read="UNREAD" not in (msg.get("labelIds") or []),
        has_attachments=has_attachments(payload),
    )


def build_raw(draft: MailboxDraft) -> str:
    """RFC 2822 message, base64url-encoded as the Gmail API expects."""
    msg = EmailMessage()
    msg["To"] = ", ".join(draft.to)
    if draft.cc:
        msg["Cc"] = ", ".join(draft.cc)
    if draft.bcc:
        msg["Bcc"] = ", ".join(draft.bcc)
    msg["Subject"] = draft.subject
    msg.set_content(draft.body)
    for att in draft.attachments:
        maintype, _, subtype = att.content_type.partition("/")
        msg.add_attachment(
            att.data, maintype=maintype or "application",
            subtype=subtype or "octet-stream", filename=att.filename,
        )
    return base64.urlsafe_b64encode(msg.as_bytes()).decode("ascii")


class GmailTools:
    def __init__(self, config: GmailConfig, service: Any | None = None) -> None:
        self._config = config
        self._service = service

    async def _ensure_authenticated(self) -> Result:
        if self._service is not None:
            return Result.ok("Authenticated")
        try:
            creds = await asyncio.to_thread(
                get_creds,
                scopes=list(self._config.scopes),
                client_secret_path=self._config.credentials_path,
                token_path=self._config.token_path,
            )
            self._service = build("gmail", "v1", credentials=creds, cache_discovery=False)
        except (FileNotFoundError, ValueError, *_REMOTE_ERRORS) as e:
            logger.warning(f"Gmail authentication failed: {e}")
            return Result.fail(str(e), "Failed to authenticate with Gmail API")
        logger.info("Authenticated with Gmail API")
        return Result.ok("Successfully authenticated with Gmail API")

    async def _call(self, request: Callable[[Any], Any]) -> Any:
        service = self._service
        return await asyncio.to_thread(lambda: request(service).execute())

    async def _fetch(self, message_id: str) -> MailboxMessage:
        msg = await self._call(
            lambda s: s.users().messages().get(userId="me", id=message_id, format="full")
        )
        return parse_message(msg)

    async def list_emails(
        self, max_results: int = 10, query: str = "", include_spam_trash: bool = False,
    ) -> Result:
        auth = await self._ensure_authenticated()
        if not auth.success:
            return auth
        try:
            resp = await self._call(lambda s: s.users().messages().list(
                userId="me", q=query, maxResults=max_results, includeSpamTrash=include_spam_trash,
            ))
            messages: list[MailboxMessage] = []
            for meta in resp.get("messages", []) or []:
                try:
                    messages.append(await self._fetch(meta["id"]))
                except HttpError as e:
                    logger.warning(f"Skipping message {meta.get('id')}: {e}")
        except _REMOTE_ERRORS as e:
            return Result.fail(str(e), "Failed to list emails")
        result = MailboxListResult(
            messages=messages,
            next_page_token=resp.get("nextPageToken"),
            result_size_estimate=resp.get("resultSizeEstimate", 0) or 0,
        )
        return Result.ok(f"Successfully retrieved {len(messages)} emails", result)

    async def search_emails(self, query: str, max_results: int = 10) -> Result:
        return await self.list_emails(max_results=max_results, query=query)

    async def get_unread_emails(self, max_results: int = 10) -> Result:
        return await self.list_emails(max_results=max_results, query="is:unread")

    async def get_email(self, message_id: str) -> Result:
        auth = await self._ensure_authenticated()
        if not auth.success:
            return auth
        try:
            email = await self._fetch(message_id)
        except _REMOTE_ERRORS as e:
            return Result.fail(str(e), f"Failed to get email: {message_id}")
        return Result.ok(f"Successfully retrieved email: {email.subject}", email)

    async def send_email(self, draft: MailboxDraft) -> Result:
        if not draft.to:
            return Result.fail("No recipients", "Failed to send email")
        auth = await self._ensure_authenticated()
        if not auth.success:
            return auth
        raw = build_raw(draft)
        try:
            resp = await self._call(lambda s: s.users().messages().send(userId="me", body={"raw": raw}))
        except _REMOTE_ERRORS as e:
            return Result.fail(str(e), "Failed to send email")
        return Result.ok(f"Successfully sent email: {draft.subject}", resp)

    async def create_draft(self, draft: MailboxDraft) -> Result:
        if not draft.to:
            return Result.fail("No recipients", "Failed to create draft")
        auth = await self._ensure_authenticated()
        if not auth.success:
            return auth
        raw = build_raw(draft)
        try:
            resp = await self._call(
                lambda s: s.users().drafts().create(userId="me", body={"message": {"raw": raw}})
            )
        except _REMOTE_ERRORS as e:
            return Result.fail(str(e), "Failed to create draft")
        return Result.ok(f"Successfully created draft: {draft.subject}", resp)

    async def mark_as_read(self, message_id: str) -> Result:
        auth = await self._ensure_authenticated()
        if not auth.success:
            return auth
        try:
            await self._call(lambda s: s.users().messages().modify(
                userId="me", id=message_id, body={"removeLabelIds": ["UNREAD"]},
            ))
        except _REMOTE_ERRORS as e:
            return Result.fail(str(e), f"Failed to mark email as read: {message_id}")
        return Result.ok(f"Successfully marked email as read: {message_id}")

    async def delete_email(self, message_id: str) -> Result:
        """Move a message to the trash (permanent deletion needs the full mail scope)."""
        auth = await self._ensure_authenticated()
        if not auth.success:
            return auth
        try:
            await self._call(lambda s: s.users().messages().trash(userId="me", id=message_id))
        except _REMOTE_ERRORS as e:
            return Result.fail(str(e), f"Failed to delete email: {message_id}")
        return Result.ok(f"Successfully deleted email: {message_id}")

    async def get_email_context(self, message_id: str) -> Result:
        fetched = await self.get_email(message_id)
        if not fetched.success:
            return fetched
        email: MailboxMessage = fetched.data
        context = {
            "subject": email.subject,
            "sender": email.sender,
            "recipients": email.to,
            "date": email.date.isoformat() if email.date else None,
            "snippet": email.snippet,
            "is_read": email.is_read,
            "has_attachments": email.has_attachments,
            "thread_id": email.thread_id,
        }
        return Result.ok(f"Email context retrieved for: {email.subject}", context)

    async def analyze_email_thread(self, thread_id: str) -> Result:
        auth = await self._ensure_authenticated()
        if not auth.success:
            return auth
        try:
            thread = await self._call(
                lambda s: s.users().threads().get(userId="me", id=thread_id, format="full")
            )
        except _REMOTE_ERRORS as e:
            return Result.fail(str(e), "Failed to analyze email thread")

        participants: dict[str, None] = {}
        subjects: dict[str, None] = {}
        dates: list[datetime] = []
        attachments = False
        messages = thread.get("messages", []) or []
        for msg in messages:
            payload = msg.get("payload", {}) or {}
            headers = _headers(payload)
            if headers.get("from"):
                participants[headers["from"]] = None
            if headers.get("subject"):
                subjects[headers["subject"]] = None
            date = _parse_date(headers.get("date", ""))
            if date is not None:
                dates.append(date)
            attachments = attachments or has_attachments(payload)

        analysis = ThreadAnalysis(
            thread_id=thread_id,
            message_count=len(messages),
            participants=list(participants),
            subjects=list(subjects),
            first_date=min(dates) if dates else None,
            last_date=max(dates) if dates else None,
            has_attachments=attachments,
        )
        return Result.ok(f"Thread analysis completed for thread: {thread_id}", analysis)
