"""
Gmail mailbox adapter

Threads are the unit of work: a forwarded receipt often arrives as a thread
with several messages, and the model sees the bodies of all of them.

Bodies come base64url-encoded; plain-text parts are preferred over HTML
parts within each message.
"""
import asyncio
import base64
from typing import Any, Dict, List, Optional

import structlog
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from packages.integrations.google_auth import translate_http_error

logger = structlog.get_logger()


def decode_body(data: Optional[str]) -> str:
    """Decode a base64url Gmail body, tolerating missing padding"""
    if not data:
        return ""
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8", errors="replace")


def extract_message_text(payload: Dict[str, Any]) -> str:
    """
    Return the best text body of one message payload.

    Walks nested multipart payloads; text/plain wins over text/html.
    """
    plain: List[str] = []
    html: List[str] = []

    def walk(part: Dict[str, Any]) -> None:
        mime = part.get("mimeType", "")
        data = (part.get("body") or {}).get("data")
        if data and mime == "text/plain":
            plain.append(decode_body(data))
        elif data and mime == "text/html":
            html.append(decode_body(data))
        elif data and not part.get("parts"):
            # Single-part message with an unusual mime type
            plain.append(decode_body(data))
        for child in part.get("parts") or []:
            walk(child)

    walk(payload)
    return "\n".join(plain) if plain else "\n".join(html)


class GmailMailbox:
    """
    Gmail implementation of MailboxClient.

    Label ids are looked up once per instance and created on first use.
    """

    def __init__(self, credentials, user_id: str = "me", service=None):
        """
        Args:
            credentials: google.auth credentials with gmail.modify scope
            user_id: Gmail user ("me" for the authenticated account)
            service: Prebuilt discovery client (tests)
        """
        self.user_id = user_id
        self.service = service or build("gmail", "v1", credentials=credentials, cache_discovery=False)
        self._label_ids: Dict[str, str] = {}

    async def _execute(self, request):
        try:
            return await asyncio.to_thread(request.execute)
        except HttpError as e:
            raise translate_http_error("gmail", e) from e

    async def search(self, query: str) -> List[str]:
        """Return thread ids matching ``query`` across all result pages"""
        threads = self.service.users().threads()
        thread_ids: List[str] = []
        page_token = None

        while True:
            response = await self._execute(
                threads.list(userId=self.user_id, q=query, pageToken=page_token)
            )
            thread_ids.extend(t["id"] for t in response.get("threads", []))
            page_token = response.get("nextPageToken")
            if not page_token:
                break

        logger.info("gmail_search_complete", query=query, threads=len(thread_ids))
        return thread_ids

    async def fetch_content(self, item_id: str) -> str:
        """Concatenate decoded bodies of every message in the thread"""
        thread = await self._execute(
            self.service.users().threads().get(userId=self.user_id, id=item_id, format="full")
        )
        bodies = [
            extract_message_text(message.get("payload") or {})
            for message in thread.get("messages", [])
        ]
        content = "\n".join(b for b in bodies if b)

        logger.debug("gmail_thread_fetched",
                     thread_id=item_id,
                     messages=len(thread.get("messages", [])),
                     chars=len(content))
        return content

    async def apply_label(self, item_id: str, label_name: str) -> None:
        label_id = await self._get_or_create_label(label_name)
        await self._execute(
            self.service.users().threads().modify(
                userId=self.user_id, id=item_id, body={"addLabelIds": [label_id]}
            )
        )
        logger.info("gmail_label_applied", thread_id=item_id, label=label_name)

    async def _get_or_create_label(self, name: str) -> str:
        if name in self._label_ids:
            return self._label_ids[name]

        labels = self.service.users().labels()
        response = await self._execute(labels.list(userId=self.user_id))
        for label in response.get("labels", []):
            self._label_ids[label["name"]] = label["id"]

        if name not in self._label_ids:
            created = await self._execute(
                labels.create(
                    userId=self.user_id,
                    body={
                        "name": name,
                        "labelListVisibility": "labelShow",
                        "messageListVisibility": "show",
                    },
                )
            )
            self._label_ids[name] = created["id"]
            logger.info("gmail_label_created", label=name, label_id=created["id"])

        return self._label_ids[name]
