"""
Tests for the Gmail mailbox adapter (discovery client mocked).
"""
import asyncio
import base64
from unittest.mock import MagicMock

import httplib2
import pytest
from googleapiclient.errors import HttpError

from packages.common.errors import AuthenticationError, CollaboratorError
from packages.integrations.gmail_client import GmailMailbox, decode_body, extract_message_text


def _b64(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def _http_error(status: int) -> HttpError:
    return HttpError(httplib2.Response({"status": str(status)}), b'{"error": {"message": "nope"}}')


def test_decode_body_handles_missing_padding_and_utf8():
    assert decode_body(_b64("Leche 0,90 €")) == "Leche 0,90 €"
    assert decode_body(None) == ""


def test_plain_text_preferred_over_html():
    payload = {
        "mimeType": "multipart/alternative",
        "parts": [
            {"mimeType": "text/html", "body": {"data": _b64("<p>html</p>")}},
            {"mimeType": "text/plain", "body": {"data": _b64("plain")}},
        ],
    }
    assert extract_message_text(payload) == "plain"


def test_html_used_when_no_plain_part():
    payload = {
        "mimeType": "multipart/mixed",
        "parts": [
            {"mimeType": "multipart/alternative", "parts": [
                {"mimeType": "text/html", "body": {"data": _b64("<b>TOTAL 4,30</b>")}},
            ]},
            {"mimeType": "application/pdf", "body": {"attachmentId": "x"}},
        ],
    }
    assert extract_message_text(payload) == "<b>TOTAL 4,30</b>"


def test_search_follows_pagination():
    service = MagicMock()
    service.users().threads().list().execute.side_effect = [
        {"threads": [{"id": "t1"}, {"id": "t2"}], "nextPageToken": "p2"},
        {"threads": [{"id": "t3"}]},
    ]

    ids = asyncio.run(GmailMailbox(None, service=service).search("label:OmniTicket"))

    assert ids == ["t1", "t2", "t3"]


def test_fetch_content_joins_all_messages():
    service = MagicMock()
    service.users().threads().get().execute.return_value = {"messages": [
        {"payload": {"mimeType": "text/plain", "body": {"data": _b64("Reenviado:")}}},
        {"payload": {"mimeType": "text/plain", "body": {"data": _b64("MERCADONA 4,30")}}},
    ]}

    content = asyncio.run(GmailMailbox(None, service=service).fetch_content("t1"))

    assert content == "Reenviado:\nMERCADONA 4,30"


def test_apply_label_creates_missing_label_once():
    service = MagicMock()
    labels = service.users().labels()
    labels.list().execute.return_value = {"labels": [{"name": "INBOX", "id": "INBOX"}]}
    labels.create().execute.return_value = {"id": "Label_9"}
    threads = service.users().threads()

    mailbox = GmailMailbox(None, service=service)
    asyncio.run(mailbox.apply_label("t1", "OmniTicket/Procesado"))
    asyncio.run(mailbox.apply_label("t2", "OmniTicket/Procesado"))

    assert labels.create().execute.call_count == 1
    threads.modify.assert_called_with(userId="me", id="t2", body={"addLabelIds": ["Label_9"]})


@pytest.mark.parametrize("status,error_type", [(401, AuthenticationError), (403, AuthenticationError), (500, CollaboratorError)])
def test_http_errors_translated(status, error_type):
    service = MagicMock()
    service.users().threads().list().execute.side_effect = _http_error(status)

    with pytest.raises(error_type) as exc_info:
        asyncio.run(GmailMailbox(None, service=service).search("label:x"))

    assert exc_info.value.status_code == status
