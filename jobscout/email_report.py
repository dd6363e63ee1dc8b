"""Render the digest email and hand it to an email transport (Resend API or SMTP)."""
from __future__ import annotations

import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid
from html import escape
from typing import Protocol

import requests

from jobscout.config import AppConfig
from jobscout.errors import EmailSendError
from jobscout.log import get_logger
from jobscout.models import DigestSnapshot, ScoredMatch

log = get_logger(__name__)

RESEND_URL = "https://api.resend.com/emails"

_PAGE = """<!DOCTYPE html>
<html><head><meta charset="utf-8"><meta name="viewport" content="width=device-width"></head>
<body style="font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,sans-serif;background:#f8fafc;margin:0;padding:32px 16px">
<div style="max-width:600px;margin:0 auto;background:#fff;border-radius:24px;overflow:hidden">
<div style="background:#4f46e5;padding:28px;text-align:center">
<h1 style="color:#fff;margin:0;font-size:22px">{heading}</h1>
<p style="color:#e0e7ff;margin:8px 0 0;font-size:14px">{subheading}</p>
</div>
{banner}{body}
<div style="padding:20px 28px;text-align:center;border-top:1px solid #f1f5f9">
<p style="color:#94a3b8;font-size:12px;margin:0">Sent by JobScout AI</p>
</div>
</div>
</body></html>"""

_MOCK_BANNER = (
    '<div style="background:#fef3c7;color:#92400e;padding:10px 28px;font-size:13px;font-weight:700">'
    "Sample data: no real matches were found yet. Run a scan to see your own results.</div>"
)


def _plural(n: int) -> str:
    return "match" if n == 1 else "matches"


def _match_row(m: ScoredMatch) -> str:
    source = (
        f' <span style="background:#f0fdf4;color:#16a34a;padding:2px 10px;border-radius:12px;'
        f'font-size:11px">{escape(m.source)}</span>'
        if m.source
        else ""
    )
    return (
        "<tr>"
        '<td style="padding:12px 16px;border-bottom:1px solid #f1f5f9">'
        f'<div style="font-weight:700;color:#0f172a;font-size:15px">{escape(m.title)}</div>'
        f'<div style="color:#64748b;font-size:13px">{escape(m.company)} · {escape(m.location or "N/A")}</div>'
        f'<div style="margin-top:4px"><span style="background:#eef2ff;color:#4f46e5;padding:2px 10px;'
        f'border-radius:12px;font-size:12px;font-weight:700">{m.score:g}% match</span>{source}</div>'
        "</td>"
        '<td style="padding:12px 16px;border-bottom:1px solid #f1f5f9;text-align:right">'
        f'<a href="{escape(m.link or "#")}" style="background:#4f46e5;color:#fff;padding:8px 16px;'
        'border-radius:12px;font-size:13px;text-decoration:none">View</a>'
        "</td></tr>"
    )


def render_digest(snapshot: DigestSnapshot) -> str:
    n = len(snapshot.matches)
    if not n:
        return _PAGE.format(
            heading="No new matches today",
            subheading=f"Nothing scored {snapshot.effective_threshold:g}%+ since your last digest",
            banner="",
            body=(
                '<p style="padding:20px 28px;color:#475569;font-size:14px">'
                f"Highest score in this window: {snapshot.highest_score if snapshot.highest_score is not None else 'n/a'}%. "
                "Try lowering your match threshold or broadening your scan keywords.</p>"
            ),
        )
    rows = "".join(_match_row(m) for m in snapshot.matches)
    return _PAGE.format(
        heading="Your Daily Job Digest",
        subheading=f"{n} {_plural(n)} scoring {snapshot.effective_threshold:g}%+",
        banner=_MOCK_BANNER if snapshot.used_mock_data else "",
        body=f'<table style="width:100%;border-collapse:collapse">{rows}</table>',
    )


def digest_subject(snapshot: DigestSnapshot, now: datetime, test: bool = False) -> str:
    n = len(snapshot.matches)
    day = f"{now:%b} {now.day}"
    subject = (
        f"JobScout Digest: {n} new {_plural(n)} ({day})"
        if n
        else f"JobScout Digest: no new matches today ({day})"
    )
    return f"[Test] {subject}" if test else subject


# ── Transports ─────────────────────────────────────────────────────────


class Mailer(Protocol):
    def send(self, to: str, subject: str, html: str) -> str:
        """Send one message; return the provider's message id or raise EmailSendError."""


class ResendMailer:
    def __init__(self, api_key: str, sender: str, timeout: float = 20.0) -> None:
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout

    def send(self, to: str, subject: str, html: str) -> str:
        try:
            r = requests.post(
                RESEND_URL,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={"from": self.sender, "to": [to], "subject": subject, "html": html},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            log.error("Resend request failed: %s", exc)
            raise EmailSendError("Email provider unreachable", details=str(exc)) from exc

        try:
            data = r.json()
        except ValueError:
            data = {"body": r.text[:300]}
        if not r.ok:
            log.error("Resend API error %d: %s", r.status_code, data)
            raise EmailSendError("Resend API error", status=r.status_code, details=data)
        log.info("Email sent to %s (id=%s)", to, data.get("id"))
        return str(data.get("id", ""))


class SmtpMailer:
    def __init__(self, host: str, port: int, user: str, password: str, sender: str) -> None:
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender or user

    def send(self, to: str, subject: str, html: str) -> str:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to
        msg_id = make_msgid(domain=self.sender.rsplit("@", 1)[-1].strip(">") or None)
        msg["Message-ID"] = msg_id
        msg.attach(MIMEText(html, "html", "utf-8"))
        try:
            with smtplib.SMTP(self.host, self.port) as server:
                server.starttls()
                server.login(self.user, self.password)
                server.sendmail(self.sender, [to], msg.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            log.error("SMTP send to %s failed: %s", to, exc)
            raise EmailSendError("SMTP send failed", details=str(exc)) from exc
        log.info("Email sent to %s via SMTP", to)
        return msg_id


def build_mailer(config: AppConfig) -> Mailer | None:
    if config.resend_api_key:
        return ResendMailer(config.resend_api_key, config.resend_from)
    if config.smtp_host and config.smtp_user and config.smtp_password:
        return SmtpMailer(
            config.smtp_host,
            config.smtp_port,
            config.smtp_user,
            config.smtp_password,
            config.from_email or config.smtp_user,
        )
    return None
