"""
Email sending service using SMTP.

Every sender returns True/False and never raises: email is best effort and a
delivery failure must not fail the request that triggered it.
"""
import html
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional
import logging
from kindred.core.config import (
    SMTP_HOST,
    SMTP_PORT,
    SMTP_USE_SSL,
    SMTP_USERNAME,
    SMTP_PASSWORD,
    SMTP_FROM_EMAIL,
    SMTP_FROM_NAME,
    APP_URL,
)

logger = logging.getLogger(__name__)


def _clean_header(value: str) -> str:
    return value.replace("\r", "").replace("\n", "").replace("\0", "")


def _layout(title: str, body_html: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
</head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #1f2937;">
    <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
        <h2 style="color: #111827;">{html.escape(title)}</h2>
        {body_html}
        <p>Kindred Collective</p>
    </div>
</body>
</html>"""


def _button(url: str, label: str) -> str:
    return (
        '<div style="text-align: center; margin: 30px 0;">'
        f'<a href="{html.escape(url, quote=True)}" style="display: inline-block; padding: 12px 28px; '
        'background-color: #111827; color: #ffffff; text-decoration: none; border-radius: 6px;">'
        f'{html.escape(label)}</a></div>'
    )


def send_email(
    to_email: str,
    subject: str,
    html_body: str,
    text_body: Optional[str] = None
) -> bool:
    """
    Send an email via SMTP.

    Args:
        to_email: Recipient email address
        subject: Email subject
        html_body: HTML email body
        text_body: Plain text email body (optional)

    Returns:
        True if email sent successfully, False otherwise
    """
    if not SMTP_HOST or not SMTP_USERNAME or not SMTP_PASSWORD:
        logger.info(f"[Email] SMTP not configured, skipping email to {to_email}: {subject}")
        return False

    try:
        msg = MIMEMultipart('alternative')
        msg['Subject'] = _clean_header(subject)
        msg['From'] = f"{SMTP_FROM_NAME} <{SMTP_FROM_EMAIL}>"
        msg['To'] = _clean_header(to_email)

        if text_body:
            msg.attach(MIMEText(text_body, 'plain', 'utf-8'))
        msg.attach(MIMEText(html_body, 'html', 'utf-8'))

        if SMTP_USE_SSL:
            server = smtplib.SMTP_SSL(SMTP_HOST, SMTP_PORT, timeout=10)
        else:
            server = smtplib.SMTP(SMTP_HOST, SMTP_PORT, timeout=10)
            server.starttls()
        try:
            server.login(SMTP_USERNAME, SMTP_PASSWORD)
            server.send_message(msg)
        finally:
            server.quit()

        logger.info(f"[Email] Sent '{subject}' to {to_email}")
        return True

    except Exception as e:
        logger.error(f"[Email] Failed to send email to {to_email}: {str(e)}", exc_info=True)
        return False


def send_invite_email(email: str, token: str, notes: Optional[str] = None) -> bool:
    """Send an admin invite link to a prospective member."""
    signup_url = f"{APP_URL}/signup?invite={token}"
    subject = "You're invited to join Kindred Collective"
    text_body = f"""You're invited to join Kindred Collective.

Kindred Collective connects independent drinks brands with the suppliers who help them grow.

Create your account here: {signup_url}
"""
    note_html = f"<p><em>{html.escape(notes)}</em></p>" if notes else ""
    html_body = _layout(
        "You're invited to Kindred Collective",
        "<p>Kindred Collective connects independent drinks brands with the suppliers who help them grow.</p>"
        f"{note_html}{_button(signup_url, 'Create your account')}"
        f"<p style=\"font-size: 12px; color: #6b7280;\">Or paste this link into your browser: {html.escape(signup_url)}</p>",
    )
    return send_email(email, subject, html_body, text_body)


def send_org_invite_email(email: str, token: str, organisation_name: str, inviter_name: Optional[str] = None,
                          role: str = "MEMBER") -> bool:
    """Send an organisation invite."""
    invite_url = f"{APP_URL}/invite/{token}"
    inviter = inviter_name or "A colleague"
    role_label = "an admin" if role == "ADMIN" else "a member"
    subject = f"{inviter} invited you to join {organisation_name} on Kindred Collective"
    text_body = f"""{inviter} invited you to join {organisation_name} as {role_label} on Kindred Collective.

Accept the invite: {invite_url}

This invite expires in 7 days.
"""
    html_body = _layout(
        f"Join {organisation_name}",
        f"<p>{html.escape(inviter)} invited you to join <strong>{html.escape(organisation_name)}</strong> "
        f"as {role_label} on Kindred Collective.</p>"
        f"{_button(invite_url, 'Accept invite')}"
        "<p style=\"font-size: 12px; color: #6b7280;\">This invite expires in 7 days.</p>",
    )
    return send_email(email, subject, html_body, text_body)


def send_claim_verification_email(email: str, code: str, supplier_name: str) -> bool:
    """Send the 6-digit code confirming control of a supplier's company email."""
    subject = f"Your verification code for {supplier_name}"
    text_body = f"""Your code to claim {supplier_name} on Kindred Collective is:

{code}

If you did not request this, you can ignore this email.
"""
    html_body = _layout(
        f"Claim {supplier_name}",
        "<p>Enter this code to confirm you manage this supplier profile:</p>"
        '<div style="text-align: center; margin: 30px 0; font-size: 32px; font-weight: bold; letter-spacing: 8px;">'
        f"{html.escape(code)}</div>"
        "<p style=\"font-size: 12px; color: #6b7280;\">If you did not request this, you can ignore this email.</p>",
    )
    return send_email(email, subject, html_body, text_body)


def send_confirmation_email(email: str, code: str, first_name: Optional[str] = None) -> bool:
    """Send the account confirmation link issued at signup."""
    confirm_url = f"{APP_URL}/api/auth/callback?code={code}"
    greeting = f"Hi {first_name}," if first_name else "Hi,"
    subject = "Confirm your Kindred Collective account"
    text_body = f"""{greeting}

Confirm your email address to finish setting up your account:
{confirm_url}
"""
    html_body = _layout(
        "Confirm your email",
        f"<p>{html.escape(greeting)}</p><p>Confirm your email address to finish setting up your account.</p>"
        f"{_button(confirm_url, 'Confirm email')}",
    )
    return send_email(email, subject, html_body, text_body)
