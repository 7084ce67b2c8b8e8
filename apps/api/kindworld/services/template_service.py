"""Email templates for verification notifications.

Templates are fixed per notification type. Placeholders use ``{{key}}``;
unknown keys are left in place so missing data is visible in review.
"""

import html
import re
from dataclasses import dataclass
from textwrap import dedent

from kindworld.db.enums import NotificationType


# Variable pattern for template substitution: {{ variable_name }}
VARIABLE_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")


@dataclass(frozen=True)
class EmailTemplate:
    subject: str
    html_body: str
    text_body: str


_BUTTON_STYLE = (
    "background-color: {color}; color: white; padding: 12px 24px; "
    "text-decoration: none; border-radius: 6px; display: inline-block;"
)


def _html(color: str, heading: str, inner: str, link_key: str, link_label: str) -> str:
    button = _BUTTON_STYLE.format(color=color)
    return "\n".join(
        [
            '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">',
            f'  <h2 style="color: {color};">{heading}</h2>',
            "  <p>Dear {{organizationName}} team,</p>",
            inner,
            '  <div style="margin: 30px 0; text-align: center;">',
            f'    <a href="{{{{{link_key}}}}}" style="{button}">{link_label}</a>',
            "  </div>",
            "  <p>Best regards,<br>The KindWorld Team</p>",
            "</div>",
        ]
    )


EMAIL_TEMPLATES: dict[NotificationType, EmailTemplate] = {
    NotificationType.VERIFICATION_APPROVED: EmailTemplate(
        subject="NGO Verification Approved - Welcome to KindWorld!",
        html_body=_html(
            "#10B981",
            "Congratulations! Your NGO has been verified",
            """\
  <p>We're excited to inform you that your NGO verification request has been <strong>approved</strong>!</p>
  <p>You now have full access to all KindWorld features, including:</p>
  <ul>
    <li>Creating and managing volunteer opportunities</li>
    <li>Accessing NGO dashboard and analytics</li>
    <li>Managing volunteer applications</li>
    <li>Connecting with volunteers in your community</li>
  </ul>
  <p>Thank you for joining our mission to make the world a kinder place!</p>""",
            "dashboardUrl",
            "Access Your Dashboard",
        ),
        text_body=dedent(
            """\
            Congratulations! Your NGO has been verified

            Dear {{organizationName}} team,

            We're excited to inform you that your NGO verification request has been approved!

            You now have full access to all KindWorld features, including:
            - Creating and managing volunteer opportunities
            - Accessing NGO dashboard and analytics
            - Managing volunteer applications
            - Connecting with volunteers in your community

            Visit your dashboard: {{dashboardUrl}}

            Thank you for joining our mission to make the world a kinder place!

            Best regards,
            The KindWorld Team
            """
        ),
    ),
    NotificationType.VERIFICATION_REJECTED: EmailTemplate(
        subject="NGO Verification Update - Additional Information Required",
        html_body=_html(
            "#EF4444",
            "Verification Update Required",
            """\
  <p>Thank you for your interest in joining KindWorld as a verified NGO.</p>
  <p>After reviewing your verification request, we need additional information before we can approve your account:</p>
  <div style="background-color: #FEF2F2; border-left: 4px solid #EF4444; padding: 16px; margin: 20px 0;">
    <p><strong>Reason:</strong> {{rejectionReason}}</p>
  </div>
  <p>Please review the requirements and submit a new verification request with the necessary documentation.</p>
  <p>If you have any questions, please don't hesitate to contact our support team.</p>""",
            "verificationUrl",
            "Submit New Request",
        ),
        text_body=dedent(
            """\
            Verification Update Required

            Dear {{organizationName}} team,

            Thank you for your interest in joining KindWorld as a verified NGO.

            After reviewing your verification request, we need additional information before we can approve your account:

            Reason: {{rejectionReason}}

            Please review the requirements and submit a new verification request with the necessary documentation.

            Submit a new request: {{verificationUrl}}

            If you have any questions, please don't hesitate to contact our support team.

            Best regards,
            The KindWorld Team
            """
        ),
    ),
    NotificationType.VERIFICATION_PENDING: EmailTemplate(
        subject="NGO Verification Request Received",
        html_body=_html(
            "#3B82F6",
            "Verification Request Received",
            """\
  <p>We have successfully received your NGO verification request!</p>
  <p><strong>What happens next:</strong></p>
  <ol>
    <li>Our team will review your submitted documents</li>
    <li>We may contact you if additional information is needed</li>
    <li>You'll receive an email notification once the review is complete</li>
  </ol>
  <p><strong>Review Timeline:</strong> Most verification requests are processed within 3-5 business days.</p>
  <p>Thank you for your patience!</p>""",
            "statusUrl",
            "Check Status",
        ),
        text_body=dedent(
            """\
            Verification Request Received

            Dear {{organizationName}} team,

            We have successfully received your NGO verification request!

            What happens next:
            1. Our team will review your submitted documents
            2. We may contact you if additional information is needed
            3. You'll receive an email notification once the review is complete

            Review Timeline: Most verification requests are processed within 3-5 business days.

            Check your status: {{statusUrl}}

            Thank you for your patience!

            Best regards,
            The KindWorld Team
            """
        ),
    ),
    NotificationType.VERIFICATION_DOCUMENTS_REQUIRED: EmailTemplate(
        subject="Additional Documents Required for NGO Verification",
        html_body=_html(
            "#F59E0B",
            "Additional Documents Required",
            """\
  <p>We're currently reviewing your NGO verification request and need additional documentation to complete the process.</p>
  <div style="background-color: #FFFBEB; border-left: 4px solid #F59E0B; padding: 16px; margin: 20px 0;">
    <p><strong>Required Documents:</strong></p>
    <p>{{requiredDocuments}}</p>
  </div>
  <p>Please upload the requested documents to continue with your verification.</p>
  <p>If you have any questions about the required documents, please contact our support team.</p>""",
            "uploadUrl",
            "Upload Documents",
        ),
        text_body=dedent(
            """\
            Additional Documents Required

            Dear {{organizationName}} team,

            We're currently reviewing your NGO verification request and need additional documentation to complete the process.

            Required Documents:
            {{requiredDocuments}}

            Please upload the requested documents to continue with your verification.

            Upload documents: {{uploadUrl}}

            If you have any questions about the required documents, please contact our support team.

            Best regards,
            The KindWorld Team
            """
        ),
    ),
}


def _substitute(text: str, data: dict[str, str], *, escape: bool = False) -> str:
    def replace_var(match: re.Match) -> str:
        key = match.group(1)
        if key not in data:
            return match.group(0)
        value = "" if data[key] is None else str(data[key])
        return html.escape(value) if escape else value

    return VARIABLE_PATTERN.sub(replace_var, text)


def render_string(text: str, data: dict[str, str]) -> str:
    """Substitute placeholders in a plain string (no escaping)."""
    return _substitute(text, data)


def render_template(notification_type: NotificationType, data: dict[str, str]) -> EmailTemplate:
    """
    Render the fixed template for a notification type.

    - Every occurrence of a known key is replaced
    - Unknown placeholders stay verbatim
    - Values are HTML-escaped in the HTML body
    - CR/LF are stripped from the subject (header injection)
    """
    template = EMAIL_TEMPLATES.get(NotificationType(notification_type))
    if template is None:
        raise KeyError(f"No email template for notification type: {notification_type}")

    subject = _substitute(template.subject, data)
    subject = subject.replace("\r", " ").replace("\n", " ").strip()
    return EmailTemplate(
        subject=subject,
        html_body=_substitute(template.html_body, data, escape=True),
        text_body=_substitute(template.text_body, data),
    )
