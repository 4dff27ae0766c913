"""
MJML Email Templates
All awards email templates use MJML for responsive, cross-client compatibility.
Every value that comes from a user is escaped before interpolation.
"""

from typing import Optional

from . import config
from .utils.sanitization import sanitize_string

# Awards theme - amber/slate
THEME = {
    "primary": "#f59e0b",
    "primary_dark": "#92400e",
    "primary_light": "#fffbeb",
    "background": "#f8fafc",
    "card_bg": "#ffffff",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "success": "#22c55e",
    "warning": "#f59e0b",
    "danger": "#ef4444",
}

CONTACT_PHONE = "+256706564628"

STATUS_CONFIG = {
    "approved": {
        "color": "#22c55e",
        "bg_color": "#f0fdf4",
        "icon": "✅",
        "title": "Nomination Approved!",
        "message": "Great news! Your nomination has been approved and is now published for public voting.",
    },
    "rejected": {
        "color": "#ef4444",
        "bg_color": "#fef2f2",
        "icon": "❌",
        "title": "Nomination Not Approved",
        "message": "Thank you for your submission. Unfortunately, this nomination was not approved at this time.",
    },
    "winner": {
        "color": "#f59e0b",
        "bg_color": "#fffbeb",
        "icon": "🏆",
        "title": "Congratulations - Winner Announced!",
        "message": "Exciting news! This nomination has been selected as a WINNER! Congratulations to the nominee!",
    },
    "finalist": {
        "color": "#8b5cf6",
        "bg_color": "#faf5ff",
        "icon": "🥈",
        "title": "Finalist Status Achieved!",
        "message": "Wonderful news! This nomination has been selected as a FINALIST! An outstanding achievement!",
    },
    "pending": {
        "color": "#64748b",
        "bg_color": "#f8fafc",
        "icon": "⏳",
        "title": "Nomination Back Under Review",
        "message": "This nomination has been returned to review by the awards team.",
    },
}

CERTIFICATE_CONFIG = {
    "winner": {
        "icon": "🏆",
        "title": "Congratulations - Certificate of Achievement!",
        "message": "You are a WINNER! Congratulations on your outstanding achievement in the {category}!",
    },
    "finalist": {
        "icon": "🥈",
        "title": "Congratulations - Certificate of Excellence!",
        "message": "You have been recognized as a FINALIST in the {category}! An exceptional achievement!",
    },
    "participant": {
        "icon": "🎖️",
        "title": "Certificate of Participation",
        "message": "Thank you for your participation in the {category}!",
    },
}


def awards_name() -> str:
    return f"SAPHANIOX Awards {config.AWARD_YEAR}"


def _e(value, default: str = "N/A") -> str:
    if value is None or value == "":
        return default
    return sanitize_string(str(value))


def _detail_rows(rows: list[tuple[str, Optional[str]]]) -> str:
    return "<br/>".join(f"<strong>{label}:</strong> {_e(value)}" for label, value in rows)


def _panel(heading: str, body: str, color: str = THEME["text_primary"], bg: str = "#f3f4f6") -> str:
    return f"""
    <mj-text container-background-color="{bg}" padding="16px 20px" color="{THEME['text_secondary']}">
      <strong style="color: {color};">{heading}</strong><br/>
      {body}
    </mj-text>
    <mj-spacer height="16px" />
    """


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all awards emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="{THEME['primary_light']}" padding="28px 20px">
          <mj-column>
            <mj-text align="center" font-size="22px" font-weight="700" color="{THEME['primary_dark']}" padding="0">
              🏆 {awards_name()}
            </mj-text>
          </mj-column>
        </mj-section>

        <mj-section background-color="#ffffff" padding="32px 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="14px" color="#94a3b8" padding="0">
              Questions? Call {CONTACT_PHONE} or reply to this email.
            </mj-text>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="12px 0 0 0">
              © {config.AWARD_YEAR} SAP Technologies. All rights reserved.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def nomination_submitted_user_template(data: dict) -> str:
    """Confirmation to the nominator after a submission"""
    details = _detail_rows(
        [
            ("Nominee", data.get("nominee_name")),
            ("Category", data.get("category_name")),
            ("Company", data.get("nominee_company")),
            ("Country", data.get("nominee_country")),
        ]
    )
    content = f"""
    <mj-text>Dear {_e(data.get("nominator_name"), "Nominator")},</mj-text>
    <mj-text>
      Thank you for submitting a nomination for the <strong>{awards_name()}</strong>!
    </mj-text>
    {_panel("🎯 Nomination Details", details, THEME["primary_dark"], THEME["primary_light"])}
    <mj-text>
      <strong>What happens next?</strong><br/>
      • Our awards team will review the nomination within 48 hours<br/>
      • You will receive an email once the review is complete<br/>
      • If approved, the nomination will be published for public voting
    </mj-text>
    <mj-text>We'll keep you updated on the nomination status. Thank you for participating!</mj-text>
    """

    return get_base_template(
        title="🏆 Nomination Submitted Successfully!",
        preview_text=f"Your nomination of {_e(data.get('nominee_name'))} has been received",
        content_sections=content,
        cta_url=f"{config.FRONTEND_URL}/awards",
        cta_label="View the Awards",
    )


def nomination_submitted_admin_template(data: dict) -> str:
    """Alert to the awards inbox about a new nomination"""
    nominee = _detail_rows(
        [
            ("Name", data.get("nominee_name")),
            ("Title", data.get("nominee_title")),
            ("Company", data.get("nominee_company")),
            ("Country", data.get("nominee_country")),
            ("Category", data.get("category_name")),
        ]
    )
    nominator = _detail_rows(
        [
            ("Name", data.get("nominator_name")),
            ("Email", data.get("nominator_email")),
            ("Phone", data.get("nominator_phone")),
            ("Organization", data.get("nominator_organization")),
        ]
    )

    extra = ""
    for heading, key in (
        ("📄 Nomination Reason", "nomination_reason"),
        ("🏅 Key Achievements", "achievements"),
        ("🌍 Impact", "impact_description"),
    ):
        if data.get(key):
            extra += _panel(heading, _e(data[key]))

    content = f"""
    <mj-text>A new nomination has been submitted for the {awards_name()}.</mj-text>
    {_panel("👤 Nominee", nominee)}
    {_panel("✍️ Nominated by", nominator)}
    {extra}
    <mj-text>
      Please review this nomination in the admin dashboard and update its status:<br/>
      • <strong>Approve</strong> - Nomination will be published for voting<br/>
      • <strong>Reject</strong> - Nomination will not be published
    </mj-text>
    <mj-text color="{THEME['text_muted']}"><strong>Submitted:</strong> {_e(data.get("created_at"))}</mj-text>
    """

    return get_base_template(
        title="🏆 New Award Nomination Received",
        preview_text=f"{_e(data.get('nominee_name'))} - {_e(data.get('category_name'))}",
        content_sections=content,
        cta_url=f"{config.FRONTEND_URL}/admin/awards",
        cta_label="Review Nomination",
    )


def nomination_status_update_template(data: dict) -> str:
    """Status change notice to the nominator"""
    status = data.get("status") or "approved"
    status_config = STATUS_CONFIG.get(status, STATUS_CONFIG["approved"])
    details = _detail_rows(
        [
            ("Nominee", data.get("nominee_name")),
            ("Category", data.get("category_name")),
            ("Status", status.upper()),
            ("Updated", data.get("updated_at")),
        ]
    )

    notes = ""
    if data.get("admin_notes"):
        notes = _panel("📝 Admin Notes", _e(data["admin_notes"]))

    next_steps = ""
    if status == "approved":
        next_steps = _panel(
            "🎉 What's Next?",
            "• The nomination is now live for public voting<br/>"
            "• Share with your network to gather more votes<br/>"
            "• Voting will close before the awards ceremony<br/>"
            "• Winners will be announced after voting ends",
            "#15803d",
            "#f0fdf4",
        )
    elif status in ("winner", "finalist"):
        next_steps = _panel(
            "🎊 Congratulations! 🎊",
            "This is an incredible achievement! We'll be in touch soon with more details "
            "about the awards ceremony.",
            THEME["primary_dark"],
            THEME["primary_light"],
        )
    elif status == "rejected":
        next_steps = _panel(
            "Thank you",
            f"We appreciate your participation in the {awards_name()}. "
            "You're welcome to submit new nominations in the future.",
            "#991b1b",
            "#fef2f2",
        )

    content = f"""
    <mj-text>Dear {_e(data.get("nominator_name"), "Nominator")},</mj-text>
    <mj-text>{status_config["message"]}</mj-text>
    {_panel("🎯 Nomination Details", details, status_config["color"], status_config["bg_color"])}
    {notes}
    {next_steps}
    <mj-text>Thank you for your participation in the {awards_name()}!</mj-text>
    """

    return get_base_template(
        title=f"{status_config['icon']} {status_config['title']}",
        preview_text=f"Nomination status update: {status}",
        content_sections=content,
        cta_url=f"{config.FRONTEND_URL}/awards" if status != "rejected" else None,
        cta_label="View Nominations",
    )


def nomination_deleted_template(data: dict) -> str:
    """Removal notice to the nominator"""
    details = _detail_rows(
        [
            ("Nominee", data.get("nominee_name")),
            ("Category", data.get("category_name") or "Unknown Category"),
            ("Status", "Removed"),
            ("Removed On", data.get("deleted_at")),
        ]
    )
    reason = _e(data.get("admin_notes"), "No specific reason provided")

    content = f"""
    <mj-text>Dear {_e(data.get("nominator_name"), "Nominator")},</mj-text>
    <mj-text>
      We want to inform you that a nomination you submitted has been removed from the {awards_name()}.
    </mj-text>
    {_panel("📋 Nomination Details", details)}
    {_panel("📝 Reason for Removal", reason, THEME["primary_dark"], "#fef3c7")}
    <mj-text>If you have questions about this decision, please feel free to contact us.</mj-text>
    """

    return get_base_template(
        title="ℹ️ Nomination Removed",
        preview_text=f"Nomination removed: {_e(data.get('nominee_name'))}",
        content_sections=content,
    )


def certificate_email_template(data: dict) -> str:
    """Certificate delivery; the PDF travels as an attachment"""
    kind = data.get("kind") or "participant"
    cert_config = CERTIFICATE_CONFIG.get(kind, CERTIFICATE_CONFIG["participant"])
    category = _e(data.get("category_name"), "SAPHANIOX Awards")
    details = _detail_rows(
        [
            ("Nominee", data.get("recipient_name")),
            ("Category", data.get("category_name")),
            ("Certificate ID", data.get("certificate_id")),
            ("Award Year", data.get("award_year")),
        ]
    )

    content = f"""
    <mj-text>Dear {_e(data.get("nominator_name") or data.get("recipient_name"), "Nominee")},</mj-text>
    <mj-text>{cert_config["message"].format(category=category)}</mj-text>
    {_panel("📜 Certificate Details", details, THEME["primary_dark"], THEME["primary_light"])}
    <mj-text>
      Your certificate is attached to this email as a PDF. Anyone can confirm it is genuine
      using the certificate ID on our verification page.
    </mj-text>
    """

    return get_base_template(
        title=f"{cert_config['icon']} {cert_config['title']}",
        preview_text=f"Your {awards_name()} certificate",
        content_sections=content,
        cta_url=data.get("verify_url"),
        cta_label="Verify Certificate",
    )
