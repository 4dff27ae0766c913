"""
Award Certificate PDF Generator
Renders A4 landscape certificates for winners, finalists and participants,
each with a QR code linking to the public verification page.
"""

import io
import logging
import secrets
import string
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from reportlab.graphics import renderPDF
from reportlab.graphics.barcode.qr import QrCodeWidget
from reportlab.graphics.shapes import Drawing
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

logger = logging.getLogger(__name__)

PAGE_SIZE = landscape(A4)
RANDOM_ALPHABET = string.ascii_uppercase + string.digits


class CertificateKind(str, Enum):
    WINNER = "winner"
    FINALIST = "finalist"
    PARTICIPANT = "participant"

    @classmethod
    def for_status(cls, status: str) -> "CertificateKind":
        """Map a nomination status to the certificate it earns"""
        try:
            return {
                "winner": cls.WINNER,
                "finalist": cls.FINALIST,
                "approved": cls.PARTICIPANT,
            }[status]
        except KeyError:
            raise ValueError(f"Status '{status}' does not earn a certificate") from None

    @property
    def prefix(self) -> str:
        return {"winner": "WIN", "finalist": "FIN", "participant": "PAR"}[self.value]


@dataclass
class CertificateData:
    recipient_name: str
    category_name: str
    award_year: int
    issue_date: datetime
    certificate_id: str
    verify_url: str


def generate_certificate_id(public_id: str, kind: CertificateKind, year: int | None = None) -> str:
    """WIN-2025-1A2B3C-X7K9 style id: kind prefix, year, nomination id prefix, random suffix"""
    year = year or datetime.utcnow().year
    id_part = public_id.replace("-", "")[:6].upper()
    random_part = "".join(secrets.choice(RANDOM_ALPHABET) for _ in range(4))
    return f"{kind.prefix}-{year}-{id_part}-{random_part}"


def certificate_filename(certificate_id: str) -> str:
    return f"certificate_{certificate_id}.pdf"


class CertificateRenderer:
    """Base certificate layout. Subclasses set the wording and colors for one kind."""

    kind: CertificateKind
    heading = "CERTIFICATE"
    subheading = "OF PARTICIPATION"
    award_line = "has participated in the"
    banner = None
    citation = "in recognition of valuable contribution to engineering and technology"
    accent = colors.HexColor("#1e3a8a")
    border = colors.HexColor("#c9a227")

    def render(self, data: CertificateData) -> bytes:
        buffer = io.BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=PAGE_SIZE)
        pdf.setTitle(f"{self.heading.title()} {self.subheading.title()} - {data.recipient_name}")
        pdf.setAuthor("SAP Technologies")

        width, height = PAGE_SIZE
        self._draw_frame(pdf, width, height)
        self._draw_heading(pdf, width, height, data)
        self._draw_recipient(pdf, width, height, data)
        self._draw_award(pdf, width, height, data)
        self._draw_footer(pdf, width, data)
        self._draw_qr_code(pdf, width, data)

        pdf.showPage()
        pdf.save()
        return buffer.getvalue()

    def _draw_frame(self, pdf, width, height):
        pdf.setFillColor(colors.HexColor("#fffdf5"))
        pdf.rect(0, 0, width, height, stroke=0, fill=1)
        pdf.setStrokeColor(self.border)
        pdf.setLineWidth(6)
        pdf.rect(20, 20, width - 40, height - 40)
        pdf.setLineWidth(1.5)
        pdf.rect(32, 32, width - 64, height - 64)

    def _draw_heading(self, pdf, width, height, data):
        pdf.setFillColor(self.accent)
        pdf.setFont("Helvetica-Bold", 16)
        pdf.drawCentredString(width / 2, height - 80, f"SAPHANIOX AWARDS {data.award_year}")
        pdf.setFont("Times-Bold", 40)
        pdf.drawCentredString(width / 2, height - 135, self.heading)
        pdf.setFont("Times-Roman", 20)
        pdf.drawCentredString(width / 2, height - 165, self.subheading)
        pdf.setFillColor(colors.HexColor("#475569"))
        pdf.setFont("Helvetica", 13)
        pdf.drawCentredString(width / 2, height - 205, "This certificate is proudly presented to")

    def _draw_recipient(self, pdf, width, height, data):
        font_size = 36
        max_width = width - 160
        while font_size > 18 and stringWidth(data.recipient_name, "Times-BoldItalic", font_size) > max_width:
            font_size -= 2
        pdf.setFillColor(colors.HexColor("#0f172a"))
        pdf.setFont("Times-BoldItalic", font_size)
        y = height - 255
        pdf.drawCentredString(width / 2, y, data.recipient_name)
        pdf.setStrokeColor(self.border)
        pdf.setLineWidth(1)
        pdf.line(width / 2 - 200, y - 12, width / 2 + 200, y - 12)

    def _draw_award(self, pdf, width, height, data):
        y = height - 300
        pdf.setFillColor(colors.HexColor("#334155"))
        pdf.setFont("Helvetica", 14)
        pdf.drawCentredString(width / 2, y, self.award_line)
        if self.banner:
            y -= 32
            pdf.setFillColor(self.accent)
            pdf.setFont("Helvetica-Bold", 22)
            pdf.drawCentredString(width / 2, y, self.banner)
        y -= 30
        pdf.setFillColor(self.accent)
        pdf.setFont("Helvetica-Bold", 16)
        pdf.drawCentredString(width / 2, y, data.category_name)
        y -= 26
        pdf.setFillColor(colors.HexColor("#475569"))
        pdf.setFont("Helvetica-Oblique", 11)
        pdf.drawCentredString(width / 2, y, self.citation)

    def _draw_footer(self, pdf, width, data):
        pdf.setFillColor(colors.HexColor("#475569"))
        pdf.setFont("Helvetica", 10)
        pdf.drawString(70, 90, f"Date: {data.issue_date.strftime('%B %d, %Y')}")
        pdf.drawString(70, 74, f"Certificate ID: {data.certificate_id}")
        pdf.drawCentredString(width / 2, 74, "Powered by SAP Technologies")
        pdf.drawCentredString(width / 2, 60, "www.sap-technologies.com")

    def _draw_qr_code(self, pdf, width, data):
        size = 80
        widget = QrCodeWidget(data.verify_url)
        x0, y0, x1, y1 = widget.getBounds()
        drawing = Drawing(size, size, transform=[size / (x1 - x0), 0, 0, size / (y1 - y0), 0, 0])
        drawing.add(widget)
        renderPDF.draw(drawing, pdf, width - 150, 60)
        pdf.setFont("Helvetica", 8)
        pdf.drawCentredString(width - 110, 50, "Scan to Verify")


class WinnerCertificateRenderer(CertificateRenderer):
    kind = CertificateKind.WINNER
    subheading = "OF ACHIEVEMENT"
    award_line = "has been awarded the"
    banner = "* * * WINNER * * *"
    citation = "in recognition of outstanding excellence in engineering and technology"
    accent = colors.HexColor("#b45309")


class FinalistCertificateRenderer(CertificateRenderer):
    kind = CertificateKind.FINALIST
    subheading = "OF EXCELLENCE"
    award_line = "has been recognized as a"
    banner = "FINALIST"
    citation = "in recognition of exceptional achievement in engineering and technology"
    accent = colors.HexColor("#6d28d9")
    border = colors.HexColor("#a3a3a3")


class ParticipationCertificateRenderer(CertificateRenderer):
    kind = CertificateKind.PARTICIPANT


RENDERERS = {
    CertificateKind.WINNER: WinnerCertificateRenderer(),
    CertificateKind.FINALIST: FinalistCertificateRenderer(),
    CertificateKind.PARTICIPANT: ParticipationCertificateRenderer(),
}


def render_certificate(kind: CertificateKind, data: CertificateData) -> bytes:
    pdf_bytes = RENDERERS[kind].render(data)
    logger.info(f"📜 Rendered {kind.value} certificate {data.certificate_id} ({len(pdf_bytes)} bytes)")
    return pdf_bytes
