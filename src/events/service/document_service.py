"""QR codes, ticket PDFs and CSV exports."""

import base64
import csv
import io
import typing as t
from io import BytesIO

import qrcode
import structlog
from django.template.loader import render_to_string

from events.exceptions import DocumentRenderingError

logger = structlog.get_logger(__name__)

GUEST_LIST_COLUMNS = ["name", "ticket_number", "birthdate", "email", "phone", "payment_reference", "redeemed"]


def make_qr_png(data: str, *, box_size: int = 10) -> bytes:
    """Render data as a QR code PNG."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=4,
    )
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buffered = BytesIO()
    img.save(buffered, "PNG")
    return buffered.getvalue()


def qr_data_uri(data: str) -> str:
    """QR code PNG as a base64 data URI, for emails and JSON responses."""
    try:
        png = make_qr_png(data)
    except Exception as e:
        raise DocumentRenderingError("QR code could not be rendered.") from e
    return "data:image/png;base64," + base64.b64encode(png).decode("utf-8")


def html_to_pdf(html_string: str) -> bytes:
    """Convert HTML to PDF with WeasyPrint.

    The import happens here since WeasyPrint loads native libraries on import.
    """
    from weasyprint import HTML

    return t.cast(bytes, HTML(string=html_string).write_pdf())


def render_ticket_pdf(context: dict[str, t.Any]) -> bytes:
    """Render the ticket template to a PDF.

    Args:
        context: template context; ``qr_payload`` is embedded as QR code.

    Raises:
        DocumentRenderingError: if the QR code or the PDF could not be rendered.
    """
    context = {**context, "qr_code_base64": qr_data_uri(context["qr_payload"]).split(",", 1)[1]}
    html_string = render_to_string("events/ticket.html", context=context)
    try:
        return html_to_pdf(html_string)
    except Exception as e:
        logger.exception("ticket_pdf_failed", payment_reference=context.get("payment_reference"))
        raise DocumentRenderingError("Ticket PDF could not be rendered.") from e


def render_order_confirmation_pdf(context: dict[str, t.Any]) -> bytes:
    """Render the order summary a buyer can keep as proof of their order.

    Raises:
        DocumentRenderingError: if the PDF could not be rendered.
    """
    html_string = render_to_string("events/order_confirmation.html", context=context)
    try:
        return html_to_pdf(html_string)
    except Exception as e:
        logger.exception("order_confirmation_pdf_failed", payment_reference=context["order"].payment_reference)
        raise DocumentRenderingError("Order confirmation could not be rendered.") from e


def build_guest_list_csv(rows: t.Iterable[dict[str, t.Any]]) -> str:
    """Serialise guest list rows with a fixed column order."""
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=GUEST_LIST_COLUMNS, extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        writer.writerow(row)
    return output.getvalue()
