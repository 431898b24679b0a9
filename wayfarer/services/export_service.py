"""Export service: trip summary PDF."""

import io
import logging
from datetime import date
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import PageBreak, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from wayfarer.data.currency import format_price
from wayfarer.models.trip import Trip
from wayfarer.services.offers import normalize_flight, normalize_hotel
from wayfarer.services.package_scorer import find_best_package
from wayfarer.services.trip_dates import format_date_range

logger = logging.getLogger(__name__)

_TABLE_STYLE = TableStyle([
    ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
    ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
    ("FONTSIZE", (0, 0), (-1, -1), 9),
    ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
])


def _flight_route(raw: dict) -> str:
    try:
        segments = raw["itineraries"][0]["segments"]
        return f"{segments[0]['departure']['iataCode']} -> {segments[-1]['arrival']['iataCode']}"
    except (KeyError, IndexError, TypeError):
        return "-"


class ExportService:
    """Generates trip PDFs."""

    def generate_trip_pdf(self, trip: Trip) -> bytes:
        currency = trip.currency or "USD"
        budget = float(trip.budget or 0)

        buf = io.BytesIO()
        doc = SimpleDocTemplate(buf, pagesize=letter, topMargin=0.5 * inch)
        styles = getSampleStyleSheet()
        elements = []

        elements.append(Paragraph(escape(trip.trip_name), styles["Title"]))
        elements.append(Spacer(1, 12))

        info = [
            f"<b>Route:</b> {escape(trip.origin)} ({trip.origin_city_code}) -> "
            f"{escape(trip.destination)} ({trip.destination_city_code})",
            f"<b>Dates:</b> {format_date_range(trip.start_date, trip.end_date)}",
            f"<b>Budget:</b> {format_price(budget, currency)}",
            f"<b>Generated:</b> {date.today().isoformat()}",
        ]
        for line in info:
            elements.append(Paragraph(line, styles["Normal"]))
        elements.append(Spacer(1, 12))

        flights = trip.flight_options or []
        hotels = trip.hotel_options or []

        best = find_best_package(flights, hotels, budget)
        if best:
            elements.append(Paragraph("<b>Recommended package</b>", styles["Heading2"]))
            label = "within budget" if best.fits_budget else "over budget"
            elements.append(Paragraph(
                f"Flight + hotel for {format_price(best.combined_price, currency)} ({label})",
                styles["Normal"],
            ))
            elements.append(Spacer(1, 12))

        if flights:
            elements.append(Paragraph("<b>Flight options</b>", styles["Heading2"]))
            rows = [["Route", "Price", "Duration", "Stops"]]
            for raw in flights:
                offer = normalize_flight(raw)
                hours, minutes = divmod(int(offer.duration_minutes), 60)
                rows.append([
                    _flight_route(raw),
                    format_price(offer.price, offer.currency),
                    f"{hours}h {minutes:02d}m",
                    str(offer.stops),
                ])
            table = Table(rows, colWidths=[2.5 * inch, 1.5 * inch, 1.2 * inch, 0.8 * inch])
            table.setStyle(_TABLE_STYLE)
            elements.append(table)
            elements.append(Spacer(1, 12))

        if hotels:
            elements.append(Paragraph("<b>Hotel options</b>", styles["Heading2"]))
            rows = [["Hotel", "Price", "Rating"]]
            for raw in hotels:
                offer = normalize_hotel(raw)
                name = raw.get("name", "-") if isinstance(raw, dict) else "-"
                rows.append([name, format_price(offer.price, currency), f"{offer.rating:g}"])
            table = Table(rows, colWidths=[3 * inch, 1.5 * inch, 1 * inch])
            table.setStyle(_TABLE_STYLE)
            elements.append(table)

        if trip.markers:
            elements.append(PageBreak())
            elements.append(Paragraph("Map markers", styles["Heading2"]))
            for m in trip.markers:
                elements.append(Paragraph(
                    f"{escape(m.get('label') or '-')}: {m.get('lat')}, {m.get('lng')}", styles["Normal"]
                ))

        doc.build(elements)
        return buf.getvalue()


export_service = ExportService()
