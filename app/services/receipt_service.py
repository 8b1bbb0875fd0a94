from io import BytesIO

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas


class ReceiptService:
    """Renders a one-page PDF receipt for an order (items must be loaded)."""

    @staticmethod
    def generate_pdf_bytes(order) -> bytes:
        buffer = BytesIO()
        p = canvas.Canvas(buffer, pagesize=A4)

        # Header
        p.setFont("Helvetica-Bold", 16)
        p.drawString(72, 800, f"RECEIPT - {order.confirmation_code}")

        p.setFont("Helvetica", 11)
        p.drawString(72, 778, f"Date: {order.created_at.strftime('%Y-%m-%d %H:%M')}")
        p.drawString(72, 762, f"Customer: {order.customer_name} ({order.customer_phone})")
        if order.pharmacy is not None:
            p.drawString(72, 746, f"Pharmacy: {order.pharmacy.name}")
        p.drawString(72, 730, f"Order type: {order.order_type.value}   Status: {order.status.value}")

        # Items table
        y = 700
        p.setFont("Helvetica-Bold", 11)
        p.drawString(72, y, "Item")
        p.drawString(340, y, "Qty")
        p.drawString(400, y, "Unit price")
        p.drawString(480, y, "Subtotal")
        p.line(72, y - 5, 540, y - 5)

        p.setFont("Helvetica", 11)
        for item in order.items:
            y -= 20
            if y < 80:
                p.showPage()
                p.setFont("Helvetica", 11)
                y = 800
            name = item.medication.name if item.medication is not None else str(item.medication_id)
            p.drawString(72, y, name[:45])
            p.drawString(340, y, str(item.quantity))
            p.drawString(400, y, f"{item.price_per_unit:.2f}")
            p.drawString(480, y, f"{item.price_per_unit * item.quantity:.2f}")

        # Totals
        p.line(72, y - 10, 540, y - 10)
        p.setFont("Helvetica-Bold", 11)
        p.drawString(340, y - 30, f"Items: {order.total_number_of_items}")
        p.drawString(440, y - 30, f"Total: {order.total_price:.2f}")

        p.showPage()
        p.save()
        return buffer.getvalue()
